"""
Local disk storage for review media.

Files are written under <uploads_root>/<review_media_dir>/ using names from
the storage namer. Each file is streamed into a hidden temporary file in
the same directory and published under its final name with a hard link,
so a published file is always complete and never overwrites another one.
On filesystems without hard links (FAT, some network mounts) the final
name is reserved with an exclusive create and the temporary file renamed
over it instead.

The destination directory is created once at startup by
prepare_media_storage(); MediaStore assumes it exists.
"""
import errno
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Optional, Union

from review_media.config import Settings, settings as default_settings
from review_media.media.classifier import MediaType, classify
from review_media.media.naming import next_name, original_extension

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024  # 1MB
TEMP_PREFIX = ".incoming-"

# Attempts at drawing a fresh name when the generated one already exists
MAX_NAME_ATTEMPTS = 5

# os.link failures meaning the filesystem has no hard links (FAT, some network mounts)
LINK_UNSUPPORTED_ERRNOS = frozenset([errno.EPERM, errno.ENOTSUP, errno.EOPNOTSUPP, errno.ENOSYS])


def media_directory(settings: Optional[Settings] = None) -> Path:
    """Destination directory for review media."""
    settings = settings or default_settings
    return Path(settings.uploads_root) / settings.review_media_dir


def prepare_media_storage(settings: Optional[Settings] = None) -> Path:
    """
    Create the uploads root and the review media directory.

    Recursive and idempotent; called once at startup before the ingestion
    gate accepts traffic.

    Returns:
        The review media directory
    """
    directory = media_directory(settings)
    directory.mkdir(parents=True, exist_ok=True)
    logger.info(
        f"Media storage ready: {directory}",
        extra={"event": "media_storage_prepared", "directory": str(directory)}
    )
    return directory


@dataclass(frozen=True)
class StoredFile:
    """
    A media file published to disk.

    Immutable; deletion and retention are handled outside this module.
    """
    generated_name: str
    directory_path: str
    original_extension: str
    size_bytes: int
    declared_type: str

    @property
    def path(self) -> Path:
        return Path(self.directory_path) / self.generated_name

    @property
    def media_type(self) -> Optional[MediaType]:
        return classify(self.declared_type).media_type


class PendingFile:
    """
    A file being written, not yet visible under its final name.

    Usage:
        pending = store.open("clip.mp4", "video/mp4")
        pending.write(chunk)
        stored = pending.commit()   # or pending.discard()
    """

    def __init__(
        self,
        directory: Path,
        original_name: Optional[str],
        declared_type: str,
        namer: Callable[[Optional[str]], str]
    ):
        self.directory = directory
        self.original_name = original_name
        self.declared_type = declared_type
        self.size_bytes = 0
        self._namer = namer
        self._name = namer(original_name)
        self._temp_path = directory / f"{TEMP_PREFIX}{self._name}"
        self._handle: Optional[BinaryIO] = open(self._temp_path, "xb")
        self._finished = False

    def write(self, data: bytes) -> int:
        """Append data and return the total number of bytes written so far."""
        if self._handle is None:
            raise ValueError("Pending file is closed")
        self._handle.write(data)
        self.size_bytes += len(data)
        return self.size_bytes

    def _close(self):
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def commit(self) -> StoredFile:
        """
        Publish the file under its generated name.

        A new name is drawn if the generated one is already taken; an
        existing file is never overwritten.

        Raises:
            OSError: If the file cannot be flushed or published
        """
        if self._finished:
            raise ValueError("Pending file already finished")
        try:
            self._handle.flush()
            os.fsync(self._handle.fileno())
            self._close()
            name = self._publish()
        finally:
            self.discard()

        return StoredFile(
            generated_name=name,
            directory_path=str(self.directory),
            original_extension=original_extension(self.original_name),
            size_bytes=self.size_bytes,
            declared_type=self.declared_type,
        )

    def _publish(self) -> str:
        name = self._name
        for _ in range(MAX_NAME_ATTEMPTS):
            try:
                self._claim(self.directory / name)
                return name
            except FileExistsError:
                logger.warning(
                    f"Generated media name already exists, retrying: {name}",
                    extra={"event": "media_name_collision", "file_name": name}
                )
                name = self._namer(self.original_name)
        raise FileExistsError(f"Could not find a free name for {self.original_name!r}")

    def _claim(self, target: Path):
        """
        Move the temporary file to target, failing if target exists.

        Uses a hard link where the filesystem supports it. Otherwise the
        name is reserved with an exclusive create and the temporary file
        is renamed over the reservation.

        Raises:
            FileExistsError: If target is taken
        """
        try:
            os.link(self._temp_path, target)
            return
        except OSError as e:
            if e.errno not in LINK_UNSUPPORTED_ERRNOS:
                raise
            logger.debug(
                f"Hard links unsupported in {self.directory}, publishing by rename",
                extra={"event": "media_link_unsupported", "errno": e.errno}
            )

        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_EXCL)
        os.close(fd)
        try:
            os.replace(self._temp_path, target)
        except OSError:
            target.unlink(missing_ok=True)
            raise

    def discard(self):
        """Drop the temporary file. Safe to call more than once."""
        self._close()
        self._temp_path.unlink(missing_ok=True)
        self._finished = True


class MediaStore:
    """
    Writes validated media to the review media directory.

    Distinct requests need no locking: name uniqueness comes from the
    naming scheme, and publishing never replaces an existing file.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        namer: Callable[[Optional[str]], str] = next_name
    ):
        self.directory = Path(directory)
        self.namer = namer

    def open(self, original_name: Optional[str], declared_type: str) -> PendingFile:
        """Start writing a new file. Raises OSError if the directory is unusable."""
        return PendingFile(self.directory, original_name, declared_type, self.namer)

    def store(
        self,
        source: Union[bytes, BinaryIO],
        original_name: Optional[str],
        declared_type: str
    ) -> StoredFile:
        """
        Write a complete buffer or binary stream to a new file.

        Args:
            source: Bytes or a readable binary stream
            original_name: File name as sent by the client
            declared_type: Declared MIME type

        Returns:
            The published StoredFile

        Raises:
            OSError: On any write failure; nothing is left on disk
        """
        pending = self.open(original_name, declared_type)
        try:
            if isinstance(source, (bytes, bytearray, memoryview)):
                pending.write(bytes(source))
            else:
                while True:
                    chunk = source.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    pending.write(chunk)
            return pending.commit()
        except BaseException:
            pending.discard()
            raise

    def remove(self, stored_files: Iterable[StoredFile]):
        """Delete published files, ignoring ones already gone."""
        for stored in stored_files:
            try:
                stored.path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(
                    f"Could not remove media file {stored.generated_name}: {e}",
                    extra={"event": "media_remove_failed", "file_name": stored.generated_name}
                )


def get_media_store() -> MediaStore:
    """FastAPI dependency returning the store for the configured directory."""
    return MediaStore(media_directory())
