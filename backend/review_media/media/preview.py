"""
Revocable preview handles for locally selected media.

A preview handle is an opaque "preview:<uuid>" reference that keeps the
selected content reachable for rendering until it is revoked, like an
object URL in a browser. Every handle created must be revoked, on removal
of its candidate or after a successful submission.
"""
import io
import mimetypes
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Union


@dataclass(frozen=True, eq=False)
class RawFile:
    """A file picked by the user, before any validation."""
    name: str
    content_type: str
    size_bytes: int
    data: Optional[bytes] = None
    path: Optional[Path] = None

    @classmethod
    def from_bytes(cls, name: str, data: bytes, content_type: str) -> "RawFile":
        return cls(name=name, content_type=content_type, size_bytes=len(data), data=data)

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> "RawFile":
        """Describe a file on disk; the type is guessed from the name when not given."""
        path = Path(path)
        if content_type is None:
            content_type = mimetypes.guess_type(path.name)[0] or ""
        return cls(
            name=path.name,
            content_type=content_type,
            size_bytes=path.stat().st_size,
            path=path,
        )

    def open(self) -> BinaryIO:
        """Open the content for reading. The caller closes the stream."""
        if self.data is not None:
            return io.BytesIO(self.data)
        if self.path is not None:
            return open(self.path, "rb")
        raise ValueError(f"RawFile {self.name!r} has neither data nor path")


class PreviewRegistry:
    """Tracks live preview handles and the content they keep reachable."""

    PREFIX = "preview:"

    def __init__(self):
        self._live: Dict[str, RawFile] = {}

    def create(self, raw: RawFile) -> str:
        handle = f"{self.PREFIX}{uuid.uuid4()}"
        self._live[handle] = raw
        return handle

    def open(self, handle: str) -> BinaryIO:
        """Open the content behind a live handle. Raises KeyError once revoked."""
        return self._live[handle].open()

    def revoke(self, handle: str):
        self._live.pop(handle, None)

    def is_live(self, handle: str) -> bool:
        return handle in self._live

    def __len__(self) -> int:
        return len(self._live)
