"""
Ingestion gate for multipart review media uploads.

Streams the request body through python-multipart and admits the batch
as a whole:

1. Structural limits (parts, files, fields, field key/value sizes, field
   name of file parts) and the per-part size cap are enforced while the
   body is read.
2. Each file part's declared Content-Type is classified before any of its
   bytes are written.
3. Accepted parts are written to hidden temporary files; only when the
   whole body has been read without a violation are they published under
   their generated names.

The first violation stops processing and every file of the request is
discarded (temporary and already published alike). The outcome is
returned as an IngestionResult; validation never raises out of ingest().

Disk I/O (open, write, fsync, publish, cleanup) runs in worker threads;
only parsing and limit checks run on the event loop.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional, Tuple

from fastapi import Depends
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import ClientDisconnect

from review_media.config import Settings, settings as default_settings
from review_media.media.classifier import MediaClassification, classify
from review_media.media.errors import IngestionError, IngestionErrorCode, MediaIngestionError
from review_media.media.storage import MediaStore, PendingFile, StoredFile, get_media_store
from review_media.utils.logging import log_media_ingested, log_media_rejected
from review_media.utils.metrics import (
    media_bytes_stored_total,
    media_files_stored_total,
    media_rejections_total,
)

logger = logging.getLogger(__name__)

DEFAULT_CHARSET = "utf-8"


@dataclass(frozen=True)
class GateLimits:
    """Structural limits applied to one multipart submission."""
    field_name: str = "media"
    max_files: int = 10
    max_file_size_bytes: int = 100 * 1024 * 1024
    max_parts: int = 100
    max_fields: int = 50
    max_field_key_bytes: int = 100
    max_field_value_bytes: int = 1024 * 1024

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GateLimits":
        settings = settings or default_settings
        return cls(
            field_name=settings.media_field_name,
            max_files=settings.max_files,
            max_file_size_bytes=settings.max_file_size_bytes,
            max_parts=settings.max_parts,
            max_fields=settings.max_fields,
            max_field_key_bytes=settings.max_field_key_bytes,
            max_field_value_bytes=settings.max_field_value_bytes,
        )


@dataclass
class IngestionResult:
    """
    Outcome of one submission.

    Either files/fields are populated and error is None, or error is set
    and nothing was persisted.
    """
    files: List[StoredFile] = field(default_factory=list)
    fields: Dict[str, str] = field(default_factory=dict)
    error: Optional[IngestionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _Part:
    """State of the multipart part currently being read."""

    def __init__(self):
        self.headers: List[Tuple[bytes, bytes]] = []
        self.name = ""
        self.pending: Optional[PendingFile] = None
        self.value = bytearray()
        self.is_file = False
        self.skip = False

    def header(self, name: bytes) -> Optional[bytes]:
        for key, value in self.headers:
            if key == name:
                return value
        return None


class _GateRun:
    """Parser state for a single request; never shared between requests."""

    def __init__(self, store: MediaStore, limits: GateLimits):
        self.store = store
        self.limits = limits
        self.charset = DEFAULT_CHARSET
        self.fields: Dict[str, str] = {}
        self.part_count = 0
        self.file_count = 0
        self.field_count = 0
        self._messages: List[Tuple[str, _Part, bytes]] = []
        self._current: Optional[_Part] = None
        self._header_field = b""
        self._header_value = b""
        self._pending: List[PendingFile] = []
        self._published: List[StoredFile] = []

    # Parser callbacks record headers and queue events; _drain() acts on the
    # events between writes so violations surface outside the parser

    def on_part_begin(self):
        self._current = _Part()

    def on_part_data(self, data: bytes, start: int, end: int):
        self._messages.append(("part_data", self._current, data[start:end]))

    def on_part_end(self):
        self._messages.append(("part_end", self._current, b""))
        self._current = None

    def on_header_field(self, data: bytes, start: int, end: int):
        self._header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int):
        self._header_value += data[start:end]

    def on_header_end(self):
        self._current.headers.append((self._header_field.lower(), self._header_value))
        self._header_field = b""
        self._header_value = b""

    def on_headers_finished(self):
        self._messages.append(("headers_finished", self._current, b""))

    async def consume(self, content_type: str, chunks: AsyncIterator[bytes]):
        mime, params = parse_options_header(content_type or "")
        if mime != b"multipart/form-data" or b"boundary" not in params:
            raise MediaIngestionError(
                IngestionErrorCode.UNCLASSIFIED,
                f"Expected multipart/form-data with a boundary, got {content_type!r}"
            )
        if b"charset" in params:
            self.charset = params[b"charset"].decode("latin-1")

        callbacks = {
            "on_part_begin": self.on_part_begin,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
        }
        parser = MultipartParser(params[b"boundary"], callbacks)

        async for chunk in chunks:
            if not chunk:
                continue
            parser.write(chunk)
            await self._drain()
        parser.finalize()
        await self._drain()

        if self._current is not None:
            raise MediaIngestionError(
                IngestionErrorCode.UNCLASSIFIED,
                "Multipart body ended in the middle of a part"
            )

    async def _drain(self):
        messages, self._messages = self._messages, []
        for kind, part, data in messages:
            if kind == "headers_finished":
                await self._begin_part(part)
            elif kind == "part_data":
                await self._part_data(part, data)
            elif kind == "part_end":
                self._end_part(part)

    async def _begin_part(self, part: _Part):
        self.part_count += 1
        if self.part_count > self.limits.max_parts:
            raise MediaIngestionError(
                IngestionErrorCode.TOO_MANY_FORM_PARTS,
                f"More than {self.limits.max_parts} parts"
            )

        disposition = part.header(b"content-disposition")
        if disposition is None:
            raise MediaIngestionError(
                IngestionErrorCode.UNCLASSIFIED,
                "Missing Content-Disposition header in multipart part"
            )
        _, options = parse_options_header(disposition)
        raw_name = options.get(b"name", b"")
        part.name = raw_name.decode(self.charset, errors="replace")
        filename = options.get(b"filename")

        if filename is None:
            self._begin_field(part, raw_name)
            return

        part.is_file = True
        if not filename:
            # Empty file input in a browser form
            part.skip = True
            return

        if part.name != self.limits.field_name:
            raise MediaIngestionError(
                IngestionErrorCode.WRONG_FIELD_NAME,
                f"Unexpected file field {part.name!r}"
            )

        self.file_count += 1
        if self.file_count > self.limits.max_files:
            raise MediaIngestionError(
                IngestionErrorCode.TOO_MANY_FILES,
                f"More than {self.limits.max_files} files"
            )

        declared_type = (part.header(b"content-type") or b"").decode("latin-1")
        if classify(declared_type) is MediaClassification.REJECT:
            raise MediaIngestionError(
                IngestionErrorCode.UNSUPPORTED_MEDIA_TYPE,
                f"Rejected content type {declared_type!r}"
            )

        part.pending = await asyncio.to_thread(
            self.store.open,
            filename.decode(self.charset, errors="replace"),
            declared_type
        )
        self._pending.append(part.pending)

    def _begin_field(self, part: _Part, raw_name: bytes):
        self.field_count += 1
        if self.field_count > self.limits.max_fields:
            raise MediaIngestionError(
                IngestionErrorCode.TOO_MANY_FIELDS,
                f"More than {self.limits.max_fields} fields"
            )
        if len(raw_name) > self.limits.max_field_key_bytes:
            raise MediaIngestionError(
                IngestionErrorCode.FIELD_KEY_TOO_LONG,
                f"Field name longer than {self.limits.max_field_key_bytes} bytes"
            )

    async def _part_data(self, part: _Part, data: bytes):
        if part.skip:
            return
        if part.pending is not None:
            if part.pending.size_bytes + len(data) > self.limits.max_file_size_bytes:
                raise MediaIngestionError(
                    IngestionErrorCode.FILE_TOO_LARGE,
                    f"{part.pending.original_name!r} exceeds {self.limits.max_file_size_bytes} bytes"
                )
            await asyncio.to_thread(part.pending.write, data)
            return
        part.value.extend(data)
        if len(part.value) > self.limits.max_field_value_bytes:
            raise MediaIngestionError(
                IngestionErrorCode.FIELD_VALUE_TOO_LONG,
                f"Value of {part.name!r} longer than {self.limits.max_field_value_bytes} bytes"
            )

    def _end_part(self, part: _Part):
        if not part.is_file:
            self.fields[part.name] = part.value.decode(self.charset, errors="replace")

    async def publish(self) -> List[StoredFile]:
        """Publish every pending file; on failure remove the ones already published."""
        try:
            for pending in self._pending:
                self._published.append(await asyncio.to_thread(pending.commit))
        except BaseException:
            await self.abort()
            raise
        return list(self._published)

    def discard_all(self):
        for pending in self._pending:
            pending.discard()
        self.store.remove(self._published)
        self._published = []

    async def abort(self):
        await asyncio.to_thread(self.discard_all)


class IngestionGate:
    """
    Server-side admission for a batch of binary media parts.

    Usage:
        gate = IngestionGate(MediaStore(directory), GateLimits.from_settings())
        result = await gate.ingest(request.headers["content-type"], request.stream())
        if not result.ok:
            ...  # report_error(result.error)
    """

    def __init__(self, store: MediaStore, limits: Optional[GateLimits] = None):
        self.store = store
        self.limits = limits or GateLimits.from_settings()

    async def ingest(self, content_type: str, chunks: AsyncIterator[bytes]) -> IngestionResult:
        """
        Read one multipart submission and admit or reject it as a whole.

        Args:
            content_type: Request Content-Type header (carries the boundary)
            chunks: Request body stream

        Returns:
            IngestionResult with the stored files and plain form fields, or
            with the error that rejected the batch
        """
        start_time = time.time()
        run = _GateRun(self.store, self.limits)
        error: Optional[IngestionError] = None

        try:
            await run.consume(content_type, chunks)
            files = await run.publish()
        except MediaIngestionError as e:
            error = e.error
        except (MultipartParseError, ClientDisconnect, OSError) as e:
            logger.error(
                f"Media ingestion failed: {e}",
                extra={"event": "media_ingestion_failed", "error": str(e)},
                exc_info=True
            )
            error = IngestionError(IngestionErrorCode.UNCLASSIFIED, f"{type(e).__name__}: {e}")
        except BaseException:
            # Cancelled or interrupted: clean up without yielding to the loop
            run.discard_all()
            raise

        duration_ms = (time.time() - start_time) * 1000
        if error is not None:
            await run.abort()
            media_rejections_total.labels(code=error.code.value).inc()
            log_media_rejected(
                logger,
                code=error.code.value,
                detail=error.detail,
                part_count=run.part_count,
                duration_ms=duration_ms
            )
            return IngestionResult(error=error)

        for stored in files:
            media_files_stored_total.labels(media_type=stored.media_type.value).inc()
            media_bytes_stored_total.inc(stored.size_bytes)
        log_media_ingested(
            logger,
            file_count=len(files),
            total_bytes=sum(stored.size_bytes for stored in files),
            duration_ms=duration_ms
        )
        return IngestionResult(files=files, fields=run.fields)


def get_ingestion_gate(store: MediaStore = Depends(get_media_store)) -> IngestionGate:
    """FastAPI dependency returning a gate bound to the configured limits."""
    return IngestionGate(store, GateLimits.from_settings())
