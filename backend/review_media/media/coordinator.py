"""
Client-side coordinator for a review's media batch.

Accumulates candidates from two sources, local files and pasted URLs,
pre-validating count, type and size before any network call, and submits
the batch to the review API.

Admission policy differs from the server on purpose:
- the count cap rejects a whole selection at once;
- type and size are checked per file, invalid files are dropped and the
  valid ones are admitted.
The server only ever sees the pre-filtered files.

Every admitted candidate holds a preview handle. Handles are revoked when
the candidate is removed, after a successful submit, and on close().
A failed submit keeps candidates and their previews for a retry.
"""
import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import httpx
from pydantic import HttpUrl, TypeAdapter, ValidationError

from review_media.config import MIB, Settings, settings as default_settings
from review_media.media.classifier import MediaType, classify, classify_url, max_size_for
from review_media.media.errors import IngestionErrorCode, report
from review_media.media.preview import PreviewRegistry, RawFile
from review_media.schemas.media import MediaDescriptor

logger = logging.getLogger(__name__)

_http_url = TypeAdapter(HttpUrl)

MSG_EMPTY_URL = "Please enter a URL"
MSG_INVALID_URL = "Invalid URL. Please enter a valid http/https URL."
MSG_EMPTY_CONTENT = "Please enter your review"


@dataclass
class UploadCandidate:
    """A locally selected file admitted to the batch, not yet submitted."""
    source: RawFile
    preview_handle: str
    type: MediaType
    name: str
    size_bytes: int


@dataclass
class LocalAddResult:
    admitted: List[UploadCandidate] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def error(self) -> Optional[str]:
        """All errors of the selection combined into one message."""
        return ", ".join(self.errors) if self.errors else None


@dataclass
class UrlAddResult:
    descriptor: Optional[MediaDescriptor] = None
    error: Optional[str] = None


class SubmissionError(Exception):
    """Submission failed; message is shown to the user as-is."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class MediaBatchCoordinator:
    """
    Media batch for one review being written.

    Usage:
        async with MediaBatchCoordinator(room_id="room-1") as batch:
            result = batch.add_local_files([RawFile.from_path("pool.jpg")])
            batch.add_url("https://example.com/tour.mp4")
            media = await batch.submit({"content": "Great stay", "rating": 5})
    """

    def __init__(
        self,
        room_id: str,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        previews: Optional[PreviewRegistry] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or default_settings
        self.room_id = room_id
        self.base_url = base_url or self.settings.api_base_url
        self.transport = transport
        self.previews = previews if previews is not None else PreviewRegistry()
        self.candidates: List[UploadCandidate] = []
        self.url_media: List[MediaDescriptor] = []
        self.media_error: Optional[str] = None
        self.submitting = False

    @property
    def upload_path(self) -> str:
        return f"/api/rooms/{self.room_id}/reviews/upload"

    @property
    def review_path(self) -> str:
        return f"/api/rooms/{self.room_id}/reviews"

    @property
    def total_count(self) -> int:
        """Files and URL entries, counted together against the cap."""
        return len(self.candidates) + len(self.url_media)

    def _count_error(self) -> str:
        return f"Maximum {self.settings.max_batch_items} files"

    def add_local_files(self, batch: Iterable[RawFile]) -> LocalAddResult:
        """
        Admit a selection of local files.

        The whole selection is refused with a single error if it would take
        the batch over the cap. Otherwise each file is checked on its own and
        only the invalid ones are dropped.
        """
        batch = list(batch)
        result = LocalAddResult()

        if self.total_count + len(batch) > self.settings.max_batch_items:
            result.errors.append(self._count_error())
            self.media_error = result.error
            return result

        for raw in batch:
            media_type = classify(raw.content_type).media_type
            if media_type is None:
                result.errors.append(f"{raw.name}: only image or video files are accepted")
                continue

            max_size = max_size_for(media_type)
            if raw.size_bytes > max_size:
                result.errors.append(f"{raw.name}: file too large (max {max_size // MIB}MB)")
                continue

            result.admitted.append(UploadCandidate(
                source=raw,
                preview_handle=self.previews.create(raw),
                type=media_type,
                name=raw.name,
                size_bytes=raw.size_bytes,
            ))

        self.candidates.extend(result.admitted)
        self.media_error = result.error
        return result

    def add_url(self, url: str) -> UrlAddResult:
        """Validate, classify and append a remote media URL."""
        url = (url or "").strip()

        if not url:
            error = MSG_EMPTY_URL
        elif not self._is_http_url(url):
            error = MSG_INVALID_URL
        elif self.total_count >= self.settings.max_batch_items:
            error = self._count_error()
        else:
            descriptor = MediaDescriptor.for_url(url, classify_url(url))
            self.url_media.append(descriptor)
            self.media_error = None
            return UrlAddResult(descriptor=descriptor)

        self.media_error = error
        return UrlAddResult(error=error)

    @staticmethod
    def _is_http_url(url: str) -> bool:
        try:
            _http_url.validate_python(url)
        except ValidationError:
            return False
        return True

    def remove(self, index: int) -> UploadCandidate:
        """Remove a local candidate and revoke its preview."""
        candidate = self.candidates.pop(index)
        self.previews.revoke(candidate.preview_handle)
        return candidate

    def remove_url(self, index: int) -> MediaDescriptor:
        return self.url_media.pop(index)

    async def submit(self, fields: Optional[Dict[str, Any]] = None) -> List[MediaDescriptor]:
        """
        Submit the batch with the review fields.

        Local files go as a multipart upload (URL entries are not sent on that
        path); otherwise the URL descriptors go as JSON. Blank content is
        refused before any request is made.

        Returns:
            Media attached to the created review

        Raises:
            SubmissionError: With the server's message, unmodified
        """
        if self.submitting:
            raise SubmissionError("A submission is already in progress")

        fields = dict(fields or {})
        if not str(fields.get("content") or "").strip():
            raise SubmissionError(MSG_EMPTY_CONTENT)

        self.submitting = True
        try:
            response = await self._send(fields)
        except httpx.HTTPError as e:
            logger.error(
                f"Review submission failed: {e}",
                extra={"event": "review_submission_failed", "room_id": self.room_id}
            )
            raise SubmissionError(report(IngestionErrorCode.UNCLASSIFIED).message) from e
        finally:
            self.submitting = False

        if response.is_error:
            raise SubmissionError(self._error_message(response), response.status_code)

        media = [MediaDescriptor.model_validate(item) for item in response.json().get("media", [])]
        self._reset()
        return media

    async def _send(self, fields: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(base_url=self.base_url, transport=self.transport) as client:
            if not self.candidates:
                payload = {**fields, "media": [d.model_dump() for d in self.url_media]}
                return await client.post(self.review_path, json=payload)

            with ExitStack() as stack:
                files = [
                    (
                        self.settings.media_field_name,
                        (c.name, stack.enter_context(c.source.open()), c.source.content_type)
                    )
                    for c in self.candidates
                ]
                data = {key: str(value) for key, value in fields.items() if value is not None}
                return await client.post(self.upload_path, data=data, files=files)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            message = response.json().get("message")
        except ValueError:
            message = None
        return message or report(IngestionErrorCode.UNCLASSIFIED).message

    def _reset(self):
        self.close()
        self.url_media = []
        self.media_error = None

    def close(self):
        """Drop local candidates and revoke every preview they hold."""
        for candidate in self.candidates:
            self.previews.revoke(candidate.preview_handle)
        self.candidates = []

    def __enter__(self) -> "MediaBatchCoordinator":
        return self

    def __exit__(self, *exc):
        self.close()

    async def __aenter__(self) -> "MediaBatchCoordinator":
        return self

    async def __aexit__(self, *exc):
        self.close()
