"""
Error taxonomy for media ingestion.

Maps internal failure codes (structural limits, type rejection, storage
and transport faults) to a fixed table of user-facing messages and an
HTTP status class. Used by the ingestion gate to build responses and by
the client coordinator for failures that never reached the server.
"""
import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import status

from review_media.config import is_development_environment, settings


class IngestionErrorCode(str, enum.Enum):
    """Failure codes produced while ingesting a media batch."""
    FILE_TOO_LARGE = "file-too-large"
    TOO_MANY_FILES = "too-many-files"
    WRONG_FIELD_NAME = "wrong-field-name"
    TOO_MANY_FORM_PARTS = "too-many-form-parts"
    FIELD_KEY_TOO_LONG = "field-key-too-long"
    FIELD_VALUE_TOO_LONG = "field-value-too-long"
    TOO_MANY_FIELDS = "too-many-fields"
    UNSUPPORTED_MEDIA_TYPE = "unsupported-media-type"
    UNCLASSIFIED = "unclassified"


MESSAGES = {
    IngestionErrorCode.FILE_TOO_LARGE: "File exceeds per-file size cap (max 100MB per file)",
    IngestionErrorCode.TOO_MANY_FILES: "Too many files. Maximum 10 files",
    IngestionErrorCode.WRONG_FIELD_NAME: 'Unexpected field name. Use "media" to upload',
    IngestionErrorCode.TOO_MANY_FORM_PARTS: "Too many parts in submitted form",
    IngestionErrorCode.FIELD_KEY_TOO_LONG: "Field name too long",
    IngestionErrorCode.FIELD_VALUE_TOO_LONG: "Field value too long",
    IngestionErrorCode.TOO_MANY_FIELDS: "Too many fields in form",
    IngestionErrorCode.UNSUPPORTED_MEDIA_TYPE: (
        "Only image (JPEG, PNG, WebP, GIF) or video (MP4, WebM, MOV) files are accepted"
    ),
    IngestionErrorCode.UNCLASSIFIED: "Upload failed. Please try again.",
}


@dataclass(frozen=True)
class IngestionError:
    """A tagged ingestion failure with optional diagnostic detail."""
    code: IngestionErrorCode
    detail: Optional[str] = None

    @property
    def message(self) -> str:
        return MESSAGES[self.code]


class MediaIngestionError(Exception):
    """Raised to abort ingestion; carries the tagged failure."""

    def __init__(self, code: IngestionErrorCode, detail: Optional[str] = None):
        self.error = IngestionError(code, detail)
        super().__init__(detail or MESSAGES[code])

    @property
    def code(self) -> IngestionErrorCode:
        return self.error.code


@dataclass(frozen=True)
class ErrorReport:
    """Response-ready rendering of an ingestion failure."""
    status_code: int
    message: str
    error: Optional[str] = None

    def to_body(self) -> Dict[str, Any]:
        body = {"success": False, "message": self.message}
        if self.error is not None:
            body["error"] = self.error
        return body


def report(
    code: IngestionErrorCode,
    detail: Optional[str] = None,
    environment: Optional[str] = None
) -> ErrorReport:
    """
    Map an internal failure code to a status class and message.

    Validation and limit violations are client errors with a fixed message.
    Unclassified failures are server errors; their diagnostic detail is only
    included in development environments.

    Args:
        code: Internal failure code
        detail: Diagnostic text (exception message, offending value)
        environment: Deployment environment (defaults to settings.environment)

    Returns:
        ErrorReport ready to be rendered as a response
    """
    message = MESSAGES[code]
    if code is not IngestionErrorCode.UNCLASSIFIED:
        return ErrorReport(status.HTTP_400_BAD_REQUEST, message)

    exposed = is_development_environment(
        settings.environment if environment is None else environment
    )
    return ErrorReport(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        message,
        error=detail if exposed else None
    )


def report_error(error: IngestionError, environment: Optional[str] = None) -> ErrorReport:
    """Shortcut for report() on an IngestionError."""
    return report(error.code, error.detail, environment)
