"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- review_id
- room_id
- duration_ms

Usage:
    from review_media.utils.logging import configure_logging, log_media_ingested

    configure_logging('review-media-api', 'INFO')
    log_media_ingested(logger, file_count=3, total_bytes=1024, duration_ms=12.5)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (review-media-api)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        # Create JSON formatter
        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Create console handler (for docker logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        # Configure root logger
        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    review_id: Optional[str] = None,
    room_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        review_id: Optional review ID
        room_id: Optional room ID
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if review_id:
        extra["review_id"] = review_id
    if room_id:
        extra["room_id"] = room_id
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Media ingestion event functions

def log_media_ingested(
    logger: logging.Logger,
    file_count: int,
    total_bytes: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log an admitted media batch.

    Args:
        logger: Logger instance
        file_count: Number of files persisted (required)
        total_bytes: Bytes persisted across the batch (required)
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="media_ingested",
        duration_ms=duration_ms,
        file_count=file_count,
        total_bytes=total_bytes,
        **kwargs
    )

    logger.info(f"Media batch ingested: {file_count} file(s)", extra=extra)


def log_media_rejected(
    logger: logging.Logger,
    code: str,
    detail: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a rejected media batch.

    Args:
        logger: Logger instance
        code: Ingestion error code (required)
        detail: Diagnostic detail, never sent to clients outside development
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="media_rejected",
        duration_ms=duration_ms,
        code=code,
        **kwargs
    )
    if detail:
        extra["detail"] = detail

    message = f"Media batch rejected: {code}"
    if detail:
        message += f" - {detail}"

    logger.warning(message, extra=extra)


# Review event functions

def log_review_created(
    logger: logging.Logger,
    review_id: str,
    room_id: str,
    media_count: int,
    source: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log review creation event.

    Args:
        logger: Logger instance
        review_id: Review ID (required)
        room_id: Room ID (required)
        media_count: Number of media items attached
        source: "upload" or "url"
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="review_created",
        review_id=review_id,
        room_id=room_id,
        duration_ms=duration_ms,
        media_count=media_count,
        source=source,
        **kwargs
    )

    logger.info(f"Review created: {review_id}", extra=extra)


# Convenience alias for backward compatibility
def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
