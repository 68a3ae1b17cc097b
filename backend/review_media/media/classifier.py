"""
Content classification for review media.

One closed classification rule shared by the ingestion gate (on the
Content-Type of each multipart part) and the client coordinator (on the
type string of a locally selected file), so both sides agree on what is an
image, what is a video and what is rejected.
"""
import enum
from typing import Optional

from review_media.config import settings


class MediaType(str, enum.Enum):
    """Type of an accepted media item."""
    IMAGE = "image"
    VIDEO = "video"


class MediaClassification(str, enum.Enum):
    """Outcome of classifying a declared MIME type."""
    IMAGE = "image"
    VIDEO = "video"
    REJECT = "reject"

    @property
    def media_type(self) -> Optional[MediaType]:
        """The accepted media type, or None for REJECT."""
        if self is MediaClassification.REJECT:
            return None
        return MediaType(self.value)


# Allowed content types per media type
ALLOWED_CONTENT_TYPES = {
    MediaType.IMAGE: frozenset([
        'image/jpeg', 'image/png', 'image/webp', 'image/gif'
    ]),
    MediaType.VIDEO: frozenset([
        'video/mp4', 'video/webm', 'video/quicktime'
    ]),
}

# URL suffixes treated as video when classifying remote media
VIDEO_URL_SUFFIXES = ('.mp4', '.webm', '.mov')


def _normalize(content_type: Optional[str]) -> str:
    """Strip MIME parameters and case: 'Image/PNG; q=1' -> 'image/png'."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def classify(content_type: Optional[str]) -> MediaClassification:
    """
    Classify a declared MIME type against the allow-list.

    Args:
        content_type: Declared MIME type (may be None or carry parameters)

    Returns:
        IMAGE or VIDEO when allowed, REJECT otherwise
    """
    normalized = _normalize(content_type)
    if normalized in ALLOWED_CONTENT_TYPES[MediaType.IMAGE]:
        return MediaClassification.IMAGE
    if normalized in ALLOWED_CONTENT_TYPES[MediaType.VIDEO]:
        return MediaClassification.VIDEO
    return MediaClassification.REJECT


def classify_url(url: str) -> MediaType:
    """
    Classify a remote media URL.

    Video if the URL contains "video" or ends with a known video suffix,
    image otherwise. Never ambiguous.
    """
    if "video" in url or url.endswith(VIDEO_URL_SUFFIXES):
        return MediaType.VIDEO
    return MediaType.IMAGE


def max_size_for(media_type: MediaType) -> int:
    """Client-side size cap in bytes for a media type."""
    if media_type is MediaType.VIDEO:
        return settings.max_video_bytes
    return settings.max_image_bytes
