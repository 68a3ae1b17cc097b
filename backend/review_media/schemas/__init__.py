"""
Pydantic schemas for API request/response validation.
"""
from review_media.schemas.media import MediaDescriptor
from review_media.schemas.review import (
    ReviewFields,
    ReviewCreate,
    ReviewResponse,
)

__all__ = [
    "MediaDescriptor",
    "ReviewFields",
    "ReviewCreate",
    "ReviewResponse",
]
