"""
Pydantic schemas for review endpoints.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from review_media.config import settings
from review_media.models.review import ReviewStatus
from review_media.schemas.media import MediaDescriptor


class ReviewFields(BaseModel):
    """Review fields shared by the JSON and multipart endpoints."""
    title: Optional[str] = Field(None, max_length=255, description="Optional short summary")
    content: str = Field(..., min_length=1, description="Review text")
    rating: int = Field(5, ge=1, le=5, description="Rating from 1 to 5")

    class Config:
        str_strip_whitespace = True


class ReviewCreate(ReviewFields):
    """Schema for creating a review with URL-referenced media."""
    media: List[MediaDescriptor] = Field(
        default_factory=list,
        max_length=settings.max_batch_items,
        description="Remote media descriptors"
    )


class ReviewResponse(BaseModel):
    """Schema for review response."""
    id: str
    room_id: str
    title: Optional[str] = None
    content: str
    rating: int
    status: ReviewStatus
    created_at: datetime
    media: List[MediaDescriptor] = []

    class Config:
        from_attributes = True
