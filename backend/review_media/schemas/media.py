"""
Pydantic schemas for media descriptors.
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional

from review_media.media.classifier import MediaType, classify_url


class MediaDescriptor(BaseModel):
    """
    Uniform reference to one media item attached to a review.

    A video's thumbnail is empty or the url itself; only images carry a
    separate thumbnail.
    """
    url: str = Field(..., min_length=1, max_length=2048, description="Public URL of the media")
    media_type: MediaType = Field(..., description="image or video")
    thumbnail_url: Optional[str] = Field(None, max_length=2048, description="Thumbnail URL (images only)")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "url": "https://example.com/room.jpg",
                "media_type": "image",
                "thumbnail_url": "https://example.com/room.jpg"
            }
        }

    @model_validator(mode="after")
    def check_video_thumbnail(self) -> "MediaDescriptor":
        if self.media_type == MediaType.VIDEO and self.thumbnail_url not in (None, "", self.url):
            raise ValueError("thumbnail_url must be empty or equal to url for videos")
        return self

    @classmethod
    def for_url(cls, url: str, media_type: Optional[MediaType] = None) -> "MediaDescriptor":
        """Descriptor for a URL: images are their own thumbnail, videos get none."""
        media_type = media_type or classify_url(url)
        return cls(
            url=url,
            media_type=media_type,
            thumbnail_url=url if media_type == MediaType.IMAGE else ""
        )
