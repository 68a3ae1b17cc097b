"""
Review service for business logic around reviews.
Creates reviews with their media list and lists them per room.
"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import List, Optional, Sequence

from review_media.config import settings
from review_media.media.storage import StoredFile
from review_media.models.review import Review
from review_media.models.review_media import ReviewMedia
from review_media.schemas.media import MediaDescriptor


def descriptor_for_stored_file(stored: StoredFile, url_prefix: Optional[str] = None) -> MediaDescriptor:
    """Public descriptor for a file persisted by the ingestion gate."""
    prefix = (url_prefix if url_prefix is not None else settings.media_url_prefix).rstrip("/")
    return MediaDescriptor.for_url(f"{prefix}/{stored.generated_name}", stored.media_type)


class ReviewService:
    """Service for review business logic."""

    @staticmethod
    async def create_review(
        db: AsyncSession,
        room_id: str,
        content: str,
        rating: int,
        title: Optional[str] = None,
        media: Sequence[MediaDescriptor] = ()
    ) -> Review:
        """
        Create a review with its media, keeping the submission order.

        Raises ValueError if more media items are given than a batch allows.
        """
        if len(media) > settings.max_batch_items:
            raise ValueError(f"At most {settings.max_batch_items} media items per review")

        review = Review(room_id=room_id, title=title, content=content, rating=rating)
        review.media = [
            ReviewMedia(
                position=position,
                url=item.url,
                media_type=item.media_type,
                thumbnail_url=item.thumbnail_url,
            )
            for position, item in enumerate(media)
        ]
        db.add(review)
        await db.flush()
        review_id = review.id
        await db.commit()

        return await ReviewService.get_review(db, review_id)

    @staticmethod
    async def get_review(db: AsyncSession, review_id: str) -> Optional[Review]:
        result = await db.execute(
            select(Review)
            .where(Review.id == review_id)
            .options(selectinload(Review.media))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_reviews(db: AsyncSession, room_id: str) -> List[Review]:
        """Reviews of a room, newest first."""
        result = await db.execute(
            select(Review)
            .where(Review.room_id == room_id)
            .options(selectinload(Review.media))
            .order_by(Review.created_at.desc())
        )
        return list(result.scalars().all())
