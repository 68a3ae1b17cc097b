"""
Tests for service layer business logic.
"""
import pytest
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession

from review_media.media.classifier import MediaType
from review_media.media.storage import StoredFile
from review_media.models.review import ReviewStatus
from review_media.schemas.media import MediaDescriptor
from review_media.services.review_service import ReviewService, descriptor_for_stored_file


def stored_file(name: str, declared_type: str) -> StoredFile:
    return StoredFile(
        generated_name=name,
        directory_path="/srv/uploads/review-media",
        original_extension=name[name.rfind("."):],
        size_bytes=10,
        declared_type=declared_type,
    )


class TestDescriptorForStoredFile:
    """Tests for mapping persisted files to public descriptors."""

    def test_image(self):
        descriptor = descriptor_for_stored_file(stored_file("review-1-2.png", "image/png"))

        assert descriptor.url == "/uploads/review-media/review-1-2.png"
        assert descriptor.media_type == MediaType.IMAGE
        assert descriptor.thumbnail_url == descriptor.url

    def test_video(self):
        descriptor = descriptor_for_stored_file(stored_file("review-1-2.mov", "video/quicktime"))

        assert descriptor.media_type == MediaType.VIDEO
        assert descriptor.thumbnail_url == ""

    def test_custom_prefix(self):
        descriptor = descriptor_for_stored_file(
            stored_file("review-1-2.gif", "image/gif"),
            url_prefix="https://cdn.example.com/media/"
        )

        assert descriptor.url == "https://cdn.example.com/media/review-1-2.gif"


class TestReviewService:
    """Tests for ReviewService."""

    @pytest.mark.asyncio
    async def test_create_review_keeps_media_order(self, db_session: AsyncSession):
        media = [
            MediaDescriptor.for_url("https://example.com/b.mp4"),
            MediaDescriptor.for_url("https://example.com/a.jpg"),
            MediaDescriptor.for_url("https://example.com/c.png"),
        ]

        review = await ReviewService.create_review(
            db_session,
            room_id="room-1",
            content="Great stay",
            rating=4,
            title="Nice",
            media=media
        )

        assert review.id is not None
        assert review.status == ReviewStatus.PENDING
        assert [m.url for m in review.media] == [d.url for d in media]
        assert [m.position for m in review.media] == [0, 1, 2]
        assert review.media[0].media_type == MediaType.VIDEO

    @pytest.mark.asyncio
    async def test_create_review_without_media(self, db_session: AsyncSession):
        review = await ReviewService.create_review(
            db_session, room_id="room-1", content="Quiet", rating=5
        )

        assert review.media == []

    @pytest.mark.asyncio
    async def test_create_review_too_many_media(self, db_session: AsyncSession):
        media = [MediaDescriptor.for_url(f"https://example.com/{i}.jpg") for i in range(11)]

        with pytest.raises(ValueError):
            await ReviewService.create_review(
                db_session, room_id="room-1", content="Too much", rating=5, media=media
            )

    @pytest.mark.asyncio
    async def test_get_review_not_found(self, db_session: AsyncSession):
        assert await ReviewService.get_review(db_session, "missing") is None

    @pytest.mark.asyncio
    async def test_list_reviews_newest_first(self, db_session: AsyncSession):
        older = await ReviewService.create_review(
            db_session, room_id="room-1", content="Older", rating=3
        )
        older.created_at = datetime.utcnow() - timedelta(days=1)
        await db_session.commit()
        await ReviewService.create_review(db_session, room_id="room-1", content="Newer", rating=4)
        await ReviewService.create_review(db_session, room_id="room-2", content="Other", rating=2)

        reviews = await ReviewService.list_reviews(db_session, "room-1")

        assert [r.content for r in reviews] == ["Newer", "Older"]
