"""
ReviewMedia model for media attached to a review.

Rows come from either source: files persisted by the ingestion gate (url
points under the media URL prefix) or remote URLs submitted as
descriptors. The database never stores file bytes.
"""
from sqlalchemy import Column, String, Integer, ForeignKey, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship

from review_media.media.classifier import MediaType
from review_media.models.base import Base, generate_uuid


class ReviewMedia(Base):
    """
    Media item attached to a review.

    Attributes:
        id: Unique identifier (UUID)
        review_id: Owning review
        position: Index in the submitted batch
        url: Public URL of the media
        media_type: image or video
        thumbnail_url: The url itself for images, empty for videos
    """
    __tablename__ = "review_media"

    id = Column(String, primary_key=True, default=generate_uuid)
    review_id = Column(String, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    url = Column(String(2048), nullable=False)
    media_type = Column(SQLEnum(MediaType), nullable=False)
    thumbnail_url = Column(String(2048), nullable=True)

    review = relationship("Review", back_populates="media")

    __table_args__ = (
        Index('ix_review_media_review_position', 'review_id', 'position'),
    )

    def __repr__(self):
        return (
            f"<ReviewMedia(id={self.id}, review={self.review_id}, "
            f"type={self.media_type.value}, position={self.position})>"
        )
