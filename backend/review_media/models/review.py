"""
Review model.

A review of a room, owning an ordered list of media items. Reviews are
created pending and moderated before being shown.
"""
import enum
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship

from review_media.models.base import Base, generate_uuid


class ReviewStatus(str, enum.Enum):
    """Moderation status of a review."""
    PENDING = "pending"      # Awaiting moderation
    APPROVED = "approved"
    REJECTED = "rejected"


class Review(Base):
    """
    Review model.

    Attributes:
        id: Unique identifier (UUID)
        room_id: Reviewed room (indexed for listing)
        title: Optional short summary
        content: Review text
        rating: 1 to 5 stars
        status: Moderation status
        created_at: Creation timestamp
        media: Attached media, in submission order
    """
    __tablename__ = "reviews"

    id = Column(String, primary_key=True, default=generate_uuid)
    room_id = Column(String, nullable=False, index=True)
    title = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False)
    status = Column(SQLEnum(ReviewStatus), nullable=False, default=ReviewStatus.PENDING)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    media = relationship(
        "ReviewMedia",
        back_populates="review",
        order_by="ReviewMedia.position",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    def __repr__(self):
        return f"<Review(id={self.id}, room={self.room_id}, rating={self.rating})>"
