"""
Database models package.
"""
from review_media.models.base import Base
from review_media.models.review import Review, ReviewStatus
from review_media.models.review_media import ReviewMedia

__all__ = [
    "Base",
    "Review",
    "ReviewStatus",
    "ReviewMedia",
]
