"""
Service layer for business logic.
"""
from review_media.services.review_service import ReviewService, descriptor_for_stored_file

__all__ = ["ReviewService", "descriptor_for_stored_file"]
