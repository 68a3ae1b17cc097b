"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from review_media.api import health, reviews

api_router = APIRouter()

# Include route modules
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(reviews.router, prefix="/rooms", tags=["reviews"])
