"""
Review endpoints.

Two ways to attach media, never mixed in one call:
1. POST /rooms/{room_id}/reviews/upload - multipart, files under "media"
2. POST /rooms/{room_id}/reviews        - JSON, URL-referenced media descriptors

The upload endpoint runs the ingestion gate over the raw request stream
before anything else; a rejected batch never reaches review creation.
"""
import asyncio
import logging
import time
from typing import List

from fastapi import APIRouter, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from review_media.database import get_db
from review_media.media.errors import report_error
from review_media.media.gate import IngestionGate, get_ingestion_gate
from review_media.schemas.review import ReviewCreate, ReviewFields, ReviewResponse
from review_media.services.review_service import ReviewService, descriptor_for_stored_file
from review_media.utils.logging import log_review_created
from review_media.utils.metrics import reviews_created_total

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/{room_id}/reviews/upload",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_review_with_upload(
    room_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    gate: IngestionGate = Depends(get_ingestion_gate)
):
    """
    Create a review from a multipart form with uploaded media.

    Form fields: title (optional), content, rating; files under "media"
    (up to 10 images/videos, 100MB each).

    Rejections follow the ingestion error table: 400 with a message for
    validation and limit violations, 500 for anything else.
    """
    start_time = time.time()
    result = await gate.ingest(request.headers.get("content-type", ""), request.stream())
    if not result.ok:
        report = report_error(result.error)
        return JSONResponse(status_code=report.status_code, content=report.to_body())

    try:
        fields = ReviewFields.model_validate(result.fields)
    except ValidationError as e:
        await asyncio.to_thread(gate.store.remove, result.files)
        raise RequestValidationError(e.errors())

    try:
        review = await ReviewService.create_review(
            db,
            room_id=room_id,
            title=fields.title,
            content=fields.content,
            rating=fields.rating,
            media=[descriptor_for_stored_file(stored) for stored in result.files]
        )
    except Exception as e:
        await asyncio.to_thread(gate.store.remove, result.files)
        logger.error(
            f"Failed to create review: {str(e)}",
            extra={"event": "review_creation_failed", "room_id": room_id, "error": str(e)},
            exc_info=True
        )
        raise

    reviews_created_total.labels(source="upload").inc()
    log_review_created(
        logger,
        review_id=review.id,
        room_id=room_id,
        media_count=len(result.files),
        source="upload",
        duration_ms=(time.time() - start_time) * 1000
    )
    return ReviewResponse.model_validate(review)


@router.post(
    "/{room_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_review(
    room_id: str,
    review_data: ReviewCreate,
    db: AsyncSession = Depends(get_db)
):
    """Create a review with URL-referenced media (at most 10 descriptors)."""
    start_time = time.time()
    review = await ReviewService.create_review(
        db,
        room_id=room_id,
        title=review_data.title,
        content=review_data.content,
        rating=review_data.rating,
        media=review_data.media
    )

    reviews_created_total.labels(source="url").inc()
    log_review_created(
        logger,
        review_id=review.id,
        room_id=room_id,
        media_count=len(review_data.media),
        source="url",
        duration_ms=(time.time() - start_time) * 1000
    )
    return ReviewResponse.model_validate(review)


@router.get("/{room_id}/reviews", response_model=List[ReviewResponse])
async def list_reviews(room_id: str, db: AsyncSession = Depends(get_db)):
    """List a room's reviews with their media, newest first."""
    reviews = await ReviewService.list_reviews(db, room_id)
    return [ReviewResponse.model_validate(review) for review in reviews]
