"""
Health check endpoint.
Verifies database connectivity and that the media directory is writable.
"""
import os

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from review_media.database import get_db
from review_media.media.storage import MediaStore, get_media_store

router = APIRouter()


@router.get("")
async def health_check(
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store)
):
    """
    Health check endpoint.
    Returns status of the database and media storage.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "storage": "unknown"
    }

    # Check database
    try:
        await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        health_status["database"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    # Check media directory
    if store.directory.is_dir() and os.access(store.directory, os.W_OK):
        health_status["storage"] = "writable"
    else:
        health_status["storage"] = f"error: {store.directory} missing or not writable"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
