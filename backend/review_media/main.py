"""
FastAPI application entry point.
Sets up the API with lifespan events for database and media storage initialization.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from review_media.config import settings
from review_media.database import init_db
from review_media.api.router import api_router
from review_media.media.errors import MediaIngestionError, report_error
from review_media.media.storage import prepare_media_storage
from review_media.middleware.metrics_middleware import MetricsMiddleware
from review_media.utils.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: Configure logging, create tables, prepare the media directory
      (once, before the ingestion gate accepts traffic)
    """
    # Configure structured JSON logging
    configure_logging('review-media-api', settings.log_level)

    # Startup
    await init_db()
    prepare_media_storage(settings)

    yield
    # Shutdown (if needed)


# Create FastAPI app
app = FastAPI(
    title="Review Media API",
    description="Review creation with image/video ingestion",
    version="0.1.0",
    lifespan=lifespan
)

# CORS middleware (for the web client)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware (must be after CORS to track all requests)
app.add_middleware(MetricsMiddleware)

# Include API routes
app.include_router(api_router, prefix="/api")

# Persisted media, served as-is
app.mount(
    "/uploads",
    StaticFiles(directory=settings.uploads_root, check_dir=False),
    name="uploads"
)


@app.exception_handler(MediaIngestionError)
async def media_ingestion_error_handler(request: Request, exc: MediaIngestionError):
    """Render ingestion failures raised outside the gate with the error table."""
    report = report_error(exc.error)
    return JSONResponse(status_code=report.status_code, content=report.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Validation errors carry a message like every other failure body."""
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "Invalid review data",
            "detail": jsonable_encoder(exc.errors())
        }
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Review Media API",
        "version": "0.1.0",
        "environment": settings.environment
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
