"""
Test configuration and fixtures.
Uses a throwaway SQLite database and media directory per test.
"""
import os

# Set test environment before any imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"

import pytest
from pathlib import Path
from typing import AsyncGenerator, AsyncIterator, List, Optional, Tuple

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from review_media.config import Settings
from review_media.media.gate import GateLimits, IngestionGate
from review_media.media.storage import MediaStore, prepare_media_storage
from review_media.models import Base


SMALL_LIMITS = GateLimits(
    max_file_size_bytes=1024,
    max_parts=8,
    max_fields=4,
    max_field_key_bytes=16,
    max_field_value_bytes=64,
)

BOUNDARY = "test-boundary-7MA4YWxkTrZu0gW"


def multipart_body(
    parts: List[Tuple[str, Optional[str], Optional[str], bytes]],
    boundary: str = BOUNDARY
) -> Tuple[str, bytes]:
    """
    Build a multipart/form-data body.

    Each part is (field name, filename or None, content type or None, data).
    Returns (Content-Type header, body).
    """
    body = b""
    for name, filename, content_type, data in parts:
        disposition = f'form-data; name="{name}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        body += f"--{boundary}\r\nContent-Disposition: {disposition}\r\n".encode()
        if content_type:
            body += f"Content-Type: {content_type}\r\n".encode()
        body += b"\r\n" + data + b"\r\n"
    body += f"--{boundary}--\r\n".encode()
    return f"multipart/form-data; boundary={boundary}", body


async def chunked(body: bytes, size: int = 64) -> AsyncIterator[bytes]:
    """Yield body in fixed-size chunks, like a request stream."""
    for start in range(0, len(body), size):
        yield body[start:start + size]


def stored_names(directory: Path) -> List[str]:
    """Every entry in the media directory, temporary files included."""
    return sorted(entry.name for entry in directory.iterdir())


@pytest.fixture(scope="function")
async def db_session(tmp_path: Path) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def media_dir(tmp_path: Path) -> Path:
    """Prepared review media directory."""
    return prepare_media_storage(Settings(uploads_root=str(tmp_path / "uploads")))


@pytest.fixture
def media_store(media_dir: Path) -> MediaStore:
    return MediaStore(media_dir)


def get_test_app(db_session: AsyncSession, gate: IngestionGate) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    from review_media.main import app
    from review_media.database import get_db
    from review_media.media.gate import get_ingestion_gate
    from review_media.media.storage import get_media_store

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ingestion_gate] = lambda: gate
    app.dependency_overrides[get_media_store] = lambda: gate.store

    return app


@pytest.fixture(scope="function")
async def app(db_session: AsyncSession, media_store: MediaStore) -> AsyncGenerator[FastAPI, None]:
    """App with the default gate limits."""
    test_app = get_test_app(db_session, IngestionGate(media_store, GateLimits()))
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture(scope="function")
async def small_client(
    db_session: AsyncSession,
    media_store: MediaStore
) -> AsyncGenerator[AsyncClient, None]:
    """Client for an app whose gate has small limits, to exercise every limit cheaply."""
    test_app = get_test_app(db_session, IngestionGate(media_store, SMALL_LIMITS))

    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    test_app.dependency_overrides.clear()
