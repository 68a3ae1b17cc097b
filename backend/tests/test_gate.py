"""
Tests for the ingestion gate, driven with hand-built multipart bodies.
"""
import asyncio
import time

import pytest
from pathlib import Path

from review_media.media.errors import IngestionErrorCode
from review_media.media.gate import GateLimits, IngestionGate
from review_media.media import storage
from review_media.media.storage import MediaStore, PendingFile
from conftest import SMALL_LIMITS, chunked, multipart_body, stored_names


JPEG = b"\xff\xd8\xff\xe0" + b"j" * 200
MP4 = b"\x00\x00\x00\x18ftypmp42" + b"v" * 200


class TestIngestionGateAdmission:
    """Tests for admitted batches."""

    @pytest.mark.asyncio
    async def test_admits_files_and_fields(self, media_store: MediaStore, media_dir: Path):
        content_type, body = multipart_body([
            ("content", None, None, "Phòng đẹp".encode("utf-8")),
            ("media", "pool.JPG", "image/jpeg", JPEG),
            ("media", "tour.mov", "video/quicktime", MP4),
        ])
        gate = IngestionGate(media_store, GateLimits())

        result = await gate.ingest(content_type, chunked(body))

        assert result.ok
        assert result.fields == {"content": "Phòng đẹp"}
        assert [f.original_extension for f in result.files] == [".JPG", ".mov"]
        assert [f.size_bytes for f in result.files] == [len(JPEG), len(MP4)]
        assert [f.media_type.value for f in result.files] == ["image", "video"]
        assert result.files[0].path.read_bytes() == JPEG
        assert stored_names(media_dir) == sorted(f.generated_name for f in result.files)

    @pytest.mark.asyncio
    async def test_single_byte_chunks(self, media_store: MediaStore):
        """Test part boundaries split across chunks are handled."""
        content_type, body = multipart_body([("media", "a.png", "image/png", JPEG)])
        gate = IngestionGate(media_store, GateLimits())

        result = await gate.ingest(content_type, chunked(body, size=1))

        assert result.ok
        assert result.files[0].path.read_bytes() == JPEG

    @pytest.mark.asyncio
    async def test_content_type_parameters_ignored(self, media_store: MediaStore):
        content_type, body = multipart_body([("media", "a.webm", "Video/WebM; codecs=vp9", MP4)])
        gate = IngestionGate(media_store, GateLimits())

        result = await gate.ingest(content_type, chunked(body))

        assert result.ok

    @pytest.mark.asyncio
    async def test_empty_file_input_is_skipped(self, media_store: MediaStore, media_dir: Path):
        """Test a browser's empty file input does not count as a file."""
        content_type, body = multipart_body([
            ("media", "", "application/octet-stream", b""),
            ("content", None, None, b"text only"),
        ])
        gate = IngestionGate(media_store, GateLimits())

        result = await gate.ingest(content_type, chunked(body))

        assert result.ok
        assert result.files == []
        assert stored_names(media_dir) == []


class TestIngestionGateRejection:
    """Tests for all-or-nothing rejection."""

    @pytest.mark.asyncio
    async def test_unsupported_type_after_valid_file(self, media_store: MediaStore, media_dir: Path):
        """Test a late bad part discards the earlier valid one."""
        content_type, body = multipart_body([
            ("media", "pool.jpg", "image/jpeg", JPEG),
            ("media", "archive.zip", "application/zip", b"PK\x03\x04"),
        ])
        gate = IngestionGate(media_store, GateLimits())

        result = await gate.ingest(content_type, chunked(body))

        assert not result.ok
        assert result.error.code == IngestionErrorCode.UNSUPPORTED_MEDIA_TYPE
        assert result.files == []
        assert stored_names(media_dir) == []

    @pytest.mark.asyncio
    async def test_missing_part_content_type_is_unsupported(self, media_store: MediaStore):
        content_type, body = multipart_body([("media", "pool.jpg", None, JPEG)])
        gate = IngestionGate(media_store, GateLimits())

        result = await gate.ingest(content_type, chunked(body))

        assert result.error.code == IngestionErrorCode.UNSUPPORTED_MEDIA_TYPE

    @pytest.mark.asyncio
    async def test_file_too_large(self, media_store: MediaStore, media_dir: Path):
        content_type, body = multipart_body([("media", "clip.mp4", "video/mp4", b"v" * 1025)])
        gate = IngestionGate(media_store, SMALL_LIMITS)

        result = await gate.ingest(content_type, chunked(body))

        assert result.error.code == IngestionErrorCode.FILE_TOO_LARGE
        assert stored_names(media_dir) == []

    @pytest.mark.asyncio
    async def test_eleven_files(self, media_store: MediaStore, media_dir: Path):
        parts = [("media", f"{i}.gif", "image/gif", b"GIF89a") for i in range(11)]
        content_type, body = multipart_body(parts)
        gate = IngestionGate(media_store, GateLimits())

        result = await gate.ingest(content_type, chunked(body))

        assert result.error.code == IngestionErrorCode.TOO_MANY_FILES
        assert stored_names(media_dir) == []

    @pytest.mark.asyncio
    async def test_wrong_field_name(self, media_store: MediaStore):
        content_type, body = multipart_body([("file", "pool.jpg", "image/jpeg", JPEG)])
        gate = IngestionGate(media_store, GateLimits())

        result = await gate.ingest(content_type, chunked(body))

        assert result.error.code == IngestionErrorCode.WRONG_FIELD_NAME
        assert "file" in result.error.detail

    @pytest.mark.asyncio
    async def test_not_multipart(self, media_store: MediaStore):
        gate = IngestionGate(media_store, GateLimits())

        result = await gate.ingest("application/json", chunked(b'{"content": "x"}'))

        assert result.error.code == IngestionErrorCode.UNCLASSIFIED
        assert "application/json" in result.error.detail

    @pytest.mark.asyncio
    async def test_truncated_body(self, media_store: MediaStore, media_dir: Path):
        content_type, body = multipart_body([("media", "pool.jpg", "image/jpeg", JPEG)])
        gate = IngestionGate(media_store, GateLimits())

        result = await gate.ingest(content_type, chunked(body[: len(body) // 2]))

        assert result.error.code == IngestionErrorCode.UNCLASSIFIED
        assert stored_names(media_dir) == []

    @pytest.mark.asyncio
    async def test_publish_failure_removes_published_files(
        self,
        media_store: MediaStore,
        media_dir: Path,
        monkeypatch
    ):
        """Test a storage error while publishing leaves no file behind."""
        original_commit = PendingFile.commit
        calls = []

        def failing_commit(self):
            calls.append(self.original_name)
            if len(calls) == 2:
                raise OSError(28, "No space left on device")
            return original_commit(self)

        monkeypatch.setattr(PendingFile, "commit", failing_commit)
        content_type, body = multipart_body([
            ("media", "a.jpg", "image/jpeg", JPEG),
            ("media", "b.jpg", "image/jpeg", JPEG),
        ])
        gate = IngestionGate(media_store, GateLimits())

        result = await gate.ingest(content_type, chunked(body))

        assert result.error.code == IngestionErrorCode.UNCLASSIFIED
        assert "No space left" in result.error.detail
        assert stored_names(media_dir) == []

    @pytest.mark.asyncio
    async def test_missing_directory_is_unclassified(self, tmp_path: Path):
        content_type, body = multipart_body([("media", "a.jpg", "image/jpeg", JPEG)])
        gate = IngestionGate(MediaStore(tmp_path / "missing"), GateLimits())

        result = await gate.ingest(content_type, chunked(body))

        assert result.error.code == IngestionErrorCode.UNCLASSIFIED


class TestIngestionGateConcurrency:
    """Tests for running alongside other coroutines."""

    @pytest.mark.asyncio
    async def test_slow_disk_does_not_block_event_loop(self, media_store: MediaStore, monkeypatch):
        """Test a slow fsync leaves other coroutines running."""
        def slow_fsync(fd):
            time.sleep(0.5)

        monkeypatch.setattr(storage.os, "fsync", slow_fsync)
        content_type, body = multipart_body([("media", "a.jpg", "image/jpeg", JPEG)])
        gate = IngestionGate(media_store, GateLimits())
        done = asyncio.Event()
        gaps = []

        async def heartbeat():
            last = time.monotonic()
            while not done.is_set():
                await asyncio.sleep(0.02)
                now = time.monotonic()
                gaps.append(now - last)
                last = now

        ticker = asyncio.create_task(heartbeat())
        result = await gate.ingest(content_type, chunked(body))
        done.set()
        await ticker

        assert result.ok
        assert max(gaps) < 0.2
