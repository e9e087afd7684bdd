"""
Blog API — File Service Unit Tests
====================================

What:  Tests for FileService validation (extension, size, decoded format)
       and the store / resolve / delete lifecycle.
Why:   Image upload is a security boundary — must be thoroughly tested.
How:   Real images are generated in memory with Pillow; storage goes to a
       pytest tmp_path.

Test Strategy:
    ✅ Allowed / rejected extensions (case-insensitive)
    ✅ Size limits (declared and actual, empty file)
    ✅ Pillow format detection, including extension/content mismatch
    ✅ Path traversal refused by resolve_path and delete_file
"""

from pathlib import Path

import pytest

from blogapi.exceptions import NotFoundError, ValidationError
from blogapi.services.file_service import FileService, media_type_for


class TestFileValidation:
    """Tests for the synchronous validation steps."""

    @pytest.fixture(autouse=True)
    def _service(self, settings_factory):
        self.service = FileService(settings_factory(max_image_size=10_000))

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("name", ["photo.png", "photo.jpg", "photo.JPEG", "anim.gif"])
    def test_allowed_extensions(self, name):
        assert self.service.validate_extension(name) == Path(name).suffix.lower()

    @pytest.mark.parametrize("name", ["document.pdf", "malware.exe", "noextension", "", None])
    def test_rejected_extensions(self, name):
        with pytest.raises(ValidationError, match="not supported") as exc_info:
            self.service.validate_extension(name)
        assert exc_info.value.field == "image"

    def test_extension_list_follows_settings(self, settings_factory):
        service = FileService(settings_factory(allowed_image_types="png"))
        assert service.allowed_extensions == {".png"}
        with pytest.raises(ValidationError):
            service.validate_extension("photo.jpg")

    # ── Size Validation ───────────────────────────────────────────────────

    def test_size_within_limit(self):
        self.service.validate_size(None, 9_999)

    def test_size_at_exact_limit(self):
        self.service.validate_size(10_000, 10_000)

    def test_actual_size_over_limit(self):
        with pytest.raises(ValidationError, match="exceeds"):
            self.service.validate_size(None, 10_001)

    def test_declared_size_over_limit(self):
        """Content-Length alone is enough to reject the upload."""
        with pytest.raises(ValidationError, match="exceeds"):
            self.service.validate_size(50_000, 100)

    def test_empty_file_rejected(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(None, 0)

    # ── Format Detection ──────────────────────────────────────────────────

    def test_detects_png(self, png_bytes):
        assert self.service.detect_format(png_bytes) == "png"

    def test_detects_jpeg(self, jpeg_bytes):
        assert self.service.detect_format(jpeg_bytes) == "jpeg"

    def test_text_is_not_an_image(self):
        with pytest.raises(ValidationError, match="not a valid image"):
            self.service.detect_format(b"definitely not an image")

    def test_disallowed_format(self, settings_factory, jpeg_bytes):
        service = FileService(settings_factory(allowed_image_types="png,gif"))
        with pytest.raises(ValidationError, match="not supported"):
            service.detect_format(jpeg_bytes)


class TestMediaType:

    def test_known_extensions(self):
        assert media_type_for("2026/01/01/a.png") == "image/png"
        assert media_type_for("a.JPEG") == "image/jpeg"

    def test_unknown_extension(self):
        assert media_type_for("a.bin") == "application/octet-stream"


class TestFileStorage:
    """Tests for writing, resolving and deleting stored images."""

    @pytest.fixture(autouse=True)
    def _service(self, settings_factory):
        self.service = FileService(settings_factory())
        self.service.ensure_root()

    @pytest.mark.asyncio
    async def test_store_resolve_delete(self, png_bytes):
        relative = await self.service.validate_and_store("cat.PNG", png_bytes)

        assert relative.endswith(".png")
        assert "cat" not in relative  # user filename never reaches the disk
        stored = self.service.resolve_path(relative)
        assert stored.read_bytes() == png_bytes

        await self.service.delete_file(relative)
        assert not stored.exists()

    @pytest.mark.asyncio
    async def test_jpeg_is_stored_with_canonical_extension(self, jpeg_bytes):
        relative = await self.service.validate_and_store("photo.jpeg", jpeg_bytes)
        assert relative.endswith(".jpg")

    @pytest.mark.asyncio
    async def test_extension_must_match_content(self, png_bytes):
        with pytest.raises(ValidationError, match="does not match"):
            await self.service.validate_and_store("photo.jpg", png_bytes)
        assert not any(self.service.storage_root.rglob("*.*"))

    @pytest.mark.asyncio
    async def test_invalid_upload_writes_nothing(self):
        with pytest.raises(ValidationError):
            await self.service.validate_and_store("photo.png", b"not a png at all")
        assert not any(self.service.storage_root.rglob("*.*"))

    def test_resolve_refuses_traversal(self):
        with pytest.raises(ValidationError, match="Invalid file path"):
            self.service.resolve_path("../../etc/passwd")

    def test_resolve_missing_file(self):
        with pytest.raises(NotFoundError):
            self.service.resolve_path("2026/01/01/missing.png")

    @pytest.mark.asyncio
    async def test_delete_missing_file_is_quiet(self):
        await self.service.delete_file("2026/01/01/missing.png")
        await self.service.delete_file(None)

    @pytest.mark.asyncio
    async def test_delete_refuses_traversal(self, tmp_path):
        outside = tmp_path / "keep.txt"
        outside.write_text("keep me")

        await self.service.delete_file("../keep.txt")

        assert outside.exists()
