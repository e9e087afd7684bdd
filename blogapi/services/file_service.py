"""
Blog API — Image Storage Service
==================================

What:  Validates, stores and removes blog images on local disk.
Why:   Centralizes all file system operations behind one interface; the
       directory adapter stands in for a blob store.
How:   Checks extension, size and real image format (Pillow), writes to a
       date-organized tree under a UUID filename with aiofiles.
Who:   Called by BlogService (attach image, delete blog) and the files route.

Security Model:
    1. Extension check:   Fast rejection of obviously wrong uploads
    2. Size check:        Bounded before the image is decoded
    3. Format check:      Pillow parses the header bytes; the detected format
                          must be allowed and must agree with the extension
    4. UUID filename:     No user input ever reaches the file system path
    5. Path resolution:   `resolve_path()` refuses anything outside the root
"""

import io
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Set, Tuple

import aiofiles
import aiofiles.os
from PIL import Image, UnidentifiedImageError

from blogapi.config import Settings
from blogapi.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# ── Known Image Formats ───────────────────────────────────────────────────
# Pillow format name → (canonical extension, accepted extensions, media type)
IMAGE_FORMATS: Dict[str, Tuple[str, Set[str], str]] = {
    "png": (".png", {".png"}, "image/png"),
    "jpeg": (".jpg", {".jpg", ".jpeg"}, "image/jpeg"),
    "gif": (".gif", {".gif"}, "image/gif"),
}


def media_type_for(path: str) -> str:
    """Best-effort Content-Type for a stored file, from its extension."""
    ext = Path(path).suffix.lower()
    for _, (_, extensions, media_type) in IMAGE_FORMATS.items():
        if ext in extensions:
            return media_type
    return "application/octet-stream"


class FileService:
    """
    Manages the image lifecycle.

    Directory Structure:
        storage/
        └── 2026/
            └── 10/
                └── 17/
                    ├── 5b1c...e2.png
                    └── 9d04...7a.jpg

    The relative path (e.g. "2026/10/17/5b1c...e2.png") is what Blog.image
    stores and what /api/files/{path} serves.
    """

    def __init__(self, settings: Settings):
        self.storage_root = Path(settings.storage_root).resolve()
        self.max_size = settings.max_image_size
        self.allowed_formats = {
            fmt for fmt in settings.allowed_image_types_set if fmt in IMAGE_FORMATS
        }
        self.allowed_extensions = {
            ext for fmt in self.allowed_formats for ext in IMAGE_FORMATS[fmt][1]
        }

    def ensure_root(self) -> None:
        self.storage_root.mkdir(parents=True, exist_ok=True)

    # ── Validation ────────────────────────────────────────────────────────
    def validate_extension(self, filename: Optional[str]) -> str:
        """Return the lower-cased extension or raise ValidationError."""
        ext = Path(filename or "").suffix.lower()
        if ext not in self.allowed_extensions:
            raise ValidationError(
                message=(
                    f"File type '{ext or '(none)'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(self.allowed_extensions))}"
                ),
                field="image",
                context={"extension": ext},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Reject oversized uploads.

        Content-Length is checked too, but the actual byte count is
        authoritative since clients can send any header they like.
        """
        max_mb = self.max_size / 1_000_000
        if content_length and content_length > self.max_size:
            raise ValidationError(
                message=f"Image exceeds the maximum size of {max_mb:g}MB",
                field="image",
                context={"reported_size": content_length},
            )
        if actual_size == 0:
            raise ValidationError(message="Image file is empty", field="image")
        if actual_size > self.max_size:
            raise ValidationError(
                message=f"Image ({actual_size / 1_000_000:.1f}MB) exceeds the maximum size of {max_mb:g}MB",
                field="image",
                context={"actual_size": actual_size},
            )

    def detect_format(self, content: bytes) -> str:
        """
        Identify the image format from its bytes.

        Returns the lower-case Pillow format name (e.g. "png").
        Raises ValidationError if the bytes are not an allowed image.
        """
        try:
            with Image.open(io.BytesIO(content)) as img:
                fmt = (img.format or "").lower()
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValidationError(
                message="The uploaded file is not a valid image",
                field="image",
                context={"error": type(e).__name__},
            )

        if fmt not in self.allowed_formats:
            raise ValidationError(
                message=f"Image format '{fmt}' is not supported",
                field="image",
                context={"detected_format": fmt},
            )
        return fmt

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """YYYY/MM/DD/<uuid><ext> under the storage root."""
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    # ── Storage ───────────────────────────────────────────────────────────
    async def store_file(self, content: bytes, extension: str) -> str:
        """Write bytes to a fresh path; return the relative path."""
        absolute_path, relative_path = self._generate_storage_path(extension)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, e)
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )
        logger.info("Image stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    async def validate_and_store(
        self,
        filename: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Full pipeline, cheapest check first:
            extension → size → decoded format → write.
        Returns the relative path to persist on the blog.
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        fmt = self.detect_format(content)

        canonical_ext, accepted, _ = IMAGE_FORMATS[fmt]
        if ext not in accepted:
            raise ValidationError(
                message=f"File extension '{ext}' does not match its {fmt.upper()} content",
                field="image",
                context={"extension": ext, "detected_format": fmt},
            )
        return await self.store_file(content, canonical_ext)

    def resolve_path(self, relative_path: str) -> Path:
        """
        Map a stored relative path to an absolute one inside the root.

        Raises:
            ValidationError if the path escapes the storage root
            NotFoundError if no such file exists
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path

    async def delete_file(self, relative_path: Optional[str]) -> None:
        """
        Remove a stored image. Best effort: a missing file is not an error
        and failures are logged, never raised (runs after the response).
        """
        if not relative_path:
            return
        path = (self.storage_root / relative_path).resolve()
        if not path.is_relative_to(self.storage_root):
            logger.warning("Refusing to delete path outside storage root: %s", relative_path)
            return
        try:
            await aiofiles.os.remove(path)
            logger.info("Removed image: %s", relative_path)
        except FileNotFoundError:
            logger.debug("Image already gone: %s", relative_path)
        except OSError as e:
            logger.warning("Failed to remove image %s: %s", relative_path, e)
