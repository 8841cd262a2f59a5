"""
Postboard Backend - Image Storage
=================================

What:  Validates, stores, resolves and deletes post images on local disk.
How:   Checks extension, size and decoded content, then writes the bytes under a
       random file name in `posts/`. The returned relative path is what the
       `posts.image` column stores.
Who:   PostService (store/delete/cleanup) and the file route (resolve).

Validation order (cheapest first):
    1. Extension:  .png .jpg .jpeg .gif .webp
    2. Size:       1 byte .. settings.max_image_size
    3. Content:    Pillow must open the bytes as an image whose format matches
                   the extension (a renamed PDF is rejected)

Layout:
    storage/
    └── posts/
        ├── 3f0c1a9e-....png
        └── b41d77c2-....jpg

Blob writes and deletes are not part of the database transaction. A caller that
fails after store() should call cleanup() on the returned path.
"""

import io
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from PIL import Image, UnidentifiedImageError

from postboard.config import settings
from postboard.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

IMAGE_DIRECTORY = "posts"

# ── Allowed File Types ────────────────────────────────────────────────────
# Extension → Pillow format names that may carry it.
ALLOWED_FORMATS = {
    ".png": {"PNG"},
    ".jpg": {"JPEG", "MPO"},
    ".jpeg": {"JPEG", "MPO"},
    ".gif": {"GIF"},
    ".webp": {"WEBP"},
}


@dataclass(frozen=True)
class ImageUpload:
    """An uploaded image already read into memory."""

    filename: str
    content: bytes
    content_type: Optional[str] = None


class ImageStorage:
    """
    Local-disk image store rooted at `storage_root`.

    Paths handed out and accepted by this class are always relative to the
    root and use forward slashes, e.g. "posts/3f0c1a9e-....png".
    """

    def __init__(self, storage_root: Optional[str] = None, max_size: Optional[int] = None):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.max_size = max_size or settings.max_image_size

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_FORMATS:
            raise ValidationError(
                message=(
                    "The image must be a file of type: "
                    f"{', '.join(e.lstrip('.') for e in sorted(ALLOWED_FORMATS))}."
                ),
                field="image",
                context={"extension": ext},
            )
        return ext

    def validate_size(self, size: int) -> None:
        if size == 0:
            raise ValidationError(message="The image must not be empty.", field="image")
        if size > self.max_size:
            max_kb = self.max_size // 1024
            raise ValidationError(
                message=f"The image may not be greater than {max_kb} kilobytes.",
                field="image",
                context={"size": size, "max_size": self.max_size},
            )

    def validate_content(self, content: bytes, extension: str) -> str:
        """
        Decode the header with Pillow and check the format against the extension.

        Returns the detected Pillow format name.
        """
        try:
            with Image.open(io.BytesIO(content)) as image:
                detected = image.format
                image.verify()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
            raise ValidationError(
                message="The image must be an image.",
                field="image",
                context={"error": type(e).__name__},
            ) from e

        if detected not in ALLOWED_FORMATS[extension]:
            raise ValidationError(
                message="The image content does not match its file extension.",
                field="image",
                context={"extension": extension, "detected": detected},
            )
        return detected

    # ── Storage ───────────────────────────────────────────────────────────

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        relative_path = f"{IMAGE_DIRECTORY}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store(self, upload: ImageUpload) -> str:
        """
        Validate and write an upload; returns its path relative to the root.

        Raises:
            ValidationError:   rejected extension, size or content
            FileStorageError:  the write itself failed
        """
        ext = self.validate_extension(upload.filename)
        self.validate_size(len(upload.content))
        self.validate_content(upload.content, ext)

        absolute_path, relative_path = self._generate_storage_path(ext)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(upload.content)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", absolute_path, e)
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": relative_path, "os_error": str(e)},
            ) from e

        logger.info("Image stored: %s (%d bytes)", relative_path, len(upload.content))
        return relative_path

    async def delete(self, path: str) -> None:
        """
        Remove a stored image. A file that is already gone is not an error.

        Raises:
            FileStorageError: the file exists but could not be removed
        """
        absolute_path = self.resolve(path)
        try:
            os.remove(absolute_path)
        except FileNotFoundError:
            logger.debug("Delete: image already gone: %s", path)
            return
        except OSError as e:
            logger.error("Failed to delete image %s: %s", path, e)
            raise FileStorageError(
                message="Failed to delete stored image.",
                context={"path": path, "os_error": str(e)},
            ) from e
        logger.info("Image deleted: %s", path)

    async def cleanup(self, path: str) -> None:
        """Best-effort delete used after a failed operation; never raises."""
        try:
            await self.delete(path)
        except (FileStorageError, ValueError) as e:
            logger.warning("Failed to clean up image %s: %s", path, e)

    def resolve(self, path: str) -> Path:
        """
        Absolute location of a relative storage path.

        Raises:
            ValueError: the path is absolute or escapes the storage root
        """
        candidate = (self.storage_root / path).resolve()
        if Path(path).is_absolute() or not candidate.is_relative_to(self.storage_root):
            raise ValueError(f"Path '{path}' is outside the storage root")
        return candidate


# ── Singleton Instance ────────────────────────────────────────────────────
image_storage = ImageStorage()
