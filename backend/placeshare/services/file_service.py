"""
PlaceShare Backend: File Storage Service
==========================================

What:  Validates, stores, resolves and removes uploaded images (place
       photos and user avatars).
How:   Extension, size and MIME checks, then an async write to
       <storage_root>/images/<uuid><ext>. The relative path
       ("images/<uuid><ext>") is what gets stored in the database.
Who:   Called by the places and users routes before the services run, and by
       PlaceService.delete for best-effort removal of a deleted place's photo.

Upload checks (cheapest first):
    1. Extension:  .png, .jpg, .jpeg
    2. Size:       non-empty and at most settings.max_file_size
    3. MIME type:  python-magic reads the header bytes
    4. Filename:   replaced by a UUID, no user input reaches the file system
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from placeshare.config import settings
from placeshare.exceptions import ValidationError, FileStorageError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}

# Subdirectory of the storage root holding every uploaded image
IMAGE_DIR = "images"


class FileService:
    """
    Manages the upload → store → serve → delete lifecycle of images.

    Directory Structure:
        uploads/
        └── images/
            ├── 0b7c4d1e-....png
            └── 9f2a6e33-....jpg
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """
        Returns the normalized extension (lowercase with dot).

        Raises:  ValidationError if the extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Validate file size against the configured maximum.

        Args:
            content_length: Size reported by the client (may be None or wrong)
            actual_size: Actual byte count of the uploaded file
        """
        max_kb = settings.max_file_size / 1024

        if actual_size == 0:
            raise ValidationError(
                message="The uploaded image is empty.",
                field="image",
                context={"actual_size": 0},
            )

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"Image is too large. Maximum size is {max_kb:.0f}KB.",
                field="image",
                context={"max_size_kb": max_kb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"Image is too large ({actual_size / 1024:.0f}KB). Maximum size is {max_kb:.0f}KB.",
                field="image",
                context={"max_size_kb": max_kb, "actual_size": actual_size},
            )

    def validate_mime_type(self, file_content: bytes, filename: str) -> str:
        """
        Detect the real content type from the header bytes.

        Returns:
            Detected MIME type string (e.g. "image/png")

        Raises:
            ValidationError if the type is not an allowed image type
            FileStorageError if detection itself fails
        """
        try:
            import magic
            mime_type = magic.from_buffer(file_content, mime=True)
        except Exception as e:
            logger.error("MIME type detection failed for %s: %s", filename, str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    f"The file must be a valid image (PNG or JPEG)."
                ),
                field="image",
                context={"detected_mime": mime_type, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )

        return mime_type

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, relative_path) for a new images/<uuid><ext> file."""
        relative_path = f"{IMAGE_DIR}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    def resolve(self, relative_path: str) -> Path:
        """
        Map a stored relative path to its absolute location.

        Raises:
            ValidationError if the path points outside the storage root.
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        return full_path

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        """
        Write validated file content to disk.

        Returns: Tuple of (absolute_path, relative_path).
        Raises:  FileStorageError if directory creation or file write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("File stored: %s (%d bytes)", relative_path, len(content))
            return str(absolute_path), relative_path

        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": relative_path, "os_error": str(e)},
            )

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a file from storage. Best effort: never raises.

        Accepts either an absolute path or a path relative to the storage
        root. Missing files are ignored; any other failure is logged.
        """
        try:
            path = Path(file_path)
            if not path.is_absolute():
                path = self.resolve(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Removed file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except Exception as e:
            logger.warning("Failed to remove file %s: %s", file_path, str(e))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str]:
        """
        Complete upload pipeline: extension, size, MIME type, then write.

        Returns: Tuple of (absolute_path, relative_path_for_db).
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content, filename)
        return await self.store_file(content, ext)


file_service = FileService()
