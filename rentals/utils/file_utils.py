"""
File handling utilities for property image uploads.
Provides image validation and a local object storage backend.
"""

import io
import uuid
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple
from PIL import Image
import aiofiles

from rentals.config import get_settings
from rentals.utils.exceptions import ValidationError, FileUploadError

logger = logging.getLogger(__name__)


class FileValidator:
    """Validation of uploaded image bytes."""

    SUPPORTED_FORMATS = {
        'image/jpeg': ['.jpg', '.jpeg'],
        'image/png': ['.png'],
        'image/webp': ['.webp']
    }

    PIL_FORMATS = {
        'image/jpeg': 'jpeg',
        'image/png': 'png',
        'image/webp': 'webp'
    }

    MIN_WIDTH = 50
    MIN_HEIGHT = 50
    MAX_WIDTH = 10000
    MAX_HEIGHT = 10000

    @classmethod
    def validate_file_extension(cls, filename: Optional[str]) -> str:
        """
        Validate file extension.

        Returns:
            Lowercase file extension

        Raises:
            ValidationError: If extension is missing or not supported
        """
        if not filename:
            raise ValidationError("Filename is required")

        extension = Path(filename).suffix.lower()
        if not extension:
            raise ValidationError("File must have an extension")

        supported_extensions = [ext for exts in cls.SUPPORTED_FORMATS.values() for ext in exts]
        if extension not in supported_extensions:
            raise ValidationError(
                f"File extension '{extension}' not supported. "
                f"Supported extensions: {', '.join(supported_extensions)}"
            )

        return extension

    @classmethod
    def validate_image(
        cls,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        max_size: int
    ) -> Tuple[int, int, str]:
        """
        Validate an uploaded image.

        Args:
            filename: Original filename
            content_type: Declared MIME type
            content: Raw file bytes
            max_size: Maximum allowed size in bytes

        Returns:
            Tuple of (width, height, mime_type)

        Raises:
            ValidationError: If any validation fails
        """
        extension = cls.validate_file_extension(filename)

        mime_type = content_type or ""
        if mime_type not in cls.SUPPORTED_FORMATS:
            raise ValidationError(
                f"MIME type '{mime_type}' not supported. "
                f"Supported types: {', '.join(cls.SUPPORTED_FORMATS)}"
            )

        if extension not in cls.SUPPORTED_FORMATS[mime_type]:
            raise ValidationError(f"File extension '{extension}' doesn't match MIME type '{mime_type}'")

        if not content:
            raise ValidationError("File is empty")

        if len(content) > max_size:
            max_mb = max_size / (1024 * 1024)
            raise ValidationError(f"File size exceeds maximum allowed size of {max_mb:.1f}MB")

        try:
            with Image.open(io.BytesIO(content)) as img:
                width, height = img.size
                pil_format = img.format.lower() if img.format else ""
        except Exception as e:
            raise ValidationError(f"Invalid image file: {str(e)}")

        if pil_format != cls.PIL_FORMATS[mime_type]:
            raise ValidationError(f"Image format '{pil_format}' doesn't match MIME type '{mime_type}'")

        if width < cls.MIN_WIDTH or height < cls.MIN_HEIGHT:
            raise ValidationError(
                f"Image dimensions {width}x{height} are below minimum {cls.MIN_WIDTH}x{cls.MIN_HEIGHT}"
            )
        if width > cls.MAX_WIDTH or height > cls.MAX_HEIGHT:
            raise ValidationError(
                f"Image dimensions {width}x{height} exceed maximum {cls.MAX_WIDTH}x{cls.MAX_HEIGHT}"
            )

        return width, height, mime_type


class LocalObjectStorage:
    """
    Object storage backed by a directory on disk.
    Keys are relative paths; URLs are the key under the public media prefix.
    """

    def __init__(self, base_dir: Optional[Path] = None, public_url: Optional[str] = None):
        settings = get_settings()
        self.base_dir = Path(base_dir or settings.upload_dir)
        self.public_url = (public_url if public_url is not None else settings.public_media_url).rstrip("/")
        self.base_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def property_image_key(property_id: uuid.UUID, filename: str) -> str:
        """Unique key for a property image, keeping the original extension."""
        extension = Path(filename).suffix.lower()
        return f"properties/{property_id}/{uuid.uuid4()}{extension}"

    def path_for(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise ValidationError(f"Invalid storage key: {key}")
        return path

    def url_for(self, key: str) -> str:
        return f"{self.public_url}/{key}"

    async def upload(self, key: str, content: bytes) -> str:
        """
        Store bytes under a key.

        Returns:
            Public URL of the stored object

        Raises:
            FileUploadError: If the write fails
        """
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, 'wb') as f:
                await f.write(content)
        except OSError as e:
            if path.exists():
                path.unlink()
            raise FileUploadError(f"Failed to store {key}: {e}")

        logger.debug(f"Stored object {key} ({len(content)} bytes)")
        return self.url_for(key)

    def delete(self, keys: Iterable[str]) -> List[str]:
        """
        Delete objects by key. Missing objects are skipped.

        Returns:
            Keys that were actually removed
        """
        removed = []
        for key in keys:
            path = self.path_for(key)
            try:
                if path.exists():
                    path.unlink()
                    removed.append(key)
            except OSError as e:
                logger.warning(f"Failed to delete stored object {key}: {e}")
                continue

            parent = path.parent
            if parent != self.base_dir and parent.exists() and not any(parent.iterdir()):
                parent.rmdir()

        return removed
