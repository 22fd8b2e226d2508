"""Media storage for report photos.

Providers:
- local: Writes re-encoded images and 300px thumbnails under UPLOAD_DIR,
  served by the API's StaticFiles mount at MEDIA_BASE_URL.

Re-encoding through Pillow drops EXIF metadata, GPS tags included.
"""

import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from loguru import logger
from PIL import Image, ImageOps, UnidentifiedImageError

from models.config import settings
from models.exceptions import ImageValidationException, UpstreamServiceException

MAX_DIMENSIONS = (1920, 1080)
THUMBNAIL_SIZE = (300, 300)
JPEG_QUALITY = 85
THUMBNAIL_QUALITY = 70

_PUBLIC_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


@dataclass
class StoredImage:
    public_id: str
    url: str
    thumbnail_url: str | None
    width: int
    height: int
    format: str


class MediaStorageProvider(ABC):
    """Abstract base class for media storage providers."""

    @abstractmethod
    def upload(self, content: bytes, filename: str) -> StoredImage:
        """Store an image and return where it can be fetched."""
        pass

    @abstractmethod
    def delete(self, public_id: str) -> bool:
        """Remove a stored image. Returns False if nothing was removed."""
        pass


class LocalDiskStorageProvider(MediaStorageProvider):
    """Local filesystem storage provider."""

    def __init__(self, upload_dir: str | Path, base_url: str) -> None:
        self.upload_dir = Path(upload_dir)
        self.base_url = base_url.rstrip("/")

    def _paths(self, public_id: str) -> tuple[Path, Path]:
        return (
            self.upload_dir / f"{public_id}.jpg",
            self.upload_dir / f"{public_id}_thumb.jpg",
        )

    def upload(self, content: bytes, filename: str) -> StoredImage:
        """
        Re-encode an image as JPEG and store it with a thumbnail.

        Args:
            content: Raw image bytes
            filename: Client-supplied name, used only for logging

        Returns:
            StoredImage describing the stored file

        Raises:
            ImageValidationException: If the bytes are not a readable image
                or exceed the decoder pixel limit
            UpstreamServiceException: If the file cannot be written
        """
        try:
            with Image.open(BytesIO(content)) as source:
                img = ImageOps.exif_transpose(source).convert("RGB")
        except (UnidentifiedImageError, OSError) as e:
            raise ImageValidationException(f"Unreadable image '{filename}': {e}")
        except Image.DecompressionBombError as e:
            raise ImageValidationException(f"Image '{filename}' is too large: {e}")

        img.thumbnail(MAX_DIMENSIONS, Image.Resampling.LANCZOS)
        thumb = img.copy()
        thumb.thumbnail(THUMBNAIL_SIZE, Image.Resampling.LANCZOS)

        public_id = uuid.uuid4().hex
        image_path, thumb_path = self._paths(public_id)
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            img.save(image_path, format="JPEG", quality=JPEG_QUALITY)
            thumb.save(thumb_path, format="JPEG", quality=THUMBNAIL_QUALITY)
        except OSError as e:
            image_path.unlink(missing_ok=True)
            raise UpstreamServiceException("Media storage", str(e))

        logger.debug(f"Stored image {filename} as {public_id}")
        return StoredImage(
            public_id=public_id,
            url=f"{self.base_url}/{image_path.name}",
            thumbnail_url=f"{self.base_url}/{thumb_path.name}",
            width=img.width,
            height=img.height,
            format="jpeg",
        )

    def delete(self, public_id: str) -> bool:
        if not _PUBLIC_ID_PATTERN.match(public_id):
            logger.warning(f"Refusing to delete media with malformed id: {public_id!r}")
            return False

        image_path, thumb_path = self._paths(public_id)
        try:
            existed = image_path.exists()
            image_path.unlink(missing_ok=True)
            thumb_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete media {public_id}: {e}")
            return False
        return existed


def get_media_storage() -> MediaStorageProvider:
    """Get the configured media storage provider."""
    return LocalDiskStorageProvider(settings.UPLOAD_DIR, settings.MEDIA_BASE_URL)
