"""
Photo quality checks for report images.

Warnings are advisory: they are stored with the image and push the report
into manual review, but never reject a submission.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from io import BytesIO

from PIL import Image, ImageOps, ImageStat, UnidentifiedImageError

from models.exceptions import ImageValidationException

MIN_BRIGHTNESS = 50
MIN_WIDTH = 640
MIN_HEIGHT = 480

# Downscale before computing statistics; the mean is stable at this size
_STATS_SIZE = (512, 512)

TOO_DARK_WARNING = "Image may be too dark. Try capturing with better lighting."
LOW_RESOLUTION_WARNING = (
    "Image resolution is low. Try getting closer to the streetlight."
)
PORTRAIT_WARNING = (
    "Portrait orientation detected. Landscape is better for streetlight photos."
)


@dataclass
class ImageQuality:
    brightness: int
    width: int
    height: int
    resolution: str
    orientation: str
    warnings: list[str] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0


class ImageQualityAssessor(ABC):
    """Abstract base class for image quality assessors."""

    @abstractmethod
    def assess(self, content: bytes) -> ImageQuality:
        """Assess an encoded image."""
        pass


class PillowImageQualityAssessor(ImageQualityAssessor):
    """Brightness, resolution and orientation checks using Pillow."""

    def assess(self, content: bytes) -> ImageQuality:
        """
        Assess an encoded image.

        Args:
            content: Raw image bytes (JPEG, PNG, WebP, GIF)

        Returns:
            ImageQuality with measurements and advisory warnings

        Raises:
            ImageValidationException: If the bytes are not a readable image
                or exceed the decoder pixel limit
        """
        try:
            with Image.open(BytesIO(content)) as img:
                # Measure the image as it is displayed, after EXIF rotation
                img = ImageOps.exif_transpose(img)
                width, height = img.size
                sample = img.convert("RGB")
                sample.thumbnail(_STATS_SIZE)
                channel_means = ImageStat.Stat(sample).mean
        except (UnidentifiedImageError, OSError) as e:
            raise ImageValidationException(f"Unreadable image: {e}")
        except Image.DecompressionBombError as e:
            raise ImageValidationException(f"Image too large: {e}")

        brightness = round(sum(channel_means[:3]) / 3)
        if height > width:
            orientation = "portrait"
        elif width > height:
            orientation = "landscape"
        else:
            orientation = "square"

        warnings = []
        if brightness < MIN_BRIGHTNESS:
            warnings.append(TOO_DARK_WARNING)
        if width < MIN_WIDTH or height < MIN_HEIGHT:
            warnings.append(LOW_RESOLUTION_WARNING)
        if orientation == "portrait":
            warnings.append(PORTRAIT_WARNING)

        return ImageQuality(
            brightness=brightness,
            width=width,
            height=height,
            resolution=f"{width}x{height}",
            orientation=orientation,
            warnings=warnings,
        )


def get_image_quality_assessor() -> ImageQualityAssessor:
    """Get the configured image quality assessor."""
    return PillowImageQualityAssessor()
