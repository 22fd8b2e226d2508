"""Tests for the Pillow-based photo quality checks."""

import pytest
from PIL import Image

from models.exceptions import ImageValidationException
from services.image_quality import (
    LOW_RESOLUTION_WARNING,
    PORTRAIT_WARNING,
    TOO_DARK_WARNING,
    PillowImageQualityAssessor,
)


@pytest.fixture
def assessor() -> PillowImageQualityAssessor:
    return PillowImageQualityAssessor()


def test_good_photo_has_no_warnings(assessor, image_factory):
    quality = assessor.assess(image_factory(1280, 720, (180, 180, 180)))

    assert quality.warnings == []
    assert not quality.has_warnings
    assert quality.resolution == "1280x720"
    assert quality.orientation == "landscape"
    assert 170 <= quality.brightness <= 190


def test_dark_photo(assessor, image_factory):
    quality = assessor.assess(image_factory(800, 600, (10, 10, 10)))
    assert quality.warnings == [TOO_DARK_WARNING]
    assert quality.brightness < 50


def test_low_resolution(assessor, image_factory):
    quality = assessor.assess(image_factory(320, 240))
    assert quality.warnings == [LOW_RESOLUTION_WARNING]


def test_portrait(assessor, image_factory):
    quality = assessor.assess(image_factory(720, 960))
    assert quality.orientation == "portrait"
    assert quality.warnings == [PORTRAIT_WARNING]


def test_square_is_not_portrait(assessor, image_factory):
    quality = assessor.assess(image_factory(800, 800))
    assert quality.orientation == "square"
    assert quality.warnings == []


def test_warnings_accumulate(assessor, image_factory):
    quality = assessor.assess(image_factory(300, 400, (5, 5, 5), fmt="PNG"))
    assert quality.warnings == [
        TOO_DARK_WARNING,
        LOW_RESOLUTION_WARNING,
        PORTRAIT_WARNING,
    ]


def test_unreadable_bytes(assessor):
    with pytest.raises(ImageValidationException):
        assessor.assess(b"definitely not an image")


def test_oversized_image_is_a_validation_error(assessor, image_factory, monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10_000)

    with pytest.raises(ImageValidationException, match="too large"):
        assessor.assess(image_factory(800, 600))
