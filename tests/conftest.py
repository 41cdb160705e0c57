from __future__ import annotations

import io

import pytest
from PIL import Image, ImageDraw


def encode_image(image: Image.Image, image_format: str = "JPEG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return encode_image(Image.new("RGB", (8, 8), color=(120, 120, 120)))


@pytest.fixture
def road_with_hole_bytes() -> bytes:
    """A light grey road with one near-black patch in the top-left quarter."""
    image = Image.new("RGB", (80, 80), color=(170, 170, 170))
    ImageDraw.Draw(image).rectangle((0, 0, 19, 19), fill=(10, 10, 10))
    return encode_image(image, "PNG")


@pytest.fixture
def make_image_bytes():
    return encode_image
