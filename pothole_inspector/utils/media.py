"""Helpers for reading photographs and determining their media type."""

from __future__ import annotations

import io
import mimetypes
from pathlib import Path

from PIL import Image, UnidentifiedImageError

FALLBACK_MEDIA_TYPE = "application/octet-stream"


def sniff_media_type(data: bytes) -> str | None:
    """Return the media type Pillow recognises in ``data``, if any."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
    except (UnidentifiedImageError, OSError):
        return None
    if not image_format:
        return None
    return Image.MIME.get(image_format.upper())


def guess_media_type(path: Path, data: bytes | None = None) -> str:
    """Prefer the content signature; fall back to the file extension."""
    if data:
        sniffed = sniff_media_type(data)
        if sniffed:
            return sniffed
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or FALLBACK_MEDIA_TYPE


def read_image_file(path: Path) -> tuple[bytes, str]:
    """Read ``path`` and return its bytes with the detected media type."""
    path = path.expanduser()
    if not path.is_file():
        raise FileNotFoundError(path)
    data = path.read_bytes()
    return data, guess_media_type(path, data)
