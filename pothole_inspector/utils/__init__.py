"""Utility helpers for the Pothole Inspector library."""

from .media import guess_media_type, read_image_file, sniff_media_type

__all__ = ["guess_media_type", "read_image_file", "sniff_media_type"]
