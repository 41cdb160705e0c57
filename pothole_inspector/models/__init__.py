"""Detector registry, shared data model and detector implementations."""

from .base import (
    BoundingBox,
    DetectionResult,
    DetectorError,
    DetectorInfo,
    ImagePayload,
    Pothole,
    PotholeDetector,
    Severity,
)
from .registry import DetectorRegistry
from .vision_remote import OllamaPotholeDetector

__all__ = [
    "BoundingBox",
    "DetectionResult",
    "DetectorError",
    "DetectorInfo",
    "DetectorRegistry",
    "ImagePayload",
    "OllamaPotholeDetector",
    "Pothole",
    "PotholeDetector",
    "Severity",
]
