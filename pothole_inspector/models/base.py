"""Shared data model and interfaces for pothole detectors."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Detectors trained on the 0-1000 grid (Gemini, Qwen-VL) report boxes on this scale.
_THOUSANDTHS_SCALE = 1000.0


class Severity(str, Enum):
    """Defect severity classes reported for each pothole."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


def is_image_media_type(media_type: str | None) -> bool:
    """Return True if ``media_type`` declares an ``image/*`` payload."""
    if not media_type:
        return False
    essence = media_type.split(";", 1)[0].strip().lower()
    major, _, minor = essence.partition("/")
    return major == "image" and bool(minor)


@dataclass(frozen=True, slots=True)
class ImagePayload:
    """An accepted road photograph: encoded bytes plus declared media type."""

    data: bytes
    media_type: str

    def __repr__(self) -> str:
        return f"ImagePayload(media_type={self.media_type!r}, size={len(self.data)})"


class BoundingBox(BaseModel):
    """Region of a detection in image-relative units (0.0 - 1.0)."""

    model_config = ConfigDict(frozen=True)

    x_min: float = Field(ge=0.0, le=1.0)
    y_min: float = Field(ge=0.0, le=1.0)
    x_max: float = Field(ge=0.0, le=1.0)
    y_max: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="before")
    @classmethod
    def _coerce_wire_shape(cls, value: Any) -> Any:
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            if len(value) != 4:
                raise ValueError("region lists must contain exactly four numbers")
            value = dict(zip(("x_min", "y_min", "x_max", "y_max"), value))
        if not isinstance(value, Mapping):
            return value
        coords = {key: value.get(key) for key in ("x_min", "y_min", "x_max", "y_max")}
        numbers = [item for item in coords.values() if isinstance(item, (int, float))]
        if len(numbers) == 4 and any(item > 1.0 for item in numbers):
            if all(0.0 <= item <= _THOUSANDTHS_SCALE for item in numbers):
                return {key: item / _THOUSANDTHS_SCALE for key, item in coords.items()}
        return value

    @model_validator(mode="after")
    def _check_ordering(self) -> BoundingBox:
        if self.x_min > self.x_max or self.y_min > self.y_max:
            raise ValueError("region minimum must not exceed maximum")
        return self

    def as_list(self) -> list[float]:
        return [self.x_min, self.y_min, self.x_max, self.y_max]


class Pothole(BaseModel):
    """One detected defect."""

    model_config = ConfigDict(frozen=True)

    region: BoundingBox
    severity: Severity
    confidence: float = Field(ge=0.0, le=1.0)

    @field_validator("severity", mode="before")
    @classmethod
    def _upper_severity(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class DetectionResult(BaseModel):
    """Potholes found in one image, in detection order, with a summary."""

    model_config = ConfigDict(frozen=True)

    potholes: tuple[Pothole, ...] = ()
    summary: str

    def counts_by_severity(self) -> dict[Severity, int]:
        counts = {severity: 0 for severity in (Severity.HIGH, Severity.MEDIUM, Severity.LOW)}
        for pothole in self.potholes:
            counts[pothole.severity] += 1
        return counts


@dataclass(slots=True)
class DetectorInfo:
    """Metadata describing an available detector implementation."""

    identifier: str
    display_name: str
    description: str
    tags: Sequence[str] = ()


class DetectorError(RuntimeError):
    """Raised when a detector cannot produce output for a given image."""


class PotholeDetector(Protocol):
    """Interface that all pothole detectors must satisfy."""

    def info(self) -> DetectorInfo:
        """Return metadata describing the detector."""

    def load(self) -> None:
        """Perform any expensive initialisation."""

    def detect(self, image: ImagePayload) -> dict[str, Any]:
        """Return the raw ``{"potholes": [...], "summary": str}`` payload."""
