"""Build the inspection report shown for a finished analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..location.base import LocationData
from ..models.base import Severity
from .workflow import WorkflowState

NO_POTHOLES_MESSAGE = "No potholes detected."
MAP_URL_TEMPLATE = "https://www.google.com/maps?q={latitude},{longitude}"


@dataclass(slots=True)
class ReportRow:
    """One line of the detections table."""

    index: int
    severity: Severity
    confidence_percent: int
    region: list[float]


@dataclass(slots=True)
class LocationCard:
    address: str | None = None
    coordinates: str | None = None
    map_url: str | None = None


@dataclass(slots=True)
class InspectionReport:
    """Aggregated view of a detection result and its geotag."""

    counts: dict[Severity, int]
    rows: list[ReportRow] = field(default_factory=list)
    summary: str = ""
    location: LocationCard | None = None
    empty_message: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "counts": {severity.value: count for severity, count in self.counts.items()},
            "rows": [
                {
                    "id": f"#{row.index}",
                    "severity": row.severity.value,
                    "confidence": f"{row.confidence_percent}%",
                    "region": row.region,
                }
                for row in self.rows
            ],
            "summary": self.summary,
            "location": (
                {
                    "address": self.location.address,
                    "coordinates": self.location.coordinates,
                    "map_url": self.location.map_url,
                }
                if self.location is not None
                else None
            ),
            "empty_message": self.empty_message,
        }


def build_location_card(location: LocationData) -> LocationCard:
    card = LocationCard(address=location.address)
    if location.has_coordinates:
        card.coordinates = f"{location.latitude:.6f}, {location.longitude:.6f}"
        card.map_url = MAP_URL_TEMPLATE.format(
            latitude=location.latitude, longitude=location.longitude
        )
    return card


def build_report(state: WorkflowState) -> InspectionReport | None:
    """Return the report for ``state``, or None while no detection result exists."""
    result = state.detection_result
    if result is None:
        return None

    rows = [
        ReportRow(
            index=position,
            severity=pothole.severity,
            confidence_percent=round(pothole.confidence * 100),
            region=pothole.region.as_list(),
        )
        for position, pothole in enumerate(result.potholes, start=1)
    ]
    return InspectionReport(
        counts=result.counts_by_severity(),
        rows=rows,
        summary=result.summary,
        location=build_location_card(state.location) if state.location is not None else None,
        empty_message=None if rows else NO_POTHOLES_MESSAGE,
    )
