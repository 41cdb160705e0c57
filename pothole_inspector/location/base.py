"""Location data model and the interfaces of the two location sources."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol


@dataclass(frozen=True, slots=True)
class LocationData:
    """A resolved inspection location.

    Text lookups may carry only an address or only coordinates; device fixes
    always carry coordinates and the capture ``timestamp``.
    """

    latitude: float | None = None
    longitude: float | None = None
    timestamp: datetime | None = None
    address: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True, slots=True)
class DevicePosition:
    """A single fix reported by a device location source."""

    latitude: float
    longitude: float
    timestamp_ms: int


class DeviceErrorKind(str, Enum):
    """Failure categories a device location source can report."""

    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"


class ResolutionError(RuntimeError):
    """Raised when a location cannot be resolved."""


class LocationPermissionError(ResolutionError):
    """The device refused or failed to provide a position fix."""

    def __init__(self, kind: DeviceErrorKind = DeviceErrorKind.PERMISSION_DENIED) -> None:
        super().__init__(f"Device location failed: {kind.value}")
        self.kind = kind


class LocationUnsupportedError(ResolutionError):
    """No device location capability is available."""

    def __init__(self) -> None:
        super().__init__("Device location is not supported")
        self.kind = DeviceErrorKind.UNSUPPORTED


PositionCallback = Callable[[DevicePosition], None]
ErrorCallback = Callable[[DeviceErrorKind], None]


class DeviceLocationSource(Protocol):
    """Callback-based source of device coordinates.

    Implementations invoke exactly one of the callbacks, possibly from another
    thread and possibly before ``request_position`` returns.
    """

    def request_position(self, on_success: PositionCallback, on_error: ErrorCallback) -> None:
        """Request one position fix."""


class TextLocationService(Protocol):
    """Blocking free-text place lookup."""

    def lookup(self, query: str) -> LocationData:
        """Resolve ``query`` or raise :class:`ResolutionError`."""
