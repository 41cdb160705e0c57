"""Device location sources."""

from __future__ import annotations

import time
from collections.abc import Callable

from ..config import AppConfig
from .base import DeviceErrorKind, DeviceLocationSource, DevicePosition, ErrorCallback, PositionCallback


class FixedPositionSource(DeviceLocationSource):
    """Reports a configured coordinate, e.g. for a survey rig parked at a known spot."""

    def __init__(
        self,
        latitude: float,
        longitude: float,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self._clock = clock

    def request_position(self, on_success: PositionCallback, on_error: ErrorCallback) -> None:
        timestamp_ms = int(self._clock() * 1000)
        on_success(DevicePosition(self.latitude, self.longitude, timestamp_ms))


class UnavailableSource(DeviceLocationSource):
    """A device without a usable positioning capability."""

    def request_position(self, on_success: PositionCallback, on_error: ErrorCallback) -> None:
        on_error(DeviceErrorKind.UNSUPPORTED)


def device_source_from_config(config: AppConfig) -> DeviceLocationSource | None:
    """Return the configured device source, or None when no position is configured."""
    if not config.has_device_position:
        return None
    return FixedPositionSource(config.device_latitude, config.device_longitude)
