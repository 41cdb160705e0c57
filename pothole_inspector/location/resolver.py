"""Adapter exposing both location sources as awaitable operations."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from ..config import AppConfig
from .base import (
    DeviceErrorKind,
    DeviceLocationSource,
    DevicePosition,
    LocationData,
    LocationPermissionError,
    LocationUnsupportedError,
    ResolutionError,
    TextLocationService,
)
from .device import device_source_from_config
from .nominatim import NominatimGeocoder

logger = logging.getLogger(__name__)

DEVICE_LOCATION_LABEL = "Current Device GPS"


class LocationResolver:
    """Normalises text lookups and device fixes into :class:`LocationData`."""

    def __init__(
        self,
        text_service: TextLocationService,
        device_source: DeviceLocationSource | None = None,
        *,
        device_timeout: float = 10.0,
    ) -> None:
        self._text_service = text_service
        self._device_source = device_source
        self._device_timeout = device_timeout

    @classmethod
    def from_config(cls, config: AppConfig) -> LocationResolver:
        return cls(
            NominatimGeocoder(config),
            device_source_from_config(config),
            device_timeout=config.device_timeout,
        )

    @property
    def has_device_source(self) -> bool:
        return self._device_source is not None

    async def resolve_by_text(self, query: str) -> LocationData:
        try:
            return await asyncio.to_thread(self._text_service.lookup, query)
        except ResolutionError:
            raise
        except Exception as exc:
            logger.exception("Place lookup for %r failed unexpectedly", query)
            raise ResolutionError(str(exc) or type(exc).__name__) from exc

    async def resolve_by_device(self) -> LocationData:
        if self._device_source is None:
            raise LocationUnsupportedError()

        loop = asyncio.get_running_loop()
        future: asyncio.Future[DevicePosition | DeviceErrorKind] = loop.create_future()

        def _settle(outcome: DevicePosition | DeviceErrorKind) -> None:
            if not future.done():
                future.set_result(outcome)

        def _on_success(position: DevicePosition) -> None:
            loop.call_soon_threadsafe(_settle, position)

        def _on_error(kind: DeviceErrorKind) -> None:
            loop.call_soon_threadsafe(_settle, kind)

        try:
            self._device_source.request_position(_on_success, _on_error)
        except Exception as exc:
            logger.warning("Device location source failed: %s", exc)
            raise LocationPermissionError(DeviceErrorKind.POSITION_UNAVAILABLE) from exc

        try:
            outcome = await asyncio.wait_for(future, self._device_timeout)
        except asyncio.TimeoutError:
            raise LocationPermissionError(DeviceErrorKind.TIMEOUT) from None

        if isinstance(outcome, DevicePosition):
            return LocationData(
                latitude=outcome.latitude,
                longitude=outcome.longitude,
                timestamp=datetime.fromtimestamp(outcome.timestamp_ms / 1000, tz=timezone.utc),
                address=DEVICE_LOCATION_LABEL,
            )
        if outcome is DeviceErrorKind.UNSUPPORTED:
            raise LocationUnsupportedError()
        raise LocationPermissionError(outcome)
