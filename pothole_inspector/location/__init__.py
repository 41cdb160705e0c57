"""Location sources and the resolver adapter used by the workflow."""

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
from .device import FixedPositionSource, UnavailableSource, device_source_from_config
from .nominatim import NominatimGeocoder
from .resolver import DEVICE_LOCATION_LABEL, LocationResolver

__all__ = [
    "DEVICE_LOCATION_LABEL",
    "DeviceErrorKind",
    "DeviceLocationSource",
    "DevicePosition",
    "FixedPositionSource",
    "LocationData",
    "LocationPermissionError",
    "LocationResolver",
    "LocationUnsupportedError",
    "NominatimGeocoder",
    "ResolutionError",
    "TextLocationService",
    "UnavailableSource",
    "device_source_from_config",
]
