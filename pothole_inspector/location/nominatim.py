"""Free-text place lookup against a Nominatim-compatible HTTP API."""

from __future__ import annotations

import logging
from typing import Any

import requests
from requests import Response, Session

from ..config import AppConfig
from .base import LocationData, ResolutionError, TextLocationService

logger = logging.getLogger(__name__)


class NominatimGeocoder(TextLocationService):
    """Resolve place names or addresses via the OpenStreetMap Nominatim search API."""

    def __init__(self, config: AppConfig | None = None, session: Session | None = None) -> None:
        self._config = config or AppConfig()
        self._session = session

    def lookup(self, query: str) -> LocationData:
        params = {"q": query, "format": "jsonv2", "limit": 1}
        response = self._session_get(f"{self._config.geocoder_base_url}/search", params)
        try:
            results = response.json()
        except ValueError as exc:
            raise ResolutionError("Place lookup returned a non-JSON response.") from exc
        if not isinstance(results, list):
            raise ResolutionError("Place lookup returned an unexpected payload.")
        if not results:
            raise ResolutionError(f"No match found for '{query}'.")
        return self._parse_result(results[0])

    @staticmethod
    def _parse_result(item: Any) -> LocationData:
        if not isinstance(item, dict):
            raise ResolutionError("Place lookup returned an unexpected payload.")
        try:
            latitude = float(item["lat"]) if item.get("lat") is not None else None
            longitude = float(item["lon"]) if item.get("lon") is not None else None
        except (TypeError, ValueError) as exc:
            raise ResolutionError(f"Place lookup returned invalid coordinates: {exc}") from exc
        address = item.get("display_name")
        if not isinstance(address, str) or not address.strip():
            address = None
        if latitude is None and longitude is None and address is None:
            raise ResolutionError("Place lookup returned neither coordinates nor an address.")
        return LocationData(latitude=latitude, longitude=longitude, address=address)

    # ----- HTTP helpers ----------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": self._config.geocoder_user_agent}
        if self._config.locale:
            headers["Accept-Language"] = self._config.locale
        return headers

    def _session_get(self, url: str, params: dict[str, Any]) -> Response:
        if self._session is None:
            self._session = requests.Session()
        timeout = self._config.geocoder_timeout
        try:
            response = self._session.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=timeout,
            )
        except Exception as exc:  # pragma: no cover - network failures are surfaced to users
            if isinstance(exc, requests.exceptions.Timeout):
                raise ResolutionError(f"Place lookup timed out after {timeout}s.") from exc
            raise ResolutionError(f"Failed to contact place lookup service: {exc}") from exc
        if response.status_code >= 400:
            logger.debug("Place lookup failed with HTTP %s: %s", response.status_code, response.text)
            raise ResolutionError(f"Place lookup returned HTTP {response.status_code}.")
        return response
