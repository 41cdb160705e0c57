"""State machine coordinating image upload, analysis and geotagging.

The controller exclusively owns a :class:`WorkflowState` snapshot and replaces
it on every transition. Analysis and location lookups each have a single-flight
slot: a request records a ticket drawn from a monotonically increasing
generation counter, and its response is applied only while that ticket is
still the slot's live ticket. ``reset`` and ``submit_image`` clear both slots,
so responses to requests issued before them are dropped.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace

from ..config import AppConfig
from ..location.base import (
    LocationData,
    LocationPermissionError,
    LocationUnsupportedError,
    ResolutionError,
)
from ..location.resolver import LocationResolver
from ..models.base import DetectionResult, ImagePayload, is_image_media_type
from .analysis import AnalysisAdapter, AnalysisError

logger = logging.getLogger(__name__)

INVALID_FILE_TYPE = "invalid file type"
EMPTY_LOCATION_QUERY = "location query is empty"
LOCATION_PERMISSION_DENIED = "location permission denied"
GEOLOCATION_NOT_SUPPORTED = "geolocation not supported"


@dataclass(frozen=True, slots=True)
class WorkflowState:
    """Read-only snapshot handed to renderers and listeners."""

    image: ImagePayload | None = None
    detection_result: DetectionResult | None = None
    location: LocationData | None = None
    is_analyzing: bool = False
    is_locating: bool = False
    error: str | None = None


StateListener = Callable[[WorkflowState], None]


class WorkflowController:
    """Owns the inspection workflow state and its transitions."""

    def __init__(self, analysis: AnalysisAdapter, locations: LocationResolver) -> None:
        self._analysis = analysis
        self._locations = locations
        self._state = WorkflowState()
        self._generations = itertools.count(1)
        self._analysis_ticket: int | None = None
        self._location_ticket: int | None = None
        self._listeners: list[StateListener] = []
        self.location_query = ""

    @classmethod
    def from_config(cls, config: AppConfig) -> WorkflowController:
        return cls(AnalysisAdapter(config), LocationResolver.from_config(config))

    @property
    def state(self) -> WorkflowState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with every new snapshot; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # --- Transitions ----------------------------------------------------

    def submit_image(self, payload: bytes, media_type: str) -> bool:
        """Accept a new photograph, discarding everything tied to the previous one."""
        if not is_image_media_type(media_type):
            logger.warning("Rejected upload with media type %r", media_type)
            self._update(error=INVALID_FILE_TYPE)
            return False
        self._invalidate_requests()
        self.location_query = ""
        self._publish(WorkflowState(image=ImagePayload(bytes(payload), media_type)))
        logger.debug("Accepted %s image (%d bytes)", media_type, len(payload))
        return True

    def reset(self) -> None:
        self._invalidate_requests()
        self.location_query = ""
        self._publish(WorkflowState())
        logger.debug("Workflow reset")

    async def run_analysis(self) -> None:
        state = self._state
        if state.image is None or state.is_analyzing or state.detection_result is not None:
            logger.debug("Ignoring analysis request in current state")
            return

        ticket = next(self._generations)
        self._analysis_ticket = ticket
        self._update(is_analyzing=True, error=None)
        try:
            result = await self._analysis.analyze(state.image)
        except AnalysisError as exc:
            if self._claim_analysis(ticket):
                logger.warning("Analysis failed: %s", exc.message)
                self._update(is_analyzing=False, error=exc.message)
            return
        except asyncio.CancelledError:
            if self._claim_analysis(ticket):
                self._update(is_analyzing=False)
            raise
        if self._claim_analysis(ticket):
            self._update(detection_result=result, is_analyzing=False)

    async def resolve_location_by_gps(self) -> None:
        if self._state.is_locating:
            logger.debug("Ignoring device location request; a location request is pending")
            return
        if not self._locations.has_device_source:
            self._update(error=GEOLOCATION_NOT_SUPPORTED)
            return
        await self._resolve_location(self._locations.resolve_by_device, "device")

    async def resolve_location_by_query(self, text: str) -> None:
        query = (text or "").strip()
        if not query:
            self._update(error=EMPTY_LOCATION_QUERY)
            return
        if self._state.is_locating:
            logger.debug("Ignoring place lookup for %r; a location request is pending", query)
            return
        self.location_query = query
        await self._resolve_location(lambda: self._locations.resolve_by_text(query), "query")

    # --- Internals ------------------------------------------------------

    async def _resolve_location(
        self,
        request: Callable[[], Awaitable[LocationData]],
        source: str,
    ) -> None:
        if self._state.is_locating:
            logger.debug("Ignoring %s location request; another one is pending", source)
            return

        ticket = next(self._generations)
        self._location_ticket = ticket
        self._update(is_locating=True, error=None)
        try:
            location = await request()
        except LocationUnsupportedError:
            message = GEOLOCATION_NOT_SUPPORTED
        except LocationPermissionError as exc:
            logger.info("Device location unavailable: %s", exc.kind.value)
            message = LOCATION_PERMISSION_DENIED
        except ResolutionError as exc:
            message = str(exc)
        except asyncio.CancelledError:
            if self._claim_location(ticket):
                self._update(is_locating=False)
            raise
        else:
            if self._claim_location(ticket):
                logger.info("Location resolved from %s: %s", source, location.address)
                self._update(location=location, is_locating=False)
            return

        if self._claim_location(ticket):
            logger.warning("Location lookup via %s failed: %s", source, message)
            self._update(is_locating=False, error=message)

    def _claim_analysis(self, ticket: int) -> bool:
        if self._analysis_ticket != ticket:
            logger.debug("Discarding stale analysis response (request %d)", ticket)
            return False
        self._analysis_ticket = None
        return True

    def _claim_location(self, ticket: int) -> bool:
        if self._location_ticket != ticket:
            logger.debug("Discarding stale location response (request %d)", ticket)
            return False
        self._location_ticket = None
        return True

    def _invalidate_requests(self) -> None:
        self._analysis_ticket = None
        self._location_ticket = None

    def _update(self, **changes: object) -> None:
        self._publish(replace(self._state, **changes))

    def _publish(self, state: WorkflowState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener %r failed", listener)
