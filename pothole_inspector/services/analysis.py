"""Adapter turning a blocking detector into a validated async analysis call."""

from __future__ import annotations

import asyncio
import logging
from threading import Lock
from typing import Any

from pydantic import ValidationError

from ..config import AppConfig
from ..models.base import DetectionResult, DetectorError, ImagePayload, PotholeDetector
from ..models.registry import DetectorRegistry

logger = logging.getLogger(__name__)


class AnalysisError(RuntimeError):
    """Raised when an image cannot be analysed; the message is user facing."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def parse_detection_result(payload: Any) -> DetectionResult:
    """Validate a raw detector payload, rejecting malformed detections."""
    if not isinstance(payload, dict):
        raise AnalysisError("Malformed analysis response: expected a JSON object.")
    try:
        return DetectionResult.model_validate(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'response'}: {error['msg']}"
            for error in exc.errors()
        )
        raise AnalysisError(f"Malformed analysis response: {problems}") from exc


class AnalysisAdapter:
    """Runs one analysis per call; never retries."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        detector: PotholeDetector | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self._detector = detector
        self._detector_lock = Lock()

    async def analyze(self, image: ImagePayload) -> DetectionResult:
        payload = await asyncio.to_thread(self._detect, image)
        result = parse_detection_result(payload)
        logger.info(
            "Analysis found %d pothole(s) in %s image",
            len(result.potholes),
            image.media_type,
        )
        return result

    def _detect(self, image: ImagePayload) -> Any:
        try:
            detector = self._get_detector()
        except KeyError as exc:
            # Unknown detector id; the registry message lists the alternatives.
            raise AnalysisError(str(exc.args[0]) if exc.args else str(exc)) from exc
        except DetectorError as exc:
            raise AnalysisError(str(exc)) from exc
        except Exception as exc:
            logger.exception("Detector '%s' could not be prepared", self.config.detector_name)
            raise AnalysisError(str(exc) or type(exc).__name__) from exc
        try:
            return detector.detect(image)
        except DetectorError as exc:
            logger.warning("Detector '%s' could not analyze image: %s", self.config.detector_name, exc)
            raise AnalysisError(str(exc)) from exc
        except Exception as exc:
            logger.exception("Detector '%s' failed unexpectedly", self.config.detector_name)
            raise AnalysisError(str(exc) or type(exc).__name__) from exc

    def _get_detector(self) -> PotholeDetector:
        with self._detector_lock:
            if self._detector is None:
                logger.info("Loading detector '%s'...", self.config.detector_name)
                self._detector = DetectorRegistry.get(self.config.detector_name, config=self.config)
                logger.info("Detector '%s' ready.", self.config.detector_name)
        return self._detector
