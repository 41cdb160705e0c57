"""Registry of pothole detectors available to the analysis service."""

from __future__ import annotations

import logging
from importlib import import_module
from typing import Callable, Dict

from ..config import AppConfig
from .base import DetectorError, DetectorInfo, PotholeDetector

Factory = Callable[..., PotholeDetector]
logger = logging.getLogger(__name__)

_BUILTIN_MODULES = (
    "pothole_inspector.models.builtin.heuristic",
    "pothole_inspector.models.vision_remote",
)


class DetectorRegistry:
    """Maps detector identifiers to factories; built-ins register on first use."""

    _factories: Dict[str, Factory] = {}
    _bootstrap_complete: bool = False

    @classmethod
    def register(cls, name: str, factory: Factory) -> None:
        previous = cls._factories.get(name)
        if previous is not None and previous is not factory:
            logger.info("Replacing detector factory registered as '%s'", name)
        cls._factories[name] = factory

    @classmethod
    def unregister(cls, name: str) -> None:
        cls._factories.pop(name, None)

    @classmethod
    def ensure_bootstrapped(cls) -> None:
        if cls._bootstrap_complete:
            return
        for module_name in _BUILTIN_MODULES:
            import_module(module_name)
        cls._bootstrap_complete = True
        logger.debug("Detectors available: %s", ", ".join(sorted(cls._factories)))

    @classmethod
    def is_registered(cls, name: str) -> bool:
        cls.ensure_bootstrapped()
        return name in cls._factories

    @classmethod
    def names(cls) -> list[str]:
        cls.ensure_bootstrapped()
        return sorted(cls._factories)

    @classmethod
    def list_detector_infos(cls) -> list[DetectorInfo]:
        """Describe every registered detector, ordered by identifier."""
        return [cls._factories[name]().info() for name in cls.names()]

    @classmethod
    def get(cls, name: str, *, config: AppConfig | None = None) -> PotholeDetector:
        """Build and load the detector registered as ``name``.

        Unknown identifiers raise ``KeyError`` listing the alternatives. Any
        failure while constructing or loading the detector is reported as a
        :class:`DetectorError` naming it.
        """
        factory = cls._factories.get(name) if cls.is_registered(name) else None
        if factory is None:
            raise KeyError(f"Unknown detector '{name}'. Available: {', '.join(cls.names())}")
        try:
            detector = _build(factory, config)
            detector.load()
        except DetectorError:
            raise
        except Exception as exc:
            logger.exception("Detector '%s' failed to load", name)
            raise DetectorError(f"Detector '{name}' failed to load: {exc}") from exc
        return detector


def _build(factory: Factory, config: AppConfig | None) -> PotholeDetector:
    if config is None:
        return factory()
    try:
        return factory(config)
    except TypeError:
        logger.debug(
            "Factory %s takes no configuration; building it without one.",
            getattr(factory, "__name__", repr(factory)),
        )
    return factory()
