"""Per-user persistence of inspector settings and recent place queries."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from .config import AppConfig
from .models.registry import DetectorRegistry

logger = logging.getLogger(__name__)

HISTORY_FILENAME = "history.yaml"
MAX_RECENT_QUERIES = 10


class SettingsStore:
    """Settings file plus a small history of the place queries that resolved."""

    def __init__(self, path: Path | None = None, *, history_path: Path | None = None) -> None:
        self._path = path or default_settings_path()
        self._history_path = history_path or self._path.with_name(HISTORY_FILENAME)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def history_path(self) -> Path:
        return self._history_path

    def load(self) -> AppConfig:
        """Return saved settings; an unregistered detector falls back to the default one."""
        if not self._path.exists():
            return AppConfig()
        config = AppConfig.load(self._path)
        if not DetectorRegistry.is_registered(config.detector_name):
            fallback = AppConfig.model_fields["detector_name"].default
            logger.warning(
                "Settings at %s select unknown detector '%s'; using '%s' instead.",
                self._path,
                config.detector_name,
                fallback,
            )
            config = config.model_copy(update={"detector_name": fallback})
        return config

    def save(self, config: AppConfig) -> None:
        if not DetectorRegistry.is_registered(config.detector_name):
            raise ValueError(
                f"Cannot save settings with unknown detector '{config.detector_name}'. "
                f"Available: {', '.join(DetectorRegistry.names())}"
            )
        config.save(self._path)

    def recent_queries(self) -> list[str]:
        """Most recent first."""
        if not self._history_path.exists():
            return []
        data = yaml.safe_load(self._history_path.read_text(encoding="utf-8")) or {}
        queries = data.get("recent_queries") if isinstance(data, dict) else None
        if not isinstance(queries, list):
            logger.warning("Ignoring malformed query history at %s", self._history_path)
            return []
        return [query for query in queries if isinstance(query, str) and query.strip()]

    def remember_query(self, query: str) -> None:
        query = query.strip()
        if not query:
            return
        folded = query.casefold()
        queries = [query] + [
            previous for previous in self.recent_queries() if previous.casefold() != folded
        ]
        self._history_path.parent.mkdir(parents=True, exist_ok=True)
        self._history_path.write_text(
            yaml.safe_dump({"recent_queries": queries[:MAX_RECENT_QUERIES]}, allow_unicode=True),
            encoding="utf-8",
        )


def default_settings_path() -> Path:
    if os.name == "nt":
        base = Path(os.getenv("APPDATA", Path.home() / "AppData" / "Roaming"))
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base.expanduser() / "pothole_inspector" / "settings.yaml"
