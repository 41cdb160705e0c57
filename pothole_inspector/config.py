"""Application-wide configuration models and persistence helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator


class AppConfig(BaseModel):
    """Validates and stores runtime settings for the inspection workflow."""

    detector_name: str = Field(
        default="remote.ollama",
        description="Identifier of the pothole detector used for analysis.",
    )
    remote_base_url: str = Field(
        default="http://127.0.0.1:11434",
        description="Base URL for the Ollama vision backend.",
    )
    remote_model: str = Field(
        default="llava",
        description="Model identifier served by the remote vision backend.",
    )
    remote_api_key: str | None = Field(
        default=None,
        description="Optional bearer token for remote vision backends that require authentication.",
    )
    remote_temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=2.0,
        description="Sampling temperature passed to remote vision backends.",
    )
    remote_max_tokens: int = Field(
        default=1024,
        ge=64,
        le=8192,
        description="Maximum number of tokens requested from remote vision backends.",
    )
    remote_timeout: float = Field(
        default=90.0,
        ge=1.0,
        le=600.0,
        description="Timeout (seconds) for HTTP calls to remote vision services.",
    )
    geocoder_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Base URL of the Nominatim-compatible place lookup service.",
    )
    geocoder_user_agent: str = Field(
        default="pothole-inspector/0.1",
        description="User-Agent header sent to the place lookup service.",
    )
    geocoder_timeout: float = Field(
        default=10.0,
        ge=1.0,
        le=120.0,
        description="Timeout (seconds) for place lookup requests.",
    )
    locale: str | None = Field(
        default=None,
        description="Optional language hint for place names and analysis summaries.",
    )
    device_latitude: float | None = Field(
        default=None,
        ge=-90.0,
        le=90.0,
        description="Latitude reported by the fixed-position device source.",
    )
    device_longitude: float | None = Field(
        default=None,
        ge=-180.0,
        le=180.0,
        description="Longitude reported by the fixed-position device source.",
    )
    device_timeout: float = Field(
        default=10.0,
        ge=0.1,
        le=120.0,
        description="Seconds to wait for a device position fix.",
    )
    heuristic_grid: int = Field(
        default=8,
        ge=2,
        le=64,
        description="Grid size used by the built-in heuristic detector.",
    )
    heuristic_darkness_ratio: float = Field(
        default=0.6,
        ge=0.05,
        le=0.95,
        description="Cells darker than this fraction of the frame mean are reported.",
    )

    @model_validator(mode="after")
    def _normalise_remote_settings(self) -> AppConfig:
        self.remote_base_url = _normalise_base_url(self.remote_base_url, "Remote base URL")
        self.geocoder_base_url = _normalise_base_url(self.geocoder_base_url, "Geocoder base URL")
        return self

    @model_validator(mode="after")
    def _validate_geocoder_identity(self) -> AppConfig:
        agent = self.geocoder_user_agent.strip()
        if not agent:
            raise ValueError("Geocoder user agent must not be empty.")
        self.geocoder_user_agent = agent
        return self

    @model_validator(mode="after")
    def _validate_device_position(self) -> AppConfig:
        if (self.device_latitude is None) != (self.device_longitude is None):
            raise ValueError("Device latitude and longitude must be configured together.")
        return self

    @property
    def has_device_position(self) -> bool:
        return self.device_latitude is not None and self.device_longitude is not None

    def as_dict(self) -> dict[str, Any]:
        """Serialize the configuration to primitive Python types."""
        return self.model_dump(mode="json")

    @classmethod
    def load(cls, path: Path) -> AppConfig:
        """Load configuration from a YAML or JSON file."""
        data = _read_config_file(path)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:  # pragma: no cover - pass through details
            raise ValueError(f"Invalid configuration file at {path}: {exc}") from exc

    def save(self, path: Path) -> None:
        """Persist configuration to a YAML file."""
        _write_config_file(path, self.as_dict())


def _normalise_base_url(value: str, label: str) -> str:
    base = value.strip()
    if not base:
        raise ValueError(f"{label} must not be empty.")
    if "://" not in base:
        raise ValueError(f"{label} must include a scheme such as http://localhost:11434.")
    return base.rstrip("/")


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(text) or {}
    return json.loads(text)


def _write_config_file(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in {".yaml", ".yml"}:
        yaml_text = yaml.safe_dump(
            data,
            allow_unicode=False,
            sort_keys=False,
        )
        path.write_text(yaml_text, encoding="utf-8")
    else:
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
