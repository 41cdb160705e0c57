"""Pothole detection with vision-language models served by Ollama."""

from __future__ import annotations

import base64
import io
import json
import logging
from collections.abc import Sequence
from typing import Any

import requests
from PIL import Image, UnidentifiedImageError
from requests import Response, Session

from ..config import AppConfig
from .base import DetectorError, DetectorInfo, ImagePayload, PotholeDetector
from .registry import DetectorRegistry

logger = logging.getLogger(__name__)


def _encode_image(image: ImagePayload) -> str:
    """Re-encode an uploaded photo as a base64 JPEG payload suitable for HTTP APIs."""
    try:
        with Image.open(io.BytesIO(image.data)) as decoded:
            converted = decoded.convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise DetectorError(f"Unable to decode {image.media_type} image: {exc}") from exc
    buffer = io.BytesIO()
    converted.save(buffer, format="JPEG", quality=92, optimize=True)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class BaseRemoteDetector(PotholeDetector):
    """Common functionality for remote multimodal detectors."""

    def __init__(
        self,
        *,
        identifier: str,
        display_name: str,
        description: str,
        backend: str,
        config: AppConfig | None,
        tags: Sequence[str],
    ) -> None:
        self._backend = backend
        self._config = config or AppConfig()
        self._info = DetectorInfo(
            identifier=identifier,
            display_name=display_name,
            description=description,
            tags=tuple(tags),
        )
        self._prompt_version = "pothole_remote/v1"
        self._session: Session | None = None

    def info(self) -> DetectorInfo:
        return self._info

    def load(self) -> None:
        self._session = requests.Session()

    def detect(self, image: ImagePayload) -> dict[str, Any]:
        prompt = self._build_prompt()
        encoded_image = _encode_image(image)
        raw_text = self._call_backend(encoded_image, prompt)
        payload = self._parse_json_response(raw_text)
        logger.debug(
            "%s returned %s for prompt %s",
            self._backend,
            sorted(payload),
            self._prompt_version,
        )
        return payload

    # ----- Prompt creation -------------------------------------------------

    def _build_prompt(self) -> str:
        locale_hint = self._config.locale or "English"
        instructions: list[str] = [
            "You are a road maintenance inspector analysing a single photograph of a road surface.",
            "Identify every pothole and respond with minified JSON matching this schema:",
            '{"potholes": [{"region": [x_min, y_min, x_max, y_max], '
            '"severity": "LOW"|"MEDIUM"|"HIGH", "confidence": number}], "summary": string}',
            "Region coordinates are fractions of the image width and height between 0 and 1.",
            "Use HIGH for deep or wide potholes that endanger vehicles, MEDIUM for clear "
            "depressions with broken edges, and LOW for shallow surface wear.",
            "Confidence is your certainty between 0 and 1.",
            f"Write the summary in {locale_hint} as one or two sentences describing the overall "
            "road condition.",
            "Never wrap the JSON in backticks or additional commentary.",
            'If there are no potholes, return {"potholes": [], "summary": "<your assessment>"}.',
        ]
        return " ".join(instructions)

    # ----- Backend dispatch ------------------------------------------------

    def _call_backend(self, encoded_image: str, prompt: str) -> str:
        raise NotImplementedError

    # ----- Response handling -----------------------------------------------

    def _parse_json_response(self, text: str) -> dict[str, Any]:
        cleaned = text.strip()
        if cleaned.startswith("```"):
            cleaned = self._strip_markdown(cleaned)

        try:
            loaded = json.loads(cleaned)
        except json.JSONDecodeError as err:
            start = cleaned.find("{")
            end = cleaned.rfind("}")
            if start == -1 or end <= start:
                raise DetectorError(
                    f"{self._info.display_name} returned non-JSON output: {cleaned!r}"
                ) from err
            try:
                loaded = json.loads(cleaned[start : end + 1])
            except json.JSONDecodeError:
                raise DetectorError(
                    f"{self._info.display_name} produced invalid JSON: {cleaned}"
                ) from err
        if not isinstance(loaded, dict):
            raise DetectorError(
                f"{self._info.display_name} returned {type(loaded).__name__} instead of an object."
            )
        return loaded

    @staticmethod
    def _strip_markdown(text: str) -> str:
        stripped = text.strip()
        if not stripped.startswith("```"):
            return stripped
        parts = stripped.split("```")
        # The second segment typically contains the JSON payload (possibly with a language tag).
        if len(parts) < 3:
            return stripped
        candidate = parts[1]
        if "\n" in candidate:
            _, remainder = candidate.split("\n", 1)
            return remainder.strip()
        return parts[-1].strip()

    # ----- HTTP helpers ----------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.remote_api_key:
            headers["Authorization"] = f"Bearer {self._config.remote_api_key}"
        return headers

    def _session_post(self, url: str, payload: dict[str, Any]) -> Response:
        if self._session is None:
            raise DetectorError("HTTP session not initialised.")
        timeout = self._config.remote_timeout
        try:
            response = self._session.post(
                url,
                json=payload,
                headers=self._headers(),
                timeout=timeout,
            )
        except Exception as exc:  # pragma: no cover - network failures are surfaced to users
            if isinstance(exc, requests.exceptions.Timeout):
                raise DetectorError(
                    f"{self._backend} request timed out after {timeout}s. "
                    "Increase the remote timeout or ensure the model is loaded."
                ) from exc
            raise DetectorError(f"Failed to contact {self._backend} backend: {exc}") from exc
        if response.status_code >= 400:
            raise DetectorError(
                f"{self._backend} backend returned HTTP {response.status_code}: {response.text}"
            )
        return response


class OllamaPotholeDetector(BaseRemoteDetector):
    """Pothole detection using the Ollama HTTP API."""

    def __init__(self, config: AppConfig | None = None) -> None:
        super().__init__(
            identifier="remote.ollama",
            display_name="Ollama Vision",
            description=(
                "Asks an Ollama-hosted multimodal model such as LLaVA or Qwen2.5-VL to locate "
                "and grade potholes."
            ),
            backend="ollama",
            config=config,
            tags=("remote", "ollama", "vision", "http"),
        )

    def _call_backend(self, encoded_image: str, prompt: str) -> str:
        endpoint = f"{self._config.remote_base_url}/api/generate"
        payload = {
            "model": self._config.remote_model,
            "prompt": prompt,
            "images": [encoded_image],
            "stream": False,
            "format": "json",
            "options": {
                "temperature": self._config.remote_temperature,
                "num_predict": self._config.remote_max_tokens,
            },
        }
        response = self._session_post(endpoint, payload)
        try:
            data = response.json()
        except ValueError as exc:
            raise DetectorError("Ollama backend returned a non-JSON envelope.") from exc
        if not isinstance(data, dict):
            raise DetectorError("Ollama backend returned an unexpected payload.")
        if "error" in data:
            raise DetectorError(f"Ollama backend error: {data['error']}")
        text = data.get("response")
        if not isinstance(text, str):
            raise DetectorError("Ollama backend returned an unexpected payload.")
        return text


def _register() -> None:
    DetectorRegistry.register(
        "remote.ollama", lambda config=None: OllamaPotholeDetector(config=config)
    )


_register()
