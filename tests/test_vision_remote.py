import base64
import json
from types import SimpleNamespace

import pytest
from pothole_inspector.config import AppConfig
from pothole_inspector.models.base import DetectorError, ImagePayload
from pothole_inspector.models.vision_remote import (
    BaseRemoteDetector,
    OllamaPotholeDetector,
    _encode_image,
)

_FAKE_REQUESTS = SimpleNamespace(exceptions=SimpleNamespace(Timeout=TimeoutError))


class DummyResponse:
    def __init__(self, payload, status_code: int = 200, text: str = "") -> None:
        self._payload = payload
        self.status_code = status_code
        self.text = text

    def json(self):
        return self._payload


class DummyRemoteDetector(BaseRemoteDetector):
    def __init__(self, response: str):
        super().__init__(
            identifier="remote.dummy",
            display_name="Dummy Remote",
            description="",
            backend="dummy",
            config=AppConfig(),
            tags=("dummy",),
        )
        self._response = response
        self.prompts: list[str] = []

    def _call_backend(self, encoded_image: str, prompt: str) -> str:
        self.prompts.append(prompt)
        return self._response


def test_encode_image_produces_base64_jpeg(jpeg_bytes):
    encoded = _encode_image(ImagePayload(jpeg_bytes, "image/jpeg"))
    assert base64.b64decode(encoded)[:2] == b"\xff\xd8"


def test_encode_image_rejects_undecodable_payload():
    with pytest.raises(DetectorError):
        _encode_image(ImagePayload(b"not an image", "image/jpeg"))


def test_parse_json_response_handles_code_fences():
    detector = OllamaPotholeDetector(AppConfig())
    payload = detector._parse_json_response(
        '```json\n{"potholes": [], "summary": "Smooth asphalt"}\n```'
    )
    assert payload == {"potholes": [], "summary": "Smooth asphalt"}


def test_parse_json_response_extracts_object_from_prose():
    detector = OllamaPotholeDetector(AppConfig())
    raw = 'Here you go: {"potholes": [{"region": [0, 0, 1, 1]}], "summary": "x"} Done.'
    payload = detector._parse_json_response(raw)
    assert payload["potholes"][0]["region"] == [0, 0, 1, 1]


def test_parse_json_response_rejects_non_objects():
    detector = OllamaPotholeDetector(AppConfig())
    with pytest.raises(DetectorError):
        detector._parse_json_response("[1, 2, 3]")
    with pytest.raises(DetectorError):
        detector._parse_json_response("no json here")


def test_headers_include_api_key():
    detector = OllamaPotholeDetector(AppConfig(remote_api_key="secret"))
    assert detector._headers()["Authorization"] == "Bearer secret"


def test_session_post_requires_loaded_session():
    detector = OllamaPotholeDetector(AppConfig())
    with pytest.raises(DetectorError):
        detector._session_post("http://example", {})


def test_session_post_handles_timeout(monkeypatch):
    class TimeoutSession:
        @staticmethod
        def post(*args, **kwargs):
            raise TimeoutError()

    detector = OllamaPotholeDetector(AppConfig())
    detector._session = TimeoutSession()
    monkeypatch.setattr("pothole_inspector.models.vision_remote.requests", _FAKE_REQUESTS)

    with pytest.raises(DetectorError, match="timed out"):
        detector._session_post("http://example", {})


def test_session_post_raises_on_http_error(monkeypatch):
    detector = OllamaPotholeDetector(AppConfig())
    detector._session = SimpleNamespace(
        post=lambda *args, **kwargs: DummyResponse({}, status_code=500, text="boom")
    )
    monkeypatch.setattr("pothole_inspector.models.vision_remote.requests", _FAKE_REQUESTS)

    with pytest.raises(DetectorError, match="HTTP 500"):
        detector._session_post("http://example", {})


def test_detect_returns_parsed_backend_payload(jpeg_bytes):
    body = {
        "potholes": [{"region": [0.1, 0.2, 0.3, 0.4], "severity": "HIGH", "confidence": 0.9}],
        "summary": "Severe cracking",
    }
    detector = DummyRemoteDetector(json.dumps(body))

    result = detector.detect(ImagePayload(jpeg_bytes, "image/jpeg"))

    assert result == body
    assert "severity" in detector.prompts[0]


def test_prompt_uses_configured_locale():
    detector = OllamaPotholeDetector(AppConfig(locale="German"))
    assert "in German" in detector._build_prompt()


def test_ollama_call_backend_posts_generate_request():
    captured = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(url=url, json=json, timeout=timeout)
        return DummyResponse({"response": '{"potholes": [], "summary": "ok"}'})

    config = AppConfig(remote_model="qwen2.5vl", remote_timeout=12.0)
    detector = OllamaPotholeDetector(config)
    detector._session = SimpleNamespace(post=fake_post)

    text = detector._call_backend("abc", "prompt")

    assert text == '{"potholes": [], "summary": "ok"}'
    assert captured["url"] == "http://127.0.0.1:11434/api/generate"
    assert captured["json"]["model"] == "qwen2.5vl"
    assert captured["json"]["images"] == ["abc"]
    assert captured["json"]["format"] == "json"
    assert captured["timeout"] == 12.0


def test_ollama_call_backend_surfaces_backend_error():
    detector = OllamaPotholeDetector(AppConfig())
    detector._session = SimpleNamespace(
        post=lambda *args, **kwargs: DummyResponse({"error": "model not found"})
    )

    with pytest.raises(DetectorError, match="model not found"):
        detector._call_backend("abc", "prompt")
