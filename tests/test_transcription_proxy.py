from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from pinnote.errors import TranscriptionFailed
from pinnote.services.transcription.proxy import ProxyTranscriptionService, upload_name


def _service(handler) -> ProxyTranscriptionService:
    client = httpx.Client(base_url="http://relay.test", transport=httpx.MockTransport(handler))
    return ProxyTranscriptionService(
        route="/whisper",
        model="whisper-1",
        language="en",
        prompt="This audio might contain no speech.$",
        client=client,
    )


def _clip(tmp_path: Path, name: str = "recording.m4a.pin_0.m4a") -> Path:
    clip = tmp_path / name
    clip.write_bytes(b"fake-audio")
    return clip


def test_upload_name_follows_clip_suffix() -> None:
    assert upload_name(Path("a.m4a")) == ("pin.m4a", "audio/m4a")
    assert upload_name(Path("a.wav")) == ("pin.wav", "audio/wav")
    assert upload_name(Path("clip")) == ("pin.m4a", "audio/m4a")


def test_transcribe_posts_multipart_form(tmp_path: Path) -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["content_type"] = request.headers["content-type"]
        captured["body"] = request.read()
        return httpx.Response(200, json={"text": "I goes to school"})

    text = _service(handler).transcribe(_clip(tmp_path))

    assert text == "I goes to school"
    assert captured["method"] == "POST"
    assert captured["path"] == "/whisper"
    assert captured["content_type"].startswith("multipart/form-data")
    body = captured["body"]
    assert b'filename="pin.m4a"' in body
    assert b"Content-Type: audio/m4a" in body
    assert b"fake-audio" in body
    assert b'name="model"' in body and b"whisper-1" in body
    assert b'name="language"' in body
    assert b"This audio might contain no speech.$" in body


@pytest.mark.parametrize("payload", [{}, {"text": ""}, {"text": None}])
def test_missing_text_becomes_placeholder(tmp_path: Path, payload) -> None:
    service = _service(lambda request: httpx.Response(200, json=payload))

    assert service.transcribe(_clip(tmp_path)) == "- - -"


def test_error_status_carries_response_body(tmp_path: Path) -> None:
    service = _service(lambda request: httpx.Response(500, text="upstream exploded"))

    with pytest.raises(TranscriptionFailed, match="Whisper Error: upstream exploded"):
        service.transcribe(_clip(tmp_path))


def test_transport_error_is_a_transcription_failure(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TranscriptionFailed, match="connection refused"):
        _service(handler).transcribe(_clip(tmp_path))


def test_missing_clip_is_a_transcription_failure(tmp_path: Path) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"text": "unused"})

    with pytest.raises(TranscriptionFailed):
        _service(handler).transcribe(tmp_path / "missing.m4a")
    assert calls == []
