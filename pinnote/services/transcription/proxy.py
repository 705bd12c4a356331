"""Speech-to-text through the relay's ``/whisper`` route."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import httpx

from ...config import get_settings
from ...errors import TranscriptionFailed
from ...logging import get_logger
from .base import SILENCE_PLACEHOLDER, TranscriptionService

LOGGER = get_logger(__name__)

_MIME_TYPES = {
    ".m4a": "audio/m4a",
    ".wav": "audio/wav",
    ".mp3": "audio/mpeg",
    ".webm": "audio/webm",
    ".ogg": "audio/ogg",
}


def upload_name(clip_path: Path) -> tuple[str, str]:
    """Return the multipart file name and mime type sent for ``clip_path``."""

    suffix = Path(clip_path).suffix.lower() or ".m4a"
    return f"pin{suffix}", _MIME_TYPES.get(suffix, "application/octet-stream")


class ProxyTranscriptionService(TranscriptionService):
    def __init__(
        self,
        base_url: Optional[str] = None,
        route: Optional[str] = None,
        model: Optional[str] = None,
        language: Optional[str] = None,
        prompt: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        settings = get_settings()
        self.route = route or settings.whisper_route
        self.model = model or settings.transcription_model
        self.language = language if language is not None else settings.transcription_language
        self.prompt = prompt if prompt is not None else settings.transcription_prompt
        self.client = client or httpx.Client(
            base_url=base_url or settings.proxy_base_url,
            timeout=settings.request_timeout,
        )

    def _form_fields(self) -> Dict[str, str]:
        fields = {"model": self.model}
        if self.language:
            fields["language"] = self.language
        fields["prompt"] = self.prompt
        return fields

    def transcribe(self, clip_path: Path) -> str:
        LOGGER.info("Requesting transcription for %s", Path(clip_path).name)
        name, mime = upload_name(clip_path)
        try:
            with open(clip_path, "rb") as audio_file:
                response = self.client.post(
                    self.route,
                    data=self._form_fields(),
                    files={"file": (name, audio_file, mime)},
                )
        except OSError as exc:
            raise TranscriptionFailed(f"Whisper Error: cannot read clip {clip_path}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TranscriptionFailed(f"Whisper Error: {exc}") from exc

        if not response.is_success:
            raise TranscriptionFailed(f"Whisper Error: {response.text}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise TranscriptionFailed(f"Whisper Error: invalid JSON response: {response.text}") from exc

        text = payload.get("text") if isinstance(payload, dict) else None
        return text or SILENCE_PLACEHOLDER


__all__ = ["ProxyTranscriptionService", "upload_name"]
