"""OpenAI powered transcription service, bypassing the relay."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from ...config import get_settings
from ...errors import TranscriptionFailed
from ...logging import get_logger
from .base import SILENCE_PLACEHOLDER, TranscriptionService

LOGGER = get_logger(__name__)


class OpenAITranscriptionService(TranscriptionService):
    def __init__(self, model: Optional[str] = None) -> None:
        settings = get_settings()
        self.model = model or settings.transcription_model
        self.language = settings.transcription_language
        self.prompt = settings.transcription_prompt
        try:
            from openai import OpenAI, OpenAIError  # type: ignore
        except ImportError as exc:  # pragma: no cover - runtime dependency guard
            raise RuntimeError("openai package is required for OpenAITranscriptionService") from exc
        client_kwargs = {}
        if settings.openai_api_key:
            client_kwargs["api_key"] = settings.openai_api_key

        self._openai_error_cls = OpenAIError
        try:
            self.client = OpenAI(**client_kwargs)
        except OpenAIError as exc:
            message = str(exc)
            if "api_key" in message.lower():
                raise RuntimeError(
                    "OpenAI API key not configured. Set the OPENAI_API_KEY environment variable "
                    "or PINNOTE_OPENAI_API_KEY."
                ) from exc
            raise RuntimeError(f"Failed to initialise OpenAI transcription client: {message}") from exc

    def transcribe(self, clip_path: Path) -> str:
        LOGGER.info("Requesting OpenAI transcription for %s", clip_path)
        kwargs: dict[str, Any] = {"model": self.model, "prompt": self.prompt}
        if self.language:
            kwargs["language"] = self.language
        try:
            with open(clip_path, "rb") as audio_file:
                response = self.client.audio.transcriptions.create(file=audio_file, **kwargs)
        except OSError as exc:
            raise TranscriptionFailed(f"Whisper Error: cannot read clip {clip_path}: {exc}") from exc
        except self._openai_error_cls as exc:
            raise TranscriptionFailed(f"Whisper Error: {exc}") from exc

        if isinstance(response, str):
            text = response
        else:
            text = getattr(response, "text", None)
        return text or SILENCE_PLACEHOLDER


__all__ = ["OpenAITranscriptionService"]
