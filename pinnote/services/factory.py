"""Factories for runtime service selection."""

from __future__ import annotations

from typing import Optional

from ..core.audio.playback import OpenAISpeechPlayer, SilentSpeechPlayer, SpeechPlayer
from .correction.base import CorrectionService
from .correction.dummy import DummyCorrectionService
from .correction.openai_client import OpenAICorrectionService
from .correction.proxy import ProxyCorrectionService
from .transcription.base import TranscriptionService
from .transcription.dummy import DummyTranscriptionService
from .transcription.openai_client import OpenAITranscriptionService
from .transcription.proxy import ProxyTranscriptionService


class ServiceConfigurationError(ValueError):
    """Raised when an unknown backend is requested."""


def _normalise(name: Optional[str]) -> str:
    if not name:
        return "proxy"
    return name.strip().lower()


def resolve_transcription_backend(name: Optional[str]) -> TranscriptionService:
    backend = _normalise(name)
    if backend == "proxy":
        return ProxyTranscriptionService()
    if backend == "openai":
        return OpenAITranscriptionService()
    if backend == "dummy":
        return DummyTranscriptionService()
    raise ServiceConfigurationError(f"Unknown transcription backend: {name}")


def resolve_correction_backend(name: Optional[str]) -> CorrectionService:
    backend = _normalise(name)
    if backend == "proxy":
        return ProxyCorrectionService()
    if backend == "openai":
        return OpenAICorrectionService()
    if backend == "dummy":
        return DummyCorrectionService()
    raise ServiceConfigurationError(f"Unknown correction backend: {name}")


def resolve_speech_backend(name: Optional[str], **kwargs) -> SpeechPlayer:
    backend = (name or "none").strip().lower()
    if backend in {"", "none", "off"}:
        return SilentSpeechPlayer()
    if backend == "openai":
        return OpenAISpeechPlayer(**kwargs)
    raise ServiceConfigurationError(f"Unknown speech backend: {name}")


__all__ = [
    "ServiceConfigurationError",
    "resolve_correction_backend",
    "resolve_speech_backend",
    "resolve_transcription_backend",
]
