"""Transcription services."""

from .base import SILENCE_MARKER, SILENCE_PLACEHOLDER, TranscriptionService
from .dummy import DummyTranscriptionService

__all__ = [
    "DummyTranscriptionService",
    "SILENCE_MARKER",
    "SILENCE_PLACEHOLDER",
    "TranscriptionService",
]
