"""Transcription service abstractions."""

from __future__ import annotations

import abc
from pathlib import Path

# The transcriber is prompted to emit this character when it hears no speech.
SILENCE_MARKER = "$"
# Returned when the remote answer carries no text at all.
SILENCE_PLACEHOLDER = "- - -"


class TranscriptionService(abc.ABC):
    """Convert a pin clip into raw text or the silence placeholder."""

    @abc.abstractmethod
    def transcribe(self, clip_path: Path) -> str:
        raise NotImplementedError


__all__ = ["SILENCE_MARKER", "SILENCE_PLACEHOLDER", "TranscriptionService"]
