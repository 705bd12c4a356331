"""Dummy transcription service for testing or offline usage."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from .base import TranscriptionService


class DummyTranscriptionService(TranscriptionService):
    def __init__(self, text: Optional[str] = None) -> None:
        self.text = text
        self.calls: List[Path] = []

    def transcribe(self, clip_path: Path) -> str:
        self.calls.append(Path(clip_path))
        if self.text is not None:
            return self.text
        return f"Dummy transcript for {Path(clip_path).name}."


__all__ = ["DummyTranscriptionService"]
