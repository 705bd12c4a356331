"""Dummy correction service for testing or offline usage."""

from __future__ import annotations

from typing import List, Optional

from .base import CorrectionService


class DummyCorrectionService(CorrectionService):
    """Echoes the transcript back as its own correction."""

    def __init__(self, model: str = "dummy", fallback_model: Optional[str] = None) -> None:
        super().__init__(model, fallback_model)
        self.prompts: List[str] = []

    def _complete(self, prompt: str, model: str) -> Optional[str]:
        self.prompts.append(prompt)
        lines = prompt.splitlines()
        return lines[1] if len(lines) > 2 else None


__all__ = ["DummyCorrectionService"]
