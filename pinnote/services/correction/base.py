"""Correction service abstractions and the primary/fallback model policy."""

from __future__ import annotations

import abc
import re
from typing import Optional, Pattern

from ...errors import CorrectionFailed
from ...logging import get_logger
from ..transcription.base import SILENCE_MARKER

LOGGER = get_logger(__name__)

NO_CORRECTION = "No correction"
NO_SUGGESTION = "(No Suggestion)"
PROMPT_TEMPLATE = 'Output a grammatically correct version of \n{text}\n or output "No correction";'
MODEL_UNAVAILABLE = re.compile(r"model_not_found", re.IGNORECASE)


class CompletionError(Exception):
    """A single completion request failed; ``detail`` is the raw error text."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


def build_prompt(text: str) -> str:
    return PROMPT_TEMPLATE.format(text=text)


class CorrectionService(abc.ABC):
    """Turns transcribed speech into a corrected suggestion.

    Subclasses implement one completion round-trip in ``_complete``; this
    class decides when to skip the call and when to retry on the fallback
    model.
    """

    def __init__(
        self,
        model: str,
        fallback_model: Optional[str] = None,
        unavailable_pattern: Pattern[str] = MODEL_UNAVAILABLE,
    ) -> None:
        self.model = model
        self.fallback_model = fallback_model
        self.unavailable_pattern = unavailable_pattern

    @abc.abstractmethod
    def _complete(self, prompt: str, model: str) -> Optional[str]:
        """Return the completion text, or raise :class:`CompletionError`."""

    def _finish(self, completion: Optional[str]) -> str:
        text = (completion or "").strip()
        return text or NO_SUGGESTION

    def correct(self, text: str) -> str:
        if SILENCE_MARKER in text:
            LOGGER.info("Silence detected; skipping correction")
            return NO_CORRECTION

        prompt = build_prompt(text)
        try:
            return self._finish(self._complete(prompt, self.model))
        except CompletionError as exc:
            if not self.fallback_model or not self.unavailable_pattern.search(exc.detail):
                raise CorrectionFailed(exc.detail) from exc
            LOGGER.warning(
                "Model %s unavailable; retrying with %s",
                self.model,
                self.fallback_model,
            )

        try:
            return self._finish(self._complete(prompt, self.fallback_model))
        except CompletionError as exc:
            raise CorrectionFailed(f"Fallback Error: {exc.detail}") from exc


__all__ = [
    "CompletionError",
    "CorrectionService",
    "MODEL_UNAVAILABLE",
    "NO_CORRECTION",
    "NO_SUGGESTION",
    "PROMPT_TEMPLATE",
    "build_prompt",
]
