"""OpenAI powered correction service, bypassing the relay."""

from __future__ import annotations

from typing import Optional

from ...config import get_settings
from ...logging import get_logger
from .base import CompletionError, CorrectionService

LOGGER = get_logger(__name__)


class OpenAICorrectionService(CorrectionService):
    def __init__(self, model: Optional[str] = None, fallback_model: Optional[str] = None) -> None:
        settings = get_settings()
        super().__init__(
            model or settings.correction_model,
            fallback_model if fallback_model is not None else settings.correction_fallback_model,
        )
        self.max_tokens = settings.correction_max_tokens
        self.temperature = settings.correction_temperature
        try:
            from openai import OpenAI, OpenAIError  # type: ignore
        except ImportError as exc:  # pragma: no cover - runtime dependency guard
            raise RuntimeError("openai package is required for OpenAICorrectionService") from exc
        client_kwargs = {}
        if settings.openai_api_key:
            client_kwargs["api_key"] = settings.openai_api_key

        self._openai_error_cls = OpenAIError
        try:
            self.client = OpenAI(**client_kwargs)
        except OpenAIError as exc:
            raise RuntimeError(f"Failed to initialise OpenAI correction client: {exc}") from exc

    def _complete(self, prompt: str, model: str) -> Optional[str]:
        LOGGER.info("Requesting OpenAI correction from %s", model)
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except self._openai_error_cls as exc:
            # NotFoundError bodies carry the "model_not_found" code checked by the fallback policy
            body = getattr(exc, "body", None)
            raise CompletionError(f"{exc} {body}" if body else str(exc)) from exc
        if not response.choices:
            return None
        return response.choices[0].message.content


__all__ = ["OpenAICorrectionService"]
