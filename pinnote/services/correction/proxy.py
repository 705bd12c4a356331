"""Correction through the relay's ``/chat`` route."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from ...config import get_settings
from ...logging import get_logger
from .base import CompletionError, CorrectionService

LOGGER = get_logger(__name__)


def completion_text(payload: Any) -> Optional[str]:
    """Extract ``choices[0].message.content`` or ``None`` when absent."""

    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else None


class ProxyCorrectionService(CorrectionService):
    def __init__(
        self,
        base_url: Optional[str] = None,
        route: Optional[str] = None,
        model: Optional[str] = None,
        fallback_model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        settings = get_settings()
        super().__init__(
            model or settings.correction_model,
            fallback_model if fallback_model is not None else settings.correction_fallback_model,
        )
        self.route = route or settings.chat_route
        self.max_tokens = max_tokens or settings.correction_max_tokens
        self.temperature = temperature if temperature is not None else settings.correction_temperature
        self.client = client or httpx.Client(
            base_url=base_url or settings.proxy_base_url,
            timeout=settings.request_timeout,
        )

    def request_body(self, prompt: str, model: str) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

    def _complete(self, prompt: str, model: str) -> Optional[str]:
        LOGGER.info("Requesting correction from %s", model)
        try:
            response = self.client.post(self.route, json=self.request_body(prompt, model))
        except httpx.HTTPError as exc:
            raise CompletionError(str(exc)) from exc
        if not response.is_success:
            raise CompletionError(response.text)
        try:
            payload = response.json()
        except ValueError as exc:
            raise CompletionError(f"Invalid JSON response: {response.text}") from exc
        return completion_text(payload)


__all__ = ["ProxyCorrectionService", "completion_text"]
