"""Text formatting shared by the recording and history views."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from ..core.audio.segmenter import WINDOW_SECONDS, pin_window
from ..services.transcription.base import SILENCE_MARKER, SILENCE_PLACEHOLDER

_ISOLATED_DOT = re.compile(r"(?:^|\s)\.(?:\s|$)")


def display_original(text: Optional[str]) -> str:
    """Hide transcripts that are silence artifacts rather than speech."""

    if not text:
        return SILENCE_PLACEHOLDER
    if SILENCE_MARKER in text or _ISOLATED_DOT.search(text):
        return SILENCE_PLACEHOLDER
    return text


def format_time(seconds: float) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def format_pin_range(pin_time: float, window: float = WINDOW_SECONDS) -> str:
    start, end = pin_window(pin_time, window)
    return f"{format_time(start)} - {format_time(end)}"


def format_relative_date(value: Optional[datetime], now: Optional[datetime] = None) -> str:
    if value is None:
        return "Unknown Time"
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = (now - value).total_seconds()
    if seconds < 0:
        return "Unknown Time"
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 7:
        return f"{days}d ago"
    return value.astimezone().strftime("%Y/%m/%d")


__all__ = ["display_original", "format_pin_range", "format_relative_date", "format_time"]
