"""Data models used by pinnote."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Analysis(BaseModel):
    """Transcription, correction and clip reference for one pin."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    original: str
    suggestion: str
    clip_path: Path = Field(alias="clipPath")


class Pin(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pin_time: int = Field(alias="pinTime", ge=0)
    analysis: Optional[Analysis] = None

    def assign(self, analysis: Analysis) -> None:
        """Attach the analysis; a pin is analysed at most once."""

        if self.analysis is not None:
            raise ValueError("Pin already carries an analysis")
        self.analysis = analysis


class Session(BaseModel):
    """One completed recording together with its analysed pins."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    date: datetime
    audio_path: Path = Field(alias="audioPath")
    pins: List[Pin] = Field(min_length=1)


class PinKey(NamedTuple):
    """Identifies a pin inside the session log by its capture index."""

    session_id: str
    pin_index: int

    @classmethod
    def parse(cls, raw: str) -> "PinKey":
        """Parse the ``<sessionId>_<pinIndex>`` form used for bulk selection."""

        session_id, sep, index = raw.rpartition("_")
        if not sep or not session_id:
            raise ValueError(f"Invalid pin key: {raw!r}")
        try:
            return cls(session_id, int(index))
        except ValueError as exc:
            raise ValueError(f"Invalid pin index in key: {raw!r}") from exc

    def __str__(self) -> str:
        return f"{self.session_id}_{self.pin_index}"


class Channel(str, Enum):
    ORIGINAL = "original"
    CORRECTION = "correction"


@dataclass(frozen=True)
class PlaybackHandle:
    """The single audible source; ``finished`` resolves once when it ends."""

    session_id: Optional[str]
    pin_index: int
    channel: Channel
    finished: "Future[None]" = field(default_factory=Future, compare=False, repr=False)

    @property
    def pin(self) -> Tuple[Optional[str], int]:
        return (self.session_id, self.pin_index)


__all__ = [
    "Analysis",
    "Channel",
    "Pin",
    "PinKey",
    "PlaybackHandle",
    "Session",
]
