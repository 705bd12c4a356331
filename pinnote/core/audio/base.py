"""Audio capture abstractions."""

from __future__ import annotations

import abc
import contextlib
from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class CaptureInfo:
    """Format of the microphone stream feeding a recording."""

    sample_rate: int
    channels: int
    device: Optional[str] = None
    name: str = "microphone"


class AudioCapture(abc.ABC):
    """Microphone stream that yields float32 numpy chunks.

    ``start`` must be called before ``read``; ``shutdown`` stops and releases
    the stream and is safe to call more than once.
    """

    info: CaptureInfo

    @abc.abstractmethod
    def start(self) -> None:
        """Open the stream and begin buffering chunks."""

    @abc.abstractmethod
    def stop(self) -> None:
        """Stop delivering new chunks; buffered ones stay readable."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release the device and discard buffered chunks."""

    @abc.abstractmethod
    def read(self, timeout: Optional[float] = None) -> Optional[np.ndarray]:
        """Return the next available chunk or ``None`` if none ready."""

    def drain(self) -> list:
        chunks = []
        while True:
            chunk = self.read(timeout=0)
            if chunk is None:
                return chunks
            chunks.append(chunk)

    def shutdown(self) -> None:
        with contextlib.suppress(Exception):
            self.stop()
        with contextlib.suppress(Exception):
            self.close()


class CaptureError(RuntimeError):
    """Raised when the microphone stream cannot be opened."""


__all__ = ["AudioCapture", "CaptureError", "CaptureInfo"]
