"""Error kinds raised across pinnote.

Every error carries the underlying detail text in its message so that the
presentation layer can show a single notification without unpacking causes.
"""

from __future__ import annotations


class PinnoteError(RuntimeError):
    """Base class for all domain errors."""


class PermissionDenied(PinnoteError):
    """Microphone access is not authorised."""


class InvalidTransition(PinnoteError):
    """An operation was requested in a state that does not allow it."""


class SegmentationFailed(PinnoteError):
    """The trim utility reported a non-success result."""


class TranscriptionFailed(PinnoteError):
    """The remote speech-to-text call failed."""


class CorrectionFailed(PinnoteError):
    """The remote chat call failed, including after the fallback attempt."""


class PlaybackBusy(PinnoteError):
    """Another pin is currently audible."""


class NoClip(PinnoteError):
    """The pin has nothing to play on the requested channel."""


class StorageIOFailed(PinnoteError):
    """Reading or writing the persisted session log failed."""


__all__ = [
    "CorrectionFailed",
    "InvalidTransition",
    "NoClip",
    "PermissionDenied",
    "PinnoteError",
    "PlaybackBusy",
    "SegmentationFailed",
    "StorageIOFailed",
    "TranscriptionFailed",
]
