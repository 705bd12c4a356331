"""Correction services."""

from .base import NO_CORRECTION, NO_SUGGESTION, CompletionError, CorrectionService
from .dummy import DummyCorrectionService

__all__ = [
    "CompletionError",
    "CorrectionService",
    "DummyCorrectionService",
    "NO_CORRECTION",
    "NO_SUGGESTION",
]
