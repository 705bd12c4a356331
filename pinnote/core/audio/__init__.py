"""Audio capture, segmentation and output."""

from .base import AudioCapture, CaptureError, CaptureInfo

__all__ = ["AudioCapture", "CaptureError", "CaptureInfo"]
