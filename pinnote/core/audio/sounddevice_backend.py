"""Microphone capture powered by sounddevice/PortAudio."""

from __future__ import annotations

import contextlib
import queue
from typing import List, Optional

import numpy as np

from ...logging import get_logger
from .base import AudioCapture, CaptureError, CaptureInfo

LOGGER = get_logger(__name__)

_FALLBACK_SAMPLE_RATES = (48_000, 44_100, 16_000)


def _parse_device(device: Optional[str]) -> Optional[int | str]:
    if device is None:
        return None
    if device.isdigit():
        return int(device)
    return device


def microphone_authorized(device: Optional[str] = None) -> bool:
    """Return ``True`` when an input device is available to record from.

    PortAudio refuses to enumerate or open input devices when the operating
    system denies microphone access, so a missing input device is treated the
    same as a denied permission.
    """

    try:
        import sounddevice as sd
    except (ImportError, OSError) as exc:
        LOGGER.warning("sounddevice is unavailable: %s", exc)
        return False

    try:
        info = sd.query_devices(_parse_device(device), kind="input")
    except (ValueError, sd.PortAudioError) as exc:
        LOGGER.warning("No usable input device %s: %s", device or "(default)", exc)
        return False
    return int(info.get("max_input_channels") or 0) > 0


class SoundDeviceCapture(AudioCapture):
    """Capture stream using the sounddevice library."""

    def __init__(self, info: CaptureInfo, block_size: int = 1024) -> None:
        try:
            import sounddevice as sd
        except ImportError as exc:  # pragma: no cover - handled by dependency guards
            raise CaptureError("sounddevice dependency is required for capture") from exc

        self._sd = sd
        self.info = info
        self._device = _parse_device(info.device)
        self._block_size = block_size
        self._queue: queue.Queue[np.ndarray] = queue.Queue()
        self._stream = None

    def _callback(self, indata, frames, time_info, status) -> None:  # pragma: no cover - runtime only
        if status:
            LOGGER.warning("sounddevice status: %s", status)
        self._queue.put(indata.copy())

    def _sample_rate_candidates(self) -> List[int]:
        requested = int(self.info.sample_rate)
        candidates = [requested]
        candidates.extend(rate for rate in _FALLBACK_SAMPLE_RATES if rate != requested)
        return candidates

    def start(self) -> None:
        if self._stream is not None:
            return
        LOGGER.info("Starting microphone capture on device %s", self._device)

        last_error: Optional[Exception] = None
        for sample_rate in self._sample_rate_candidates():
            try:
                stream = self._sd.InputStream(
                    samplerate=sample_rate,
                    channels=self.info.channels,
                    dtype="float32",
                    blocksize=self._block_size,
                    device=self._device,
                    callback=self._callback,
                )
            except self._sd.PortAudioError as exc:  # pragma: no cover - depends on runtime device
                last_error = exc
                if "sample rate" in str(exc).lower():
                    LOGGER.warning("Device %s rejected %s Hz: %s", self._device, sample_rate, exc)
                    continue
                raise CaptureError(str(exc)) from exc

            try:
                stream.start()
            except self._sd.PortAudioError as exc:  # pragma: no cover - depends on runtime device
                last_error = exc
                with contextlib.suppress(Exception):
                    stream.close()
                LOGGER.warning("Failed to start capture at %s Hz: %s", sample_rate, exc)
                continue

            self._stream = stream
            if sample_rate != self.info.sample_rate:
                LOGGER.warning(
                    "Adjusted sample rate from %s Hz to %s Hz",
                    self.info.sample_rate,
                    sample_rate,
                )
            self.info.sample_rate = sample_rate
            return

        message = f"Failed to open microphone {self._device}: no compatible sample rate"
        if last_error is not None:
            message = f"{message} ({last_error})"
        raise CaptureError(message) from last_error

    def stop(self) -> None:
        if self._stream is not None:
            LOGGER.info("Stopping microphone capture")
            self._stream.stop()

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        while not self._queue.empty():
            try:
                self._queue.get_nowait()
            except queue.Empty:  # pragma: no cover
                break

    def read(self, timeout: Optional[float] = None) -> Optional[np.ndarray]:
        try:
            if timeout is None or timeout <= 0:
                return self._queue.get_nowait()
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None


__all__ = ["SoundDeviceCapture", "microphone_authorized"]
