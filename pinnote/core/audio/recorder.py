"""Background microphone recording to a WAV file."""

from __future__ import annotations

import contextlib
import threading
import time
import uuid
import wave
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from ...logging import get_logger
from .base import AudioCapture

LOGGER = get_logger(__name__)


class WaveWriter:
    """16-bit PCM writer fed with float numpy chunks in ``[-1, 1]``."""

    def __init__(self, path: Path, sample_rate: int, channels: int) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.sample_rate = sample_rate
        self.channels = channels
        self.frames_written = 0
        self._wave = wave.open(str(self.path), "wb")
        self._wave.setnchannels(channels)
        self._wave.setsampwidth(2)
        self._wave.setframerate(sample_rate)

    def write(self, chunk: np.ndarray) -> None:
        data = np.asarray(chunk, dtype=np.float32)
        if data.ndim == 1:
            data = data[:, np.newaxis]
        if data.shape[1] != self.channels:
            # mono input into a stereo file is duplicated, anything else mixed down
            if data.shape[1] == 1:
                data = np.repeat(data, self.channels, axis=1)
            else:
                data = np.repeat(data.mean(axis=1, keepdims=True), self.channels, axis=1)
        pcm = (np.clip(data, -1.0, 1.0) * 32767.0).astype(np.int16)
        self._wave.writeframes(pcm.tobytes())
        self.frames_written += pcm.shape[0]

    @property
    def duration_seconds(self) -> float:
        if not self.sample_rate:
            return 0.0
        return self.frames_written / float(self.sample_rate)

    def close(self) -> None:
        self._wave.close()


class AudioRecorder:
    """Pumps chunks from an :class:`AudioCapture` into a WAV file on a thread.

    ``start`` returns once the microphone is open; ``stop`` flushes whatever
    the device still buffers and returns the finished file.
    """

    def __init__(
        self,
        capture_factory: Callable[[], AudioCapture],
        output_dir: Path,
        poll_timeout: float = 0.1,
    ) -> None:
        self.capture_factory = capture_factory
        self.output_dir = Path(output_dir)
        self.poll_timeout = poll_timeout
        self._capture: Optional[AudioCapture] = None
        self._writer: Optional[WaveWriter] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def is_recording(self) -> bool:
        return self._thread is not None

    def _next_path(self) -> Path:
        stamp = time.strftime("%Y%m%d-%H%M%S")
        return self.output_dir / f"recording-{stamp}-{uuid.uuid4().hex[:6]}.wav"

    def start(self) -> Path:
        if self._thread is not None:
            raise RuntimeError("Recorder is already running")

        capture = self.capture_factory()
        capture.start()
        path = self._next_path()
        try:
            writer = WaveWriter(path, capture.info.sample_rate, capture.info.channels)
        except Exception:
            capture.shutdown()
            raise

        self._capture = capture
        self._writer = writer
        self._stop.clear()
        self._thread = threading.Thread(target=self._pump, name="pinnote-recorder", daemon=True)
        self._thread.start()
        LOGGER.info("Recording to %s", path)
        return path

    def _pump(self) -> None:
        assert self._capture is not None and self._writer is not None
        while not self._stop.is_set():
            chunk = self._capture.read(timeout=self.poll_timeout)
            if chunk is not None:
                self._writer.write(chunk)

    def _finish(self) -> Optional[WaveWriter]:
        if self._thread is None:
            return None
        self._stop.set()
        self._thread.join()
        capture, writer = self._capture, self._writer
        self._thread = self._capture = self._writer = None
        assert capture is not None and writer is not None
        try:
            with contextlib.suppress(Exception):
                capture.stop()
            for chunk in capture.drain():
                writer.write(chunk)
        finally:
            capture.shutdown()
            writer.close()
        return writer

    def stop(self) -> Path:
        writer = self._finish()
        if writer is None:
            raise RuntimeError("Recorder is not running")
        LOGGER.info("Recorded %.1fs to %s", writer.duration_seconds, writer.path)
        return writer.path

    def discard(self) -> None:
        """Stop without keeping the file."""

        writer = self._finish()
        if writer is not None:
            writer.path.unlink(missing_ok=True)


__all__ = ["AudioRecorder", "WaveWriter"]
