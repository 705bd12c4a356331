"""Audio file helpers."""

from __future__ import annotations

import shutil
import subprocess
import wave
from pathlib import Path
from typing import Tuple

import numpy as np


_DTYPES = {1: np.uint8, 2: np.int16, 4: np.int32}

DECODE_SAMPLE_RATE = 16_000


def read_wave(path: Path) -> Tuple[np.ndarray, int]:
    """Load a PCM WAV file as float32 frames shaped ``(frames, channels)``."""

    with wave.open(str(path), "rb") as wf:
        frames = wf.readframes(wf.getnframes())
        channels = wf.getnchannels()
        sample_rate = wf.getframerate()
        width = wf.getsampwidth()
    dtype = _DTYPES.get(width)
    if dtype is None:
        raise ValueError(f"Unsupported sample width: {width} bytes")
    data = np.frombuffer(frames, dtype=dtype).astype(np.float32)
    if width == 1:
        data = (data - 128.0) / 128.0
    else:
        data /= float(2 ** (8 * width - 1))
    return data.reshape(-1, channels), sample_rate


def decode_audio(
    path: Path,
    binary: str = "ffmpeg",
    sample_rate: int = DECODE_SAMPLE_RATE,
) -> Tuple[np.ndarray, int]:
    """Decode any ffmpeg-readable file to mono float32 frames."""

    command = [
        shutil.which(binary) or binary,
        "-hide_banner",
        "-loglevel",
        "error",
        "-i",
        str(path),
        "-f",
        "s16le",
        "-acodec",
        "pcm_s16le",
        "-ac",
        "1",
        "-ar",
        str(sample_rate),
        "-",
    ]
    try:
        result = subprocess.run(command, capture_output=True, check=False)
    except OSError as exc:
        raise RuntimeError(f"ffmpeg decode failed: {exc}") from exc
    if result.returncode != 0:
        detail = result.stderr.decode("utf-8", errors="replace").strip().splitlines()
        message = detail[-1] if detail else f"exit code {result.returncode}"
        raise RuntimeError(f"ffmpeg decode failed: {message}")
    data = np.frombuffer(result.stdout, dtype=np.int16).astype(np.float32) / 32768.0
    return data.reshape(-1, 1), sample_rate


def load_audio(path: Path, binary: str = "ffmpeg") -> Tuple[np.ndarray, int]:
    """Read WAV files directly and hand everything else to ffmpeg."""

    if Path(path).suffix.lower() == ".wav":
        return read_wave(path)
    return decode_audio(path, binary)


__all__ = ["DECODE_SAMPLE_RATE", "decode_audio", "load_audio", "read_wave"]
