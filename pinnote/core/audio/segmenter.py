"""Cut the clip preceding each pin out of the full recording."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple

from ...data.clips import ClipStore
from ...data.models import Pin
from ...errors import SegmentationFailed
from ...logging import get_logger

LOGGER = get_logger(__name__)

WINDOW_SECONDS = 15


def pin_window(pin_time: float, window: float = WINDOW_SECONDS) -> Tuple[float, float]:
    """Return ``(start, end)`` of the clip that ends at ``pin_time``."""

    if pin_time < 0:
        raise ValueError("pin_time must be non-negative")
    return max(0, pin_time - window), pin_time


class FFmpegTrimmer:
    """Cuts a time range of an audio file with the ffmpeg CLI.

    The stream is copied when source and target share a container and
    encoded to AAC otherwise, which is the case for WAV recordings.
    """

    def __init__(self, binary: str = "ffmpeg") -> None:
        self.binary = binary

    def codec(self, source: Path, target: Path) -> str:
        if Path(source).suffix.lower() == Path(target).suffix.lower():
            return "copy"
        return "aac"

    def command(self, source: Path, target: Path, start: float, duration: float) -> List[str]:
        return [
            self.binary,
            "-hide_banner",
            "-loglevel",
            "error",
            "-y",
            "-ss",
            f"{start:g}",
            "-t",
            f"{duration:g}",
            "-i",
            str(source),
            "-acodec",
            self.codec(source, target),
            str(target),
        ]

    def trim(self, source: Path, target: Path, start: float, duration: float) -> Path:
        executable = shutil.which(self.binary) or self.binary
        command = self.command(source, target, start, duration)
        command[0] = executable
        LOGGER.debug("Running %s", " ".join(command))
        try:
            result = subprocess.run(command, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise SegmentationFailed(f"ffmpeg trim failed: {exc}") from exc
        if result.returncode != 0:
            detail = (result.stderr or "").strip().splitlines()
            message = detail[-1] if detail else f"exit code {result.returncode}"
            raise SegmentationFailed(f"ffmpeg trim failed: {message}")
        return Path(target)


class Segmenter:
    def __init__(
        self,
        trimmer: Optional[FFmpegTrimmer] = None,
        clips: Optional[ClipStore] = None,
        window: float = WINDOW_SECONDS,
    ) -> None:
        self.trimmer = trimmer or FFmpegTrimmer()
        self.clips = clips or ClipStore()
        self.window = window

    def segment(self, recording_path: Path, pin: Pin, index: int) -> Path:
        start, end = pin_window(pin.pin_time, self.window)
        target = self.clips.path_for(recording_path, index)
        LOGGER.info("Trimming pin %d [%ss, %ss] into %s", index, start, end, target.name)
        return self.trimmer.trim(Path(recording_path), target, start, end - start)


__all__ = ["FFmpegTrimmer", "Segmenter", "WINDOW_SECONDS", "pin_window"]
