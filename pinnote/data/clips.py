"""Ownership of the trimmed audio clips derived from a recording."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..logging import get_logger

LOGGER = get_logger(__name__)

CLIP_SUFFIX = ".m4a"


class ClipStore:
    """Names and removes clip files.

    Clips are disposable cache artifacts: the session log is the source of
    truth, so deletion never raises.
    """

    def __init__(self, suffix: str = CLIP_SUFFIX) -> None:
        self.suffix = suffix

    def path_for(self, recording_path: Path, index: int) -> Path:
        recording_path = Path(recording_path)
        path = recording_path.with_name(f"{recording_path.name}.pin_{index}{self.suffix}")
        path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def delete(self, path: Optional[Path]) -> bool:
        """Remove ``path`` if present. Returns ``True`` when a file was removed."""

        if path is None:
            return False
        path = Path(path)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            LOGGER.warning("Failed to delete clip %s: %s", path, exc)
            return False
        LOGGER.debug("Deleted clip %s", path)
        return True


__all__ = ["CLIP_SUFFIX", "ClipStore"]
