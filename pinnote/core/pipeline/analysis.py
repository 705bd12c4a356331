"""Per-pin segmentation, transcription and correction."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ...data.models import Analysis, Pin
from ...errors import PinnoteError
from ...logging import get_logger
from ...services.correction.base import CorrectionService
from ...services.transcription.base import TranscriptionService
from ..audio.segmenter import Segmenter

LOGGER = get_logger(__name__)


@dataclass
class AnalysisOutcome:
    """Result of one pipeline run, including the partial state on abort."""

    pins: List[Pin]
    analyzed: int = 0
    error: Optional[PinnoteError] = None
    failed_index: Optional[int] = None
    cancelled: bool = False
    analyses: List[Analysis] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.error is None and not self.cancelled

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class PinAnalysisPipeline:
    """Analyses pins strictly one after another, in capture order.

    The first failing pin aborts the run; earlier pins keep their analyses
    and the error is reported once on the outcome.
    """

    def __init__(
        self,
        segmenter: Segmenter,
        transcription: TranscriptionService,
        correction: CorrectionService,
    ) -> None:
        self.segmenter = segmenter
        self.transcription = transcription
        self.correction = correction

    def analyze_pin(self, recording_path: Path, pin: Pin, index: int) -> Analysis:
        clip_path = self.segmenter.segment(recording_path, pin, index)
        original = self.transcription.transcribe(clip_path)
        suggestion = self.correction.correct(original)
        return Analysis(original=original, suggestion=suggestion, clip_path=clip_path)

    def run(
        self,
        recording_path: Path,
        pins: Sequence[Pin],
        cancel: Optional[threading.Event] = None,
        on_pin: Optional[Callable[[int, Pin], None]] = None,
    ) -> AnalysisOutcome:
        outcome = AnalysisOutcome(pins=list(pins))
        LOGGER.info("Analysing %d pin(s) of %s", len(outcome.pins), recording_path)

        for index, pin in enumerate(outcome.pins):
            if cancel is not None and cancel.is_set():
                outcome.cancelled = True
                break
            if pin.analysis is not None:
                outcome.analyses.append(pin.analysis)
                continue
            try:
                analysis = self.analyze_pin(Path(recording_path), pin, index)
            except PinnoteError as exc:
                LOGGER.error("Analysis aborted at pin %d: %s", index, exc)
                outcome.error = exc
                outcome.failed_index = index
                break
            if cancel is not None and cancel.is_set():
                LOGGER.info("Run cancelled; discarding analysis of pin %d", index)
                outcome.cancelled = True
                break

            pin.assign(analysis)
            outcome.analyses.append(analysis)
            outcome.analyzed += 1
            if on_pin is not None:
                try:
                    on_pin(index, pin)
                except Exception:  # pragma: no cover - runtime behaviour
                    LOGGER.exception("Pin progress callback raised an exception")

        if outcome.completed:
            LOGGER.info("Analysis finished for %d pin(s)", len(outcome.pins))
        return outcome


__all__ = ["AnalysisOutcome", "PinAnalysisPipeline"]
