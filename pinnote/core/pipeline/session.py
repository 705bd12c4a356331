"""Recording lifecycle: Idle -> Recording -> Stopped -> Idle."""

from __future__ import annotations

import threading
import time
import uuid
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ...data.models import Pin, Session
from ...data.storage import SessionLogStore
from ...errors import InvalidTransition, PermissionDenied, StorageIOFailed
from ...logging import get_logger
from ..arbiter import PlaybackArbiter
from ..audio.recorder import AudioRecorder
from .analysis import AnalysisOutcome, PinAnalysisPipeline

LOGGER = get_logger(__name__)


class RecordingState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of the machine published after every transition."""

    state: RecordingState
    elapsed_seconds: int = 0
    pins: Tuple[Pin, ...] = ()
    recording_path: Optional[Path] = None
    analyzing: bool = False
    analysis_done: bool = False
    pin_notice: Optional[int] = None
    error: Optional[str] = None
    saved_session_id: Optional[str] = None


SnapshotListener = Callable[[SessionSnapshot], None]


class RecordingSessionMachine:
    """Owns one recording at a time and hands its pins to the pipeline.

    ``stop_recording`` returns immediately; the machine stays Stopped with
    ``analyzing`` set until the pipeline finishes in the executor. A fully
    successful run appends exactly one :class:`Session` to the log. ``reset``
    discards any run still in flight: calls already issued complete, but no
    further pins are analysed and nothing is persisted.
    """

    def __init__(
        self,
        recorder: AudioRecorder,
        pipeline: PinAnalysisPipeline,
        log_store: SessionLogStore,
        arbiter: Optional[PlaybackArbiter] = None,
        authorize: Callable[[], bool] = lambda: True,
        executor: Optional[Executor] = None,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
        notice_seconds: float = 1.0,
        tick_seconds: float = 1.0,
        session_prefix: str = "session",
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.recorder = recorder
        self.pipeline = pipeline
        self.log_store = log_store
        self.arbiter = arbiter
        self.authorize = authorize
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="pinnote-analysis")
        self.clock = clock
        self.timer_factory = timer_factory
        self.notice_seconds = notice_seconds
        self.tick_seconds = tick_seconds
        self.session_prefix = session_prefix
        self.now = now

        self._lock = threading.RLock()
        self._listeners: List[SnapshotListener] = []
        self._state = RecordingState.IDLE
        self._generation = 0
        self._cancel: Optional[threading.Event] = None
        self._ticker_stop: Optional[threading.Event] = None
        self._notice_timer: Optional[threading.Timer] = None
        self._clear()

    # ------------------------------------------------------------------ state
    def _clear(self) -> None:
        self._started_at: Optional[float] = None
        self._elapsed = 0
        self._pins: List[Pin] = []
        self._recording_path: Optional[Path] = None
        self._analyzing = False
        self._analysis_done = False
        self._notice: Optional[int] = None
        self._error: Optional[str] = None
        self._saved_session_id: Optional[str] = None

    @property
    def state(self) -> RecordingState:
        return self._state

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                state=self._state,
                elapsed_seconds=self._elapsed,
                pins=tuple(pin.model_copy() for pin in self._pins),
                recording_path=self._recording_path,
                analyzing=self._analyzing,
                analysis_done=self._analysis_done,
                pin_notice=self._notice,
                error=self._error,
                saved_session_id=self._saved_session_id,
            )

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _emit(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # pragma: no cover - runtime behaviour
                LOGGER.exception("Snapshot listener raised an exception")

    def _seconds_since_start(self) -> int:
        if self._started_at is None:
            return 0
        return max(0, int(self.clock() - self._started_at))

    # ----------------------------------------------------------------- timers
    def _start_ticker(self) -> None:
        stop = threading.Event()
        self._ticker_stop = stop

        def tick() -> None:
            while not stop.wait(self.tick_seconds):
                with self._lock:
                    if self._state is not RecordingState.RECORDING or stop.is_set():
                        return
                    self._elapsed = self._seconds_since_start()
                self._emit()

        threading.Thread(target=tick, name="pinnote-elapsed", daemon=True).start()

    def _stop_ticker(self) -> None:
        if self._ticker_stop is not None:
            self._ticker_stop.set()
            self._ticker_stop = None

    def _cancel_notice(self) -> None:
        if self._notice_timer is not None:
            self._notice_timer.cancel()
            self._notice_timer = None

    def _expire_notice(self, notice: int) -> None:
        with self._lock:
            if self._notice != notice:
                return
            self._notice = None
            self._notice_timer = None
        self._emit()

    # ------------------------------------------------------------- operations
    def start_recording(self) -> None:
        with self._lock:
            if self._state is not RecordingState.IDLE:
                raise InvalidTransition(f"Cannot start recording while {self._state.value}")
            if not self.authorize():
                raise PermissionDenied("Microphone permission is required")
            self._clear()
            self.recorder.start()
            self._started_at = self.clock()
            self._state = RecordingState.RECORDING
            self._start_ticker()
        LOGGER.info("Recording started")
        self._emit()

    def pin(self) -> Pin:
        with self._lock:
            if self._state is not RecordingState.RECORDING:
                raise InvalidTransition("Pins can only be added while recording")
            pin = Pin(pin_time=self._seconds_since_start())
            self._pins.append(pin)
            notice = len(self._pins)
            self._notice = notice
            self._cancel_notice()
            timer = self.timer_factory(self.notice_seconds, self._expire_notice, args=(notice,))
            timer.daemon = True
            timer.start()
            self._notice_timer = timer
        LOGGER.info("Pinned #%d at %ss", notice, pin.pin_time)
        self._emit()
        return pin.model_copy()

    def stop_recording(self) -> Optional["Future[AnalysisOutcome]"]:
        """Stop capture and schedule the analysis of the captured pins.

        Returns the future of the analysis run, or ``None`` without pins.
        """

        with self._lock:
            if self._state is not RecordingState.RECORDING:
                raise InvalidTransition("No recording in progress")
            self._stop_ticker()
            try:
                path = self.recorder.stop()
            except Exception:
                self._clear()
                self._state = RecordingState.IDLE
                raise
            self._elapsed = self._seconds_since_start()
            self._recording_path = Path(path)
            self._state = RecordingState.STOPPED
            job = None
            if self._pins:
                self._analyzing = True
                self._generation += 1
                self._cancel = threading.Event()
                job = (self._generation, self._recording_path, list(self._pins), self._cancel)
        LOGGER.info("Recording stopped after %ss with %d pin(s)", self._elapsed, len(self._pins))
        self._emit()
        if job is None:
            return None
        return self.executor.submit(self._analyse, *job)

    def _analyse(
        self,
        generation: int,
        recording_path: Path,
        pins: List[Pin],
        cancel: threading.Event,
    ) -> AnalysisOutcome:
        try:
            outcome = self.pipeline.run(recording_path, pins, cancel=cancel, on_pin=lambda *_: self._emit())
        except Exception as exc:
            LOGGER.exception("Analysis crashed")
            with self._lock:
                if generation == self._generation:
                    self._analyzing = False
                    self._error = str(exc) or type(exc).__name__
            self._emit()
            raise
        with self._lock:
            if generation != self._generation or cancel.is_set():
                LOGGER.info("Discarding analysis of a recording that was reset")
                outcome.cancelled = True
                return outcome
            self._analyzing = False
            if outcome.error is not None:
                self._error = str(outcome.error)
            elif outcome.completed:
                session = Session(
                    session_id=f"{self.session_prefix}-{uuid.uuid4().hex[:8]}",
                    date=self.now(),
                    audio_path=recording_path,
                    pins=[pin.model_copy() for pin in pins],
                )
                try:
                    self.log_store.append(session)
                except StorageIOFailed as exc:
                    self._error = str(exc)
                    outcome.error = exc
                else:
                    self._analysis_done = True
                    self._saved_session_id = session.session_id
        self._emit()
        return outcome

    def reset(self) -> None:
        if self.arbiter is not None:
            try:
                self.arbiter.stop_all()
            except Exception:  # pragma: no cover - device specific
                LOGGER.exception("Failed to stop playback during reset")
        with self._lock:
            self._generation += 1
            if self._cancel is not None:
                self._cancel.set()
                self._cancel = None
            self._stop_ticker()
            self._cancel_notice()
            if self._state is RecordingState.RECORDING:
                try:
                    self.recorder.discard()
                except Exception:  # pragma: no cover - device specific
                    LOGGER.exception("Failed to discard recording during reset")
            self._clear()
            self._state = RecordingState.IDLE
        LOGGER.info("Session reset")
        self._emit()

    def close(self) -> None:
        """Tear down: release playback, timers and the owned executor."""

        self.reset()
        if self._owns_executor:
            self.executor.shutdown(wait=False)


__all__ = ["RecordingSessionMachine", "RecordingState", "SessionSnapshot"]
