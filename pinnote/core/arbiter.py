"""App-wide arbitration of the single audible playback slot."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Optional, Tuple

from ..data.models import Channel, Pin, PlaybackHandle
from ..errors import NoClip, PlaybackBusy
from ..logging import get_logger
from .audio.playback import ClipPlayer, Playback, SpeechPlayer

LOGGER = get_logger(__name__)


class PlaybackArbiter:
    """Holds at most one live :class:`PlaybackHandle`.

    One instance is shared by every flow that plays clips or corrections so
    that exclusivity holds across screens. Requests for a pin other than the
    audible one fail with :class:`PlaybackBusy`; repeating the request for the
    active channel toggles it off; switching channel on the same pin stops the
    current output before the new one starts.
    """

    def __init__(
        self,
        clip_player: ClipPlayer,
        speech_player: SpeechPlayer,
        clip_limit: Optional[float] = None,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self.clip_player = clip_player
        self.speech_player = speech_player
        self.clip_limit = clip_limit
        self._timer_factory = timer_factory
        self._lock = threading.RLock()
        self._active: Optional[Tuple[PlaybackHandle, Playback]] = None
        self._auto_stop: Optional[threading.Timer] = None

    @property
    def active(self) -> Optional[PlaybackHandle]:
        with self._lock:
            return self._active[0] if self._active else None

    def play_original(
        self, pin: Pin, pin_index: int, session_id: Optional[str] = None
    ) -> Optional[PlaybackHandle]:
        """Play the pin's clip, or stop it if it is already playing.

        Returns the new handle, or ``None`` when the call toggled playback off.
        """

        analysis = pin.analysis
        if analysis is None or not analysis.clip_path:
            raise NoClip("No original audio clip for this pin")
        clip_path = Path(analysis.clip_path)
        if not clip_path.exists():
            raise NoClip(f"Clip file is missing: {clip_path}")

        with self._lock:
            if self._toggle_or_reject((session_id, pin_index), Channel.ORIGINAL):
                return None
            self._release()
            playback = self.clip_player.play(clip_path)
            handle = self._install(session_id, pin_index, Channel.ORIGINAL, playback)
            if self.clip_limit and not playback.done:
                self._auto_stop = self._timer_factory(self.clip_limit, self._expire, args=(handle,))
                self._auto_stop.daemon = True
                self._auto_stop.start()
            return handle

    def play_correction(
        self, pin: Pin, pin_index: int, session_id: Optional[str] = None
    ) -> Optional[PlaybackHandle]:
        """Speak the pin's suggestion, or stop it if it is already speaking."""

        analysis = pin.analysis
        if analysis is None or not analysis.suggestion:
            raise NoClip("No suggestion text for this pin")

        with self._lock:
            if self._toggle_or_reject((session_id, pin_index), Channel.CORRECTION):
                return None
            self._release()
            playback = self.speech_player.speak(analysis.suggestion)
            return self._install(session_id, pin_index, Channel.CORRECTION, playback)

    def stop_all(self) -> None:
        with self._lock:
            self._release()

    def _toggle_or_reject(self, key: Tuple[Optional[str], int], channel: Channel) -> bool:
        if self._active is None:
            return False
        handle = self._active[0]
        if handle.pin != key:
            raise PlaybackBusy("Another pin is currently playing; stop it first")
        if handle.channel is channel:
            LOGGER.debug("Toggling off %s playback for pin %s", channel.value, key)
            self._release()
            return True
        return False

    def _install(
        self,
        session_id: Optional[str],
        pin_index: int,
        channel: Channel,
        playback: Playback,
    ) -> PlaybackHandle:
        handle = PlaybackHandle(session_id, pin_index, channel, finished=playback.finished)
        self._active = (handle, playback)
        LOGGER.info("Playing %s for pin %s of %s", channel.value, pin_index, session_id or "current session")
        playback.finished.add_done_callback(lambda _future: self._on_finished(handle))
        return handle

    def _on_finished(self, handle: PlaybackHandle) -> None:
        with self._lock:
            if self._active is not None and self._active[0] is handle:
                self._active = None
                self._cancel_auto_stop()

    def _expire(self, handle: PlaybackHandle) -> None:
        with self._lock:
            if self._active is not None and self._active[0] is handle:
                LOGGER.info("Clip playback limit reached; stopping")
                self._release()

    def _cancel_auto_stop(self) -> None:
        if self._auto_stop is not None:
            self._auto_stop.cancel()
            self._auto_stop = None

    def _release(self) -> None:
        self._cancel_auto_stop()
        if self._active is None:
            return
        _handle, playback = self._active
        self._active = None
        playback.stop()


__all__ = ["PlaybackArbiter"]
