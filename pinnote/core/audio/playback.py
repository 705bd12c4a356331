"""Audio output for clips and synthesized corrections."""

from __future__ import annotations

import abc
import contextlib
import os
import tempfile
import threading
from concurrent.futures import Future, InvalidStateError
from pathlib import Path
from typing import Callable, Optional

from ...logging import get_logger
from ...utils.audio import load_audio

LOGGER = get_logger(__name__)


class Playback:
    """A started audio output.

    ``finished`` resolves exactly once, either at natural end or on ``stop``.
    """

    def __init__(self, halt: Optional[Callable[[], None]] = None) -> None:
        self.finished: "Future[None]" = Future()
        self.stopped = threading.Event()
        self._halt = halt

    @property
    def done(self) -> bool:
        return self.finished.done()

    def complete(self) -> None:
        # done-callbacks run on the calling thread; no lock may be held here
        try:
            self.finished.set_result(None)
        except InvalidStateError:
            pass

    def stop(self) -> None:
        if self.done:
            return
        self.stopped.set()
        if self._halt is not None:
            try:
                self._halt()
            except Exception:  # pragma: no cover - device specific
                LOGGER.exception("Failed to halt audio output")
        self.complete()


class ClipPlayer(abc.ABC):
    @abc.abstractmethod
    def play(self, path: Path) -> Playback:
        """Start playing ``path`` and return without waiting for the end."""


class SpeechPlayer(abc.ABC):
    @abc.abstractmethod
    def speak(self, text: str) -> Playback:
        """Start speaking ``text`` and return without waiting for the end."""


def _play_blocking(sd, path: Path, playback: Playback, ffmpeg_binary: str = "ffmpeg") -> None:
    data, sample_rate = load_audio(path, ffmpeg_binary)
    if playback.stopped.is_set():
        return
    sd.play(data, sample_rate)
    sd.wait()


class SoundDeviceClipPlayer(ClipPlayer):
    """Plays clips on the default output device, decoding non-WAV files with ffmpeg."""

    def __init__(self, ffmpeg_binary: str = "ffmpeg") -> None:
        import sounddevice as sd

        self._sd = sd
        self.ffmpeg_binary = ffmpeg_binary

    def play(self, path: Path) -> Playback:
        playback = Playback(halt=self._sd.stop)

        def run() -> None:
            try:
                _play_blocking(self._sd, Path(path), playback, self.ffmpeg_binary)
            except Exception:
                LOGGER.exception("Clip playback failed for %s", path)
            finally:
                playback.complete()

        threading.Thread(target=run, name="pinnote-clip", daemon=True).start()
        return playback


class OpenAISpeechPlayer(SpeechPlayer):
    """Synthesizes speech with the OpenAI audio API and plays it."""

    def __init__(
        self,
        model: str = "gpt-4o-mini-tts",
        voice: str = "alloy",
        api_key: Optional[str] = None,
    ) -> None:
        import sounddevice as sd

        try:
            from openai import OpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - runtime dependency guard
            raise RuntimeError("openai package is required for OpenAISpeechPlayer") from exc

        self._sd = sd
        self.model = model
        self.voice = voice
        self.client = OpenAI(api_key=api_key) if api_key else OpenAI()

    def _synthesize(self, text: str) -> Path:
        fd, name = tempfile.mkstemp(prefix="pinnote-tts-", suffix=".wav")
        os.close(fd)
        with self.client.audio.speech.with_streaming_response.create(
            model=self.model,
            voice=self.voice,
            input=text,
            response_format="wav",
        ) as response:
            response.stream_to_file(name)
        return Path(name)

    def speak(self, text: str) -> Playback:
        playback = Playback(halt=self._sd.stop)

        def run() -> None:
            audio_path: Optional[Path] = None
            try:
                audio_path = self._synthesize(text)
                _play_blocking(self._sd, audio_path, playback)
            except Exception:
                LOGGER.exception("Speech playback failed")
            finally:
                if audio_path is not None:
                    with contextlib.suppress(OSError):
                        audio_path.unlink()
                playback.complete()

        threading.Thread(target=run, name="pinnote-speech", daemon=True).start()
        return playback


class SilentSpeechPlayer(SpeechPlayer):
    """Speech output that finishes immediately, for setups without TTS."""

    def speak(self, text: str) -> Playback:
        LOGGER.info("Speech output disabled; would say: %s", text)
        playback = Playback()
        playback.complete()
        return playback


__all__ = [
    "ClipPlayer",
    "OpenAISpeechPlayer",
    "Playback",
    "SilentSpeechPlayer",
    "SoundDeviceClipPlayer",
    "SpeechPlayer",
]
