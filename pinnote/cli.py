"""Typer CLI entry point for pinnote."""

from __future__ import annotations

import logging
from typing import List, Optional

import typer

from .config import Settings, get_settings, list_environment_settings
from .core.arbiter import PlaybackArbiter
from .core.audio.base import CaptureError, CaptureInfo
from .core.audio.playback import ClipPlayer, SpeechPlayer
from .core.audio.recorder import AudioRecorder
from .core.audio.segmenter import FFmpegTrimmer, Segmenter
from .core.pipeline.analysis import PinAnalysisPipeline
from .core.pipeline.session import RecordingSessionMachine
from .data.clips import ClipStore
from .data.models import Pin, PinKey, Session
from .data.storage import SessionLogStore, SqliteBackend
from .errors import PinnoteError
from .logging import configure_logging, get_logger
from .services.factory import (
    ServiceConfigurationError,
    resolve_correction_backend,
    resolve_speech_backend,
    resolve_transcription_backend,
)
from .utils.display import display_original, format_pin_range, format_relative_date, format_time

app = typer.Typer(help="pinnote: pin moments while recording and review corrected speech")
LOGGER = get_logger(__name__)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    configure_logging(logging.DEBUG if verbose else logging.INFO, force=verbose)


def _build_clip_player(settings: Settings) -> ClipPlayer:
    from .core.audio.playback import SoundDeviceClipPlayer

    return SoundDeviceClipPlayer(settings.ffmpeg_binary)


def _build_speech_player(settings: Settings) -> SpeechPlayer:
    kwargs = {}
    if settings.speech_backend.strip().lower() == "openai":
        kwargs = {
            "model": settings.speech_model,
            "voice": settings.speech_voice,
            "api_key": settings.openai_api_key,
        }
    try:
        return resolve_speech_backend(settings.speech_backend, **kwargs)
    except ServiceConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _build_arbiter(settings: Settings) -> PlaybackArbiter:
    return PlaybackArbiter(
        _build_clip_player(settings),
        _build_speech_player(settings),
        clip_limit=settings.clip_playback_limit,
    )


def _build_store(settings: Settings, arbiter: Optional[PlaybackArbiter] = None) -> SessionLogStore:
    return SessionLogStore(
        SqliteBackend(settings.database_path),
        clips=ClipStore(),
        arbiter=arbiter,
        key=settings.log_key,
    )


def _build_machine(settings: Settings, arbiter: PlaybackArbiter) -> RecordingSessionMachine:
    from .core.audio.sounddevice_backend import SoundDeviceCapture, microphone_authorized

    def capture_factory():
        info = CaptureInfo(
            sample_rate=settings.sample_rate,
            channels=settings.channels,
            device=settings.input_device,
        )
        return SoundDeviceCapture(info, block_size=settings.block_size)

    try:
        transcription = resolve_transcription_backend(settings.transcription_backend)
        correction = resolve_correction_backend(settings.correction_backend)
    except ServiceConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    clips = ClipStore()
    pipeline = PinAnalysisPipeline(
        Segmenter(FFmpegTrimmer(settings.ffmpeg_binary), clips, window=settings.window_seconds),
        transcription,
        correction,
    )
    return RecordingSessionMachine(
        recorder=AudioRecorder(capture_factory, settings.base_dir),
        pipeline=pipeline,
        log_store=_build_store(settings, arbiter),
        arbiter=arbiter,
        authorize=lambda: microphone_authorized(settings.input_device),
        notice_seconds=settings.pin_notice_seconds,
        session_prefix=settings.session_prefix,
    )


def _render_pin(index: int, pin: Pin, window: float) -> List[str]:
    lines = [f"  [{index}] {format_pin_range(pin.pin_time, window)}"]
    if pin.analysis is None:
        lines.append("      No analysis")
    else:
        lines.append(f"      Original:      {display_original(pin.analysis.original)}")
        lines.append(f"      AI Correction: {pin.analysis.suggestion}")
    return lines


def _render_session(session: Session, window: float) -> str:
    lines = [f"{session.session_id}  ({format_relative_date(session.date)})"]
    for index, pin in enumerate(session.pins):
        lines.extend(_render_pin(index, pin, window))
    return "\n".join(lines)


def _wait_for_playback(handle) -> None:
    if handle is None:
        return
    try:
        handle.finished.result()
    except KeyboardInterrupt:
        typer.echo("Stopped.")


def _review_loop(machine: RecordingSessionMachine, arbiter: PlaybackArbiter) -> bool:
    """Let the user replay pins of the stopped recording. Returns False to quit."""

    while True:
        try:
            choice = input("[o N] original, [c N] correction, [n] new record, [q] quit: ").strip().lower()
        except (KeyboardInterrupt, EOFError):
            return False
        if choice in {"q", "quit"}:
            return False
        if choice in {"n", "new"}:
            machine.reset()
            typer.echo("Session reset done.")
            return True
        parts = choice.split()
        if len(parts) != 2 or parts[0] not in {"o", "c"} or not parts[1].isdigit():
            typer.echo("Unknown option.")
            continue
        pins = machine.snapshot().pins
        index = int(parts[1])
        if index >= len(pins):
            typer.echo(f"No pin #{index}.")
            continue
        try:
            if parts[0] == "o":
                arbiter.play_original(pins[index], index)
            else:
                arbiter.play_correction(pins[index], index)
        except PinnoteError as exc:
            typer.echo(str(exc))


@app.command()
def record() -> None:
    """Record, pinning moments with Enter; analyse the pins when stopped."""

    settings = get_settings()
    arbiter = _build_arbiter(settings)
    machine = _build_machine(settings, arbiter)

    try:
        while True:
            try:
                input("Press Enter to start recording (Ctrl+C to quit)...")
                machine.start_recording()
            except (KeyboardInterrupt, EOFError):
                return
            except (PinnoteError, CaptureError) as exc:
                typer.echo(f"Error: {exc}", err=True)
                return

            typer.echo("Recording. [Enter] pin, [s] stop.")
            while True:
                try:
                    choice = input().strip().lower()
                except (KeyboardInterrupt, EOFError):
                    choice = "s"
                if choice in {"s", "stop"}:
                    break
                pin = machine.pin()
                notice = machine.snapshot().pin_notice
                typer.echo(f"Pinned #{notice}!! at {format_time(pin.pin_time)}")

            future = machine.stop_recording()
            snapshot = machine.snapshot()
            typer.echo(f"Stopped at {format_time(snapshot.elapsed_seconds)}.")
            if future is None:
                typer.echo("No pins captured; nothing to analyse.")
            else:
                typer.echo("Analyzing...")
                try:
                    outcome = future.result()
                except Exception as exc:
                    typer.echo(f"Error: {exc}", err=True)
                else:
                    if outcome.error is not None:
                        typer.echo(f"Error: {outcome.error}", err=True)
                    else:
                        typer.echo("AI correction finished for every pin.")
            for index, pin in enumerate(machine.snapshot().pins):
                typer.echo("\n".join(_render_pin(index, pin, settings.window_seconds)))

            if not _review_loop(machine, arbiter):
                return
    finally:
        machine.close()


@app.command()
def history() -> None:
    """List saved sessions, most recent first."""

    settings = get_settings()
    try:
        sessions = _build_store(settings).list()
    except PinnoteError as exc:
        raise typer.Exit(code=_fail(exc))
    if not sessions:
        typer.echo("No recordings found.")
        return
    for session in sessions:
        typer.echo(_render_session(session, settings.window_seconds))


@app.command()
def play(
    session_id: str = typer.Argument(..., help="Session identifier"),
    pin_index: int = typer.Argument(..., help="Pin index inside the session"),
    correction: bool = typer.Option(False, "--correction", help="Speak the AI correction instead of the clip"),
) -> None:
    """Play a saved pin's clip or its spoken correction."""

    settings = get_settings()
    arbiter = _build_arbiter(settings)
    try:
        session = _build_store(settings, arbiter).get(session_id)
        if session is None or not 0 <= pin_index < len(session.pins):
            typer.echo(f"No pin {pin_index} in session {session_id}.", err=True)
            raise typer.Exit(code=1)
        pin = session.pins[pin_index]
        if correction:
            handle = arbiter.play_correction(pin, pin_index, session_id)
        else:
            handle = arbiter.play_original(pin, pin_index, session_id)
        _wait_for_playback(handle)
    except PinnoteError as exc:
        raise typer.Exit(code=_fail(exc))
    finally:
        arbiter.stop_all()


@app.command()
def delete(
    session_id: str = typer.Argument(..., help="Session identifier"),
    pin_index: int = typer.Argument(..., help="Pin index inside the session"),
) -> None:
    """Delete one pin and its clip."""

    try:
        removed = _build_store(get_settings()).delete_pin(session_id, pin_index)
    except PinnoteError as exc:
        raise typer.Exit(code=_fail(exc))
    if not removed:
        typer.echo(f"No pin {pin_index} in session {session_id}.", err=True)
        raise typer.Exit(code=1)
    typer.echo("Pin was removed successfully.")


@app.command("delete-many")
def delete_many(
    keys: List[str] = typer.Argument(..., help="Pins as <sessionId>_<pinIndex>"),
) -> None:
    """Delete several pins at once."""

    try:
        parsed = [PinKey.parse(key) for key in keys]
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    try:
        removed = _build_store(get_settings()).delete_many(parsed)
    except PinnoteError as exc:
        raise typer.Exit(code=_fail(exc))
    typer.echo(f"Selected pins were removed successfully ({removed} deleted).")


@app.command("settings")
def show_settings() -> None:
    """Show configuration values and the variables that override them."""

    for entry in list_environment_settings():
        typer.echo(f"{entry.env_name}={entry.value!s}  (default: {entry.default!s})")


def _fail(exc: Exception) -> int:
    typer.echo(f"Error: {exc}", err=True)
    return 1


if __name__ == "__main__":  # pragma: no cover
    app()
