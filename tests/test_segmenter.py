from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

import pinnote.core.audio.segmenter as segmenter_module
from pinnote.core.audio.segmenter import FFmpegTrimmer, Segmenter, pin_window
from pinnote.data.clips import ClipStore
from pinnote.data.models import Pin
from pinnote.errors import SegmentationFailed


@pytest.mark.parametrize(
    "pin_time, expected",
    [
        (0, (0, 0)),
        (5, (0, 5)),
        (14.5, (0, 14.5)),
        (15, (0, 15)),
        (20, (5, 20)),
        (61.5, (46.5, 61.5)),
    ],
)
def test_pin_window_clamps_to_recording_start(pin_time, expected) -> None:
    assert pin_window(pin_time) == expected


def test_pin_window_rejects_negative_times() -> None:
    with pytest.raises(ValueError):
        pin_window(-1)


def test_clip_path_appends_pin_index(tmp_path: Path) -> None:
    recording = tmp_path / "recording.wav"

    assert ClipStore().path_for(recording, 2) == tmp_path / "recording.wav.pin_2.m4a"


def _fake_run(calls: list, returncode: int = 0, stderr: str = ""):
    def run(command, capture_output, text, check):  # noqa: ARG001
        calls.append(command)
        if returncode == 0:
            Path(command[-1]).write_bytes(b"clip")
        return SimpleNamespace(returncode=returncode, stderr=stderr)

    return run


def test_segmenter_trims_window_before_pin(monkeypatch, tmp_path: Path) -> None:
    calls: list = []
    monkeypatch.setattr(segmenter_module.shutil, "which", lambda name: None)
    monkeypatch.setattr(segmenter_module.subprocess, "run", _fake_run(calls))

    recording = tmp_path / "recording.wav"
    recording.write_bytes(b"audio")

    clip = Segmenter().segment(recording, Pin(pin_time=20), 0)

    assert clip == tmp_path / "recording.wav.pin_0.m4a"
    assert clip.exists()
    command = calls[0]
    assert command[0] == "ffmpeg"
    assert command[command.index("-ss") + 1] == "5"
    assert command[command.index("-t") + 1] == "15"
    assert command[command.index("-i") + 1] == str(recording)
    assert command[command.index("-acodec") + 1] == "aac"
    assert command[-1] == str(clip)


def test_segmenter_uses_configured_window(monkeypatch, tmp_path: Path) -> None:
    calls: list = []
    monkeypatch.setattr(segmenter_module.shutil, "which", lambda name: None)
    monkeypatch.setattr(segmenter_module.subprocess, "run", _fake_run(calls))

    Segmenter(window=5).segment(tmp_path / "r.wav", Pin(pin_time=3), 1)

    command = calls[0]
    assert command[command.index("-ss") + 1] == "0"
    assert command[command.index("-t") + 1] == "3"


def test_trim_failure_reports_ffmpeg_error(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(segmenter_module.shutil, "which", lambda name: None)
    monkeypatch.setattr(
        segmenter_module.subprocess,
        "run",
        _fake_run([], returncode=1, stderr="warning\nInvalid data found when processing input\n"),
    )

    with pytest.raises(SegmentationFailed, match="Invalid data found"):
        FFmpegTrimmer().trim(tmp_path / "in.wav", tmp_path / "out.wav", 0, 5)


def test_missing_ffmpeg_binary_is_a_segmentation_failure(monkeypatch, tmp_path: Path) -> None:
    def missing(*_args, **_kwargs):
        raise FileNotFoundError("ffmpeg")

    monkeypatch.setattr(segmenter_module.shutil, "which", lambda name: None)
    monkeypatch.setattr(segmenter_module.subprocess, "run", missing)

    with pytest.raises(SegmentationFailed):
        FFmpegTrimmer("ffmpeg-missing").trim(tmp_path / "in.wav", tmp_path / "out.wav", 0, 5)


def test_clips_upload_as_m4a(monkeypatch, tmp_path: Path) -> None:
    from pinnote.services.transcription.proxy import upload_name

    monkeypatch.setattr(segmenter_module.shutil, "which", lambda name: None)
    monkeypatch.setattr(segmenter_module.subprocess, "run", _fake_run([]))

    clip = Segmenter().segment(tmp_path / "recording.wav", Pin(pin_time=8), 0)

    assert upload_name(clip) == ("pin.m4a", "audio/m4a")


def test_trimmer_copies_stream_between_same_containers(tmp_path: Path) -> None:
    trimmer = FFmpegTrimmer()

    assert trimmer.codec(tmp_path / "rec.m4a", tmp_path / "rec.m4a.pin_0.m4a") == "copy"
    assert trimmer.codec(tmp_path / "rec.wav", tmp_path / "rec.wav.pin_0.m4a") == "aac"
