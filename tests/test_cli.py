"""Tests for the CLI commands that work on the saved session log."""

from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest
from typer.testing import CliRunner

from pinnote import cli, config
from pinnote.data.models import Analysis, Pin, Session
from pinnote.data.storage import SessionLogStore, SqliteBackend

runner = CliRunner()


@pytest.fixture()
def database(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("PINNOTE_"):
            monkeypatch.delenv(key, raising=False)
    db_path = tmp_path / "pinnote.db"
    monkeypatch.setenv("PINNOTE_DATABASE_PATH", str(db_path))
    config.reset_settings()
    yield db_path
    config.reset_settings()


def _seed(db_path, tmp_path, texts):
    pins = []
    for index, (original, suggestion) in enumerate(texts):
        clip = tmp_path / f"recording.wav.pin_{index}.wav"
        clip.write_bytes(b"clip")
        pin = Pin(pin_time=20 * (index + 1))
        pin.assign(Analysis(original=original, suggestion=suggestion, clip_path=clip))
        pins.append(pin)
    session = Session(
        session_id="session-abc123",
        date=datetime(2025, 1, 1, tzinfo=timezone.utc),
        audio_path=tmp_path / "recording.wav",
        pins=pins,
    )
    SessionLogStore(SqliteBackend(db_path)).append(session)
    return session


def test_history_without_sessions(database) -> None:
    result = runner.invoke(cli.app, ["history"])

    assert result.exit_code == 0
    assert "No recordings found." in result.stdout


def test_history_renders_pins(database, tmp_path) -> None:
    _seed(
        database,
        tmp_path,
        [("I goes to school", "I go to school."), ("This audio might contain no speech.$", "No correction")],
    )

    result = runner.invoke(cli.app, ["history"])

    assert result.exit_code == 0
    assert "session-abc123" in result.stdout
    assert "00:05 - 00:20" in result.stdout
    assert "I go to school." in result.stdout
    assert "Original:      - - -" in result.stdout
    assert "AI Correction: No correction" in result.stdout


def test_delete_removes_pin_and_clip(database, tmp_path) -> None:
    _seed(database, tmp_path, [("a", "A"), ("b", "B")])

    result = runner.invoke(cli.app, ["delete", "session-abc123", "0"])

    assert result.exit_code == 0
    assert "Pin was removed successfully." in result.stdout
    assert not (tmp_path / "recording.wav.pin_0.wav").exists()
    remaining = SessionLogStore(SqliteBackend(database)).get("session-abc123")
    assert [pin.analysis.original for pin in remaining.pins] == ["b"]


def test_delete_unknown_pin_fails(database, tmp_path) -> None:
    _seed(database, tmp_path, [("a", "A")])

    result = runner.invoke(cli.app, ["delete", "session-abc123", "5"])

    assert result.exit_code == 1


def test_delete_many_removes_selected_pins(database, tmp_path) -> None:
    _seed(database, tmp_path, [("a", "A"), ("b", "B")])

    result = runner.invoke(cli.app, ["delete-many", "session-abc123_1", "session-abc123_0"])

    assert result.exit_code == 0
    assert "(2 deleted)" in result.stdout
    assert SessionLogStore(SqliteBackend(database)).load() == []


def test_delete_many_rejects_malformed_keys(database) -> None:
    result = runner.invoke(cli.app, ["delete-many", "not-a-key"])

    assert result.exit_code != 0


def test_settings_lists_environment_variables(database) -> None:
    result = runner.invoke(cli.app, ["settings"])

    assert result.exit_code == 0
    assert "PINNOTE_PROXY_URL=http://localhost:8787" in result.stdout
    assert f"PINNOTE_DATABASE_PATH={database}" in result.stdout
