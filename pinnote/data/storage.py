"""Persistent session log with cascading clip deletion."""

from __future__ import annotations

import abc
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Set, Tuple

from pydantic import TypeAdapter, ValidationError

from ..errors import StorageIOFailed
from ..logging import get_logger
from .clips import ClipStore
from .models import PinKey, Session

if TYPE_CHECKING:  # pragma: no cover
    from ..core.arbiter import PlaybackArbiter

LOGGER = get_logger(__name__)

DEFAULT_LOG_KEY = "SESSION_LOGS"

_LOG_ADAPTER: TypeAdapter[List[Session]] = TypeAdapter(List[Session])


class LogBackend(abc.ABC):
    """Key/value slot holding the serialised log."""

    @abc.abstractmethod
    def read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abc.abstractmethod
    def write(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryBackend(LogBackend):
    def __init__(self) -> None:
        self.values: Dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def write(self, key: str, value: str) -> None:
        self.values[key] = value


class SqliteBackend(LogBackend):
    """Key/value slot stored in a single SQLite table."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.path)

    def initialize(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()
        self._initialized = True

    def read(self, key: str) -> Optional[str]:
        if not self._initialized:
            self.initialize()
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM storage WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def write(self, key: str, value: str) -> None:
        if not self._initialized:
            self.initialize()
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO storage (key, value) VALUES (?, ?)",
                (key, value),
            )
            conn.commit()


class SessionLogStore:
    """Ordered log of completed sessions persisted under one key.

    Storage order is chronological append order. Every mutation is a
    read-modify-write of the whole log without locking; a single active
    writer is assumed.
    """

    def __init__(
        self,
        backend: LogBackend,
        clips: Optional[ClipStore] = None,
        arbiter: Optional["PlaybackArbiter"] = None,
        key: str = DEFAULT_LOG_KEY,
    ) -> None:
        self.backend = backend
        self.clips = clips or ClipStore()
        self.arbiter = arbiter
        self.key = key

    def load(self) -> List[Session]:
        """Return all sessions in storage order."""

        try:
            raw = self.backend.read(self.key)
        except (sqlite3.Error, OSError) as exc:
            raise StorageIOFailed(f"Failed to read session log: {exc}") from exc
        if not raw:
            return []
        try:
            return _LOG_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            raise StorageIOFailed(f"Session log is corrupt: {exc}") from exc

    def _save(self, sessions: List[Session]) -> None:
        payload = _LOG_ADAPTER.dump_json(sessions, by_alias=True).decode("utf-8")
        try:
            self.backend.write(self.key, payload)
        except (sqlite3.Error, OSError) as exc:
            raise StorageIOFailed(f"Failed to write session log: {exc}") from exc

    def append(self, session: Session) -> None:
        sessions = self.load()
        sessions.append(session)
        self._save(sessions)
        LOGGER.info("Saved session %s with %d pin(s)", session.session_id, len(session.pins))

    def list(self) -> List[Session]:
        """Return sessions most recent first without touching storage order."""

        return list(reversed(self.load()))

    def get(self, session_id: str) -> Optional[Session]:
        for session in self.load():
            if session.session_id == session_id:
                return session
        return None

    def _stop_playback(self) -> None:
        if self.arbiter is not None:
            self.arbiter.stop_all()

    def delete_pin(self, session_id: str, pin_index: int) -> bool:
        """Remove one pin and its clip; drop the session once it has no pins."""

        self._stop_playback()
        sessions = self.load()
        position = next(
            (i for i, session in enumerate(sessions) if session.session_id == session_id),
            None,
        )
        if position is None:
            LOGGER.info("Session %s not found; nothing to delete", session_id)
            return False
        session = sessions[position]
        if not 0 <= pin_index < len(session.pins):
            LOGGER.info("Pin %s not found in session %s", pin_index, session_id)
            return False

        pin = session.pins[pin_index]
        if pin.analysis is not None:
            self.clips.delete(pin.analysis.clip_path)

        remaining = session.pins[:pin_index] + session.pins[pin_index + 1 :]
        if remaining:
            sessions[position] = session.model_copy(update={"pins": remaining})
        else:
            LOGGER.info("Session %s has no pins left; removing it", session_id)
            del sessions[position]
        self._save(sessions)
        return True

    def delete_many(self, keys: Iterable[PinKey]) -> int:
        """Remove every addressed pin in one pass and persist once.

        Pins are marked first and filtered afterwards so indices always refer
        to the original capture positions, whatever order the keys come in.
        """

        self._stop_playback()
        sessions = self.load()
        by_id = {session.session_id: session for session in sessions}
        marked: Set[Tuple[str, int]] = set()

        for key in keys:
            key = PinKey(*key)
            if key in marked:
                continue
            session = by_id.get(key.session_id)
            if session is None or not 0 <= key.pin_index < len(session.pins):
                continue
            pin = session.pins[key.pin_index]
            if pin.analysis is not None:
                self.clips.delete(pin.analysis.clip_path)
            marked.add(key)

        if not marked:
            return 0

        kept: List[Session] = []
        for session in sessions:
            pins = [
                pin
                for index, pin in enumerate(session.pins)
                if (session.session_id, index) not in marked
            ]
            if pins:
                kept.append(session.model_copy(update={"pins": pins}))
        self._save(kept)
        LOGGER.info("Deleted %d pin(s); %d session(s) remain", len(marked), len(kept))
        return len(marked)


__all__ = [
    "DEFAULT_LOG_KEY",
    "LogBackend",
    "MemoryBackend",
    "SessionLogStore",
    "SqliteBackend",
]
