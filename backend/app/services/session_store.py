from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
import logging
from threading import RLock
import uuid

from app.core.exceptions import ConflictError, NotFoundError
from app.schemas.timetable import Day, Session, SessionCreate, SessionUpdate
from app.services.conflict_service import describe_conflict, detect_conflicts, find_conflict

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return str(uuid.uuid4())


class SessionStore:
    """
    One teacher's concrete sessions, keyed by id.

    Sessions are immutable values; every mutation swaps the stored instance.
    The re-entrant lock gives the single-writer model: callers compose several
    primitive operations inside ``transaction()`` and readers only ever see the
    state before or after the whole block.
    """

    def __init__(self, sessions: Iterable[Session] = ()) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = RLock()
        if sessions:
            self.load(sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    @property
    def count(self) -> int:
        return len(self._sessions)

    @contextmanager
    def transaction(self) -> Iterator["SessionStore"]:
        with self._lock:
            snapshot = dict(self._sessions)
            try:
                yield self
            except BaseException:
                self._sessions = snapshot
                raise

    def load(self, sessions: Iterable[Session]) -> None:
        """Replace the contents with an externally persisted collection."""
        incoming = list(sessions)
        report = detect_conflicts(incoming)
        if report.has_conflicts:
            first = report.conflicts[0]
            blocking = next(item for item in incoming if item.id == first.affected_sessions[1])
            raise ConflictError(f"Cannot load overlapping sessions: {first.description}", blocking)
        loaded: dict[str, Session] = {}
        for session in incoming:
            if session.id in loaded:
                raise ValueError(f"Duplicate session id {session.id}")
            loaded[session.id] = session
        with self._lock:
            self._sessions = loaded
        logger.info("Loaded %d session(s)", len(incoming))

    def get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError("Session", session_id)
        return session

    def find(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def list_all(self) -> list[Session]:
        with self._lock:
            sessions = list(self._sessions.values())
        return sorted(sessions, key=lambda item: (list(Day).index(item.day), item.start_minutes))

    def list_by_day(self, day: Day) -> list[Session]:
        with self._lock:
            sessions = [item for item in self._sessions.values() if item.day == day]
        return sorted(sessions, key=lambda item: item.start_minutes)

    def find_at(self, day: Day, start: str, end: str) -> Session | None:
        """The session occupying exactly this window, if any."""
        for session in self.list_by_day(day):
            if session.start_time == start and session.end_time == end:
                return session
        return None

    def ensure_free(self, session: Session, exclude_ids: Iterable[str] = ()) -> None:
        excluded = set(exclude_ids) | {session.id}
        blocking = find_conflict(
            session.day,
            session.start_time,
            session.end_time,
            self.list_by_day(session.day),
            exclude_ids=excluded,
        )
        if blocking is not None:
            message = describe_conflict(session.day, session.start_time, session.end_time, blocking)
            logger.warning("Blocked booking %s %s-%s: %s", session.day.value, session.start_time, session.end_time, message)
            raise ConflictError(message, blocking)

    def create(self, data: SessionCreate | Session, session_id: str | None = None) -> Session:
        if isinstance(data, Session):
            session = data
        else:
            session = Session.model_validate({**data.model_dump(), "id": session_id or new_session_id()})
        with self._lock:
            if session.id in self._sessions:
                raise ValueError(f"Duplicate session id {session.id}")
            self.ensure_free(session)
            self._sessions[session.id] = session
        logger.info(
            "Created session %s: %s %s %s-%s",
            session.id,
            session.class_ref,
            session.day.value,
            session.start_time,
            session.end_time,
        )
        return session

    def replace(self, session_id: str, patch: SessionUpdate | dict) -> Session:
        changes = patch.changes() if isinstance(patch, SessionUpdate) else dict(patch)
        with self._lock:
            current = self.get(session_id)
            updated = current.with_changes(**changes)
            self.ensure_free(updated)
            self._sessions[session_id] = updated
        return updated

    def delete(self, session_id: str) -> Session:
        with self._lock:
            session = self.get(session_id)
            del self._sessions[session_id]
        logger.info("Deleted session %s", session_id)
        return session

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
