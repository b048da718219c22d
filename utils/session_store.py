"""
Session Store
=============
Thread-safe arena of per-session records keyed by session id. The store is
the only shared mutable structure in the core: each record is touched by one
flow at a time through ``exclusive``, and the expiry sweep bounds memory.
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, Iterator, List, Optional, TypeVar

from exceptions import (
    ConcurrentRoundError,
    InvalidInputError,
    SessionExpiredError,
    SessionLimitError,
    SessionNotFoundError,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class SessionRecord(Generic[T]):
    session_id: str
    value: T
    created_at: float
    last_activity: float
    _busy: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def age(self, now: float) -> float:
        return now - self.created_at


class SessionStore(Generic[T]):
    """
    Bounded map from session id to state.

    Sessions older than ``session_timeout_seconds`` (measured from creation)
    are treated as gone: ``get`` raises ``SessionExpiredError`` and
    ``sweep_expired`` removes them.
    """

    def __init__(self, max_sessions: int = 10000,
                 session_timeout_seconds: float = 1800,
                 clock: Callable[[], float] = time.time):
        if max_sessions < 1:
            raise InvalidInputError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self.session_timeout_seconds = session_timeout_seconds
        self.clock = clock
        self._sessions: Dict[str, SessionRecord[T]] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def _is_expired(self, record: SessionRecord[T], now: float) -> bool:
        return record.age(now) > self.session_timeout_seconds

    def insert(self, session_id: str, value: T) -> SessionRecord[T]:
        with self._lock:
            if session_id in self._sessions:
                raise InvalidInputError(f"Session {session_id} already exists")
            if len(self._sessions) >= self.max_sessions:
                raise SessionLimitError("Maximum concurrent sessions reached")
            now = self.clock()
            record = SessionRecord(session_id=session_id, value=value,
                                   created_at=now, last_activity=now)
            self._sessions[session_id] = record
            return record

    def get_record(self, session_id: str) -> SessionRecord[T]:
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                raise SessionNotFoundError(f"Unknown session {session_id}")
            now = self.clock()
            if self._is_expired(record, now):
                del self._sessions[session_id]
                logger.info(f"Session {session_id} expired")
                raise SessionExpiredError(f"Session {session_id} expired")
            record.last_activity = now
            return record

    def get(self, session_id: str) -> T:
        return self.get_record(session_id).value

    def remove(self, session_id: str) -> Optional[T]:
        with self._lock:
            record = self._sessions.pop(session_id, None)
            return record.value if record is not None else None

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    @contextmanager
    def exclusive(self, session_id: str) -> Iterator[T]:
        """
        Hold the per-session busy flag for the duration of the block.

        A second entry for the same session while the first is still inside
        raises ``ConcurrentRoundError`` instead of waiting.
        """
        record = self.get_record(session_id)
        if not record._busy.acquire(blocking=False):
            raise ConcurrentRoundError(
                f"Session {session_id} already has an operation in flight")
        try:
            yield record.value
        finally:
            record._busy.release()

    def sweep_expired(self, now: Optional[float] = None) -> int:
        """Remove expired sessions, return count cleaned"""
        with self._lock:
            if now is None:
                now = self.clock()
            expired = [sid for sid, record in self._sessions.items()
                       if self._is_expired(record, now)]
            for sid in expired:
                del self._sessions[sid]
            count = len(expired)
            if count > 0:
                logger.info(f"Cleaned up {count} expired sessions")
            return count
