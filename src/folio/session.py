"""In-memory server-side session store.

Each session is a plain dict keyed by the session id carried in the
``folio_session`` cookie. Values are kept as live objects, so a listing read
back from a session is the very object that was stored.

The store is bounded: sessions idle longer than ``idle_timeout`` are dropped,
and once ``max_sessions`` is reached the least recently used one goes.
"""

from __future__ import annotations

import secrets
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog

from folio.clock import SystemClock

if TYPE_CHECKING:
    from folio.protocols import Clock

log = structlog.get_logger()

SESSION_COOKIE = "folio_session"


class Session:
    """One session's key-value bag. Implements SessionProtocol."""

    def __init__(self, session_id: str, data: dict[str, Any]) -> None:
        self.session_id = session_id
        self._data = data

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def has(self, key: str) -> bool:
        return key in self._data


@dataclass
class _Entry:
    data: dict[str, Any] = field(default_factory=dict)
    last_access: datetime | None = None


class MemorySessionStore:
    def __init__(
        self,
        *,
        idle_timeout: timedelta = timedelta(hours=1),
        max_sessions: int = 10_000,
        clock: Clock | None = None,
    ) -> None:
        self.idle_timeout = idle_timeout
        self.max_sessions = max_sessions
        self.clock: Clock = clock or SystemClock()
        # Least recently used first
        self._sessions: OrderedDict[str, _Entry] = OrderedDict()

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(24)

    def open(self, session_id: str | None) -> Session:
        """Return the session for ``session_id``, creating one if unknown or expired."""
        now = self.clock.now()
        self._drop_idle(now)

        entry = self._sessions.get(session_id) if session_id else None
        if entry is None:
            while len(self._sessions) >= self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                log.debug("session_evicted", session_id=evicted)
            session_id = self.new_session_id()
            entry = self._sessions[session_id] = _Entry()
        else:
            self._sessions.move_to_end(session_id)

        entry.last_access = now
        return Session(session_id, entry.data)

    def sweep(self) -> int:
        """Drop idle sessions. Returns how many were removed."""
        removed = self._drop_idle(self.clock.now())
        if removed:
            log.info("sessions_swept", removed=removed, remaining=len(self._sessions))
        return removed

    def _drop_idle(self, now: datetime) -> int:
        cutoff = now - self.idle_timeout
        removed = 0
        while self._sessions:
            session_id, entry = next(iter(self._sessions.items()))
            if entry.last_access is not None and entry.last_access > cutoff:
                break
            del self._sessions[session_id]
            removed += 1
        return removed

    def __len__(self) -> int:
        return len(self._sessions)
