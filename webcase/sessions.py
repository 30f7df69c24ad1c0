"""
webcase - Server-side Session Store.

A minimal session abstraction the harness writes security tokens into.
The application under test reads the same store (registered as the
``"session"`` service) to recognise the session cookie.

A store belongs to one kernel, so nothing written here outlives the test
that created it.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger("webcase.sessions")


class Session:
    """
    A single session: an opaque id plus a key/value payload.

    Changes are only visible to readers of the store after :meth:`save`.
    """

    __slots__ = ("_store", "_id", "_data", "_started")

    def __init__(
        self,
        store: "MemorySessionStore",
        session_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        self._store = store
        self._id = session_id
        self._data: Dict[str, Any] = dict(data or {})
        self._started = session_id is not None

    @property
    def id(self) -> Optional[str]:
        return self._id

    @property
    def name(self) -> str:
        """Name of the cookie carrying this session's id."""
        return self._store.cookie_name

    @property
    def is_started(self) -> bool:
        return self._started

    def start(self) -> "Session":
        """Assign an id if the session has none yet (idempotent)."""
        if not self._started:
            self._id = f"sess_{secrets.token_urlsafe(24)}"
            self._started = True
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def save(self) -> None:
        """Persist the payload; starts the session first if needed."""
        self.start()
        self._store.write(self._id, self._data)

    def __repr__(self) -> str:
        return f"<Session {self._id or '(not started)'} keys={list(self._data)}>"


class MemorySessionStore:
    """
    In-memory session storage keyed by session id.

    Usage::

        store = MemorySessionStore()
        session = store.start()
        session.set("locale", "fr")
        session.save()

        assert store.load(session.id).get("locale") == "fr"
    """

    def __init__(self, cookie_name: str = "SESSID"):
        self.cookie_name = cookie_name
        self._sessions: Dict[str, Dict[str, Any]] = {}

    def start(self) -> Session:
        """Create and start a fresh session."""
        return Session(self).start()

    def load(self, session_id: Optional[str]) -> Optional[Session]:
        """Return a copy of the stored session, or ``None``."""
        if not session_id or session_id not in self._sessions:
            return None
        return Session(self, session_id, self._sessions[session_id])

    def write(self, session_id: str, data: Dict[str, Any]) -> None:
        self._sessions[session_id] = dict(data)
        logger.debug("Saved session %s (%d keys)", session_id, len(data))

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[str]:
        return iter(self._sessions)

    def close(self) -> None:
        """Drop every session; called on kernel shutdown."""
        self.clear()
