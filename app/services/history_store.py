"""Process-wide, per-user bounded chat history.

Every user id owns one list of ChatMessage capped at ``limit`` entries. Each
key has its own lock so append+trim is atomic per user while different users
never wait on each other. The table-level guard is held only while a per-key
lock is created or retired; clear() retires the user's lock with the history.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.config import settings
from app.logging_config import get_logger

logger = get_logger("history_store")

USER_SENDER = "User"
BOT_SENDER = "Bot"


@dataclass(frozen=True)
class ChatMessage:
    sender: str
    text: str
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class HistoryStore:
    def __init__(self, limit: int = 50):
        if limit < 1:
            raise ValueError("history limit must be positive")
        self.limit = limit
        self._histories: dict[str, list[ChatMessage]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            with self._locks_guard:
                lock = self._locks.setdefault(user_id, threading.Lock())
        return lock

    @contextmanager
    def _locked(self, user_id: str):
        while True:
            lock = self._lock_for(user_id)
            lock.acquire()
            # clear() may have retired this lock while we waited
            if self._locks.get(user_id) is lock:
                break
            lock.release()
        try:
            yield
        finally:
            lock.release()

    def append(self, user_id: str, message: ChatMessage) -> int:
        """Append message and drop the oldest entries beyond the cap. Returns the new length."""
        with self._locked(user_id):
            history = self._histories.setdefault(user_id, [])
            history.append(message)
            overflow = len(history) - self.limit
            if overflow > 0:
                del history[:overflow]
            size = len(history)

        if overflow > 0:
            logger.debug(
                "History trimmed",
                extra={"context": {"user_id": user_id, "evicted": overflow}},
            )
        return size

    def read(self, user_id: str) -> list[ChatMessage]:
        """Snapshot of the user's history ordered by sent_at (empty if none)."""
        if user_id not in self._locks:
            return []
        with self._locked(user_id):
            snapshot = list(self._histories.get(user_id, ()))
        # sorted() is stable, so equal timestamps keep insertion order
        return sorted(snapshot, key=lambda message: message.sent_at)

    def clear(self, user_id: str) -> None:
        """Drop the user's history and retire their lock."""
        with self._locked(user_id):
            self._histories.pop(user_id, None)
            with self._locks_guard:
                self._locks.pop(user_id, None)

    def users(self) -> list[str]:
        return [user_id for user_id, history in list(self._histories.items()) if history]


_history_store = HistoryStore(limit=settings.history_limit)


def get_history_store() -> HistoryStore:
    """Return the process-wide history store."""
    return _history_store
