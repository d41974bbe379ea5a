"""
Session History Stores

Ordered, TTL-bounded per-session message logs. Every store supports reading a
session's full history, appending a message, resetting the session's
time-to-live and clearing the session.
"""

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

import redis

from ..models import ChatMessage

logger = logging.getLogger(__name__)


class SessionHistoryStore(ABC):
    """Append-only, ordered message log per session id."""

    @abstractmethod
    def get_messages(self, session_id: str) -> List[ChatMessage]:
        """Return the session's messages, oldest first (empty if unknown or expired)."""

    @abstractmethod
    def append(self, session_id: str, message: ChatMessage) -> None:
        """Append a message, creating the session if needed."""

    @abstractmethod
    def expire(self, session_id: str, seconds: int) -> None:
        """Set the session's remaining time-to-live to exactly ``seconds``."""

    @abstractmethod
    def clear(self, session_id: str) -> bool:
        """Delete the session's history."""


class InMemoryHistoryStore(SessionHistoryStore):
    """
    In-process session store for single-process deployments and tests.

    Features:
    - Thread-safe appends and reads
    - Sliding expiry deadlines measured on a monotonic clock
    - Expired sessions are dropped on access and swept on every write
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """
        Initialize the store.

        Args:
            clock: Monotonic time source in seconds (default: time.monotonic)
        """
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()

        # Session storage: {session_id: [messages]}
        self.sessions: Dict[str, List[ChatMessage]] = {}
        self._deadlines: Dict[str, float] = {}

    def _purge_if_expired(self, session_id: str) -> None:
        deadline = self._deadlines.get(session_id)
        if deadline is not None and self._clock() >= deadline:
            self.sessions.pop(session_id, None)
            self._deadlines.pop(session_id, None)
            logger.debug(f"Session {session_id} expired")

    def _sweep_expired(self) -> None:
        now = self._clock()
        expired = [sid for sid, deadline in self._deadlines.items() if now >= deadline]
        for session_id in expired:
            self.sessions.pop(session_id, None)
            del self._deadlines[session_id]
        if expired:
            logger.debug(f"Expired {len(expired)} sessions")

    def get_messages(self, session_id: str) -> List[ChatMessage]:
        with self._lock:
            self._purge_if_expired(session_id)
            return list(self.sessions.get(session_id, []))

    def append(self, session_id: str, message: ChatMessage) -> None:
        with self._lock:
            self._sweep_expired()
            self.sessions.setdefault(session_id, []).append(message)

    def expire(self, session_id: str, seconds: int) -> None:
        with self._lock:
            self._sweep_expired()
            if session_id in self.sessions:
                self._deadlines[session_id] = self._clock() + seconds

    def ttl(self, session_id: str) -> Optional[float]:
        """
        Remaining time-to-live in seconds.

        Returns:
            Seconds left, or None if the session has no expiry or does not exist
        """
        with self._lock:
            self._purge_if_expired(session_id)
            deadline = self._deadlines.get(session_id)
            if deadline is None:
                return None
            return deadline - self._clock()

    def clear(self, session_id: str) -> bool:
        with self._lock:
            self.sessions.pop(session_id, None)
            self._deadlines.pop(session_id, None)
        logger.info(f"Cleared session {session_id}")
        return True


class RedisHistoryStore(SessionHistoryStore):
    """
    Redis-backed session store.

    Each session is a Redis list of JSON-encoded messages at
    ``session:<id>:history``; Redis serializes concurrent appends and
    handles expiry.
    """

    KEY_TEMPLATE = "session:{session_id}:history"

    def __init__(self, client=None, url: str = "redis://localhost:6379/0"):
        """
        Initialize the store.

        Args:
            client: Existing redis client (created from ``url`` if omitted)
            url: Redis connection URL
        """
        if client is None:
            client = redis.Redis.from_url(url, decode_responses=True)
        self.client = client

    def _key(self, session_id: str) -> str:
        return self.KEY_TEMPLATE.format(session_id=session_id)

    def get_messages(self, session_id: str) -> List[ChatMessage]:
        raw_messages = self.client.lrange(self._key(session_id), 0, -1)
        return [ChatMessage.from_dict(json.loads(raw)) for raw in raw_messages]

    def append(self, session_id: str, message: ChatMessage) -> None:
        self.client.rpush(self._key(session_id), json.dumps(message.to_dict()))

    def expire(self, session_id: str, seconds: int) -> None:
        self.client.expire(self._key(session_id), seconds)

    def clear(self, session_id: str) -> bool:
        self.client.delete(self._key(session_id))
        logger.info(f"Cleared session {session_id}")
        return True


def build_history_store(config) -> SessionHistoryStore:
    """Create the history store selected by ``config.history_backend``."""
    if config.history_backend == 'redis':
        return RedisHistoryStore(url=config.redis_url)
    return InMemoryHistoryStore()
