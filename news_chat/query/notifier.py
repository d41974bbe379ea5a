"""
Query Notifiers

Push-style progress events emitted by the orchestrator at fixed points of a
query, decoupled from any particular transport.
"""

import logging
from typing import Any, List, Tuple

from ..models import QueryResult

logger = logging.getLogger(__name__)


class QueryNotifier:
    """No-op notifier; subclasses forward events to a transport."""

    def working(self, session_id: str, active: bool) -> None:
        """Called with True when processing starts and False when an answer is ready."""

    def result(self, session_id: str, result: QueryResult) -> None:
        """Called with the final answer."""

    def error(self, session_id: str, message: str) -> None:
        """Called when processing failed."""


class RecordingNotifier(QueryNotifier):
    """Keeps every event in order; useful for tests and batch callers."""

    def __init__(self):
        self.events: List[Tuple[str, str, Any]] = []

    def working(self, session_id: str, active: bool) -> None:
        self.events.append(('working', session_id, active))

    def result(self, session_id: str, result: QueryResult) -> None:
        self.events.append(('result', session_id, result))

    def error(self, session_id: str, message: str) -> None:
        self.events.append(('error', session_id, message))
