"""
Data Models

Plain dataclasses shared by the ingestion, storage and query layers.
"""

import time
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Article:
    """A normalized news article produced by one ingestion run."""
    id: str
    title: str
    content: str
    url: str
    publish_date: str
    source: str

    def to_payload(self) -> Dict[str, str]:
        """Convert to the payload stored alongside the article's vector."""
        return asdict(self)

    def embedding_text(self) -> str:
        """Text used to embed the article."""
        return f"{self.title}\n\n{self.content}"


@dataclass
class IndexPoint:
    """A vector with its id and payload, as written to the vector index."""
    id: str
    vector: List[float]
    payload: Dict[str, Any]


@dataclass
class SearchResult:
    """One ranked hit from a similarity search (higher score = more similar)."""
    id: str
    score: float
    payload: Optional[Dict[str, Any]] = None


@dataclass
class ChatMessage:
    """A single message in a session's history."""
    role: str
    content: str
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChatMessage':
        return cls(
            role=data['role'],
            content=data['content'],
            timestamp=int(data.get('timestamp', 0)),
        )


@dataclass
class QueryResult:
    """Answer to a query plus the sources it was grounded on, in retrieval order."""
    response: str
    sources: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'response': self.response,
            'sources': [dict(source) for source in self.sources],
        }
