"""
Conversation Orchestrator

Runs one retrieval-augmented query-answer cycle:
1. Load session history
2. Record the user message
3. Embed the query
4. Retrieve nearest articles from the vector index
5. Build the context and history blocks
6. Compose the prompt and generate an answer
7. Record the assistant message and return the answer with its sources
"""

import logging
from typing import List, Optional

from ..embeddings.service import EmbeddingService
from ..models import ChatMessage, QueryResult, SearchResult
from ..storage.history import SessionHistoryStore
from ..storage.vector_index import VectorIndex
from .generation import GenerationProvider
from .notifier import QueryNotifier

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = "You are a helpful news assistant."


class ConversationOrchestrator:
    """
    Combines session history, vector retrieval and generation into one answer.

    All collaborators are injected; the orchestrator holds no global state.
    Failures in any step are reported to the notifier and re-raised; no
    partial answer is returned.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_index: VectorIndex,
        history_store: SessionHistoryStore,
        generator: GenerationProvider,
        notifier: Optional[QueryNotifier] = None,
        top_k: int = 5,
        session_ttl: int = 3600,
        history_window: int = 6
    ):
        """
        Initialize the orchestrator.

        Args:
            embedding_service: Service for query embeddings
            vector_index: Index searched for context articles
            history_store: Per-session message log
            generator: Text generation backend
            notifier: Receives working/result/error events (default: no-op)
            top_k: Number of articles retrieved per query
            session_ttl: Session time-to-live in seconds, reset on every append
            history_window: Number of prior messages included in the prompt
        """
        self.embedding_service = embedding_service
        self.vector_index = vector_index
        self.history_store = history_store
        self.generator = generator
        self.notifier = notifier or QueryNotifier()
        self.top_k = top_k
        self.session_ttl = session_ttl
        self.history_window = history_window

    def _record(self, session_id: str, role: str, content: str) -> None:
        self.history_store.append(session_id, ChatMessage(role=role, content=content))
        self.history_store.expire(session_id, self.session_ttl)

    def _format_context(self, results: List[SearchResult]) -> str:
        parts = []
        for result in results:
            payload = result.payload or {}
            parts.append(
                f"Title: {payload.get('title', '')}\n"
                f"Content: {payload.get('content', '')}\n"
                f"URL: {payload.get('url', '')}"
            )
        return "\n\n".join(parts)

    def _format_history(self, history: List[ChatMessage]) -> str:
        window = history[-self.history_window:] if self.history_window > 0 else []
        return "\n".join(f"{message.role}: {message.content}" for message in window)

    def build_prompt(self, history_text: str, context_text: str, query: str) -> str:
        """Compose the prompt: instruction, history, retrieved news, then the query."""
        return (
            f"{SYSTEM_PROMPT}\n"
            f"Chat History:\n{history_text}\n"
            f"Relevant News:\n{context_text}\n"
            f"User: {query}\n"
            f"Answer:"
        )

    def process_query(
        self,
        session_id: str,
        message: str,
        notifier: Optional[QueryNotifier] = None
    ) -> QueryResult:
        """
        Answer a message within a session.

        Args:
            session_id: Opaque session identifier
            message: The user's question
            notifier: Receives this query's events instead of the default notifier

        Returns:
            QueryResult with the answer and the {title, url} of each retrieved
            article, in retrieval order
        """
        notifier = notifier or self.notifier
        notifier.working(session_id, True)
        try:
            # History is read before the current message is appended, so the
            # window never contains the in-flight query.
            history = self.history_store.get_messages(session_id)
            self._record(session_id, 'user', message)

            query_vector = self.embedding_service.embed_one(message)
            results = self.vector_index.search(query_vector, limit=self.top_k, with_payload=True)

            prompt = self.build_prompt(
                self._format_history(history),
                self._format_context(results),
                message
            )
            answer = self.generator.complete(prompt)

            self._record(session_id, 'assistant', answer)
        except Exception as e:
            logger.error(f"Query failed for session {session_id}: {e}")
            notifier.error(session_id, "Processing failed")
            raise

        sources = []
        for result in results:
            payload = result.payload or {}
            sources.append({'title': payload.get('title', ''), 'url': payload.get('url', '')})

        query_result = QueryResult(response=answer, sources=sources)
        notifier.working(session_id, False)
        notifier.result(session_id, query_result)
        return query_result

    def get_history(self, session_id: str) -> List[ChatMessage]:
        return self.history_store.get_messages(session_id)

    def clear_history(self, session_id: str) -> bool:
        return self.history_store.clear(session_id)
