"""
News Chat System

Wires all components into the service boundary used by the CLI and the HTTP
API:
- Start-up initialization of the vector collection
- Ingestion cycles (discover → embed → upsert)
- Query answering within sessions
- Session history reads and deletes
"""

import logging
from typing import Iterable, List, Optional

from tqdm import tqdm

from .config import Config, get_config
from .embeddings.service import EmbeddingService
from .ingestion.pipeline import ArticleIngestionPipeline
from .models import ChatMessage, IndexPoint, QueryResult
from .query.generation import GenerationProvider, OllamaGenerationProvider
from .query.notifier import QueryNotifier
from .query.orchestrator import ConversationOrchestrator
from .storage.history import SessionHistoryStore, build_history_store
from .storage.vector_index import VectorIndex, build_vector_index


class QueryValidationError(ValueError):
    """Raised when a query request is missing its session id or message."""
    pass


class NewsChatSystem:
    """
    Main service object that integrates all components.

    Components are built from ``Config`` unless injected, and are created
    once per system instance.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        pipeline: Optional[ArticleIngestionPipeline] = None,
        embedding_service: Optional[EmbeddingService] = None,
        vector_index: Optional[VectorIndex] = None,
        history_store: Optional[SessionHistoryStore] = None,
        generator: Optional[GenerationProvider] = None,
        notifier: Optional[QueryNotifier] = None,
        log_level: int = logging.INFO
    ):
        """
        Initialize the news chat system.

        Args:
            config: Configuration (default: the process-wide config)
            pipeline: ArticleIngestionPipeline instance (or None for default)
            embedding_service: EmbeddingService instance (or None for default)
            vector_index: VectorIndex instance (or None for the configured backend)
            history_store: SessionHistoryStore instance (or None for the configured backend)
            generator: GenerationProvider instance (or None for Ollama)
            notifier: Default notifier for queries
            log_level: Logging level
        """
        self._setup_logging(log_level)

        self.config = config or get_config()

        # Initialize components (dependency injection or defaults)
        self.pipeline = pipeline or ArticleIngestionPipeline.from_config(self.config)
        self.embedding_service = embedding_service or EmbeddingService.from_config(self.config)
        self.vector_index = vector_index or build_vector_index(self.config)
        self.history_store = history_store or build_history_store(self.config)
        self.generator = generator or OllamaGenerationProvider.from_config(self.config)

        self.orchestrator = ConversationOrchestrator(
            embedding_service=self.embedding_service,
            vector_index=self.vector_index,
            history_store=self.history_store,
            generator=self.generator,
            notifier=notifier,
            top_k=self.config.top_k,
            session_ttl=self.config.session_ttl,
            history_window=self.config.history_window
        )

        self.logger.info("NewsChatSystem initialized successfully")

    def _setup_logging(self, log_level: int):
        """Configure logging for the system."""
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(log_level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def initialize(self) -> None:
        """Create the vector collection if absent. Safe to call on every start."""
        self.vector_index.ensure_collection()

    def ingest_articles(
        self,
        sources: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
        use_batch: bool = False,
        show_progress: bool = False
    ) -> int:
        """
        Run one full ingestion cycle: discover → embed → upsert.

        Args:
            sources: Feed URLs (default: configured sources)
            limit: Maximum number of articles (default: configured limit)
            use_batch: Embed with batched requests instead of one retried call per article
            show_progress: Show a progress bar while embedding

        Returns:
            Number of articles ingested (0 if the sources yielded nothing)
        """
        articles = self.pipeline.ingest(
            sources=sources,
            limit=limit if limit is not None else self.config.ingest_limit
        )
        if not articles:
            self.logger.info("No articles found, nothing to ingest")
            return 0

        texts = [article.embedding_text() for article in articles]
        if use_batch:
            vectors = self.embedding_service.embed_batch(texts)
        else:
            iterator = tqdm(texts, desc="Embedding articles") if show_progress else texts
            vectors = [self.embedding_service.embed_one(text) for text in iterator]

        points = [
            IndexPoint(id=article.id, vector=vector, payload=article.to_payload())
            for article, vector in zip(articles, vectors)
        ]
        self.vector_index.upsert(points, wait=True)

        self.logger.info(f"Ingested {len(articles)} articles")
        return len(articles)

    def query(
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
            notifier: Per-call notifier overriding the default one

        Raises:
            QueryValidationError: If session_id or message is missing or empty
        """
        if not isinstance(session_id, str) or not isinstance(message, str):
            raise QueryValidationError("Missing sessionId or message")
        if not session_id.strip() or not message.strip():
            raise QueryValidationError("Missing sessionId or message")

        return self.orchestrator.process_query(session_id, message, notifier=notifier)

    def get_history(self, session_id: str) -> List[ChatMessage]:
        return self.orchestrator.get_history(session_id)

    def clear_history(self, session_id: str) -> bool:
        return self.orchestrator.clear_history(session_id)

    def get_stats(self) -> dict:
        """Get basic system statistics."""
        return {
            'collection_name': self.config.collection_name,
            'vector_backend': self.config.vector_backend,
            'total_vectors': self.vector_index.count(),
            'embedding_model': self.embedding_service.model,
        }
