"""
Embedding Service

Client for a hosted text-embedding API (Jina or any OpenAI-compatible
``/v1/embeddings`` endpoint). Provides:
- Single-text embedding with bounded linear-backoff retries
- Batched embedding with a fixed pause between requests
- Response validation
"""

import logging
import time
from typing import List, Optional

import requests

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Raised when the embedding provider cannot produce a vector."""
    pass


class EmbeddingResponseError(EmbeddingError):
    """Raised when the provider response is missing the expected vectors."""
    pass


class EmptyTextError(ValueError):
    """Raised when asked to embed empty or whitespace-only text."""
    pass


class EmbeddingService:
    """
    Converts text to fixed-length vectors using a remote embedding provider.

    ``embed_one`` retries every failure (network errors, HTTP errors and
    malformed responses alike) with a delay of ``backoff * attempt`` before
    each retry. ``embed_batch`` never retries: one failed chunk aborts the
    whole call.
    """

    DEFAULT_URL = "https://api.jina.ai/v1/embeddings"
    BACKOFF_SECONDS = 0.5
    BATCH_PAUSE_SECONDS = 0.1

    def __init__(
        self,
        api_key: str = "",
        model: str = "jina-embeddings-v3",
        url: Optional[str] = None,
        timeout: float = 15.0,
        retries: int = 3,
        batch_size: int = 16,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the embedding service.

        Args:
            api_key: Bearer token for the provider
            model: Embedding model name
            url: Embeddings endpoint (default: Jina's hosted API)
            timeout: Per-request timeout in seconds (doubled for batches)
            retries: Default number of retries for ``embed_one``
            batch_size: Default chunk size for ``embed_batch``
            session: Optional requests session for connection pooling
        """
        self.api_key = api_key
        self.model = model
        self.url = url or self.DEFAULT_URL
        self.timeout = timeout
        self.retries = retries
        self.batch_size = batch_size
        self.session = session or requests.Session()

        logger.info(f"Initialized EmbeddingService with model: {self.model}")

    @classmethod
    def from_config(cls, config) -> 'EmbeddingService':
        """Build a service from a ``Config`` instance."""
        return cls(
            api_key=config.embedding_api_key,
            model=config.embedding_model,
            url=config.embedding_url,
            timeout=config.request_timeout,
            retries=config.embedding_retries,
            batch_size=config.embedding_batch_size,
        )

    def _headers(self) -> dict:
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f"Bearer {self.api_key}"
        return headers

    def _request_embeddings(self, texts: List[str], timeout: float) -> List[List[float]]:
        """
        POST one embeddings request and return the vectors in input order.

        Raises:
            requests.RequestException: On network or HTTP errors
            EmbeddingResponseError: If the response does not hold one vector per input
        """
        response = self.session.post(
            self.url,
            json={'input': texts, 'model': self.model},
            headers=self._headers(),
            timeout=timeout
        )
        response.raise_for_status()

        try:
            body = response.json()
        except ValueError as e:
            raise EmbeddingResponseError(f"Embedding response is not JSON: {e}")

        items = body.get('data') if isinstance(body, dict) else None
        if not items:
            raise EmbeddingResponseError("Unexpected embedding response format: missing 'data'")

        if all(isinstance(item, dict) and 'index' in item for item in items):
            items = sorted(items, key=lambda item: item['index'])

        vectors = []
        for item in items:
            embedding = item.get('embedding') if isinstance(item, dict) else None
            if not embedding:
                raise EmbeddingResponseError("Unexpected embedding response format: missing 'embedding'")
            vectors.append([float(value) for value in embedding])

        if len(vectors) != len(texts):
            raise EmbeddingResponseError(
                f"Expected {len(texts)} embeddings, got {len(vectors)}"
            )
        return vectors

    def embed_one(self, text: str, retries: Optional[int] = None) -> List[float]:
        """
        Embed a single text, retrying failed provider calls.

        Args:
            text: Input text
            retries: Additional attempts after the first (default: ``self.retries``)

        Returns:
            Embedding vector

        Raises:
            EmptyTextError: If text is empty or whitespace (no request is made)
            Exception: The last provider error once retries are exhausted
        """
        if not text or not text.strip():
            raise EmptyTextError("Text is empty for embedding")

        max_retries = self.retries if retries is None else retries
        attempt = 0

        while True:
            try:
                return self._request_embeddings([text], self.timeout)[0]
            except Exception as e:
                if attempt >= max_retries:
                    logger.error(f"Embedding failed after {attempt + 1} attempts: {e}")
                    raise
                attempt += 1
                logger.warning(f"Embedding request failed, retrying ({attempt}/{max_retries})... {e}")
                time.sleep(self.BACKOFF_SECONDS * attempt)

    def embed_batch(
        self,
        texts: List[str],
        batch_size: Optional[int] = None
    ) -> List[List[float]]:
        """
        Embed many texts in consecutive chunks, one request per chunk.

        Args:
            texts: Input texts
            batch_size: Maximum texts per request (default: ``self.batch_size``)

        Returns:
            Embedding vectors aligned index-for-index with ``texts``
        """
        if not texts:
            return []

        size = self.batch_size if batch_size is None else batch_size
        if size < 1:
            raise ValueError(f"batch_size must be positive, got {size}")

        vectors: List[List[float]] = []
        total = len(texts)
        logger.info(f"Embedding {total} texts in batches of {size}")

        for start in range(0, total, size):
            chunk = texts[start:start + size]
            vectors.extend(self._request_embeddings(chunk, self.timeout * 2))

            if start + size < total:
                time.sleep(self.BATCH_PAUSE_SECONDS)

        return vectors
