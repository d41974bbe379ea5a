"""
Vector Index Interface

Typed create/upsert/search contract over a cosine-similarity index.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from ..models import IndexPoint, SearchResult


class VectorIndex(ABC):
    """
    A named collection of fixed-dimension vectors with payloads.

    Implementations must:
    - create the collection on ``ensure_collection`` only if it is absent
    - replace existing points on ``upsert`` when ids collide
    - return ``search`` hits ordered by descending cosine similarity
    """

    def __init__(self, collection_name: str, dimension: int):
        self.collection_name = collection_name
        self.dimension = dimension

    @abstractmethod
    def ensure_collection(self) -> None:
        """Create the collection if it does not exist. Safe to call repeatedly."""

    @abstractmethod
    def upsert(self, points: Sequence[IndexPoint], wait: bool = True) -> None:
        """Insert or replace points by id."""

    @abstractmethod
    def search(
        self,
        vector: Sequence[float],
        limit: int = 5,
        with_payload: bool = True
    ) -> List[SearchResult]:
        """Return up to ``limit`` nearest points, most similar first."""

    @abstractmethod
    def count(self) -> int:
        """Number of points in the collection."""


def build_vector_index(config) -> VectorIndex:
    """Create the vector index backend selected by ``config.vector_backend``."""
    if config.vector_backend == 'milvus':
        from .milvus_index import MilvusVectorIndex
        return MilvusVectorIndex(
            collection_name=config.collection_name,
            dimension=config.embedding_dim,
            uri=config.milvus_uri,
        )

    from .faiss_index import FaissVectorIndex
    return FaissVectorIndex(
        collection_name=config.collection_name,
        dimension=config.embedding_dim,
        index_dir=config.faiss_index_dir,
    )
