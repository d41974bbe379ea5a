"""
Vector Index with FAISS

Local cosine-similarity index using FAISS inner-product search over
L2-normalized vectors. Points are keyed by string id so upserts replace
earlier vectors, and the index is persisted to disk with its payloads.
"""

import hashlib
import logging
import os
import pickle
import threading
from typing import Dict, List, Optional, Sequence

import faiss
import numpy as np

from ..models import IndexPoint, SearchResult
from .vector_index import VectorIndex

logger = logging.getLogger(__name__)


def point_id_to_int(point_id: str) -> int:
    """Map a string point id to a stable non-negative 63-bit FAISS id."""
    digest = hashlib.sha256(str(point_id).encode('utf-8')).digest()
    return int.from_bytes(digest[:8], 'big') & 0x7FFFFFFFFFFFFFFF


class FaissVectorIndex(VectorIndex):
    """
    FAISS-backed vector index.

    Features:
    - Exact cosine search (IndexFlatIP on normalized vectors)
    - Replace-by-id upserts through IndexIDMap2
    - Payload storage synchronized with the index
    - Atomic save/load of index and payloads
    """

    def __init__(
        self,
        collection_name: str = "news_articles",
        dimension: int = 1024,
        index_dir: Optional[str] = "data/index"
    ):
        """
        Initialize the FAISS vector index.

        Args:
            collection_name: Name of the collection (used for file names)
            dimension: Dimension of embedding vectors
            index_dir: Directory for persisted index files (None keeps the
                index in memory only)
        """
        super().__init__(collection_name, dimension)
        self.index_dir = index_dir
        self.index = None

        # Payload storage, keyed by FAISS id and synchronized with the index
        self.payloads: Dict[int, Dict] = {}
        self.point_ids: Dict[int, str] = {}
        self._lock = threading.Lock()

    @property
    def index_path(self) -> Optional[str]:
        if not self.index_dir:
            return None
        return os.path.join(self.index_dir, f"{self.collection_name}.index")

    def _new_index(self):
        return faiss.IndexIDMap2(faiss.IndexFlatIP(self.dimension))

    def ensure_collection(self) -> None:
        """Load the persisted collection, or create an empty one if absent."""
        with self._lock:
            if self.index is not None:
                return

            if self.index_path and os.path.exists(self.index_path) and self.load_index():
                logger.info(f"Loaded collection '{self.collection_name}' with {self.index.ntotal} vectors")
                return

            self.index = self._new_index()
            self.payloads = {}
            self.point_ids = {}
            logger.info(f"Vector collection '{self.collection_name}' created")

    def _normalize(self, vectors) -> np.ndarray:
        matrix = np.array(vectors, dtype=np.float32)
        if matrix.ndim != 2 or matrix.shape[1] != self.dimension:
            raise ValueError(
                f"Embedding dimension ({matrix.shape[-1] if matrix.ndim else 0}) must match "
                f"index dimension ({self.dimension})"
            )
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        return matrix / norms

    def upsert(self, points: Sequence[IndexPoint], wait: bool = True) -> None:
        """
        Insert or replace points.

        Args:
            points: Points to write; a later point wins over an earlier one with the same id
            wait: Persist to disk before returning
        """
        if not points:
            return

        if self.index is None:
            self.ensure_collection()

        # Last write wins within one call
        latest: Dict[int, IndexPoint] = {}
        for point in points:
            latest[point_id_to_int(point.id)] = point

        ids = np.array(list(latest.keys()), dtype=np.int64)
        vectors = self._normalize([point.vector for point in latest.values()])

        with self._lock:
            self.index.remove_ids(ids)
            self.index.add_with_ids(vectors, ids)
            for faiss_id, point in latest.items():
                self.payloads[faiss_id] = dict(point.payload)
                self.point_ids[faiss_id] = str(point.id)

            # Verify synchronization
            assert self.index.ntotal == len(self.payloads), \
                "CRITICAL: Payloads out of sync with index"

        if wait and self.index_path:
            self.save_index()

    def search(
        self,
        vector: Sequence[float],
        limit: int = 5,
        with_payload: bool = True
    ) -> List[SearchResult]:
        """
        Search for the most similar points by cosine similarity.

        Args:
            vector: Query embedding vector
            limit: Number of results to return
            with_payload: Include stored payloads in the results

        Returns:
            Results ordered by descending similarity
        """
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")

        if self.index is None:
            self.ensure_collection()

        if limit == 0 or self.index.ntotal == 0:
            return []

        query = self._normalize([vector])
        with self._lock:
            scores, ids = self.index.search(query, min(limit, self.index.ntotal))

            results = []
            for score, faiss_id in zip(scores[0], ids[0]):
                if faiss_id < 0:
                    continue
                faiss_id = int(faiss_id)
                payload = dict(self.payloads.get(faiss_id, {})) if with_payload else None
                results.append(SearchResult(
                    id=self.point_ids.get(faiss_id, str(faiss_id)),
                    score=float(score),
                    payload=payload
                ))

        return results

    def count(self) -> int:
        if self.index is None:
            return 0
        return self.index.ntotal

    def save_index(self, path: Optional[str] = None) -> None:
        """
        Save FAISS index and payloads to disk with atomic write.

        Args:
            path: Path to save index (default: ``self.index_path``)
        """
        save_path = path or self.index_path
        if not save_path:
            raise ValueError("No index path configured")

        # Ensure directory exists
        os.makedirs(os.path.dirname(save_path) or '.', exist_ok=True)

        with self._lock:
            faiss.write_index(self.index, save_path)
            state = {'payloads': self.payloads, 'point_ids': self.point_ids}

        # Save payloads with atomic write
        metadata_path = save_path + '.metadata'
        temp_metadata_path = metadata_path + '.tmp'

        try:
            with open(temp_metadata_path, 'wb') as f:
                pickle.dump(state, f, protocol=pickle.HIGHEST_PROTOCOL)

            # Atomic rename
            os.replace(temp_metadata_path, metadata_path)

        except Exception:
            # Clean up temp file on error
            if os.path.exists(temp_metadata_path):
                os.remove(temp_metadata_path)
            raise

    def load_index(self, path: Optional[str] = None) -> bool:
        """
        Load FAISS index and payloads from disk.

        Args:
            path: Path to load index from (default: ``self.index_path``)

        Returns:
            True if successful, False otherwise
        """
        load_path = path or self.index_path
        if not load_path or not os.path.exists(load_path):
            return False

        try:
            loaded_index = faiss.read_index(load_path)

            if loaded_index.d != self.dimension:
                raise ValueError(
                    f"Stored index has dimension {loaded_index.d}, expected {self.dimension}"
                )

            metadata_path = load_path + '.metadata'
            if os.path.exists(metadata_path):
                with open(metadata_path, 'rb') as f:
                    state = pickle.load(f)
            else:
                state = {'payloads': {}, 'point_ids': {}}

            # Verify synchronization
            if loaded_index.ntotal != len(state['payloads']):
                raise ValueError(
                    f"Index has {loaded_index.ntotal} vectors but "
                    f"payloads have {len(state['payloads'])} entries"
                )

            self.index = loaded_index
            self.payloads = state['payloads']
            self.point_ids = state['point_ids']
            return True

        except Exception as e:
            logger.error(f"Failed to load index from {load_path}: {e}")
            return False

    def __repr__(self) -> str:
        return (
            f"FaissVectorIndex(collection={self.collection_name!r}, "
            f"vectors={self.count()}, dimension={self.dimension})"
        )
