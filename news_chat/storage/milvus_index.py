from typing import Any, Dict, List, Sequence
import logging

from pymilvus import (
    connections,
    FieldSchema,
    CollectionSchema,
    DataType,
    Collection,
    utility,
)

from ..models import IndexPoint, SearchResult
from .vector_index import VectorIndex

logger = logging.getLogger(__name__)


PAYLOAD_FIELDS = ("title", "content", "url", "publish_date", "source")
_MAX_LENGTHS = {
    "id": 512,
    "title": 1024,
    "content": 8192,
    "url": 2048,
    "publish_date": 64,
    "source": 2048,
}


def _truncate(value: str, max_bytes: int) -> str:
    # VARCHAR limits are enforced on the UTF-8 encoded length
    return value.encode("utf-8")[:max_bytes].decode("utf-8", "ignore")


class MilvusVectorIndex(VectorIndex):
    """Wrapper around a Milvus collection of article vectors."""

    def __init__(
        self,
        collection_name: str = "news_articles",
        dimension: int = 1024,
        uri: str = "http://localhost:19530",
        alias: str = "default",
    ) -> None:
        super().__init__(collection_name, dimension)
        # pymilvus requires a URI with an explicit scheme
        if not uri.startswith("http://") and not uri.startswith("https://"):
            uri = f"http://{uri}"
        self.uri = uri
        self.alias = alias
        self.collection = None

    # Internal helpers -------------------------------------------------
    def _connect(self) -> None:
        if connections.has_connection(self.alias):
            return
        connections.connect(self.alias, uri=self.uri)

    def _schema(self) -> CollectionSchema:
        fields = [
            FieldSchema(name="id", dtype=DataType.VARCHAR, is_primary=True, max_length=_MAX_LENGTHS["id"]),
        ]
        for name in PAYLOAD_FIELDS:
            fields.append(FieldSchema(name=name, dtype=DataType.VARCHAR, max_length=_MAX_LENGTHS[name]))
        fields.append(FieldSchema(name="embedding", dtype=DataType.FLOAT_VECTOR, dim=self.dimension))
        return CollectionSchema(fields, description="news articles")

    def _row(self, point: IndexPoint) -> Dict[str, Any]:
        row: Dict[str, Any] = {"id": _truncate(str(point.id), _MAX_LENGTHS["id"])}
        for name in PAYLOAD_FIELDS:
            row[name] = _truncate(str(point.payload.get(name) or ""), _MAX_LENGTHS[name])
        row["embedding"] = [float(v) for v in point.vector]
        return row

    # Public API -------------------------------------------------------
    def ensure_collection(self) -> None:
        self._connect()
        if utility.has_collection(self.collection_name, using=self.alias):
            self.collection = Collection(self.collection_name, using=self.alias)
        else:
            self.collection = Collection(self.collection_name, schema=self._schema(), using=self.alias)
            self.collection.create_index(
                field_name="embedding",
                index_params={
                    "index_type": "HNSW",
                    "metric_type": "COSINE",
                    "params": {"M": 16, "efConstruction": 200},
                },
            )
            logger.info(f"Vector collection '{self.collection_name}' created")
        self.collection.load()

    def upsert(self, points: Sequence[IndexPoint], wait: bool = True) -> None:
        if not points:
            return
        if self.collection is None:
            self.ensure_collection()
        self.collection.upsert([self._row(point) for point in points])
        if wait:
            self.collection.flush()

    def search(
        self,
        vector: Sequence[float],
        limit: int = 5,
        with_payload: bool = True
    ) -> List[SearchResult]:
        if limit <= 0:
            return []
        if self.collection is None:
            self.ensure_collection()

        results = self.collection.search(
            data=[list(vector)],
            anns_field="embedding",
            param={"metric_type": "COSINE", "params": {"ef": max(64, limit)}},
            limit=limit,
            output_fields=list(PAYLOAD_FIELDS) if with_payload else [],
        )

        hits = []
        for hit in results[0]:
            payload = None
            if with_payload:
                payload = {"id": str(hit.id)}
                payload.update({name: hit.entity.get(name) for name in PAYLOAD_FIELDS})
            hits.append(SearchResult(id=str(hit.id), score=float(hit.distance), payload=payload))
        return hits

    def count(self) -> int:
        if self.collection is None:
            self.ensure_collection()
        return self.collection.num_entities
