"""
Review Vector Store
===================

Namespaced, metadata-filterable nearest-neighbour store holding one vector
plus metadata per review.

PgVectorStore keeps vectors in the review_vectors table (pgvector):
1. Filter by metadata columns (product, competitor scope, rating band)
2. Order by cosine distance when a non-zero query vector is given,
   by review id otherwise (metadata-only retrieval)
"""

import json
import logging
from abc import ABC, abstractmethod
import asyncio
from typing import Any, Dict, List, Optional, Sequence

from psycopg2.extras import Json, RealDictCursor, execute_values

from src.data.db import get_connection
from src.orchestrator.errors import ExternalServiceError

from .models import VectorFilter, VectorMatch, VectorRecord

logger = logging.getLogger(__name__)


def is_zero_vector(vector: Optional[Sequence[float]]) -> bool:
    return vector is None or not any(vector)


class VectorStore(ABC):
    """Abstract vector store."""

    @abstractmethod
    async def query(
        self,
        namespace: str,
        filter: VectorFilter,
        top_k: int,
        vector: Optional[List[float]] = None,
    ) -> List[VectorMatch]:
        """
        Up to top_k matches satisfying filter.

        A missing or all-zero vector means metadata-only retrieval.
        """
        ...

    @abstractmethod
    async def upsert(self, namespace: str, records: List[VectorRecord]) -> int:
        ...


class PgVectorStore(VectorStore):
    """pgvector-backed store. psycopg2 calls run in worker threads."""

    def __init__(self, pool=None, include_values: bool = True):
        self._pool = pool
        self.include_values = include_values

    async def query(
        self,
        namespace: str,
        filter: VectorFilter,
        top_k: int,
        vector: Optional[List[float]] = None,
    ) -> List[VectorMatch]:
        if top_k <= 0:
            return []
        try:
            return await asyncio.to_thread(self._query_sync, namespace, filter, top_k, vector)
        except Exception as e:
            raise ExternalServiceError(f"Vector store query failed: {e}") from e

    def _query_sync(
        self,
        namespace: str,
        filter: VectorFilter,
        top_k: int,
        vector: Optional[List[float]],
    ) -> List[VectorMatch]:
        where, params = filter.to_sql()
        values_column = ", embedding::text AS embedding_text" if self.include_values else ""

        if is_zero_vector(vector):
            sql = f"""
                SELECT review_id, metadata, 0.0 AS similarity{values_column}
                FROM review_vectors
                WHERE namespace = %s AND {where}
                ORDER BY review_id
                LIMIT %s
            """
            args = [namespace, *params, top_k]
        else:
            sql = f"""
                SELECT review_id, metadata,
                       1 - (embedding <=> %s::vector) AS similarity{values_column}
                FROM review_vectors
                WHERE namespace = %s AND {where}
                ORDER BY embedding <=> %s::vector
                LIMIT %s
            """
            args = [list(vector), namespace, *params, list(vector), top_k]

        with get_connection(self._pool) as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, args)
                rows = cur.fetchall()

        matches = []
        for row in rows:
            metadata: Dict[str, Any] = dict(row["metadata"] or {})
            metadata.setdefault("review_id", row["review_id"])
            values = None
            if self.include_values and row.get("embedding_text"):
                values = json.loads(row["embedding_text"])
            matches.append(VectorMatch(
                id=row["review_id"],
                score=float(row["similarity"]),
                metadata=metadata,
                values=values,
            ))

        logger.debug(f"Vector query in {namespace} returned {len(matches)} matches")
        return matches

    async def upsert(self, namespace: str, records: List[VectorRecord]) -> int:
        if not records:
            return 0
        try:
            return await asyncio.to_thread(self._upsert_sync, namespace, records)
        except Exception as e:
            raise ExternalServiceError(f"Vector store upsert failed: {e}") from e

    def _upsert_sync(self, namespace: str, records: List[VectorRecord]) -> int:
        rows = [
            (
                namespace,
                record.id,
                record.metadata.get("product_id"),
                record.metadata.get("brand_id"),
                record.metadata.get("competitor_id"),
                record.metadata.get("rating"),
                record.metadata.get("analysis_version"),
                json.dumps(record.values),
                Json(record.metadata),
            )
            for record in records
        ]

        with get_connection(self._pool) as conn:
            with conn.cursor() as cur:
                execute_values(cur, """
                    INSERT INTO review_vectors (
                        namespace, review_id, product_id, brand_id, competitor_id,
                        rating, analysis_version, embedding, metadata
                    ) VALUES %s
                    ON CONFLICT (namespace, review_id) DO UPDATE SET
                        product_id = EXCLUDED.product_id,
                        brand_id = EXCLUDED.brand_id,
                        competitor_id = EXCLUDED.competitor_id,
                        rating = EXCLUDED.rating,
                        analysis_version = EXCLUDED.analysis_version,
                        embedding = EXCLUDED.embedding,
                        metadata = EXCLUDED.metadata,
                        updated_at = NOW()
                """, rows, template="(%s, %s, %s, %s, %s, %s, %s, %s::vector, %s)")

        logger.info(f"Upserted {len(rows)} vectors into {namespace}")
        return len(rows)
