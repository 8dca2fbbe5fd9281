"""
Analysis Repository
===================

Persistence for products, analysis records, run locks and run summaries.

AnalysisRepository is the interface the orchestrator and status tracker use;
PostgresAnalysisRepository implements it with psycopg2 (calls run in worker
threads so the event loop is never blocked).
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Dict, Optional

from psycopg2.extras import Json, RealDictCursor

from .data_models import (
    AnalysisRecord,
    AnalysisRun,
    Brand,
    Competitor,
    Product,
    RecordStatus,
)
from .db import get_connection

logger = logging.getLogger(__name__)


class AnalysisRepository(ABC):
    """Storage interface for the analysis subsystem."""

    @abstractmethod
    async def get_product(self, product_id: str) -> Optional[Product]:
        """Product with brand and competitors, or None."""
        ...

    @abstractmethod
    async def update_reviews_count(self, product_id: str, count: int) -> bool:
        """Store the number of the product's own indexed reviews. False if no such product."""
        ...

    @abstractmethod
    async def upsert_analysis(self, record: AnalysisRecord) -> None:
        """
        Insert or replace the (product_id, type) record.

        record.data=None keeps the stored data (an empty object on insert).
        """
        ...

    @abstractmethod
    async def get_analyses(self, product_id: str) -> Dict[str, AnalysisRecord]:
        """All records of a product keyed by analysis type."""
        ...

    @abstractmethod
    async def acquire_processing(self, product_id: str, token: str, stale_after: timedelta) -> bool:
        """
        Set is_processing with token unless another holder is active.

        A holder older than stale_after is considered dead and replaced.
        """
        ...

    @abstractmethod
    async def release_processing(self, product_id: str, token: str) -> bool:
        """Clear is_processing if token still holds the lock."""
        ...

    @abstractmethod
    async def record_run(self, run: AnalysisRun) -> None:
        ...

    @abstractmethod
    async def get_latest_run(self, product_id: str) -> Optional[AnalysisRun]:
        ...


class PostgresAnalysisRepository(AnalysisRepository):
    """PostgreSQL implementation (schema: database/migrations/001_review_analysis.sql)."""

    def __init__(self, pool=None):
        self._pool = pool

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    async def get_product(self, product_id: str) -> Optional[Product]:
        return await asyncio.to_thread(self._get_product_sync, product_id)

    def _get_product_sync(self, product_id: str) -> Optional[Product]:
        with get_connection(self._pool) as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("""
                    SELECT p.id, p.name, p.reviews_count, p.is_processing,
                           b.id AS brand_id, b.user_id, b.name AS brand_name
                    FROM products p
                    JOIN brands b ON b.id = p.brand_id
                    WHERE p.id = %s
                """, (product_id,))
                row = cur.fetchone()
                if not row:
                    return None

                cur.execute("""
                    SELECT id, product_id, name
                    FROM competitors
                    WHERE product_id = %s
                    ORDER BY created_at, id
                """, (product_id,))
                competitor_rows = cur.fetchall()

        return Product(
            id=row["id"],
            name=row["name"],
            brand=Brand(id=row["brand_id"], user_id=row["user_id"], name=row["brand_name"] or ""),
            reviews_count=row["reviews_count"] or 0,
            is_processing=bool(row["is_processing"]),
            competitors=[
                Competitor(id=c["id"], product_id=c["product_id"], name=c["name"])
                for c in competitor_rows
            ],
        )

    async def update_reviews_count(self, product_id: str, count: int) -> bool:
        return await asyncio.to_thread(self._update_reviews_count_sync, product_id, count)

    def _update_reviews_count_sync(self, product_id: str, count: int) -> bool:
        with get_connection(self._pool) as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    UPDATE products
                    SET reviews_count = %s
                    WHERE id = %s
                """, (count, product_id))
                updated = cur.rowcount == 1

        if not updated:
            logger.warning(f"Cannot set review count: product {product_id} not found")
        return updated

    # =========================================================================
    # ANALYSIS RECORDS
    # =========================================================================

    async def upsert_analysis(self, record: AnalysisRecord) -> None:
        await asyncio.to_thread(self._upsert_analysis_sync, record)

    def _upsert_analysis_sync(self, record: AnalysisRecord) -> None:
        data = Json(record.data) if record.data is not None else None
        status = RecordStatus(record.status).value

        with get_connection(self._pool) as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO product_analyses (product_id, type, status, data, error)
                    VALUES (%s, %s, %s, COALESCE(%s::jsonb, '{}'::jsonb), %s)
                    ON CONFLICT (product_id, type) DO UPDATE SET
                        status = EXCLUDED.status,
                        error = EXCLUDED.error,
                        data = COALESCE(%s::jsonb, product_analyses.data),
                        updated_at = NOW()
                """, (record.product_id, record.type, status, data, record.error, data))

        logger.debug(f"Upserted {record.type} for {record.product_id}: {status}")

    async def get_analyses(self, product_id: str) -> Dict[str, AnalysisRecord]:
        return await asyncio.to_thread(self._get_analyses_sync, product_id)

    def _get_analyses_sync(self, product_id: str) -> Dict[str, AnalysisRecord]:
        with get_connection(self._pool) as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("""
                    SELECT product_id, type, status, data, error, updated_at
                    FROM product_analyses
                    WHERE product_id = %s
                """, (product_id,))
                rows = cur.fetchall()

        return {
            row["type"]: AnalysisRecord(
                product_id=row["product_id"],
                type=row["type"],
                status=RecordStatus(row["status"]),
                data=row["data"],
                error=row["error"],
                updated_at=row["updated_at"],
            )
            for row in rows
        }

    # =========================================================================
    # PROCESSING LOCK
    # =========================================================================

    async def acquire_processing(self, product_id: str, token: str, stale_after: timedelta) -> bool:
        return await asyncio.to_thread(self._acquire_sync, product_id, token, stale_after)

    def _acquire_sync(self, product_id: str, token: str, stale_after: timedelta) -> bool:
        with get_connection(self._pool) as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    UPDATE products
                    SET is_processing = TRUE,
                        processing_token = %s,
                        processing_started_at = NOW()
                    WHERE id = %s
                      AND (
                          is_processing = FALSE
                          OR processing_started_at IS NULL
                          OR processing_started_at < NOW() - %s
                      )
                """, (token, product_id, stale_after))
                acquired = cur.rowcount == 1

        if acquired:
            logger.debug(f"Processing lock acquired on {product_id}")
        return acquired

    async def release_processing(self, product_id: str, token: str) -> bool:
        return await asyncio.to_thread(self._release_sync, product_id, token)

    def _release_sync(self, product_id: str, token: str) -> bool:
        with get_connection(self._pool) as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    UPDATE products
                    SET is_processing = FALSE,
                        processing_token = NULL,
                        processing_started_at = NULL
                    WHERE id = %s AND processing_token = %s
                """, (product_id, token))
                released = cur.rowcount == 1

        if not released:
            logger.warning(f"Processing lock on {product_id} was no longer held by this run")
        return released

    # =========================================================================
    # RUN TRACKING
    # =========================================================================

    async def record_run(self, run: AnalysisRun) -> None:
        await asyncio.to_thread(self._record_run_sync, run)

    def _record_run_sync(self, run: AnalysisRun) -> None:
        with get_connection(self._pool) as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO analysis_runs (
                        run_id, product_id, status, started_at, completed_at,
                        completed_types, skipped_types, errors, duration_seconds
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (run_id) DO UPDATE SET
                        status = EXCLUDED.status,
                        completed_at = EXCLUDED.completed_at,
                        completed_types = EXCLUDED.completed_types,
                        skipped_types = EXCLUDED.skipped_types,
                        errors = EXCLUDED.errors,
                        duration_seconds = EXCLUDED.duration_seconds
                """, (
                    run.run_id,
                    run.product_id,
                    run.status,
                    run.started_at,
                    run.completed_at,
                    run.completed_types,
                    run.skipped_types,
                    Json(run.errors),
                    run.duration_seconds,
                ))

    async def get_latest_run(self, product_id: str) -> Optional[AnalysisRun]:
        return await asyncio.to_thread(self._get_latest_run_sync, product_id)

    def _get_latest_run_sync(self, product_id: str) -> Optional[AnalysisRun]:
        with get_connection(self._pool) as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("""
                    SELECT run_id, product_id, status, started_at, completed_at,
                           completed_types, skipped_types, errors
                    FROM analysis_runs
                    WHERE product_id = %s
                    ORDER BY started_at DESC
                    LIMIT 1
                """, (product_id,))
                row = cur.fetchone()

        if not row:
            return None
        return AnalysisRun(
            run_id=str(row["run_id"]),
            product_id=row["product_id"],
            status=row["status"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
            completed_types=list(row["completed_types"] or []),
            skipped_types=list(row["skipped_types"] or []),
            errors=list(row["errors"] or []),
        )
