"""
Review Pool Builder
===================

Draws a rating-stratified candidate pool from the vector store.

The pool is split into five equal rating buckets (1-5 stars). Each bucket is
a metadata-only query (neutral zero vector) filtered on
bucket - 0.5 <= rating < bucket + 0.5. Empty buckets are not backfilled from
their neighbours: diversity wins over completeness at this stage.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from src.retrieval.models import VectorFilter, VectorMatch
from src.retrieval.vector_store import VectorStore
from src.reviews.review_models import RATING_BUCKETS, Review, ReviewCandidate, rating_bucket

logger = logging.getLogger(__name__)

MAX_POOL_SIZE = 500
POOL_OVERSAMPLE = 3
DEFAULT_COMPETITOR_SAMPLE = 50


def pool_size_for(limit: int) -> int:
    """Candidate pool size for a final sample of `limit` reviews."""
    return min(limit * POOL_OVERSAMPLE, MAX_POOL_SIZE)


@dataclass(frozen=True)
class PoolScope:
    """
    Which reviews of a product are eligible.

    competitor_id=None means the product's own reviews.
    """
    competitor_id: Optional[str] = None
    analysis_version: Optional[str] = None


class ReviewPoolBuilder:
    """Builds rating-stratified pools from a VectorStore."""

    def __init__(self, vector_store: VectorStore, dimensions: int = 1536):
        self.vector_store = vector_store
        self.dimensions = dimensions

    def _neutral_vector(self) -> List[float]:
        return [0.0] * self.dimensions

    async def build_pool(
        self,
        product_id: str,
        namespace: str,
        scope: Optional[PoolScope] = None,
        pool_size: int = MAX_POOL_SIZE,
    ) -> List[ReviewCandidate]:
        """
        Build a candidate pool, bucket 1 first.

        Args:
            product_id: Product whose reviews are pooled
            namespace: Brand namespace in the vector store
            scope: Own reviews (default) or one competitor's reviews
            pool_size: Requested size, capped at MAX_POOL_SIZE

        Returns:
            Candidates carrying their stored embeddings when available
        """
        scope = scope or PoolScope()
        pool_size = min(pool_size, MAX_POOL_SIZE)
        if pool_size <= 0:
            return []
        # Tiny samples still query every bucket at least once
        per_bucket = max(1, pool_size // len(RATING_BUCKETS))

        pool: List[ReviewCandidate] = []
        for bucket in RATING_BUCKETS:
            vector_filter = VectorFilter(
                product_id=product_id,
                competitor_id=scope.competitor_id,
                own_reviews_only=scope.competitor_id is None,
                rating_min=bucket - 0.5,
                rating_max=bucket + 0.5,
                analysis_version=scope.analysis_version,
            )
            matches = await self.vector_store.query(
                namespace, vector_filter, per_bucket, vector=self._neutral_vector()
            )
            candidates = self._to_candidates(matches, bucket)
            pool.extend(candidates)
            logger.debug(f"Pool bucket {bucket}: {len(candidates)}/{per_bucket} reviews")

        scope_label = f"competitor {scope.competitor_id}" if scope.competitor_id else "own reviews"
        logger.info(f"Built pool of {len(pool)} candidates for {product_id} ({scope_label})")
        return pool

    def _to_candidates(self, matches: List[VectorMatch], bucket: int) -> List[ReviewCandidate]:
        candidates = []
        for match in matches:
            review = Review.from_metadata(match.metadata)
            if review.rating is None or rating_bucket(review.rating) != bucket:
                logger.warning(f"Review {review.id} returned outside rating bucket {bucket}, dropped")
                continue
            candidates.append(ReviewCandidate(review=review, embedding=match.values))
        return candidates

    async def competitor_reviews(
        self,
        product_id: str,
        namespace: str,
        competitor_ids: List[str],
        limit: int = DEFAULT_COMPETITOR_SAMPLE,
    ) -> List[Review]:
        """Metadata-only sample across all competitors, for head-to-head comparison."""
        if not competitor_ids or limit <= 0:
            return []

        vector_filter = VectorFilter(
            product_id=product_id,
            competitor_ids=list(competitor_ids),
            own_reviews_only=False,
        )
        matches = await self.vector_store.query(
            namespace, vector_filter, limit, vector=self._neutral_vector()
        )
        return [Review.from_metadata(m.metadata) for m in matches]
