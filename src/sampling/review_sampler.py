"""
Review Sampler
==============

Pool -> score -> balanced selection, as one call per analysis type.
"""

import logging
from typing import List, Optional

from src.retrieval.embedder import Embedder
from src.retrieval.vector_store import VectorStore
from src.reviews.review_models import Review
from src.scoring.relevance_scorer import RelevanceScorer

from .balanced_selector import BalancedSelector
from .pool_builder import PoolScope, ReviewPoolBuilder, pool_size_for

logger = logging.getLogger(__name__)


class ReviewSampler:
    """Selects the most relevant, rating-balanced reviews for an analysis type."""

    def __init__(
        self,
        pool_builder: ReviewPoolBuilder,
        scorer: RelevanceScorer,
        selector: Optional[BalancedSelector] = None,
    ):
        self.pool_builder = pool_builder
        self.scorer = scorer
        self.selector = selector or BalancedSelector()

    @classmethod
    def create(cls, vector_store: VectorStore, embedder: Embedder) -> "ReviewSampler":
        return cls(
            pool_builder=ReviewPoolBuilder(vector_store, dimensions=embedder.dimensions),
            scorer=RelevanceScorer(embedder),
        )

    async def select_reviews(
        self,
        product_id: str,
        namespace: str,
        analysis_type: str,
        limit: int,
        product_name: Optional[str] = None,
        competitor_id: Optional[str] = None,
        analysis_version: Optional[str] = None,
    ) -> List[Review]:
        """Up to `limit` reviews; empty when the product (or competitor) has none."""
        if limit <= 0:
            return []

        scope = PoolScope(competitor_id=competitor_id, analysis_version=analysis_version)
        pool = await self.pool_builder.build_pool(
            product_id, namespace, scope, pool_size=pool_size_for(limit)
        )
        if not pool:
            logger.warning(f"Empty review pool for {analysis_type} on {product_id}")
            return []

        scored = await self.scorer.score(pool, analysis_type, product_name=product_name)
        return self.selector.select(scored, limit, analysis_type)

    async def competitor_reviews(
        self,
        product_id: str,
        namespace: str,
        competitor_ids: List[str],
        limit: int,
    ) -> List[Review]:
        return await self.pool_builder.competitor_reviews(
            product_id, namespace, competitor_ids, limit=limit
        )
