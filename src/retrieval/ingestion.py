"""
Review Indexing
===============

Pipeline for loading a product's reviews into the vector store.

Flow:
1. Embed review texts in batches
2. Attach metadata (product, competitor, rating, date, truncated text)
3. Upsert one vector per review into the brand namespace
4. Store each product's own indexed review count (drives sample sizing)
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from src.reviews.review_models import Review

from .embedder import Embedder
from .models import VectorRecord
from .vector_store import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class IndexingResult:
    namespace: str
    indexed: int
    skipped: int
    # product_id -> own (non-competitor) reviews indexed
    product_counts: Dict[str, int] = field(default_factory=dict)


class ReviewIndexer:
    """
    Embeds reviews and writes them to the vector store.

    With a repository, each product's reviews_count is set to the number of
    its own reviews indexed by the call, so a load is expected to carry the
    product's full review export.
    """

    UPSERT_BATCH_SIZE = 100

    def __init__(self, embedder: Embedder, vector_store: VectorStore, repository=None):
        self.embedder = embedder
        self.vector_store = vector_store
        self.repository = repository

    async def index_reviews(
        self,
        reviews: List[Review],
        namespace: str,
        brand_id: Optional[str] = None,
    ) -> IndexingResult:
        """
        Index reviews into namespace.

        Reviews with blank text are skipped: they carry nothing to embed.
        """
        indexable = [r for r in reviews if r.text and r.text.strip()]
        skipped = len(reviews) - len(indexable)
        if skipped:
            logger.warning(f"Skipping {skipped} reviews with empty text")

        indexed = 0
        for start in range(0, len(indexable), self.UPSERT_BATCH_SIZE):
            batch = indexable[start:start + self.UPSERT_BATCH_SIZE]
            vectors = await self.embedder.embed_batch([r.text for r in batch])

            records = []
            for review, vector in zip(batch, vectors):
                metadata = review.to_metadata()
                if brand_id is not None:
                    metadata["brand_id"] = brand_id
                records.append(VectorRecord(id=review.id, values=vector, metadata=metadata))

            indexed += await self.vector_store.upsert(namespace, records)
            logger.info(f"Indexed {indexed}/{len(indexable)} reviews into {namespace}")

        product_counts = dict(Counter(r.product_id for r in indexable if r.competitor_id is None))
        if self.repository is not None:
            await self._update_counts(product_counts)

        return IndexingResult(
            namespace=namespace,
            indexed=indexed,
            skipped=skipped,
            product_counts=product_counts,
        )

    async def _update_counts(self, product_counts: Dict[str, int]) -> None:
        for product_id, count in sorted(product_counts.items()):
            if await self.repository.update_reviews_count(product_id, count):
                logger.info(f"Product {product_id}: reviews_count = {count}")
