"""
Review Relevance Scorer
=======================

Ranks pooled reviews for one analysis type.

Each candidate gets five raw 0-100 component scores:

    semantic  : cosine similarity between the review and the type's relevance query
    length    : triangular fitness around the type's ideal word count
    recency   : tiered by review age
    rating    : how useful the rating band is for the type
    keyword   : trigger-phrase hits

The total is the weighted sum (see relevance_config). score_candidates() is the
pure core: given the same embeddings and reference date it always returns the
same ranking. score() adds the embedding calls around it.

Usage:
    scorer = RelevanceScorer(embedder)
    ranked = await scorer.score(pool, "sentiment", product_name="Trail Mount")
"""

import logging
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from src.retrieval.embedder import Embedder
from src.reviews.review_models import ReviewCandidate, ScoredReview

from .relevance_config import DEFAULT_RELEVANCE_CONFIG, RelevanceConfig

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 when either vector has zero norm or lengths differ."""
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class RelevanceScorer:
    """
    Relevance scorer for review sampling, fully deterministic given embeddings.
    """

    def __init__(self, embedder: Embedder, config: Optional[RelevanceConfig] = None):
        self.embedder = embedder
        self.config = config or DEFAULT_RELEVANCE_CONFIG
        self.config.validate()

    async def score(
        self,
        pool: List[ReviewCandidate],
        analysis_type: str,
        product_name: Optional[str] = None,
        reference_date: Optional[datetime] = None,
    ) -> List[ScoredReview]:
        """
        Embed the relevance query (once) and any candidate without a stored
        embedding (one batch), then rank.
        """
        if not pool:
            return []

        query_text = self.config.queries.query_for(analysis_type, product_name)
        query_vector = await self.embedder.embed_query(query_text)

        missing = [i for i, c in enumerate(pool) if not c.embedding]
        embeddings: List[Optional[List[float]]] = [c.embedding for c in pool]
        if missing:
            vectors = await self.embedder.embed_batch([pool[i].review.text for i in missing])
            for i, vector in zip(missing, vectors):
                embeddings[i] = vector
            logger.debug(f"Embedded {len(missing)} pooled reviews without stored vectors")

        return self.score_candidates(
            pool, analysis_type, query_vector, embeddings, reference_date=reference_date
        )

    def score_candidates(
        self,
        pool: List[ReviewCandidate],
        analysis_type: str,
        query_vector: Sequence[float],
        embeddings: Optional[Sequence[Optional[Sequence[float]]]] = None,
        reference_date: Optional[datetime] = None,
    ) -> List[ScoredReview]:
        """
        Score and sort candidates descending. Ties keep pool order.

        Args:
            pool: Candidates in pool order
            analysis_type: Analysis type value
            query_vector: Embedded relevance query
            embeddings: Per-candidate vectors (defaults to each candidate's own)
            reference_date: "Now" for recency (defaults to the current UTC time)
        """
        reference_date = _as_naive_utc(reference_date or datetime.now(timezone.utc))
        if embeddings is None:
            embeddings = [c.embedding for c in pool]

        weights = self.config.weights
        scored = []
        for candidate, embedding in zip(pool, embeddings):
            review = candidate.review
            components: Dict[str, float] = {
                "semantic": self.score_semantic(query_vector, embedding),
                "length": self.score_length(review.word_count, analysis_type),
                "recency": self.score_recency(review.date, reference_date),
                "rating": self.score_rating(review.rating, analysis_type),
                "keyword": self.score_keywords(review.text, analysis_type),
            }
            total = (
                components["semantic"] * weights.semantic
                + components["length"] * weights.length
                + components["recency"] * weights.recency
                + components["rating"] * weights.rating
                + components["keyword"] * weights.keyword
            )
            scored.append(ScoredReview(review=review, score=total, components=components))

        # sorted() is stable
        return sorted(scored, key=lambda s: s.score, reverse=True)

    # =========================================================================
    # COMPONENTS
    # =========================================================================

    def score_semantic(
        self,
        query_vector: Sequence[float],
        embedding: Optional[Sequence[float]],
    ) -> float:
        if not embedding:
            return 0.0
        return cosine_similarity(query_vector, embedding) * 100

    def score_length(self, word_count: int, analysis_type: str) -> float:
        """
        Triangular fitness: 0-50 below min, 50-100 up to ideal, 100-50 down to
        max, then decaying by the overshoot relative to max, floored at 0.
        """
        profile = self.config.length.profile_for(analysis_type)
        lo, ideal, hi = profile.min_words, profile.ideal_words, profile.max_words

        if word_count < lo:
            return word_count / lo * 50
        if word_count <= ideal:
            if ideal == lo:
                return 100.0
            return 50 + (word_count - lo) / (ideal - lo) * 50
        if word_count <= hi:
            if hi == ideal:
                return 100.0
            return 100 - (word_count - ideal) / (hi - ideal) * 50
        return max(0.0, 50 - (word_count - hi) / hi * 50)

    def score_recency(self, review_date: Optional[datetime], reference_date: datetime) -> float:
        cfg = self.config.recency
        if review_date is None:
            return float(cfg.undated_score)

        age_days = (reference_date - _as_naive_utc(review_date)).days
        for max_age, points in cfg.tiers:
            if age_days <= max_age:
                return float(points)
        return float(cfg.older_score)

    def score_rating(self, rating: Optional[float], analysis_type: str) -> float:
        cfg = self.config.rating
        r = cfg.neutral_rating if rating is None else rating

        if analysis_type in cfg.extreme_types:
            if r <= 2 or r >= 4.5:
                return float(cfg.extreme_score)
            if r <= 2.5 or r >= 4:
                return float(cfg.near_extreme_score)
            return float(cfg.middle_score)

        if analysis_type in cfg.balanced_types:
            return float(cfg.balanced_score)

        if r <= 2 or r >= 4.5:
            return float(cfg.default_extreme_score)
        return float(cfg.default_other_score)

    def score_keywords(self, text: str, analysis_type: str) -> float:
        cfg = self.config.keywords
        lowered = (text or "").lower()
        hits = sum(1 for phrase in cfg.lexicon_for(analysis_type) if phrase.lower() in lowered)
        return float(min(hits * cfg.points_per_hit, cfg.max_score))
