"""
Review Relevance Scoring
========================

Deterministic relevance ranking of pooled reviews per analysis type.

Components:
    - RelevanceScorer: weighted semantic / length / recency / rating / keyword scoring
    - RelevanceConfig: every calibration parameter, no magic numbers in the scorer

Usage:
    from src.scoring import RelevanceScorer

    scorer = RelevanceScorer(embedder)
    ranked = await scorer.score(pool, "swot")
"""

from .relevance_config import (
    RelevanceConfig,
    DEFAULT_RELEVANCE_CONFIG,
    LengthProfile,
)
from .relevance_scorer import (
    RelevanceScorer,
    cosine_similarity,
)

__all__ = [
    "RelevanceScorer",
    "cosine_similarity",
    "RelevanceConfig",
    "DEFAULT_RELEVANCE_CONFIG",
    "LengthProfile",
]
