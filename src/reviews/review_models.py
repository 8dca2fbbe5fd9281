"""
Review Data Models
==================

Review representations flowing through the sampling pipeline:

    Review          : immutable review as stored in the vector store metadata
    ReviewCandidate : a pooled review, optionally carrying its stored embedding
    ScoredReview    : a candidate with its relevance score breakdown

The embedding is never part of the Review itself; it lives in the vector
store and only travels with a ReviewCandidate so the scorer can reuse it.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


# Ratings without a value are bucketed as neutral when a bucket is required
DEFAULT_RATING = 3
RATING_BUCKETS = (1, 2, 3, 4, 5)


def rating_bucket(rating: Optional[float]) -> int:
    """
    Round a rating half-up to its star bucket.

    2.5 belongs to bucket 3, matching the [b - 0.5, b + 0.5) pool filter.
    """
    if rating is None:
        return DEFAULT_RATING
    return int(math.floor(rating + 0.5))


def count_words(text: str) -> int:
    """Whitespace word count."""
    return len(text.split())


@dataclass(frozen=True)
class Review:
    """A single customer review for a product or one of its competitors."""
    id: str
    product_id: str
    text: str
    rating: Optional[float] = None
    date: Optional[datetime] = None
    competitor_id: Optional[str] = None
    word_count: int = 0
    analysis_version: str = "v1"

    def __post_init__(self):
        if self.rating is not None and not 1 <= self.rating <= 5:
            raise ValueError(f"Review {self.id}: rating must be within 1-5, got {self.rating}")
        if not self.word_count and self.text:
            object.__setattr__(self, "word_count", count_words(self.text))

    @property
    def is_ratable(self) -> bool:
        return self.rating is not None

    @property
    def bucket(self) -> int:
        return rating_bucket(self.rating)

    def to_metadata(self) -> Dict[str, Any]:
        """Metadata stored next to the review vector."""
        return {
            "review_id": self.id,
            "product_id": self.product_id,
            "competitor_id": self.competitor_id,
            "rating": self.rating,
            "date": self.date.isoformat() if self.date else None,
            "text": self.text[:1000],
            "word_count": self.word_count,
            "analysis_version": self.analysis_version,
        }

    @classmethod
    def from_metadata(cls, metadata: Dict[str, Any]) -> "Review":
        """Rebuild a Review from vector store metadata."""
        raw_date = metadata.get("date")
        if isinstance(raw_date, str):
            raw_date = datetime.fromisoformat(raw_date)

        rating = metadata.get("rating")
        return cls(
            id=str(metadata["review_id"]),
            product_id=str(metadata["product_id"]),
            competitor_id=metadata.get("competitor_id"),
            text=metadata.get("text") or "",
            rating=float(rating) if rating is not None else None,
            date=raw_date,
            word_count=int(metadata.get("word_count") or 0),
            analysis_version=metadata.get("analysis_version") or "v1",
        )


@dataclass
class ReviewCandidate:
    """A review drawn into a candidate pool."""
    review: Review
    embedding: Optional[List[float]] = None


@dataclass
class ScoredReview:
    """
    A candidate with its weighted relevance score.

    components holds the raw 0-100 score of each factor before weighting,
    so a ranking can be explained after the fact.
    """
    review: Review
    score: float
    components: Dict[str, float] = field(default_factory=dict)

    @property
    def bucket(self) -> int:
        return self.review.bucket
