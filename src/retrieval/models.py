"""
Vector Store Models
===================

Records, matches and metadata filters exchanged with the vector store.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class VectorRecord:
    """One vector to upsert, keyed by review id."""
    id: str
    values: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class VectorMatch:
    """A query hit. values is the stored embedding when the store returns it."""
    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)
    values: Optional[List[float]] = None


@dataclass
class VectorFilter:
    """
    Metadata filter for review vectors.

    competitor_id=None with own_reviews_only=True restricts to the product's
    own reviews; competitor_ids selects reviews of several competitors at once.
    Ratings are matched as rating_min <= rating < rating_max.
    """
    product_id: str
    competitor_id: Optional[str] = None
    competitor_ids: Optional[List[str]] = None
    own_reviews_only: bool = True
    rating_min: Optional[float] = None
    rating_max: Optional[float] = None
    analysis_version: Optional[str] = None

    def matches(self, metadata: Dict[str, Any]) -> bool:
        """In-memory evaluation of the same predicate as to_sql()."""
        if metadata.get("product_id") != self.product_id:
            return False

        competitor = metadata.get("competitor_id")
        if self.competitor_ids is not None:
            if competitor not in self.competitor_ids:
                return False
        elif self.competitor_id is not None:
            if competitor != self.competitor_id:
                return False
        elif self.own_reviews_only and competitor is not None:
            return False

        if self.rating_min is not None or self.rating_max is not None:
            rating = metadata.get("rating")
            if rating is None:
                return False
            if self.rating_min is not None and rating < self.rating_min:
                return False
            if self.rating_max is not None and rating >= self.rating_max:
                return False

        if self.analysis_version and metadata.get("analysis_version") != self.analysis_version:
            return False

        return True

    def to_sql(self) -> Tuple[str, List[Any]]:
        """WHERE clause (without the keyword) and its parameters."""
        clauses = ["product_id = %s"]
        params: List[Any] = [self.product_id]

        if self.competitor_ids is not None:
            clauses.append("competitor_id = ANY(%s)")
            params.append(list(self.competitor_ids))
        elif self.competitor_id is not None:
            clauses.append("competitor_id = %s")
            params.append(self.competitor_id)
        elif self.own_reviews_only:
            clauses.append("competitor_id IS NULL")

        if self.rating_min is not None:
            clauses.append("rating >= %s")
            params.append(self.rating_min)
        if self.rating_max is not None:
            clauses.append("rating < %s")
            params.append(self.rating_max)

        if self.analysis_version:
            clauses.append("analysis_version = %s")
            params.append(self.analysis_version)

        return " AND ".join(clauses), params
