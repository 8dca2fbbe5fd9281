"""
Review Models
=============

Review representations shared by indexing, sampling and scoring.

Modules:
    review_models: Review, ReviewCandidate, ScoredReview, rating buckets
"""

from .review_models import (
    DEFAULT_RATING,
    RATING_BUCKETS,
    Review,
    ReviewCandidate,
    ScoredReview,
    count_words,
    rating_bucket,
)
