"""
Review Sampling
===============

Stratified pooling, balanced selection and dynamic sample sizing.

Components:
- pool_builder: rating-stratified candidate pools (metadata-only queries)
- balanced_selector: per-rating floor/cap quotas
- sizing: sample size per analysis type from review volume
- review_sampler: pool -> score -> select facade
"""

from .pool_builder import (
    MAX_POOL_SIZE,
    POOL_OVERSAMPLE,
    PoolScope,
    ReviewPoolBuilder,
    pool_size_for,
)
from .balanced_selector import BalancedSelector, bucket_cap, bucket_floor
from .sizing import target_sample_size
from .review_sampler import ReviewSampler

__all__ = [
    "MAX_POOL_SIZE",
    "POOL_OVERSAMPLE",
    "PoolScope",
    "ReviewPoolBuilder",
    "pool_size_for",
    "BalancedSelector",
    "bucket_cap",
    "bucket_floor",
    "target_sample_size",
    "ReviewSampler",
]
