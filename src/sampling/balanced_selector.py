"""
Balanced Selector
=================

Picks the final sample from a score-ordered list with per-rating quotas.

Pass 1 takes top-scored reviews until every bucket holds limit // 10 (or runs
out). Pass 2 fills the remaining slots in score order, never letting one
bucket exceed ceil(limit / 3).
"""

import logging
import math
from collections import Counter
from typing import List

from src.reviews.review_models import Review, ScoredReview

logger = logging.getLogger(__name__)


def bucket_floor(limit: int) -> int:
    return limit // 10


def bucket_cap(limit: int) -> int:
    return math.ceil(limit / 3)


class BalancedSelector:
    """Two-pass greedy quota selection."""

    def select(self, scored: List[ScoredReview], limit: int, analysis_type: str = "") -> List[Review]:
        """
        Select at most `limit` reviews.

        Args:
            scored: Candidates sorted by descending score
            limit: Target sample size
            analysis_type: Only used for logging

        Returns:
            Selected reviews in selection order, scores stripped
        """
        if limit <= 0 or not scored:
            return []

        minimum = bucket_floor(limit)
        maximum = bucket_cap(limit)
        counts: Counter = Counter()
        taken = set()
        selected: List[Review] = []

        # Pass 1: guarantee a floor per bucket
        for index, item in enumerate(scored):
            if len(selected) >= limit:
                break
            if counts[item.bucket] < minimum:
                selected.append(item.review)
                counts[item.bucket] += 1
                taken.add(index)

        # Pass 2: best remaining, capped per bucket
        for index, item in enumerate(scored):
            if len(selected) >= limit:
                break
            if index in taken:
                continue
            if counts[item.bucket] < maximum:
                selected.append(item.review)
                counts[item.bucket] += 1
                taken.add(index)

        distribution = ", ".join(f"{b}*: {counts[b]}" for b in sorted(counts))
        logger.info(
            f"Selected {len(selected)}/{limit} reviews for {analysis_type or 'analysis'} ({distribution})"
        )
        return selected
