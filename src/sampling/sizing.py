"""
Dynamic sample sizing.

Scales each analysis type's base sample with the product's review volume.
"""

from src.ai.analysis_types import AnalysisSpec

BREADTH_MULTIPLIER = 1.5
BREADTH_CAP = 3000
LARGE_CORPUS_CAP = 2000

# (max_total_reviews, share of total), checked in order
VOLUME_TIERS = (
    (2000, 0.25),
    (10000, 0.12),
)
LARGE_CORPUS_SHARE = 0.08
SMALL_CORPUS_LIMIT = 500


def target_sample_size(spec: AnalysisSpec, total_reviews: int) -> int:
    """
    Number of reviews to select for one analysis.

    <= 500 reviews: min(base, total)
    <= 2000: max(base, 25% of total)
    <= 10000: max(base, 12% of total)
    above: max(base, min(8% of total, 2000))
    Breadth-sensitive types are then multiplied by 1.5, capped at 3000.

    An unknown review count (0 or less) falls back to the base size; the
    selection itself will come back empty if there really are no reviews.
    """
    base = spec.base_sample_size

    if total_reviews <= 0:
        size = base
    elif total_reviews <= SMALL_CORPUS_LIMIT:
        size = min(base, total_reviews)
    else:
        for max_total, share in VOLUME_TIERS:
            if total_reviews <= max_total:
                size = max(base, int(total_reviews * share))
                break
        else:
            size = max(base, min(int(total_reviews * LARGE_CORPUS_SHARE), LARGE_CORPUS_CAP))

    if spec.breadth_sensitive:
        size = min(int(size * BREADTH_MULTIPLIER), BREADTH_CAP)

    return size
