"""
Analysis Types and Dependency Graph
===================================

The fixed, ordered list of analysis types and, for each one, the facts the
orchestrator needs to plan a run:

    base_sample_size   : minimum review count before dynamic scaling
    requires           : analysis types that must be `completed` first
    needs_competitors  : dropped from the plan when the product has none
    fan_out            : runs the per-competitor sub-pipeline first
    breadth_sensitive  : sample size multiplied by 1.5 (capped at 3000)

The orchestrator evaluates this graph generically; no type is special-cased
in the run loop.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Tuple


class AnalysisType(str, Enum):
    """Analysis types, in execution order."""
    PRODUCT_DESCRIPTION = "product_description"
    SENTIMENT = "sentiment"
    VOICE_OF_CUSTOMER = "voice_of_customer"
    RATING_ANALYSIS = "rating_analysis"
    FOUR_W_MATRIX = "four_w_matrix"
    JTBD = "jtbd"
    STP = "stp"
    SWOT = "swot"
    CUSTOMER_JOURNEY = "customer_journey"
    PERSONAS = "personas"
    COMPETITION = "competition"
    SMART_COMPETITION = "smart_competition"
    STRATEGIC_RECOMMENDATIONS = "strategic_recommendations"


@dataclass(frozen=True)
class AnalysisSpec:
    type: AnalysisType
    base_sample_size: int
    requires: FrozenSet[AnalysisType] = frozenset()
    needs_competitors: bool = False
    fan_out: bool = False
    breadth_sensitive: bool = False

    def is_applicable(self, competitor_count: int) -> bool:
        """Static precondition, decided before the run starts."""
        return not self.needs_competitors or competitor_count > 0


# Sub-analyses run for every competitor before the cross-comparison synthesis.
# Sample sizes are fixed: a competitor's review volume is not tracked.
COMPETITOR_SUB_ANALYSES: Tuple[Tuple[AnalysisType, int], ...] = (
    (AnalysisType.PRODUCT_DESCRIPTION, 50),
    (AnalysisType.SWOT, 100),  # strengths/weaknesses only
    (AnalysisType.STP, 150),
    (AnalysisType.CUSTOMER_JOURNEY, 120),
)

CROSS_COMPARISON_PREREQUISITES = frozenset({
    AnalysisType.PRODUCT_DESCRIPTION,
    AnalysisType.SWOT,
    AnalysisType.STP,
    AnalysisType.CUSTOMER_JOURNEY,
})


ANALYSIS_GRAPH: Dict[AnalysisType, AnalysisSpec] = {
    spec.type: spec
    for spec in (
        AnalysisSpec(AnalysisType.PRODUCT_DESCRIPTION, 50),
        AnalysisSpec(AnalysisType.SENTIMENT, 100),
        AnalysisSpec(AnalysisType.VOICE_OF_CUSTOMER, 200, breadth_sensitive=True),
        AnalysisSpec(AnalysisType.RATING_ANALYSIS, 150),
        AnalysisSpec(AnalysisType.FOUR_W_MATRIX, 80),
        AnalysisSpec(AnalysisType.JTBD, 100),
        AnalysisSpec(AnalysisType.STP, 150),
        AnalysisSpec(AnalysisType.SWOT, 100),
        AnalysisSpec(AnalysisType.CUSTOMER_JOURNEY, 120),
        AnalysisSpec(AnalysisType.PERSONAS, 150, breadth_sensitive=True),
        AnalysisSpec(AnalysisType.COMPETITION, 100, needs_competitors=True),
        AnalysisSpec(
            AnalysisType.SMART_COMPETITION,
            200,
            requires=CROSS_COMPARISON_PREREQUISITES,
            needs_competitors=True,
            fan_out=True,
        ),
        AnalysisSpec(AnalysisType.STRATEGIC_RECOMMENDATIONS, 100),
    )
}

ANALYSIS_ORDER: Tuple[AnalysisType, ...] = tuple(AnalysisType)


def get_spec(analysis_type) -> AnalysisSpec:
    return ANALYSIS_GRAPH[AnalysisType(analysis_type)]


def plan_analyses(competitor_count: int) -> List[AnalysisSpec]:
    """Ordered analyses applicable to a product with `competitor_count` competitors."""
    return [
        ANALYSIS_GRAPH[t]
        for t in ANALYSIS_ORDER
        if ANALYSIS_GRAPH[t].is_applicable(competitor_count)
    ]


def _validate_graph():
    """Every requirement must run earlier in the declared order."""
    position = {t: i for i, t in enumerate(ANALYSIS_ORDER)}
    for spec in ANALYSIS_GRAPH.values():
        for required in spec.requires:
            if position[required] >= position[spec.type]:
                raise ValueError(
                    f"{spec.type.value} requires {required.value}, which runs later"
                )


_validate_graph()
