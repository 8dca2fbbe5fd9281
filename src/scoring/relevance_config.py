"""
Relevance scoring thresholds and weights.

Centralizes every calibration parameter of the review relevance scorer:
factor weights, per-type length profiles, recency tiers, rating regimes,
relevance query texts and keyword lexicons.

Each factor produces a raw 0-100 score; the final score is the weighted sum
of the five factors (weights sum to 1.0).
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Tuple


@dataclass(frozen=True)
class WeightConfig:
    """Factor weights (sum = 1.0)."""
    semantic: float = 0.4
    length: float = 0.2
    recency: float = 0.1
    rating: float = 0.2
    keyword: float = 0.1

    @property
    def total(self) -> float:
        return self.semantic + self.length + self.recency + self.rating + self.keyword


@dataclass(frozen=True)
class LengthProfile:
    """Word-count profile: score peaks at ideal, 50 at min and max."""
    min_words: int
    ideal_words: int
    max_words: int


@dataclass(frozen=True)
class LengthConfig:
    """
    Length fitness per analysis type.

    Short, punchy reviews feed vocabulary extraction; long narratives feed
    journey mapping and jobs-to-be-done.
    """
    profiles: Dict[str, LengthProfile] = field(default_factory=lambda: {
        "sentiment": LengthProfile(20, 50, 150),
        "personas": LengthProfile(30, 80, 200),
        "voice_of_customer": LengthProfile(10, 40, 100),
        "four_w_matrix": LengthProfile(20, 60, 150),
        "jtbd": LengthProfile(30, 100, 300),
        "stp": LengthProfile(25, 70, 200),
        "swot": LengthProfile(40, 100, 250),
        "customer_journey": LengthProfile(40, 120, 300),
        "competition": LengthProfile(30, 80, 200),
        "smart_competition": LengthProfile(30, 80, 200),
        "product_description": LengthProfile(15, 40, 100),
        "strategic_recommendations": LengthProfile(30, 80, 200),
    })
    default_profile: LengthProfile = LengthProfile(20, 60, 150)

    def profile_for(self, analysis_type: str) -> LengthProfile:
        return self.profiles.get(analysis_type, self.default_profile)


@dataclass(frozen=True)
class RecencyConfig:
    """Review age tiers: (max_age_days, score)."""
    tiers: Tuple[Tuple[int, int], ...] = (
        (180, 100),
        (360, 80),
        (720, 60),
        (1095, 40),
    )
    older_score: int = 20
    undated_score: int = 50


@dataclass(frozen=True)
class RatingConfig:
    """
    Rating relevance regimes.

    Extreme-preferring types want strong opinions; balance-preferring types
    want every rating band equally.
    """
    extreme_types: FrozenSet[str] = frozenset({
        "swot", "sentiment", "strategic_recommendations",
    })
    balanced_types: FrozenSet[str] = frozenset({
        "personas", "four_w_matrix", "stp", "rating_analysis",
    })

    # Extreme regime
    extreme_score: int = 100      # <= 2 or >= 4.5
    near_extreme_score: int = 70  # <= 2.5 or >= 4
    middle_score: int = 40

    balanced_score: int = 80

    # Default regime
    default_extreme_score: int = 90
    default_other_score: int = 70

    neutral_rating: float = 3.0


@dataclass(frozen=True)
class KeywordConfig:
    """Trigger phrases per type, 20 points per hit, capped at 100."""
    points_per_hit: int = 20
    max_score: int = 100
    lexicons: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: {
        "sentiment": (
            "love", "hate", "excellent", "terrible", "amazing", "awful", "perfect", "horrible",
        ),
        "personas": (
            "I am", "my age", "my job", "lifestyle", "daily", "routine", "prefer", "always",
        ),
        "four_w_matrix": (
            "use it for", "when I", "where I", "because I", "during", "at home", "at work",
        ),
        "jtbd": (
            "helps me", "allows me", "enables", "so that I", "need to", "want to", "trying to",
        ),
        "competition": (
            "better than", "worse than", "compared to", "alternative", "switched from", "instead of",
        ),
        "smart_competition": (
            "better than", "worse than", "compared to", "alternative", "switched from", "instead of",
        ),
        "swot": (
            "strength", "weakness", "problem", "issue", "wish", "could be better", "best feature",
        ),
        "customer_journey": (
            "found it", "ordered", "arrived", "delivery", "packaging", "first time", "after a week",
        ),
        "product_description": (
            "material", "size", "color", "weight", "feature", "quality", "design",
        ),
        "strategic_recommendations": (
            "should", "would be nice", "recommend", "improve", "wish", "please add",
        ),
        "voice_of_customer": (
            "easy to", "works great", "worth", "disappointed", "exactly what",
        ),
    })

    def lexicon_for(self, analysis_type: str) -> Tuple[str, ...]:
        return self.lexicons.get(analysis_type, ())


@dataclass(frozen=True)
class QueryConfig:
    """Relevance query text per type, prefixed with the product name when known."""
    queries: Dict[str, str] = field(default_factory=lambda: {
        "sentiment": "customer satisfaction likes dislikes positive negative feedback opinion emotions feelings",
        "personas": "customer profile demographics age occupation lifestyle buyer persona who uses identity characteristics",
        "voice_of_customer": "keywords frequently mentioned terms common phrases customer language vocabulary expressions",
        "four_w_matrix": "who uses what for where when buying occasion purpose location timing context situation environment",
        "jtbd": "job to be done functional emotional social needs goals outcomes tasks problems solutions hiring firing",
        "stp": "market segmentation targeting positioning customer segments demographics psychographics behaviors",
        "swot": "strengths weaknesses opportunities threats competitive advantages challenges problems benefits drawbacks",
        "customer_journey": "awareness consideration purchase delivery usage experience touchpoints pain points satisfaction stages",
        "competition": "competitor comparison features benefits advantages disadvantages versus alternative better worse",
        "smart_competition": "competitive landscape comparison strengths weaknesses positioning differentiation versus alternatives",
        "product_description": "product features specifications attributes characteristics description quality materials components",
        "strategic_recommendations": "recommendations strategy improvement opportunities growth suggestions enhancement future",
        "rating_analysis": "star rating reasons satisfied dissatisfied expectations met value for money overall verdict",
    })
    default_query: str = "general product review analysis"

    def query_for(self, analysis_type: str, product_name: str = None) -> str:
        text = self.queries.get(analysis_type, self.default_query)
        if product_name:
            return f"{product_name} {text}"
        return text


@dataclass
class RelevanceConfig:
    """
    Relevance scorer configuration.

    Single entry point for calibration.
    """
    weights: WeightConfig = field(default_factory=WeightConfig)
    length: LengthConfig = field(default_factory=LengthConfig)
    recency: RecencyConfig = field(default_factory=RecencyConfig)
    rating: RatingConfig = field(default_factory=RatingConfig)
    keywords: KeywordConfig = field(default_factory=KeywordConfig)
    queries: QueryConfig = field(default_factory=QueryConfig)

    def validate(self) -> bool:
        """Check configuration consistency."""
        if abs(self.weights.total - 1.0) > 1e-9:
            raise ValueError(f"Factor weights must sum to 1.0, got {self.weights.total}")
        for name, profile in self.length.profiles.items():
            if not 0 < profile.min_words <= profile.ideal_words <= profile.max_words:
                raise ValueError(f"Invalid length profile for {name}: {profile}")
        return True


DEFAULT_RELEVANCE_CONFIG = RelevanceConfig()
