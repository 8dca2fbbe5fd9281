"""
Analysis Result Schemas
=======================

Pydantic models for the JSON each analysis type must return.
Each type has exactly one top-level key; nested items only pin the fields
the dashboards rely on and accept anything extra.

validate_analysis_data() is called before a record is written as completed.
"""

from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, Field, ValidationError

from src.orchestrator.errors import SchemaValidationError

from .analysis_types import AnalysisType

Percentage = Union[str, float, int]


class _Loose(BaseModel):
    class Config:
        extra = "allow"


# ============================================================================
# SHARED ITEMS
# ============================================================================

class ThemeItem(_Loose):
    """A theme with its share of reviews and a supporting quote."""
    theme: Optional[str] = None
    topic: Optional[str] = None
    importance: Optional[str] = None
    percentage: Optional[Percentage] = None
    summary: Optional[str] = None
    example_quote: Optional[str] = None


class BuyerPersona(_Loose):
    persona_name: str
    representation_percentage: Optional[Percentage] = None
    persona_intro: Optional[str] = None
    demographics: Dict[str, Any] = Field(default_factory=dict)
    psychographics: Dict[str, Any] = Field(default_factory=dict)
    goals_motivations: List[str] = Field(default_factory=list)
    pain_points_frustrations: List[str] = Field(default_factory=list)
    day_in_the_life: Optional[str] = None


# ============================================================================
# PER-TYPE SECTIONS
# ============================================================================

class ProductDescriptionSection(_Loose):
    summary: str
    attributes: List[str] = Field(default_factory=list)
    variations: List[str] = Field(default_factory=list)


class SentimentSection(_Loose):
    customer_likes: List[ThemeItem] = Field(default_factory=list)
    customer_dislikes: List[ThemeItem] = Field(default_factory=list)


class Keyword(_Loose):
    word: str
    frequency: Percentage


class VoiceOfCustomerSection(_Loose):
    keywords: List[Keyword]


class RatingLevel(_Loose):
    rating: int
    count: Optional[int] = None
    percentage: Optional[Percentage] = None
    top_themes: List[Dict[str, Any]] = Field(default_factory=list)


class RatingAnalysisSection(_Loose):
    ratings: List[RatingLevel]
    insights: Dict[str, Any] = Field(default_factory=dict)


class FourWSection(_Loose):
    who: List[ThemeItem] = Field(default_factory=list)
    what: List[ThemeItem] = Field(default_factory=list)
    where: List[ThemeItem] = Field(default_factory=list)
    when: List[ThemeItem] = Field(default_factory=list)


class JobItem(ThemeItem):
    job_statement: Optional[str] = None


class JTBDSection(_Loose):
    functional_jobs: List[JobItem] = Field(default_factory=list)
    emotional_jobs: List[JobItem] = Field(default_factory=list)
    social_jobs: List[JobItem] = Field(default_factory=list)


class Segment(_Loose):
    segment: str
    percentage: Optional[Percentage] = None
    description: Optional[str] = None
    buyer_persona: Optional[BuyerPersona] = None


class STPSection(_Loose):
    market_definition: Optional[str] = None
    segmentation: List[Segment] = Field(default_factory=list)
    targeting_strategy: Dict[str, Any] = Field(default_factory=dict)
    positioning_strategy: Dict[str, Any] = Field(default_factory=dict)
    implementation_recommendations: Dict[str, Any] = Field(default_factory=dict)


class SWOTSection(_Loose):
    strengths: List[ThemeItem] = Field(default_factory=list)
    weaknesses: List[ThemeItem] = Field(default_factory=list)
    opportunities: List[ThemeItem] = Field(default_factory=list)
    threats: List[ThemeItem] = Field(default_factory=list)


class CustomerJourneySection(_Loose):
    awareness: List[ThemeItem] = Field(default_factory=list)
    consideration: List[ThemeItem] = Field(default_factory=list)
    purchase: List[ThemeItem] = Field(default_factory=list)
    delivery_unboxing: List[ThemeItem] = Field(default_factory=list)
    usage: List[ThemeItem] = Field(default_factory=list)
    post_purchase: List[ThemeItem] = Field(default_factory=list)


class CompetitionSection(_Loose):
    comparison_matrix: List[Dict[str, Any]] = Field(default_factory=list)
    usps: Dict[str, Any] = Field(default_factory=dict)
    pain_points: Dict[str, Any] = Field(default_factory=dict)
    customer_segment_analysis: Dict[str, Any] = Field(default_factory=dict)
    loyalty_indicators: Dict[str, Any] = Field(default_factory=dict)
    price_value_perception: Dict[str, Any] = Field(default_factory=dict)


class SmartCompetitionSection(_Loose):
    product_attributes: Dict[str, Any] = Field(default_factory=dict)
    swot_matrix: Dict[str, Any] = Field(default_factory=dict)
    segmentation_analysis: Dict[str, Any] = Field(default_factory=dict)
    journey_analysis: Dict[str, Any] = Field(default_factory=dict)
    executive_summary: Dict[str, Any]


class Recommendation(_Loose):
    recommendation: str
    priority_level: Optional[str] = None
    timeframe: Optional[str] = None


class StrategicRecommendationsSection(_Loose):
    executive_summary: str
    product_strategy: List[Recommendation] = Field(default_factory=list)
    marketing_strategy: List[Recommendation] = Field(default_factory=list)
    customer_experience: List[Recommendation] = Field(default_factory=list)
    competitive_strategy: List[Recommendation] = Field(default_factory=list)


class CompetitorSWOTSection(_Loose):
    """Strengths/weaknesses-only SWOT run for each competitor."""
    strengths: List[ThemeItem] = Field(default_factory=list)
    weaknesses: List[ThemeItem] = Field(default_factory=list)


# ============================================================================
# TOP-LEVEL DOCUMENTS (one key per type)
# ============================================================================

class ProductDescriptionResult(BaseModel):
    product_description: ProductDescriptionSection


class SentimentResult(BaseModel):
    sentiment_analysis: SentimentSection


class VoiceOfCustomerResult(BaseModel):
    voice_of_customer: VoiceOfCustomerSection


class RatingAnalysisResult(BaseModel):
    rating_analysis: RatingAnalysisSection


class FourWResult(BaseModel):
    four_w_matrix: FourWSection


class JTBDResult(BaseModel):
    jtbd_analysis: JTBDSection


class STPResult(BaseModel):
    stp_analysis: STPSection


class SWOTResult(BaseModel):
    swot_analysis: SWOTSection


class CustomerJourneyResult(BaseModel):
    customer_journey: CustomerJourneySection


class PersonasResult(BaseModel):
    customer_personas: List[BuyerPersona] = Field(min_length=1)


class CompetitionResult(BaseModel):
    competition_analysis: CompetitionSection


class SmartCompetitionResult(BaseModel):
    smart_competition_analysis: SmartCompetitionSection


class StrategicRecommendationsResult(BaseModel):
    strategic_recommendations: StrategicRecommendationsSection


class CompetitorSWOTResult(BaseModel):
    swot_analysis: CompetitorSWOTSection


RESULT_MODELS: Dict[AnalysisType, Type[BaseModel]] = {
    AnalysisType.PRODUCT_DESCRIPTION: ProductDescriptionResult,
    AnalysisType.SENTIMENT: SentimentResult,
    AnalysisType.VOICE_OF_CUSTOMER: VoiceOfCustomerResult,
    AnalysisType.RATING_ANALYSIS: RatingAnalysisResult,
    AnalysisType.FOUR_W_MATRIX: FourWResult,
    AnalysisType.JTBD: JTBDResult,
    AnalysisType.STP: STPResult,
    AnalysisType.SWOT: SWOTResult,
    AnalysisType.CUSTOMER_JOURNEY: CustomerJourneyResult,
    AnalysisType.PERSONAS: PersonasResult,
    AnalysisType.COMPETITION: CompetitionResult,
    AnalysisType.SMART_COMPETITION: SmartCompetitionResult,
    AnalysisType.STRATEGIC_RECOMMENDATIONS: StrategicRecommendationsResult,
}


def result_key(analysis_type) -> str:
    """The single top-level JSON key expected for a type."""
    model = RESULT_MODELS[AnalysisType(analysis_type)]
    return next(iter(model.model_fields))


def _validate(model: Type[BaseModel], label: str, data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise SchemaValidationError(f"{label} result must be a JSON object")
    try:
        return model.model_validate(data).model_dump()
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()[:5]
        )
        raise SchemaValidationError(f"{label} result does not match schema: {errors}") from e


def validate_analysis_data(analysis_type, data: Any) -> Dict[str, Any]:
    """
    Validate (and normalize) an analysis payload.

    Raises:
        SchemaValidationError: payload is not an object or misses required fields
    """
    analysis_type = AnalysisType(analysis_type)
    return _validate(RESULT_MODELS[analysis_type], analysis_type.value, data)


def validate_competitor_swot(data: Any) -> Dict[str, Any]:
    return _validate(CompetitorSWOTResult, "competitor swot", data)
