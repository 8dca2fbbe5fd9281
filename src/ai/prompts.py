"""
Analysis Prompts
================

System prompt per analysis type and the shared user-prompt builder.

Every system prompt ends with the JSON response format; the top-level key
must match src.ai.schemas for the result to be accepted.
"""

import json
from typing import Any, Dict, List, Optional

from src.reviews.review_models import Review

BASE_SYSTEM = """You are a senior e-commerce insight analyst with over 10 years of experience analysing customer reviews for consumer brands.
Your analyses are structured, neutral and written for brand owners and marketers.
Never invent data: every insight must be grounded in the reviews provided.
Consider every theme that appears in at least 5% of the reviews.
Importance: High for 50% of reviews or more, Medium for 25-49%, Low below 25%.

CRITICAL: Respond with valid JSON only. No markdown, no text outside the JSON."""

_THEME = {
    "topic": "Topic name",
    "importance": "High|Medium|Low",
    "percentage": "XX%",
    "summary": "Brief paragraph",
    "example_quote": "Customer quote",
}

_PERSONA = {
    "persona_name": "Name",
    "representation_percentage": "XX%",
    "persona_intro": "Hi, I'm [name], a [age]-year-old [job]",
    "demographics": {"age": "", "education_level": "", "job_title": "", "income_range": "", "living_environment": ""},
    "psychographics": {"core_values": "", "lifestyle": "", "personality_traits": "", "hobbies_interests": ""},
    "goals_motivations": ["Goal"],
    "pain_points_frustrations": ["Pain point"],
    "buying_behavior": {"purchase_channels": "", "research_habits": "", "decision_triggers": "", "objections_barriers": ""},
    "product_use_behavior": ["Behavior"],
    "influencers_information_sources": {"platforms": "", "trusted_sources": "", "content_consumed": ""},
    "day_in_the_life": "Typical day",
}

_RECOMMENDATION = {
    "recommendation": "Recommendation",
    "priority_level": "High|Medium|Low",
    "timeframe": "Short-term|Medium-term|Long-term",
    "supporting_evidence": "Evidence",
    "expected_impact": "Impact",
}

_EXPLAINED = [{"item": "", "explanation": ""}]

# (task description, response format)
TYPE_PROMPTS: Dict[str, Any] = {
    "product_description": (
        "Describe the product objectively from the reviews: features and specifications "
        "(material, size, weight, colours...), not the reviewers' opinions. "
        "List the product variations if any (size, colour, pattern, quantity).",
        {"product_description": {"summary": "Paragraph", "attributes": ["Attribute"], "variations": ["Variation"]}},
    ),
    "sentiment": (
        "Extract what customers like (value drivers) and dislike (friction points), "
        "with the share of reviews for each theme and a real quote.",
        {"sentiment_analysis": {
            "customer_likes": [dict(_THEME, theme="Theme name")],
            "customer_dislikes": [dict(_THEME, theme="Theme name")],
        }},
    ),
    "voice_of_customer": (
        "Extract the words and phrases customers use most, with the percentage of reviews mentioning each.",
        {"voice_of_customer": {"keywords": [{"word": "keyword", "frequency": 45}]}},
    ),
    "rating_analysis": (
        "Explain what drives each star rating: for every rating level give its count, share and the "
        "themes that correlate with it, then summarise the highest and lowest rated aspects.",
        {"rating_analysis": {
            "ratings": [{"rating": 5, "count": 0, "percentage": "XX%", "top_themes": [{"theme": "", "frequency": "XX%"}]}],
            "insights": {"highest_rated_aspects": [""], "lowest_rated_aspects": [""], "summary": ""},
        }},
    ),
    "four_w_matrix": (
        "Build a Who / What / Where / When matrix: who uses or buys the product, what it is used for, "
        "where it is used, and when it is used or bought (occasions, seasons, times of day).",
        {"four_w_matrix": {"who": [_THEME], "what": [_THEME], "where": [_THEME], "when": [_THEME]}},
    ),
    "jtbd": (
        "Identify the jobs customers hire the product for (Christensen method): functional, emotional "
        "and social jobs, each phrased as 'When [situation], I want [action], so that [outcome]'.",
        {"jtbd_analysis": {
            "functional_jobs": [dict(_THEME, job_statement="When ..., I want ..., so that ...")],
            "emotional_jobs": [],
            "social_jobs": [],
        }},
    ),
    "stp": (
        "Run a Segmentation, Targeting, Positioning analysis: define the market, describe each segment "
        "with a buyer persona, pick a targeting approach (undifferentiated, differentiated or "
        "concentrated) and write the positioning with its marketing mix.",
        {"stp_analysis": {
            "market_definition": "Market description",
            "segmentation": [{"segment": "Segment", "percentage": "XX%", "description": "", "example_quote": "", "buyer_persona": _PERSONA}],
            "targeting_strategy": {"selected_segments": "", "approach_description": ""},
            "positioning_strategy": {"positioning_statement": "", "unique_value_proposition": "", "marketing_mix": "", "messaging_channels": ""},
            "implementation_recommendations": {"key_tactics": "", "monitoring_suggestions": ""},
        }},
    ),
    "swot": (
        "Run a SWOT analysis from the reviews: strengths (what customers love), weaknesses (what they "
        "criticise), opportunities (where the brand can grow) and threats (signals of dissatisfaction or risk).",
        {"swot_analysis": {"strengths": [_THEME], "weaknesses": [], "opportunities": [], "threats": []}},
    ),
    "customer_journey": (
        "Map the customer journey across awareness, consideration, purchase, delivery/unboxing, usage "
        "and post-purchase, with actions, touchpoints, emotions, pain points and opportunities per stage.",
        {"customer_journey": {
            "awareness": [_THEME], "consideration": [], "purchase": [],
            "delivery_unboxing": [], "usage": [], "post_purchase": [],
        }},
    ),
    "personas": (
        "Generate 1 to 3 buyer personas, each with its share of customers.",
        {"customer_personas": [_PERSONA]},
    ),
    "competition": (
        "Compare the main product with its competitors on features, USPs, pain points, customer "
        "segments, loyalty indicators and price/value perception.",
        {"competition_analysis": {
            "comparison_matrix": [{"feature": "", "user_brand": "yes|no|partial", "competitor_1": "yes|no|partial"}],
            "usps": {}, "pain_points": {}, "customer_segment_analysis": {},
            "loyalty_indicators": {}, "price_value_perception": {},
        }},
    ),
    "smart_competition": (
        "Using the main product's completed analyses and each competitor's analyses (no raw reviews), "
        "compare product attributes, strengths and weaknesses, segments and journey friction, and "
        "derive opportunities, threats and strategic priorities.",
        {"smart_competition_analysis": {
            "product_attributes": {"attribute_comparison": [], "unique_advantages": _EXPLAINED, "feature_gaps": _EXPLAINED},
            "swot_matrix": {"strength_comparison": {}, "weakness_comparison": {}, "derived_opportunities": _EXPLAINED, "derived_threats": _EXPLAINED},
            "segmentation_analysis": {"your_primary_segments": _EXPLAINED, "competitor_segments": {}, "untapped_segments": _EXPLAINED},
            "journey_analysis": {"awareness": {}, "purchase": {}, "post_purchase": {}, "strategic_focus": ""},
            "executive_summary": {"competitive_position": "", "key_advantages": [""], "key_vulnerabilities": [""], "strategic_priorities": [""]},
        }},
    ),
    "strategic_recommendations": (
        "Develop strategic recommendations across product, marketing, customer experience and competition.",
        {"strategic_recommendations": {
            "executive_summary": "Overview",
            "product_strategy": [_RECOMMENDATION],
            "marketing_strategy": [],
            "customer_experience": [],
            "competitive_strategy": [],
        }},
    ),
}

COMPETITOR_SWOT_PROMPT = (
    "Identify this competitor's strengths (what its customers praise) and weaknesses (what they "
    "criticise). Do not include opportunities or threats.",
    {"swot_analysis": {"strengths": [_THEME], "weaknesses": [_THEME]}},
)


def _system_prompt(task: str, response_format: Dict[str, Any]) -> str:
    return (
        f"{BASE_SYSTEM}\n\nYour job: {task}\n\n"
        f"Response format:\n{json.dumps(response_format, indent=2)}"
    )


def system_prompt(analysis_type: str) -> str:
    task, response_format = TYPE_PROMPTS[analysis_type]
    return _system_prompt(task, response_format)


def competitor_swot_system_prompt() -> str:
    return _system_prompt(*COMPETITOR_SWOT_PROMPT)


def _format_review(review: Review, label: str, include_competitor: bool = False) -> str:
    lines = [label]
    if include_competitor:
        lines.append(f"Competitor ID: {review.competitor_id or 'N/A'}")
    lines.append(f"Rating: {review.rating if review.rating is not None else 'N/A'}")
    if not include_competitor:
        lines.append(f"Date: {review.date.date().isoformat() if review.date else 'N/A'}")
    lines.append(f"Text: {review.text}")
    return "\n".join(lines)


def build_user_prompt(
    analysis_type: str,
    reviews: List[Review],
    competitor_reviews: Optional[List[Review]] = None,
    prior_analyses: Optional[Dict[str, Any]] = None,
) -> str:
    """Reviews (rating, date, text), then competitor reviews, then prior analyses."""
    parts = [f"Analyze the following customer reviews for {analysis_type} analysis:\n"]

    if reviews:
        parts.append(f"MAIN PRODUCT REVIEWS ({len(reviews)} reviews):")
        for i, review in enumerate(reviews, 1):
            parts.append(_format_review(review, f"Review {i}:") + "\n")

    if competitor_reviews:
        parts.append(f"\nCOMPETITOR REVIEWS ({len(competitor_reviews)} reviews):")
        for i, review in enumerate(competitor_reviews, 1):
            parts.append(_format_review(review, f"Competitor Review {i}:", include_competitor=True) + "\n")

    if prior_analyses:
        parts.append("\nPRIOR ANALYSES (JSON):")
        parts.append(json.dumps(prior_analyses, indent=2, default=str))

    parts.append(
        f"\nPerform the {analysis_type} analysis based on this material. "
        "Keep every percentage realistic and grounded in the content provided."
    )
    return "\n".join(parts)
