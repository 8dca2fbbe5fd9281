"""
Tests for the generative analysis layer: type graph, result schemas,
prompts, JSON parsing and the LLM-backed analysis service.

Usage:
    pytest tests/test_analysis_service.py -v
"""

import asyncio
from datetime import datetime

import pytest

from conftest import VALID_PAYLOADS, make_review
from src.ai.analysis_service import LLMAnalysisService
from src.ai.analysis_types import (
    ANALYSIS_ORDER,
    CROSS_COMPARISON_PREREQUISITES,
    AnalysisType,
    get_spec,
    plan_analyses,
)
from src.ai.llm_client import LLMClient, LLMProvider, LLMResponse, parse_json_content
from src.ai.prompts import build_user_prompt, competitor_swot_system_prompt, system_prompt
from src.ai.schemas import RESULT_MODELS, result_key, validate_analysis_data, validate_competitor_swot
from src.data.config import OpenAIConfig
from src.orchestrator.errors import SchemaValidationError


class FakeLLM(LLMClient):
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.prompts = []

    async def generate(self, prompt, system=None, max_tokens=1024, temperature=0.7):
        return LLMResponse(content="", model="fake", provider=LLMProvider.OPENAI,
                           tokens_input=0, tokens_output=0, cost_usd=0.0)

    async def generate_json(self, prompt, system=None, max_tokens=4000, temperature=0.1):
        self.prompts.append({"prompt": prompt, "system": system, "max_tokens": max_tokens,
                             "temperature": temperature})
        if self.error:
            raise self.error
        return self.response


# ============================================================================
# TYPE GRAPH
# ============================================================================

class TestAnalysisTypes:

    def test_plan_without_competitors(self):
        plan = [s.type.value for s in plan_analyses(0)]
        assert len(plan) == 11
        assert "competition" not in plan
        assert "smart_competition" not in plan

    def test_plan_with_competitors_keeps_order(self):
        plan = [s.type for s in plan_analyses(3)]
        assert plan == list(ANALYSIS_ORDER)
        assert plan[0] == AnalysisType.PRODUCT_DESCRIPTION
        assert plan[-1] == AnalysisType.STRATEGIC_RECOMMENDATIONS

    def test_cross_comparison_spec(self):
        spec = get_spec("smart_competition")
        assert spec.requires == CROSS_COMPARISON_PREREQUISITES
        assert spec.fan_out is True
        assert spec.needs_competitors is True

    def test_breadth_sensitive_types(self):
        sensitive = {t.value for t in ANALYSIS_ORDER if get_spec(t).breadth_sensitive}
        assert sensitive == {"voice_of_customer", "personas"}

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            get_spec("horoscope")


# ============================================================================
# SCHEMAS
# ============================================================================

class TestSchemas:

    def test_every_type_has_a_model(self):
        assert set(RESULT_MODELS) == set(AnalysisType)

    def test_result_keys(self):
        assert result_key("sentiment") == "sentiment_analysis"
        assert result_key("personas") == "customer_personas"
        assert result_key("smart_competition") == "smart_competition_analysis"

    def test_valid_payloads_accepted(self):
        for analysis_type, payload in VALID_PAYLOADS.items():
            data = validate_analysis_data(analysis_type, payload)
            assert result_key(analysis_type) in data

    def test_extra_fields_preserved(self):
        payload = {"swot_analysis": {"strengths": [{"theme": "Grip", "source": "reviews"}]}}
        data = validate_analysis_data("swot", payload)
        assert data["swot_analysis"]["strengths"][0]["source"] == "reviews"

    def test_wrong_key_rejected(self):
        with pytest.raises(SchemaValidationError):
            validate_analysis_data("sentiment", {"sentiment": {}})

    def test_non_object_rejected(self):
        with pytest.raises(SchemaValidationError):
            validate_analysis_data("sentiment", ["not", "an", "object"])

    def test_personas_need_at_least_one(self):
        with pytest.raises(SchemaValidationError):
            validate_analysis_data("personas", {"customer_personas": []})

    def test_competitor_swot(self):
        data = validate_competitor_swot({"swot_analysis": {"strengths": [], "weaknesses": []}})
        assert "swot_analysis" in data
        with pytest.raises(SchemaValidationError):
            validate_competitor_swot({"strengths": []})


# ============================================================================
# PROMPTS AND PARSING
# ============================================================================

class TestPrompts:

    def test_system_prompt_names_top_level_key(self):
        for analysis_type in ANALYSIS_ORDER:
            assert result_key(analysis_type) in system_prompt(analysis_type.value)

    def test_competitor_swot_prompt(self):
        prompt = competitor_swot_system_prompt()
        assert "strengths" in prompt
        assert "opportunities" not in prompt.split("Response format:")[1]

    def test_user_prompt_sections(self):
        reviews = [make_review("r1", rating=5.0, text="Holds tight", date=datetime(2026, 1, 2))]
        rivals = [make_review("x1", rating=2.0, text="Slips off", competitor_id="c1")]

        prompt = build_user_prompt("competition", reviews, rivals, {"swot": {"a": 1}})

        assert prompt.startswith("Analyze the following customer reviews for competition analysis:")
        assert "MAIN PRODUCT REVIEWS (1 reviews):" in prompt
        assert "Date: 2026-01-02" in prompt
        assert "COMPETITOR REVIEWS (1 reviews):" in prompt
        assert "Competitor ID: c1" in prompt
        assert "PRIOR ANALYSES (JSON):" in prompt

    def test_prompt_without_reviews(self):
        prompt = build_user_prompt("smart_competition", [], prior_analyses={"competitor_analyses": {}})
        assert "MAIN PRODUCT REVIEWS" not in prompt
        assert "PRIOR ANALYSES" in prompt


class TestJsonParsing:

    def test_plain(self):
        assert parse_json_content('{"a": 1}') == {"a": 1}

    def test_code_fence(self):
        assert parse_json_content('```json\n{"a": 1}\n```') == {"a": 1}

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_json_content("not json")

    def test_non_object(self):
        with pytest.raises(ValueError):
            parse_json_content("[1, 2]")


# ============================================================================
# SERVICE
# ============================================================================

class TestLLMAnalysisService:

    def setup_method(self):
        self.config = OpenAIConfig(api_key="test", max_tokens=1234, temperature=0.2)
        self.reviews = [make_review("r1", rating=4.0), make_review("r2", rating=1.0)]

    def run(self, service, analysis_type="sentiment"):
        return asyncio.run(service.run_analysis(analysis_type, self.reviews))

    def test_completed(self):
        llm = FakeLLM(response=VALID_PAYLOADS["sentiment"])
        result = self.run(LLMAnalysisService(llm, self.config))

        assert result.is_completed
        assert "sentiment_analysis" in result.data
        assert llm.prompts[0]["max_tokens"] == 1234
        assert llm.prompts[0]["temperature"] == 0.2
        assert "sentiment_analysis" in llm.prompts[0]["system"]

    def test_schema_violation_is_failure(self):
        result = self.run(LLMAnalysisService(FakeLLM(response={"wrong": True}), self.config))

        assert result.status == "failed"
        assert "does not match schema" in result.error

    def test_transport_error_is_failure(self):
        llm = FakeLLM(error=RuntimeError("rate limited"))
        result = self.run(LLMAnalysisService(llm, self.config))

        assert result.status == "failed"
        assert result.error == "rate limited"

    def test_competitor_swot(self):
        llm = FakeLLM(response={"swot_analysis": {"strengths": [], "weaknesses": []}})
        result = asyncio.run(LLMAnalysisService(llm, self.config).run_competitor_swot(self.reviews))

        assert result.is_completed
        assert result.type == "swot"
        assert "Do not include opportunities" in llm.prompts[0]["system"]

    def test_unknown_type_raises(self):
        service = LLMAnalysisService(FakeLLM(response={}), self.config)
        with pytest.raises(ValueError):
            self.run(service, "horoscope")
