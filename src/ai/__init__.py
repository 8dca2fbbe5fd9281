"""
Review Analysis AI Module
=========================

Generative analyses over sampled reviews:
- Analysis types, their order and their dependency graph
- LLM clients (OpenAI, Claude) with JSON completions
- Per-type prompts and result schemas
- AnalysisService: one validated JSON document per analysis call
"""

from .analysis_types import (
    AnalysisType,
    AnalysisSpec,
    ANALYSIS_GRAPH,
    ANALYSIS_ORDER,
    COMPETITOR_SUB_ANALYSES,
    CROSS_COMPARISON_PREREQUISITES,
    get_spec,
    plan_analyses,
)
from .analysis_service import AnalysisResult, AnalysisService, LLMAnalysisService
from .llm_client import LLMClient, OpenAIClient, AnthropicClient, get_llm_client
from .schemas import validate_analysis_data, validate_competitor_swot, result_key

__all__ = [
    "AnalysisType",
    "AnalysisSpec",
    "ANALYSIS_GRAPH",
    "ANALYSIS_ORDER",
    "COMPETITOR_SUB_ANALYSES",
    "CROSS_COMPARISON_PREREQUISITES",
    "get_spec",
    "plan_analyses",
    "AnalysisResult",
    "AnalysisService",
    "LLMAnalysisService",
    "LLMClient",
    "OpenAIClient",
    "AnthropicClient",
    "get_llm_client",
    "validate_analysis_data",
    "validate_competitor_swot",
    "result_key",
]
