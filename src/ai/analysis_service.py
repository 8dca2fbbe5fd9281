"""
Analysis Service
================

The generative-text side of the pipeline: one call per analysis type,
returning a validated JSON document.

AnalysisService is the interface the orchestrator depends on.
LLMAnalysisService implements it on top of an LLMClient and never raises:
transport errors, JSON errors and schema violations all come back as
AnalysisResult(status="failed", error=...).
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from src.data.config import OpenAIConfig
from src.orchestrator.errors import SchemaValidationError
from src.reviews.review_models import Review

from .analysis_types import AnalysisType
from .llm_client import LLMClient, get_llm_client
from .prompts import build_user_prompt, competitor_swot_system_prompt, system_prompt
from .schemas import validate_analysis_data, validate_competitor_swot

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Outcome of one analysis call."""
    type: str
    status: str  # "completed" | "failed"
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @classmethod
    def completed(cls, analysis_type: str, data: Dict[str, Any]) -> "AnalysisResult":
        return cls(type=analysis_type, status="completed", data=data)

    @classmethod
    def failed(cls, analysis_type: str, error: str) -> "AnalysisResult":
        return cls(type=analysis_type, status="failed", error=error or "Unknown error")


class AnalysisService(ABC):
    """Runs one analysis over a set of reviews."""

    @abstractmethod
    async def run_analysis(
        self,
        analysis_type: str,
        reviews: List[Review],
        competitor_reviews: Optional[List[Review]] = None,
        prior_analyses: Optional[Dict[str, Any]] = None,
    ) -> AnalysisResult:
        ...

    @abstractmethod
    async def run_competitor_swot(self, reviews: List[Review]) -> AnalysisResult:
        """Strengths/weaknesses-only SWOT for one competitor."""
        ...


class LLMAnalysisService(AnalysisService):
    """
    Analysis service backed by an LLM with a JSON response contract.

    Usage:
        service = LLMAnalysisService()
        result = await service.run_analysis("sentiment", reviews)
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        config: Optional[OpenAIConfig] = None,
    ):
        self.config = config or OpenAIConfig()
        self.llm = llm_client or get_llm_client(config=self.config)

    async def run_analysis(
        self,
        analysis_type: str,
        reviews: List[Review],
        competitor_reviews: Optional[List[Review]] = None,
        prior_analyses: Optional[Dict[str, Any]] = None,
    ) -> AnalysisResult:
        analysis_type = AnalysisType(analysis_type).value
        logger.info(
            f"Starting {analysis_type} analysis with {len(reviews)} reviews"
            + (f" and {len(competitor_reviews)} competitor reviews" if competitor_reviews else "")
        )

        return await self._call(
            analysis_type,
            system=system_prompt(analysis_type),
            prompt=build_user_prompt(analysis_type, reviews, competitor_reviews, prior_analyses),
            validate=lambda data: validate_analysis_data(analysis_type, data),
        )

    async def run_competitor_swot(self, reviews: List[Review]) -> AnalysisResult:
        analysis_type = AnalysisType.SWOT.value
        logger.info(f"Starting competitor swot analysis with {len(reviews)} reviews")

        return await self._call(
            analysis_type,
            system=competitor_swot_system_prompt(),
            prompt=build_user_prompt(analysis_type, reviews),
            validate=validate_competitor_swot,
        )

    async def _call(self, analysis_type: str, system: str, prompt: str, validate) -> AnalysisResult:
        start = time.monotonic()
        try:
            raw = await self.llm.generate_json(
                prompt=prompt,
                system=system,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            )
            data = validate(raw)
        except SchemaValidationError as e:
            logger.warning(f"{analysis_type} analysis rejected: {e}")
            return AnalysisResult.failed(analysis_type, str(e))
        except Exception as e:
            logger.error(f"Error in {analysis_type} analysis: {e}")
            return AnalysisResult.failed(analysis_type, str(e))

        duration = time.monotonic() - start
        logger.info(
            f"{analysis_type} analysis completed in {duration:.1f}s",
            extra={"analysis_type": analysis_type, "duration": round(duration, 2)},
        )
        return AnalysisResult.completed(analysis_type, data)
