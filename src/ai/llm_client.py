"""
LLM Client
==========

Abstract client for chat LLMs used by the analysis service.
Supports OpenAI (default, JSON response format) and Claude (Anthropic).

generate_json() is the only call the analysis pipeline makes: every analysis
type returns one JSON object.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from src.data.config import OpenAIConfig, get_env

logger = logging.getLogger(__name__)


class LLMProvider(Enum):
    """Supported LLM providers."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


@dataclass
class LLMResponse:
    """LLM completion."""
    content: str
    model: str
    provider: LLMProvider
    tokens_input: int
    tokens_output: int
    cost_usd: float

    @property
    def total_tokens(self) -> int:
        return self.tokens_input + self.tokens_output


def _strip_code_fence(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = content.split("```")[1]
        if content.startswith("json"):
            content = content[4:]
    return content.strip()


def parse_json_content(content: str) -> Dict[str, Any]:
    """Parse a JSON object from a completion, tolerating a markdown fence."""
    try:
        parsed = json.loads(_strip_code_fence(content or ""))
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {e}\nContent: {(content or '')[:500]}")
        raise ValueError(f"LLM did not return valid JSON: {e}")
    if not isinstance(parsed, dict):
        raise ValueError(f"LLM returned JSON {type(parsed).__name__}, expected an object")
    return parsed


class LLMClient(ABC):
    """Abstract LLM client."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> LLMResponse:
        pass

    @abstractmethod
    async def generate_json(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 4000,
        temperature: float = 0.1,
    ) -> Dict[str, Any]:
        """Structured JSON completion."""
        pass


class OpenAIClient(LLMClient):
    """
    Client for OpenAI chat models.

    JSON completions use response_format=json_object, so the model cannot
    answer with prose.
    """

    # Pricing per 1M tokens (USD)
    PRICING = {
        "gpt-4o": {"input": 2.5, "output": 10.0},
        "gpt-4o-mini": {"input": 0.15, "output": 0.6},
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key or get_env("OPENAI_API_KEY") or get_env("GPT_API_KEY")
        self.model = model
        self._client = client

        if not self.api_key and client is None:
            raise ValueError("OPENAI_API_KEY required")

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    def _calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        pricing = self.PRICING.get(self.model, {"input": 2.5, "output": 10.0})
        cost = (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000
        return round(cost, 6)

    async def _complete(
        self,
        prompt: str,
        system: Optional[str],
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> LLMResponse:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self.client.chat.completions.create(**kwargs)

        content = response.choices[0].message.content or ""
        input_tokens = response.usage.prompt_tokens
        output_tokens = response.usage.completion_tokens

        return LLMResponse(
            content=content,
            model=self.model,
            provider=LLMProvider.OPENAI,
            tokens_input=input_tokens,
            tokens_output=output_tokens,
            cost_usd=self._calculate_cost(input_tokens, output_tokens),
        )

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> LLMResponse:
        return await self._complete(prompt, system, max_tokens, temperature, json_mode=False)

    async def generate_json(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 4000,
        temperature: float = 0.1,
    ) -> Dict[str, Any]:
        response = await self._complete(prompt, system, max_tokens, temperature, json_mode=True)
        logger.debug(f"{self.model}: {response.total_tokens} tokens (${response.cost_usd})")
        return parse_json_content(response.content)


class AnthropicClient(LLMClient):
    """
    Client for Claude (Anthropic).

    No native JSON mode: the system prompt demands raw JSON and a markdown
    fence is stripped before parsing.
    """

    PRICING = {
        "claude-sonnet-4-20250514": {"input": 3.0, "output": 15.0},
        "claude-3-5-haiku-20241022": {"input": 0.8, "output": 4.0},
    }

    JSON_INSTRUCTIONS = """

IMPORTANT: Respond ONLY with valid JSON.
No text before or after the JSON.
No ```json or other markers."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-20250514",
        client: Optional[AsyncAnthropic] = None,
    ):
        self.api_key = api_key or get_env("ANTHROPIC_API_KEY")
        self.model = model
        self._client = client

        if not self.api_key and client is None:
            raise ValueError("ANTHROPIC_API_KEY required")

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    def _calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        pricing = self.PRICING.get(self.model, {"input": 3.0, "output": 15.0})
        cost = (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000
        return round(cost, 6)

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ) -> LLMResponse:
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        if system:
            kwargs["system"] = system

        response = await self.client.messages.create(**kwargs)

        content = response.content[0].text
        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens

        return LLMResponse(
            content=content,
            model=self.model,
            provider=LLMProvider.ANTHROPIC,
            tokens_input=input_tokens,
            tokens_output=output_tokens,
            cost_usd=self._calculate_cost(input_tokens, output_tokens),
        )

    async def generate_json(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 4000,
        temperature: float = 0.1,
    ) -> Dict[str, Any]:
        response = await self.generate(
            prompt=prompt,
            system=(system or "") + self.JSON_INSTRUCTIONS,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return parse_json_content(response.content)


def get_llm_client(
    provider: Optional[str] = None,
    config: Optional[OpenAIConfig] = None,
    model: Optional[str] = None,
) -> LLMClient:
    """
    LLM client factory.

    Priority:
    1. Explicit provider (or LLM_PROVIDER)
    2. OPENAI_API_KEY or GPT_API_KEY present -> OpenAI
    3. ANTHROPIC_API_KEY present -> Claude
    """
    config = config or OpenAIConfig()
    provider = provider or get_env("LLM_PROVIDER")

    if provider == "anthropic":
        return AnthropicClient(model=model or "claude-sonnet-4-20250514")
    if provider == "openai" or config.api_key:
        return OpenAIClient(api_key=config.api_key, model=model or config.analysis_model)
    if get_env("ANTHROPIC_API_KEY"):
        return AnthropicClient(model=model or "claude-sonnet-4-20250514")

    raise ValueError(
        "No LLM API key found. Set OPENAI_API_KEY, GPT_API_KEY, or ANTHROPIC_API_KEY"
    )
