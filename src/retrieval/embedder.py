"""
Review Embedder
===============

Generates embeddings using OpenAI text-embedding-3-small.
1536 dimensions, optimized for cost/latency.

Embedder is the abstract interface the scorer and the indexer depend on;
OpenAIEmbedder is the production adapter.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from openai import AsyncOpenAI

from src.data.config import OpenAIConfig
from src.orchestrator.errors import ExternalServiceError

logger = logging.getLogger(__name__)

EMBEDDING_DIMENSIONS = 1536


class Embedder(ABC):
    """Text to fixed-length vector."""

    dimensions: int = EMBEDDING_DIMENSIONS

    @abstractmethod
    async def embed_query(self, text: str) -> List[float]:
        ...

    @abstractmethod
    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """One vector per input text, in input order."""
        ...


class OpenAIEmbedder(Embedder):
    """
    Embeddings via the OpenAI API.

    Cost: ~$0.00002 per 1K tokens
    Dimensions: 1536
    Max input: 8191 tokens (texts are truncated to MAX_CHARS)
    """

    BATCH_SIZE = 100
    MAX_CHARS = 8000

    def __init__(
        self,
        config: Optional[OpenAIConfig] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.config = config or OpenAIConfig()
        if client is None and not self.config.api_key:
            raise ValueError("OpenAI API key required for embeddings")

        self.model = self.config.embedding_model
        self._client = client
        self._total_tokens = 0
        self._total_requests = 0

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.config.api_key)
        return self._client

    async def embed_query(self, text: str) -> List[float]:
        if not text.strip():
            raise ValueError("Cannot embed empty text")

        vectors = await self._create([text[:self.MAX_CHARS]])
        return vectors[0]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Embed texts in batches of BATCH_SIZE.

        Blank texts get a zero vector so the output stays aligned with the
        input; a zero vector has similarity 0 with everything.
        """
        results: List[List[float]] = [[0.0] * self.dimensions for _ in texts]

        for start in range(0, len(texts), self.BATCH_SIZE):
            batch = texts[start:start + self.BATCH_SIZE]
            indexed = [
                (start + i, t[:self.MAX_CHARS])
                for i, t in enumerate(batch)
                if t and t.strip()
            ]
            if not indexed:
                continue

            vectors = await self._create([t for _, t in indexed])
            for (position, _), vector in zip(indexed, vectors):
                results[position] = vector

        return results

    async def _create(self, inputs: List[str]) -> List[List[float]]:
        try:
            response = await self.client.embeddings.create(
                model=self.model,
                input=inputs,
                dimensions=self.dimensions,
            )
        except Exception as e:
            raise ExternalServiceError(f"Embedding request failed: {e}") from e

        self._total_tokens += response.usage.total_tokens
        self._total_requests += 1
        logger.debug(f"Embedded batch of {len(inputs)} texts ({response.usage.total_tokens} tokens)")

        return [item.embedding for item in sorted(response.data, key=lambda d: d.index)]

    @property
    def total_tokens(self) -> int:
        return self._total_tokens

    @property
    def total_requests(self) -> int:
        return self._total_requests

    @property
    def estimated_cost(self) -> float:
        """Estimated cost in USD."""
        # text-embedding-3-small: $0.00002 per 1K tokens
        return (self._total_tokens / 1000) * 0.00002
