"""
Review Retrieval
================

Embedding provider and vector store adapters, plus the review indexer.

Components:
- embedder: Embedder interface, OpenAI text-embedding-3-small adapter
- vector_store: VectorStore interface, pgvector adapter
- ingestion: ReviewIndexer (embed + upsert)
"""

from .embedder import EMBEDDING_DIMENSIONS, Embedder, OpenAIEmbedder
from .models import VectorFilter, VectorMatch, VectorRecord
from .vector_store import PgVectorStore, VectorStore, is_zero_vector
from .ingestion import IndexingResult, ReviewIndexer

__all__ = [
    "EMBEDDING_DIMENSIONS",
    "Embedder",
    "OpenAIEmbedder",
    "VectorFilter",
    "VectorMatch",
    "VectorRecord",
    "VectorStore",
    "PgVectorStore",
    "is_zero_vector",
    "IndexingResult",
    "ReviewIndexer",
]
