"""
Analysis Orchestrator Module
============================

Orchestration layer for per-product review analyses.

Components:
    - AnalysisOrchestrator: ordered, dependency-gated run over all analysis types
    - AnalysisRunner: background runs with pollable RunHandles
    - StatusTracker: completion/failure summary per product
    - CLI: Command-line interface

Usage:
    from src.orchestrator.analysis_orchestrator import AnalysisOrchestrator

    orchestrator = AnalysisOrchestrator.create()
    summary = await orchestrator.process_all_analyses(product_id, user_id)

Only the error taxonomy is re-exported here: the retrieval and AI layers
import it, and they must not pull the orchestrator in with it.
"""

from .errors import (
    AnalysisError,
    NotFoundError,
    UnauthorizedError,
    AnalysisInProgressError,
    EmptySelectionError,
    ExternalServiceError,
    SchemaValidationError,
    DependencyNotMetError,
)

__all__ = [
    "AnalysisError",
    "NotFoundError",
    "UnauthorizedError",
    "AnalysisInProgressError",
    "EmptySelectionError",
    "ExternalServiceError",
    "SchemaValidationError",
    "DependencyNotMetError",
]
