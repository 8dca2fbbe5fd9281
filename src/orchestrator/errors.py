"""
Analysis Error Taxonomy
=======================

Run-level errors (NotFoundError, UnauthorizedError, AnalysisInProgressError)
abort an orchestration run and reach the caller.

Type-level errors (EmptySelectionError, ExternalServiceError) are recorded
against the analysis type as `failed` and the run moves on.

DependencyNotMetError is a skip signal: nothing is recorded.
"""

from typing import Iterable, Optional


class AnalysisError(Exception):
    """Base class for review analysis errors."""
    pass


class NotFoundError(AnalysisError):
    """Product or brand does not exist."""
    pass


class UnauthorizedError(AnalysisError):
    """Caller does not own the product's brand."""
    pass


class AnalysisInProgressError(AnalysisError):
    """Another run holds the product's processing lock."""
    pass


class EmptySelectionError(AnalysisError):
    """Sampling returned no reviews for an analysis type."""

    def __init__(self, analysis_type: str, message: Optional[str] = None):
        self.analysis_type = analysis_type
        super().__init__(message or f"No reviews found for {analysis_type} analysis")


class ExternalServiceError(AnalysisError):
    """Embedding, vector store or analysis service failure."""
    pass


class SchemaValidationError(ExternalServiceError):
    """The analysis service returned data that does not match the type schema."""
    pass


class DependencyNotMetError(AnalysisError):
    """Required analyses are not completed yet."""

    def __init__(self, analysis_type: str, missing: Iterable[str]):
        self.analysis_type = analysis_type
        self.missing = sorted(missing)
        super().__init__(
            f"{analysis_type} requires completed analyses: {', '.join(self.missing)}"
        )
