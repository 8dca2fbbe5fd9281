"""
Run progress reporting.

A ProgressSink is handed to each run; the orchestrator reports every step to
it. LoggingProgressSink is the default, RecordingProgressSink keeps the
latest update per product for pollers (the API run handles use it).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class AnalysisProgress:
    product_id: str
    current_step: str
    completed: int
    total: int
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return round(self.completed / self.total * 100, 1)


class ProgressSink(ABC):
    @abstractmethod
    def report(self, progress: AnalysisProgress) -> None:
        ...


class LoggingProgressSink(ProgressSink):
    def report(self, progress: AnalysisProgress) -> None:
        message = (
            f"[{progress.product_id}] {progress.current_step} "
            f"({progress.completed}/{progress.total})"
        )
        if progress.error:
            logger.warning(f"{message}: {progress.error}", extra={"product_id": progress.product_id})
        else:
            logger.info(message, extra={"product_id": progress.product_id})


class RecordingProgressSink(ProgressSink):
    """Keeps every update, and the latest one per product."""

    def __init__(self, forward_to: Optional[ProgressSink] = None):
        self.history: List[AnalysisProgress] = []
        self.latest: Dict[str, AnalysisProgress] = {}
        self.forward_to = forward_to

    def report(self, progress: AnalysisProgress) -> None:
        self.history.append(progress)
        self.latest[progress.product_id] = progress
        if self.forward_to is not None:
            self.forward_to.report(progress)
