"""
Analysis status for a product: what is done, what failed, and whether a run
is in progress.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from src.ai.analysis_types import plan_analyses
from src.data.data_models import AnalysisRun, RecordStatus
from src.data.repository import AnalysisRepository

from .errors import NotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass
class AnalysisStatus:
    product_id: str
    is_processing: bool
    completed_types: List[str] = field(default_factory=list)
    failed_types: List[str] = field(default_factory=list)
    total_expected: int = 0
    per_type_status: Dict[str, str] = field(default_factory=dict)
    latest_run: Optional[AnalysisRun] = None

    @property
    def progress_percentage(self) -> float:
        if self.total_expected == 0:
            return 0.0
        return round(len(self.completed_types) / self.total_expected * 100, 1)

    def to_dict(self) -> Dict[str, Any]:
        latest = None
        if self.latest_run is not None:
            latest = {
                "run_id": self.latest_run.run_id,
                "status": self.latest_run.status,
                "started_at": self.latest_run.started_at.isoformat() if self.latest_run.started_at else None,
                "completed_at": self.latest_run.completed_at.isoformat() if self.latest_run.completed_at else None,
                "completed_types": self.latest_run.completed_types,
                "skipped_types": self.latest_run.skipped_types,
                "errors": self.latest_run.errors,
            }
        return {
            "product_id": self.product_id,
            "is_processing": self.is_processing,
            "completed_types": self.completed_types,
            "failed_types": self.failed_types,
            "total_expected": self.total_expected,
            "progress_percentage": self.progress_percentage,
            "per_type_status": self.per_type_status,
            "latest_run": latest,
        }


class StatusTracker:
    """Read-only view over the repository."""

    def __init__(self, repository: AnalysisRepository):
        self.repository = repository

    async def get_analysis_status(self, product_id: str, user_id: str) -> AnalysisStatus:
        product = await self.repository.get_product(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if not product.is_owned_by(user_id):
            raise UnauthorizedError("Product does not belong to user")

        records = await self.repository.get_analyses(product_id)
        plan = plan_analyses(len(product.competitors))

        try:
            latest_run = await self.repository.get_latest_run(product_id)
        except Exception as e:
            logger.warning(f"Could not load latest run for {product_id}: {e}")
            latest_run = None

        # Records of types no longer planned (e.g. competitors removed) are ignored
        per_type = {}
        for spec in plan:
            record = records.get(spec.type.value)
            per_type[spec.type.value] = RecordStatus(record.status).value if record else RecordStatus.PENDING.value

        return AnalysisStatus(
            product_id=product_id,
            is_processing=product.is_processing,
            completed_types=[t for t, s in per_type.items() if s == RecordStatus.COMPLETED.value],
            failed_types=[t for t, s in per_type.items() if s == RecordStatus.FAILED.value],
            total_expected=len(plan),
            per_type_status=per_type,
            latest_run=latest_run,
        )
