"""
Review Analysis Data Models
===========================

Dataclasses for the persisted entities the orchestrator reads and writes.
These map directly to the tables in database/migrations/001_review_analysis.sql.

Models:
    - Brand: Owner of products (user_id is the ownership key)
    - Competitor: Competing product attached to a Product
    - Product: Product with its brand and competitors loaded
    - AnalysisRecord: One persisted analysis outcome per (product, type)
    - AnalysisRun: Summary of one orchestration run
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any


class RecordStatus(str, Enum):
    """Persisted analysis status."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Brand:
    id: str
    user_id: str
    name: str = ""


@dataclass
class Competitor:
    id: str
    product_id: str
    name: str


@dataclass
class Product:
    """Product with brand and competitors, as loaded for orchestration."""
    id: str
    name: str
    brand: Brand
    reviews_count: int = 0
    is_processing: bool = False
    competitors: List[Competitor] = field(default_factory=list)

    @property
    def has_competitors(self) -> bool:
        return len(self.competitors) > 0

    @property
    def namespace(self) -> str:
        """Vector store partition holding this product's reviews."""
        return brand_namespace(self.brand.user_id, self.brand.id)

    def is_owned_by(self, user_id: str) -> bool:
        return self.brand.user_id == user_id


def brand_namespace(user_id: str, brand_id: str) -> str:
    return f"user_{user_id}_brand_{brand_id}"


@dataclass
class AnalysisRecord:
    """
    Persisted outcome of one analysis type for one product.

    data=None on a failed upsert means "keep whatever data was stored before".
    """
    product_id: str
    type: str
    status: RecordStatus
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status == RecordStatus.COMPLETED


@dataclass
class AnalysisRun:
    """Run summary persisted for monitoring."""
    run_id: str
    product_id: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    completed_types: List[str] = field(default_factory=list)
    skipped_types: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()
