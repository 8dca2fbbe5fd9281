"""
Shared test fakes.

In-memory stand-ins for the external collaborators of the analysis engine:
embedder, vector store, analysis service and repository. They follow the
same contracts as the production adapters so orchestration can be tested
end to end without PostgreSQL or an LLM.
"""

import copy
import hashlib
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytest

from src.ai.analysis_service import AnalysisResult, AnalysisService
from src.data.config import OrchestratorConfig
from src.data.data_models import AnalysisRecord, AnalysisRun, Brand, Competitor, Product
from src.data.repository import AnalysisRepository
from src.orchestrator.analysis_orchestrator import AnalysisOrchestrator
from src.retrieval.embedder import Embedder
from src.retrieval.models import VectorFilter, VectorMatch, VectorRecord
from src.retrieval.vector_store import VectorStore, is_zero_vector
from src.reviews.review_models import Review
from src.sampling.review_sampler import ReviewSampler
from src.scoring.relevance_scorer import cosine_similarity


# ============================================================================
# PAYLOADS
# ============================================================================

VALID_PAYLOADS: Dict[str, Dict[str, Any]] = {
    "product_description": {"product_description": {"summary": "A sturdy phone mount"}},
    "sentiment": {"sentiment_analysis": {"customer_likes": [], "customer_dislikes": []}},
    "voice_of_customer": {"voice_of_customer": {"keywords": [{"word": "sturdy", "frequency": "12%"}]}},
    "rating_analysis": {"rating_analysis": {"ratings": [{"rating": 5, "count": 10}]}},
    "four_w_matrix": {"four_w_matrix": {"who": [], "what": [], "where": [], "when": []}},
    "jtbd": {"jtbd_analysis": {"functional_jobs": []}},
    "stp": {"stp_analysis": {"segmentation": [{"segment": "Commuters"}]}},
    "swot": {"swot_analysis": {"strengths": [{"theme": "Grip"}], "weaknesses": []}},
    "customer_journey": {"customer_journey": {"awareness": [], "usage": []}},
    "personas": {"customer_personas": [{"persona_name": "Daily Commuter"}]},
    "competition": {"competition_analysis": {"comparison_matrix": []}},
    "smart_competition": {"smart_competition_analysis": {"executive_summary": {"overview": "ok"}}},
    "strategic_recommendations": {"strategic_recommendations": {"executive_summary": "Focus on grip"}},
}

COMPETITOR_SWOT_PAYLOAD = {"swot_analysis": {"strengths": [{"theme": "Price"}], "weaknesses": []}}


# ============================================================================
# FACTORIES
# ============================================================================

def make_review(
    review_id: str,
    rating: Optional[float] = 4.0,
    text: str = "Great mount, holds the phone firmly on every road I drive",
    product_id: str = "p1",
    competitor_id: Optional[str] = None,
    date: Optional[datetime] = None,
) -> Review:
    return Review(
        id=review_id,
        product_id=product_id,
        text=text,
        rating=rating,
        date=date,
        competitor_id=competitor_id,
    )


def make_reviews(
    count: int,
    prefix: str = "r",
    product_id: str = "p1",
    competitor_id: Optional[str] = None,
) -> List[Review]:
    """count reviews cycling through ratings 1-5."""
    return [
        make_review(
            f"{prefix}{i:04d}",
            rating=float(i % 5 + 1),
            text=f"Review {i}: the mount works, quality is fine and delivery arrived on time",
            product_id=product_id,
            competitor_id=competitor_id,
        )
        for i in range(count)
    ]


def make_product(
    product_id: str = "p1",
    user_id: str = "u1",
    competitors: int = 0,
    reviews_count: int = 100,
) -> Product:
    return Product(
        id=product_id,
        name="Trail Mount",
        brand=Brand(id="b1", user_id=user_id, name="Acme"),
        reviews_count=reviews_count,
        competitors=[
            Competitor(id=f"c{i + 1}", product_id=product_id, name=f"Rival {i + 1}")
            for i in range(competitors)
        ],
    )


# ============================================================================
# FAKES
# ============================================================================

class FakeEmbedder(Embedder):
    """Deterministic hash-based vectors."""

    def __init__(self, dimensions: int = 8):
        self.dimensions = dimensions
        self.query_calls: List[str] = []
        self.batch_calls: List[List[str]] = []

    def vector_for(self, text: str) -> List[float]:
        if not text or not text.strip():
            return [0.0] * self.dimensions
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [(digest[i] / 255.0) - 0.5 for i in range(self.dimensions)]

    async def embed_query(self, text: str) -> List[float]:
        self.query_calls.append(text)
        return self.vector_for(text)

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.batch_calls.append(list(texts))
        return [self.vector_for(t) for t in texts]


class InMemoryVectorStore(VectorStore):
    """Namespaced dict store using the same filter predicate as PostgreSQL."""

    def __init__(self):
        self.namespaces: Dict[str, Dict[str, VectorRecord]] = {}
        self.queries: List[Dict[str, Any]] = []

    def add_reviews(self, namespace: str, reviews: List[Review], embedder: FakeEmbedder, brand_id: str = "b1"):
        records = []
        for review in reviews:
            metadata = review.to_metadata()
            metadata["brand_id"] = brand_id
            records.append(VectorRecord(review.id, embedder.vector_for(review.text), metadata))
        self._store(namespace, records)

    def _store(self, namespace: str, records: List[VectorRecord]) -> int:
        bucket = self.namespaces.setdefault(namespace, {})
        for record in records:
            bucket[record.id] = record
        return len(records)

    async def upsert(self, namespace: str, records: List[VectorRecord]) -> int:
        return self._store(namespace, records)

    async def query(
        self,
        namespace: str,
        filter: VectorFilter,
        top_k: int,
        vector: Optional[List[float]] = None,
    ) -> List[VectorMatch]:
        self.queries.append({"namespace": namespace, "filter": filter, "top_k": top_k})
        if top_k <= 0:
            return []

        records = [r for r in self.namespaces.get(namespace, {}).values() if filter.matches(r.metadata)]
        if is_zero_vector(vector):
            records.sort(key=lambda r: r.id)
            scores = [0.0] * len(records)
        else:
            records.sort(key=lambda r: (-cosine_similarity(vector, r.values), r.id))
            scores = [cosine_similarity(vector, r.values) for r in records]

        return [
            VectorMatch(id=r.id, score=s, metadata=dict(r.metadata), values=list(r.values))
            for r, s in zip(records[:top_k], scores[:top_k])
        ]


class FakeAnalysisService(AnalysisService):
    """
    Returns VALID_PAYLOADS.

    fail_types report a failure, raise_types raise, payloads overrides the
    returned data per type.
    """

    def __init__(self, fail_types=(), raise_types=(), payloads=None, fail_competitor_swot=False):
        self.fail_types = set(fail_types)
        self.raise_types = set(raise_types)
        self.payloads = payloads or {}
        self.fail_competitor_swot = fail_competitor_swot
        self.calls: List[Dict[str, Any]] = []

    def calls_for(self, analysis_type: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["type"] == analysis_type]

    async def run_analysis(self, analysis_type, reviews, competitor_reviews=None, prior_analyses=None):
        self.calls.append({
            "type": analysis_type,
            "reviews": list(reviews),
            "competitor_reviews": list(competitor_reviews) if competitor_reviews else None,
            "prior_analyses": copy.deepcopy(prior_analyses),
        })
        if analysis_type in self.raise_types:
            raise RuntimeError(f"{analysis_type} exploded")
        if analysis_type in self.fail_types:
            return AnalysisResult.failed(analysis_type, "model returned garbage")
        data = self.payloads.get(analysis_type, VALID_PAYLOADS[analysis_type])
        return AnalysisResult.completed(analysis_type, copy.deepcopy(data))

    async def run_competitor_swot(self, reviews):
        self.calls.append({"type": "competitor_swot", "reviews": list(reviews),
                           "competitor_reviews": None, "prior_analyses": None})
        if self.fail_competitor_swot:
            return AnalysisResult.failed("swot", "competitor swot failed")
        return AnalysisResult.completed("swot", copy.deepcopy(COMPETITOR_SWOT_PAYLOAD))


class InMemoryRepository(AnalysisRepository):
    """
    Dict-backed AnalysisRepository.

    Upserts follow the SQL semantics: data=None keeps stored data on update
    and stores {} on insert.
    """

    def __init__(self, products: Optional[List[Product]] = None):
        self.products: Dict[str, Product] = {p.id: p for p in (products or [])}
        self.records: Dict[tuple, AnalysisRecord] = {}
        self.locks: Dict[str, Dict[str, Any]] = {}
        self.runs: List[AnalysisRun] = []
        self.upserts: List[AnalysisRecord] = []
        self.fail_upsert_types = set()

    async def get_product(self, product_id):
        product = self.products.get(product_id)
        if product is None:
            return None
        product = copy.deepcopy(product)
        product.is_processing = product_id in self.locks
        return product

    async def update_reviews_count(self, product_id, count):
        if product_id not in self.products:
            return False
        self.products[product_id].reviews_count = count
        return True

    async def upsert_analysis(self, record):
        if record.type in self.fail_upsert_types:
            raise RuntimeError("database unavailable")
        self.upserts.append(record)
        key = (record.product_id, record.type)
        existing = self.records.get(key)
        if record.data is not None:
            data = copy.deepcopy(record.data)
        elif existing is not None:
            data = existing.data
        else:
            data = {}
        self.records[key] = AnalysisRecord(
            product_id=record.product_id,
            type=record.type,
            status=record.status,
            data=data,
            error=record.error,
            updated_at=datetime.utcnow(),
        )

    async def get_analyses(self, product_id):
        return {t: copy.deepcopy(r) for (pid, t), r in self.records.items() if pid == product_id}

    async def acquire_processing(self, product_id, token, stale_after):
        held = self.locks.get(product_id)
        if held and datetime.utcnow() - held["started_at"] < stale_after:
            return False
        self.locks[product_id] = {"token": token, "started_at": datetime.utcnow()}
        return True

    async def release_processing(self, product_id, token):
        held = self.locks.get(product_id)
        if held and held["token"] == token:
            del self.locks[product_id]
            return True
        return False

    def hold_lock(self, product_id: str, age: timedelta = timedelta(0), token: str = "other-run"):
        self.locks[product_id] = {"token": token, "started_at": datetime.utcnow() - age}

    async def record_run(self, run):
        self.runs.append(copy.deepcopy(run))

    async def get_latest_run(self, product_id):
        runs = [r for r in self.runs if r.product_id == product_id]
        return runs[-1] if runs else None

    def record(self, product_id: str, analysis_type: str) -> Optional[AnalysisRecord]:
        return self.records.get((product_id, analysis_type))


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


# ============================================================================
# WIRING
# ============================================================================

class Harness:
    """An orchestrator wired to in-memory fakes."""

    def __init__(self, product: Product, service: Optional[FakeAnalysisService] = None,
                 rate_limit_seconds: float = 15.0, competitor_concurrency: int = 2):
        self.product = product
        self.embedder = FakeEmbedder()
        self.store = InMemoryVectorStore()
        self.repository = InMemoryRepository([product])
        self.service = service or FakeAnalysisService()
        self.sleep = RecordingSleep()
        self.orchestrator = AnalysisOrchestrator(
            repository=self.repository,
            sampler=ReviewSampler.create(self.store, self.embedder),
            analysis_service=self.service,
            config=OrchestratorConfig(
                rate_limit_seconds=rate_limit_seconds,
                competitor_concurrency=competitor_concurrency,
                lock_stale_minutes=120,
                competitor_sample_size=50,
            ),
            sleep=self.sleep,
        )

    def seed(self, reviews: List[Review]):
        self.store.add_reviews(self.product.namespace, reviews, self.embedder)

    def seed_own(self, count: int = 40):
        self.seed(make_reviews(count, prefix="own", product_id=self.product.id))

    def seed_competitor(self, competitor_id: str, count: int = 20):
        self.seed(make_reviews(count, prefix=f"{competitor_id}-", product_id=self.product.id,
                               competitor_id=competitor_id))


@pytest.fixture
def harness():
    return Harness(make_product())


@pytest.fixture
def harness_with_competitors():
    return Harness(make_product(competitors=2))
