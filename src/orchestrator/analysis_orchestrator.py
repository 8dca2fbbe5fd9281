"""
Analysis Orchestrator
=====================

Runs every applicable analysis type for one product, in order:

1. Load the product and check ownership
2. Take the per-product processing lock
3. Plan: ordered types whose static preconditions hold
4. Per type: dependency gate -> sample reviews (or fan out over competitors)
   -> analysis service -> one persisted record per (product, type)
5. Release the lock, persist the run summary

Features:
    - Resilient: a failing type is recorded as failed and the run moves on
    - Gated: types whose requirements are not completed are skipped, unrecorded
    - Rate limited: a fixed delay separates consecutive analysis-service calls

Usage:
    from src.orchestrator.analysis_orchestrator import AnalysisOrchestrator

    orchestrator = AnalysisOrchestrator.create()
    summary = await orchestrator.process_all_analyses(product_id, user_id)
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from src.ai.analysis_service import AnalysisResult, AnalysisService
from src.ai.analysis_types import (
    ANALYSIS_ORDER,
    COMPETITOR_SUB_ANALYSES,
    AnalysisSpec,
    AnalysisType,
    get_spec,
    plan_analyses,
)
from src.ai.schemas import validate_analysis_data
from src.data.config import OrchestratorConfig, Settings, get_settings
from src.data.data_models import AnalysisRecord, AnalysisRun, Competitor, Product, RecordStatus
from src.data.repository import AnalysisRepository
from src.reviews.review_models import Review
from src.sampling.review_sampler import ReviewSampler
from src.sampling.sizing import target_sample_size

from .errors import (
    AnalysisInProgressError,
    DependencyNotMetError,
    EmptySelectionError,
    NotFoundError,
    UnauthorizedError,
)
from .logging_config import run_logger
from .progress import AnalysisProgress, LoggingProgressSink, ProgressSink

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


@dataclass
class RunSummary:
    """Result of process_all_analyses()."""
    success: bool
    completed_types: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    skipped_types: List[str] = field(default_factory=list)
    run_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "success": self.success,
            "completed_types": self.completed_types,
            "errors": self.errors,
            "skipped_types": self.skipped_types,
        }


@dataclass
class ReprocessResult:
    success: bool
    error: Optional[str] = None


class CallSpacer:
    """
    Spaces consecutive analysis-service calls by a fixed delay.

    The delay is taken before a call, never after one, so the last call of a
    run is not followed by a pause. Concurrent callers queue on the lock.
    """

    def __init__(self, delay_seconds: float, sleep: SleepFn = asyncio.sleep):
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._calls = 0

    @property
    def calls(self) -> int:
        return self._calls

    async def wait(self):
        async with self._lock:
            if self._calls > 0 and self.delay_seconds > 0:
                await self._sleep(self.delay_seconds)
            self._calls += 1


class AnalysisOrchestrator:
    """
    Drives the ordered analysis types for a product.

    All collaborators are injected; create() wires the production adapters.
    """

    def __init__(
        self,
        repository: AnalysisRepository,
        sampler: ReviewSampler,
        analysis_service: AnalysisService,
        config: Optional[OrchestratorConfig] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.repository = repository
        self.sampler = sampler
        self.analysis_service = analysis_service
        self.config = config or OrchestratorConfig()
        self._sleep = sleep

    @classmethod
    def create(cls, settings: Optional[Settings] = None) -> "AnalysisOrchestrator":
        """Production wiring: PostgreSQL, pgvector, OpenAI."""
        from src.ai.analysis_service import LLMAnalysisService
        from src.data.db import get_pool
        from src.data.repository import PostgresAnalysisRepository
        from src.retrieval.embedder import OpenAIEmbedder
        from src.retrieval.vector_store import PgVectorStore

        settings = settings or get_settings()
        pool = get_pool(settings.database)
        embedder = OpenAIEmbedder(settings.openai)

        return cls(
            repository=PostgresAnalysisRepository(pool),
            sampler=ReviewSampler.create(PgVectorStore(pool), embedder),
            analysis_service=LLMAnalysisService(config=settings.openai),
            config=settings.orchestrator,
        )

    # =========================================================================
    # FULL RUN
    # =========================================================================

    async def process_all_analyses(
        self,
        product_id: str,
        user_id: str,
        progress: Optional[ProgressSink] = None,
        run_id: Optional[str] = None,
    ) -> RunSummary:
        """
        Run every applicable analysis type for a product.

        Raises:
            NotFoundError: product does not exist
            UnauthorizedError: product's brand is not owned by user_id
            AnalysisInProgressError: another run holds the processing lock
        """
        progress = progress or LoggingProgressSink()
        run_id = run_id or str(uuid.uuid4())
        log = run_logger(logger, run_id=run_id, product_id=product_id)

        product = await self._load_owned_product(product_id, user_id)

        stale_after = timedelta(minutes=self.config.lock_stale_minutes)
        if not await self.repository.acquire_processing(product_id, run_id, stale_after):
            raise AnalysisInProgressError(f"Analyses already running for product {product_id}")

        run = AnalysisRun(run_id=run_id, product_id=product_id, status="running",
                          started_at=datetime.utcnow())
        summary = RunSummary(success=False, run_id=run_id)
        plan = plan_analyses(len(product.competitors))
        spacer = CallSpacer(self.config.rate_limit_seconds, self._sleep)

        log.info(
            f"Starting analysis run for {product.name}: {len(plan)} types planned, "
            f"{len(product.competitors)} competitors"
        )
        self._report(progress, product_id, "Initializing", 0, len(plan))

        try:
            for index, spec in enumerate(plan):
                analysis_type = spec.type.value
                self._report(progress, product_id, f"Processing {analysis_type}", index, len(plan))
                start = time.monotonic()

                try:
                    await self._run_type(product, spec, spacer, summary)
                except DependencyNotMetError as e:
                    summary.skipped_types.append(analysis_type)
                    log.bind(analysis_type=analysis_type).info(f"Skipping {analysis_type}: {e}")
                except Exception as e:
                    # Anything not already recorded (e.g. a failed write)
                    summary.errors.append(f"{analysis_type}: {e}")
                    log.bind(analysis_type=analysis_type).exception(f"Error processing {analysis_type}")
                finally:
                    log.debug(
                        f"{analysis_type} finished",
                        extra={"analysis_type": analysis_type,
                               "duration": round(time.monotonic() - start, 2)},
                    )

            summary.success = len(summary.completed_types) > 0
            run.status = "completed" if summary.success else "failed"
            self._report(progress, product_id, "Completed", len(plan), len(plan))

        except BaseException as e:
            run.status = "failed"
            summary.errors.append(str(e) or type(e).__name__)
            self._report(progress, product_id, "Failed", 0, len(plan), error=str(e))
            raise

        finally:
            await self._release_lock(product_id, run_id)
            run.completed_at = datetime.utcnow()
            run.completed_types = list(summary.completed_types)
            run.skipped_types = list(summary.skipped_types)
            run.errors = list(summary.errors)
            await self._persist_run(run)

        log.info(
            f"Analysis run finished: {len(summary.completed_types)} completed, "
            f"{len(summary.errors)} errors, {len(summary.skipped_types)} skipped",
            extra={"duration": run.duration_seconds},
        )
        return summary

    async def _run_type(
        self,
        product: Product,
        spec: AnalysisSpec,
        spacer: CallSpacer,
        summary: RunSummary,
    ):
        """Run one planned type and record its outcome on the summary."""
        analysis_type = spec.type.value
        records = await self._check_dependencies(product.id, spec)

        try:
            if spec.fan_out:
                result = await self._run_cross_comparison(product, spec, records, spacer)
            else:
                result = await self._run_single(product, spec, spacer)
        except EmptySelectionError as e:
            await self._record_failure(product.id, analysis_type, str(e))
            summary.errors.append(f"{analysis_type}: {e}")
            return
        except Exception as e:
            logger.warning(f"{analysis_type} failed before completion: {e}")
            result = AnalysisResult.failed(analysis_type, str(e))

        if await self._store_result(product.id, result):
            summary.completed_types.append(analysis_type)
        else:
            summary.errors.append(f"{analysis_type}: {result.error}")

    async def _check_dependencies(self, product_id: str, spec: AnalysisSpec) -> Dict[str, AnalysisRecord]:
        """Raise DependencyNotMetError unless every required type is completed."""
        if not spec.requires:
            return {}
        records = await self.repository.get_analyses(product_id)
        missing = [
            t.value for t in spec.requires
            if t.value not in records or not records[t.value].is_completed
        ]
        if missing:
            raise DependencyNotMetError(spec.type.value, missing)
        return records

    # =========================================================================
    # SINGLE ANALYSES
    # =========================================================================

    async def _select_reviews(self, product: Product, spec: AnalysisSpec) -> List[Review]:
        limit = target_sample_size(spec, product.reviews_count)
        return await self.sampler.select_reviews(
            product.id,
            product.namespace,
            spec.type.value,
            limit,
            product_name=product.name,
        )

    async def _run_single(self, product: Product, spec: AnalysisSpec, spacer: CallSpacer) -> AnalysisResult:
        analysis_type = spec.type.value
        reviews = await self._select_reviews(product, spec)
        if not reviews:
            raise EmptySelectionError(analysis_type)

        competitor_reviews = None
        if spec.needs_competitors and product.has_competitors:
            competitor_reviews = await self.sampler.competitor_reviews(
                product.id,
                product.namespace,
                [c.id for c in product.competitors],
                self.config.competitor_sample_size,
            )

        await spacer.wait()
        return await self.analysis_service.run_analysis(
            analysis_type, reviews, competitor_reviews=competitor_reviews
        )

    # =========================================================================
    # CROSS-COMPARISON (competitor fan-out)
    # =========================================================================

    async def _run_cross_comparison(
        self,
        product: Product,
        spec: AnalysisSpec,
        records: Dict[str, AnalysisRecord],
        spacer: CallSpacer,
    ) -> AnalysisResult:
        """
        Fan out over competitors, then synthesize.

        The synthesis call gets no raw reviews: only the product's prior
        analyses and the merged competitor analyses.
        """
        analysis_type = spec.type.value
        prior: Dict[str, Any] = {
            t.value: records[t.value].data
            for t in ANALYSIS_ORDER
            if t in spec.requires and t.value in records
        }

        competitor_analyses = await self._run_competitor_analyses(product, spacer)
        if not competitor_analyses:
            raise EmptySelectionError(
                analysis_type, f"No competitor analyses available for {analysis_type} analysis"
            )
        prior["competitor_analyses"] = competitor_analyses

        await spacer.wait()
        return await self.analysis_service.run_analysis(analysis_type, [], prior_analyses=prior)

    async def _run_competitor_analyses(self, product: Product, spacer: CallSpacer) -> Dict[str, Dict[str, Any]]:
        """
        Per-competitor sub-analyses keyed by competitor id.

        Competitors run with bounded concurrency; sub-analyses of one
        competitor run in order. Competitors without any successful
        sub-analysis are left out.
        """
        semaphore = asyncio.Semaphore(self.config.competitor_concurrency)
        logger.info(f"Starting competitor analyses for {len(product.competitors)} competitors")

        async def bounded(competitor: Competitor):
            async with semaphore:
                return await self._analyze_competitor(product, competitor, spacer)

        results = await asyncio.gather(*(bounded(c) for c in product.competitors))

        merged = {}
        for competitor, analyses in zip(product.competitors, results):
            if not analyses:
                logger.warning(f"No analyses completed for competitor {competitor.name}")
                continue
            merged[competitor.id] = {**analyses, "name": competitor.name, "id": competitor.id}
        return merged

    async def _analyze_competitor(
        self,
        product: Product,
        competitor: Competitor,
        spacer: CallSpacer,
    ) -> Dict[str, Any]:
        log = run_logger(logger, product_id=product.id, competitor_id=competitor.id)
        analyses: Dict[str, Any] = {}

        for sub_type, sample_size in COMPETITOR_SUB_ANALYSES:
            name = sub_type.value
            try:
                reviews = await self.sampler.select_reviews(
                    product.id,
                    product.namespace,
                    name,
                    sample_size,
                    product_name=competitor.name,
                    competitor_id=competitor.id,
                )
                if not reviews:
                    log.info(f"No {name} reviews found for {competitor.name}")
                    continue

                await spacer.wait()
                if sub_type == AnalysisType.SWOT:
                    result = await self.analysis_service.run_competitor_swot(reviews)
                else:
                    result = await self.analysis_service.run_analysis(name, reviews)

                if result.is_completed:
                    analyses[name] = result.data
                    log.info(f"{name} analysis completed for {competitor.name}")
                else:
                    log.warning(f"{name} analysis failed for {competitor.name}: {result.error}")

            except Exception as e:
                log.warning(f"Error in {name} analysis for {competitor.name}: {e}")

        return analyses

    # =========================================================================
    # SINGLE-TYPE REPROCESSING
    # =========================================================================

    async def reprocess_analysis(self, product_id: str, analysis_type: str, user_id: str) -> ReprocessResult:
        """
        Re-run one analysis type.

        Does not take the processing lock and does not re-check the
        dependency gate. An empty selection records nothing.

        Raises:
            NotFoundError, UnauthorizedError: as process_all_analyses
            ValueError: unknown analysis type
        """
        spec = get_spec(analysis_type)
        analysis_type = spec.type.value
        product = await self._load_owned_product(product_id, user_id)
        spacer = CallSpacer(self.config.rate_limit_seconds, self._sleep)

        if not spec.is_applicable(len(product.competitors)):
            return ReprocessResult(False, f"No competitors found for {analysis_type} analysis")

        try:
            if spec.fan_out:
                records = await self.repository.get_analyses(product.id)
                result = await self._run_cross_comparison(product, spec, records, spacer)
            else:
                result = await self._run_single(product, spec, spacer)
        except EmptySelectionError as e:
            return ReprocessResult(False, str(e))
        except Exception as e:
            logger.error(f"Error reprocessing {analysis_type}: {e}")
            result = AnalysisResult.failed(analysis_type, str(e))

        if await self._store_result(product.id, result):
            return ReprocessResult(True)
        return ReprocessResult(False, result.error)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _load_owned_product(self, product_id: str, user_id: str) -> Product:
        product = await self.repository.get_product(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if not product.is_owned_by(user_id):
            raise UnauthorizedError("Product does not belong to user")
        return product

    async def _store_result(self, product_id: str, result: AnalysisResult) -> bool:
        """
        Persist an analysis outcome. Returns True when recorded as completed.

        Completed data is validated against the type schema first; a schema
        violation is recorded as a failure.
        """
        if result.is_completed:
            try:
                data = validate_analysis_data(result.type, result.data)
            except Exception as e:
                result = AnalysisResult.failed(result.type, str(e))
            else:
                await self.repository.upsert_analysis(AnalysisRecord(
                    product_id=product_id,
                    type=result.type,
                    status=RecordStatus.COMPLETED,
                    data=data,
                    error=None,
                ))
                return True

        await self._record_failure(product_id, result.type, result.error or "Unknown error")
        return False

    async def _record_failure(self, product_id: str, analysis_type: str, error: str):
        await self.repository.upsert_analysis(AnalysisRecord(
            product_id=product_id,
            type=analysis_type,
            status=RecordStatus.FAILED,
            data=None,
            error=error,
        ))
        run_logger(logger, product_id=product_id, analysis_type=analysis_type).warning(
            f"{analysis_type} recorded as failed: {error}"
        )

    async def _release_lock(self, product_id: str, run_id: str):
        try:
            await self.repository.release_processing(product_id, run_id)
        except Exception as e:
            run_logger(logger, run_id=run_id, product_id=product_id).error(
                f"Failed to release processing lock on {product_id}: {e}"
            )

    async def _persist_run(self, run: AnalysisRun):
        try:
            await self.repository.record_run(run)
        except Exception as e:
            logger.warning(f"Failed to persist run {run.run_id}: {e}")

    def _report(self, sink: ProgressSink, product_id: str, step: str, completed: int, total: int,
                error: Optional[str] = None):
        try:
            sink.report(AnalysisProgress(product_id, step, completed, total, error=error))
        except Exception as e:
            logger.warning(f"Progress sink failed: {e}")
