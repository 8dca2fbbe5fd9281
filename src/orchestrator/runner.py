"""
Background analysis runs.

AnalysisRunner starts process_all_analyses() as an asyncio task and hands
back a RunHandle the caller can poll (the API does) or await (the CLI and
tests do). Task failures are stored on the handle and logged.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .analysis_orchestrator import AnalysisOrchestrator, RunSummary
from .progress import AnalysisProgress, LoggingProgressSink, RecordingProgressSink

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(hours=1)
DEFAULT_MAX_FINISHED = 200


class RunState(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunHandle:
    run_id: str
    product_id: str
    user_id: str
    status: RunState = RunState.QUEUED
    result: Optional[RunSummary] = None
    error: Optional[str] = None
    submitted_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None
    progress_sink: RecordingProgressSink = field(
        default_factory=lambda: RecordingProgressSink(forward_to=LoggingProgressSink())
    )
    _task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.status in (RunState.COMPLETED, RunState.FAILED)

    @property
    def progress(self) -> Optional[AnalysisProgress]:
        return self.progress_sink.latest.get(self.product_id)

    async def wait(self) -> Optional[RunSummary]:
        """Wait for the run; never raises the task's exception."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        return self.result

    def to_dict(self) -> Dict[str, Any]:
        progress = self.progress
        return {
            "run_id": self.run_id,
            "product_id": self.product_id,
            "status": self.status.value,
            "submitted_at": self.submitted_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
            "progress": {
                "current_step": progress.current_step,
                "completed": progress.completed,
                "total": progress.total,
                "percentage": progress.percentage,
            } if progress else None,
        }


class AnalysisRunner:
    """
    Submits full runs in the background.

    submit() must be called from inside a running event loop. Finished
    handles stay readable for `retention` and at most `max_finished` of them
    are kept; running handles are never evicted.
    """

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        retention: timedelta = DEFAULT_RETENTION,
        max_finished: int = DEFAULT_MAX_FINISHED,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.orchestrator = orchestrator
        self.retention = retention
        self.max_finished = max_finished
        self._clock = clock
        self._handles: Dict[str, RunHandle] = {}

    @property
    def retained(self) -> int:
        return len(self._handles)

    def submit(self, product_id: str, user_id: str) -> RunHandle:
        self.prune()
        handle = RunHandle(run_id=str(uuid.uuid4()), product_id=product_id, user_id=user_id,
                           submitted_at=self._clock())
        self._handles[handle.run_id] = handle

        loop = asyncio.get_running_loop()
        handle._task = loop.create_task(self._execute(handle))
        logger.info(f"Submitted analysis run {handle.run_id}",
                    extra={"run_id": handle.run_id, "product_id": product_id})
        return handle

    def get(self, run_id: str) -> Optional[RunHandle]:
        self.prune()
        return self._handles.get(run_id)

    def prune(self) -> int:
        """Drop expired finished handles, then the oldest beyond max_finished."""
        cutoff = self._clock() - self.retention
        finished = sorted(
            (h for h in self._handles.values() if h.done and h.finished_at is not None),
            key=lambda h: h.finished_at,
        )
        expired = [h for h in finished if h.finished_at < cutoff]
        kept = [h for h in finished if h.finished_at >= cutoff]
        overflow = max(0, len(kept) - self.max_finished)
        evicted = expired + kept[:overflow]

        for handle in evicted:
            del self._handles[handle.run_id]
        if evicted:
            logger.debug(f"Evicted {len(evicted)} finished run handles")
        return len(evicted)

    async def _execute(self, handle: RunHandle):
        handle.status = RunState.RUNNING
        try:
            handle.result = await self.orchestrator.process_all_analyses(
                handle.product_id,
                handle.user_id,
                progress=handle.progress_sink,
                run_id=handle.run_id,
            )
            handle.status = RunState.COMPLETED if handle.result.success else RunState.FAILED
            if not handle.result.success:
                handle.error = "No analysis completed"
        except Exception as e:
            handle.status = RunState.FAILED
            handle.error = str(e) or type(e).__name__
            logger.exception(f"Analysis run {handle.run_id} failed",
                             extra={"run_id": handle.run_id, "product_id": handle.product_id})
        finally:
            handle.finished_at = self._clock()
