"""
Review Analysis API Routes
==========================

POST /api/products/{product_id}/analysis/restart  - start a full run (202) or re-run one type
GET  /api/products/{product_id}/analysis/status   - per-type status and latest run
GET  /api/analysis/runs/{run_id}                  - background run handle

The caller's identity comes from the X-User-Id header, set by the upstream
auth layer.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.orchestrator.analysis_orchestrator import AnalysisOrchestrator
from src.orchestrator.errors import (
    AnalysisError,
    AnalysisInProgressError,
    NotFoundError,
    UnauthorizedError,
)
from src.orchestrator.runner import AnalysisRunner
from src.orchestrator.status_tracker import StatusTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Analysis"])

_runner: Optional[AnalysisRunner] = None


def get_runner() -> AnalysisRunner:
    """Process-wide runner; finished run handles expire after an hour."""
    global _runner
    if _runner is None:
        _runner = AnalysisRunner(AnalysisOrchestrator.create())
    return _runner


def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def _to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, UnauthorizedError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, AnalysisInProgressError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, (ValueError, AnalysisError)):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


# ============================================================================
# MODELS
# ============================================================================

class RestartRequest(BaseModel):
    type: Optional[str] = None


class RunAcceptedResponse(BaseModel):
    run_id: str
    product_id: str
    status: str


class ReprocessResponse(BaseModel):
    product_id: str
    type: str
    success: bool
    error: Optional[str] = None


class LatestRunResponse(BaseModel):
    run_id: str
    status: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    completed_types: List[str] = []
    skipped_types: List[str] = []
    errors: List[str] = []


class AnalysisStatusResponse(BaseModel):
    product_id: str
    is_processing: bool
    completed_types: List[str]
    failed_types: List[str]
    total_expected: int
    progress_percentage: float
    per_type_status: Dict[str, str]
    latest_run: Optional[LatestRunResponse] = None


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post("/products/{product_id}/analysis/restart")
async def restart_analysis(
    product_id: str,
    request: Optional[RestartRequest] = None,
    user_id: str = Depends(get_user_id),
    runner: AnalysisRunner = Depends(get_runner),
):
    """
    Restart analyses for a product.

    Without a type, a full run is started in the background and 202 is
    returned with its run id. With a type, that analysis is re-run inline.
    """
    orchestrator = runner.orchestrator

    if request is not None and request.type:
        try:
            result = await orchestrator.reprocess_analysis(product_id, request.type, user_id)
        except Exception as e:
            raise _to_http_error(e)
        return ReprocessResponse(
            product_id=product_id,
            type=request.type,
            success=result.success,
            error=result.error,
        )

    try:
        product = await orchestrator.repository.get_product(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if not product.is_owned_by(user_id):
            raise UnauthorizedError("Product does not belong to user")
        if product.is_processing:
            raise AnalysisInProgressError(f"Analyses already running for product {product_id}")
    except AnalysisError as e:
        raise _to_http_error(e)

    handle = runner.submit(product_id, user_id)
    body = RunAcceptedResponse(run_id=handle.run_id, product_id=product_id, status=handle.status.value)
    return JSONResponse(status_code=202, content=body.model_dump())


@router.get("/products/{product_id}/analysis/status", response_model=AnalysisStatusResponse)
async def get_analysis_status(
    product_id: str,
    user_id: str = Depends(get_user_id),
    runner: AnalysisRunner = Depends(get_runner),
):
    tracker = StatusTracker(runner.orchestrator.repository)
    try:
        status = await tracker.get_analysis_status(product_id, user_id)
    except AnalysisError as e:
        raise _to_http_error(e)
    return AnalysisStatusResponse(**status.to_dict())


@router.get("/analysis/runs/{run_id}")
async def get_run(
    run_id: str,
    user_id: str = Depends(get_user_id),
    runner: AnalysisRunner = Depends(get_runner),
) -> Dict[str, Any]:
    handle = runner.get(run_id)
    if handle is None or handle.user_id != user_id:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return handle.to_dict()
