"""
Review Analysis FastAPI Application
===================================

REST API for the review analysis engine.

Endpoints:
    GET  /api/health                                  - Health check
    POST /api/products/{product_id}/analysis/restart  - Start or restart analyses
    GET  /api/products/{product_id}/analysis/status   - Analysis status
    GET  /api/analysis/runs/{run_id}                  - Background run status

Usage:
    uvicorn src.api.main:app --reload --port 8000

    Or with CLI:
    python -m src.api.main
"""

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import os

from src.data.config import get_settings
from src.data.db import close_pool
from src.orchestrator.logging_config import setup_logging

from .analysis_routes import router as analysis_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging(get_settings().logging)
    logger.info("Starting review analysis API...")

    yield

    close_pool()
    logger.info("Shutting down review analysis API...")


app = FastAPI(
    title="Review Analysis API",
    description="Multi-type product review analysis",
    version="0.1.0",
    lifespan=lifespan,
)

# In production, set CORS_ORIGINS (comma-separated)
_default_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra_origins = os.getenv("CORS_ORIGINS", "")
if _extra_origins:
    _default_origins.extend([o.strip() for o in _extra_origins.split(",") if o.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=_default_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(analysis_router)


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "version": "0.1.0"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("src.api.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
