"""
Review Analysis Data Module
===========================

Configuration, persisted entities and the analysis repository.

This module provides:
    - Settings: environment-driven configuration (get_settings())
    - Data models: Brand, Competitor, Product, AnalysisRecord, AnalysisRun
    - repository.AnalysisRepository: persistence interface and its
      PostgreSQL implementation (import from src.data.repository)

Configuration:
    Set environment variables or create a .env file.

Required Environment Variables:
    DATABASE_PASSWORD: PostgreSQL password
    OPENAI_API_KEY: OpenAI key (embeddings and analyses)
"""

from .config import get_settings, load_settings, Settings
from .data_models import (
    RecordStatus,
    Brand,
    Competitor,
    Product,
    AnalysisRecord,
    AnalysisRun,
    brand_namespace,
)

__version__ = "1.0.0"

__all__ = [
    # Configuration
    "get_settings",
    "load_settings",
    "Settings",
    # Data models
    "RecordStatus",
    "Brand",
    "Competitor",
    "Product",
    "AnalysisRecord",
    "AnalysisRun",
    "brand_namespace",
]
