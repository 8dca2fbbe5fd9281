#!/usr/bin/env python3
"""
Review Indexing Job
===================

Loads reviews from a CSV export, embeds them and writes them to the brand's
vector store namespace so analysis runs can sample them.

CSV columns:
    review_id, product_id, text          (required)
    rating, date, competitor_id          (optional; date in ISO format)

Design principles:
    - IDEMPOTENT: upsert on (namespace, review_id)
    - RESILIENT: malformed rows are logged and skipped

Usage:
    python scripts/index_reviews.py --csv-file data/reviews.csv --user USER_ID --brand BRAND_ID
    python scripts/index_reviews.py --csv-file data/reviews.csv --user U --brand B --dry-run

Environment:
    Reads from .env (DATABASE_HOST, OPENAI_API_KEY, etc.)
"""

import argparse
import asyncio
import csv
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv(project_root / ".env")

from src.data.config import LoggingConfig, get_settings
from src.data.data_models import brand_namespace
from src.data.db import close_pool, get_pool
from src.data.repository import PostgresAnalysisRepository
from src.orchestrator.logging_config import setup_logging
from src.retrieval import OpenAIEmbedder, PgVectorStore, ReviewIndexer
from src.reviews.review_models import Review

logger = logging.getLogger(__name__)


def load_reviews(csv_path: Path, analysis_version: str = "v1") -> List[Review]:
    reviews = []
    with open(csv_path, newline="", encoding="utf-8") as f:
        for line_no, row in enumerate(csv.DictReader(f), start=2):
            try:
                rating = row.get("rating") or None
                raw_date = row.get("date") or None
                reviews.append(Review(
                    id=row["review_id"].strip(),
                    product_id=row["product_id"].strip(),
                    text=row.get("text") or "",
                    rating=float(rating) if rating else None,
                    date=datetime.fromisoformat(raw_date) if raw_date else None,
                    competitor_id=(row.get("competitor_id") or "").strip() or None,
                    analysis_version=analysis_version,
                ))
            except (KeyError, ValueError) as e:
                logger.warning(f"Line {line_no}: skipped ({e})")
    return reviews


async def run(args) -> int:
    reviews = load_reviews(Path(args.csv_file), args.analysis_version)
    namespace = brand_namespace(args.user, args.brand)
    logger.info(f"Loaded {len(reviews)} reviews for namespace {namespace}")

    if args.dry_run:
        by_product = {}
        for review in reviews:
            key = review.competitor_id or review.product_id
            by_product[key] = by_product.get(key, 0) + 1
        for key, count in sorted(by_product.items()):
            print(f"  {key}: {count} reviews")
        return 0

    settings = get_settings()
    embedder = OpenAIEmbedder(settings.openai)
    pool = get_pool(settings.database)
    indexer = ReviewIndexer(embedder, PgVectorStore(pool), repository=PostgresAnalysisRepository(pool))

    result = await indexer.index_reviews(reviews, namespace, brand_id=args.brand)
    print(f"Indexed {result.indexed} reviews into {result.namespace} ({result.skipped} skipped)")
    for product_id, count in sorted(result.product_counts.items()):
        print(f"  {product_id}: reviews_count = {count}")
    print(f"Embedding cost: ${embedder.estimated_cost:.4f}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Index reviews into the vector store")
    parser.add_argument("--csv-file", required=True, help="CSV export of reviews")
    parser.add_argument("--user", required=True, help="Owning user ID")
    parser.add_argument("--brand", required=True, help="Brand ID")
    parser.add_argument("--analysis-version", default="v1", help="Tag stored with each vector")
    parser.add_argument("--dry-run", action="store_true", help="Parse and summarize only")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(LoggingConfig(), level="DEBUG" if args.verbose else None)

    try:
        return asyncio.run(run(args))
    finally:
        close_pool()


if __name__ == "__main__":
    sys.exit(main())
