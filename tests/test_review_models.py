"""
Tests for review models, vector filters, review indexing and settings.

Usage:
    pytest tests/test_review_models.py -v
"""

import asyncio
from datetime import datetime

import pytest

from conftest import (
    FakeEmbedder,
    Harness,
    InMemoryRepository,
    InMemoryVectorStore,
    make_product,
    make_review,
    make_reviews,
)
from src.data.config import OpenAIConfig, OrchestratorConfig
from src.data.data_models import brand_namespace
from src.retrieval.ingestion import ReviewIndexer
from src.retrieval.models import VectorFilter
from src.retrieval.vector_store import is_zero_vector
from src.reviews.review_models import Review, rating_bucket


class TestReview:

    def test_rating_bucket_rounds_half_up(self):
        assert rating_bucket(2.5) == 3
        assert rating_bucket(2.49) == 2
        assert rating_bucket(4.5) == 5
        assert rating_bucket(1.0) == 1

    def test_missing_rating_is_neutral(self):
        assert rating_bucket(None) == 3
        assert make_review("r", rating=None).bucket == 3

    def test_rating_out_of_range(self):
        with pytest.raises(ValueError):
            make_review("r", rating=6.0)
        with pytest.raises(ValueError):
            make_review("r", rating=0.5)

    def test_word_count_derived_from_text(self):
        assert make_review("r", text="three short words").word_count == 3

    def test_metadata_round_trip(self):
        review = make_review("r1", rating=4.0, competitor_id="c1", date=datetime(2026, 3, 4, 12, 0))

        restored = Review.from_metadata(review.to_metadata())

        assert restored == review

    def test_metadata_text_truncated(self):
        review = make_review("r1", text="x" * 1500)
        metadata = review.to_metadata()
        assert len(metadata["text"]) == 1000
        assert metadata["word_count"] == 1

    def test_namespace(self):
        assert brand_namespace("u1", "b1") == "user_u1_brand_b1"


class TestVectorFilter:

    def test_own_reviews_sql(self):
        where, params = VectorFilter(product_id="p1", rating_min=2.5, rating_max=3.5).to_sql()

        assert where == "product_id = %s AND competitor_id IS NULL AND rating >= %s AND rating < %s"
        assert params == ["p1", 2.5, 3.5]

    def test_competitor_sql(self):
        where, params = VectorFilter(product_id="p1", competitor_ids=["c1", "c2"], own_reviews_only=False).to_sql()

        assert "competitor_id = ANY(%s)" in where
        assert params == ["p1", ["c1", "c2"]]

    def test_matches_agrees_with_scope(self):
        own = make_review("a", rating=3.0).to_metadata()
        rival = make_review("b", rating=3.0, competitor_id="c1").to_metadata()
        unrated = make_review("c", rating=None).to_metadata()

        band = VectorFilter(product_id="p1", rating_min=2.5, rating_max=3.5)
        assert band.matches(own)
        assert not band.matches(rival)
        assert not band.matches(unrated)
        assert VectorFilter(product_id="p1", competitor_id="c1").matches(rival)
        assert not VectorFilter(product_id="p2").matches(own)

    def test_zero_vector(self):
        assert is_zero_vector(None)
        assert is_zero_vector([0.0, 0.0])
        assert not is_zero_vector([0.0, 0.1])


class TestReviewIndexer:

    def setup_method(self):
        self.embedder = FakeEmbedder()
        self.store = InMemoryVectorStore()
        self.indexer = ReviewIndexer(self.embedder, self.store)

    def test_indexes_in_batches(self):
        reviews = [make_review(f"r{i}", rating=float(i % 5 + 1)) for i in range(250)]

        result = asyncio.run(self.indexer.index_reviews(reviews, "user_u1_brand_b1", brand_id="b1"))

        assert result.indexed == 250
        assert result.skipped == 0
        assert [len(batch) for batch in self.embedder.batch_calls] == [100, 100, 50]
        record = self.store.namespaces["user_u1_brand_b1"]["r7"]
        assert record.metadata["brand_id"] == "b1"
        assert record.metadata["product_id"] == "p1"

    def test_blank_reviews_skipped(self):
        reviews = [make_review("ok"), make_review("blank", text="   ")]

        result = asyncio.run(self.indexer.index_reviews(reviews, "ns"))

        assert result.indexed == 1
        assert result.skipped == 1
        assert "blank" not in self.store.namespaces["ns"]

    def test_reviews_count_stored_for_own_reviews(self):
        repository = InMemoryRepository([make_product(reviews_count=0)])
        indexer = ReviewIndexer(self.embedder, self.store, repository=repository)
        reviews = make_reviews(30) + make_reviews(12, prefix="rival", competitor_id="c1") + \
            [make_review("blank", text="")]

        result = asyncio.run(indexer.index_reviews(reviews, "ns"))

        assert result.product_counts == {"p1": 30}
        assert repository.products["p1"].reviews_count == 30

    def test_unknown_product_count_not_stored(self):
        repository = InMemoryRepository([])
        indexer = ReviewIndexer(self.embedder, self.store, repository=repository)

        result = asyncio.run(indexer.index_reviews([make_review("r1", product_id="ghost")], "ns"))

        assert result.indexed == 1
        assert result.product_counts == {"ghost": 1}

    def test_indexed_count_drives_sample_size(self):
        h = Harness(make_product(reviews_count=0), rate_limit_seconds=0)
        indexer = ReviewIndexer(h.embedder, h.store, repository=h.repository)
        asyncio.run(indexer.index_reviews(make_reviews(600, prefix="own"), h.product.namespace))

        asyncio.run(h.orchestrator.process_all_analyses("p1", "u1"))

        # 600 reviews: sentiment scales from its base of 100 to 25% of the corpus
        assert len(h.service.calls_for("sentiment")[0]["reviews"]) == 150


class TestSettings:

    def test_orchestrator_defaults(self):
        config = OrchestratorConfig()
        assert config.rate_limit_seconds == 15.0
        assert config.competitor_concurrency == 2
        assert config.competitor_sample_size == 50

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("ANALYSIS_RATE_LIMIT_SECONDS", "2.5")
        monkeypatch.setenv("COMPETITOR_CONCURRENCY", "4")

        config = OrchestratorConfig()

        assert config.rate_limit_seconds == 2.5
        assert config.competitor_concurrency == 4

    def test_invalid_values_rejected(self):
        with pytest.raises(ValueError):
            OrchestratorConfig(rate_limit_seconds=-1)
        with pytest.raises(ValueError):
            OrchestratorConfig(competitor_concurrency=0)
        with pytest.raises(ValueError):
            OpenAIConfig(temperature=3.0)
