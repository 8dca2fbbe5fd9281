"""
Tests for the review relevance scorer.

Usage:
    pytest tests/test_relevance_scorer.py -v
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeEmbedder, make_review
from src.reviews.review_models import ReviewCandidate
from src.scoring.relevance_config import LengthConfig, LengthProfile, RelevanceConfig, WeightConfig
from src.scoring.relevance_scorer import RelevanceScorer, cosine_similarity

NOW = datetime(2026, 6, 1)


class TestComponents:

    def setup_method(self):
        self.scorer = RelevanceScorer(FakeEmbedder())

    def test_recency_tiers(self):
        assert self.scorer.score_recency(NOW - timedelta(days=100), NOW) == 100
        assert self.scorer.score_recency(NOW - timedelta(days=300), NOW) == 80
        assert self.scorer.score_recency(NOW - timedelta(days=700), NOW) == 60
        assert self.scorer.score_recency(NOW - timedelta(days=800), NOW) == 40
        assert self.scorer.score_recency(NOW - timedelta(days=2000), NOW) == 20

    def test_undated_review_is_neutral(self):
        assert self.scorer.score_recency(None, NOW) == 50

    def test_recency_accepts_aware_dates(self):
        aware = datetime(2026, 5, 1, tzinfo=timezone.utc)
        assert self.scorer.score_recency(aware, NOW) == 100

    def test_length_profile_shape(self):
        # sentiment: min 20, ideal 50, max 150
        assert self.scorer.score_length(10, "sentiment") == 25
        assert self.scorer.score_length(20, "sentiment") == 50
        assert self.scorer.score_length(35, "sentiment") == 75
        assert self.scorer.score_length(50, "sentiment") == 100
        assert self.scorer.score_length(150, "sentiment") == 50
        assert self.scorer.score_length(225, "sentiment") == 25
        assert self.scorer.score_length(600, "sentiment") == 0

    def test_length_continuous_past_max(self):
        just_above = self.scorer.score_length(151, "sentiment")
        assert 49 < just_above < 50

    def test_length_default_profile(self):
        assert self.scorer.score_length(60, "rating_analysis") == 100

    def test_rating_extreme_regime(self):
        assert self.scorer.score_rating(1.0, "swot") == 100
        assert self.scorer.score_rating(5.0, "swot") == 100
        assert self.scorer.score_rating(2.5, "swot") == 70
        assert self.scorer.score_rating(4.0, "swot") == 70
        assert self.scorer.score_rating(3.0, "swot") == 40

    def test_rating_balanced_regime(self):
        for rating in (1.0, 3.0, 5.0, None):
            assert self.scorer.score_rating(rating, "personas") == 80

    def test_rating_default_regime(self):
        assert self.scorer.score_rating(5.0, "jtbd") == 90
        assert self.scorer.score_rating(3.0, "jtbd") == 70
        assert self.scorer.score_rating(None, "jtbd") == 70

    def test_keywords(self):
        assert self.scorer.score_keywords("I love it, amazing and perfect", "sentiment") == 60
        text = "love hate excellent terrible amazing awful"
        assert self.scorer.score_keywords(text, "sentiment") == 100
        assert self.scorer.score_keywords("LOVE it", "sentiment") == 20
        assert self.scorer.score_keywords("anything", "rating_analysis") == 0

    def test_semantic(self):
        assert self.scorer.score_semantic([1.0, 0.0], [1.0, 0.0]) == pytest.approx(100)
        assert self.scorer.score_semantic([1.0, 0.0], None) == 0
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
        assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0


class TestScoring:

    def setup_method(self):
        self.embedder = FakeEmbedder()
        self.scorer = RelevanceScorer(self.embedder)
        self.pool = [
            ReviewCandidate(make_review("a", rating=1.0, text="I hate it, terrible grip " * 4, date=NOW)),
            ReviewCandidate(make_review("b", rating=3.0, text="ok")),
            ReviewCandidate(make_review("c", rating=5.0, text="I love it, amazing and perfect mount " * 5,
                                        date=NOW - timedelta(days=30))),
        ]

    def test_deterministic(self):
        query = self.embedder.vector_for("query")
        embeddings = [self.embedder.vector_for(c.review.text) for c in self.pool]

        first = self.scorer.score_candidates(self.pool, "sentiment", query, embeddings, reference_date=NOW)
        second = self.scorer.score_candidates(self.pool, "sentiment", query, embeddings, reference_date=NOW)

        assert [s.review.id for s in first] == [s.review.id for s in second]
        assert [s.score for s in first] == [s.score for s in second]

    def test_sorted_descending_with_components(self):
        query = self.embedder.vector_for("query")
        ranked = self.scorer.score_candidates(self.pool, "sentiment", query, reference_date=NOW)

        scores = [s.score for s in ranked]
        assert scores == sorted(scores, reverse=True)
        assert set(ranked[0].components) == {"semantic", "length", "recency", "rating", "keyword"}
        assert ranked[-1].review.id == "b"

    def test_weighted_total(self):
        scorer = RelevanceScorer(self.embedder)
        candidate = ReviewCandidate(make_review("x", rating=5.0, text="w " * 50, date=NOW))

        ranked = scorer.score_candidates([candidate], "sentiment", [1.0, 0.0], [[1.0, 0.0]], reference_date=NOW)

        # semantic 100, length 100, recency 100, rating 100, keyword 0
        assert ranked[0].score == pytest.approx(90)

    def test_ties_keep_pool_order(self):
        pool = [ReviewCandidate(make_review(f"r{i}", rating=4.0, text="same text")) for i in range(5)]
        ranked = self.scorer.score_candidates(pool, "jtbd", [1.0] * 8, reference_date=NOW)
        assert [s.review.id for s in ranked] == ["r0", "r1", "r2", "r3", "r4"]

    def test_score_embeds_query_once_and_missing_in_one_batch(self):
        pool = self.pool + [ReviewCandidate(make_review("d", rating=4.0, text="stored"), embedding=[0.1] * 8)]

        ranked = asyncio.run(self.scorer.score(pool, "sentiment", product_name="Trail Mount"))

        assert len(ranked) == 4
        assert len(self.embedder.query_calls) == 1
        assert self.embedder.query_calls[0].startswith("Trail Mount ")
        assert len(self.embedder.batch_calls) == 1
        assert len(self.embedder.batch_calls[0]) == 3

    def test_empty_pool(self):
        assert asyncio.run(self.scorer.score([], "sentiment")) == []
        assert self.embedder.query_calls == []


class TestConfig:

    def test_default_weights_sum_to_one(self):
        assert WeightConfig().total == pytest.approx(1.0)

    def test_invalid_weights_rejected(self):
        config = RelevanceConfig(weights=WeightConfig(semantic=0.9))
        with pytest.raises(ValueError):
            RelevanceScorer(FakeEmbedder(), config)

    def test_invalid_length_profile_rejected(self):
        config = RelevanceConfig(length=LengthConfig(profiles={"sentiment": LengthProfile(50, 20, 150)}))
        with pytest.raises(ValueError):
            config.validate()
