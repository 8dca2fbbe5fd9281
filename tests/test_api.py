"""
Tests for the analysis API routes.

The router is mounted on a bare FastAPI app with get_runner overridden to a
runner built on in-memory fakes.

Usage:
    pytest tests/test_api.py -v
"""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import Harness, make_product
from src.api.analysis_routes import get_runner, router
from src.orchestrator.runner import AnalysisRunner


def make_client(h: Harness):
    app = FastAPI()
    app.include_router(router)
    runner = AnalysisRunner(h.orchestrator)
    app.dependency_overrides[get_runner] = lambda: runner
    return TestClient(app), runner


HEADERS = {"X-User-Id": "u1"}


class TestRestartEndpoint:

    def setup_method(self):
        self.h = Harness(make_product(), rate_limit_seconds=0)
        self.h.seed_own(40)
        self.client, self.runner = make_client(self.h)

    def test_full_run_accepted(self):
        with self.client as client:
            response = client.post("/api/products/p1/analysis/restart", headers=HEADERS)

            assert response.status_code == 202
            body = response.json()
            assert body["product_id"] == "p1"
            assert self.runner.get(body["run_id"]) is not None

            run = client.get(f"/api/analysis/runs/{body['run_id']}", headers=HEADERS)
            assert run.status_code == 200
            assert run.json()["product_id"] == "p1"

    def test_single_type_reprocessed_inline(self):
        response = self.client.post(
            "/api/products/p1/analysis/restart", headers=HEADERS, json={"type": "sentiment"}
        )

        assert response.status_code == 200
        assert response.json() == {
            "product_id": "p1", "type": "sentiment", "success": True, "error": None,
        }
        assert self.h.repository.record("p1", "sentiment") is not None

    def test_unknown_type(self):
        response = self.client.post(
            "/api/products/p1/analysis/restart", headers=HEADERS, json={"type": "horoscope"}
        )
        assert response.status_code == 400

    def test_missing_product(self):
        response = self.client.post("/api/products/nope/analysis/restart", headers=HEADERS)
        assert response.status_code == 404

    def test_foreign_user(self):
        response = self.client.post(
            "/api/products/p1/analysis/restart", headers={"X-User-Id": "intruder"}
        )
        assert response.status_code == 403

    def test_run_in_progress(self):
        self.h.repository.hold_lock("p1")
        response = self.client.post("/api/products/p1/analysis/restart", headers=HEADERS)
        assert response.status_code == 409

    def test_missing_identity(self):
        response = self.client.post("/api/products/p1/analysis/restart")
        assert response.status_code == 401


class TestStatusEndpoints:

    def setup_method(self):
        self.h = Harness(make_product(competitors=1))
        self.client, self.runner = make_client(self.h)

    def test_status(self):
        response = self.client.get("/api/products/p1/analysis/status", headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["total_expected"] == 13
        assert body["is_processing"] is False
        assert body["per_type_status"]["competition"] == "pending"

    def test_status_foreign_user(self):
        response = self.client.get(
            "/api/products/p1/analysis/status", headers={"X-User-Id": "intruder"}
        )
        assert response.status_code == 403

    def test_unknown_run(self):
        response = self.client.get("/api/analysis/runs/does-not-exist", headers=HEADERS)
        assert response.status_code == 404
