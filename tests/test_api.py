"""Tests for the admin HTTP API."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from jetstream_sync.api.main import app
from jetstream_sync.api.routes.embedding_sync import _shared_orchestrator, get_orchestrator
from jetstream_sync.pipelines.embedding_sync_orchestrator import EmbeddingSyncOrchestrator
from jetstream_sync.services.rate_limiter import RateLimiter
from conftest import FakeEmbedder, FakeStore, SleepRecorder, sample_tables


@pytest.fixture
def api_store() -> FakeStore:
    return FakeStore(sample_tables())


@pytest.fixture
def client(api_store, settings):
    orchestrator = EmbeddingSyncOrchestrator(
        store=api_store, embedder=FakeEmbedder(), settings=settings, sleep=SleepRecorder(),
        rate_limiter=RateLimiter(),
    )
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestEmbeddingSyncRoutes:
    def test_health(self, client) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_run_pass(self, client, api_store) -> None:
        response = client.post("/embedding-sync/run-pass", json={"only": "airports", "batch_size": 10})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["results"] == {"airports": 2}
        assert body["total_processed"] == 2
        assert api_store.selected_tables() == ["airports"]

    def test_run_pass_rejects_bad_batch_size(self, client) -> None:
        response = client.post("/embedding-sync/run-pass", json={"batch_size": 0})

        assert response.status_code == 422

    def test_reindex_entity(self, client, api_store) -> None:
        response = client.post("/embedding-sync/reindex-entity", json={"type": "aircraft", "id": "jet-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["persisted"] is True
        assert body["raw_dimension"] == 1536
        assert len(api_store.row("jets", "jet-1")["embedding"]) == 1536

    def test_reindex_missing_entity_is_404(self, client) -> None:
        response = client.post("/embedding-sync/reindex-entity", json={"type": "flights", "id": "nope"})

        assert response.status_code == 404

    def test_status_lists_handlers_in_priority_order(self, client) -> None:
        response = client.get("/embedding-sync/status")

        assert response.status_code == 200
        body = response.json()
        assert body["target"] == "store"
        assert [h["table"] for h in body["handlers"]] == [
            "jetshare_offers", "flights", "airports", "jets", "pilots_crews", "profiles", "simulation_logs",
        ]
        assert body["rate_limit_calls"] == 35


class TestUnconfiguredPipeline:
    def test_missing_credentials_is_503(self) -> None:
        with patch("jetstream_sync.api.routes.embedding_sync.build_orchestrator",
                   side_effect=ValueError("COHERE_API_KEY must be set in environment variables")):
            _shared_orchestrator.cache_clear()
            try:
                response = TestClient(app).get("/embedding-sync/status")
            finally:
                _shared_orchestrator.cache_clear()

        assert response.status_code == 503
        assert "COHERE_API_KEY" in response.json()["detail"]
