"""Unit tests for the serving layer."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from investor_ingest.documents import add_url_document, create_investor
from investor_ingest.ingestion.embedder import EmbeddingGenerator, HashEmbeddings
from investor_ingest.ingestion.fetch import UrlExtraction
from investor_ingest.serving.app import create_app
from investor_ingest.stores.base import Stores
from investor_ingest.workflow.graph import IngestionWorkflow


@pytest.fixture()
def investor_id(stores: Stores) -> str:
    investor = create_investor(stores, user_id="u1", name="Jane Doe")
    add_url_document(stores, investor_id=investor.id, user_id="u1", url="https://acme.vc")
    return investor.id


@pytest.fixture()
def client(stores: Stores) -> TestClient:
    return TestClient(create_app(stores, run_workers=False))


def test_health_endpoint(client: TestClient) -> None:
    """GET /health should return 200 with status ok."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestTriggerIngestion:
    def test_accepted(self, client: TestClient, investor_id: str) -> None:
        response = client.post("/ingestions", json={"investorId": investor_id, "userId": "u1"})
        assert response.status_code == 202
        run_id = response.json()["runId"]
        assert len(client.app.state.queue) == 1

        status = client.get(f"/ingestions/{run_id}", params={"userId": "u1"})
        assert status.status_code == 200
        body = status.json()
        assert body["status"] == "running"
        assert body["investorId"] == investor_id
        assert body["stepState"]["currentStep"] == "load"
        assert body["stepState"]["documentCounts"] == {"total": 0, "processed": 0, "failed": 0}

    def test_unknown_investor(self, client: TestClient) -> None:
        response = client.post("/ingestions", json={"investorId": "ghost", "userId": "u1"})
        assert response.status_code == 404
        assert "ghost" in response.json()["detail"]

    def test_conflict_while_running(self, client: TestClient, investor_id: str) -> None:
        assert client.post("/ingestions", json={"investorId": investor_id, "userId": "u1"}).status_code == 202
        response = client.post("/ingestions", json={"investorId": investor_id, "userId": "u1"})
        assert response.status_code == 409

    def test_invalid_payload(self, client: TestClient) -> None:
        response = client.post("/ingestions", json={"userId": "u1"})
        assert response.status_code == 422

    def test_unknown_run(self, client: TestClient) -> None:
        assert client.get("/ingestions/nope", params={"userId": "u1"}).status_code == 404

    def test_other_users_investor_is_not_found(self, client: TestClient, investor_id: str) -> None:
        response = client.post("/ingestions", json={"investorId": investor_id, "userId": "u2"})
        assert response.status_code == 404
        assert len(client.app.state.queue) == 0

    def test_run_status_is_scoped_to_its_user(self, client: TestClient, investor_id: str) -> None:
        run_id = client.post("/ingestions", json={"investorId": investor_id, "userId": "u1"}).json()["runId"]
        assert client.get(f"/ingestions/{run_id}", params={"userId": "u2"}).status_code == 404
        assert client.get(f"/ingestions/{run_id}").status_code == 422


def test_background_worker_completes_run(stores: Stores, investor_id: str) -> None:
    workflow = IngestionWorkflow(
        stores,
        embedder=EmbeddingGenerator(HashEmbeddings(8), model="hash-test"),
        url_extractor=lambda url: UrlExtraction(text="We invest in Seed rounds across Europe.", meta={}),
    )
    app = create_app(stores, workflow=workflow, worker_count=1)

    with TestClient(app) as client:
        run_id = client.post("/ingestions", json={"investorId": investor_id, "userId": "u1"}).json()["runId"]
        app.state.queue.join()
        body = client.get(f"/ingestions/{run_id}", params={"userId": "u1"}).json()

    assert body["status"] == "succeeded"
    assert body["stepState"]["currentStep"] == "finalize"
    assert body["stepState"]["documentCounts"]["processed"] == 1
    assert stores.profiles.get_profile(investor_id).stages == ["Seed"]
