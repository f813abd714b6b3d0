from __future__ import annotations
import time
import pytest
from fastapi.testclient import TestClient
from agrisense.main import app
from agrisense.services.text_advisor import GENERIC_ANSWER
from tests.fakes import make_pipeline

@pytest.fixture
def client(monkeypatch):
    pipeline = make_pipeline()
    monkeypatch.setattr("agrisense.deps.pipeline._pipeline", pipeline)
    with TestClient(app) as test_client:
        yield test_client

def wait_for_terminal(client: TestClient, job_id: str, attempts: int = 100) -> dict:
    for _ in range(attempts):
        response = client.get(f"/query/{job_id}")
        assert response.status_code == 200
        data = response.json()
        if data["status"] != "pending":
            return data
        time.sleep(0.05)
    pytest.fail(f"Job {job_id} never left pending")

def test_health(client):
    """Test health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"

def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "AgriSense Advisory"
    assert "endpoints" in data

def test_text_question_lifecycle(client):
    response = client.post("/query", json={"text": "What is the best time to plant tomatoes?", "room_id": "farm-1"})
    assert response.status_code == 201
    created = response.json()
    assert created["status"] == "pending"

    data = wait_for_terminal(client, created["id"])
    assert data["status"] == "answered"
    assert data["response"] == GENERIC_ANSWER
    assert data["metadata"]["source"] == "keyword-fallback"
    assert data["updated_at"] >= data["created_at"]

def test_image_upload_lifecycle(client):
    response = client.post(
        "/query/image",
        files={"file": ("leaf.jpg", b"\xff\xd8\xff\xe0jpeg", "image/jpeg")},
        data={"user_id": "farmer-9", "room_id": "farm-2"},
    )
    assert response.status_code == 201

    data = wait_for_terminal(client, response.json()["id"])
    assert data["status"] == "answered"
    assert "Primary Diagnosis:" in data["response"]
    assert data["metadata"]["image"]["content_type"] == "image/jpeg"
    assert len(data["metadata"]["diagnosis"]["predictions"]) == 3

def test_non_image_upload_rejected(client):
    response = client.post("/query/image", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert response.status_code == 415

def test_oversized_upload_rejected(client, monkeypatch):
    monkeypatch.setattr("agrisense.routers.query.MAX_IMAGE_BYTES", 8)
    response = client.post("/query/image", files={"file": ("leaf.jpg", b"0123456789", "image/jpeg")})
    assert response.status_code == 413

@pytest.mark.parametrize("payload", [{}, {"text": ""}, {"text": "x" * 4001}])
def test_invalid_question_rejected(client, payload):
    response = client.post("/query", json=payload)
    assert response.status_code == 422

def test_unknown_job_is_404(client):
    response = client.get("/query/job_does_not_exist")
    assert response.status_code == 404

def test_readiness_reports_degraded_providers(client):
    response = client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["providers"]["status"] == "degraded"
    assert data["checks"]["job_store"]["status"] == "healthy"

def test_liveness(client):
    assert client.get("/live").json()["status"] == "alive"

def test_observability_endpoints(client):
    client.post("/query", json={"text": "Rain tomorrow?"})

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "counters" in metrics.json()
    assert "pipeline" in metrics.json()

    prometheus = client.get("/metrics/prometheus")
    assert prometheus.status_code == 200
    assert "http_requests_total" in prometheus.text

def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req_test123"})
    assert response.headers["X-Request-ID"] == "req_test123"
