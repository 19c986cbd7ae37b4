from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import app


def test_health_and_request_id_echo():
    # lifespan is not entered, so no database pool is opened
    client = TestClient(app)

    response = client.get("/healthz", headers={"X-Request-ID": "req-42"})

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"] == "req-42"


def test_metrics_exposes_failure_counter():
    client = TestClient(app)

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "association_failures_total" in response.text
