from __future__ import annotations

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from src import main
from src.errors import PersistenceError
from src.models.alert import Alert


class ListingStore:
    def __init__(self, alerts=None, error=None):
        self.alerts = alerts or []
        self.error = error
        self.limits = []

    def list_recent(self, limit):
        self.limits.append(limit)
        if self.error:
            raise self.error
        return self.alerts[:limit]


@pytest.fixture
def client() -> TestClient:
    return TestClient(main.app)


def test_health_reports_scanner_state(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(main.orchestrator.state, "last_error", None)
    monkeypatch.setattr(main.orchestrator.state, "fetched", 1200)

    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["scanner"]["fetched"] == 1200
    assert set(body["scanner"]) >= {
        "running",
        "last_error",
        "last_loop_at",
        "started_at",
        "finished_at",
        "last_duration_ms",
        "prefiltered",
        "deep_checked",
        "alerts_created",
    }


def test_health_surfaces_last_error(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(main.orchestrator.state, "last_error", "UpstreamError: snapshot 502")

    body = client.get("/health").json()

    assert body["status"] == "error"
    assert body["scanner"]["last_error"] == "UpstreamError: snapshot 502"


def test_alerts_lists_recent(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    alert = Alert(
        symbol="ABCD",
        price=5.0,
        change_pct=15.0,
        day_volume=10_000_000,
        rvol=10.0,
        float_shares=2_000_000,
        has_news=True,
        created_at=datetime(2026, 1, 5, 15, 0),
    )
    store = ListingStore([alert])
    monkeypatch.setattr(main.orchestrator.validator, "store", store)

    response = client.get("/alerts")

    assert response.status_code == 200
    assert response.json()["alerts"][0]["symbol"] == "ABCD"
    assert response.json()["alerts"][0]["created_at"] == "2026-01-05T15:00:00"
    assert store.limits == [50]


def test_alerts_store_failure_returns_503(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(main.orchestrator.validator, "store", ListingStore(error=PersistenceError("down")))

    assert client.get("/alerts").status_code == 503


def test_config_hides_secrets(client: TestClient):
    body = client.get("/config").json()

    assert "POLYGON_API_KEY" not in body
    assert "DATABASE_URL" not in body
    assert "TELEGRAM_BOT_TOKEN" not in body
    assert body["MIN_RVOL"] == main.settings.MIN_RVOL


def test_run_scan_returns_result(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(main.orchestrator, "trigger", lambda: {"alerts": ["ABCD"], "error": None})

    body = client.post("/run-scan").json()

    assert body == {"skipped": False, "alerts": ["ABCD"], "error": None}


def test_run_scan_reports_skip_while_running(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(main.orchestrator, "trigger", lambda: None)

    body = client.post("/run-scan").json()

    assert body == {"skipped": True, "reason": "scan already running"}
