"""Tests for store intelligence and stock API endpoints."""

from __future__ import annotations

import threading
import time
from datetime import timedelta

import pytest
from conftest import STORE_ID, StoreSeeder, utc_now
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from storeintel.core.config import Settings
from storeintel.services import store_intelligence as svc
from storeintel.web.deps import get_session_factory
from storeintel.web.main import app

BASE = "/api/v1/store-intelligence"


@pytest.fixture
def client(session_factory):
    """Test client bound to the per-test database."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def shop(db) -> StoreSeeder:
    """Store with a fast mover, a slow mover, a dead item and a broken ledger row."""
    now = utc_now() - timedelta(minutes=1)
    seeder = StoreSeeder(db)
    seeder.item("milk", stock=20, product="Milk", variant="1L", image_url="https://cdn/milk.png")
    seeder.item("salt", stock=300, product="Salt", variant="1kg")
    seeder.item("jam", stock=60, product="Jam", variant="Jar")
    seeder.item("butter", stock=-5, product="Butter", variant="200g")
    seeder.daily_sales("milk", 10, range(7), now=now)
    seeder.daily_sales("salt", 1, range(0, 30, 2), now=now)
    seeder.daily_sales("butter", 1, range(3), now=now)
    return seeder


# --- Envelope and errors ---------------------------------------------------


def test_missing_store_id_is_bad_request(client):
    response = client.get(f"{BASE}/demand-forecast")

    assert response.status_code == 400
    body = response.json()
    assert body == {
        "success": False,
        "error": "invalid_parameter",
        "message": "store_id is required",
        "retryable": False,
    }


def test_blank_store_id_is_bad_request(client):
    response = client.get(f"{BASE}/anomalies", params={"store_id": "  "})

    assert response.status_code == 400


def test_unknown_store_is_not_found(client):
    response = client.get(f"{BASE}/reorder-suggestions", params={"store_id": "nope"})

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_data_source_error_is_retryable(client, shop, monkeypatch):
    def boom(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(svc, "load_sale_lines", boom)

    response = client.get(f"{BASE}/demand-forecast", params={"store_id": STORE_ID})

    assert response.status_code == 503
    assert response.json()["error"] == "data_source_error"
    assert response.json()["retryable"] is True


def test_timed_out_request_leaves_worker_session_alone(client, engine, shop, monkeypatch):
    events: list[str] = []
    closed = threading.Event()

    class RecordingSession(Session):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self.opened_on = threading.get_ident()

        def close(self):
            events.append("closed")
            super().close()
            closed.set()

    def slow_load(db, store_id):
        events.append("worker_started" if db.opened_on == threading.get_ident() else "foreign_session")
        time.sleep(0.5)
        events.append("worker_done")
        return []

    monkeypatch.setattr(svc, "get_settings", lambda: Settings(data_source_timeout_seconds=0.1))
    monkeypatch.setattr(svc, "load_stocked_items", slow_load)
    factory = sessionmaker(bind=engine, class_=RecordingSession)
    app.dependency_overrides[get_session_factory] = lambda: factory

    response = client.get(f"{BASE}/demand-forecast", params={"store_id": STORE_ID})

    assert response.status_code == 503
    assert response.json()["error"] == "data_source_error"
    assert closed.wait(5)
    assert events == ["worker_started", "worker_done", "closed"]


def test_request_id_is_echoed(client, shop):
    response = client.get(
        f"{BASE}/demand-forecast",
        params={"store_id": STORE_ID},
        headers={"X-Request-ID": "req-123"},
    )

    assert response.headers["X-Request-ID"] == "req-123"


# --- Demand forecast -------------------------------------------------------


def test_demand_forecast(client, shop):
    response = client.get(f"{BASE}/demand-forecast", params={"store_id": STORE_ID})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["meta"] == {"store_id": STORE_ID, "period_days": 30, "total_products": 3}

    assert [row["store_product_id"] for row in body["data"]] == ["butter", "milk", "salt"]
    rows = {row["store_product_id"]: row for row in body["data"]}
    assert rows["milk"]["avg_daily_demand"] == 10.0
    assert rows["milk"]["days_of_stock_left"] == 2.0
    assert rows["milk"]["current_stock"] == 20
    assert rows["milk"]["image_url"] == "https://cdn/milk.png"
    assert rows["butter"]["days_of_stock_left"] == 0.0
    assert "jam" not in rows


def test_demand_forecast_days_is_forgiving(client, shop):
    response = client.get(f"{BASE}/demand-forecast", params={"store_id": STORE_ID, "days": "abc"})

    assert response.status_code == 200
    assert response.json()["meta"]["period_days"] == 30


def test_demand_forecast_days_clamped(client, shop):
    response = client.get(f"{BASE}/demand-forecast", params={"store_id": STORE_ID, "days": "1000"})

    assert response.json()["meta"]["period_days"] == 365


# --- Reorder suggestions ---------------------------------------------------


def test_reorder_suggestions(client, shop):
    response = client.get(f"{BASE}/reorder-suggestions", params={"store_id": STORE_ID})

    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["threshold"] == 7
    assert body["meta"]["demand_window_days"] == 30
    assert body["meta"]["critical_count"] == 2

    rows = {row["store_product_id"]: row for row in body["data"]}
    assert set(rows) == {"milk", "butter"}
    assert rows["milk"]["urgency"] == "critical"
    assert rows["milk"]["suggested_reorder_qty"] == 140
    assert body["data"][0]["store_product_id"] == "butter"


# --- Anomalies -------------------------------------------------------------


def test_anomalies(client, shop):
    response = client.get(f"{BASE}/anomalies", params={"store_id": STORE_ID})

    assert response.status_code == 200
    body = response.json()
    types = {(row["store_product_id"], row["type"]) for row in body["data"]}
    assert ("butter", "stock_mismatch") in types
    assert ("jam", "dead_stock") in types
    assert ("milk", "demand_spike") in types

    severities = [row["severity"] for row in body["data"]]
    assert severities == sorted(severities, key=["high", "medium", "low"].index)
    assert body["meta"]["total_anomalies"] == len(body["data"])
    assert body["meta"]["high_count"] == severities.count("high")

    butter = next(row for row in body["data"] if row["store_product_id"] == "butter")
    assert butter["details"] == {"stock": -5, "reserved_stock": 0, "magnitude": 5}
    assert len(butter["fingerprint"]) == 32


# --- Overview --------------------------------------------------------------


def test_overview(client, shop):
    response = client.get(f"{BASE}/overview", params={"store_id": STORE_ID})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert set(body["data"]) == {"forecast", "reorder", "anomalies"}
    assert body["data"]["forecast"]["meta"]["total_products"] == 3
    assert body["data"]["reorder"]["meta"]["critical_count"] == 2
    assert body["meta"]["failed_sections"] == []


def test_overview_partial_failure(client, shop, monkeypatch):
    def failing_scan(*args, **kwargs):
        raise svc.DataSourceError("scan failed")

    monkeypatch.setattr(svc, "anomaly_scan", failing_scan)

    body = client.get(f"{BASE}/overview", params={"store_id": STORE_ID}).json()

    assert body["success"] is False
    assert body["meta"]["failed_sections"] == ["anomalies"]
    assert body["data"]["anomalies"]["error"] == "data_source_error"
    assert body["data"]["forecast"]["success"] is True


def test_overview_unknown_store(client):
    response = client.get(f"{BASE}/overview", params={"store_id": "nope"})

    assert response.status_code == 404


# --- Stock summary ---------------------------------------------------------


def test_stock_summary(client, shop):
    response = client.get("/api/v1/stock/summary", params={"store_id": STORE_ID})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["store_name"] == "Corner Shop"
    assert data["totals"] == {"total_skus": 4, "in_stock": 3, "low_stock": 0, "out_of_stock": 1}
    assert len(data["recent_changes"]) == 4
    assert {row["product_name"] for row in data["recent_changes"]} >= {"Milk - 1L"}
