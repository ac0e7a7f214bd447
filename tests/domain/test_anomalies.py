"""Tests for anomaly detection."""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta

import pytest

from storeintel.domain.intelligence.anomalies import (
    AnomalyPolicy,
    dead_stock_severity,
    detect_anomalies,
    detect_dead_stock,
    detect_demand_shifts,
    detect_stock_mismatches,
)
from storeintel.domain.intelligence.types import (
    AnomalyType,
    DemandDrop,
    DemandSpike,
    SaleLine,
    Severity,
    StockedItem,
)

NOW = datetime(2025, 6, 30, 12, 0, 0)


def item(
    item_id: str = "sp1",
    stock: int = 100,
    reserved: int = 0,
    active: bool = True,
    name: str = "Bread",
) -> StockedItem:
    return StockedItem(
        id=item_id,
        product_name=name,
        variant_name="Loaf",
        image_url=None,
        stock=stock,
        reserved_stock=reserved,
        is_active=active,
    )


def daily(item_id: str, qty: int, days: range) -> list[SaleLine]:
    return [
        SaleLine(item_id, f"{item_id}-o{d}", qty, NOW - timedelta(days=d)) for d in days
    ]


# --- Demand shifts ---------------------------------------------------------


def test_ratio_of_exactly_four_is_medium_spike():
    # window avg 60/30 = 2/day, trailing avg 56/7 = 8/day
    shifts = detect_demand_shifts({"sp1": item()}, {"sp1": 60}, {"sp1": 56}, window_days=30)

    assert len(shifts) == 1
    spike = shifts[0]
    assert isinstance(spike, DemandSpike)
    assert spike.severity == Severity.MEDIUM
    assert spike.details.ratio == 4.0
    assert spike.details.trailing_avg_daily == 8.0
    assert spike.details.window_avg_daily == 2.0
    assert spike.message == "Bread demand spiked 4.0x in last 7 days"


def test_ratio_above_four_is_high_spike():
    shifts = detect_demand_shifts({"sp1": item()}, {"sp1": 60}, {"sp1": 60}, window_days=30)

    assert shifts[0].severity == Severity.HIGH


def test_ratio_of_two_is_not_a_spike():
    shifts = detect_demand_shifts({"sp1": item()}, {"sp1": 60}, {"sp1": 28}, window_days=30)

    assert shifts == []


def test_drop_severity():
    # window avg 3/day; trailing 7/7 = 1/day -> 0.33
    medium = detect_demand_shifts({"sp1": item()}, {"sp1": 90}, {"sp1": 7}, window_days=30)
    # trailing 0 -> ratio 0
    high = detect_demand_shifts({"sp1": item()}, {"sp1": 90}, {}, window_days=30)

    assert isinstance(medium[0], DemandDrop)
    assert medium[0].severity == Severity.MEDIUM
    assert medium[0].message == "Bread demand dropped to 33% of normal"
    assert high[0].severity == Severity.HIGH
    assert high[0].details.ratio == 0.0


def test_slow_movers_below_noise_floor_are_skipped():
    # 8 units over 30 days = 0.27/day
    assert detect_demand_shifts({"sp1": item()}, {"sp1": 8}, {"sp1": 8}, window_days=30) == []


def test_custom_policy_thresholds():
    policy = AnomalyPolicy(spike_ratio=1.5, spike_high_ratio=3.0)

    shifts = detect_demand_shifts(
        {"sp1": item()}, {"sp1": 60}, {"sp1": 28}, window_days=30, policy=policy
    )

    assert shifts[0].severity == Severity.MEDIUM


# --- Stock mismatches ------------------------------------------------------


def test_negative_stock_is_high():
    found = detect_stock_mismatches([item(stock=-5, reserved=2)])

    assert len(found) == 1
    assert found[0].severity == Severity.HIGH
    assert found[0].details.magnitude == 5
    assert found[0].message == "Bread has negative stock (-5)"


def test_reserved_exceeding_stock_is_medium():
    found = detect_stock_mismatches([item(stock=3, reserved=7)])

    assert found[0].severity == Severity.MEDIUM
    assert found[0].details.magnitude == 4
    assert found[0].message == "Bread reserved stock (7) exceeds total stock (3)"


def test_consistent_or_inactive_items_are_not_mismatches():
    assert detect_stock_mismatches([item(stock=5, reserved=5), item(stock=-1, active=False)]) == []


# --- Dead stock ------------------------------------------------------------


@pytest.mark.parametrize(
    "available,expected",
    [(51, Severity.HIGH), (50, Severity.MEDIUM), (11, Severity.MEDIUM), (10, Severity.LOW), (1, Severity.LOW)],
)
def test_dead_stock_severity_tiers(available, expected):
    assert dead_stock_severity(available) == expected


def test_dead_stock_requires_available_units_and_no_sales():
    items = [
        item("idle", stock=20),
        item("sold", stock=20),
        item("empty", stock=4, reserved=4),
        item("off", stock=20, active=False),
    ]
    aggregates = {"sold": object()}

    found = detect_dead_stock(items, aggregates, window_days=30)

    assert [a.item.id for a in found] == ["idle"]
    assert found[0].details.available_stock == 20
    assert found[0].message == "Bread has 20 units in stock but zero orders in 30 days"


# --- Full scan -------------------------------------------------------------


def test_detect_anomalies_merges_and_ranks():
    items = [
        item("spiky", stock=100, name="Eggs"),
        item("broken", stock=-5, name="Butter"),
        item("dusty", stock=12, name="Jam"),
    ]
    # 4 units on days 10..13, 56 units across days 0..6
    lines = daily("spiky", 1, range(10, 14)) + daily("spiky", 8, range(0, 7))

    found = detect_anomalies(items, lines, now=NOW, window_days=30)

    assert [(a.type, a.severity, a.item.id) for a in found] == [
        (AnomalyType.STOCK_MISMATCH, Severity.HIGH, "broken"),
        (AnomalyType.DEMAND_SPIKE, Severity.MEDIUM, "spiky"),
        (AnomalyType.DEAD_STOCK, Severity.MEDIUM, "dusty"),
    ]


def test_sales_outside_window_do_not_count():
    lines = daily("sp1", 5, range(31, 35))

    found = detect_anomalies([item("sp1", stock=8)], lines, now=NOW, window_days=30)

    assert [a.type for a in found] == [AnomalyType.DEAD_STOCK]
    assert found[0].severity == Severity.LOW


def test_fingerprint_is_stable_per_type_and_item():
    found = detect_stock_mismatches([item("sp9", stock=-1)])

    expected = hashlib.md5(b"stock_mismatch:sp9").hexdigest()
    assert found[0].fingerprint == expected
