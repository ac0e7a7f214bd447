"""Anomaly detection over one store's stock ledger and sales window.

Three independent checks, merged and ranked by severity:

1. Demand shift: trailing-window rate vs full-window rate (spike / drop)
2. Stock mismatch: negative on-hand, or reserved exceeding on-hand
3. Dead stock: available units with no sale anywhere in the window

NO DATA ACCESS - pure functions only.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from storeintel.domain.intelligence.aggregation import aggregate_sales, total_quantity, window_start
from storeintel.domain.intelligence.ranking import rank_anomalies
from storeintel.domain.intelligence.types import (
    Anomaly,
    DeadStock,
    DeadStockDetails,
    DemandDrop,
    DemandShiftDetails,
    DemandSpike,
    SaleLine,
    SalesAggregate,
    Severity,
    StockedItem,
    StockMismatch,
    StockMismatchDetails,
)


@dataclass(frozen=True)
class AnomalyPolicy:
    """Thresholds for the anomaly checks."""

    trailing_days: int = 7
    noise_floor: float = 0.3  # units/day over the full window
    spike_ratio: float = 2.0
    spike_high_ratio: float = 4.0
    drop_ratio: float = 0.5
    drop_high_ratio: float = 0.2
    dead_stock_high_units: int = 50
    dead_stock_medium_units: int = 10


def detect_demand_shifts(
    items: Mapping[str, StockedItem],
    window_totals: Mapping[str, int],
    trailing_totals: Mapping[str, int],
    window_days: int,
    policy: AnomalyPolicy = AnomalyPolicy(),
) -> list[Anomaly]:
    """Flag items whose recent daily rate diverges from the window rate.

    Both rates are per calendar day (not per active day), so the ratio
    compares like with like. Slow movers under the noise floor are skipped.
    """
    anomalies: list[Anomaly] = []

    for item_id, window_total in window_totals.items():
        item = items.get(item_id)
        if item is None or window_total <= 0:
            continue

        window_avg = window_total / window_days
        if window_avg < policy.noise_floor:
            continue

        trailing_avg = trailing_totals.get(item_id, 0) / policy.trailing_days
        ratio = trailing_avg / window_avg

        if ratio > policy.spike_ratio:
            anomalies.append(
                DemandSpike(
                    item=item,
                    severity=Severity.HIGH if ratio > policy.spike_high_ratio else Severity.MEDIUM,
                    message=(
                        f"{item.product_name} demand spiked {ratio:.1f}x "
                        f"in last {policy.trailing_days} days"
                    ),
                    details=DemandShiftDetails(
                        ratio=round(ratio, 1),
                        trailing_avg_daily=round(trailing_avg, 1),
                        window_avg_daily=round(window_avg, 1),
                        trailing_days=policy.trailing_days,
                        window_days=window_days,
                    ),
                )
            )
        elif ratio < policy.drop_ratio:
            anomalies.append(
                DemandDrop(
                    item=item,
                    severity=Severity.HIGH if ratio < policy.drop_high_ratio else Severity.MEDIUM,
                    message=f"{item.product_name} demand dropped to {ratio * 100:.0f}% of normal",
                    details=DemandShiftDetails(
                        ratio=round(ratio, 2),
                        trailing_avg_daily=round(trailing_avg, 1),
                        window_avg_daily=round(window_avg, 1),
                        trailing_days=policy.trailing_days,
                        window_days=window_days,
                    ),
                )
            )

    return anomalies


def detect_stock_mismatches(items: Iterable[StockedItem]) -> list[StockMismatch]:
    """Report ledger inconsistencies, at most one per item.

    Negative on-hand wins over reserved > on-hand; both usually stem from the
    same underlying defect.
    """
    anomalies: list[StockMismatch] = []

    for item in items:
        if not item.is_active:
            continue

        if item.stock < 0:
            anomalies.append(
                StockMismatch(
                    item=item,
                    severity=Severity.HIGH,
                    message=f"{item.product_name} has negative stock ({item.stock})",
                    details=StockMismatchDetails(
                        stock=item.stock,
                        reserved_stock=item.reserved_stock,
                        magnitude=-item.stock,
                    ),
                )
            )
        elif item.reserved_stock > item.stock:
            anomalies.append(
                StockMismatch(
                    item=item,
                    severity=Severity.MEDIUM,
                    message=(
                        f"{item.product_name} reserved stock ({item.reserved_stock}) "
                        f"exceeds total stock ({item.stock})"
                    ),
                    details=StockMismatchDetails(
                        stock=item.stock,
                        reserved_stock=item.reserved_stock,
                        magnitude=item.reserved_stock - item.stock,
                    ),
                )
            )

    return anomalies


def dead_stock_severity(available: int, policy: AnomalyPolicy = AnomalyPolicy()) -> Severity:
    if available > policy.dead_stock_high_units:
        return Severity.HIGH
    if available > policy.dead_stock_medium_units:
        return Severity.MEDIUM
    return Severity.LOW


def detect_dead_stock(
    items: Iterable[StockedItem],
    window_aggregates: Mapping[str, SalesAggregate],
    window_days: int,
    policy: AnomalyPolicy = AnomalyPolicy(),
) -> list[DeadStock]:
    """Flag active items holding available units without any sale in the window.

    Listing age is not considered: an item stocked yesterday is flagged the
    same as one idle for months.
    """
    anomalies: list[DeadStock] = []

    for item in items:
        available = item.available_stock
        if not item.is_active or available <= 0 or item.id in window_aggregates:
            continue

        anomalies.append(
            DeadStock(
                item=item,
                severity=dead_stock_severity(available, policy),
                message=(
                    f"{item.product_name} has {available} units in stock "
                    f"but zero orders in {window_days} days"
                ),
                details=DeadStockDetails(available_stock=available, days_without_sales=window_days),
            )
        )

    return anomalies


def detect_anomalies(
    items: Sequence[StockedItem],
    lines: Sequence[SaleLine],
    *,
    now: datetime,
    window_days: int,
    policy: AnomalyPolicy = AnomalyPolicy(),
) -> list[Anomaly]:
    """Run every check for one store and window.

    Args:
        items: All stocked items of the store
        lines: Fulfilled sale lines covering at least the window
        now: End of the window
        window_days: Window length (already clamped by caller)
        policy: Thresholds

    Returns:
        Anomalies sorted high, medium, low; ties keep check order
        (demand shifts, stock mismatches, dead stock)

    """
    by_id = {item.id: item for item in items}
    since = window_start(now, window_days)

    window_aggregates = aggregate_sales(lines, since=since, until=now)
    window_totals = {
        key: agg.total_quantity
        for key, agg in sorted(
            window_aggregates.items(), key=lambda kv: (-kv[1].total_quantity, kv[0])
        )
    }
    trailing_totals = total_quantity(
        lines, since=window_start(now, policy.trailing_days), until=now
    )

    anomalies: list[Anomaly] = []
    anomalies.extend(
        detect_demand_shifts(by_id, window_totals, trailing_totals, window_days, policy)
    )
    anomalies.extend(detect_stock_mismatches(items))
    anomalies.extend(detect_dead_stock(items, window_aggregates, window_days, policy))

    return rank_anomalies(anomalies)
