"""Demand rate and stock runway calculations.

NO DATA ACCESS - pure functions only.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from storeintel.domain.intelligence.types import (
    UNBOUNDED_RUNWAY,
    DemandEstimate,
    SalesAggregate,
    StockedItem,
)

logger = logging.getLogger(__name__)


def _raw_daily_demand(total_quantity: int, active_days: int) -> float:
    return total_quantity / max(active_days, 1)


def average_daily_demand(total_quantity: int, active_days: int) -> float:
    """Average units sold per active day, rounded to 2 decimals.

    Days without any sale do not dilute the rate. ``active_days`` is floored
    at 1 so an empty aggregate never divides by zero.

    Examples:
        >>> average_daily_demand(70, 7)
        10.0
        >>> average_daily_demand(5, 0)
        5.0
    """
    return round(_raw_daily_demand(total_quantity, active_days), 2)


def runway_days(available_stock: int, avg_daily_demand: float) -> float:
    """Days until available stock runs out at the given rate.

    Negative stock is clamped to 0 (it is reported as a stock mismatch, not
    folded into runway). Zero demand yields ``UNBOUNDED_RUNWAY``.

    Examples:
        >>> runway_days(20, 10.0)
        2.0
        >>> runway_days(-5, 3.0)
        0.0
        >>> runway_days(40, 0.0)
        -1.0
    """
    if avg_daily_demand <= 0:
        return UNBOUNDED_RUNWAY

    return round(max(available_stock, 0) / avg_daily_demand, 1)


def estimate_demand(item: StockedItem, aggregate: SalesAggregate) -> DemandEstimate:
    """Turn a sales aggregate into a demand estimate for one item."""
    raw = _raw_daily_demand(aggregate.total_quantity, aggregate.active_days)

    return DemandEstimate(
        item=item,
        avg_daily_demand=round(raw, 2),
        runway_days=runway_days(item.available_stock, raw),
        total_quantity=aggregate.total_quantity,
        order_count=aggregate.order_count,
        active_days=aggregate.active_days,
        last_sale_at=aggregate.last_sale_at,
    )


def estimate_store_demand(
    items: Mapping[str, StockedItem],
    aggregates: Iterable[SalesAggregate],
) -> list[DemandEstimate]:
    """Estimate demand for every aggregate whose item belongs to the store.

    Result order follows ``aggregates``; ranking is a separate step.
    """
    estimates = []
    for aggregate in aggregates:
        item = items.get(aggregate.store_product_id)
        if item is None:
            logger.debug(
                "aggregate_without_item",
                extra={"store_product_id": aggregate.store_product_id},
            )
            continue
        estimates.append(estimate_demand(item, aggregate))
    return estimates
