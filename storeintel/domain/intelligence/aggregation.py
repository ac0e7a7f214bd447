"""Sales window aggregation.

Reduces fulfilled order lines into one ``SalesAggregate`` per stocked item.

NO DATA ACCESS - pure functions only. Loading the lines (and filtering them
to fulfilled orders of one store) happens in the services layer.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from storeintel.domain.intelligence.types import SaleLine, SalesAggregate


def window_start(now: datetime, days: int) -> datetime:
    """Start of a trailing window of ``days`` ending at ``now``."""
    return now - timedelta(days=days)


def aggregate_sales(
    lines: Iterable[SaleLine],
    *,
    since: datetime | None = None,
    until: datetime | None = None,
) -> dict[str, SalesAggregate]:
    """Aggregate sale lines per stocked item.

    Args:
        lines: Fulfilled order lines (any order)
        since: Inclusive lower bound on ``created_at`` (None = unbounded)
        until: Inclusive upper bound on ``created_at`` (None = unbounded)

    Returns:
        Mapping of store_product_id to its aggregate. Items without a
        qualifying line in the window are absent.

    """
    totals: dict[str, int] = {}
    orders: dict[str, set[str]] = {}
    days: dict[str, set] = {}
    last_sale: dict[str, datetime] = {}

    for line in lines:
        if since is not None and line.created_at < since:
            continue
        if until is not None and line.created_at > until:
            continue

        key = line.store_product_id
        totals[key] = totals.get(key, 0) + line.quantity
        orders.setdefault(key, set()).add(line.order_id)
        days.setdefault(key, set()).add(line.created_at.date())
        if key not in last_sale or line.created_at > last_sale[key]:
            last_sale[key] = line.created_at

    return {
        key: SalesAggregate(
            store_product_id=key,
            total_quantity=total,
            order_count=len(orders[key]),
            active_days=len(days[key]),
            last_sale_at=last_sale[key],
        )
        for key, total in totals.items()
    }


def total_quantity(lines: Iterable[SaleLine], *, since: datetime, until: datetime) -> dict[str, int]:
    """Units sold per item between ``since`` and ``until`` (both inclusive)."""
    return {
        key: agg.total_quantity
        for key, agg in aggregate_sales(lines, since=since, until=until).items()
    }
