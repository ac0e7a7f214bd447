"""Stock status classification for store summaries.

NO DATA ACCESS - pure functions only.
"""

from __future__ import annotations

from collections.abc import Iterable

from storeintel.domain.intelligence.types import StockedItem, StockStatusCounts

OUT_OF_STOCK = "out_of_stock"
LOW_STOCK = "low_stock"
IN_STOCK = "in_stock"


def classify_stock(available: int, low_threshold: int = 5) -> str:
    """Bucket an available quantity.

    Examples:
        >>> classify_stock(0)
        'out_of_stock'
        >>> classify_stock(5)
        'low_stock'
        >>> classify_stock(6)
        'in_stock'
    """
    if available <= 0:
        return OUT_OF_STOCK
    if available <= low_threshold:
        return LOW_STOCK
    return IN_STOCK


def summarize_stock(items: Iterable[StockedItem], low_threshold: int = 5) -> StockStatusCounts:
    """Count every stocked item per stock status, active or not."""
    counts = {OUT_OF_STOCK: 0, LOW_STOCK: 0, IN_STOCK: 0}
    total = 0

    for item in items:
        total += 1
        counts[classify_stock(item.available_stock, low_threshold)] += 1

    return StockStatusCounts(
        total=total,
        in_stock=counts[IN_STOCK],
        low_stock=counts[LOW_STOCK],
        out_of_stock=counts[OUT_OF_STOCK],
    )
