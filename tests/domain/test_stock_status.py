"""Tests for stock status classification."""

from __future__ import annotations

from storeintel.domain.intelligence.stock import (
    IN_STOCK,
    LOW_STOCK,
    OUT_OF_STOCK,
    classify_stock,
    summarize_stock,
)
from storeintel.domain.intelligence.types import StockedItem


def item(item_id: str, stock: int, reserved: int = 0, active: bool = True) -> StockedItem:
    return StockedItem(
        id=item_id,
        product_name=item_id,
        variant_name="",
        image_url=None,
        stock=stock,
        reserved_stock=reserved,
        is_active=active,
    )


def test_classify_stock():
    assert classify_stock(-3) == OUT_OF_STOCK
    assert classify_stock(0) == OUT_OF_STOCK
    assert classify_stock(1) == LOW_STOCK
    assert classify_stock(5) == LOW_STOCK
    assert classify_stock(6) == IN_STOCK
    assert classify_stock(6, low_threshold=10) == LOW_STOCK


def test_summary_counts_every_item_by_available_stock():
    counts = summarize_stock(
        [
            item("a", 10),
            item("b", 10, reserved=8),  # 2 available
            item("c", 4, reserved=4),
            item("d", 100, active=False),
        ]
    )

    assert counts.total == 4
    assert counts.in_stock == 2
    assert counts.low_stock == 1
    assert counts.out_of_stock == 1
