"""Pydantic schemas for API responses.

Every endpoint answers with the same envelope: ``success``, ``data`` and a
``meta`` object echoing the normalized parameters plus summary counts.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from storeintel.domain.intelligence.types import Anomaly, DemandEstimate, ReorderSuggestion

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    """Successful response wrapper."""

    success: bool = True
    data: DataT
    meta: dict[str, Any] = Field(default_factory=dict)


class ErrorEnvelope(BaseModel):
    """Failed response wrapper."""

    success: bool = False
    error: str = Field(..., description="Stable error code")
    message: str
    retryable: bool = False


# Demand schemas
class DemandRow(BaseModel):
    """Demand estimate for one stocked item."""

    store_product_id: str
    product_name: str
    variant_name: str
    image_url: str | None = None
    current_stock: int = Field(..., description="Available stock (on-hand minus reserved)")
    avg_daily_demand: float
    days_of_stock_left: float = Field(..., description="Runway in days; -1 when no demand")
    total_quantity_sold: int
    total_orders: int
    active_days: int
    last_order_date: datetime

    @classmethod
    def from_estimate(cls, estimate: DemandEstimate) -> DemandRow:
        item = estimate.item
        return cls(
            store_product_id=item.id,
            product_name=item.product_name,
            variant_name=item.variant_name,
            image_url=item.image_url,
            current_stock=item.available_stock,
            avg_daily_demand=estimate.avg_daily_demand,
            days_of_stock_left=estimate.runway_days,
            total_quantity_sold=estimate.total_quantity,
            total_orders=estimate.order_count,
            active_days=estimate.active_days,
            last_order_date=estimate.last_sale_at,
        )


# Reorder schemas
class ReorderRow(DemandRow):
    """Demand estimate annotated with replenishment advice."""

    suggested_reorder_qty: int
    urgency: str = Field(..., description="critical | warning | info")

    @classmethod
    def from_suggestion(cls, suggestion: ReorderSuggestion) -> ReorderRow:
        base = DemandRow.from_estimate(suggestion.estimate)
        return cls(
            **base.model_dump(),
            suggested_reorder_qty=suggestion.suggested_qty,
            urgency=suggestion.urgency.value,
        )


# Anomaly schemas
class AnomalyRow(BaseModel):
    """One flagged anomaly; ``details`` shape depends on ``type``."""

    type: str = Field(..., description="demand_spike | demand_drop | stock_mismatch | dead_stock")
    severity: str = Field(..., description="high | medium | low")
    store_product_id: str
    product_name: str
    variant_name: str
    message: str
    details: dict[str, Any]
    fingerprint: str = Field(..., description="Stable id for alert deduplication")

    @classmethod
    def from_anomaly(cls, anomaly: Anomaly) -> AnomalyRow:
        return cls(
            type=anomaly.type.value,
            severity=anomaly.severity.value,
            store_product_id=anomaly.item.id,
            product_name=anomaly.item.product_name,
            variant_name=anomaly.item.variant_name,
            message=anomaly.message,
            details=asdict(anomaly.details),
            fingerprint=anomaly.fingerprint,
        )


# Stock schemas
class StockTotals(BaseModel):
    total_skus: int
    in_stock: int
    low_stock: int
    out_of_stock: int


class StockChangeRow(BaseModel):
    store_product_id: str
    product_name: str
    stock: int
    reserved_stock: int
    available_stock: int
    updated_at: datetime | None = None


class StockSummary(BaseModel):
    store_id: str
    store_name: str
    totals: StockTotals
    recent_changes: list[StockChangeRow]
