"""Value types flowing through the intelligence pipeline.

All of them are computed views: built fresh per request, frozen once built,
never cached or written back.
"""

from __future__ import annotations

import enum
import hashlib
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Union

# Runway sentinel for items with no demand; sorts last by convention.
UNBOUNDED_RUNWAY = -1.0


class Urgency(str, enum.Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class Severity(str, enum.Enum):
    """Anomaly triage tier. ``rank`` gives the sort position (high first)."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.HIGH: 0, Severity.MEDIUM: 1, Severity.LOW: 2}


class AnomalyType(str, enum.Enum):
    DEMAND_SPIKE = "demand_spike"
    DEMAND_DROP = "demand_drop"
    STOCK_MISMATCH = "stock_mismatch"
    DEAD_STOCK = "dead_stock"


@dataclass(frozen=True)
class StockedItem:
    """One sellable unit: a product variant offered by a specific store."""

    id: str
    product_name: str
    variant_name: str
    image_url: str | None
    stock: int
    reserved_stock: int
    is_active: bool = True

    @property
    def available_stock(self) -> int:
        """On-hand minus reserved. May be negative in an inconsistent ledger."""
        return self.stock - self.reserved_stock


@dataclass(frozen=True)
class SaleLine:
    """A fulfilled order line, the raw input of the aggregator."""

    store_product_id: str
    order_id: str
    quantity: int
    created_at: datetime


@dataclass(frozen=True)
class SalesAggregate:
    store_product_id: str
    total_quantity: int
    order_count: int
    active_days: int
    last_sale_at: datetime


@dataclass(frozen=True)
class DemandEstimate:
    item: StockedItem
    avg_daily_demand: float
    runway_days: float
    total_quantity: int
    order_count: int
    active_days: int
    last_sale_at: datetime

    @property
    def is_unbounded(self) -> bool:
        return self.runway_days == UNBOUNDED_RUNWAY


@dataclass(frozen=True)
class ReorderSuggestion:
    estimate: DemandEstimate
    suggested_qty: int
    urgency: Urgency


# --- Anomaly details -------------------------------------------------------


@dataclass(frozen=True)
class DemandShiftDetails:
    ratio: float
    trailing_avg_daily: float
    window_avg_daily: float
    trailing_days: int
    window_days: int


@dataclass(frozen=True)
class StockMismatchDetails:
    stock: int
    reserved_stock: int
    magnitude: int  # units by which the ledger is out of balance


@dataclass(frozen=True)
class DeadStockDetails:
    available_stock: int
    days_without_sales: int


# --- Anomaly variants --------------------------------------------------------


@dataclass(frozen=True)
class _AnomalyBase:
    type: ClassVar[AnomalyType]

    item: StockedItem
    severity: Severity
    message: str

    @property
    def fingerprint(self) -> str:
        """MD5 of type and item, stable across scans for alert deduplication."""
        return hashlib.md5(f"{self.type.value}:{self.item.id}".encode()).hexdigest()


@dataclass(frozen=True)
class DemandSpike(_AnomalyBase):
    type: ClassVar[AnomalyType] = AnomalyType.DEMAND_SPIKE
    details: DemandShiftDetails


@dataclass(frozen=True)
class DemandDrop(_AnomalyBase):
    type: ClassVar[AnomalyType] = AnomalyType.DEMAND_DROP
    details: DemandShiftDetails


@dataclass(frozen=True)
class StockMismatch(_AnomalyBase):
    type: ClassVar[AnomalyType] = AnomalyType.STOCK_MISMATCH
    details: StockMismatchDetails


@dataclass(frozen=True)
class DeadStock(_AnomalyBase):
    type: ClassVar[AnomalyType] = AnomalyType.DEAD_STOCK
    details: DeadStockDetails


Anomaly = Union[DemandSpike, DemandDrop, StockMismatch, DeadStock]


@dataclass(frozen=True)
class StockStatusCounts:
    total: int = 0
    in_stock: int = 0
    low_stock: int = 0
    out_of_stock: int = 0
