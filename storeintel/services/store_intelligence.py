"""Store intelligence service facade.

Loads one store's stock ledger and fulfilled sales, runs the pure domain
pipeline and returns typed reports. Every operation is read-only and
request-scoped: nothing is cached and nothing is written back.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storeintel.core.config import Settings, get_settings
from storeintel.core.errors import DataSourceError, NotFound, StoreIntelligenceError
from storeintel.core.metrics import (
    anomalies_detected_total,
    data_source_errors_total,
    intelligence_duration_seconds,
    intelligence_requests_total,
    reorder_suggestions_total,
)
from storeintel.db.models import Store
from storeintel.db.queries import (
    get_store,
    load_recent_stock_changes,
    load_sale_lines,
    load_stocked_items,
)
from storeintel.domain.intelligence.aggregation import aggregate_sales, window_start
from storeintel.domain.intelligence.anomalies import AnomalyPolicy, detect_anomalies
from storeintel.domain.intelligence.demand import estimate_store_demand
from storeintel.domain.intelligence.params import clamp_param
from storeintel.domain.intelligence.ranking import rank_forecast, severity_counts
from storeintel.domain.intelligence.reorder import ReorderAdvice, ReorderPolicy, advise_reorders
from storeintel.domain.intelligence.stock import summarize_stock
from storeintel.domain.intelligence.types import (
    Anomaly,
    DemandEstimate,
    Severity,
    StockStatusCounts,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ForecastReport:
    store_id: str
    period_days: int
    estimates: list[DemandEstimate]


@dataclass(frozen=True)
class ReorderReport:
    store_id: str
    threshold_days: int
    demand_window_days: int
    advice: ReorderAdvice


@dataclass(frozen=True)
class AnomalyReport:
    store_id: str
    period_days: int
    anomalies: list[Anomaly]
    counts: dict[Severity, int]

    @property
    def high_count(self) -> int:
        return self.counts[Severity.HIGH]


@dataclass(frozen=True)
class StockSummaryReport:
    store_id: str
    store_name: str
    counts: StockStatusCounts
    recent_changes: list[dict[str, Any]]


@dataclass(frozen=True)
class StoreOverview:
    """Three analyses for one store; a failed section holds its error."""

    store_id: str
    forecast: ForecastReport | StoreIntelligenceError
    reorder: ReorderReport | StoreIntelligenceError
    anomalies: AnomalyReport | StoreIntelligenceError

    @property
    def complete(self) -> bool:
        return not any(
            isinstance(section, StoreIntelligenceError)
            for section in (self.forecast, self.reorder, self.anomalies)
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _utc_now(now: datetime | None) -> datetime:
    """Naive UTC timestamp matching how order timestamps are stored."""
    if now is None:
        return datetime.now(timezone.utc).replace(tzinfo=None)
    if now.tzinfo is not None:
        return now.astimezone(timezone.utc).replace(tzinfo=None)
    return now


def _reorder_policy(settings: Settings) -> ReorderPolicy:
    return ReorderPolicy(
        horizon_days=settings.reorder_horizon_days,
        critical_days=settings.reorder_critical_days,
        warning_days=settings.reorder_warning_days,
    )


def _anomaly_policy(settings: Settings) -> AnomalyPolicy:
    return AnomalyPolicy(
        trailing_days=settings.anomaly_trailing_days,
        noise_floor=settings.anomaly_noise_floor,
        spike_ratio=settings.anomaly_spike_ratio,
        spike_high_ratio=settings.anomaly_spike_high_ratio,
        drop_ratio=settings.anomaly_drop_ratio,
        drop_high_ratio=settings.anomaly_drop_high_ratio,
        dead_stock_high_units=settings.dead_stock_high_units,
        dead_stock_medium_units=settings.dead_stock_medium_units,
    )


@contextmanager
def _tracked(operation: str, store_id: str) -> Iterator[None]:
    """Time, count and log one operation; translate driver errors."""
    start = time.perf_counter()
    status = "success"
    try:
        yield
    except SQLAlchemyError as e:
        status = DataSourceError.code
        data_source_errors_total.labels(operation=operation).inc()
        logger.error(
            "data_source_failure",
            extra={"operation": operation, "store_id": store_id, "error": str(e)},
            exc_info=True,
        )
        raise DataSourceError(f"Failed to read data for store {store_id}") from e
    except StoreIntelligenceError as e:
        status = e.code
        raise
    except Exception:
        status = "error"
        raise
    finally:
        duration = time.perf_counter() - start
        intelligence_requests_total.labels(operation=operation, status=status).inc()
        intelligence_duration_seconds.labels(operation=operation).observe(duration)
        logger.info(
            "intelligence_operation",
            extra={
                "operation": operation,
                "store_id": store_id,
                "status": status,
                "duration_ms": round(duration * 1000, 2),
            },
        )


def _require_store(db: Session, store_id: str) -> Store:
    store = get_store(db, store_id)
    if store is None:
        raise NotFound(f"Store {store_id} not found")
    return store


def _ensure_store(db: Session, store_id: str) -> None:
    with _tracked("store_lookup", store_id):
        _require_store(db, store_id)


def _compute_demand(db: Session, store_id: str, days: int, now: datetime) -> list[DemandEstimate]:
    """Shared base of forecast and reorder advice: aggregate, estimate, rank."""
    items = {item.id: item for item in load_stocked_items(db, store_id)}
    since = window_start(now, days)
    lines = load_sale_lines(db, store_id, since, now)

    aggregates = aggregate_sales(lines, since=since, until=now)
    return rank_forecast(estimate_store_demand(items, aggregates.values()))


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def demand_forecast(
    db: Session,
    store_id: str,
    days: Any = None,
    *,
    now: datetime | None = None,
) -> ForecastReport:
    """Demand estimate per item sold in the window, most urgent runway first.

    Args:
        db: Database session
        store_id: Store to analyse (authorization is the caller's job)
        days: Sales window; clamped to the configured range
        now: End of the window (default: current UTC time)

    Raises:
        NotFound: Unknown store
        DataSourceError: Read failed

    """
    settings = get_settings()
    period_days = clamp_param(
        days, settings.forecast_default_days, settings.forecast_min_days, settings.forecast_max_days
    )
    now = _utc_now(now)

    with _tracked("demand_forecast", store_id):
        _require_store(db, store_id)
        estimates = _compute_demand(db, store_id, period_days, now)

    return ForecastReport(store_id=store_id, period_days=period_days, estimates=estimates)


def reorder_suggestions(
    db: Session,
    store_id: str,
    threshold_days: Any = None,
    *,
    now: datetime | None = None,
) -> ReorderReport:
    """Items whose runway falls within the threshold, with a proposed quantity.

    Demand is always measured over the configured reorder demand window so the
    threshold only decides which items are listed, not how much to order.
    """
    settings = get_settings()
    threshold = clamp_param(
        threshold_days,
        settings.reorder_default_threshold_days,
        settings.reorder_min_threshold_days,
        settings.reorder_max_threshold_days,
    )
    now = _utc_now(now)

    with _tracked("reorder_suggestions", store_id):
        _require_store(db, store_id)
        estimates = _compute_demand(db, store_id, settings.reorder_demand_window_days, now)

    advice = advise_reorders(estimates, threshold, _reorder_policy(settings))
    for suggestion in advice.suggestions:
        reorder_suggestions_total.labels(urgency=suggestion.urgency.value).inc()

    return ReorderReport(
        store_id=store_id,
        threshold_days=threshold,
        demand_window_days=settings.reorder_demand_window_days,
        advice=advice,
    )


def anomaly_scan(
    db: Session,
    store_id: str,
    days: Any = None,
    *,
    now: datetime | None = None,
) -> AnomalyReport:
    """Demand shifts, stock ledger mismatches and dead stock for one store.

    Stock counters are read as a point-in-time snapshot while the order path
    keeps mutating them; drift between the two shows up as stock mismatches.
    """
    settings = get_settings()
    period_days = clamp_param(
        days, settings.anomaly_default_days, settings.anomaly_min_days, settings.anomaly_max_days
    )
    policy = _anomaly_policy(settings)
    now = _utc_now(now)

    with _tracked("anomaly_scan", store_id):
        _require_store(db, store_id)
        items = load_stocked_items(db, store_id)
        lookback = max(period_days, policy.trailing_days)
        lines = load_sale_lines(db, store_id, window_start(now, lookback), now)

    anomalies = detect_anomalies(items, lines, now=now, window_days=period_days, policy=policy)
    for anomaly in anomalies:
        anomalies_detected_total.labels(
            type=anomaly.type.value, severity=anomaly.severity.value
        ).inc()

    if anomalies:
        logger.info(
            "anomalies_detected",
            extra={"store_id": store_id, "count": len(anomalies), "period_days": period_days},
        )

    return AnomalyReport(
        store_id=store_id,
        period_days=period_days,
        anomalies=anomalies,
        counts=severity_counts(anomalies),
    )


def stock_summary(db: Session, store_id: str) -> StockSummaryReport:
    """Out-of-stock / low / in-stock counts plus the latest ledger changes."""
    settings = get_settings()

    with _tracked("stock_summary", store_id):
        store = _require_store(db, store_id)
        items = load_stocked_items(db, store_id)
        recent = load_recent_stock_changes(db, store_id, settings.stock_recent_changes_limit)

    recent_changes = [
        {
            "store_product_id": row.id,
            "product_name": (
                f"{row.product_name} - {row.variant_name}" if row.variant_name else row.product_name
            ),
            "stock": row.stock,
            "reserved_stock": row.reserved_stock,
            "available_stock": row.stock - row.reserved_stock,
            "updated_at": row.updated_at,
        }
        for row in recent
    ]

    return StockSummaryReport(
        store_id=store_id,
        store_name=store.name,
        counts=summarize_stock(items, settings.low_stock_threshold),
        recent_changes=recent_changes,
    )


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


async def run_bounded(
    fn: Callable[..., T],
    *args: Any,
    timeout: float | None = None,
    operation: str = "unknown",
    **kwargs: Any,
) -> T:
    """Run a blocking operation in a worker thread under a timeout.

    The worker is not interrupted on timeout; its result is discarded. That is
    safe because every operation here is read-only.

    Raises:
        DataSourceError: The call did not finish within ``timeout`` seconds

    """
    if timeout is None:
        timeout = get_settings().data_source_timeout_seconds

    try:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args, **kwargs), timeout)
    except asyncio.TimeoutError as e:
        data_source_errors_total.labels(operation=operation).inc()
        logger.warning("data_source_timeout", extra={"operation": operation, "timeout": timeout})
        raise DataSourceError(f"{operation} timed out after {timeout:g}s") from e


def _with_session(session_factory: Callable[[], Session], fn: Callable[..., T]) -> Callable[..., T]:
    """Give each concurrent analysis its own session; sessions are not thread-safe."""

    def call(*args: Any, **kwargs: Any) -> T:
        with session_factory() as db:
            return fn(db, *args, **kwargs)

    return call


async def run_in_session(
    session_factory: Callable[[], Session],
    fn: Callable[..., T],
    *args: Any,
    timeout: float | None = None,
    operation: str = "unknown",
    **kwargs: Any,
) -> T:
    """``run_bounded`` with a session opened and closed by the worker itself.

    On timeout the abandoned worker keeps the only reference to its session,
    so the caller never closes a session another thread is still reading.
    """
    return await run_bounded(
        _with_session(session_factory, fn),
        *args,
        timeout=timeout,
        operation=operation,
        **kwargs,
    )


async def store_overview(
    session_factory: Callable[[], Session],
    store_id: str,
    *,
    days: Any = None,
    threshold_days: Any = None,
    now: datetime | None = None,
    timeout: float | None = None,
) -> StoreOverview:
    """Compute forecast, reorder advice and anomaly scan concurrently.

    The three analyses are independent; results are assembled once all have
    finished. An engine error in one section is kept in that section and does
    not fail the others. An unknown store fails the whole overview.
    """
    now = _utc_now(now)

    await run_bounded(
        _with_session(session_factory, _ensure_store),
        store_id,
        timeout=timeout,
        operation="store_lookup",
    )

    results = await asyncio.gather(
        run_bounded(
            _with_session(session_factory, demand_forecast),
            store_id,
            days,
            now=now,
            timeout=timeout,
            operation="demand_forecast",
        ),
        run_bounded(
            _with_session(session_factory, reorder_suggestions),
            store_id,
            threshold_days,
            now=now,
            timeout=timeout,
            operation="reorder_suggestions",
        ),
        run_bounded(
            _with_session(session_factory, anomaly_scan),
            store_id,
            days,
            now=now,
            timeout=timeout,
            operation="anomaly_scan",
        ),
        return_exceptions=True,
    )

    for result in results:
        if isinstance(result, BaseException) and not isinstance(result, StoreIntelligenceError):
            raise result

    forecast, reorder, anomalies = results
    return StoreOverview(store_id=store_id, forecast=forecast, reorder=reorder, anomalies=anomalies)
