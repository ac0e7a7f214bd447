"""Store intelligence API endpoints: demand forecast, reorder advice, anomalies."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from storeintel.core.errors import StoreIntelligenceError
from storeintel.services.store_intelligence import (
    AnomalyReport,
    ForecastReport,
    ReorderReport,
    anomaly_scan,
    demand_forecast,
    reorder_suggestions,
    run_in_session,
    store_overview,
)
from storeintel.web.deps import SessionFactory, StoreId
from storeintel.web.schemas import (
    AnomalyRow,
    DemandRow,
    Envelope,
    ErrorEnvelope,
    ReorderRow,
)

router = APIRouter(prefix="/api/v1/store-intelligence", tags=["Store Intelligence"])


def _forecast_envelope(report: ForecastReport) -> Envelope[list[DemandRow]]:
    rows = [DemandRow.from_estimate(e) for e in report.estimates]
    return Envelope[list[DemandRow]](
        data=rows,
        meta={
            "store_id": report.store_id,
            "period_days": report.period_days,
            "total_products": len(rows),
        },
    )


def _reorder_envelope(report: ReorderReport) -> Envelope[list[ReorderRow]]:
    advice = report.advice
    return Envelope[list[ReorderRow]](
        data=[ReorderRow.from_suggestion(s) for s in advice.suggestions],
        meta={
            "store_id": report.store_id,
            "threshold": report.threshold_days,
            "demand_window_days": report.demand_window_days,
            "critical_count": advice.critical_count,
            "warning_count": advice.warning_count,
            "info_count": advice.info_count,
        },
    )


def _anomaly_envelope(report: AnomalyReport) -> Envelope[list[AnomalyRow]]:
    return Envelope[list[AnomalyRow]](
        data=[AnomalyRow.from_anomaly(a) for a in report.anomalies],
        meta={
            "store_id": report.store_id,
            "period_days": report.period_days,
            "total_anomalies": len(report.anomalies),
            "high_count": report.high_count,
            "severity_counts": {s.value: n for s, n in report.counts.items()},
        },
    )


def _error_envelope(exc: StoreIntelligenceError) -> ErrorEnvelope:
    return ErrorEnvelope(error=exc.code, message=exc.message, retryable=exc.retryable)


@router.get("/demand-forecast", response_model=Envelope[list[DemandRow]])
async def get_demand_forecast(
    store_id: StoreId,
    session_factory: SessionFactory,
    days: str | None = Query(None, description="Sales window in days (default 30, 1-365)"),
):
    """Per-item demand rate and days of stock left.

    Sorted by days of stock left ascending; items without demand (-1) last.
    """
    report = await run_in_session(
        session_factory, demand_forecast, store_id, days, operation="demand_forecast"
    )
    return _forecast_envelope(report)


@router.get("/reorder-suggestions", response_model=Envelope[list[ReorderRow]])
async def get_reorder_suggestions(
    store_id: StoreId,
    session_factory: SessionFactory,
    threshold: str | None = Query(None, description="Runway alert threshold (default 7, 1-60)"),
):
    """Items running out within the threshold, with a two-week reorder quantity."""
    report = await run_in_session(
        session_factory,
        reorder_suggestions,
        store_id,
        threshold,
        operation="reorder_suggestions",
    )
    return _reorder_envelope(report)


@router.get("/anomalies", response_model=Envelope[list[AnomalyRow]])
async def get_anomalies(
    store_id: StoreId,
    session_factory: SessionFactory,
    days: str | None = Query(None, description="Scan window in days (default 30, 7-365)"),
):
    """Demand spikes/drops, stock mismatches and dead stock, high severity first."""
    report = await run_in_session(
        session_factory, anomaly_scan, store_id, days, operation="anomaly_scan"
    )
    return _anomaly_envelope(report)


@router.get("/overview", response_model=Envelope[dict[str, Any]])
async def get_overview(
    store_id: StoreId,
    session_factory: SessionFactory,
    days: str | None = Query(None, description="Window for forecast and anomalies"),
    threshold: str | None = Query(None, description="Runway alert threshold"),
):
    """All three analyses computed concurrently.

    Each section carries its own envelope; a failed section does not fail the
    others.
    """
    overview = await store_overview(
        session_factory, store_id, days=days, threshold_days=threshold
    )

    sections = {
        "forecast": (overview.forecast, _forecast_envelope),
        "reorder": (overview.reorder, _reorder_envelope),
        "anomalies": (overview.anomalies, _anomaly_envelope),
    }
    data = {
        name: (
            _error_envelope(result) if isinstance(result, StoreIntelligenceError) else build(result)
        ).model_dump(mode="json")
        for name, (result, build) in sections.items()
    }

    return Envelope[dict[str, Any]](
        success=overview.complete,
        data=data,
        meta={
            "store_id": store_id,
            "failed_sections": [
                name
                for name, (result, _) in sections.items()
                if isinstance(result, StoreIntelligenceError)
            ],
        },
    )
