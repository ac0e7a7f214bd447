"""Stock status API endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from storeintel.services.store_intelligence import run_in_session, stock_summary
from storeintel.web.deps import SessionFactory, StoreId
from storeintel.web.schemas import Envelope, StockChangeRow, StockSummary, StockTotals

router = APIRouter(prefix="/api/v1/stock", tags=["Stock"])


@router.get("/summary", response_model=Envelope[StockSummary])
async def get_stock_summary(store_id: StoreId, session_factory: SessionFactory):
    """Out-of-stock, low-stock and in-stock counts plus recently updated items."""
    report = await run_in_session(
        session_factory, stock_summary, store_id, operation="stock_summary"
    )
    counts = report.counts

    return Envelope[StockSummary](
        data=StockSummary(
            store_id=report.store_id,
            store_name=report.store_name,
            totals=StockTotals(
                total_skus=counts.total,
                in_stock=counts.in_stock,
                low_stock=counts.low_stock,
                out_of_stock=counts.out_of_stock,
            ),
            recent_changes=[StockChangeRow(**row) for row in report.recent_changes],
        ),
        meta={"store_id": report.store_id},
    )
