"""Per-instrument endpoints."""

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from cartera.api.deps import get_portfolio_engine
from cartera.api.schemas import (
    CashflowGroupResponse,
    CashflowGroupsResponse,
    InstrumentSummaryResponse,
)
from cartera.api.schemas.portfolio import money
from cartera.core.exceptions import NotFoundError
from cartera.services import PortfolioEngine, group_by_month, group_by_year

router = APIRouter(prefix="/instruments", tags=["instruments"])


@router.get("/{instrument_id}", response_model=InstrumentSummaryResponse)
async def get_instrument(
    instrument_id: str,
    as_of: Optional[date] = Query(None, description="Valuation date (default: today)"),
    include_past: bool = Query(False, description="List past schedule entries too"),
    engine: PortfolioEngine = Depends(get_portfolio_engine),
) -> InstrumentSummaryResponse:
    """Holdings, valuation, term projection and cache metadata for one instrument."""
    summary = await engine.reconstruct(instrument_id, as_of, include_past_cashflows=include_past)
    return InstrumentSummaryResponse.from_domain(summary)


@router.get("/{instrument_id}/cashflows", response_model=CashflowGroupsResponse)
async def get_cashflows(
    instrument_id: str,
    group_by: Literal["month", "year"] = Query("month"),
    as_of: Optional[date] = Query(None),
    include_past: bool = Query(False),
    engine: PortfolioEngine = Depends(get_portfolio_engine),
) -> CashflowGroupsResponse:
    """Projected payments grouped by calendar month or year."""
    summary = await engine.reconstruct(instrument_id, as_of, include_past_cashflows=include_past)
    projection = summary.term_projection
    if projection is None:
        raise NotFoundError("Cashflow schedule", summary.instrument_id)

    grouper = group_by_month if group_by == "month" else group_by_year
    return CashflowGroupsResponse(
        instrument_id=summary.instrument_id,
        group_by=group_by,
        groups=[CashflowGroupResponse.from_domain(g) for g in grouper(projection.lines)],
        total_at_maturity_usd=money(projection.total_at_maturity_usd),
        future_total_usd=money(projection.future_total_usd),
        term_yield_usd=money(projection.term_yield_usd),
        term_yield_pct=money(projection.term_yield_pct),
        maturity_date=projection.maturity_date,
    )
