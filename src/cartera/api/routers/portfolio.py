"""Portfolio endpoints."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from cartera.api.deps import get_portfolio_engine
from cartera.api.schemas import InstrumentSummaryResponse, PortfolioResponse
from cartera.core.timezone import today_local
from cartera.services import PortfolioEngine

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


@router.get("", response_model=PortfolioResponse)
async def get_portfolio(
    as_of: Optional[date] = Query(None, description="Valuation date (default: today)"),
    engine: PortfolioEngine = Depends(get_portfolio_engine),
) -> PortfolioResponse:
    """Summaries for every instrument in the transaction history."""
    as_of = as_of or today_local()
    summaries = await engine.reconstruct_portfolio(as_of)
    return PortfolioResponse(
        as_of=as_of,
        instruments=[InstrumentSummaryResponse.from_domain(s) for s in summaries],
    )
