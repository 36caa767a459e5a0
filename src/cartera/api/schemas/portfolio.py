"""Pydantic schemas for instrument and portfolio summaries."""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from cartera.domain.views import (
    CacheMetadata,
    CashflowLine,
    CashflowProjection,
    InstrumentSummary,
    Valuation,
)


def money(value: Optional[Decimal]) -> Optional[float]:
    """Round a USD amount or percentage for display."""
    return round(float(value), 2) if value is not None else None


def rate(value: Optional[Decimal]) -> Optional[float]:
    """Round an FX rate or per-unit price for display."""
    return round(float(value), 6) if value is not None else None


class CacheMetadataResponse(BaseModel):
    """Freshness of one input behind a summary."""

    key: str
    is_cached: bool
    age_hours: Optional[float] = None
    fetched_on: Optional[date] = None
    is_stale: bool = False

    @classmethod
    def from_domain(cls, metadata: CacheMetadata) -> "CacheMetadataResponse":
        return cls(
            key=metadata.key,
            is_cached=metadata.is_cached,
            age_hours=round(metadata.age_hours, 2) if metadata.age_hours is not None else None,
            fetched_on=metadata.fetched_on,
            is_stale=metadata.is_stale,
        )


class ValuationResponse(BaseModel):
    """USD performance of a holding."""

    current_value_usd: float
    unrealized_gain_usd: float
    unrealized_gain_pct: float
    realized_gain_usd: float
    cost_basis_usd: float
    income_received_usd: float
    consolidated_gain_usd: float
    consolidated_gain_pct: float
    fx_fallback_used: bool

    @classmethod
    def from_domain(cls, valuation: Valuation) -> "ValuationResponse":
        return cls(
            current_value_usd=money(valuation.current_value_usd),
            unrealized_gain_usd=money(valuation.unrealized_gain_usd),
            unrealized_gain_pct=money(valuation.unrealized_gain_pct),
            realized_gain_usd=money(valuation.realized_gain_usd),
            cost_basis_usd=money(valuation.cost_basis_usd),
            income_received_usd=money(valuation.income_received_usd),
            consolidated_gain_usd=money(valuation.consolidated_gain_usd),
            consolidated_gain_pct=money(valuation.consolidated_gain_pct),
            fx_fallback_used=valuation.fx_fallback_used,
        )


class CashflowLineResponse(BaseModel):
    """One projected payment."""

    payment_date: date
    rent_usd: float
    amortization_usd: float
    total_usd: float
    is_past: bool
    fx_rate: float
    fx_source: str

    @classmethod
    def from_domain(cls, line: CashflowLine) -> "CashflowLineResponse":
        return cls(
            payment_date=line.date,
            rent_usd=money(line.rent_usd),
            amortization_usd=money(line.amortization_usd),
            total_usd=money(line.total_usd),
            is_past=line.is_past,
            fx_rate=rate(line.fx_rate_used.rate),
            fx_source=line.fx_rate_used.source.value,
        )


class ProjectionResponse(BaseModel):
    """Payments to maturity and term yield."""

    lines: list[CashflowLineResponse]
    total_rent_usd: float
    total_amortization_usd: float
    total_at_maturity_usd: float
    future_total_usd: float
    income_received_usd: float
    cost_basis_usd: float
    term_yield_usd: float
    term_yield_pct: float
    maturity_date: Optional[date] = None

    @classmethod
    def from_domain(cls, projection: CashflowProjection) -> "ProjectionResponse":
        return cls(
            lines=[CashflowLineResponse.from_domain(line) for line in projection.lines],
            total_rent_usd=money(projection.total_rent_usd),
            total_amortization_usd=money(projection.total_amortization_usd),
            total_at_maturity_usd=money(projection.total_at_maturity_usd),
            future_total_usd=money(projection.future_total_usd),
            income_received_usd=money(projection.income_received_usd),
            cost_basis_usd=money(projection.cost_basis_usd),
            term_yield_usd=money(projection.term_yield_usd),
            term_yield_pct=money(projection.term_yield_pct),
            maturity_date=projection.maturity_date,
        )


class InstrumentSummaryResponse(BaseModel):
    """Everything shown for one instrument."""

    instrument_id: str
    status: str
    quantity_held: float
    weighted_average_cost_usd: float
    average_sell_price_usd: float
    valuation: Optional[ValuationResponse] = None
    term_projection: Optional[ProjectionResponse] = None
    transaction_count: int = 0
    degraded_count: int = 0
    cache: list[CacheMetadataResponse] = []
    message: Optional[str] = None

    @classmethod
    def from_domain(cls, summary: InstrumentSummary) -> "InstrumentSummaryResponse":
        return cls(
            instrument_id=summary.instrument_id,
            status=summary.status.value,
            quantity_held=rate(summary.quantity_held),
            weighted_average_cost_usd=rate(summary.weighted_average_cost_usd),
            average_sell_price_usd=rate(summary.average_sell_price_usd),
            valuation=ValuationResponse.from_domain(summary.valuation) if summary.valuation else None,
            term_projection=(
                ProjectionResponse.from_domain(summary.term_projection)
                if summary.term_projection
                else None
            ),
            transaction_count=summary.transaction_count,
            degraded_count=summary.degraded_count,
            cache=[CacheMetadataResponse.from_domain(m) for m in summary.cache],
            message=summary.message,
        )


class PortfolioResponse(BaseModel):
    """Summaries for every instrument in the history."""

    as_of: date
    instruments: list[InstrumentSummaryResponse]
