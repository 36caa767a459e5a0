"""Pydantic schemas for grouped cashflows."""

from datetime import date
from typing import Optional

from pydantic import BaseModel

from cartera.api.schemas.portfolio import money
from cartera.domain.views import CashflowGroup


class CashflowGroupResponse(BaseModel):
    """Payments aggregated per month or year."""

    period: str
    rent_usd: float
    amortization_usd: float
    total_usd: float
    payments: int
    is_past: bool

    @classmethod
    def from_domain(cls, group: CashflowGroup) -> "CashflowGroupResponse":
        return cls(
            period=group.key,
            rent_usd=money(group.rent_usd),
            amortization_usd=money(group.amortization_usd),
            total_usd=money(group.total_usd),
            payments=group.payments,
            is_past=group.is_past,
        )


class CashflowGroupsResponse(BaseModel):
    """Response for GET /instruments/{instrument_id}/cashflows."""

    instrument_id: str
    group_by: str
    groups: list[CashflowGroupResponse]
    total_at_maturity_usd: float
    future_total_usd: float
    term_yield_usd: float
    term_yield_pct: float
    maturity_date: Optional[date] = None
