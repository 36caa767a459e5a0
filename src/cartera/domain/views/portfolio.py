"""View models for engine outputs."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Generic, Optional, TypeVar

from cartera.domain.models.enums import CacheState, Currency, SummaryStatus
from cartera.domain.models.fx import FxRateUsed

T = TypeVar("T")


@dataclass(frozen=True)
class MarketQuote:
    """Latest market price for an instrument, in its quote currency."""

    instrument_id: str
    price: Decimal
    currency: Currency
    as_of: Optional[datetime] = None


@dataclass(frozen=True)
class Valuation:
    """Unrealized/realized performance of one holding, in USD."""

    current_value_usd: Decimal
    unrealized_gain_usd: Decimal
    unrealized_gain_pct: Decimal
    realized_gain_usd: Decimal
    cost_basis_usd: Decimal
    income_received_usd: Decimal = field(default_factory=lambda: Decimal("0"))
    consolidated_gain_usd: Decimal = field(default_factory=lambda: Decimal("0"))
    consolidated_gain_pct: Decimal = field(default_factory=lambda: Decimal("0"))
    fx_fallback_used: bool = False


@dataclass(frozen=True)
class CashflowLine:
    """One projected schedule event scaled by the quantity held."""

    date: date
    rent_usd: Decimal
    amortization_usd: Decimal
    is_past: bool
    fx_rate_used: FxRateUsed

    @property
    def total_usd(self) -> Decimal:
        """Coupon plus amortization for this event."""
        return self.rent_usd + self.amortization_usd


@dataclass(frozen=True)
class CashflowProjection:
    """Projected payments up to maturity and the resulting term yield."""

    lines: tuple[CashflowLine, ...]
    total_rent_usd: Decimal
    total_amortization_usd: Decimal
    total_at_maturity_usd: Decimal
    # Payments on or after as_of; term yield is built from this, not the listed total
    future_total_usd: Decimal
    income_received_usd: Decimal
    cost_basis_usd: Decimal
    term_yield_usd: Decimal
    term_yield_pct: Decimal
    maturity_date: Optional[date] = None


@dataclass(frozen=True)
class CashflowGroup:
    """Cashflow lines aggregated by calendar period."""

    key: str
    rent_usd: Decimal
    amortization_usd: Decimal
    payments: int
    is_past: bool

    @property
    def total_usd(self) -> Decimal:
        """Coupon plus amortization for this period."""
        return self.rent_usd + self.amortization_usd


@dataclass(frozen=True)
class CacheLookup:
    """Result of a synchronous cache read."""

    value: Any
    is_cached: bool
    age_hours: Optional[float]
    state: CacheState


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    """A value obtained through the cache, with freshness metadata."""

    key: str
    value: T
    is_cached: bool
    age_hours: Optional[float] = None
    fetched_on: Optional[date] = None
    is_stale: bool = False


@dataclass(frozen=True)
class CacheMetadata:
    """Freshness metadata surfaced next to computed figures."""

    key: str
    is_cached: bool
    age_hours: Optional[float] = None
    fetched_on: Optional[date] = None
    is_stale: bool = False

    @classmethod
    def from_result(cls, result: CacheResult) -> "CacheMetadata":
        return cls(
            key=result.key,
            is_cached=result.is_cached,
            age_hours=result.age_hours,
            fetched_on=result.fetched_on,
            is_stale=result.is_stale,
        )


@dataclass(frozen=True)
class InstrumentSummary:
    """Everything the presentation layer shows for one instrument."""

    instrument_id: str
    status: SummaryStatus
    quantity_held: Decimal = field(default_factory=lambda: Decimal("0"))
    weighted_average_cost_usd: Decimal = field(default_factory=lambda: Decimal("0"))
    average_sell_price_usd: Decimal = field(default_factory=lambda: Decimal("0"))
    valuation: Optional[Valuation] = None
    term_projection: Optional[CashflowProjection] = None
    transaction_count: int = 0
    degraded_count: int = 0
    cache: tuple[CacheMetadata, ...] = ()
    message: Optional[str] = None
