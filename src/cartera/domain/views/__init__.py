"""View models for service outputs."""

from cartera.domain.views.portfolio import (
    MarketQuote,
    Valuation,
    CashflowLine,
    CashflowProjection,
    CashflowGroup,
    CacheLookup,
    CacheResult,
    CacheMetadata,
    InstrumentSummary,
)

__all__ = [
    "MarketQuote",
    "Valuation",
    "CashflowLine",
    "CashflowProjection",
    "CashflowGroup",
    "CacheLookup",
    "CacheResult",
    "CacheMetadata",
    "InstrumentSummary",
]
