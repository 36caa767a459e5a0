"""Services package."""

from cartera.services.fx_resolver import FxResolver, build_fx_series, parse_current_rate
from cartera.services.operation_classifier import (
    classify_operation,
    normalize_currency,
    normalize_instrument_id,
)
from cartera.services.transaction_normalizer import TransactionNormalizer
from cartera.services.holdings_ledger import HoldingsLedger, clamp_sell_quantity
from cartera.services.valuation_engine import ValuationEngine
from cartera.services.cashflow_projector import (
    CashflowProjector,
    group_by_month,
    group_by_year,
    parse_schedule,
)
from cartera.services.income_ledger import IncomeLedger
from cartera.services.cache_coordinator import CacheCoordinator, CacheKeys, TtlPolicy
from cartera.services.market_data_service import MarketDataService
from cartera.services.portfolio_engine import PortfolioEngine

__all__ = [
    "FxResolver",
    "build_fx_series",
    "parse_current_rate",
    "classify_operation",
    "normalize_currency",
    "normalize_instrument_id",
    "TransactionNormalizer",
    "HoldingsLedger",
    "clamp_sell_quantity",
    "ValuationEngine",
    "CashflowProjector",
    "group_by_month",
    "group_by_year",
    "parse_schedule",
    "IncomeLedger",
    "CacheCoordinator",
    "CacheKeys",
    "TtlPolicy",
    "MarketDataService",
    "PortfolioEngine",
]
