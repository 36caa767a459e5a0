"""Domain layer - pure business models with no external dependencies."""

from cartera.domain.models import (
    Transaction,
    FxQuote,
    FxRateUsed,
    LedgerState,
    LedgerResult,
    CashflowScheduleEntry,
    IncomeEvent,
    CacheEntry,
    TransactionKind,
    Currency,
    FxSource,
    DataQualityFlag,
)

__all__ = [
    "Transaction",
    "FxQuote",
    "FxRateUsed",
    "LedgerState",
    "LedgerResult",
    "CashflowScheduleEntry",
    "IncomeEvent",
    "CacheEntry",
    "TransactionKind",
    "Currency",
    "FxSource",
    "DataQualityFlag",
]
