"""Domain models package."""

from cartera.domain.models.enums import (
    TransactionKind,
    Currency,
    FxSource,
    DataQualityFlag,
    IncomeKind,
    CacheState,
    DataClass,
    SummaryStatus,
)
from cartera.domain.models.fx import FxQuote, FxRateUsed, NATIVE_USD
from cartera.domain.models.transaction import Transaction
from cartera.domain.models.ledger import LedgerState, LedgerSnapshot, LedgerResult
from cartera.domain.models.cashflow import CashflowScheduleEntry
from cartera.domain.models.income import IncomeEvent
from cartera.domain.models.cache import CacheEntry

__all__ = [
    "TransactionKind",
    "Currency",
    "FxSource",
    "DataQualityFlag",
    "IncomeKind",
    "CacheState",
    "DataClass",
    "SummaryStatus",
    "FxQuote",
    "FxRateUsed",
    "NATIVE_USD",
    "Transaction",
    "LedgerState",
    "LedgerSnapshot",
    "LedgerResult",
    "CashflowScheduleEntry",
    "IncomeEvent",
    "CacheEntry",
]
