"""Enumerations for domain models."""

from enum import Enum


class TransactionKind(str, Enum):
    """Economic event types replayed by the holdings ledger."""

    BUY = "BUY"
    SELL = "SELL"
    SUBSCRIPTION = "SUBSCRIPTION"  # Primary auction (licitación) or fund subscription
    PARTIAL_REDEMPTION = "PARTIAL_REDEMPTION"
    UNKNOWN = "UNKNOWN"  # Classifier output only; never replayed


class Currency(str, Enum):
    """Currencies a transaction can be denominated in."""

    ARS = "ARS"
    USD = "USD"


class FxSource(str, Enum):
    """Where the ARS/USD rate applied to an amount came from."""

    NATIVE = "NATIVE"  # Amount already in USD
    HISTORICAL = "HISTORICAL"
    CURRENT = "CURRENT"  # Prevailing rate for dates with no observation yet
    FALLBACK_CURRENT = "FALLBACK_CURRENT"


class DataQualityFlag(str, Enum):
    """Data-quality markers attached to normalized records."""

    DEGRADED_PRICE = "DEGRADED_PRICE"
    MARKET_PRICE_SUBSTITUTED = "MARKET_PRICE_SUBSTITUTED"
    FX_FALLBACK = "FX_FALLBACK"
    DEFAULTED_CLASSIFICATION = "DEFAULTED_CLASSIFICATION"


class IncomeKind(str, Enum):
    """Kinds of income received on a holding."""

    DIVIDEND = "DIVIDEND"
    COUPON = "COUPON"


class CacheState(str, Enum):
    """Lifecycle state of a cache key."""

    EMPTY = "EMPTY"
    FRESH = "FRESH"
    STALE = "STALE"


class DataClass(str, Enum):
    """Classes of cached data, each with its own TTL."""

    TOKEN = "TOKEN"
    REFERENCE = "REFERENCE"
    QUOTE = "QUOTE"
    HISTORY = "HISTORY"


class SummaryStatus(str, Enum):
    """Outcome of reconstructing one instrument."""

    OK = "OK"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    ERROR = "ERROR"
