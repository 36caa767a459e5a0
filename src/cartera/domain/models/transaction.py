"""Normalized transaction domain model."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from cartera.domain.models.enums import TransactionKind, Currency, DataQualityFlag
from cartera.domain.models.fx import FxRateUsed


@dataclass(frozen=True)
class Transaction:
    """
    One economic event for one instrument, normalized from a raw feed record.

    - quantity is always positive; kind decides the direction
    - *_usd amounts are derived at normalization time with fx_rate_used
    - immutable; rebuilt on every reconstruction
    """

    instrument_id: str
    kind: TransactionKind
    date: date
    quantity: Decimal
    unit_price: Decimal
    total_amount: Decimal
    fees: Decimal
    original_currency: Currency
    unit_price_usd: Decimal
    total_amount_usd: Decimal
    fees_usd: Decimal
    fx_rate_used: FxRateUsed
    flags: frozenset[DataQualityFlag] = field(default_factory=frozenset)
    descriptor: str = ""

    @property
    def is_acquisition(self) -> bool:
        """Return True if this transaction increases holdings."""
        return self.kind in (TransactionKind.BUY, TransactionKind.SUBSCRIPTION)

    @property
    def is_disposal(self) -> bool:
        """Return True if this transaction decreases holdings."""
        return self.kind in (TransactionKind.SELL, TransactionKind.PARTIAL_REDEMPTION)

    @property
    def is_degraded(self) -> bool:
        """Return True if the price could not be derived from the record."""
        return DataQualityFlag.DEGRADED_PRICE in self.flags

    @property
    def uses_fallback_fx(self) -> bool:
        """Return True if the current rate was used in place of a historical one."""
        return self.fx_rate_used.is_fallback
