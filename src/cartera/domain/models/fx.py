"""FX quote domain models."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from cartera.domain.models.enums import FxSource


@dataclass(frozen=True)
class FxQuote:
    """One daily ARS/USD (MEP-type) rate observation."""

    date: date
    rate: Decimal


@dataclass(frozen=True)
class FxRateUsed:
    """
    The rate applied when converting an amount to USD.

    `quote_date` is the date of the observation actually used, which can be
    earlier than the transaction date when the series has gaps.
    """

    rate: Decimal
    source: FxSource
    quote_date: Optional[date] = None

    @property
    def is_fallback(self) -> bool:
        """Return True if the current rate stood in for a historical one."""
        return self.source == FxSource.FALLBACK_CURRENT

    def to_usd(self, amount: Decimal) -> Decimal:
        """Convert an amount in the original currency to USD."""
        if self.source == FxSource.NATIVE:
            return amount
        return amount / self.rate


NATIVE_USD = FxRateUsed(rate=Decimal("1"), source=FxSource.NATIVE)
