"""Income event domain model."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from cartera.domain.models.enums import Currency, IncomeKind


@dataclass(frozen=True)
class IncomeEvent:
    """Dividend or coupon actually received on a holding, net of withholdings."""

    instrument_id: str
    date: date
    kind: IncomeKind
    gross_usd: Decimal
    withheld_usd: Decimal
    currency: Currency
    is_accrued_interest: bool = False
    # Some amount could not be converted to USD and was left out
    fx_unavailable: bool = False

    @property
    def net_usd(self) -> Decimal:
        """Return income received after withholding taxes."""
        return self.gross_usd - self.withheld_usd
