"""Bond cashflow schedule domain model."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from cartera.domain.models.enums import Currency


@dataclass(frozen=True)
class CashflowScheduleEntry:
    """
    One contractual bond event (coupon and/or amortization).

    Per-unit amounts are in the bond's denomination currency.
    """

    date: date
    coupon_rate_pct: Decimal
    amortization_rate_pct: Decimal
    residual_value_pct: Decimal
    coupon_amount_per_unit: Decimal
    amortization_amount_per_unit: Decimal
    currency: Currency = Currency.USD
