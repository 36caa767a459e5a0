"""Holdings ledger state models."""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Optional

from cartera.core.numbers import ZERO, safe_divide
from cartera.domain.models.transaction import Transaction


@dataclass
class LedgerState:
    """
    Running accumulator for one instrument, advanced strictly in date order.

    Owned by a single replay; snapshots are copies.
    """

    quantity_held: Decimal = field(default_factory=lambda: ZERO)
    weighted_average_cost_usd: Decimal = field(default_factory=lambda: ZERO)
    realized_gain_usd: Decimal = field(default_factory=lambda: ZERO)
    consolidated_cost_basis_usd: Decimal = field(default_factory=lambda: ZERO)
    total_quantity_bought: Decimal = field(default_factory=lambda: ZERO)
    total_quantity_sold: Decimal = field(default_factory=lambda: ZERO)
    sold_value_usd: Decimal = field(default_factory=lambda: ZERO)
    clamped_sell_count: int = 0
    last_date: Optional[date] = None

    @property
    def average_sell_price_usd(self) -> Decimal:
        """Quantity-weighted mean unit price of all disposals."""
        return safe_divide(self.sold_value_usd, self.total_quantity_sold)

    def copy(self) -> "LedgerState":
        """Return an independent copy of this state."""
        return replace(self)


@dataclass(frozen=True)
class LedgerSnapshot:
    """State right after one transaction was applied."""

    date: date
    transaction: Transaction
    state: LedgerState


@dataclass(frozen=True)
class LedgerResult:
    """Final state of a replay plus its per-transaction timeline."""

    instrument_id: str
    state: LedgerState
    timeline: tuple[LedgerSnapshot, ...] = ()

    def state_as_of(self, as_of: date) -> LedgerState:
        """
        Return the state after the last transaction dated on or before as_of.

        An empty state is returned when as_of predates the first transaction.
        """
        current = LedgerState()
        for snapshot in self.timeline:
            if snapshot.date > as_of:
                break
            current = snapshot.state
        return current.copy()
