"""Weighted-average cost ledger replay."""

import logging
from decimal import Decimal
from typing import Iterable

from cartera.core.numbers import ZERO, safe_divide
from cartera.domain.models import LedgerResult, LedgerSnapshot, LedgerState, Transaction

logger = logging.getLogger(__name__)


def clamp_sell_quantity(requested: Decimal, held: Decimal) -> Decimal:
    """
    Return the quantity a disposal may actually remove.

    Selling more than is held liquidates the position instead of driving
    it negative. Never returns a negative value.
    """
    if held <= ZERO or requested <= ZERO:
        return ZERO
    return min(requested, held)


class HoldingsLedger:
    """
    Replays normalized transactions for one instrument.

    Weighted-average cost method: buys blend into the average, sales remove
    cost at the current average and leave it unchanged. The replay is a
    strict left-to-right fold and never mutates its inputs.
    """

    def replay(
        self,
        transactions: Iterable[Transaction],
        with_timeline: bool = False,
    ) -> LedgerResult:
        """
        Replay transactions in ascending date order.

        Same-day transactions keep their input order (stable sort).
        Transactions for more than one instrument are rejected.
        """
        ordered = sorted(transactions, key=lambda t: t.date)
        instruments = {t.instrument_id for t in ordered}
        if len(instruments) > 1:
            raise ValueError(f"Replay expects one instrument, got {sorted(instruments)}")
        instrument_id = next(iter(instruments), "")

        state = LedgerState()
        timeline: list[LedgerSnapshot] = []

        for transaction in ordered:
            self.apply(state, transaction)
            if with_timeline:
                timeline.append(
                    LedgerSnapshot(date=transaction.date, transaction=transaction, state=state.copy())
                )

        return LedgerResult(instrument_id=instrument_id, state=state, timeline=tuple(timeline))

    def apply(self, state: LedgerState, transaction: Transaction) -> None:
        """Advance state by one transaction."""
        if transaction.is_acquisition:
            self._apply_acquisition(state, transaction)
        elif transaction.is_disposal:
            self._apply_disposal(state, transaction)
        else:
            raise ValueError(f"Cannot replay transaction of kind {transaction.kind}")
        state.last_date = transaction.date

    def _apply_acquisition(self, state: LedgerState, transaction: Transaction) -> None:
        new_cost = state.consolidated_cost_basis_usd + transaction.total_amount_usd + transaction.fees_usd
        state.quantity_held += transaction.quantity
        state.weighted_average_cost_usd = safe_divide(new_cost, state.quantity_held)
        state.consolidated_cost_basis_usd = new_cost
        state.total_quantity_bought += transaction.quantity

    def _apply_disposal(self, state: LedgerState, transaction: Transaction) -> None:
        sell_qty = clamp_sell_quantity(transaction.quantity, state.quantity_held)
        if sell_qty < transaction.quantity:
            state.clamped_sell_count += 1
            logger.warning(
                f"{transaction.instrument_id}: {transaction.kind.value} of {transaction.quantity} "
                f"on {transaction.date} exceeds held {state.quantity_held}; clamped to {sell_qty}"
            )

        cost_removed = sell_qty * state.weighted_average_cost_usd
        state.realized_gain_usd += (transaction.total_amount_usd - transaction.fees_usd) - cost_removed
        state.quantity_held -= sell_qty
        state.consolidated_cost_basis_usd -= cost_removed

        if state.quantity_held == ZERO:
            # Rounding residue must not survive a full liquidation
            state.consolidated_cost_basis_usd = ZERO

        state.total_quantity_sold += transaction.quantity
        state.sold_value_usd += transaction.unit_price_usd * transaction.quantity
