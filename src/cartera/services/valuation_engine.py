"""Valuation of ledger state against a market price."""

from decimal import Decimal

from cartera.core.numbers import ZERO, percent_of
from cartera.domain.models import LedgerState
from cartera.domain.views import Valuation


class ValuationEngine:
    """Combines ledger state with a live price into performance metrics."""

    def value(
        self,
        state: LedgerState,
        price_usd: Decimal,
        income_received_usd: Decimal = ZERO,
        fx_fallback_used: bool = False,
    ) -> Valuation:
        """
        Value a holding in USD.

        Percentages are 0 when the cost basis is 0. fx_fallback_used is
        carried through for display only.
        """
        cost_basis = state.consolidated_cost_basis_usd
        current_value = state.quantity_held * price_usd
        unrealized = current_value - cost_basis
        consolidated = unrealized + income_received_usd

        return Valuation(
            current_value_usd=current_value,
            unrealized_gain_usd=unrealized,
            unrealized_gain_pct=percent_of(unrealized, cost_basis),
            realized_gain_usd=state.realized_gain_usd,
            cost_basis_usd=cost_basis,
            income_received_usd=income_received_usd,
            consolidated_gain_usd=consolidated,
            consolidated_gain_pct=percent_of(consolidated, cost_basis),
            fx_fallback_used=fx_fallback_used,
        )
