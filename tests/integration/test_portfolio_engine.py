"""
Integration tests for PortfolioEngine.

Runs the full fetch -> normalize -> replay -> value -> project pipeline
against the deterministic gateway and an in-memory cache.

Tests cover:
- Per-instrument figures for a USD stock, a USD bond and an ARS stock
- as_of filtering
- Portfolio-wide reconstruction and per-instrument failure isolation
- Degradation when FX inputs are unavailable
- Shared fetches across concurrent reconstructions
"""

from datetime import date
from decimal import Decimal

import pytest

from cartera.core.exceptions import InsufficientDataError, UpstreamUnavailableError
from cartera.domain.models import SummaryStatus
from cartera.services import MarketDataService, PortfolioEngine

from tests.conftest import (
    AS_OF,
    DeterministicGateway,
    FailingGateway,
    assert_decimal_equal,
    default_orders,
    make_order,
)


def _engine(gateway, cache, settings) -> PortfolioEngine:
    service = MarketDataService(gateway=gateway, credentials=gateway, fx_history=gateway, cache=cache)
    return PortfolioEngine(service, settings=settings)


# =============================================================================
# SINGLE INSTRUMENT
# =============================================================================


class TestUsdStock:
    """KO: two USD buys and one partial sell."""

    @pytest.mark.asyncio
    async def test_holdings_and_valuation(self, portfolio_engine: PortfolioEngine):
        """
        GIVEN buys 10@100, 10@120 and a sell 5@130
        WHEN KO is reconstructed with a 150 quote
        THEN WAC 110 is kept through the sale and gains follow from it
        """
        summary = await portfolio_engine.reconstruct("KO", as_of=AS_OF)

        assert summary.status == SummaryStatus.OK
        assert summary.transaction_count == 3
        assert summary.degraded_count == 0
        assert_decimal_equal(summary.quantity_held, 15)
        assert_decimal_equal(summary.weighted_average_cost_usd, 110)
        assert_decimal_equal(summary.average_sell_price_usd, 130)

        valuation = summary.valuation
        assert_decimal_equal(valuation.cost_basis_usd, 1650)
        assert_decimal_equal(valuation.realized_gain_usd, 100)
        assert_decimal_equal(valuation.current_value_usd, 2250)
        assert_decimal_equal(valuation.unrealized_gain_usd, 600)
        assert_decimal_equal(valuation.unrealized_gain_pct, "36.363636")
        assert_decimal_equal(valuation.consolidated_gain_usd, 600)
        assert not valuation.fx_fallback_used
        assert summary.term_projection is None

    @pytest.mark.asyncio
    async def test_as_of_excludes_later_records(self, portfolio_engine: PortfolioEngine):
        """
        GIVEN the KO history
        WHEN reconstructed as of the day before the sale
        THEN the sale is not replayed
        """
        summary = await portfolio_engine.reconstruct("KO", as_of=date(2024, 1, 3))

        assert summary.transaction_count == 2
        assert_decimal_equal(summary.quantity_held, 20)
        assert_decimal_equal(summary.valuation.realized_gain_usd, 0)

    @pytest.mark.asyncio
    async def test_instrument_id_normalized(self, portfolio_engine: PortfolioEngine):
        """
        GIVEN a lowercase, padded instrument id
        WHEN reconstructed
        THEN it resolves to the same holding
        """
        summary = await portfolio_engine.reconstruct(" ko ", as_of=AS_OF)

        assert summary.instrument_id == "KO"
        assert_decimal_equal(summary.quantity_held, 15)

    @pytest.mark.asyncio
    async def test_cache_metadata_attached(self, portfolio_engine: PortfolioEngine):
        """
        GIVEN a cold cache
        WHEN KO is reconstructed twice
        THEN the second summary reports every input as cached
        """
        first = await portfolio_engine.reconstruct("KO", as_of=AS_OF)
        second = await portfolio_engine.reconstruct("KO", as_of=AS_OF)

        assert not any(m.is_cached for m in first.cache)
        assert second.cache and all(m.is_cached for m in second.cache)
        assert "quote:KO" in {m.key for m in second.cache}


class TestBond:
    """GD30: auction subscription, partial redemption at market, coupons."""

    @pytest.mark.asyncio
    async def test_redemption_uses_market_close(self, portfolio_engine: PortfolioEngine):
        """
        GIVEN a redemption reported at price 0
        WHEN GD30 is reconstructed
        THEN the prior close of 95 prices it and the record counts as degraded
        """
        summary = await portfolio_engine.reconstruct("GD30", as_of=AS_OF)

        assert summary.degraded_count == 1
        assert_decimal_equal(summary.quantity_held, 7)
        assert_decimal_equal(summary.weighted_average_cost_usd, 90)
        assert_decimal_equal(summary.valuation.realized_gain_usd, 15)
        assert_decimal_equal(summary.valuation.cost_basis_usd, 630)

    @pytest.mark.asyncio
    async def test_income_net_of_withholding(self, portfolio_engine: PortfolioEngine):
        """
        GIVEN a 20 USD coupon and a 900 ARS withholding at rate 900
        WHEN GD30 is reconstructed
        THEN income is 19 and consolidated gain adds it to unrealized
        """
        valuation = (await portfolio_engine.reconstruct("GD30", as_of=AS_OF)).valuation

        assert_decimal_equal(valuation.current_value_usd, 665)
        assert_decimal_equal(valuation.unrealized_gain_usd, 35)
        assert_decimal_equal(valuation.income_received_usd, 19)
        assert_decimal_equal(valuation.consolidated_gain_usd, 54)

    @pytest.mark.asyncio
    async def test_term_projection(self, portfolio_engine: PortfolioEngine):
        """
        GIVEN 7 units and two schedule events after as_of
        WHEN GD30 is reconstructed
        THEN future payments total 700 and term yield is 89 on 630
        """
        projection = (await portfolio_engine.reconstruct("GD30", as_of=AS_OF)).term_projection

        assert len(projection.lines) == 2
        assert not any(line.is_past for line in projection.lines)
        assert_decimal_equal(projection.total_rent_usd, 21)
        assert_decimal_equal(projection.total_amortization_usd, 679)
        assert_decimal_equal(projection.total_at_maturity_usd, 700)
        assert_decimal_equal(projection.term_yield_usd, 89)
        assert_decimal_equal(projection.term_yield_pct, "14.126984")
        assert projection.maturity_date == date(2026, 7, 9)

    @pytest.mark.asyncio
    async def test_include_past_lines(self, portfolio_engine: PortfolioEngine):
        """
        GIVEN the same bond
        WHEN past cashflows are included
        THEN the past line is listed but term yield is unchanged
        """
        projection = (
            await portfolio_engine.reconstruct("GD30", as_of=AS_OF, include_past_cashflows=True)
        ).term_projection

        assert len(projection.lines) == 3
        assert projection.lines[0].is_past
        assert_decimal_equal(projection.total_at_maturity_usd, 735)
        assert_decimal_equal(projection.term_yield_usd, 89)
        assert_decimal_equal(projection.future_total_usd, 700)


class TestArsStock:
    """MERV: an ARS buy converted at the historical rate."""

    @pytest.mark.asyncio
    async def test_converted_at_trade_date_rate(self, portfolio_engine: PortfolioEngine):
        """
        GIVEN a 90000 ARS buy on 2024-01-05 and bolsa mid 900 on 2024-01-01
        WHEN MERV is reconstructed with a 12000 ARS quote and current rate 1000
        THEN cost is 100 USD and value 120 USD
        """
        summary = await portfolio_engine.reconstruct("MERV", as_of=AS_OF)

        assert_decimal_equal(summary.weighted_average_cost_usd, 10)
        assert_decimal_equal(summary.valuation.cost_basis_usd, 100)
        assert_decimal_equal(summary.valuation.current_value_usd, 120)
        assert_decimal_equal(summary.valuation.unrealized_gain_pct, 20)
        assert not summary.valuation.fx_fallback_used


class TestMissingData:
    """Tests for instruments with too little data."""

    @pytest.mark.asyncio
    async def test_unknown_instrument(self, portfolio_engine: PortfolioEngine):
        """
        GIVEN an instrument with no transactions and no quote
        WHEN reconstructed
        THEN InsufficientDataError is raised
        """
        with pytest.raises(InsufficientDataError):
            await portfolio_engine.reconstruct("XYZ", as_of=AS_OF)

    @pytest.mark.asyncio
    async def test_quote_only_instrument(self, cache, test_settings):
        """
        GIVEN a quoted instrument never traded
        WHEN reconstructed
        THEN it is valued as an empty holding
        """
        gateway = DeterministicGateway(quotes={"AL30": {"price": 60, "currency": "USD"}})

        summary = await _engine(gateway, cache, test_settings).reconstruct("AL30", as_of=AS_OF)

        assert summary.status == SummaryStatus.OK
        assert_decimal_equal(summary.quantity_held, 0)
        assert_decimal_equal(summary.valuation.current_value_usd, 0)

    @pytest.mark.asyncio
    async def test_missing_quote_omits_valuation(self, cache, test_settings):
        """
        GIVEN a traded instrument with no quote
        WHEN reconstructed
        THEN holdings are returned with no valuation and a message
        """
        gateway = DeterministicGateway(quotes={})

        summary = await _engine(gateway, cache, test_settings).reconstruct("KO", as_of=AS_OF)

        assert_decimal_equal(summary.quantity_held, 15)
        assert summary.valuation is None
        assert "quote" in summary.message


# =============================================================================
# DEGRADATION
# =============================================================================


class TestFxDegradation:
    """Tests for missing FX inputs."""

    @pytest.mark.asyncio
    async def test_history_unavailable_uses_current_rate(self, cache, test_settings):
        """
        GIVEN the FX history provider fails
        WHEN MERV is reconstructed
        THEN the buy is converted at the current rate and flagged
        """
        gateway = DeterministicGateway()
        gateway.fx_history = None

        summary = await _engine(gateway, cache, test_settings).reconstruct("MERV", as_of=AS_OF)

        assert summary.degraded_count == 1
        assert summary.valuation.fx_fallback_used
        assert_decimal_equal(summary.valuation.cost_basis_usd, 90)

    @pytest.mark.asyncio
    async def test_current_rate_unavailable_uses_latest_observation(self, cache, test_settings):
        """
        GIVEN the MEP quote fails
        WHEN MERV is valued
        THEN the latest historical rate (950) prices the ARS quote
        """
        gateway = DeterministicGateway(current_rate=None)

        summary = await _engine(gateway, cache, test_settings).reconstruct("MERV", as_of=AS_OF)

        assert_decimal_equal(summary.valuation.current_value_usd, Decimal("120000") / Decimal("950"))

    @pytest.mark.asyncio
    async def test_transactions_unavailable(self, cache, test_settings):
        """
        GIVEN a gateway that fails everything and an empty cache
        WHEN an instrument is reconstructed
        THEN UpstreamUnavailableError is raised
        """
        with pytest.raises(UpstreamUnavailableError):
            await _engine(FailingGateway(), cache, test_settings).reconstruct("KO", as_of=AS_OF)

    @pytest.mark.asyncio
    async def test_no_rate_at_all_spares_usd_instruments(self, cache, test_settings):
        """
        GIVEN neither FX history nor a current MEP rate
        WHEN the portfolio is reconstructed
        THEN USD instruments are still OK and only the ARS trade fails
        """
        gateway = DeterministicGateway(current_rate=None)
        gateway.fx_history = None

        summaries = await _engine(gateway, cache, test_settings).reconstruct_portfolio(as_of=AS_OF)
        by_id = {s.instrument_id: s for s in summaries}

        assert by_id["KO"].status == SummaryStatus.OK
        assert by_id["KO"].message is None
        assert_decimal_equal(by_id["KO"].valuation.current_value_usd, 2250)
        assert by_id["MERV"].status == SummaryStatus.ERROR

    @pytest.mark.asyncio
    async def test_no_rate_at_all_skips_ars_withholding(self, cache, test_settings):
        """
        GIVEN no rate at all and a GD30 coupon taxed in ARS
        WHEN GD30 is reconstructed
        THEN the USD coupon counts in full and the summary says the tax was not deducted
        """
        gateway = DeterministicGateway(current_rate=None)
        gateway.fx_history = None

        summary = await _engine(gateway, cache, test_settings).reconstruct("GD30", as_of=AS_OF)

        assert summary.status == SummaryStatus.OK
        assert_decimal_equal(summary.valuation.income_received_usd, 20)
        assert summary.term_projection is not None
        assert "not deducted" in summary.message

    @pytest.mark.asyncio
    async def test_no_rate_at_all_omits_ars_valuation(self, cache, test_settings):
        """
        GIVEN no rate at all and an ARS-quoted instrument held through a USD trade
        WHEN it is reconstructed
        THEN holdings are published without a valuation and with a message
        """
        orders = [make_order("Compra", "MERV", 10, 10, "2024-01-05")]
        gateway = DeterministicGateway(orders=orders, current_rate=None)
        gateway.fx_history = None

        summary = await _engine(gateway, cache, test_settings).reconstruct("MERV", as_of=AS_OF)

        assert summary.status == SummaryStatus.OK
        assert_decimal_equal(summary.quantity_held, 10)
        assert_decimal_equal(summary.weighted_average_cost_usd, 10)
        assert summary.valuation is None
        assert "valuation omitted" in summary.message

    @pytest.mark.asyncio
    async def test_no_rate_at_all_omits_ars_projection(self, cache, test_settings):
        """
        GIVEN no rate at all and a bond paying in ARS
        WHEN it is reconstructed
        THEN the projection is omitted and the holding is still valued
        """
        schedule = [
            {"date": "2025-07-09", "rent": 100, "amortizationValue": 0, "currency": 1},
        ]
        gateway = DeterministicGateway(current_rate=None, schedules={"KO": schedule})
        gateway.fx_history = None

        summary = await _engine(gateway, cache, test_settings).reconstruct("KO", as_of=AS_OF)

        assert summary.term_projection is None
        assert summary.valuation is not None
        assert "projection omitted" in summary.message


# =============================================================================
# PORTFOLIO
# =============================================================================


class TestPortfolio:
    """Tests for reconstructing every instrument."""

    @pytest.mark.asyncio
    async def test_all_instruments(self, portfolio_engine: PortfolioEngine):
        """
        GIVEN history for KO, GD30 and MERV plus a cash deposit
        WHEN the portfolio is reconstructed
        THEN one summary per instrument is returned in id order
        """
        summaries = await portfolio_engine.reconstruct_portfolio(as_of=AS_OF)

        assert [s.instrument_id for s in summaries] == ["GD30", "KO", "MERV"]
        assert all(s.status == SummaryStatus.OK for s in summaries)

    @pytest.mark.asyncio
    async def test_failure_isolated(self, cache, test_settings):
        """
        GIVEN an unclassifiable KO record under the raise policy
        WHEN the portfolio is reconstructed
        THEN KO reports ERROR and the others still succeed
        """
        test_settings.unknown_operation_policy = "raise"
        orders = default_orders() + [make_order("Transferencia", "KO", 1, 100, "2024-01-06")]
        gateway = DeterministicGateway(orders=orders)

        summaries = await _engine(gateway, cache, test_settings).reconstruct_portfolio(as_of=AS_OF)
        by_id = {s.instrument_id: s for s in summaries}

        assert by_id["KO"].status == SummaryStatus.ERROR
        assert "Transferencia" in by_id["KO"].message
        assert by_id["GD30"].status == SummaryStatus.OK
        assert by_id["MERV"].status == SummaryStatus.OK

    @pytest.mark.asyncio
    async def test_shared_inputs_fetched_once(self, cache, test_settings):
        """
        GIVEN a slow gateway
        WHEN three instruments are reconstructed concurrently
        THEN shared inputs are fetched once and per-instrument inputs once each
        """
        gateway = DeterministicGateway(delay=0.01)

        await _engine(gateway, cache, test_settings).reconstruct_portfolio(as_of=AS_OF)

        assert gateway.calls["get_token"] == 1
        assert gateway.calls["fetch_transactions"] == 1
        assert gateway.calls["fetch_fx_history"] == 1
        assert gateway.calls["fetch_current_fx_rate"] == 1
        assert gateway.calls["fetch_account_movements"] == 1
        assert gateway.calls["fetch_market_quote"] == 3
