"""Portfolio engine: fetch, normalize, replay, value, project."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from cartera.config.settings import Settings, get_settings
from cartera.core.exceptions import AppError, FxUnavailableError, InsufficientDataError
from cartera.core.timezone import today_local
from cartera.domain.models import Currency, SummaryStatus
from cartera.domain.views import CacheMetadata, CacheResult, InstrumentSummary, MarketQuote
from cartera.services.cashflow_projector import CashflowProjector, parse_schedule
from cartera.services.fx_resolver import FxResolver, build_fx_series, nearest_prior, parse_current_rate
from cartera.services.holdings_ledger import HoldingsLedger
from cartera.services.income_ledger import IncomeLedger
from cartera.services.market_data_service import (
    MarketDataService,
    parse_market_quote,
    parse_price_history,
)
from cartera.services.operation_classifier import normalize_instrument_id
from cartera.services.transaction_normalizer import TransactionNormalizer, pick
from cartera.services.valuation_engine import ValuationEngine

logger = logging.getLogger(__name__)


@dataclass
class RawInputs:
    """External data gathered for one reconstruction, before any parsing."""

    transactions: list = field(default_factory=list)
    movements: list = field(default_factory=list)
    fx_history: list = field(default_factory=list)
    current_fx: Any = None
    quote: Any = None
    price_history: list = field(default_factory=list)
    schedule: list = field(default_factory=list)
    cache: tuple[CacheMetadata, ...] = ()


class PortfolioEngine:
    """
    Engine for reconstructing holdings and performance from raw history.

    All external reads happen up front and concurrently; the calculation
    stages then run synchronously over plain values. A summary is only
    returned once the full replay has finished, so nothing partial is
    ever published.
    """

    def __init__(
        self,
        market_data: MarketDataService,
        settings: Optional[Settings] = None,
        ledger: Optional[HoldingsLedger] = None,
        valuation: Optional[ValuationEngine] = None,
        projector: Optional[CashflowProjector] = None,
    ):
        self._market_data = market_data
        self._settings = settings or get_settings()
        self._ledger = ledger or HoldingsLedger()
        self._valuation = valuation or ValuationEngine()
        self._projector = projector or CashflowProjector()

    async def reconstruct(
        self,
        instrument_id: str,
        as_of: Optional[date] = None,
        include_past_cashflows: bool = False,
    ) -> InstrumentSummary:
        """
        Reconstruct one instrument as of a date (default: today).

        Raises:
            InsufficientDataError: No transactions and no market quote
            UpstreamUnavailableError: Transaction history cannot be obtained
            FxUnavailableError: ARS transactions and no rate at all (valuation and
                projection are omitted instead when only they need a rate)
        """
        instrument_id = normalize_instrument_id(instrument_id) or instrument_id
        as_of = as_of or today_local()
        raw = await self._gather(instrument_id)
        return self.build_summary(instrument_id, raw, as_of, include_past_cashflows)

    async def reconstruct_portfolio(self, as_of: Optional[date] = None) -> list[InstrumentSummary]:
        """
        Reconstruct every instrument found in the transaction history.

        A failing instrument is reported with its status and message and
        never aborts the others.
        """
        as_of = as_of or today_local()
        history = await self._market_data.get_transactions(*self._history_range())
        instrument_ids = sorted(
            {
                normalize_instrument_id(pick(row, "instrument_id"))
                for row in history.value or []
                if isinstance(row, dict) and pick(row, "instrument_id")
            }
        )

        results = await asyncio.gather(
            *(self.reconstruct(i, as_of) for i in instrument_ids),
            return_exceptions=True,
        )

        summaries = []
        for instrument_id, result in zip(instrument_ids, results):
            if isinstance(result, InstrumentSummary):
                summaries.append(result)
            elif isinstance(result, InsufficientDataError):
                summaries.append(
                    InstrumentSummary(
                        instrument_id=instrument_id,
                        status=SummaryStatus.INSUFFICIENT_DATA,
                        message=result.message,
                    )
                )
            elif isinstance(result, Exception):
                if isinstance(result, AppError):
                    logger.warning(f"Reconstruction failed for {instrument_id}: {result.message}")
                    message = result.message
                else:
                    logger.error(f"Unexpected error reconstructing {instrument_id}", exc_info=result)
                    message = str(result)
                summaries.append(
                    InstrumentSummary(
                        instrument_id=instrument_id,
                        status=SummaryStatus.ERROR,
                        message=message,
                    )
                )
            else:
                # CancelledError and other BaseExceptions propagate
                raise result
        return summaries

    def build_summary(
        self,
        instrument_id: str,
        raw: RawInputs,
        as_of: date,
        include_past_cashflows: bool = False,
    ) -> InstrumentSummary:
        """Run the synchronous pipeline over already-fetched raw inputs."""
        settings = self._settings
        fx = FxResolver(
            build_fx_series(raw.fx_history, settings.fx_house_priority),
            current_rate=parse_current_rate(raw.current_fx),
            max_lookback_days=settings.fx_max_lookback_days,
        )
        if fx.is_empty:
            logger.warning("FX history unavailable; ARS amounts will use the current rate")

        closes = parse_price_history(raw.price_history)
        close_dates = [d for d, _ in closes]
        close_values = [c for _, c in closes]
        quote = parse_market_quote(instrument_id, raw.quote)

        def close_price(_instrument_id: str, on_date: date, currency: Currency) -> Optional[Decimal]:
            found = nearest_prior(close_dates, close_values, on_date)
            if found is None:
                return None
            close = found[1]
            quote_currency = quote.currency if quote else currency
            if quote_currency == currency:
                return close
            rate = fx.resolve_with_fallback(on_date)
            return close / rate.rate if currency == Currency.USD else close * rate.rate

        normalizer = TransactionNormalizer(
            fx,
            close_price_lookup=close_price,
            redemption_price_threshold=Decimal(str(settings.redemption_price_threshold)),
            unknown_operation_policy=settings.unknown_operation_policy,
        )
        transactions = [
            t for t in normalizer.normalize_many(raw.transactions, instrument_id) if t.date <= as_of
        ]
        if not transactions and quote is None:
            raise InsufficientDataError(instrument_id)

        state = self._ledger.replay(transactions).state
        degraded = [t for t in transactions if t.flags]
        fx_fallback_used = any(t.uses_fallback_fx for t in transactions)

        income_events = [
            e for e in IncomeLedger(fx).extract(raw.movements, instrument_id) if e.date <= as_of
        ]
        income = IncomeLedger.total_income_usd(income_events, instrument_id)
        has_income = any(e.instrument_id == instrument_id for e in income_events)

        messages: list[str] = []
        if any(e.fx_unavailable for e in income_events):
            messages.append("Some withholdings could not be converted to USD and were not deducted")

        valuation = None
        if quote is not None:
            try:
                price_usd = self._price_usd(quote, fx)
            except FxUnavailableError:
                messages.append("No ARS/USD rate available; valuation omitted")
            else:
                valuation = self._valuation.value(
                    state,
                    price_usd,
                    income_received_usd=income,
                    fx_fallback_used=fx_fallback_used,
                )
        else:
            messages.append("No market quote available; valuation omitted")

        projection = None
        schedule = parse_schedule(raw.schedule)
        if schedule:
            try:
                projection = self._projector.project(
                    schedule,
                    quantity_held=state.quantity_held,
                    as_of=as_of,
                    instrument_currency=schedule[0].currency,
                    fx_resolver=fx,
                    cost_basis_usd=state.consolidated_cost_basis_usd,
                    income_received_usd=income if has_income else None,
                    include_past=include_past_cashflows,
                )
            except FxUnavailableError:
                messages.append("No ARS/USD rate available; cashflow projection omitted")

        for message in messages:
            logger.warning(f"{instrument_id}: {message}")

        return InstrumentSummary(
            instrument_id=instrument_id,
            status=SummaryStatus.OK,
            quantity_held=state.quantity_held,
            weighted_average_cost_usd=state.weighted_average_cost_usd,
            average_sell_price_usd=state.average_sell_price_usd,
            valuation=valuation,
            term_projection=projection,
            transaction_count=len(transactions),
            degraded_count=len(degraded),
            cache=raw.cache,
            message="; ".join(messages) or None,
        )

    async def _gather(self, instrument_id: str) -> RawInputs:
        """Fetch every input concurrently; only the transaction history is mandatory."""
        market_data = self._market_data
        from_date, to_date = self._history_range()
        names = ("transactions", "movements", "fx_history", "current_fx", "quote", "price_history", "schedule")
        results = await asyncio.gather(
            market_data.get_transactions(from_date, to_date),
            market_data.get_account_movements(from_date, to_date),
            market_data.get_fx_history(),
            market_data.get_current_fx_rate(),
            market_data.get_market_quote(instrument_id),
            market_data.get_price_history(instrument_id),
            market_data.get_bond_schedule(instrument_id),
            return_exceptions=True,
        )

        values: dict[str, Any] = {}
        metadata: list[CacheMetadata] = []
        for name, result in zip(names, results):
            if isinstance(result, CacheResult):
                values[name] = result.value
                metadata.append(CacheMetadata.from_result(result))
            elif isinstance(result, Exception):
                if name == "transactions":
                    raise result
                logger.warning(f"{instrument_id}: {name} unavailable, continuing without it: {result}")
            else:
                raise result

        return RawInputs(
            transactions=values.get("transactions") or [],
            movements=values.get("movements") or [],
            fx_history=values.get("fx_history") or [],
            current_fx=values.get("current_fx"),
            quote=values.get("quote"),
            price_history=values.get("price_history") or [],
            schedule=values.get("schedule") or [],
            cache=tuple(metadata),
        )

    def _history_range(self) -> tuple[date, date]:
        return self._settings.history_start_date, today_local()

    @staticmethod
    def _price_usd(quote: MarketQuote, fx: FxResolver) -> Decimal:
        if quote.currency == Currency.USD:
            return quote.price
        return fx.current().to_usd(quote.price)

