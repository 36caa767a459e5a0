"""Market data service for brokerage and FX data."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from dateutil import parser as date_parser

from cartera.core.numbers import ZERO, valid_amount
from cartera.core.timezone import parse_calendar_date, to_local
from cartera.domain.models import Currency, DataClass
from cartera.domain.views import CacheResult, MarketQuote
from cartera.providers.brokerage_gateway import (
    BrokerageGateway,
    CredentialProvider,
    FxHistoryProvider,
)
from cartera.services.cache_coordinator import CacheCoordinator, CacheKeys
from cartera.services.operation_classifier import normalize_currency

logger = logging.getLogger(__name__)


def parse_market_quote(instrument_id: str, payload: Any) -> Optional[MarketQuote]:
    """Build a MarketQuote from a {price, currency, asOf} payload; None if unusable."""
    if not isinstance(payload, dict):
        return None
    price = valid_amount(payload.get("price", payload.get("ultimoPrecio")))
    if price is None or price <= ZERO:
        return None

    as_of = None
    raw_as_of = payload.get("asOf", payload.get("fechaHora"))
    if raw_as_of:
        try:
            as_of = to_local(date_parser.isoparse(str(raw_as_of)))
        except (ValueError, OverflowError):
            logger.debug(f"Unparseable quote timestamp for {instrument_id}: {raw_as_of!r}")

    return MarketQuote(
        instrument_id=instrument_id,
        price=price,
        currency=normalize_currency(payload.get("currency", payload.get("moneda"))) or Currency.USD,
        as_of=as_of,
    )


class MarketDataService:
    """
    Service for fetching brokerage and FX data.

    Wraps the collaborators with caching and graceful degradation: every
    read goes through the cache coordinator under its namespace and TTL
    class, and comes back with its freshness metadata.
    """

    def __init__(
        self,
        gateway: BrokerageGateway,
        credentials: CredentialProvider,
        fx_history: FxHistoryProvider,
        cache: CacheCoordinator,
    ):
        self._gateway = gateway
        self._credentials = credentials
        self._fx_history = fx_history
        self._cache = cache

    @property
    def cache(self) -> CacheCoordinator:
        return self._cache

    async def get_token(self) -> str:
        """Get the bearer token, cached for the token TTL."""
        result = await self._cache.get_or_fetch(
            CacheKeys.TOKEN, self._credentials.get_token, DataClass.TOKEN
        )
        return result.value

    async def get_transactions(self, from_date: date, to_date: date) -> CacheResult[list]:
        """
        Raw transaction history from from_date (append-only).

        Cached under the start date until invalidated, so a later to_date is
        served from the same entry.
        """

        async def fetch() -> list:
            return await self._gateway.fetch_transactions(from_date, to_date, await self.get_token())

        return await self._cache.get_or_fetch(
            CacheKeys.transactions(from_date), fetch, DataClass.HISTORY
        )

    async def get_account_movements(self, from_date: date, to_date: date) -> CacheResult[list]:
        """Raw cash movements from from_date; refreshed with the new to_date once stale."""

        async def fetch() -> list:
            return await self._gateway.fetch_account_movements(from_date, to_date, await self.get_token())

        return await self._cache.get_or_fetch(
            CacheKeys.movements(from_date), fetch, DataClass.REFERENCE
        )

    async def get_fx_history(self) -> CacheResult[list]:
        """Raw historical FX rows from the FX history provider."""
        return await self._cache.get_or_fetch(
            CacheKeys.FX_HISTORY, self._fx_history.fetch_fx_history, DataClass.HISTORY
        )

    async def get_current_fx_rate(self) -> CacheResult[Any]:
        """Raw current MEP rate payload."""

        async def fetch() -> Any:
            return await self._gateway.fetch_current_fx_rate(await self.get_token())

        return await self._cache.get_or_fetch(CacheKeys.FX_CURRENT, fetch, DataClass.QUOTE)

    async def get_market_quote(self, instrument_id: str) -> CacheResult[dict]:
        """Raw latest quote for an instrument."""

        async def fetch() -> dict:
            return await self._gateway.fetch_market_quote(instrument_id, await self.get_token())

        return await self._cache.get_or_fetch(CacheKeys.quote(instrument_id), fetch, DataClass.QUOTE)

    async def get_price_history(self, instrument_id: str) -> CacheResult[list]:
        """Raw daily closes for an instrument."""

        async def fetch() -> list:
            return await self._gateway.fetch_price_history(instrument_id, await self.get_token())

        return await self._cache.get_or_fetch(
            CacheKeys.price_history(instrument_id), fetch, DataClass.REFERENCE
        )

    async def get_bond_schedule(self, instrument_id: str) -> CacheResult[list]:
        """Raw bond cashflow schedule (empty for non-bonds)."""

        async def fetch() -> list:
            return await self._gateway.fetch_bond_schedule(instrument_id, await self.get_token())

        return await self._cache.get_or_fetch(
            CacheKeys.bond_schedule(instrument_id), fetch, DataClass.REFERENCE
        )


def parse_price_history(payload: Any) -> list[tuple[date, Decimal]]:
    """Return ascending (date, close) pairs from [{date, close}] rows."""
    closes = {}
    for row in payload or []:
        if not isinstance(row, dict):
            continue
        close_date = parse_calendar_date(row.get("date", row.get("fechaHora")))
        close = valid_amount(row.get("close", row.get("ultimoPrecio")))
        if close_date is None or close is None or close <= ZERO:
            continue
        closes[close_date] = close
    return sorted(closes.items())
