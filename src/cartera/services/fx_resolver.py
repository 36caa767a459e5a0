"""Historical ARS/USD rate resolution."""

import logging
from bisect import bisect_right
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence, TypeVar

from cartera.core.exceptions import FxUnavailableError
from cartera.core.numbers import ZERO, to_decimal
from cartera.core.timezone import parse_calendar_date
from cartera.domain.models import FxQuote, FxRateUsed, FxSource

logger = logging.getLogger(__name__)

V = TypeVar("V")


def nearest_prior(
    dates: Sequence[date],
    values: Sequence[V],
    on_date: date,
    max_lookback_days: Optional[int] = None,
) -> Optional[tuple[date, V]]:
    """
    Return the (date, value) observation on or before on_date.

    `dates` must be ascending. Never looks forward in time. With
    max_lookback_days set, observations older than that are ignored.
    """
    index = bisect_right(dates, on_date) - 1
    if index < 0:
        return None
    found = dates[index]
    if max_lookback_days is not None and (on_date - found).days > max_lookback_days:
        return None
    return found, values[index]


def build_fx_series(
    raw: Iterable[dict[str, Any]],
    house_priority: Sequence[str] = ("bolsa", "contadoconliqui", "blue", "oficial"),
) -> list[FxQuote]:
    """
    Build an ascending daily series from raw {casa, compra, venta, fecha} rows.

    For each date the first house in house_priority wins and its rate is
    the mid of buy and sell. Rows from other houses and malformed rows are
    ignored.
    """
    rank = {house.lower(): position for position, house in enumerate(house_priority)}
    best: dict[date, tuple[int, Decimal]] = {}

    for row in raw or []:
        if not isinstance(row, dict):
            continue
        house = str(row.get("casa", "")).strip().lower()
        if house not in rank:
            continue
        quote_date = parse_calendar_date(row.get("fecha"))
        buy = to_decimal(row.get("compra"))
        sell = to_decimal(row.get("venta"))
        if quote_date is None or buy is None or sell is None:
            continue
        mid = (buy + sell) / 2
        if mid <= ZERO:
            continue

        current = best.get(quote_date)
        if current is None or rank[house] < current[0]:
            best[quote_date] = (rank[house], mid)

    return [FxQuote(date=d, rate=best[d][1]) for d in sorted(best)]


def parse_current_rate(payload: Any) -> Optional[Decimal]:
    """
    Extract the current MEP rate from a brokerage payload.

    Accepts a plain number or a quote list containing a "Dólar MEP" entry,
    whose rate is the mid of PrecioCompra and PrecioVenta.
    """
    if payload is None:
        return None
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        rate = to_decimal(payload)
        return rate if rate is not None and rate > ZERO else None

    for row in payload:
        if not isinstance(row, dict):
            continue
        description = str(row.get("Descripcion", "")).lower()
        if "mep" not in description:
            continue
        buy = to_decimal(row.get("PrecioCompra"))
        sell = to_decimal(row.get("PrecioVenta"))
        if buy is None or sell is None:
            continue
        mid = (buy + sell) / 2
        if mid > ZERO:
            return mid
    return None


class FxResolver:
    """
    Resolves the ARS/USD rate for a date from a sparse daily series.

    Pure over its inputs: the series and the current rate are fixed at
    construction time.
    """

    def __init__(
        self,
        series: Iterable[FxQuote],
        current_rate: Optional[Decimal] = None,
        max_lookback_days: Optional[int] = None,
    ):
        ordered = sorted(series, key=lambda q: q.date)
        # Later duplicates for the same date replace earlier ones
        by_date = {q.date: q.rate for q in ordered}
        self._dates = sorted(by_date)
        self._rates = [by_date[d] for d in self._dates]
        self._current_rate = current_rate
        self._max_lookback_days = max_lookback_days

    @property
    def current_rate(self) -> Optional[Decimal]:
        return self._current_rate

    @property
    def is_empty(self) -> bool:
        return not self._dates

    def resolve(self, on_date: date) -> Optional[Decimal]:
        """Return the exact or nearest prior rate; None when not found."""
        found = self.resolve_quote(on_date)
        return found.rate if found else None

    def resolve_quote(self, on_date: date) -> Optional[FxQuote]:
        """Return the observation used for on_date; None when not found."""
        found = nearest_prior(self._dates, self._rates, on_date, self._max_lookback_days)
        if found is None:
            return None
        return FxQuote(date=found[0], rate=found[1])

    def resolve_with_fallback(self, on_date: date) -> FxRateUsed:
        """
        Return the historical rate, or the current rate flagged as fallback.

        Raises FxUnavailableError when neither exists.
        """
        quote = self.resolve_quote(on_date)
        if quote is not None:
            return FxRateUsed(rate=quote.rate, source=FxSource.HISTORICAL, quote_date=quote.date)

        if self._current_rate is None or self._current_rate <= ZERO:
            raise FxUnavailableError(on_date.isoformat())

        logger.warning(f"No historical FX rate for {on_date}; using current rate {self._current_rate}")
        return FxRateUsed(rate=self._current_rate, source=FxSource.FALLBACK_CURRENT)

    def current(self) -> FxRateUsed:
        """
        Return the prevailing rate for dates that have no observation yet.

        Falls back to the latest historical observation when no current rate
        was supplied.
        """
        if self._current_rate is not None and self._current_rate > ZERO:
            return FxRateUsed(rate=self._current_rate, source=FxSource.CURRENT)
        if self._dates:
            return FxRateUsed(
                rate=self._rates[-1], source=FxSource.HISTORICAL, quote_date=self._dates[-1]
            )
        raise FxUnavailableError("today")
