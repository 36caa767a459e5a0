"""Bond cashflow projection and term yield."""

import logging
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from cartera.core.numbers import ZERO, percent_of, to_decimal
from cartera.core.timezone import parse_calendar_date
from cartera.domain.models import CashflowScheduleEntry, Currency, FxRateUsed, NATIVE_USD
from cartera.domain.views import CashflowGroup, CashflowLine, CashflowProjection
from cartera.services.fx_resolver import FxResolver
from cartera.services.operation_classifier import normalize_currency

logger = logging.getLogger(__name__)

# Numeric currency codes used by the bond schedule feed
_SCHEDULE_CURRENCIES = {1: Currency.ARS, 2: Currency.USD}


def _schedule_currency(raw: Any) -> Currency:
    """Numeric feed code or a currency label; missing means USD."""
    if raw is None or raw == "":
        return Currency.USD
    code = to_decimal(raw)
    if code is not None and code == code.to_integral_value() and int(code) in _SCHEDULE_CURRENCIES:
        return _SCHEDULE_CURRENCIES[int(code)]
    currency = normalize_currency(raw)
    if currency is None:
        logger.warning(f"Unknown schedule currency {raw!r}; assuming USD")
        return Currency.USD
    return currency


def parse_schedule(raw: Iterable[dict[str, Any]]) -> list[CashflowScheduleEntry]:
    """
    Parse raw bond cashflow rows into ascending schedule entries.

    Rows look like {date, coupon, amortization, residualValue, rent,
    amortizationValue, cashflow, currency}; rates are percentages and
    rent/amortizationValue are per-unit amounts. Rows without a date are
    skipped.
    """
    entries = []
    for row in raw or []:
        if not isinstance(row, dict):
            continue
        entry_date = parse_calendar_date(row.get("date"))
        if entry_date is None:
            logger.debug(f"Skipping schedule row without date: {row!r}")
            continue

        currency = _schedule_currency(row.get("currency"))

        entries.append(
            CashflowScheduleEntry(
                date=entry_date,
                coupon_rate_pct=to_decimal(row.get("coupon")) or ZERO,
                amortization_rate_pct=to_decimal(row.get("amortization")) or ZERO,
                residual_value_pct=to_decimal(row.get("residualValue")) or ZERO,
                coupon_amount_per_unit=to_decimal(row.get("rent")) or ZERO,
                amortization_amount_per_unit=to_decimal(row.get("amortizationValue")) or ZERO,
                currency=currency,
            )
        )
    return sorted(entries, key=lambda e: e.date)


class CashflowProjector:
    """
    Projects contractual bond payments for the quantity held.

    Pure and synchronous; FX comes from an already-built resolver.
    """

    def project(
        self,
        schedule: Iterable[CashflowScheduleEntry],
        quantity_held: Decimal,
        as_of: date,
        instrument_currency: Currency,
        fx_resolver: FxResolver,
        cost_basis_usd: Decimal = ZERO,
        income_received_usd: Optional[Decimal] = None,
        include_past: bool = False,
    ) -> CashflowProjection:
        """
        Project payments to maturity.

        Entries dated on or after as_of are projected; include_past also
        lists earlier ones. ARS amounts use the historical rate for past
        dates and the prevailing rate for future ones. When
        income_received_usd is None it is estimated from past coupons.

        Term yield always combines future payments with income received,
        so past coupons are never counted twice. total_at_maturity_usd sums
        the listed lines while future_total_usd sums only the payments that
        feed term yield.
        """
        entries = sorted(schedule, key=lambda e: e.date)
        lines: list[CashflowLine] = []
        future_total = ZERO
        past_rent = ZERO

        for entry in entries:
            is_past = entry.date < as_of
            fx_rate = self._rate_for(entry.date, is_past, instrument_currency, fx_resolver)
            line = CashflowLine(
                date=entry.date,
                rent_usd=fx_rate.to_usd(quantity_held * entry.coupon_amount_per_unit),
                amortization_usd=fx_rate.to_usd(quantity_held * entry.amortization_amount_per_unit),
                is_past=is_past,
                fx_rate_used=fx_rate,
            )
            if is_past:
                past_rent += line.rent_usd
            else:
                future_total += line.total_usd
            if include_past or not is_past:
                lines.append(line)

        if income_received_usd is None:
            income_received_usd = past_rent

        total_rent = sum((line.rent_usd for line in lines), ZERO)
        total_amortization = sum((line.amortization_usd for line in lines), ZERO)
        term_yield = future_total + income_received_usd - cost_basis_usd

        return CashflowProjection(
            lines=tuple(lines),
            total_rent_usd=total_rent,
            total_amortization_usd=total_amortization,
            total_at_maturity_usd=total_rent + total_amortization,
            future_total_usd=future_total,
            income_received_usd=income_received_usd,
            cost_basis_usd=cost_basis_usd,
            term_yield_usd=term_yield,
            term_yield_pct=percent_of(term_yield, cost_basis_usd),
            maturity_date=entries[-1].date if entries else None,
        )

    def _rate_for(
        self,
        on_date: date,
        is_past: bool,
        currency: Currency,
        fx_resolver: FxResolver,
    ) -> FxRateUsed:
        if currency == Currency.USD:
            return NATIVE_USD
        if is_past:
            return fx_resolver.resolve_with_fallback(on_date)
        return fx_resolver.current()


def _group(lines: Iterable[CashflowLine], key_of: Callable[[date], str]) -> list[CashflowGroup]:
    buckets: "OrderedDict[str, list[CashflowLine]]" = OrderedDict()
    for line in sorted(lines, key=lambda l: l.date):
        buckets.setdefault(key_of(line.date), []).append(line)

    return [
        CashflowGroup(
            key=key,
            rent_usd=sum((l.rent_usd for l in bucket), ZERO),
            amortization_usd=sum((l.amortization_usd for l in bucket), ZERO),
            payments=len(bucket),
            is_past=all(l.is_past for l in bucket),
        )
        for key, bucket in buckets.items()
    ]


def group_by_month(lines: Iterable[CashflowLine]) -> list[CashflowGroup]:
    """Aggregate lines per calendar month (key "YYYY-MM")."""
    return _group(lines, lambda d: f"{d.year:04d}-{d.month:02d}")


def group_by_year(lines: Iterable[CashflowLine]) -> list[CashflowGroup]:
    """Aggregate lines per calendar year (key "YYYY")."""
    return _group(lines, lambda d: f"{d.year:04d}")
