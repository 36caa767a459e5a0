"""Dividend and coupon income reconciled from account movements."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from cartera.core.exceptions import FxUnavailableError
from cartera.core.numbers import ZERO, valid_amount
from cartera.core.timezone import parse_calendar_date
from cartera.domain.models import Currency, IncomeEvent, IncomeKind, NATIVE_USD
from cartera.services.fx_resolver import FxResolver
from cartera.services.operation_classifier import fold_text, normalize_currency, normalize_instrument_id

logger = logging.getLogger(__name__)

_DIVIDEND_KEYWORDS = ("pago de dividendos", "dividendo", "dividend")
_WITHHOLDING_KEYWORDS = ("retencion de impuestos", "retencion", "withholding")
_COUPON_KEYWORDS = ("renta", "intereses devengados", "amortizacion y renta", "coupon")


@dataclass
class _Movement:
    instrument_id: Optional[str]
    date: date
    currency: Currency
    amount: Decimal
    description: str
    instrument_type: str


def _parse_movement(raw: dict[str, Any]) -> Optional[_Movement]:
    movement_date = parse_calendar_date(
        raw.get("Liquidacion") or raw.get("FechaLiquidacion") or raw.get("fecha") or raw.get("date")
    )
    amount = valid_amount(raw.get("importe", raw.get("Importe", raw.get("amount"))))
    if movement_date is None or amount is None:
        return None
    currency = normalize_currency(raw.get("moneda", raw.get("Moneda", raw.get("currency")))) or Currency.ARS
    return _Movement(
        instrument_id=normalize_instrument_id(raw.get("ticker") or raw.get("Ticker")),
        date=movement_date,
        currency=currency,
        amount=amount,
        description=fold_text(str(raw.get("descripcion") or raw.get("Descripcion") or "")),
        instrument_type=fold_text(str(raw.get("tipo") or raw.get("Tipo") or "")),
    )


class IncomeLedger:
    """
    Extracts income events from raw account movements.

    Dividends are paired with tax withholdings settled the same day;
    coupon payments are paired with the ARS tax line of the same day,
    converted at that date's rate.
    """

    def __init__(self, fx_resolver: FxResolver):
        self._fx = fx_resolver

    def extract(
        self,
        movements: Iterable[dict[str, Any]],
        instrument_id: Optional[str] = None,
    ) -> list[IncomeEvent]:
        """
        Return income events in date order.

        With instrument_id, only that instrument's movements (and withholdings
        carrying no instrument) are considered. An ARS amount that cannot be
        converted is left out: a payment is dropped, a withholding is not
        deducted and the event is marked fx_unavailable.
        """
        wanted = normalize_instrument_id(instrument_id) if instrument_id else None
        payments: list[tuple[IncomeKind, _Movement]] = []
        withholdings: dict[tuple[Optional[str], date], list[_Movement]] = defaultdict(list)

        for raw in movements or []:
            if not isinstance(raw, dict):
                continue
            movement = _parse_movement(raw)
            if movement is None:
                continue
            if wanted and movement.instrument_id not in (wanted, None):
                continue

            if any(k in movement.description for k in _WITHHOLDING_KEYWORDS):
                withholdings[(movement.instrument_id, movement.date)].append(movement)
            elif any(k in movement.description for k in _DIVIDEND_KEYWORDS):
                payments.append((IncomeKind.DIVIDEND, movement))
            elif self._is_coupon(movement):
                if movement.amount < ZERO and movement.currency == Currency.ARS:
                    # ARS tax line settled with a coupon
                    withholdings[(movement.instrument_id, movement.date)].append(movement)
                elif movement.amount > ZERO:
                    payments.append((IncomeKind.COUPON, movement))

        events = []
        for kind, payment in sorted(payments, key=lambda p: p[1].date):
            if payment.instrument_id is None:
                logger.debug(f"Income without instrument on {payment.date}; ignored")
                continue
            matched = withholdings.pop((payment.instrument_id, payment.date), [])
            matched += withholdings.pop((None, payment.date), [])

            gross = self._to_usd(payment.amount, payment.currency, payment.date)
            if gross is None:
                logger.warning(
                    f"No ARS/USD rate for {kind.value.lower()} on {payment.instrument_id} "
                    f"({payment.date}); income left out"
                )
                continue

            withheld = ZERO
            fx_unavailable = False
            for withholding in matched:
                amount = self._to_usd(abs(withholding.amount), withholding.currency, withholding.date)
                if amount is None:
                    logger.warning(
                        f"No ARS/USD rate for withholding on {payment.instrument_id} "
                        f"({withholding.date}); not deducted"
                    )
                    fx_unavailable = True
                    continue
                withheld += amount

            events.append(
                IncomeEvent(
                    instrument_id=payment.instrument_id,
                    date=payment.date,
                    kind=kind,
                    gross_usd=gross,
                    withheld_usd=withheld,
                    currency=payment.currency,
                    is_accrued_interest="intereses devengados" in payment.description,
                    fx_unavailable=fx_unavailable,
                )
            )
        return events

    @staticmethod
    def total_income_usd(events: Iterable[IncomeEvent], instrument_id: str) -> Decimal:
        """Net income received on one instrument."""
        wanted = normalize_instrument_id(instrument_id)
        return sum((e.net_usd for e in events if e.instrument_id == wanted), ZERO)

    @staticmethod
    def _is_coupon(movement: _Movement) -> bool:
        if not any(k in movement.description for k in _COUPON_KEYWORDS):
            return False
        return not movement.instrument_type or "cupon" in movement.instrument_type

    def _to_usd(self, amount: Decimal, currency: Currency, on_date: date) -> Optional[Decimal]:
        if currency == Currency.USD:
            return NATIVE_USD.to_usd(amount)
        try:
            return self._fx.resolve_with_fallback(on_date).to_usd(amount)
        except FxUnavailableError:
            return None
