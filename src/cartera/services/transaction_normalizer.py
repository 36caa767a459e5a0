"""Normalization of raw brokerage records into Transactions."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from cartera.core.exceptions import UnclassifiedOperationError, ValidationError
from cartera.core.numbers import ZERO, to_decimal, valid_amount
from cartera.core.timezone import parse_calendar_date
from cartera.domain.models import (
    Currency,
    DataQualityFlag,
    NATIVE_USD,
    Transaction,
    TransactionKind,
)
from cartera.services.fx_resolver import FxResolver
from cartera.services.operation_classifier import (
    classify_operation,
    normalize_currency,
    normalize_instrument_id,
)

logger = logging.getLogger(__name__)

# Close price of an instrument on a date, expressed in the requested currency
ClosePriceLookup = Callable[[str, date, Currency], Optional[Decimal]]

# Field aliases for the order, movement and canonical shapes; first hit wins
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "descriptor": ("Operacion", "operacion", "tipoOperacion", "descripcion", "Descripcion", "descriptor"),
    "instrument_id": ("Ticker", "ticker", "simbolo", "Simbolo", "instrument_id", "symbol"),
    "currency": ("Moneda", "moneda", "original_currency", "currency"),
    "operated_quantity": ("CantidadOperada", "cantidadOperada", "operated_quantity"),
    "quantity": ("Cantidad", "cantidad", "quantity"),
    "unit_price": ("Precio", "precio", "unit_price"),
    "operated_price": ("Precio Operado", "PrecioOperado", "precioOperado", "operated_price"),
    "total_amount": ("Monto", "monto", "Importe", "importe", "total_amount"),
    "fees": ("Costos", "costos", "Comisiones", "comisiones", "fees"),
    "date": ("Fecha", "FechaLiquidacion", "Concertacion", "fecha", "fechaConcertacion", "date"),
    "kind": ("kind",),
}

UNKNOWN_POLICIES = ("sell", "skip", "raise")


def pick(raw: dict[str, Any], field_name: str) -> Any:
    """Return the first non-empty aliased value of a logical field."""
    for alias in FIELD_ALIASES[field_name]:
        value = raw.get(alias)
        if value is not None and value != "":
            return value
    return None


class TransactionNormalizer:
    """
    Maps raw heterogeneous records into canonical Transactions.

    Stateless apart from its injected FX resolver and close-price lookup;
    safe to call repeatedly on the same records.
    """

    def __init__(
        self,
        fx_resolver: FxResolver,
        close_price_lookup: Optional[ClosePriceLookup] = None,
        redemption_price_threshold: Decimal = Decimal("0.01"),
        unknown_operation_policy: str = "sell",
    ):
        if unknown_operation_policy not in UNKNOWN_POLICIES:
            raise ValueError(f"Invalid unknown_operation_policy: {unknown_operation_policy}")
        self._fx = fx_resolver
        self._close_price = close_price_lookup
        self._threshold = Decimal(str(redemption_price_threshold))
        self._unknown_policy = unknown_operation_policy

    def normalize(
        self,
        raw: dict[str, Any],
        kind: Optional[TransactionKind] = None,
    ) -> Optional[Transaction]:
        """
        Normalize one raw record.

        Args:
            raw: Record in any supported shape
            kind: Explicit classification, bypassing the descriptor text

        Returns:
            Transaction, or None when an unknown descriptor is skipped by policy

        Raises:
            ValidationError: Missing instrument/date or non-positive quantity
            UnclassifiedOperationError: Unknown descriptor under the raise policy
            FxUnavailableError: ARS record and no rate at all
        """
        instrument_id = normalize_instrument_id(pick(raw, "instrument_id"))
        if not instrument_id:
            raise ValidationError(f"Record has no instrument: {raw!r}")

        txn_date = parse_calendar_date(pick(raw, "date"))
        if txn_date is None:
            raise ValidationError(f"Record for {instrument_id} has no valid date")

        quantity = self._quantity(raw)
        if quantity is None or quantity <= ZERO:
            raise ValidationError(f"Record for {instrument_id} on {txn_date} has no positive quantity")

        descriptor = str(pick(raw, "descriptor") or "")
        flags: set[DataQualityFlag] = set()
        kind = kind or self._explicit_kind(raw) or classify_operation(descriptor)
        if kind == TransactionKind.UNKNOWN:
            kind = self._apply_unknown_policy(descriptor, instrument_id, txn_date)
            if kind is None:
                return None
            flags.add(DataQualityFlag.DEFAULTED_CLASSIFICATION)

        currency = self._currency(raw)

        total = valid_amount(pick(raw, "total_amount"))
        total = abs(total) if total is not None else None
        unit_price = self._unit_price(raw, quantity, total)
        if unit_price is None:
            unit_price = ZERO
            flags.add(DataQualityFlag.DEGRADED_PRICE)

        if kind == TransactionKind.PARTIAL_REDEMPTION and unit_price < self._threshold:
            close = self._close_price(instrument_id, txn_date, currency) if self._close_price else None
            if close is not None and close > ZERO:
                logger.info(
                    f"Partial redemption of {instrument_id} on {txn_date} priced at market close {close}"
                )
                unit_price = close
                total = None
                flags.discard(DataQualityFlag.DEGRADED_PRICE)
                flags.add(DataQualityFlag.MARKET_PRICE_SUBSTITUTED)

        if total is None or total == ZERO:
            total = unit_price * quantity

        fees = valid_amount(pick(raw, "fees"))
        fees = abs(fees) if fees is not None else ZERO

        if currency == Currency.ARS:
            fx_rate = self._fx.resolve_with_fallback(txn_date)
            if fx_rate.is_fallback:
                flags.add(DataQualityFlag.FX_FALLBACK)
        else:
            fx_rate = NATIVE_USD

        if DataQualityFlag.DEGRADED_PRICE in flags:
            logger.warning(f"No usable price for {instrument_id} on {txn_date}; recorded at 0")

        return Transaction(
            instrument_id=instrument_id,
            kind=kind,
            date=txn_date,
            quantity=quantity,
            unit_price=unit_price,
            total_amount=total,
            fees=fees,
            original_currency=currency,
            unit_price_usd=fx_rate.to_usd(unit_price),
            total_amount_usd=fx_rate.to_usd(total),
            fees_usd=fx_rate.to_usd(fees),
            fx_rate_used=fx_rate,
            flags=frozenset(flags),
            descriptor=descriptor,
        )

    def normalize_many(
        self,
        raws: Iterable[dict[str, Any]],
        instrument_id: Optional[str] = None,
    ) -> list[Transaction]:
        """
        Normalize a batch, optionally restricted to one instrument.

        Rows without a positive quantity (cash-only movements) and rows that
        cannot be normalized at all are left out and logged. Input order is
        preserved.
        """
        wanted = normalize_instrument_id(instrument_id) if instrument_id else None
        transactions: list[Transaction] = []

        for raw in raws:
            if not isinstance(raw, dict):
                continue
            if wanted and normalize_instrument_id(pick(raw, "instrument_id")) != wanted:
                continue
            quantity = self._quantity(raw)
            if quantity is None or quantity == ZERO:
                logger.debug(f"Skipping non-trade record: {pick(raw, 'descriptor')!r}")
                continue
            try:
                transaction = self.normalize(raw)
            except ValidationError as e:
                logger.warning(f"Rejected record: {e.message}")
                continue
            if transaction is not None:
                transactions.append(transaction)

        return transactions

    def _quantity(self, raw: dict[str, Any]) -> Optional[Decimal]:
        """Operated quantity wins over ordered quantity when valid."""
        for field_name in ("operated_quantity", "quantity"):
            value = valid_amount(pick(raw, field_name))
            if value is not None and value != ZERO:
                return abs(value)
        return None

    def _unit_price(
        self, raw: dict[str, Any], quantity: Decimal, total: Optional[Decimal]
    ) -> Optional[Decimal]:
        """Explicit price, then operated price, then total / quantity."""
        for field_name in ("unit_price", "operated_price"):
            value = valid_amount(pick(raw, field_name))
            if value is not None and value > ZERO:
                return value
        if total is not None and total > ZERO and quantity > ZERO:
            return total / quantity
        return None

    def _currency(self, raw: dict[str, Any]) -> Currency:
        label = pick(raw, "currency")
        if label is None:
            return Currency.ARS
        currency = normalize_currency(label)
        if currency is None:
            raise ValidationError(f"Unrecognized currency: {label!r}")
        return currency

    def _explicit_kind(self, raw: dict[str, Any]) -> Optional[TransactionKind]:
        value = pick(raw, "kind")
        if value is None:
            return None
        try:
            kind = TransactionKind(str(value).upper())
        except ValueError:
            return None
        return None if kind == TransactionKind.UNKNOWN else kind

    def _apply_unknown_policy(
        self, descriptor: str, instrument_id: str, txn_date: date
    ) -> Optional[TransactionKind]:
        if self._unknown_policy == "raise":
            raise UnclassifiedOperationError(descriptor)
        if self._unknown_policy == "skip":
            logger.info(f"Skipping unclassified operation {descriptor!r} for {instrument_id} on {txn_date}")
            return None
        logger.warning(
            f"Unclassified operation {descriptor!r} for {instrument_id} on {txn_date}; treated as SELL"
        )
        return TransactionKind.SELL
