"""Operation descriptor classification and identifier normalization."""

import re
import unicodedata
from typing import Any, Optional

from cartera.domain.models import Currency, TransactionKind

# Checked in order; the first group with a matching keyword wins
_KEYWORDS: tuple[tuple[TransactionKind, tuple[str, ...]], ...] = (
    (TransactionKind.PARTIAL_REDEMPTION, ("rescate parcial", "partial redemption")),
    (TransactionKind.SUBSCRIPTION, ("licitacion", "suscripcion", "subscription")),
    (TransactionKind.BUY, ("compra", "buy")),
    (TransactionKind.SELL, ("venta", "sell", "rescate", "redemption")),
)

_LIC_ABBREVIATION = re.compile(r"\blic\b")

# Keys are already whitespace-free ("BMM A" -> "BMMA", "EQUITYS A" -> "EQUITYSA")
_TICKER_ALIASES = {
    "BMMA": "BCMMA",
}

_ARS_LABELS = {"ars", "pesos", "peso", "$", "peso argentino"}
_USD_LABELS = {"usd", "dolares", "dolar", "u$s", "us$", "mep", "dolar mep", "dolares mep"}


def fold_text(text: str) -> str:
    """Lowercase and strip accents so "Licitación" matches "licitacion"."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).lower().strip()


def classify_operation(descriptor: Optional[str]) -> TransactionKind:
    """
    Classify a free-text operation descriptor.

    Case- and accent-insensitive substring match with fixed priority:
    partial redemption > subscription > buy > sell. Returns UNKNOWN when
    nothing matches; callers decide what to do with it.
    """
    if not descriptor:
        return TransactionKind.UNKNOWN

    folded = fold_text(descriptor)
    for kind, keywords in _KEYWORDS:
        if kind == TransactionKind.SUBSCRIPTION and _LIC_ABBREVIATION.search(folded):
            return kind
        if any(keyword in folded for keyword in keywords):
            return kind
    return TransactionKind.UNKNOWN


def normalize_instrument_id(raw: Any) -> Optional[str]:
    """Uppercase, drop whitespace and apply known ticker aliases."""
    if raw is None:
        return None
    compact = "".join(str(raw).split()).upper()
    if not compact:
        return None
    return _TICKER_ALIASES.get(compact, compact)


def normalize_currency(raw: Any) -> Optional[Currency]:
    """Map a brokerage currency label to ARS/USD; None if unrecognized."""
    if raw is None:
        return None
    if isinstance(raw, Currency):
        return raw
    label = fold_text(str(raw))
    if label in _ARS_LABELS:
        return Currency.ARS
    if label in _USD_LABELS or "dolar" in label:
        return Currency.USD
    if "peso" in label:
        return Currency.ARS
    return None
