"""Collaborator protocols for external data sources."""

from datetime import date
from typing import Any, Protocol


class CredentialProvider(Protocol):
    """
    Supplies the bearer credential for brokerage calls.

    Session management lives outside the engine; tokens are cached by the
    caller under the auth namespace.
    """

    async def get_token(self) -> str:
        """Obtain a fresh bearer token."""
        ...


class BrokerageGateway(Protocol):
    """
    Async access to the brokerage API.

    Implementations return raw JSON-compatible payloads; parsing into domain
    types happens inside the engine on every reconstruction.
    """

    async def fetch_transactions(
        self, from_date: date, to_date: date, token: str
    ) -> list[dict[str, Any]]:
        """Return raw order/movement records in the date range."""
        ...

    async def fetch_account_movements(
        self, from_date: date, to_date: date, token: str
    ) -> list[dict[str, Any]]:
        """Return raw cash movements (dividends, coupons, withholdings)."""
        ...

    async def fetch_current_fx_rate(self, token: str) -> Any:
        """Return the current MEP rate as a number or the raw account quote list."""
        ...

    async def fetch_market_quote(self, instrument_id: str, token: str) -> dict[str, Any]:
        """Return {price, currency, asOf} for an instrument."""
        ...

    async def fetch_price_history(self, instrument_id: str, token: str) -> list[dict[str, Any]]:
        """Return daily closes as [{date, close}] in the quote currency."""
        ...

    async def fetch_bond_schedule(self, instrument_id: str, token: str) -> list[dict[str, Any]]:
        """Return the raw cashflow schedule of a bond (empty for non-bonds)."""
        ...


class FxHistoryProvider(Protocol):
    """Async source of the historical ARS/USD series."""

    async def fetch_fx_history(self) -> list[dict[str, Any]]:
        """Return raw [{casa, compra, venta, fecha}] records."""
        ...
