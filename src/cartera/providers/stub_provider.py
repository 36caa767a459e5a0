"""Stub brokerage gateway with deterministic data for offline/testing use."""

from datetime import date
from typing import Any, Optional

from cartera.core.timezone import now_local


# Orders in the brokerage "orden" shape
_STUB_ORDERS: list[dict[str, Any]] = [
    {
        "Operacion": "Compra", "Ticker": "SPY", "Moneda": "Pesos", "Cantidad": 10,
        "CantidadOperada": 10, "Precio": 45000, "Precio Operado": 45000,
        "Monto": 450000, "Costos": 2250, "Fecha": "2024-01-03",
    },
    {
        "Operacion": "Compra", "Ticker": "SPY", "Moneda": "Pesos", "Cantidad": 5,
        "CantidadOperada": 5, "Precio": 52000, "Precio Operado": 52000,
        "Monto": 260000, "Costos": 1300, "Fecha": "2024-02-12",
    },
    {
        "Operacion": "Venta", "Ticker": "SPY", "Moneda": "Pesos", "Cantidad": 4,
        "CantidadOperada": 4, "Precio": 60000, "Precio Operado": 60000,
        "Monto": 240000, "Costos": 1200, "Fecha": "2024-04-02",
    },
    {
        "Operacion": "Licitación", "Ticker": "GD30", "Moneda": "Dólares", "Cantidad": 1000,
        "CantidadOperada": 1000, "Precio": -1, "Precio Operado": -1,
        "Monto": 550, "Costos": 0, "Fecha": "2024-01-15",
    },
    {
        "Operacion": "Rescate Parcial", "Ticker": "GD30", "Moneda": "Dólares", "Cantidad": 100,
        "CantidadOperada": 100, "Precio": 0, "Precio Operado": -1,
        "Monto": 0, "Costos": 0, "Fecha": "2024-07-09",
    },
]

_STUB_MOVEMENTS: list[dict[str, Any]] = [
    {
        "descripcion": "Renta / GD30", "ticker": "GD30", "tipo": "Cupón",
        "Liquidacion": "2024-07-09", "moneda": "Dólares", "importe": 3.6,
    },
    {
        "descripcion": "Renta / GD30", "ticker": "GD30", "tipo": "Cupón",
        "Liquidacion": "2024-07-09", "moneda": "Pesos", "importe": -360,
    },
    {
        "descripcion": "Movimiento Manual / Pago de dividendos - SPY", "ticker": "SPY",
        "tipo": "Dividendo", "Liquidacion": "2024-03-20", "moneda": "Dólares", "importe": 1.5,
    },
]

_STUB_FX: list[dict[str, Any]] = [
    {"casa": "oficial", "compra": 800, "venta": 840, "fecha": "2024-01-02"},
    {"casa": "bolsa", "compra": 990, "venta": 1010, "fecha": "2024-01-02"},
    {"casa": "bolsa", "compra": 1040, "venta": 1060, "fecha": "2024-02-09"},
    {"casa": "bolsa", "compra": 1090, "venta": 1110, "fecha": "2024-04-02"},
    {"casa": "bolsa", "compra": 1290, "venta": 1310, "fecha": "2024-07-08"},
]

_STUB_QUOTES: dict[str, dict[str, Any]] = {
    "SPY": {"price": 65000, "currency": "ARS"},
    "GD30": {"price": 0.62, "currency": "USD"},
}

_STUB_PRICE_HISTORY: dict[str, list[dict[str, Any]]] = {
    "GD30": [
        {"date": "2024-07-05", "close": 0.57},
        {"date": "2024-07-08", "close": 0.58},
    ],
}

_STUB_SCHEDULES: dict[str, list[dict[str, Any]]] = {
    "GD30": [
        {"date": "2024-07-09", "coupon": "0.75", "amortization": "4", "residualValue": 96,
         "rent": 0.0036, "amortizationValue": 0.04, "cashflow": 0.0436, "currency": 2},
        {"date": "2025-01-09", "coupon": "0.75", "amortization": "8", "residualValue": 88,
         "rent": 0.0036, "amortizationValue": 0.08, "cashflow": 0.0836, "currency": 2},
        {"date": "2030-07-09", "coupon": "0.75", "amortization": "88", "residualValue": 0,
         "rent": 0.0033, "amortizationValue": 0.88, "cashflow": 0.8833, "currency": 2},
    ],
}

_STUB_MEP_RATE = 1200


class StaticCredentialProvider:
    """Credential provider returning a fixed token."""

    def __init__(self, token: str = "stub-token"):
        self._token = token

    async def get_token(self) -> str:
        return self._token


class StubBrokerageGateway:
    """
    Gateway with deterministic fake data for offline operation.

    Also implements FxHistoryProvider so one object can back every collaborator.
    """

    def __init__(self, current_rate: Optional[float] = _STUB_MEP_RATE):
        self._current_rate = current_rate

    async def fetch_transactions(
        self, from_date: date, to_date: date, token: str
    ) -> list[dict[str, Any]]:
        return [
            dict(order) for order in _STUB_ORDERS
            if from_date.isoformat() <= order["Fecha"] <= to_date.isoformat()
        ]

    async def fetch_account_movements(
        self, from_date: date, to_date: date, token: str
    ) -> list[dict[str, Any]]:
        return [dict(movement) for movement in _STUB_MOVEMENTS]

    async def fetch_current_fx_rate(self, token: str) -> Any:
        if self._current_rate is None:
            raise ConnectionError("MEP quote unavailable")
        return [
            {"Descripcion": "Dólar MEP", "PrecioCompra": self._current_rate - 10,
             "PrecioVenta": self._current_rate + 10},
        ]

    async def fetch_market_quote(self, instrument_id: str, token: str) -> dict[str, Any]:
        quote = _STUB_QUOTES.get(instrument_id)
        if quote is None:
            return {}
        return {**quote, "asOf": now_local().isoformat()}

    async def fetch_price_history(self, instrument_id: str, token: str) -> list[dict[str, Any]]:
        return [dict(row) for row in _STUB_PRICE_HISTORY.get(instrument_id, [])]

    async def fetch_bond_schedule(self, instrument_id: str, token: str) -> list[dict[str, Any]]:
        return [dict(row) for row in _STUB_SCHEDULES.get(instrument_id, [])]

    async def fetch_fx_history(self) -> list[dict[str, Any]]:
        return [dict(row) for row in _STUB_FX]
