"""
Pytest configuration and fixtures for the valuation engine tests.

This module provides:
- Time helpers and a controllable clock for Buenos Aires time
- Factory helpers for transactions and raw brokerage records
- Deterministic and failing brokerage gateways
- Cache, repository, service and API client fixtures
"""

import asyncio
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker, Session

from cartera.app_context import AppContext, set_app_context
from cartera.config.settings import Settings, reset_settings, set_settings
from cartera.core.timezone import LOCAL_TZ
from cartera.domain.models import (
    Currency,
    FxQuote,
    FxRateUsed,
    NATIVE_USD,
    Transaction,
    TransactionKind,
)
from cartera.main import app
from cartera.repositories import InMemoryCacheRepository
from cartera.repositories.sqlalchemy import Base, SqlAlchemyCacheRepository
# Import ORM models to register them with Base before creating tables
from cartera.repositories.sqlalchemy import orm_models  # noqa: F401
from cartera.services import CacheCoordinator, FxResolver, MarketDataService, PortfolioEngine, TtlPolicy


# =============================================================================
# TIME HELPERS
# =============================================================================


def local_datetime(
    year: int,
    month: int,
    day: int,
    hour: int = 10,
    minute: int = 0,
    second: int = 0,
) -> datetime:
    """Create a localized datetime in Buenos Aires time."""
    return LOCAL_TZ.localize(datetime(year, month, day, hour, minute, second))


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def fixed_now() -> datetime:
    """Fixed 'now' timestamp for deterministic tests."""
    return local_datetime(2024, 6, 30, 14, 30, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    """Controllable clock starting at fixed_now."""
    return FakeClock(fixed_now)


AS_OF = date(2024, 6, 30)


# =============================================================================
# ASSERTION HELPERS
# =============================================================================


def assert_decimal_equal(actual: Decimal, expected: Any, places: int = 6) -> None:
    """Assert two decimals are equal after rounding to `places` decimals."""
    quantum = Decimal(1).scaleb(-places)
    expected = Decimal(str(expected))
    assert actual.quantize(quantum) == expected.quantize(quantum), f"{actual} != {expected}"


# =============================================================================
# FACTORY HELPERS
# =============================================================================


def make_transaction(
    kind: TransactionKind,
    quantity: Any,
    unit_price_usd: Any,
    on: date = date(2024, 1, 2),
    fees_usd: Any = "0",
    instrument_id: str = "KO",
    total_usd: Optional[Any] = None,
    fx_rate_used: FxRateUsed = NATIVE_USD,
) -> Transaction:
    """Build a USD transaction directly, bypassing normalization."""
    quantity = Decimal(str(quantity))
    unit_price = Decimal(str(unit_price_usd))
    total = Decimal(str(total_usd)) if total_usd is not None else quantity * unit_price
    fees = Decimal(str(fees_usd))
    return Transaction(
        instrument_id=instrument_id,
        kind=kind,
        date=on,
        quantity=quantity,
        unit_price=unit_price,
        total_amount=total,
        fees=fees,
        original_currency=Currency.USD,
        unit_price_usd=unit_price,
        total_amount_usd=total,
        fees_usd=fees,
        fx_rate_used=fx_rate_used,
    )


def make_order(
    operation: str,
    ticker: str,
    quantity: Any,
    price: Any,
    on: str,
    currency: str = "Dólares",
    amount: Optional[Any] = None,
    fees: Any = 0,
    operated_quantity: Optional[Any] = None,
    operated_price: Any = -1,
) -> dict[str, Any]:
    """Build a raw record in the brokerage order shape."""
    if amount is None:
        amount = float(Decimal(str(quantity)) * Decimal(str(price))) if price not in (-1, None) else -1
    return {
        "Operacion": operation,
        "Ticker": ticker,
        "Moneda": currency,
        "Cantidad": quantity,
        "CantidadOperada": operated_quantity if operated_quantity is not None else quantity,
        "Precio": price,
        "Precio Operado": operated_price,
        "Monto": amount,
        "Costos": fees,
        "Fecha": on,
    }


def make_resolver(
    rates: Optional[dict[date, Any]] = None,
    current_rate: Optional[Any] = None,
    max_lookback_days: Optional[int] = None,
) -> FxResolver:
    """Build an FxResolver from {date: rate}."""
    series = [FxQuote(date=d, rate=Decimal(str(r))) for d, r in (rates or {}).items()]
    current = Decimal(str(current_rate)) if current_rate is not None else None
    return FxResolver(series, current_rate=current, max_lookback_days=max_lookback_days)


# =============================================================================
# GATEWAY FIXTURES
# =============================================================================


def default_orders() -> list[dict[str, Any]]:
    return [
        make_order("Compra", "KO", 10, 100, "2024-01-02"),
        make_order("Compra", "KO", 10, 120, "2024-01-03"),
        make_order("Venta", "KO", 5, 130, "2024-01-04"),
        make_order("Licitación", "GD30", 10, -1, "2024-01-05", amount=900),
        make_order("Rescate Parcial", "GD30", 3, 0, "2024-01-09", amount=0),
        make_order("Compra", "MERV", 10, 9000, "05/01/2024", currency="Pesos"),
        # Cash-only movement, never a trade
        {"Operacion": "Depósito", "Ticker": None, "Cantidad": 0, "Monto": 5000, "Fecha": "2024-01-02"},
    ]


def default_movements() -> list[dict[str, Any]]:
    return [
        {"descripcion": "Renta / GD30", "ticker": "GD30", "tipo": "Cupón",
         "Liquidacion": "2024-01-09", "moneda": "Dólares", "importe": 20},
        {"descripcion": "Renta / GD30", "ticker": "GD30", "tipo": "Cupón",
         "Liquidacion": "2024-01-09", "moneda": "Pesos", "importe": -900},
    ]


def default_fx_history() -> list[dict[str, Any]]:
    return [
        {"casa": "oficial", "compra": 800, "venta": 840, "fecha": "2024-01-01"},
        {"casa": "bolsa", "compra": 890, "venta": 910, "fecha": "2024-01-01"},
        {"casa": "oficial", "compra": 810, "venta": 850, "fecha": "2024-01-10"},
        {"casa": "bolsa", "compra": 940, "venta": 960, "fecha": "2024-01-10"},
    ]


def default_schedules() -> dict[str, list[dict[str, Any]]]:
    return {
        "GD30": [
            {"date": "2024-01-09", "coupon": "2", "amortization": "3", "residualValue": 97,
             "rent": 2, "amortizationValue": 3, "cashflow": 5, "currency": 2},
            {"date": "2025-07-09", "coupon": "2", "amortization": "30", "residualValue": 67,
             "rent": 2, "amortizationValue": 30, "cashflow": 32, "currency": 2},
            {"date": "2026-07-09", "coupon": "1", "amortization": "67", "residualValue": 0,
             "rent": 1, "amortizationValue": 67, "cashflow": 68, "currency": 2},
        ],
    }


class DeterministicGateway:
    """
    Brokerage gateway with fixed data and call counters.

    Also serves FX history and credentials. `delay` makes every fetch yield
    to the event loop so concurrent callers can overlap.
    """

    def __init__(
        self,
        orders: Optional[list] = None,
        movements: Optional[list] = None,
        fx_history: Optional[list] = None,
        current_rate: Optional[float] = 1000,
        quotes: Optional[dict[str, dict]] = None,
        price_history: Optional[dict[str, list]] = None,
        schedules: Optional[dict[str, list]] = None,
        delay: float = 0.0,
    ):
        self.orders = default_orders() if orders is None else orders
        self.movements = default_movements() if movements is None else movements
        self.fx_history = default_fx_history() if fx_history is None else fx_history
        self.current_rate = current_rate
        self.quotes = (
            {
                "KO": {"price": 150, "currency": "USD"},
                "GD30": {"price": 95, "currency": "USD"},
                "MERV": {"price": 12000, "currency": "ARS"},
            }
            if quotes is None
            else quotes
        )
        self.price_history = (
            {"GD30": [{"date": "2024-01-08", "close": 95}]} if price_history is None else price_history
        )
        self.schedules = default_schedules() if schedules is None else schedules
        self.delay = delay
        self.calls: dict[str, int] = {}

    async def _record(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        await asyncio.sleep(self.delay)

    async def get_token(self) -> str:
        await self._record("get_token")
        return "test-token"

    async def fetch_transactions(self, from_date, to_date, token) -> list:
        await self._record("fetch_transactions")
        return [dict(o) for o in self.orders]

    async def fetch_account_movements(self, from_date, to_date, token) -> list:
        await self._record("fetch_account_movements")
        return [dict(m) for m in self.movements]

    async def fetch_current_fx_rate(self, token) -> Any:
        await self._record("fetch_current_fx_rate")
        if self.current_rate is None:
            raise ConnectionError("MEP quote unavailable")
        return [{"Descripcion": "Dólar MEP", "PrecioCompra": self.current_rate - 10,
                 "PrecioVenta": self.current_rate + 10}]

    async def fetch_market_quote(self, instrument_id, token) -> dict:
        await self._record("fetch_market_quote")
        return dict(self.quotes.get(instrument_id, {}))

    async def fetch_price_history(self, instrument_id, token) -> list:
        await self._record("fetch_price_history")
        return [dict(r) for r in self.price_history.get(instrument_id, [])]

    async def fetch_bond_schedule(self, instrument_id, token) -> list:
        await self._record("fetch_bond_schedule")
        return [dict(r) for r in self.schedules.get(instrument_id, [])]

    async def fetch_fx_history(self) -> list:
        await self._record("fetch_fx_history")
        if self.fx_history is None:
            raise ConnectionError("FX history unavailable")
        return [dict(r) for r in self.fx_history]


class FailingGateway(DeterministicGateway):
    """Gateway whose every fetch raises."""

    async def _record(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        raise ConnectionError("Network unavailable")


@pytest.fixture
def gateway() -> DeterministicGateway:
    """Provide a deterministic brokerage gateway."""
    return DeterministicGateway()


# =============================================================================
# SETTINGS / CACHE FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def test_settings():
    """Isolated settings for every test."""
    settings = Settings(_env_file=None)
    set_settings(settings)
    yield settings
    reset_settings()


@pytest.fixture
def memory_repo() -> InMemoryCacheRepository:
    """Provide an empty in-memory cache repository."""
    return InMemoryCacheRepository()


@pytest.fixture
def cache(memory_repo, clock) -> CacheCoordinator:
    """Provide a CacheCoordinator on a fake clock."""
    return CacheCoordinator(memory_repo, ttl_policy=TtlPolicy(), clock=clock, enabled=True)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="function")
def test_engine():
    """Create test database engine with shared in-memory SQLite."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def test_session(test_engine) -> Session:
    """Create test database session."""
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sql_cache_repo(test_session) -> SqlAlchemyCacheRepository:
    """Provide test SQLAlchemy cache repository."""
    return SqlAlchemyCacheRepository(test_session)


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def market_data_service(gateway, cache) -> MarketDataService:
    """Provide MarketDataService over the deterministic gateway."""
    return MarketDataService(gateway=gateway, credentials=gateway, fx_history=gateway, cache=cache)


@pytest.fixture
def portfolio_engine(market_data_service, test_settings) -> PortfolioEngine:
    """Provide PortfolioEngine over the deterministic gateway."""
    return PortfolioEngine(market_data_service, settings=test_settings)


# =============================================================================
# API FIXTURES
# =============================================================================


@pytest.fixture
def app_context(gateway, memory_repo, test_settings) -> AppContext:
    """Provide an AppContext wired to the deterministic gateway."""
    context = AppContext(
        settings=test_settings,
        gateway=gateway,
        credentials=gateway,
        fx_history=gateway,
        cache_repository=memory_repo,
    )
    set_app_context(context)
    yield context
    set_app_context(None)


@pytest.fixture
def client(app_context) -> TestClient:
    """Create test client bound to the deterministic AppContext."""
    with TestClient(app) as test_client:
        yield test_client
