"""Application context: composition root for the engine.

Builds one CacheCoordinator and injects it into every service, so the
cache is shared by the API and in-process callers alike.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from cartera.config.settings import Settings, get_settings
from cartera.providers import (
    ArgentinaDatosFxProvider,
    BrokerageGateway,
    CredentialProvider,
    FxHistoryProvider,
    StaticCredentialProvider,
    StubBrokerageGateway,
)
from cartera.repositories import CacheRepository, InMemoryCacheRepository
from cartera.repositories.sqlalchemy import SqlAlchemyCacheRepository, get_session, init_db
from cartera.services import CacheCoordinator, MarketDataService, PortfolioEngine, TtlPolicy

logger = logging.getLogger(__name__)


class AppContext:
    """
    Application context providing access to all services.

    Collaborators default to the offline stub gateway; pass real ones to
    talk to a brokerage.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        gateway: Optional[BrokerageGateway] = None,
        credentials: Optional[CredentialProvider] = None,
        fx_history: Optional[FxHistoryProvider] = None,
        cache_repository: Optional[CacheRepository] = None,
    ):
        self._settings = settings or get_settings()
        self._gateway = gateway
        self._credentials = credentials
        self._fx_history = fx_history
        self._cache_repository = cache_repository
        self._session: Optional[Session] = None

        # Service instances (lazy initialized)
        self._cache: Optional[CacheCoordinator] = None
        self._market_data: Optional[MarketDataService] = None
        self._portfolio: Optional[PortfolioEngine] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def gateway(self) -> BrokerageGateway:
        if self._gateway is None:
            self._gateway = StubBrokerageGateway()
        return self._gateway

    @property
    def credentials(self) -> CredentialProvider:
        if self._credentials is None:
            self._credentials = StaticCredentialProvider()
        return self._credentials

    @property
    def fx_history(self) -> FxHistoryProvider:
        if self._fx_history is None:
            stub_gateway = isinstance(self.gateway, StubBrokerageGateway)
            # Stub rates only pair with stub transactions
            if self._settings.fx_history_source == "stub" and stub_gateway:
                self._fx_history = self.gateway
            else:
                if not stub_gateway:
                    logger.info("Real gateway configured; using ArgentinaDatos FX history")
                self._fx_history = ArgentinaDatosFxProvider(
                    self._settings.fx_history_url,
                    timeout=self._settings.http_timeout_seconds,
                )
        return self._fx_history

    @property
    def cache_repository(self) -> CacheRepository:
        """In-memory unless a cache database URL is configured."""
        if self._cache_repository is None:
            if self._settings.cache_database_url:
                init_db()
                self._session = get_session()
                self._cache_repository = SqlAlchemyCacheRepository(self._session)
            else:
                self._cache_repository = InMemoryCacheRepository()
        return self._cache_repository

    @property
    def cache(self) -> CacheCoordinator:
        """Get the shared CacheCoordinator instance."""
        if self._cache is None:
            self._cache = CacheCoordinator(
                self.cache_repository,
                ttl_policy=TtlPolicy.from_settings(self._settings),
                enabled=self._settings.cache_enabled,
            )
        return self._cache

    @property
    def market_data(self) -> MarketDataService:
        """Get the MarketDataService instance."""
        if self._market_data is None:
            self._market_data = MarketDataService(
                gateway=self.gateway,
                credentials=self.credentials,
                fx_history=self.fx_history,
                cache=self.cache,
            )
        return self._market_data

    @property
    def portfolio(self) -> PortfolioEngine:
        """Get the PortfolioEngine instance."""
        if self._portfolio is None:
            self._portfolio = PortfolioEngine(self.market_data, settings=self._settings)
        return self._portfolio

    def close(self) -> None:
        """Clean up resources."""
        if self._session:
            self._session.close()
            self._session = None


# Global application context
_app_context: Optional[AppContext] = None


def get_app_context() -> AppContext:
    """Get or create the global application context."""
    global _app_context
    if _app_context is None:
        _app_context = AppContext()
    return _app_context


def set_app_context(context: Optional[AppContext]) -> None:
    """Set (or clear) the global application context."""
    global _app_context
    _app_context = context
