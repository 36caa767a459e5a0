"""Dependency injection for FastAPI."""

from fastapi import Depends

from cartera.app_context import AppContext, get_app_context
from cartera.services import CacheCoordinator, PortfolioEngine


def get_context() -> AppContext:
    """Provide the shared AppContext."""
    return get_app_context()


def get_portfolio_engine(context: AppContext = Depends(get_context)) -> PortfolioEngine:
    """Provide PortfolioEngine instance."""
    return context.portfolio


def get_cache_coordinator(context: AppContext = Depends(get_context)) -> CacheCoordinator:
    """Provide the shared CacheCoordinator."""
    return context.cache
