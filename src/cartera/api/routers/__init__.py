"""API routers package."""

from cartera.api.routers.portfolio import router as portfolio_router
from cartera.api.routers.instruments import router as instruments_router
from cartera.api.routers.cache import router as cache_router

__all__ = [
    "portfolio_router",
    "instruments_router",
    "cache_router",
]
