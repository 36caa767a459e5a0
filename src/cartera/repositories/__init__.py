"""Repository layer - cache storage abstractions and implementations."""

from cartera.repositories.protocols import CacheRepository
from cartera.repositories.memory import InMemoryCacheRepository

__all__ = [
    "CacheRepository",
    "InMemoryCacheRepository",
]
