"""In-memory repository implementations."""

from cartera.repositories.memory.cache_repo import InMemoryCacheRepository

__all__ = [
    "InMemoryCacheRepository",
]
