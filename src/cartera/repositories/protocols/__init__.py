"""Repository protocol definitions (interfaces)."""

from cartera.repositories.protocols.cache_repo import CacheRepository

__all__ = [
    "CacheRepository",
]
