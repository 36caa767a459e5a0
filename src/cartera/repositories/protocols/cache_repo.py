"""Cache repository protocol."""

from typing import Protocol, Optional

from cartera.domain.models import CacheEntry


class CacheRepository(Protocol):
    """Interface for cache entry storage."""

    def get(self, key: str) -> Optional[CacheEntry]:
        """Get the entry stored under key, regardless of age."""
        ...

    def put(self, entry: CacheEntry) -> CacheEntry:
        """Insert or replace the entry for entry.key."""
        ...

    def delete(self, key: str) -> bool:
        """Delete the entry for key; return True if one existed."""
        ...

    def keys(self) -> list[str]:
        """List all stored keys."""
        ...
