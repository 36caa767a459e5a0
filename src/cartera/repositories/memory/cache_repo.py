"""In-memory implementation of CacheRepository."""

from typing import Optional

from cartera.domain.models import CacheEntry


class InMemoryCacheRepository:
    """Process-local cache repository backed by a dict."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        """Get the entry stored under key."""
        return self._entries.get(key)

    def put(self, entry: CacheEntry) -> CacheEntry:
        """Insert or replace an entry."""
        self._entries[entry.key] = entry
        return entry

    def delete(self, key: str) -> bool:
        """Delete an entry; return True if one existed."""
        return self._entries.pop(key, None) is not None

    def keys(self) -> list[str]:
        """List all stored keys in sorted order."""
        return sorted(self._entries)
