"""Cache entry model."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from cartera.domain.models.enums import CacheState


@dataclass(frozen=True)
class CacheEntry:
    """
    A cached value with its storage time and time-to-live.

    ttl=None means the entry never goes stale on its own.
    """

    key: str
    value: Any
    stored_at: datetime
    ttl: Optional[timedelta] = None

    def age(self, now: datetime) -> timedelta:
        """Return how long ago the entry was stored."""
        return max(now - self.stored_at, timedelta(0))

    def state(self, now: datetime) -> CacheState:
        """Return FRESH while age < ttl, STALE afterwards."""
        if self.ttl is not None and self.age(now) >= self.ttl:
            return CacheState.STALE
        return CacheState.FRESH

    def expires_in(self, now: datetime) -> Optional[timedelta]:
        """Return remaining lifetime (never negative); None when the entry never expires."""
        if self.ttl is None:
            return None
        return max(self.ttl - self.age(now), timedelta(0))
