"""TTL cache with single-flight fetches in front of external data."""

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional, TypeVar

from cartera.config.settings import Settings, get_settings
from cartera.core.exceptions import UpstreamUnavailableError
from cartera.core.timezone import now_local
from cartera.domain.models import CacheEntry, CacheState, DataClass
from cartera.domain.views import CacheLookup, CacheResult
from cartera.repositories.protocols import CacheRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Key namespaces
AUTH_PREFIX = "auth:"
FX_PREFIX = "fx:"
TRANSACTIONS_PREFIX = "txn:"
MOVEMENTS_PREFIX = "movements:"
QUOTE_PREFIX = "quote:"
PRICES_PREFIX = "prices:"
BOND_PREFIX = "bond:"


class CacheKeys:
    """Builders for namespaced cache keys."""

    TOKEN = f"{AUTH_PREFIX}token"
    FX_HISTORY = f"{FX_PREFIX}history"
    FX_CURRENT = f"{FX_PREFIX}current"

    # Ranged feeds are keyed by their start only: a later end date refreshes
    # the same entry instead of adding one key per day.
    @staticmethod
    def transactions(from_date) -> str:
        return f"{TRANSACTIONS_PREFIX}{from_date.isoformat()}"

    @staticmethod
    def movements(from_date) -> str:
        return f"{MOVEMENTS_PREFIX}{from_date.isoformat()}"

    @staticmethod
    def quote(instrument_id: str) -> str:
        return f"{QUOTE_PREFIX}{instrument_id}"

    @staticmethod
    def price_history(instrument_id: str) -> str:
        return f"{PRICES_PREFIX}{instrument_id}"

    @staticmethod
    def bond_schedule(instrument_id: str) -> str:
        return f"{BOND_PREFIX}{instrument_id}"


@dataclass(frozen=True)
class TtlPolicy:
    """
    Time-to-live per data class.

    - TOKEN: access credentials (30 minutes)
    - REFERENCE: account state, instrument metadata, bond schedules (24 hours)
    - QUOTE: live market prices (15 minutes)
    - HISTORY: append-only series, None = until invalidated
    """

    token: Optional[timedelta] = timedelta(minutes=30)
    reference: Optional[timedelta] = timedelta(hours=24)
    quote: Optional[timedelta] = timedelta(minutes=15)
    history: Optional[timedelta] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "TtlPolicy":
        return cls(
            token=timedelta(minutes=settings.token_ttl_minutes),
            reference=timedelta(hours=settings.reference_ttl_hours),
            quote=timedelta(minutes=settings.quote_ttl_minutes),
            history=(
                timedelta(hours=settings.history_ttl_hours)
                if settings.history_ttl_hours is not None
                else None
            ),
        )

    def ttl_for(self, data_class: DataClass) -> Optional[timedelta]:
        return {
            DataClass.TOKEN: self.token,
            DataClass.REFERENCE: self.reference,
            DataClass.QUOTE: self.quote,
            DataClass.HISTORY: self.history,
        }[data_class]


def _hours(delta: Optional[timedelta]) -> Optional[float]:
    return delta.total_seconds() / 3600 if delta is not None else None


class CacheCoordinator:
    """
    Memoizes external data per key with an EMPTY -> FRESH -> STALE lifecycle.

    Synchronous reads never block on fetches; get_or_fetch collapses
    concurrent fetches of one key into a single upstream call and serves
    stale data when the upstream fails.
    """

    def __init__(
        self,
        repository: CacheRepository,
        ttl_policy: Optional[TtlPolicy] = None,
        clock: Callable[[], datetime] = now_local,
        enabled: Optional[bool] = None,
    ):
        self._repo = repository
        self._ttl = ttl_policy or TtlPolicy.from_settings(get_settings())
        self._clock = clock
        self._enabled = get_settings().cache_enabled if enabled is None else enabled
        self._lock = threading.Lock()
        self._in_flight: dict[str, asyncio.Task] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value

    @property
    def ttl_policy(self) -> TtlPolicy:
        return self._ttl

    def get(self, key: str) -> CacheLookup:
        """
        Look up a key without fetching.

        Only FRESH entries return a value; STALE and EMPTY signal a refetch.
        """
        if not self._enabled:
            return CacheLookup(value=None, is_cached=False, age_hours=None, state=CacheState.EMPTY)

        with self._lock:
            entry = self._repo.get(key)
        if entry is None:
            logger.debug(f"Cache miss: {key}")
            return CacheLookup(value=None, is_cached=False, age_hours=None, state=CacheState.EMPTY)

        now = self._clock()
        state = entry.state(now)
        age_hours = _hours(entry.age(now))
        if state == CacheState.STALE:
            logger.debug(f"Cache stale: {key} ({age_hours:.2f}h)")
            return CacheLookup(value=None, is_cached=False, age_hours=age_hours, state=state)

        logger.debug(f"Cache hit: {key}")
        return CacheLookup(value=entry.value, is_cached=True, age_hours=age_hours, state=state)

    def put(self, key: str, value: Any, data_class: DataClass = DataClass.REFERENCE) -> Optional[CacheEntry]:
        """Store a value as FRESH now; no-op while the cache is disabled."""
        if not self._enabled:
            return None
        entry = CacheEntry(
            key=key,
            value=value,
            stored_at=self._clock(),
            ttl=self._ttl.ttl_for(data_class),
        )
        with self._lock:
            return self._repo.put(entry)

    def invalidate(self, key: str) -> bool:
        """Force a key back to EMPTY."""
        with self._lock:
            removed = self._repo.delete(key)
        if removed:
            logger.info(f"Cache invalidated: {key}")
        return removed

    def invalidate_prefix(self, prefix: str = "", preserve: tuple[str, ...] = (AUTH_PREFIX,)) -> int:
        """
        Invalidate every key starting with prefix.

        Keys under a preserved namespace survive, so clearing everything does
        not log the user out. Returns the number of keys removed.
        """
        removed = 0
        with self._lock:
            for key in self._repo.keys():
                if not key.startswith(prefix):
                    continue
                if any(key.startswith(p) for p in preserve):
                    continue
                if self._repo.delete(key):
                    removed += 1
        logger.info(f"Cache invalidated {removed} keys with prefix {prefix!r}")
        return removed

    def get_stale(self, key: str) -> Optional[Any]:
        """Return the stored value regardless of age; None when EMPTY."""
        with self._lock:
            entry = self._repo.get(key)
        return entry.value if entry else None

    def info(self, key: str) -> dict[str, Any]:
        """Describe the lifecycle state of a key."""
        with self._lock:
            entry = self._repo.get(key)
        if entry is None:
            return {
                "key": key,
                "exists": False,
                "state": CacheState.EMPTY,
                "age_hours": None,
                "expires_in_hours": None,
                "stored_at": None,
            }
        now = self._clock()
        return {
            "key": key,
            "exists": True,
            "state": entry.state(now),
            "age_hours": _hours(entry.age(now)),
            "expires_in_hours": _hours(entry.expires_in(now)),
            "stored_at": entry.stored_at,
        }

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        data_class: DataClass = DataClass.REFERENCE,
    ) -> CacheResult[T]:
        """
        Return the cached value or fetch it, at most once concurrently per key.

        Callers racing on a cold or stale key join the first fetch. A caller
        that is cancelled does not cancel the shared fetch. When the fetch
        fails, a stale value is served if one exists; otherwise
        UpstreamUnavailableError is raised. Only successful fetches are stored.
        """
        lookup = self.get(key)
        if lookup.state == CacheState.FRESH:
            return CacheResult(
                key=key,
                value=lookup.value,
                is_cached=True,
                age_hours=lookup.age_hours,
                fetched_on=self._stored_on(key),
            )

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key, fetch, data_class))
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))
        else:
            logger.debug(f"Joining in-flight fetch: {key}")

        return await asyncio.shield(task)

    async def _fetch_and_store(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        data_class: DataClass,
    ) -> CacheResult[T]:
        try:
            value = await fetch()
        except Exception as e:
            with self._lock:
                stale = self._repo.get(key)
            if stale is None:
                logger.error(f"Fetch failed for {key} and nothing cached: {e}")
                raise UpstreamUnavailableError(key, e) from e

            age_hours = _hours(stale.age(self._clock()))
            logger.warning(f"Fetch failed for {key}; serving stale value ({age_hours:.2f}h old): {e}")
            return CacheResult(
                key=key,
                value=stale.value,
                is_cached=True,
                age_hours=age_hours,
                fetched_on=stale.stored_at.date(),
                is_stale=True,
            )

        self.put(key, value, data_class)
        return CacheResult(
            key=key,
            value=value,
            is_cached=False,
            age_hours=0.0,
            fetched_on=self._clock().date(),
        )

    def _stored_on(self, key: str):
        with self._lock:
            entry = self._repo.get(key)
        return entry.stored_at.date() if entry else None
