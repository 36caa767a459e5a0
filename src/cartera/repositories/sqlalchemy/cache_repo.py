"""SQLAlchemy implementation of CacheRepository."""

import json
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from cartera.core.timezone import to_local
from cartera.domain.models import CacheEntry
from cartera.repositories.sqlalchemy.orm_models import CacheEntryORM


def _json_default(value: Any) -> Any:
    """Serialize the non-JSON scalars that appear in upstream payloads."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Cannot cache value of type {type(value).__name__}")


class SqlAlchemyCacheRepository:
    """
    SQLAlchemy-backed cache repository.

    Values are stored as JSON, so only JSON-compatible payloads (raw upstream
    responses) round-trip unchanged; Decimals and dates come back as strings.
    """

    def __init__(self, db: Session):
        self._db = db

    def get(self, key: str) -> Optional[CacheEntry]:
        """Get the entry stored under key."""
        orm_entry = self._db.get(CacheEntryORM, key)
        return self._to_domain(orm_entry) if orm_entry else None

    def put(self, entry: CacheEntry) -> CacheEntry:
        """Insert or replace an entry."""
        payload = json.dumps(entry.value, default=_json_default)
        ttl_seconds = entry.ttl.total_seconds() if entry.ttl is not None else None

        orm_entry = self._db.get(CacheEntryORM, entry.key)
        if orm_entry:
            orm_entry.payload = payload
            orm_entry.stored_at = entry.stored_at
            orm_entry.ttl_seconds = ttl_seconds
        else:
            orm_entry = CacheEntryORM(
                key=entry.key,
                payload=payload,
                stored_at=entry.stored_at,
                ttl_seconds=ttl_seconds,
            )
            self._db.add(orm_entry)

        self._db.commit()
        self._db.refresh(orm_entry)
        return self._to_domain(orm_entry)

    def delete(self, key: str) -> bool:
        """Delete an entry; return True if one existed."""
        deleted = (
            self._db.query(CacheEntryORM)
            .filter(CacheEntryORM.key == key)
            .delete()
        )
        self._db.commit()
        return deleted > 0

    def keys(self) -> list[str]:
        """List all stored keys in sorted order."""
        rows = self._db.query(CacheEntryORM.key).order_by(CacheEntryORM.key).all()
        return [row[0] for row in rows]

    @staticmethod
    def _to_domain(orm: CacheEntryORM) -> CacheEntry:
        """Convert ORM entry to domain model."""
        return CacheEntry(
            key=orm.key,
            value=json.loads(orm.payload),
            stored_at=to_local(orm.stored_at),
            ttl=timedelta(seconds=orm.ttl_seconds) if orm.ttl_seconds is not None else None,
        )
