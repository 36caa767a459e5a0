"""Pydantic schemas for cache inspection."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class CacheInfoResponse(BaseModel):
    """Lifecycle state of one cache key."""

    key: str
    exists: bool
    state: str
    age_hours: Optional[float] = None
    expires_in_hours: Optional[float] = None
    stored_at: Optional[datetime] = None


class CacheInvalidateResponse(BaseModel):
    """Result of an invalidation."""

    removed: int
