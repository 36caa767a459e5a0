"""SQLAlchemy ORM model definitions."""

from sqlalchemy import Column, String, DateTime, Text, Float

from cartera.repositories.sqlalchemy.database import Base


class CacheEntryORM(Base):
    """SQLAlchemy model for a persisted cache entry (JSON payload)."""

    __tablename__ = "cache_entries"

    key = Column(String(255), primary_key=True)
    payload = Column(Text, nullable=False)
    stored_at = Column(DateTime(timezone=True), nullable=False)
    ttl_seconds = Column(Float, nullable=True)
