"""SQLAlchemy repository implementations."""

from cartera.repositories.sqlalchemy.database import (
    get_engine,
    get_session_factory,
    get_session,
    init_db,
    reset_database,
    Base,
)
from cartera.repositories.sqlalchemy.cache_repo import SqlAlchemyCacheRepository

__all__ = [
    "get_engine",
    "get_session_factory",
    "get_session",
    "init_db",
    "reset_database",
    "Base",
    "SqlAlchemyCacheRepository",
]
