"""
duosync.infra.database – PostgreSQL async engine, session, models and repositories.

Public API
──────────
  build_engine, build_session_factory, init_db, close_engine, ensure_database_exists
  Base, User, BusyInterval, RecurrenceException (models)
  BaseRepository, UserRepository, IntervalRepository, RecurrenceExceptionRepository
"""
from duosync.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)
from duosync.infra.database.models import (
    Base,
    BusyInterval,
    RecurrenceException,
    User,
)
from duosync.infra.database.repositories import (
    BaseRepository,
    IntervalRepository,
    RecurrenceExceptionRepository,
    UserRepository,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "init_db",
    "close_engine",
    "ensure_database_exists",
    "Base",
    "User",
    "BusyInterval",
    "RecurrenceException",
    "BaseRepository",
    "UserRepository",
    "IntervalRepository",
    "RecurrenceExceptionRepository",
]
