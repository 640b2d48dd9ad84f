"""
duosync.infra.database.models – SQLAlchemy 2.0 ORM models.
"""
from duosync.infra.database.models.base import Base, TimestampMixin
from duosync.infra.database.models.interval import BusyInterval, RecurrenceException
from duosync.infra.database.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "BusyInterval",
    "RecurrenceException",
]
