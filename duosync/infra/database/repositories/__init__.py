"""Repositories for the DuoSync database."""
from duosync.infra.database.repositories.base import BaseRepository
from duosync.infra.database.repositories.interval import IntervalRepository
from duosync.infra.database.repositories.recurrence_exception import RecurrenceExceptionRepository
from duosync.infra.database.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "IntervalRepository",
    "RecurrenceExceptionRepository",
    "UserRepository",
]
