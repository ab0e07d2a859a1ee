"""Database layer for visadesk application."""

from visadesk.database.base import Database
from visadesk.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
