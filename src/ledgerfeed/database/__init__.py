"""Database layer for ledgerfeed."""

from ledgerfeed.database.base import Database
from ledgerfeed.database.factories import create_database, create_sqlite_database
from ledgerfeed.database.sqlalchemy_db import SQLAlchemyDatabase

__all__ = ["Database", "SQLAlchemyDatabase", "create_database", "create_sqlite_database"]
