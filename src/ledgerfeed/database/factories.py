"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Mapping, Optional

from ledgerfeed.database.sqlalchemy_db import SQLAlchemyDatabase

DB_PATH_ENV = "LEDGERFEED_DB_PATH"
DB_URL_ENV = "LEDGERFEED_DATABASE_URL"
DEFAULT_DB_PATH = Path("~/.ledgerfeed/ledgerfeed.db")


def sqlite_url(database_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> str:
    """Build the SQLite URL for a database file, creating its directory.

    The path falls back to LEDGERFEED_DB_PATH, then ~/.ledgerfeed/ledgerfeed.db.
    A leading "~" is expanded.
    """
    environ = os.environ if environ is None else environ
    path = Path(database_path or environ.get(DB_PATH_ENV) or DEFAULT_DB_PATH).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path}"


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks LEDGERFEED_DB_PATH
            environment variable, then defaults to ~/.ledgerfeed/ledgerfeed.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    return SQLAlchemyDatabase(sqlite_url(database_path))


def create_database(
    database_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> SQLAlchemyDatabase:
    """Create the database the CLI should use.

    An explicit path wins. Otherwise LEDGERFEED_DATABASE_URL, a full
    SQLAlchemy URL, selects any supported backend, and SQLite is the
    fallback.
    """
    environ = os.environ if environ is None else environ
    if database_path is None and environ.get(DB_URL_ENV):
        return SQLAlchemyDatabase(environ[DB_URL_ENV])
    return SQLAlchemyDatabase(sqlite_url(database_path, environ))
