"""
SQLAlchemy engine configuration for the source store.
SQLite by default; any SQLAlchemy URL with ON CONFLICT support (PostgreSQL) works too.
"""

import os

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url

from utils.logger import get_logger

logger = get_logger(__name__)


def _enable_sqlite_wal(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def create_db_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine for ``database_url``.

    SQLite engines allow use from worker threads and wait up to
    DB_BUSY_TIMEOUT seconds (default: 5) on a locked database. Other backends
    get a pre-pinged connection pool sized by DB_POOL_SIZE / DB_MAX_OVERFLOW /
    DB_POOL_TIMEOUT.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        Engine: Configured SQLAlchemy engine
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        busy_timeout = float(os.getenv("DB_BUSY_TIMEOUT", "5"))
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": busy_timeout},
            echo=False,
        )
        if url.database and url.database != ":memory:":
            event.listen(engine, "connect", _enable_sqlite_wal)
        logger.info(
            "Creating database engine",
            extra={"extra_fields": {"backend": "sqlite", "database": url.database}},
        )
        return engine

    pool_size = int(os.getenv("DB_POOL_SIZE", "5"))
    max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    pool_timeout = int(os.getenv("DB_POOL_TIMEOUT", "30"))

    logger.info(
        "Creating database engine",
        extra={
            "extra_fields": {
                "backend": url.get_backend_name(),
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_timeout": pool_timeout,
            }
        },
    )

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        echo=False,
    )
