"""
SQLAlchemy table definitions for the source store.

The core owns exactly one table, ``sources``, keyed by normalized URL.
"""

from sqlalchemy import Column, DateTime, Engine, Integer, MetaData, Table, Text

from utils.logger import get_logger

logger = get_logger(__name__)

metadata = MetaData()

sources = Table(
    "sources",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("url", Text, nullable=False, unique=True),
    Column("title", Text, nullable=False),
    Column("snippet", Text, nullable=False, default=""),
    Column("retrieved_at", DateTime(timezone=True), nullable=False, index=True),
)


def get_table(name: str) -> Table:
    """
    Look up a table by name.

    Raises:
        ValueError: If table name is not recognized
    """
    table = metadata.tables.get(name)
    if table is None:
        raise ValueError(
            f"Unknown table name: {name}. Available tables: {', '.join(metadata.tables)}"
        )
    return table


def init_db(engine: Engine) -> None:
    """Create missing tables (CREATE TABLE IF NOT EXISTS semantics)."""
    metadata.create_all(engine)
    logger.info(
        "Source store schema ready",
        extra={"extra_fields": {"tables": sorted(metadata.tables)}},
    )
