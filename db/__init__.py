"""
Database package for the source store.
Provides the SQLAlchemy engine factory, table definitions, repository functions
and the SourceStore facade used by the orchestrator.
"""

from db.engine import create_db_engine
from db.repository import (
    count_sources,
    get_recent_sources,
    get_source_by_url,
    search_sources,
    upsert_source,
)
from db.session import make_session_factory, session_scope
from db.source_store import SourceStore
from db.tables import get_table, init_db, metadata

__all__ = [
    "SourceStore",
    "count_sources",
    "create_db_engine",
    "get_recent_sources",
    "get_source_by_url",
    "get_table",
    "init_db",
    "make_session_factory",
    "metadata",
    "search_sources",
    "session_scope",
    "upsert_source",
]
