"""
Repository layer for the source store.
CRUD functions using SQLAlchemy Core against the ``sources`` table.

Design principles:
- Functions do NOT commit - caller commits for transaction control
- Rows come back as immutable ``Source`` values, never as Row objects
- Upserts are single-statement ON CONFLICT writes, so concurrent writers of the
  same URL need no extra locking
"""

from datetime import datetime, timezone

from sqlalchemy import desc, func, or_, select
from sqlalchemy.orm import Session

from models.errors import StoreWriteFailed
from models.rag_types import Source
from utils.logger import get_logger

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _row_to_source(row) -> Source:
    return Source(
        id=row.id,
        url=row.url,
        title=row.title,
        snippet=row.snippet,
        retrieved_at=_as_utc(row.retrieved_at),
    )


def _dialect_insert(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise StoreWriteFailed(
            f"Upsert is not supported for dialect '{dialect}'", reason="unsupported_dialect"
        )
    return insert


def upsert_source(db: Session, source: Source) -> Source:
    """
    Insert a source or update the existing row with the same URL.

    Last write wins for title, snippet and retrieved_at.

    Args:
        db: Database session
        source: Source with an already-normalized URL

    Returns:
        Source: The stored row, including its id

    Note:
        Does NOT commit. Caller must commit.
    """
    from db.tables import get_table

    sources = get_table("sources")
    insert = _dialect_insert(db)
    retrieved_at = _as_utc(source.retrieved_at)

    stmt = insert(sources).values(
        url=source.url,
        title=source.title,
        snippet=source.snippet,
        retrieved_at=retrieved_at,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["url"],
        set_={
            "title": stmt.excluded.title,
            "snippet": stmt.excluded.snippet,
            "retrieved_at": stmt.excluded.retrieved_at,
        },
    )
    db.execute(stmt)

    row = db.execute(select(sources).where(sources.c.url == source.url)).one()
    logger.debug(f"Upserted source {source.url} (id: {row.id})")
    return _row_to_source(row)


def get_source_by_url(db: Session, url: str) -> Source | None:
    from db.tables import get_table

    sources = get_table("sources")
    row = db.execute(select(sources).where(sources.c.url == url)).one_or_none()
    return _row_to_source(row) if row is not None else None


def get_recent_sources(db: Session, limit: int = 20) -> list[Source]:
    """
    Most recently retrieved sources, newest first.

    Args:
        db: Database session
        limit: Maximum rows to return

    Returns:
        list[Source]: Sources ordered by retrieved_at DESC, then id DESC
    """
    from db.tables import get_table

    sources = get_table("sources")
    stmt = (
        select(sources)
        .order_by(desc(sources.c.retrieved_at), desc(sources.c.id))
        .limit(max(0, limit))
    )
    return [_row_to_source(row) for row in db.execute(stmt)]


def search_sources(db: Session, query: str, limit: int = 5) -> list[Source]:
    """
    Stored sources whose title or snippet contains ``query`` (case-insensitive).

    Args:
        db: Database session
        query: Free-text query
        limit: Maximum rows to return

    Returns:
        list[Source]: Matches, newest first; empty for a blank query
    """
    from db.tables import get_table

    needle = (query or "").strip().lower()
    if not needle:
        return []

    sources = get_table("sources")
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    stmt = (
        select(sources)
        .where(
            or_(
                func.lower(sources.c.title).like(pattern, escape="\\"),
                func.lower(sources.c.snippet).like(pattern, escape="\\"),
            )
        )
        .order_by(desc(sources.c.retrieved_at), desc(sources.c.id))
        .limit(max(0, limit))
    )
    return [_row_to_source(row) for row in db.execute(stmt)]


def count_sources(db: Session) -> int:
    from db.tables import get_table

    sources = get_table("sources")
    return db.execute(select(func.count()).select_from(sources)).scalar_one()
