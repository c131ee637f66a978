"""Source store: idempotent persistence of discovered web sources."""

import asyncio
from collections.abc import Sequence

from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError

from config.config import Config
from db.engine import create_db_engine
from db.repository import get_recent_sources, search_sources, upsert_source
from db.session import make_session_factory, session_scope
from db.tables import init_db
from models.errors import StoreWriteFailed
from models.rag_types import Source
from tools.web.url_utils import normalize_url
from utils.logger import get_logger

logger = get_logger(__name__)


class SourceStore:
    """
    Owns the persisted ``sources`` rows.

    Sync methods do the SQLAlchemy work; the ``a*`` variants run it on a worker
    thread so callers on the event loop never block on the database.
    """

    def __init__(self, engine: Engine, *, create_schema: bool = True):
        self.engine = engine
        self._session_factory = make_session_factory(engine)
        if create_schema:
            init_db(engine)

    @classmethod
    def from_config(cls, config: Config) -> "SourceStore":
        return cls(create_db_engine(config.database_url))

    @classmethod
    def from_url(cls, database_url: str) -> "SourceStore":
        return cls(create_db_engine(database_url))

    @staticmethod
    def _normalized(source: Source) -> Source:
        url = normalize_url(source.url)
        if not url:
            raise StoreWriteFailed(f"Cannot store source without a valid URL: {source.url!r}",
                                   reason="invalid_url")
        if url == source.url:
            return source
        return Source(
            url=url,
            title=source.title,
            snippet=source.snippet,
            retrieved_at=source.retrieved_at,
            id=source.id,
        )

    def upsert(self, source: Source) -> Source:
        """
        Insert or update one source by normalized URL.

        Raises:
            StoreWriteFailed: If the write could not be committed
        """
        return self.upsert_many([source])[0]

    def upsert_many(self, sources: Sequence[Source]) -> list[Source]:
        """
        Upsert a batch of sources in a single transaction.

        Raises:
            StoreWriteFailed: If the transaction could not be committed
        """
        if not sources:
            return []
        batch = [self._normalized(s) for s in sources]
        try:
            with session_scope(self._session_factory) as db:
                stored = [upsert_source(db, source) for source in batch]
        except SQLAlchemyError as exc:
            raise StoreWriteFailed(f"Failed to persist {len(batch)} source(s): {exc}",
                                   reason="db_error") from exc

        logger.info(
            "Persisted sources",
            extra={"extra_fields": {"count": len(stored), "urls": [s.url for s in stored]}},
        )
        return stored

    def recent(self, limit: int = 20) -> list[Source]:
        with session_scope(self._session_factory) as db:
            return get_recent_sources(db, limit)

    def search(self, query: str, limit: int = 5) -> list[Source]:
        with session_scope(self._session_factory) as db:
            return search_sources(db, query, limit)

    async def aupsert_many(self, sources: Sequence[Source]) -> list[Source]:
        return await asyncio.to_thread(self.upsert_many, list(sources))

    async def arecent(self, limit: int = 20) -> list[Source]:
        return await asyncio.to_thread(self.recent, limit)

    async def asearch(self, query: str, limit: int = 5) -> list[Source]:
        return await asyncio.to_thread(self.search, query, limit)

    def close(self) -> None:
        self.engine.dispose()
