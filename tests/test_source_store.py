"""
SourceStore tests against a temporary SQLite database.
"""

import asyncio
import threading
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from conftest import FIXED_TIME, make_source
from db.repository import count_sources, get_source_by_url
from db.session import make_session_factory, session_scope
from models.errors import StoreWriteFailed


def _count(store) -> int:
    with session_scope(make_session_factory(store.engine)) as db:
        return count_sources(db)


@pytest.mark.unit
def test_upsert_inserts_and_assigns_id(store):
    stored = store.upsert(make_source("https://a.com", "A", "alpha"))

    assert stored.id is not None
    assert stored.url == "https://a.com"
    assert stored.retrieved_at == FIXED_TIME
    assert _count(store) == 1


@pytest.mark.unit
def test_upsert_is_idempotent_and_last_write_wins(store):
    first = store.upsert(make_source("https://a.com", "Old title", "old"))
    later = FIXED_TIME + timedelta(hours=1)
    second = store.upsert(make_source("https://A.com/", "New title", "new", retrieved_at=later))

    assert _count(store) == 1
    assert second.id == first.id
    assert second.title == "New title"
    assert second.snippet == "new"
    assert second.retrieved_at == later


@pytest.mark.unit
def test_upsert_normalizes_url(store):
    stored = store.upsert(make_source("HTTPS://Example.com:443/path/#frag", "E"))
    assert stored.url == "https://example.com/path"


@pytest.mark.unit
def test_invalid_url_is_rejected(store):
    with pytest.raises(StoreWriteFailed) as exc_info:
        store.upsert(make_source("/not/a/url", "bad"))
    assert exc_info.value.reason == "invalid_url"
    assert _count(store) == 0


@pytest.mark.unit
def test_upsert_many_is_one_transaction(store):
    sources = [make_source(f"https://s{i}.com", f"S{i}") for i in range(3)]
    stored = store.upsert_many(sources)

    assert [s.url for s in stored] == ["https://s0.com", "https://s1.com", "https://s2.com"]
    assert _count(store) == 3
    assert store.upsert_many([]) == []


@pytest.mark.unit
def test_recent_orders_newest_first(store):
    for i in range(3):
        store.upsert(make_source(f"https://s{i}.com", f"S{i}", retrieved_at=FIXED_TIME + timedelta(minutes=i)))

    recent = store.recent(limit=2)

    assert [s.title for s in recent] == ["S2", "S1"]


@pytest.mark.unit
def test_search_matches_title_or_snippet(store):
    store.upsert(make_source("https://a.com", "Python asyncio guide", "event loops"))
    store.upsert(make_source("https://b.com", "Rust book", "ownership and PYTHON bindings"))
    store.upsert(make_source("https://c.com", "Go tour", "goroutines"))

    assert {s.url for s in store.search("python")} == {"https://a.com", "https://b.com"}
    assert store.search("   ") == []
    assert store.search("100%") == []


@pytest.mark.unit
def test_concurrent_upserts_of_same_url_leave_one_row(store):
    errors = []

    def worker(n):
        try:
            store.upsert(make_source("https://same.com", f"writer {n}"))
        except StoreWriteFailed as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert _count(store) == 1
    with session_scope(make_session_factory(store.engine)) as db:
        row = get_source_by_url(db, "https://same.com")
    assert row.title.startswith("writer ")


@pytest.mark.unit
def test_database_errors_become_store_write_failed(store, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr("db.source_store.upsert_source", broken)

    with pytest.raises(StoreWriteFailed) as exc_info:
        store.upsert(make_source("https://a.com", "A"))
    assert exc_info.value.reason == "db_error"


@pytest.mark.unit
def test_async_facades(store):
    async def scenario():
        await store.aupsert_many([make_source("https://a.com", "Alpha", "first letter")])
        recent = await store.arecent(5)
        found = await store.asearch("letter", 5)
        return recent, found

    recent, found = asyncio.run(scenario())

    assert [s.url for s in recent] == ["https://a.com"]
    assert [s.title for s in found] == ["Alpha"]


@pytest.mark.unit
def test_unsupported_dialect_becomes_store_write_failed(store, monkeypatch):
    monkeypatch.setattr(store.engine.dialect, "name", "mssql")

    with pytest.raises(StoreWriteFailed) as exc_info:
        store.upsert(make_source("https://a.com", "A"))
    assert exc_info.value.reason == "unsupported_dialect"
