"""Behaviour shared by every DocumentStore implementation."""

import asyncio

import pytest

from filmhub.clients.base import DELETE_FIELD, Query
from filmhub.clients.memory import MemoryDocumentStore
from filmhub.clients.sql_store import SqlDocumentStore
from filmhub.database import create_engine, init_db
from filmhub.errors import NotFound


@pytest.fixture(params=["memory", "sql"])
async def any_store(request, tmp_path):
    if request.param == "memory":
        yield MemoryDocumentStore()
        return
    store = SqlDocumentStore(create_engine(f"sqlite+aiosqlite:///{tmp_path / 'docs.db'}"))
    await init_db(store.engine)
    yield store
    await store.close()


async def test_set_get_overwrite(any_store):
    await any_store.set("things", "a", {"name": "one", "n": 1})
    await any_store.set("things", "a", {"name": "two"})

    assert await any_store.get("things", "a") == {"name": "two"}
    assert await any_store.get("things", "missing") is None


async def test_update_merges_and_deletes_fields(any_store):
    await any_store.set("users", "u1", {"admin": True, "email": "a@b.c"})
    await any_store.update("users", "u1", {"isAdmin": True, "admin": DELETE_FIELD})

    assert await any_store.get("users", "u1") == {"isAdmin": True, "email": "a@b.c"}


async def test_update_missing_document_raises(any_store):
    with pytest.raises(NotFound):
        await any_store.update("users", "nobody", {"x": 1})


async def test_delete_missing_is_noop(any_store):
    await any_store.delete("things", "missing")
    await any_store.set("things", "a", {"x": 1})
    await any_store.delete("things", "a")
    assert await any_store.get("things", "a") is None


async def test_add_generates_ids(any_store):
    first = await any_store.add("log", {"n": 1})
    second = await any_store.add("log", {"n": 2})
    assert first != second
    assert (await any_store.get("log", second)) == {"n": 2}


async def test_query_filters_orders_and_limits(any_store):
    await any_store.set("ratings", "r1", {"movieId": 1, "userId": "u1", "rating": 3.0, "createdAt": 10})
    await any_store.set("ratings", "r2", {"movieId": 1, "userId": "u2", "rating": 5.0, "createdAt": 30})
    await any_store.set("ratings", "r3", {"movieId": 2, "userId": "u1", "rating": 4.0, "createdAt": 20})
    await any_store.set("ratings", "r4", {"movieId": 1, "userId": "u3", "rating": 1.0})

    docs = await any_store.query(Query("ratings", where={"movieId": 1}, order_by="createdAt", descending=True))
    assert [d["userId"] for d in docs] == ["u2", "u1", "u3"]

    docs = await any_store.query(Query("ratings", where={"movieId": 1, "userId": "u1"}))
    assert [d["rating"] for d in docs] == [3.0]

    docs = await any_store.query(Query("ratings", order_by="createdAt", limit=2))
    assert [d["createdAt"] for d in docs] == [10, 20]


async def test_boolean_filter_does_not_match_integers(any_store):
    await any_store.set("movie_lists", "a", {"isPublic": True})
    await any_store.set("movie_lists", "b", {"isPublic": 1})
    await any_store.set("movie_lists", "c", {"isPublic": False})

    docs = await any_store.query(Query("movie_lists", where={"isPublic": True}))
    assert docs == [{"isPublic": True, "id": "a"}]


async def test_listen_delivers_initial_and_updated_results(any_store):
    seen = []
    registration = await any_store.listen(Query("reviews", where={"movieId": 7}), seen.append)
    await any_store.set("reviews", "a", {"movieId": 7})
    await any_store.set("reviews", "b", {"movieId": 8})

    assert seen[0] == []
    assert seen[1] == [{"movieId": 7, "id": "a"}]
    assert len(seen) == 3
    assert any_store.listener_count("reviews") == 1

    registration.remove()
    registration.remove()
    await any_store.set("reviews", "c", {"movieId": 7})
    assert len(seen) == 3
    assert any_store.listener_count() == 0


async def test_snapshots_remove_listener_when_closed(any_store):
    stream = any_store.snapshots(Query("watchlist", where={"userId": "u1"}))
    assert await stream.__anext__() == []

    await any_store.set("watchlist", "w1", {"userId": "u1", "movieId": 5})
    assert await asyncio.wait_for(stream.__anext__(), 1) == [{"userId": "u1", "movieId": 5, "id": "w1"}]

    await stream.aclose()
    assert any_store.listener_count("watchlist") == 0


async def test_query_results_carry_their_store_key(any_store):
    added = await any_store.add("favorites", {"userId": "u1", "movieId": 3})
    await any_store.set("favorites", "f2", {"id": "stale", "userId": "u1", "movieId": 4})

    docs = await any_store.query(Query("favorites", where={"userId": "u1"}, order_by="movieId"))
    assert [d["id"] for d in docs] == [added, "f2"]
    assert await any_store.get("favorites", added) == {"userId": "u1", "movieId": 3}


async def test_slow_snapshot_consumer_only_sees_latest_result(any_store):
    stream = any_store.snapshots(Query("watchlist", where={"userId": "u1"}))
    assert await stream.__anext__() == []

    for movie_id in (1, 2, 3):
        await any_store.set("watchlist", f"w{movie_id}", {"userId": "u1", "movieId": movie_id})

    latest = await asyncio.wait_for(stream.__anext__(), 1)
    assert sorted(d["movieId"] for d in latest) == [1, 2, 3]

    await any_store.set("watchlist", "w4", {"userId": "u1", "movieId": 4})
    assert len(await asyncio.wait_for(stream.__anext__(), 1)) == 4
    await stream.aclose()
