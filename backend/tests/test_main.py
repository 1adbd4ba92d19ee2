"""Composition root wiring and lifecycle."""

import httpx

from filmhub.clients.memory import MemoryDocumentStore
from filmhub.clients.sql_store import SqlDocumentStore
from filmhub.config import Settings
from filmhub.main import FilmHub
from filmhub.models.records import Review

from conftest import PASSWORD, eventually


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "tmdb_api_key": "test-key",
        "blob_storage_root": str(tmp_path / "blobs"),
        "bcrypt_rounds": 4,
        "document_store": "memory",
        **overrides,
    }
    return Settings(**values)


async def test_hub_probes_catalog_and_wires_repositories(tmp_path, fake_tmdb):
    hub = FilmHub.create(make_settings(tmp_path), transport=httpx.MockTransport(fake_tmdb.handler))

    async with hub:
        assert hub.integrations == {"tmdb": {"status": "ok"}}
        assert isinstance(hub.store, MemoryDocumentStore)

        user = (await hub.auth.register("zoe@example.com", PASSWORD)).unwrap()
        review_id = (await hub.movies.create_review(
            Review(movie_id=1, user_id=user.uid, review_text="Nice")
        )).unwrap()

    assert hub.tasks.pending == 0
    assert (await hub.store.get("movie_stats", "1"))["totalReviews"] == 1
    assert (await hub.store.get("reviews", review_id))["reviewText"] == "Nice"


async def test_probe_without_key(tmp_path):
    hub = FilmHub.create(make_settings(tmp_path, tmdb_api_key=None))
    async with hub:
        assert hub.integrations == {"tmdb": {"status": "not_configured"}}


async def test_probe_reports_catalog_error(tmp_path, fake_tmdb):
    fake_tmdb.status_override = 401
    async with FilmHub.create(make_settings(tmp_path), transport=httpx.MockTransport(fake_tmdb.handler)) as hub:
        assert hub.integrations == {"tmdb": {"status": "error"}}


async def test_exit_closes_holder_subscriptions(tmp_path, fake_tmdb):
    hub = FilmHub.create(make_settings(tmp_path), transport=httpx.MockTransport(fake_tmdb.handler))
    async with hub:
        user = (await hub.auth.register("yan@example.com", PASSWORD)).unwrap()
        lists = hub.list_holder()
        lists.start_realtime(user.uid)
        await eventually(lambda: hub.store.listener_count() == 4)

    assert hub.store.listener_count() == 0
    assert lists.active_subscriptions == []


async def test_sql_store_is_initialised(tmp_path, fake_tmdb):
    settings = make_settings(
        tmp_path,
        document_store="sql",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'hub.db'}",
    )
    async with FilmHub.create(settings, transport=httpx.MockTransport(fake_tmdb.handler)) as hub:
        assert isinstance(hub.store, SqlDocumentStore)
        user = (await hub.auth.register("sql@example.com", PASSWORD)).unwrap()
        assert (await hub.auth.get_user_data(user.uid)).unwrap().email == "sql@example.com"
