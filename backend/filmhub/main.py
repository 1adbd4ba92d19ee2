"""FilmHub data layer entry point: wiring, startup probe and shutdown."""

import logging
from typing import Optional

import httpx

from filmhub.clients.base import AuthProvider, BlobStorage, DocumentStore
from filmhub.clients.blob_storage import LocalBlobStorage
from filmhub.clients.local_auth import LocalAuthProvider
from filmhub.clients.memory import MemoryDocumentStore
from filmhub.clients.sql_store import SqlDocumentStore
from filmhub.clients.tmdb import TmdbClient
from filmhub.config import Settings, settings as default_settings
from filmhub.database import create_engine, init_db
from filmhub.repositories.access import AccessGuard
from filmhub.repositories.admin_repository import AdminRepository
from filmhub.repositories.auth_repository import AuthRepository
from filmhub.repositories.background import BackgroundTasks
from filmhub.repositories.list_repository import ListRepository
from filmhub.repositories.movie_repository import MovieRepository
from filmhub.state.admin import AdminHolder
from filmhub.state.auth import AuthHolder
from filmhub.state.base import StateHolder
from filmhub.state.lists import ListHolder
from filmhub.state.movies import MovieDetailHolder, MovieListHolder
from filmhub.state.profile import ProfileHolder

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


class FilmHub:
    """Owns the backend handles, repositories and every holder it hands out.

    Use as ``async with FilmHub.create(settings) as hub``.
    """

    def __init__(
        self,
        settings: Settings,
        store: DocumentStore,
        auth: AuthProvider,
        blobs: BlobStorage,
        catalog: TmdbClient,
    ):
        self.settings = settings
        self.store = store
        self.auth_provider = auth
        self.blobs = blobs
        self.catalog = catalog
        self.integrations: dict = {}
        self._holders: list[StateHolder] = []

        self.tasks = BackgroundTasks()
        self.guard = AccessGuard(auth, store, enforce=settings.enforce_permissions)

        self.auth = AuthRepository(auth, store, blobs)
        self.movies = MovieRepository(catalog, store, self.guard, self.tasks)
        self.lists = ListRepository(store, catalog, self.guard, public_lists_limit=settings.public_lists_limit)
        self.admin = AdminRepository(
            store, catalog, self.guard, self.tasks,
            on_review_deleted=self.movies.schedule_stats_refresh,
        )

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        store: Optional[DocumentStore] = None,
        auth: Optional[AuthProvider] = None,
        blobs: Optional[BlobStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "FilmHub":
        """Build the default handles for anything not passed in."""
        settings = settings or default_settings
        if store is None:
            if settings.uses_sql_store:
                store = SqlDocumentStore(create_engine(settings.database_url, settings.debug))
            else:
                store = MemoryDocumentStore()
        catalog = TmdbClient(
            api_key=settings.tmdb_api_key or "",
            language=settings.tmdb_language,
            base_url=settings.tmdb_base_url,
            timeout=settings.tmdb_timeout,
            transport=transport,
        )
        return cls(
            settings,
            store=store,
            auth=auth or LocalAuthProvider(bcrypt_rounds=settings.bcrypt_rounds),
            blobs=blobs or LocalBlobStorage(settings.blob_storage_root, settings.blob_base_url),
            catalog=catalog,
        )

    # ── Lifecycle ────────────────────────────────────────────────

    async def __aenter__(self) -> "FilmHub":
        if isinstance(self.store, SqlDocumentStore):
            await init_db(self.store.engine)
        self.integrations = await self.probe()
        logger.info(f"{self.settings.app_name} started (store={type(self.store).__name__})")
        return self

    async def __aexit__(self, *exc_info) -> None:
        for holder in self._holders:
            await holder.close()
        self._holders.clear()
        await self.tasks.drain()
        await self.store.close()
        logger.info(f"{self.settings.app_name} stopped")

    async def probe(self) -> dict:
        """Check the catalog is reachable with the configured key."""
        if not self.settings.has_tmdb:
            return {"tmdb": {"status": "not_configured"}}
        ok = await self.catalog.test_connection()
        if not ok:
            logger.warning("Movie catalog probe failed")
        return {"tmdb": {"status": "ok" if ok else "error"}}

    # ── Holder factories ─────────────────────────────────────────

    def _track(self, holder: StateHolder) -> StateHolder:
        self._holders.append(holder)
        return holder

    def movie_list_holder(self) -> MovieListHolder:
        return self._track(MovieListHolder(self.movies))

    def movie_detail_holder(self) -> MovieDetailHolder:
        return self._track(MovieDetailHolder(self.movies, self.admin))

    def list_holder(self) -> ListHolder:
        return self._track(ListHolder(self.lists, self.movies))

    def auth_holder(self) -> AuthHolder:
        return self._track(AuthHolder(self.auth, self.settings.min_password_length))

    def profile_holder(self) -> ProfileHolder:
        return self._track(ProfileHolder(self.auth, self.settings.min_password_length))

    def admin_holder(self) -> AdminHolder:
        return self._track(AdminHolder(self.admin, self.auth))
