"""Watchlist, favorites and custom movie lists.

Memberships are unique per (userId, movieId) by convention: adds look up an
existing record first, removes delete every match so accidental duplicates
are cleaned up too.
"""

import logging
from contextlib import aclosing
from typing import AsyncIterator, Optional, Type

from filmhub.clients.base import DocumentStore, Query
from filmhub.clients.tmdb import TmdbClient
from filmhub.errors import PermissionDenied, ValidationError
from filmhub.models.records import (
    Document, FavoriteMovie, MovieList, MoviePage, WatchlistItem,
    decode, decode_all, now_millis,
)
from filmhub.repositories.access import AccessGuard
from filmhub.repositories.locks import KeyedLocks
from filmhub.result import returns_result

logger = logging.getLogger(__name__)

MOVIE_LISTS = "movie_lists"
WATCHLIST = "watchlist"
FAVORITES = "favorites"


def _decode_lists(docs: list[dict]) -> list[MovieList]:
    lists = []
    for doc in docs:
        try:
            lists.append(decode(MovieList, doc))
        except Exception as e:
            logger.warning(f"Skipping undecodable list {doc.get('id')}: {e}")
    return lists


class ListRepository:
    """User-curated collections of catalog movie ids."""

    def __init__(
        self,
        store: DocumentStore,
        catalog: TmdbClient,
        guard: AccessGuard,
        public_lists_limit: int = 50,
    ):
        self.store = store
        self.catalog = catalog
        self.guard = guard
        self.public_lists_limit = public_lists_limit
        self._membership_locks = KeyedLocks()

    # ── Custom lists ─────────────────────────────────────────────

    @returns_result
    async def create_list(self, movie_list: MovieList) -> str:
        if not movie_list.title.strip():
            raise ValidationError("List title cannot be empty")
        await self.guard.require_owner(movie_list.user_id)
        doc_id = self.store.new_id()
        await self.store.set(MOVIE_LISTS, doc_id, movie_list.model_copy(update={"id": doc_id}).to_document())
        return doc_id

    @returns_result
    async def update_list(self, movie_list: MovieList) -> None:
        """Full overwrite; always refreshes updatedAt."""
        if not movie_list.id:
            raise ValidationError("List has no id")
        existing = await self.store.get(MOVIE_LISTS, movie_list.id)
        await self.guard.require_owner(existing.get("userId") if existing else movie_list.user_id)
        if existing and movie_list.user_id != existing.get("userId"):
            raise PermissionDenied("A list cannot be reassigned to another user")
        updated = movie_list.model_copy(update={"updated_at": now_millis()})
        await self.store.set(MOVIE_LISTS, movie_list.id, updated.to_document())

    @returns_result
    async def delete_list(self, list_id: str) -> None:
        existing = await self.store.get(MOVIE_LISTS, list_id)
        if existing is None:
            return
        await self.guard.require_owner(existing.get("userId"))
        await self.store.delete(MOVIE_LISTS, list_id)

    @returns_result
    async def get_list(self, list_id: str) -> Optional[MovieList]:
        doc = await self.store.get(MOVIE_LISTS, list_id)
        return decode(MovieList, doc) if doc else None

    @returns_result
    async def add_movie_to_list(self, list_id: str, movie_id: int) -> None:
        """Append once; re-adding is a no-op. Missing lists are ignored."""
        movie_list = await self._load_list(list_id)
        if movie_list is None:
            logger.debug(f"add_movie_to_list: list {list_id} does not exist")
            return
        await self.guard.require_owner(movie_list.user_id)
        if movie_id in movie_list.movie_ids:
            return
        updated = movie_list.model_copy(update={
            "movie_ids": [*movie_list.movie_ids, movie_id],
            "updated_at": now_millis(),
        })
        await self.store.set(MOVIE_LISTS, list_id, updated.to_document())

    @returns_result
    async def remove_movie_from_list(self, list_id: str, movie_id: int) -> None:
        movie_list = await self._load_list(list_id)
        if movie_list is None:
            logger.debug(f"remove_movie_from_list: list {list_id} does not exist")
            return
        await self.guard.require_owner(movie_list.user_id)
        updated = movie_list.model_copy(update={
            "movie_ids": [m for m in movie_list.movie_ids if m != movie_id],
            "updated_at": now_millis(),
        })
        await self.store.set(MOVIE_LISTS, list_id, updated.to_document())

    @returns_result
    async def get_user_lists(self, user_id: str) -> list[MovieList]:
        docs = await self.store.query(
            Query(MOVIE_LISTS, where={"userId": user_id}, order_by="updatedAt", descending=True)
        )
        return _decode_lists(docs)

    @returns_result
    async def get_public_lists(self) -> list[MovieList]:
        return _decode_lists(await self.store.query(self._public_lists_query()))

    # ── Watchlist / favorites ────────────────────────────────────

    @returns_result
    async def add_to_watchlist(self, user_id: str, movie_id: int) -> str:
        return await self._add_membership(WATCHLIST, WatchlistItem, user_id, movie_id)

    @returns_result
    async def remove_from_watchlist(self, user_id: str, movie_id: int) -> None:
        await self._remove_membership(WATCHLIST, user_id, movie_id)

    @returns_result
    async def get_watchlist(self, user_id: str) -> list[int]:
        return await self._membership_ids(WATCHLIST, user_id)

    @returns_result
    async def is_in_watchlist(self, user_id: str, movie_id: int) -> bool:
        return bool(await self._find_memberships(WATCHLIST, user_id, movie_id))

    @returns_result
    async def add_to_favorites(self, user_id: str, movie_id: int) -> str:
        return await self._add_membership(FAVORITES, FavoriteMovie, user_id, movie_id)

    @returns_result
    async def remove_from_favorites(self, user_id: str, movie_id: int) -> None:
        await self._remove_membership(FAVORITES, user_id, movie_id)

    @returns_result
    async def get_favorites(self, user_id: str) -> list[int]:
        return await self._membership_ids(FAVORITES, user_id)

    @returns_result
    async def is_in_favorites(self, user_id: str, movie_id: int) -> bool:
        return bool(await self._find_memberships(FAVORITES, user_id, movie_id))

    # ── Live subscriptions ───────────────────────────────────────

    async def watchlist_listener(self, user_id: str) -> AsyncIterator[list[int]]:
        """Live watchlist movie ids, most recently added first."""
        async with aclosing(self.store.snapshots(self._membership_query(WATCHLIST, user_id))) as snapshots:
            async for docs in snapshots:
                yield [d["movieId"] for d in docs if "movieId" in d]

    async def favorites_listener(self, user_id: str) -> AsyncIterator[list[int]]:
        async with aclosing(self.store.snapshots(self._membership_query(FAVORITES, user_id))) as snapshots:
            async for docs in snapshots:
                yield [d["movieId"] for d in docs if "movieId" in d]

    async def user_lists_listener(self, user_id: str) -> AsyncIterator[list[MovieList]]:
        query = Query(MOVIE_LISTS, where={"userId": user_id}, order_by="updatedAt", descending=True)
        async with aclosing(self.store.snapshots(query)) as snapshots:
            async for docs in snapshots:
                yield _decode_lists(docs)

    async def public_lists_listener(self) -> AsyncIterator[list[MovieList]]:
        """The most recently updated public lists, capped at ``public_lists_limit``."""
        async with aclosing(self.store.snapshots(self._public_lists_query())) as snapshots:
            async for docs in snapshots:
                yield _decode_lists(docs)

    # ── Catalog ──────────────────────────────────────────────────

    @returns_result
    async def get_upcoming_movies(self, page: int = 1) -> MoviePage:
        return await self.catalog.list_upcoming(page)

    # ── Helpers ──────────────────────────────────────────────────

    async def _load_list(self, list_id: str) -> Optional[MovieList]:
        doc = await self.store.get(MOVIE_LISTS, list_id)
        return decode(MovieList, doc) if doc else None

    def _public_lists_query(self) -> Query:
        return Query(
            MOVIE_LISTS,
            where={"isPublic": True},
            order_by="updatedAt",
            descending=True,
            limit=self.public_lists_limit,
        )

    @staticmethod
    def _membership_query(collection: str, user_id: str) -> Query:
        return Query(collection, where={"userId": user_id}, order_by="addedAt", descending=True)

    async def _find_memberships(self, collection: str, user_id: str, movie_id: int) -> list[dict]:
        return await self.store.query(Query(collection, where={"userId": user_id, "movieId": movie_id}))

    async def _membership_ids(self, collection: str, user_id: str) -> list[int]:
        docs = await self.store.query(self._membership_query(collection, user_id))
        return [d["movieId"] for d in docs if "movieId" in d]

    async def _add_membership(
        self,
        collection: str,
        model: Type[Document],
        user_id: str,
        movie_id: int,
    ) -> str:
        await self.guard.require_owner(user_id)
        async with self._membership_locks.hold((collection, user_id, movie_id)):
            existing = await self._find_memberships(collection, user_id, movie_id)
            if existing:
                logger.debug(f"{collection}: movie {movie_id} already present for {user_id}")
                return existing[0]["id"]
            doc_id = self.store.new_id()
            item = model(id=doc_id, user_id=user_id, movie_id=movie_id)
            await self.store.set(collection, doc_id, item.to_document())
            return doc_id

    async def _remove_membership(self, collection: str, user_id: str, movie_id: int) -> None:
        await self.guard.require_owner(user_id)
        for doc in await self._find_memberships(collection, user_id, movie_id):
            await self.store.delete(collection, doc["id"])
