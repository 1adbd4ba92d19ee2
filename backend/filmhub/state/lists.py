"""Watchlist, favorites, custom lists and upcoming releases screen state."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from filmhub.models.records import MovieList, MovieSummary
from filmhub.repositories.list_repository import ListRepository
from filmhub.repositories.movie_repository import MovieRepository
from filmhub.state.base import ScreenState, StateHolder
from filmhub.utils import days_until_release

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpcomingMovie:
    movie: MovieSummary
    days_until_release: Optional[int] = None


@dataclass(frozen=True)
class ListState(ScreenState):
    user_lists: list[MovieList] = field(default_factory=list)
    public_lists: list[MovieList] = field(default_factory=list)
    watchlist_movies: list[MovieSummary] = field(default_factory=list)
    favorite_movies: list[MovieSummary] = field(default_factory=list)
    upcoming_movies: list[UpcomingMovie] = field(default_factory=list)
    selected_list: Optional[MovieList] = None
    list_movies: list[MovieSummary] = field(default_factory=list)
    is_in_watchlist: bool = False
    is_in_favorites: bool = False


class ListHolder(StateHolder[ListState]):
    """Lists screens. ``start_realtime`` keeps four slices live at once."""

    PLACEHOLDER_TITLE = "Movie"

    def __init__(self, lists: ListRepository, movies: MovieRepository):
        super().__init__(ListState())
        self.lists = lists
        self.movies = movies

    # ── Live subscriptions ───────────────────────────────────────

    def start_realtime(self, user_id: str) -> None:
        """Subscribe to watchlist, favorites, the user's lists and public lists.

        Every id-list change re-resolves all ids against the catalog; movies
        the catalog cannot resolve are left out.
        """

        async def apply_watchlist(ids: list[int]) -> None:
            self._set(watchlist_movies=await self._resolve(ids, placeholder=False))

        async def apply_favorites(ids: list[int]) -> None:
            self._set(favorite_movies=await self._resolve(ids, placeholder=False))

        async def apply_user_lists(lists: list[MovieList]) -> None:
            self._set(user_lists=lists)

        async def apply_public_lists(lists: list[MovieList]) -> None:
            self._set(public_lists=lists)

        self._collect("watchlist", self.lists.watchlist_listener(user_id), apply_watchlist)
        self._collect("favorites", self.lists.favorites_listener(user_id), apply_favorites)
        self._collect("user_lists", self.lists.user_lists_listener(user_id), apply_user_lists)
        self._collect("public_lists", self.lists.public_lists_listener(), apply_public_lists)

    async def _resolve(self, ids: list[int], placeholder: bool = True) -> list[MovieSummary]:
        results = await asyncio.gather(*(self.movies.get_movie(movie_id) for movie_id in ids))
        movies = []
        for movie_id, result in zip(ids, results):
            if result.ok:
                movies.append(result.value)
            elif placeholder:
                movies.append(MovieSummary(id=movie_id, title=self.PLACEHOLDER_TITLE))
            else:
                logger.debug(f"Dropping unresolvable movie {movie_id}: {result.message}")
        return movies

    # ── Custom lists ─────────────────────────────────────────────

    async def create_list(self, user_id: str, title: str, description: str = "", is_public: bool = True):
        if not title.strip():
            self._fail("List title cannot be empty")
            return None
        movie_list = MovieList(user_id=user_id, title=title.strip(), description=description, is_public=is_public)
        result = await self._run(self.lists.create_list(movie_list), success_message="List created")
        if result.ok:
            await self._sync_user_lists(user_id)
        return result

    async def update_list(self, movie_list: MovieList):
        result = await self._run(self.lists.update_list(movie_list), success_message="List updated")
        if result.ok:
            await self._sync_user_lists(movie_list.user_id)
        return result

    async def delete_list(self, list_id: str, user_id: str):
        result = await self._run(self.lists.delete_list(list_id), success_message="List deleted")
        if result.ok:
            if self.state.selected_list and self.state.selected_list.id == list_id:
                self._set(selected_list=None, list_movies=[])
            await self._sync_user_lists(user_id)
        return result

    async def add_movie_to_list(self, list_id: str, movie_id: int, user_id: str):
        result = await self._run(self.lists.add_movie_to_list(list_id, movie_id), success_message="Movie added to list")
        if result.ok:
            await self._sync_user_lists(user_id)
        return result

    async def remove_movie_from_list(self, list_id: str, movie_id: int, user_id: str):
        result = await self._run(
            self.lists.remove_movie_from_list(list_id, movie_id),
            success_message="Movie removed from list",
        )
        if result.ok:
            await self._sync_user_lists(user_id)
            await self._sync_list_details(list_id)
        return result

    async def load_user_lists(self, user_id: str):
        return await self._run(
            self.lists.get_user_lists(user_id),
            on_success=lambda lists: {"user_lists": lists},
        )

    async def load_public_lists(self):
        return await self._run(
            self.lists.get_public_lists(),
            on_success=lambda lists: {"public_lists": lists},
        )

    async def load_list_details(self, list_id: str):
        """Select a list and resolve its movies; unknown ids get a placeholder."""
        self._set(is_loading=True, error_message=None)
        result = await self.lists.get_list(list_id)
        if not result.ok:
            self._fail(result.message)
            return result
        movie_list = result.value
        if movie_list is None:
            self._set(is_loading=False, selected_list=None, list_movies=[], error_message="List not found")
            return result
        movies = await self._resolve(movie_list.movie_ids)
        self._set(is_loading=False, selected_list=movie_list, list_movies=movies)
        return result

    # ── Watchlist / favorites ────────────────────────────────────

    async def add_to_watchlist(self, user_id: str, movie_id: int):
        result = await self._run(
            self.lists.add_to_watchlist(user_id, movie_id),
            on_success=lambda _: {"is_in_watchlist": True},
            success_message="Added to watchlist",
        )
        if result.ok:
            await self._sync_watchlist(user_id)
        return result

    async def remove_from_watchlist(self, user_id: str, movie_id: int):
        result = await self._run(
            self.lists.remove_from_watchlist(user_id, movie_id),
            on_success=lambda _: {"is_in_watchlist": False},
            success_message="Removed from watchlist",
        )
        if result.ok:
            await self._sync_watchlist(user_id)
        return result

    async def load_watchlist(self, user_id: str):
        self._set(is_loading=True, error_message=None)
        result = await self.lists.get_watchlist(user_id)
        if result.ok:
            self._set(is_loading=False, watchlist_movies=await self._resolve(result.value))
        else:
            self._fail(result.message)
        return result

    async def add_to_favorites(self, user_id: str, movie_id: int):
        result = await self._run(
            self.lists.add_to_favorites(user_id, movie_id),
            on_success=lambda _: {"is_in_favorites": True},
            success_message="Added to favorites",
        )
        if result.ok:
            await self._sync_favorites(user_id)
        return result

    async def remove_from_favorites(self, user_id: str, movie_id: int):
        result = await self._run(
            self.lists.remove_from_favorites(user_id, movie_id),
            on_success=lambda _: {"is_in_favorites": False},
            success_message="Removed from favorites",
        )
        if result.ok:
            await self._sync_favorites(user_id)
        return result

    async def load_favorites(self, user_id: str):
        self._set(is_loading=True, error_message=None)
        result = await self.lists.get_favorites(user_id)
        if result.ok:
            self._set(is_loading=False, favorite_movies=await self._resolve(result.value))
        else:
            self._fail(result.message)
        return result

    async def check_movie_status(self, user_id: str, movie_id: int) -> None:
        watchlist = await self.lists.is_in_watchlist(user_id, movie_id)
        favorites = await self.lists.is_in_favorites(user_id, movie_id)
        self._set(
            is_in_watchlist=bool(watchlist.ok and watchlist.value),
            is_in_favorites=bool(favorites.ok and favorites.value),
        )

    # ── Upcoming ─────────────────────────────────────────────────

    async def load_upcoming(self, page: int = 1):
        return await self._run(
            self.lists.get_upcoming_movies(page),
            on_success=lambda movie_page: {
                "upcoming_movies": [
                    UpcomingMovie(movie=m, days_until_release=days_until_release(m.release_date))
                    for m in movie_page.results
                ],
            },
        )

    # ── Quiet refreshes after a mutation (messages untouched) ────

    async def _sync_user_lists(self, user_id: str) -> None:
        result = await self.lists.get_user_lists(user_id)
        if result.ok:
            self._set(user_lists=result.value)

    async def _sync_watchlist(self, user_id: str) -> None:
        result = await self.lists.get_watchlist(user_id)
        if result.ok:
            self._set(watchlist_movies=await self._resolve(result.value))

    async def _sync_favorites(self, user_id: str) -> None:
        result = await self.lists.get_favorites(user_id)
        if result.ok:
            self._set(favorite_movies=await self._resolve(result.value))

    async def _sync_list_details(self, list_id: str) -> None:
        if self.state.selected_list is None or self.state.selected_list.id != list_id:
            return
        result = await self.lists.get_list(list_id)
        if result.ok and result.value is not None:
            self._set(selected_list=result.value, list_movies=await self._resolve(result.value.movie_ids))
