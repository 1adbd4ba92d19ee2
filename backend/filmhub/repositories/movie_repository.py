"""Catalog pass-through plus review and rating persistence.

``movie_stats/{movieId}`` is a denormalized cache. It is recomputed in the
background after every rating or review change; a failed recomputation is
logged and never fails the change that triggered it.
"""

import logging
from contextlib import aclosing
from typing import AsyncIterator, Optional

from filmhub.clients.base import DocumentStore, Query
from filmhub.clients.tmdb import TmdbClient
from filmhub.errors import NotFound, PermissionDenied, ValidationError
from filmhub.models.records import (
    Genre, MoviePage, MovieStats, MovieSummary, Rating, Review, VideoTrailer,
    decode, decode_all, now_millis,
)
from filmhub.repositories.access import AccessGuard
from filmhub.repositories.background import BackgroundTasks
from filmhub.repositories.locks import KeyedLocks
from filmhub.result import returns_result

logger = logging.getLogger(__name__)

REVIEWS = "reviews"
RATINGS = "ratings"
MOVIE_STATS = "movie_stats"


def _newest_first(reviews: list[Review]) -> list[Review]:
    # Sorted client-side so the store needs no compound (movieId, createdAt) index.
    return sorted(reviews, key=lambda r: r.created_at, reverse=True)


class MovieRepository:
    """Movies from the catalog; reviews, ratings and stats from the store."""

    def __init__(
        self,
        catalog: TmdbClient,
        store: DocumentStore,
        guard: AccessGuard,
        tasks: BackgroundTasks,
    ):
        self.catalog = catalog
        self.store = store
        self.guard = guard
        self.tasks = tasks
        self._rating_locks = KeyedLocks()

    # ── Catalog ──────────────────────────────────────────────────

    @returns_result
    async def get_popular(self, page: int = 1) -> MoviePage:
        return await self.catalog.list_popular(page)

    @returns_result
    async def get_top_rated(self, page: int = 1) -> MoviePage:
        return await self.catalog.list_top_rated(page)

    @returns_result
    async def get_now_playing(self, page: int = 1) -> MoviePage:
        return await self.catalog.list_now_playing(page)

    @returns_result
    async def get_upcoming(self, page: int = 1) -> MoviePage:
        return await self.catalog.list_upcoming(page)

    @returns_result
    async def search(self, query: str, page: int = 1) -> MoviePage:
        return await self.catalog.search(query, page)

    @returns_result
    async def discover(
        self,
        year: Optional[int] = None,
        genre_ids: Optional[list[int]] = None,
        page: int = 1,
    ) -> MoviePage:
        return await self.catalog.discover(year=year, genre_ids=genre_ids, page=page)

    @returns_result
    async def get_genres(self) -> list[Genre]:
        return await self.catalog.get_genres()

    @returns_result
    async def get_movie(self, movie_id: int) -> MovieSummary:
        return await self.catalog.get_details(movie_id)

    @returns_result
    async def get_trailers(self, movie_id: int) -> list[VideoTrailer]:
        return self.catalog.official_trailers(await self.catalog.get_videos(movie_id))

    # ── Reviews ──────────────────────────────────────────────────

    @returns_result
    async def create_review(self, review: Review) -> str:
        await self.guard.require_owner(review.user_id)
        doc_id = self.store.new_id()
        await self.store.set(REVIEWS, doc_id, review.model_copy(update={"id": doc_id}).to_document())
        self.schedule_stats_refresh(review.movie_id)
        return doc_id

    @returns_result
    async def update_review(self, review: Review) -> None:
        """Full overwrite. Stats are not recomputed: they only use Rating records."""
        if not review.id:
            raise ValidationError("Review has no id")
        existing = await self.store.get(REVIEWS, review.id)
        if existing is None:
            raise NotFound("Review not found")
        await self.guard.require_owner(existing.get("userId"))
        if review.user_id != existing.get("userId"):
            raise PermissionDenied("A review cannot be reassigned to another user")
        if review.movie_id != existing.get("movieId"):
            raise ValidationError("A review cannot be moved to another movie")
        updated = review.model_copy(update={"updated_at": now_millis()})
        await self.store.set(REVIEWS, review.id, updated.to_document())

    @returns_result
    async def delete_review(self, review_id: str, movie_id: int) -> None:
        existing = await self.store.get(REVIEWS, review_id)
        if existing is not None:
            await self.guard.require_owner(existing.get("userId"))
            await self.store.delete(REVIEWS, review_id)
        self.schedule_stats_refresh(movie_id)

    @returns_result
    async def get_movie_reviews(self, movie_id: int) -> list[Review]:
        docs = await self.store.query(Query(REVIEWS, where={"movieId": movie_id}))
        return _newest_first(decode_all(Review, docs))

    async def reviews_listener(self, movie_id: int) -> AsyncIterator[list[Review]]:
        """Live reviews for a movie, newest first."""
        async with aclosing(self.store.snapshots(Query(REVIEWS, where={"movieId": movie_id}))) as snapshots:
            async for docs in snapshots:
                reviews = []
                for doc in docs:
                    try:
                        reviews.append(decode(Review, doc))
                    except Exception as e:
                        logger.warning(f"Skipping undecodable review {doc.get('id')}: {e}")
                yield _newest_first(reviews)

    # ── Ratings ──────────────────────────────────────────────────

    @returns_result
    async def rate_movie(self, rating: Rating) -> str:
        """Create or replace the user's rating for a movie. Returns its id."""
        await self.guard.require_owner(rating.user_id)
        async with self._rating_locks.hold((rating.movie_id, rating.user_id)):
            existing = await self.store.query(
                Query(RATINGS, where={"movieId": rating.movie_id, "userId": rating.user_id}, limit=1)
            )
            if existing:
                doc_id = existing[0]["id"]
                logger.debug(f"Updating rating {doc_id} for movie {rating.movie_id}")
            else:
                doc_id = self.store.new_id()
            await self.store.set(RATINGS, doc_id, rating.model_copy(update={"id": doc_id}).to_document())
        self.schedule_stats_refresh(rating.movie_id)
        return doc_id

    @returns_result
    async def get_user_rating(self, movie_id: int, user_id: str) -> Optional[Rating]:
        docs = await self.store.query(Query(RATINGS, where={"movieId": movie_id, "userId": user_id}, limit=1))
        return decode(Rating, docs[0]) if docs else None

    # ── Stats ────────────────────────────────────────────────────

    @returns_result
    async def get_movie_stats(self, movie_id: int) -> MovieStats:
        """Fresh aggregate over live ratings and reviews (not the cached document)."""
        return await self._compute_stats(movie_id)

    @returns_result
    async def get_cached_stats(self, movie_id: int) -> Optional[MovieStats]:
        doc = await self.store.get(MOVIE_STATS, str(movie_id))
        return decode(MovieStats, doc) if doc else None

    async def recompute_stats(self, movie_id: int) -> MovieStats:
        stats = await self._compute_stats(movie_id)
        await self.store.set(MOVIE_STATS, str(movie_id), stats.to_document())
        return stats

    async def _compute_stats(self, movie_id: int) -> MovieStats:
        ratings = decode_all(Rating, await self.store.query(Query(RATINGS, where={"movieId": movie_id})))
        reviews = await self.store.query(Query(REVIEWS, where={"movieId": movie_id}))
        average = sum(r.rating for r in ratings) / len(ratings) if ratings else 0.0
        return MovieStats(
            movie_id=movie_id,
            average_rating=average,
            total_ratings=len(ratings),
            total_reviews=len(reviews),
        )

    def schedule_stats_refresh(self, movie_id: int) -> None:
        """Recompute movie_stats in the background."""
        self.tasks.spawn(self.recompute_stats(movie_id), name=f"recompute-stats-{movie_id}")
