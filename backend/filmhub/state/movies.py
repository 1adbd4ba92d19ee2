"""Movie browsing and movie detail screen state."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from filmhub.models.records import (
    Genre, MovieStats, MovieSummary, Rating, Report, Review, VideoTrailer,
)
from filmhub.repositories.admin_repository import AdminRepository
from filmhub.repositories.movie_repository import MovieRepository
from filmhub.result import value_or
from filmhub.state.base import ScreenState, StateHolder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MovieListState(ScreenState):
    movies: list[MovieSummary] = field(default_factory=list)
    genres: list[Genre] = field(default_factory=list)
    search_query: str = ""
    selected_year: Optional[int] = None
    selected_genres: list[int] = field(default_factory=list)
    page: int = 1
    total_pages: int = 0


@dataclass(frozen=True)
class MovieDetailState(ScreenState):
    movie: Optional[MovieSummary] = None
    reviews: list[Review] = field(default_factory=list)
    stats: Optional[MovieStats] = None
    user_rating: Optional[Rating] = None
    trailers: list[VideoTrailer] = field(default_factory=list)


def _page_changes(page) -> dict:
    return {"movies": page.results, "page": page.page, "total_pages": page.total_pages}


class MovieListHolder(StateHolder[MovieListState]):
    """Browse, search and filter the catalog."""

    def __init__(self, movies: MovieRepository):
        super().__init__(MovieListState())
        self.movies = movies

    async def load_popular(self, page: int = 1):
        return await self._run(self.movies.get_popular(page), on_success=_page_changes)

    async def load_top_rated(self, page: int = 1):
        return await self._run(self.movies.get_top_rated(page), on_success=_page_changes)

    async def load_now_playing(self, page: int = 1):
        return await self._run(self.movies.get_now_playing(page), on_success=_page_changes)

    async def load_genres(self):
        result = await self.movies.get_genres()
        if result.ok:
            self._set(genres=result.value)
        else:
            logger.info(f"Genres unavailable: {result.message}")
        return result

    async def search(self, query: str):
        """Search by title; a blank query goes back to the popular list."""
        self._set(search_query=query)
        if not query.strip():
            return await self.load_popular()
        return await self._run(self.movies.search(query), on_success=_page_changes)

    async def filter_movies(self, year: Optional[int] = None, genre_ids: Optional[list[int]] = None):
        self._set(selected_year=year, selected_genres=list(genre_ids or []))
        return await self._run(
            self.movies.discover(year=year, genre_ids=genre_ids),
            on_success=_page_changes,
        )

    async def clear_filters(self):
        self._set(selected_year=None, selected_genres=[], search_query="")
        return await self.load_popular()


class MovieDetailHolder(StateHolder[MovieDetailState]):
    """One movie: details, reviews, stats, the viewer's rating and trailers."""

    def __init__(self, movies: MovieRepository, admin: AdminRepository):
        super().__init__(MovieDetailState())
        self.movies = movies
        self.admin = admin

    async def load_details(self, movie: MovieSummary, user_id: Optional[str] = None) -> None:
        """Show ``movie`` right away, then fill in everything else.

        Each piece is optional: a failing lookup leaves its slice empty.
        """
        self._set(is_loading=True, movie=movie, error_message=None)
        full = value_or(await self.movies.get_movie(movie.id), movie)
        reviews = value_or(await self.movies.get_movie_reviews(movie.id), [])
        stats = value_or(await self.movies.get_movie_stats(movie.id))
        user_rating = None
        if user_id:
            user_rating = value_or(await self.movies.get_user_rating(movie.id, user_id))
        trailers = value_or(await self.movies.get_trailers(movie.id), [])
        self._set(
            is_loading=False,
            movie=full,
            reviews=reviews,
            stats=stats,
            user_rating=user_rating,
            trailers=trailers,
        )

    def start_reviews_listener(self, movie_id: int) -> None:
        async def apply(reviews: list[Review]) -> None:
            self._set(reviews=reviews)

        self._collect("reviews", self.movies.reviews_listener(movie_id), apply)

    async def rate_movie(self, movie_id: int, user_id: str, rating: float):
        if not 0 <= rating <= 5:
            self._fail("Rating must be between 0 and 5")
            return None
        new_rating = Rating(movie_id=movie_id, user_id=user_id, rating=rating)
        result = await self._run(
            self.movies.rate_movie(new_rating),
            on_success=lambda doc_id: {"user_rating": new_rating.model_copy(update={"id": doc_id})},
            success_message="Rating saved",
        )
        if result.ok:
            await self._refresh_stats(movie_id)
        return result

    async def create_review(
        self,
        movie_id: int,
        user_id: str,
        user_name: str,
        user_email: str,
        rating: float,
        review_text: str,
    ):
        if not review_text.strip():
            self._fail("Review cannot be empty")
            return None
        if not 0 <= rating <= 5:
            self._fail("Rating must be between 0 and 5")
            return None
        review = Review(
            movie_id=movie_id,
            user_id=user_id,
            user_name=user_name,
            user_email=user_email,
            rating=rating,
            review_text=review_text,
        )
        result = await self._run(self.movies.create_review(review), success_message="Review posted")
        if result.ok:
            await self._refresh_reviews(movie_id)
        return result

    async def update_review(self, review: Review):
        result = await self._run(self.movies.update_review(review), success_message="Review updated")
        if result.ok:
            await self._refresh_reviews(review.movie_id)
        return result

    async def delete_review(self, review_id: str, movie_id: int):
        result = await self._run(self.movies.delete_review(review_id, movie_id), success_message="Review deleted")
        if result.ok:
            await self._refresh_reviews(movie_id)
        return result

    async def report_review(self, review: Review, reporter_id: str, reason: str, description: str = ""):
        report = Report(
            reported_item_id=review.id,
            reported_item_type="review",
            reported_user_id=review.user_id,
            reporter_user_id=reporter_id,
            reason=reason,
            description=description,
        )
        return await self._run(self.admin.create_report(report), success_message="Report sent")

    async def _refresh_reviews(self, movie_id: int) -> None:
        result = await self.movies.get_movie_reviews(movie_id)
        if result.ok:
            self._set(reviews=result.value)

    async def _refresh_stats(self, movie_id: int) -> None:
        result = await self.movies.get_movie_stats(movie_id)
        if result.ok:
            self._set(stats=result.value)
