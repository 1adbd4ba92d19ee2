"""TMDB client for the movie catalog.

Handles: popular / top rated / now playing / upcoming lists, search,
faceted discovery, genres, movie details and trailer lookup. Stateless:
every call is a single independent request, never retried.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from filmhub.errors import CatalogError, EmptyQuery, NotFound
from filmhub.models.records import Genre, MoviePage, MovieSummary, VideoTrailer

logger = logging.getLogger(__name__)


class TmdbClient:
    """The Movie Database API v3 client."""

    BASE_URL = "https://api.themoviedb.org/3"
    IMAGE_BASE = "https://image.tmdb.org/t/p"

    def __init__(
        self,
        api_key: str,
        language: str = "en-US",
        base_url: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.language = language
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self._transport = transport
        # Detect auth mode: JWT (v4 bearer) vs plain key (v3 query param)
        self._is_bearer = api_key.startswith("eyJ")

    async def _get(self, path: str, params: dict | None = None) -> Any:
        """Make authenticated GET request to TMDB.

        Supports both v3 (api_key query param) and v4 (Bearer token header).
        Transport failures and non-success responses become CatalogError;
        a 404 becomes NotFound.
        """
        all_params = {"language": self.language, **(params or {})}
        headers = {}

        if self._is_bearer:
            headers["Authorization"] = f"Bearer {self.api_key}"
        else:
            all_params["api_key"] = self.api_key

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(f"{self.base_url}{path}", params=all_params, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"TMDB request {path} failed: {e}")
            raise CatalogError("Could not reach the movie catalog") from e

        if resp.status_code == 404:
            raise NotFound(f"Catalog has no resource at {path}")
        if resp.is_error:
            logger.warning(f"TMDB request {path} returned {resp.status_code}")
            raise CatalogError(f"Movie catalog error ({resp.status_code})")
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise CatalogError("Movie catalog returned an unreadable response") from e

    async def _get_page(self, path: str, params: dict | None = None) -> MoviePage:
        data = await self._get(path, params)
        if data is None:
            raise CatalogError("Movie catalog returned an empty response")
        return self._parse(MoviePage, data)

    # ── Lists ────────────────────────────────────────────────────

    async def list_popular(self, page: int = 1) -> MoviePage:
        return await self._get_page("/movie/popular", {"page": page})

    async def list_top_rated(self, page: int = 1) -> MoviePage:
        return await self._get_page("/movie/top_rated", {"page": page})

    async def list_now_playing(self, page: int = 1) -> MoviePage:
        return await self._get_page("/movie/now_playing", {"page": page})

    async def list_upcoming(self, page: int = 1) -> MoviePage:
        """Movies with upcoming release dates."""
        return await self._get_page("/movie/upcoming", {"page": page})

    # ── Search / Discovery ───────────────────────────────────────

    async def search(self, query: str, page: int = 1) -> MoviePage:
        """Search for movies by title."""
        if not query or not query.strip():
            raise EmptyQuery()
        return await self._get_page("/search/movie", {"query": query, "page": page})

    async def discover(
        self,
        year: Optional[int] = None,
        genre_ids: Optional[list[int]] = None,
        page: int = 1,
        sort_by: str = "popularity.desc",
    ) -> MoviePage:
        """Discover movies filtered by release year and/or genres."""
        params: dict = {"page": page, "sort_by": sort_by}
        if year:
            params["year"] = year
        if genre_ids:
            params["with_genres"] = ",".join(str(g) for g in genre_ids)
        return await self._get_page("/discover/movie", params)

    # ── Genre list ───────────────────────────────────────────────

    async def get_genres(self) -> list[Genre]:
        data = await self._get("/genre/movie/list") or {}
        return [self._parse(Genre, g) for g in data.get("genres", [])]

    # ── Movie details / videos ───────────────────────────────────

    async def get_details(self, movie_id: int) -> MovieSummary:
        data = await self._get(f"/movie/{movie_id}")
        if not data:
            raise NotFound(f"Movie {movie_id} not found")
        movie = self._parse(MovieSummary, data)
        if not movie.genre_ids and data.get("genres"):
            # Detail payloads carry full genre objects instead of ids.
            movie = movie.model_copy(update={"genre_ids": [g["id"] for g in data["genres"] if "id" in g]})
        return movie

    async def get_videos(self, movie_id: int) -> list[VideoTrailer]:
        data = await self._get(f"/movie/{movie_id}/videos") or {}
        return [self._parse(VideoTrailer, v) for v in data.get("results", [])]

    @staticmethod
    def official_trailers(videos: list[VideoTrailer]) -> list[VideoTrailer]:
        """Only YouTube videos of type Trailer (case-insensitive)."""
        return [
            v for v in videos
            if v.site.lower() == "youtube" and v.type.lower() == "trailer"
        ]

    # ── Test connection ──────────────────────────────────────────

    async def test_connection(self) -> bool:
        """Test TMDB API key validity."""
        try:
            await self._get("/configuration")
            return True
        except (CatalogError, NotFound):
            return False

    # ── Parsing / image helpers ──────────────────────────────────

    @staticmethod
    def _parse(model, data: Any):
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise CatalogError(f"Unexpected {model.__name__} payload from movie catalog") from e

    @classmethod
    def poster_url(cls, path: Optional[str], size: str = "w500") -> str:
        """Build full poster URL from TMDB path, empty when there is none."""
        if not path:
            return ""
        return f"{cls.IMAGE_BASE}/{size}{path}"

    @classmethod
    def backdrop_url(cls, path: Optional[str], size: str = "w780") -> str:
        if not path:
            return ""
        return f"{cls.IMAGE_BASE}/{size}{path}"
