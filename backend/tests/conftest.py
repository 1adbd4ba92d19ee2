"""Shared fixtures: in-memory backends and a fake TMDB behind httpx.MockTransport."""

import asyncio
import re

import httpx
import pytest

from filmhub.clients.blob_storage import LocalBlobStorage
from filmhub.clients.local_auth import LocalAuthProvider
from filmhub.clients.memory import MemoryDocumentStore
from filmhub.clients.tmdb import TmdbClient
from filmhub.repositories.access import AccessGuard
from filmhub.repositories.admin_repository import AdminRepository
from filmhub.repositories.auth_repository import AuthRepository
from filmhub.repositories.background import BackgroundTasks
from filmhub.repositories.list_repository import ListRepository
from filmhub.repositories.movie_repository import MovieRepository

PASSWORD = "secret123"


def movie_payload(movie_id: int, title: str, release_date: str = "2024-01-01", **extra) -> dict:
    return {
        "id": movie_id,
        "title": title,
        "overview": f"{title} overview",
        "poster_path": f"/poster{movie_id}.jpg",
        "backdrop_path": None,
        "release_date": release_date,
        "vote_average": 7.5,
        "vote_count": 100,
        "genre_ids": [28],
        **extra,
    }


class FakeTmdb:
    """Routes TMDB v3 paths to canned payloads and records every request."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.movies = {
            1: movie_payload(1, "Alpha"),
            2: movie_payload(2, "Beta"),
            3: movie_payload(3, "Gamma", release_date="2030-06-01"),
        }
        self.genres = [{"id": 28, "name": "Action"}, {"id": 35, "name": "Comedy"}]
        self.videos = {
            1: [
                {"key": "abc", "name": "Official Trailer", "site": "YouTube", "type": "Trailer", "official": True},
                {"key": "def", "name": "Teaser", "site": "YouTube", "type": "Teaser"},
                {"key": "ghi", "name": "Vimeo cut", "site": "Vimeo", "type": "Trailer"},
                {"key": "jkl", "name": "lowercase", "site": "youtube", "type": "trailer"},
            ],
        }
        self.status_override = None
        self.unreachable = False

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def page(self, movies: list[dict], page: int = 1) -> dict:
        return {"page": page, "results": movies, "total_pages": 3, "total_results": len(movies)}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if self.status_override is not None:
            return httpx.Response(self.status_override, json={"status_message": "nope"})

        path = request.url.path.removeprefix("/3")
        params = request.url.params
        page = int(params.get("page", 1))

        if path == "/configuration":
            return httpx.Response(200, json={"images": {}})
        if path in ("/movie/popular", "/movie/top_rated", "/movie/now_playing", "/discover/movie"):
            return httpx.Response(200, json=self.page(list(self.movies.values()), page))
        if path == "/movie/upcoming":
            return httpx.Response(200, json=self.page([self.movies[3]], page))
        if path == "/search/movie":
            needle = params["query"].lower()
            found = [m for m in self.movies.values() if needle in m["title"].lower()]
            return httpx.Response(200, json=self.page(found, page))
        if path == "/genre/movie/list":
            return httpx.Response(200, json={"genres": self.genres})

        match = re.fullmatch(r"/movie/(\d+)(/videos)?", path)
        if match:
            movie_id = int(match.group(1))
            if match.group(2):
                return httpx.Response(200, json={"id": movie_id, "results": self.videos.get(movie_id, [])})
            if movie_id not in self.movies:
                return httpx.Response(404, json={"status_code": 34})
            detail = dict(self.movies[movie_id])
            detail.pop("genre_ids")
            detail["genres"] = [{"id": 28, "name": "Action"}]
            return httpx.Response(200, json=detail)

        return httpx.Response(404)


@pytest.fixture
def fake_tmdb():
    return FakeTmdb()


@pytest.fixture
def catalog(fake_tmdb):
    return TmdbClient("test-key", transport=httpx.MockTransport(fake_tmdb.handler))


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def auth_provider():
    return LocalAuthProvider(bcrypt_rounds=4)


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStorage(tmp_path / "blobs", "http://files.test")


@pytest.fixture
async def tasks():
    background = BackgroundTasks()
    yield background
    await background.drain()


@pytest.fixture
def guard(auth_provider, store):
    return AccessGuard(auth_provider, store)


@pytest.fixture
def auth_repo(auth_provider, store, blobs):
    return AuthRepository(auth_provider, store, blobs)


@pytest.fixture
def movie_repo(catalog, store, guard, tasks):
    return MovieRepository(catalog, store, guard, tasks)


@pytest.fixture
def list_repo(store, catalog, guard):
    return ListRepository(store, catalog, guard)


@pytest.fixture
def admin_repo(store, catalog, guard, tasks, movie_repo):
    return AdminRepository(store, catalog, guard, tasks, on_review_deleted=movie_repo.schedule_stats_refresh)


async def register(auth_repo: AuthRepository, email: str, password: str = PASSWORD):
    """Register ``email`` (which also signs it in) and return the AuthUser."""
    return (await auth_repo.register(email, password)).unwrap()


async def sign_in(auth_repo: AuthRepository, email: str, password: str = PASSWORD):
    return (await auth_repo.sign_in(email, password)).unwrap()


@pytest.fixture
async def admin_user(auth_repo, store):
    user = await register(auth_repo, "admin@example.com")
    await store.update("users", user.uid, {"isAdmin": True})
    return user


@pytest.fixture
async def user(auth_repo, admin_user):
    """A regular user, signed in. ``admin_user`` exists too but is signed out."""
    return await register(auth_repo, "alice@example.com")


async def eventually(predicate, timeout: float = 1.0) -> None:
    """Yield to the loop until ``predicate()`` holds, for live-subscription tests."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)
