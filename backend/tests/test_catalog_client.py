"""TMDB client against a mocked transport."""

import httpx
import pytest

from filmhub.clients.tmdb import TmdbClient
from filmhub.errors import CatalogError, EmptyQuery, NotFound


async def test_popular_returns_page_and_sends_key_and_language(catalog, fake_tmdb):
    page = await catalog.list_popular(2)

    assert page.page == 2
    assert [m.title for m in page.results] == ["Alpha", "Beta", "Gamma"]
    assert page.total_pages == 3
    params = fake_tmdb.last.url.params
    assert params["api_key"] == "test-key"
    assert params["language"] == "en-US"
    assert params["page"] == "2"


async def test_bearer_token_goes_in_header(fake_tmdb):
    client = TmdbClient("eyJhbGciOi.token", transport=httpx.MockTransport(fake_tmdb.handler))
    await client.list_top_rated()

    assert fake_tmdb.last.headers["Authorization"] == "Bearer eyJhbGciOi.token"
    assert "api_key" not in fake_tmdb.last.url.params


async def test_list_endpoints_hit_expected_paths(catalog, fake_tmdb):
    await catalog.list_top_rated()
    await catalog.list_now_playing()
    upcoming = await catalog.list_upcoming()

    paths = [r.url.path for r in fake_tmdb.requests]
    assert paths == ["/3/movie/top_rated", "/3/movie/now_playing", "/3/movie/upcoming"]
    assert [m.id for m in upcoming.results] == [3]


async def test_search_filters_by_title(catalog):
    page = await catalog.search("alp")
    assert [m.id for m in page.results] == [1]


@pytest.mark.parametrize("query", ["", "   "])
async def test_blank_search_fails_without_request(catalog, fake_tmdb, query):
    with pytest.raises(EmptyQuery):
        await catalog.search(query)
    assert fake_tmdb.requests == []


async def test_discover_joins_genres_and_omits_missing_filters(catalog, fake_tmdb):
    await catalog.discover(year=1999, genre_ids=[28, 35])
    params = fake_tmdb.last.url.params
    assert params["year"] == "1999"
    assert params["with_genres"] == "28,35"
    assert params["sort_by"] == "popularity.desc"

    await catalog.discover()
    params = fake_tmdb.last.url.params
    assert "year" not in params
    assert "with_genres" not in params


async def test_genres(catalog):
    genres = await catalog.get_genres()
    assert [(g.id, g.name) for g in genres] == [(28, "Action"), (35, "Comedy")]


async def test_details_fill_genre_ids_from_genre_objects(catalog):
    movie = await catalog.get_details(2)
    assert movie.title == "Beta"
    assert movie.genre_ids == [28]


async def test_missing_movie_is_not_found(catalog):
    with pytest.raises(NotFound):
        await catalog.get_details(999)


async def test_official_trailers_keeps_youtube_trailers_case_insensitively(catalog):
    trailers = TmdbClient.official_trailers(await catalog.get_videos(1))
    assert [t.key for t in trailers] == ["abc", "jkl"]


async def test_error_status_becomes_catalog_error(catalog, fake_tmdb):
    fake_tmdb.status_override = 500
    with pytest.raises(CatalogError):
        await catalog.list_popular()


async def test_transport_failure_becomes_catalog_error(catalog, fake_tmdb):
    fake_tmdb.unreachable = True
    with pytest.raises(CatalogError, match="Could not reach"):
        await catalog.list_popular()


async def test_test_connection(catalog, fake_tmdb):
    assert await catalog.test_connection() is True
    fake_tmdb.status_override = 401
    assert await catalog.test_connection() is False


def test_image_urls():
    assert TmdbClient.poster_url("/p.jpg") == "https://image.tmdb.org/t/p/w500/p.jpg"
    assert TmdbClient.backdrop_url("/b.jpg") == "https://image.tmdb.org/t/p/w780/b.jpg"
    assert TmdbClient.poster_url(None) == ""
    assert TmdbClient.backdrop_url("") == ""
