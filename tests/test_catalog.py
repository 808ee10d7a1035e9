# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Catalog proxy tests with a mocked TMDb transport."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from streamcat_server.errors import CatalogError
from streamcat_server.main import create_app
from streamcat_server.services.catalog import TmdbClient, summarize

POPULAR = {
    "results": [
        {"id": 1, "title": "Dune", "release_date": "2021-10-22", "poster_path": "/dune.jpg", "genre_ids": [878]},
        {"id": 2, "title": "Sin póster", "poster_path": None},
    ]
}
VIDEOS = {
    "results": [
        {"site": "Vimeo", "type": "Trailer", "key": "vimeo1"},
        {"site": "YouTube", "type": "Teaser", "key": "teaser1"},
        {"site": "YouTube", "type": "Trailer", "key": "abc123"},
    ]
}


def tmdb_handler(request: httpx.Request) -> httpx.Response:
    assert request.url.params["api_key"] == "k"
    assert request.url.params["language"] == "es-ES"
    path = request.url.path
    if path == "/3/movie/popular":
        return httpx.Response(200, json=POPULAR)
    if path == "/3/tv/popular":
        return httpx.Response(200, json={"results": [{"id": 9, "name": "Dark", "first_air_date": "2017-12-01"}]})
    if path == "/3/genre/movie/list":
        return httpx.Response(200, json={"genres": [{"id": 28, "name": "Acción"}]})
    if path == "/3/discover/tv":
        assert request.url.params["with_genres"] == "18"
        return httpx.Response(200, json={"results": [{"id": 9, "name": "Dark"}]})
    if path == "/3/search/multi":
        return httpx.Response(
            200,
            json={"results": [
                {"id": 1, "media_type": "movie", "title": "Dune"},
                {"id": 7, "media_type": "person", "name": "Zendaya"},
            ]},
        )
    if path == "/3/trending/all/day":
        return httpx.Response(200, json={"results": [{"id": 9, "media_type": "tv", "name": "Dark"}]})
    if path == "/3/movie/1/videos":
        return httpx.Response(200, json=VIDEOS)
    if path == "/3/movie/2/videos":
        return httpx.Response(200, json={"results": []})
    return httpx.Response(500, json={"status_message": "boom"})


@pytest.fixture
def tmdb() -> TmdbClient:
    return TmdbClient(
        api_key="k",
        base_url="https://tmdb.test/3",
        transport=httpx.MockTransport(tmdb_handler),
    )


def test_summarize_movie_and_series():
    movie = summarize(POPULAR["results"][0], "movie")
    assert movie["title"] == "Dune"
    assert movie["media_type"] == "movie"
    assert movie["poster_url"] == "https://image.tmdb.org/t/p/w500/dune.jpg"
    series = summarize({"id": 9, "name": "Dark", "first_air_date": "2017-12-01"}, "tv")
    assert series["title"] == "Dark"
    assert series["release_date"] == "2017-12-01"
    assert series["poster_url"] is None


async def test_popular_movies(tmdb: TmdbClient):
    results = await tmdb.popular("movie")
    assert [r["id"] for r in results] == [1, 2]


async def test_search_drops_people(tmdb: TmdbClient):
    results = await tmdb.search("dune")
    assert [r["media_type"] for r in results] == ["movie"]


async def test_trailer_key_prefers_youtube_trailer(tmdb: TmdbClient):
    assert await tmdb.trailer_key("movie", 1) == "abc123"
    assert await tmdb.trailer_key("movie", 2) is None


async def test_http_error_raises_catalog_error(tmdb: TmdbClient):
    with pytest.raises(CatalogError):
        await tmdb.trailer_key("tv", 404)


async def test_missing_key_raises_catalog_error():
    with pytest.raises(CatalogError):
        await TmdbClient(api_key=None).trending()


@pytest.fixture
async def catalog_api(settings, database, sender, clock, tmdb):
    app = create_app(settings=settings, database=database, sender=sender, catalog_client=tmdb, clock=clock)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def test_catalog_routes(catalog_api: AsyncClient):
    r = await catalog_api.get("/api/catalog/popular/tv")
    assert r.status_code == 200
    assert r.json()["results"][0]["title"] == "Dark"

    r = await catalog_api.get("/api/catalog/genres/movie")
    assert r.json() == {"genres": [{"id": 28, "name": "Acción"}]}

    r = await catalog_api.get("/api/catalog/discover/tv", params={"genre_id": 18})
    assert r.json()["results"][0]["id"] == 9

    r = await catalog_api.get("/api/catalog/trending")
    assert r.json()["results"][0]["media_type"] == "tv"

    r = await catalog_api.get("/api/catalog/trailer/movie/1")
    assert r.json() == {"key": "abc123", "url": "https://www.youtube.com/watch?v=abc123"}


async def test_catalog_rejects_unknown_kind(catalog_api: AsyncClient):
    r = await catalog_api.get("/api/catalog/popular/music")
    assert r.status_code == 400


async def test_catalog_upstream_failure_is_502(catalog_api: AsyncClient):
    r = await catalog_api.get("/api/catalog/trailer/tv/404")
    assert r.status_code == 502
    assert r.json()["success"] is False


async def test_catalog_without_key_is_503(client: AsyncClient):
    r = await client.get("/api/catalog/trending")
    assert r.status_code == 503
    assert r.json() == {"success": False, "message": "Catálogo no configurado"}
