# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""TMDb API client for the browse and search screens.

One request per call; no retries and no pagination beyond passing ``page`` through.
"""

import logging
from typing import Any, Literal

import httpx

from streamcat_server.config import Settings
from streamcat_server.errors import CatalogError

logger = logging.getLogger(__name__)

Kind = Literal["movie", "tv"]
IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"


def summarize(item: dict[str, Any], kind: str | None = None) -> dict[str, Any]:
    """Reduce a TMDb movie/tv result to the fields the app renders."""
    media_type = item.get("media_type") or kind
    poster = item.get("poster_path")
    return {
        "id": item.get("id"),
        "media_type": media_type,
        # Movies carry title/release_date, series carry name/first_air_date
        "title": item.get("title") or item.get("name") or "",
        "overview": item.get("overview") or "",
        "release_date": item.get("release_date") or item.get("first_air_date"),
        "vote_average": item.get("vote_average"),
        "genre_ids": item.get("genre_ids") or [],
        "poster_path": poster,
        "poster_url": f"{IMAGE_BASE_URL}{poster}" if poster else None,
    }


class TmdbClient:
    """Thin async wrapper over the TMDb v3 endpoints the app uses."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.themoviedb.org/3",
        language: str = "es-ES",
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.language = language
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "TmdbClient":
        return cls(
            api_key=settings.tmdb_api_key,
            base_url=settings.tmdb_base_url,
            language=settings.tmdb_language,
            timeout=settings.tmdb_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, **params: Any) -> dict[str, Any]:
        if not self.api_key:
            raise CatalogError("TMDB_API_KEY not configured")
        query = {"api_key": self.api_key, "language": self.language}
        query.update({k: v for k, v in params.items() if v is not None})
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.get(f"{self.base_url}{path}", params=query)
                r.raise_for_status()
                data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("TMDb request %s failed: %s", path, e)
            raise CatalogError(f"TMDb request failed: {path}") from e
        if not isinstance(data, dict):
            raise CatalogError(f"Unexpected TMDb response for {path}")
        return data

    async def popular(self, kind: Kind, page: int = 1) -> list[dict[str, Any]]:
        data = await self._get(f"/{kind}/popular", page=page)
        return [summarize(i, kind) for i in data.get("results", [])]

    async def trending(self) -> list[dict[str, Any]]:
        data = await self._get("/trending/all/day")
        return [summarize(i) for i in data.get("results", [])]

    async def genres(self, kind: Kind) -> list[dict[str, Any]]:
        data = await self._get(f"/genre/{kind}/list")
        return [{"id": g.get("id"), "name": g.get("name")} for g in data.get("genres", [])]

    async def discover(self, kind: Kind, genre_id: int, page: int = 1) -> list[dict[str, Any]]:
        data = await self._get(f"/discover/{kind}", with_genres=genre_id, page=page)
        return [summarize(i, kind) for i in data.get("results", [])]

    async def search(self, query: str, page: int = 1) -> list[dict[str, Any]]:
        """Multi search, keeping only movies and series."""
        data = await self._get("/search/multi", query=query, page=page)
        return [
            summarize(i)
            for i in data.get("results", [])
            if i.get("media_type") in ("movie", "tv")
        ]

    async def trailer_key(self, kind: Kind, item_id: int) -> str | None:
        """YouTube key of the first trailer, or None."""
        data = await self._get(f"/{kind}/{item_id}/videos")
        for video in data.get("results", []):
            if video.get("site") == "YouTube" and video.get("type") == "Trailer" and video.get("key"):
                return video["key"]
        return None
