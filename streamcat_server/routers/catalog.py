# Copyright (C) 2024 StreamCat Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Catalog API - proxies TMDb so the API key stays on the server."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from streamcat_server.services.catalog import Kind, TmdbClient

router = APIRouter(prefix="/catalog", tags=["catalog"])


def get_catalog(request: Request) -> TmdbClient:
    """Return the app's TMDb client; 503 when no API key is configured."""
    client: TmdbClient = request.app.state.catalog
    if not client.configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Catálogo no configurado",
        )
    return client


@router.get("/popular/{kind}")
async def popular(
    kind: Kind,
    page: int = Query(1, ge=1, le=500),
    catalog: TmdbClient = Depends(get_catalog),
) -> dict[str, Any]:
    """Popular movies or series."""
    return {"results": await catalog.popular(kind, page=page)}


@router.get("/trending")
async def trending(catalog: TmdbClient = Depends(get_catalog)) -> dict[str, Any]:
    return {"results": await catalog.trending()}


@router.get("/genres/{kind}")
async def genres(kind: Kind, catalog: TmdbClient = Depends(get_catalog)) -> dict[str, Any]:
    return {"genres": await catalog.genres(kind)}


@router.get("/discover/{kind}")
async def discover(
    kind: Kind,
    genre_id: int = Query(..., ge=1),
    page: int = Query(1, ge=1, le=500),
    catalog: TmdbClient = Depends(get_catalog),
) -> dict[str, Any]:
    """Titles of one genre, as shown in the per-genre rows."""
    return {"results": await catalog.discover(kind, genre_id, page=page)}


@router.get("/search")
async def search(
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1, le=500),
    catalog: TmdbClient = Depends(get_catalog),
) -> dict[str, Any]:
    return {"results": await catalog.search(q, page=page)}


@router.get("/trailer/{kind}/{item_id}")
async def trailer(
    kind: Kind,
    item_id: int,
    catalog: TmdbClient = Depends(get_catalog),
) -> dict[str, Any]:
    """YouTube trailer key and watch URL, or nulls when the title has none."""
    key = await catalog.trailer_key(kind, item_id)
    return {
        "key": key,
        "url": f"https://www.youtube.com/watch?v={key}" if key else None,
    }
