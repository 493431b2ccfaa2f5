"""
Album API endpoints.

Handlers return `DecimalJSONResponse` themselves so prices keep their
digits; `response_model` only documents the shape.
"""

from __future__ import annotations

from fastapi import APIRouter, status

from . import service
from .codec import DecimalJSONResponse, DecimalJSONRoute
from .schemas import Album

router = APIRouter(route_class=DecimalJSONRoute, default_response_class=DecimalJSONResponse)


@router.get("/albums", response_model=list[Album])
async def get_albums() -> DecimalJSONResponse:
    return DecimalJSONResponse(service.catalog().list_albums())


@router.get("/albums/{album_id}", response_model=Album)
async def get_album_by_id(album_id: str) -> DecimalJSONResponse:
    album = await service.catalog().get_album(album_id)
    return DecimalJSONResponse(album)


@router.post("/albums", status_code=status.HTTP_201_CREATED, response_model=Album)
async def post_album(album: Album) -> DecimalJSONResponse:
    created = await service.catalog().create_album(album)
    return DecimalJSONResponse(created, status_code=status.HTTP_201_CREATED)


@router.put("/albums/{album_id}", status_code=status.HTTP_201_CREATED, response_model=Album)
async def put_album(album_id: str, album: Album) -> DecimalJSONResponse:
    """
    Replace an existing album. The body id must match the path id.
    """
    replaced = await service.catalog().replace_album(album_id, album)
    return DecimalJSONResponse(replaced, status_code=status.HTTP_201_CREATED)


@router.delete("/albums/{album_id}", response_model=Album)
async def delete_album(album_id: str) -> DecimalJSONResponse:
    removed = await service.catalog().delete_album(album_id)
    return DecimalJSONResponse(removed)
