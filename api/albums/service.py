"""
Album catalog business logic.

The catalog keeps a process-local list mirrored from the store at startup.
Reads are served from that list. An id missing from the list is looked up
in the store and, if found, added to the list, so a skipped or stale load
never hides a stored album. Writes go to the store first and then to the
list, under one lock so concurrent requests cannot interleave.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from fastapi import HTTPException, status
from fastapi.concurrency import run_in_threadpool

from core.dynamo import DynamoError

from .repository import AlbumRepository
from .schemas import Album

logger = logging.getLogger(__name__)

_catalog: AlbumCatalog | None = None


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Album not found")


class AlbumCatalog:
    def __init__(self, repository: AlbumRepository) -> None:
        self.repository = repository
        self._albums: list[Album] = []
        self._lock = asyncio.Lock()

    async def _store(self, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return await run_in_threadpool(fn, *args)
        except DynamoError as exc:
            logger.error("album_store_failed op=%s error=%s", getattr(fn, "__name__", fn), exc)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Album store request failed",
            ) from exc

    def _index(self, album_id: str) -> int:
        for i, album in enumerate(self._albums):
            if album.id == album_id:
                return i
        return -1

    async def load(self) -> int:
        """
        Replace the local list with the store's contents.

        The store keys rows by (id, title); the first row per id wins.
        Store errors propagate so startup aborts.
        """
        rows = await run_in_threadpool(self.repository.scan_albums)
        albums: list[Album] = []
        seen: set[str] = set()
        for album in rows:
            if album.id in seen:
                logger.warning("duplicate_album_id id=%s title=%s skipped", album.id, album.title)
                continue
            seen.add(album.id)
            albums.append(album)

        async with self._lock:
            self._albums = albums
        logger.info("album_catalog_loaded count=%s", len(albums))
        return len(albums)

    async def _locate(self, album_id: str) -> int:
        """
        Index of `album_id` in the local list, or -1. Caller holds the lock.
        """
        idx = self._index(album_id)
        if idx != -1:
            return idx

        rows = await self._store(self.repository.query_by_id, album_id)
        if not rows:
            return -1
        if len(rows) > 1:
            logger.warning("duplicate_album_id id=%s rows=%s using_first", album_id, len(rows))
        self._albums.append(rows[0])
        logger.info("album_mirrored id=%s", album_id)
        return len(self._albums) - 1

    def list_albums(self) -> list[Album]:
        return list(self._albums)

    async def get_album(self, album_id: str) -> Album:
        idx = self._index(album_id)
        if idx != -1:
            return self._albums[idx]

        async with self._lock:
            idx = await self._locate(album_id)
            if idx == -1:
                raise _not_found()
            return self._albums[idx]

    async def create_album(self, album: Album) -> Album:
        async with self._lock:
            # The local list may be stale; the store is the source of truth for ids.
            if await self._locate(album.id) != -1:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Album {album.id} exists",
                )

            await self._store(self.repository.put_album, album)
            self._albums.append(album)

        logger.info("album_created id=%s", album.id)
        return album

    async def replace_album(self, album_id: str, album: Album) -> Album:
        if album.id != album_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Id URI is not the same as JSON",
            )

        async with self._lock:
            idx = await self._locate(album_id)
            if idx == -1:
                raise _not_found()
            previous = self._albums[idx]

            await self._store(self.repository.put_album, album)
            if previous.title != album.title:
                # Title is part of the remote key; drop the row under the old title.
                try:
                    await self._store(self.repository.delete_album, previous.id, previous.title)
                except HTTPException:
                    await self._undo_put(album)
                    raise
            self._albums[idx] = album

        logger.info("album_replaced id=%s", album_id)
        return album

    async def _undo_put(self, album: Album) -> None:
        """
        Remove the row written under a new title, leaving the old row as the only one.
        """
        try:
            await run_in_threadpool(self.repository.delete_album, album.id, album.title)
        except DynamoError:
            logger.exception("album_rollback_failed id=%s title=%s", album.id, album.title)

    async def delete_album(self, album_id: str) -> Album:
        async with self._lock:
            idx = await self._locate(album_id)
            if idx == -1:
                raise _not_found()
            album = self._albums[idx]

            await self._store(self.repository.delete_album, album.id, album.title)
            del self._albums[idx]

        logger.info("album_deleted id=%s", album_id)
        return album


def init_catalog(repository: AlbumRepository) -> AlbumCatalog:
    global _catalog
    _catalog = AlbumCatalog(repository)
    return _catalog


def reset_catalog() -> None:
    global _catalog
    _catalog = None


def catalog() -> AlbumCatalog:
    if _catalog is None:
        raise RuntimeError("Album catalog is not initialized. Call init_catalog() on startup.")
    return _catalog
