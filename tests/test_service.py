from __future__ import annotations

import asyncio
from unittest.mock import Mock, patch

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from albums.repository import DEFAULT_ALBUMS, InMemoryAlbumRepository, album_to_item
from albums.schemas import Album
from albums.service import AlbumCatalog
from core import dynamo
from core.dynamo import DynamoError


def _loaded_catalog(repo) -> AlbumCatalog:
    catalog = AlbumCatalog(repo)
    asyncio.run(catalog.load())
    return catalog


def test_load_keeps_first_row_per_id(caplog) -> None:
    repo = InMemoryAlbumRepository(seed=[Album(id="1", title="A"), Album(id="1", title="B"), Album(id="2", title="C")])
    catalog = AlbumCatalog(repo)

    assert asyncio.run(catalog.load()) == 2
    assert [(a.id, a.title) for a in catalog.list_albums()] == [("1", "A"), ("2", "C")]
    assert "duplicate_album_id id=1" in caplog.text


def test_create_rejects_id_known_only_to_store_and_mirrors_it() -> None:
    repo = InMemoryAlbumRepository(seed=[])
    catalog = _loaded_catalog(repo)
    # Written by another process after this one loaded its list.
    repo.put_album(Album(id="9", title="Elsewhere"))

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(catalog.create_album(Album(id="9", title="Here")))
    assert exc_info.value.status_code == 400
    assert catalog.list_albums() == [Album(id="9", title="Elsewhere")]


def test_replace_with_new_title_moves_remote_row() -> None:
    repo = InMemoryAlbumRepository()
    catalog = _loaded_catalog(repo)

    asyncio.run(catalog.replace_album("2", Album(id="2", title="Jeru (Mono)", artist="Gerry Mulligan")))

    assert [a.title for a in repo.query_by_id("2")] == ["Jeru (Mono)"]
    assert asyncio.run(catalog.get_album("2")).title == "Jeru (Mono)"


def test_store_failure_is_502_and_leaves_list_untouched() -> None:
    repo = Mock()
    repo.scan_albums.return_value = list(DEFAULT_ALBUMS)
    repo.query_by_id.return_value = []
    repo.put_album.side_effect = DynamoError("PutItem failed")
    repo.delete_album.side_effect = DynamoError("DeleteItem failed")
    catalog = _loaded_catalog(repo)

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(catalog.create_album(Album(id="4", title="New")))
    assert exc_info.value.status_code == 502

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(catalog.delete_album("1"))
    assert exc_info.value.status_code == 502

    assert catalog.list_albums() == list(DEFAULT_ALBUMS)


def test_concurrent_inserts_of_same_id_create_one_album() -> None:
    repo = InMemoryAlbumRepository(seed=[])
    catalog = _loaded_catalog(repo)

    async def insert_twice() -> list:
        album = Album(id="5", title="Twice")
        return await asyncio.gather(
            catalog.create_album(album),
            catalog.create_album(album),
            return_exceptions=True,
        )

    results = asyncio.run(insert_twice())
    assert sum(isinstance(r, Album) for r in results) == 1
    assert sum(isinstance(r, HTTPException) and r.status_code == 400 for r in results) == 1
    assert len(catalog.list_albums()) == 1


def test_app_with_dynamodb_backend_provisions_and_seeds(monkeypatch) -> None:
    monkeypatch.setenv("ALBUMS_BACKEND", "dynamodb")
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    monkeypatch.setenv("ALBUMS_TABLE", "albums_test")

    ddb = Mock()
    paginators = {
        "list_tables": Mock(**{"paginate.return_value": [{"TableNames": []}]}),
        "scan": Mock(**{"paginate.return_value": [{"Items": [album_to_item(DEFAULT_ALBUMS[0])]}]}),
    }
    ddb.get_paginator.side_effect = paginators.__getitem__
    ddb.query.return_value = {"Items": []}

    from main import app

    with patch.object(dynamo.boto3, "client", return_value=ddb):
        with TestClient(app) as client:
            assert ddb.create_table.call_args.kwargs["TableName"] == "albums_test"
            assert [a["id"] for a in client.get("/albums").json()] == ["1"]

            resp = client.post("/albums", json={"id": "2", "title": "Jeru", "artist": "Gerry Mulligan", "price": 17.99})
            assert resp.status_code == 201
            assert ddb.put_item.call_args.kwargs["Item"]["Price"] == {"S": "17.99"}

            assert client.delete("/albums/1").status_code == 200
            ddb.delete_item.assert_called_once_with(
                TableName="albums_test",
                Key={"ID": {"S": "1"}, "Title": {"S": "Blue Train"}},
            )

    ddb.close.assert_called_once()


def test_startup_aborts_on_store_failure(monkeypatch) -> None:
    monkeypatch.setenv("ALBUMS_BACKEND", "dynamodb")
    monkeypatch.setenv("AWS_REGION", "us-east-1")

    ddb = Mock()
    ddb.get_paginator.return_value.paginate.side_effect = DynamoError("unreachable")

    from main import app

    with patch.object(dynamo.boto3, "client", return_value=ddb):
        with pytest.raises(DynamoError):
            with TestClient(app):
                pass


def test_failed_title_move_removes_new_row_and_keeps_old_album() -> None:
    repo = InMemoryAlbumRepository()
    real_delete = repo.delete_album
    calls: list[tuple[str, str]] = []

    def delete_album(album_id: str, title: str) -> None:
        calls.append((album_id, title))
        if title == "Jeru":
            raise DynamoError("DeleteItem failed")
        real_delete(album_id, title)

    repo.delete_album = delete_album
    catalog = _loaded_catalog(repo)

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(catalog.replace_album("2", Album(id="2", title="Jeru (Mono)")))
    assert exc_info.value.status_code == 502

    assert calls == [("2", "Jeru"), ("2", "Jeru (Mono)")]
    assert [a.title for a in repo.query_by_id("2")] == ["Jeru"]
    assert asyncio.run(catalog.get_album("2")).title == "Jeru"


def test_startup_logs_config_errors(monkeypatch, caplog) -> None:
    monkeypatch.setenv("ALBUMS_BACKEND", "dynamodb")

    from core.config import ConfigError
    from main import app

    with pytest.raises(ConfigError):
        with TestClient(app):
            pass
    assert "startup_failed reason=config" in caplog.text
