"""
Album persistence.

`DynamoAlbumRepository` talks to the remote table; `InMemoryAlbumRepository`
backs the memory-only deployment and tests. Both expose the same four calls.
Calls are blocking; the service layer runs them in the threadpool.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

from botocore.exceptions import BotoCoreError, ClientError

from core.dynamo import PARTITION_KEY, SORT_KEY, DynamoError

from .schemas import Album

ARTIST_ATTR = "Artist"
PRICE_ATTR = "Price"

DEFAULT_ALBUMS: tuple[Album, ...] = (
    Album(id="1", title="Blue Train", artist="John Coltrane", price=Decimal("56.99")),
    Album(id="2", title="Jeru", artist="Gerry Mulligan", price=Decimal("17.99")),
    Album(id="3", title="Sarah Vaughan and Clifford Brown", artist="Sarah Vaughan", price=Decimal("39.99")),
)


class AlbumRepository(Protocol):
    def scan_albums(self) -> list[Album]: ...

    def query_by_id(self, album_id: str) -> list[Album]: ...

    def put_album(self, album: Album) -> None: ...

    def delete_album(self, album_id: str, title: str) -> None: ...


def _parse_price(raw: str | None) -> Decimal | None:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        price = Decimal(raw)
    except InvalidOperation:
        return None
    # NaN and Infinity have no JSON form.
    return price if price.is_finite() else None


def album_to_item(album: Album) -> dict[str, dict[str, str]]:
    item = {
        PARTITION_KEY: {"S": album.id},
        SORT_KEY: {"S": album.title},
        ARTIST_ATTR: {"S": album.artist},
    }
    if album.price is not None:
        # Stored as a string attribute, matching tables written by earlier versions.
        item[PRICE_ATTR] = {"S": str(album.price)}
    return item


def _attr_value(attr: dict[str, Any] | None) -> str | None:
    if not attr:
        return None
    for type_key in ("S", "N"):
        if type_key in attr:
            return str(attr[type_key])
    return None


def item_to_album(item: dict[str, Any]) -> Album:
    return Album(
        id=_attr_value(item.get(PARTITION_KEY)) or "",
        title=_attr_value(item.get(SORT_KEY)) or "",
        artist=_attr_value(item.get(ARTIST_ATTR)) or "",
        price=_parse_price(_attr_value(item.get(PRICE_ATTR))),
    )


class DynamoAlbumRepository:
    def __init__(self, client: Any, table_name: str) -> None:
        self.client = client
        self.table_name = table_name

    def scan_albums(self) -> list[Album]:
        """
        Full table scan, following LastEvaluatedKey until exhausted.
        """
        albums: list[Album] = []
        try:
            for page in self.client.get_paginator("scan").paginate(TableName=self.table_name):
                albums.extend(item_to_album(item) for item in page.get("Items", []))
        except (BotoCoreError, ClientError) as exc:
            raise DynamoError(f"Scan failed on {self.table_name}: {exc}") from exc
        return albums

    def query_by_id(self, album_id: str) -> list[Album]:
        # The table has a composite key, so lookups by ID alone go through Query.
        try:
            out = self.client.query(
                TableName=self.table_name,
                KeyConditionExpression="#pk = :id",
                ExpressionAttributeNames={"#pk": PARTITION_KEY},
                ExpressionAttributeValues={":id": {"S": album_id}},
            )
        except (BotoCoreError, ClientError) as exc:
            raise DynamoError(f"Query failed on {self.table_name}: {exc}") from exc
        return [item_to_album(item) for item in out.get("Items", [])]

    def put_album(self, album: Album) -> None:
        try:
            self.client.put_item(TableName=self.table_name, Item=album_to_item(album))
        except (BotoCoreError, ClientError) as exc:
            raise DynamoError(f"PutItem failed on {self.table_name}: {exc}") from exc

    def delete_album(self, album_id: str, title: str) -> None:
        try:
            self.client.delete_item(
                TableName=self.table_name,
                Key={
                    PARTITION_KEY: {"S": album_id},
                    SORT_KEY: {"S": title},
                },
            )
        except (BotoCoreError, ClientError) as exc:
            raise DynamoError(f"DeleteItem failed on {self.table_name}: {exc}") from exc


class InMemoryAlbumRepository:
    """
    Rows keyed by (id, title), the same shape as the remote table.
    """

    def __init__(self, seed: tuple[Album, ...] | list[Album] = DEFAULT_ALBUMS) -> None:
        self._rows: dict[tuple[str, str], Album] = {}
        for album in seed:
            self.put_album(album)

    def scan_albums(self) -> list[Album]:
        return [album.model_copy() for album in self._rows.values()]

    def query_by_id(self, album_id: str) -> list[Album]:
        return [album.model_copy() for (row_id, _), album in self._rows.items() if row_id == album_id]

    def put_album(self, album: Album) -> None:
        self._rows[(album.id, album.title)] = album.model_copy()

    def delete_album(self, album_id: str, title: str) -> None:
        self._rows.pop((album_id, title), None)
