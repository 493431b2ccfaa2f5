"""
DynamoDB client wiring and table provisioning (boto3, low-level client).

This module owns the process-wide client. FastAPI creates it on startup and
drops it on shutdown (see `api/main.py`).

Credentials:
- USE_STATIC_CREDENTIALS=TRUE -> access key / secret key / session token from settings
- otherwise -> boto3 default chain (env vars, shared config, IAM or Lambda role)
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings

PARTITION_KEY = "ID"
SORT_KEY = "Title"

logger = logging.getLogger(__name__)

_client: Any | None = None


# Store failures are explicit and separable from other runtime errors.
class DynamoError(RuntimeError):
    pass


def error_code(exc: BaseException) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code", ""))
    return ""


def build_client(settings: Settings) -> Any:
    kwargs: dict[str, Any] = {
        "region_name": settings.aws_region,
        "config": Config(retries={"max_attempts": 3, "mode": "standard"}),
    }
    if settings.aws_endpoint_url:
        kwargs["endpoint_url"] = settings.aws_endpoint_url

    if settings.use_static_credentials:
        kwargs["aws_access_key_id"] = settings.aws_access_key_id
        kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
        kwargs["aws_session_token"] = settings.aws_session_token or None
        logger.info("dynamodb_client credentials=static region=%s", settings.aws_region)
    else:
        logger.info("dynamodb_client credentials=default_chain region=%s", settings.aws_region)

    try:
        return boto3.client("dynamodb", **kwargs)
    except BotoCoreError as exc:
        raise DynamoError(f"Failed to create DynamoDB client: {exc}") from exc


def init_client(settings: Settings) -> Any:
    global _client
    if _client is None:
        _client = build_client(settings)
    return _client


def close_client() -> None:
    global _client
    if _client is None:
        return None
    _client.close()
    _client = None


def client() -> Any:
    if _client is None:
        raise RuntimeError("DynamoDB client is not initialized. Call init_client() on startup.")
    return _client


def list_tables(ddb: Any) -> list[str]:
    """
    Return every table name visible to the client, following pagination.
    """
    names: list[str] = []
    try:
        for page in ddb.get_paginator("list_tables").paginate():
            names.extend(page.get("TableNames", []))
    except (BotoCoreError, ClientError) as exc:
        raise DynamoError(f"ListTables failed: {exc}") from exc
    return names


def ensure_table(ddb: Any, table_name: str) -> bool:
    """
    Create `table_name` unless it already exists. Returns True when created.

    Key schema: ID (HASH) + Title (RANGE), both strings, on-demand billing.
    """
    if table_name in list_tables(ddb):
        logger.info("table_exists table=%s", table_name)
        return False

    try:
        ddb.create_table(
            TableName=table_name,
            AttributeDefinitions=[
                {"AttributeName": PARTITION_KEY, "AttributeType": "S"},
                {"AttributeName": SORT_KEY, "AttributeType": "S"},
            ],
            KeySchema=[
                {"AttributeName": PARTITION_KEY, "KeyType": "HASH"},
                {"AttributeName": SORT_KEY, "KeyType": "RANGE"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
    except ClientError as exc:
        # Another process created it between ListTables and CreateTable.
        if error_code(exc) == "ResourceInUseException":
            logger.info("table_exists table=%s", table_name)
            return False
        raise DynamoError(f"CreateTable failed for {table_name}: {exc}") from exc
    except BotoCoreError as exc:
        raise DynamoError(f"CreateTable failed for {table_name}: {exc}") from exc

    try:
        ddb.get_waiter("table_exists").wait(TableName=table_name)
    except (BotoCoreError, ClientError) as exc:
        raise DynamoError(f"Table {table_name} did not become active: {exc}") from exc

    logger.info("table_created table=%s", table_name)
    return True
