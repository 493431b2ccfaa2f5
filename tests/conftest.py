from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from albums import service as albums_service
from core import config, dynamo

_APP_ENV = (
    "ALBUMS_BACKEND",
    "ALBUMS_TABLE",
    "ALBUMS_SEED_FROM_STORE",
    "AWS_REGION",
    "AWS_ACCESS_KEY_ID",
    "AWS_YOUR_SECRET_KEY",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_TOKEN",
    "AWS_SESSION_TOKEN",
    "AWS_ENDPOINT_URL",
    "USE_STATIC_CREDENTIALS",
    "SERVER_HOST",
    "SERVER_PORT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in _APP_ENV:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the tests.
    monkeypatch.chdir(tmp_path)
    config.reset_settings()
    albums_service.reset_catalog()
    dynamo.close_client()
    yield
    config.reset_settings()
    albums_service.reset_catalog()
    dynamo.close_client()


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("ALBUMS_BACKEND", "memory")
    from main import app

    with TestClient(app) as test_client:
        yield test_client
