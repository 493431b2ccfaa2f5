import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from albums import router as albums_router
from albums import service as albums_service
from albums.repository import AlbumRepository, DynamoAlbumRepository, InMemoryAlbumRepository
from core import dynamo
from core.config import BACKEND_DYNAMODB, ConfigError, Settings, get_settings
from core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_repository(settings: Settings) -> AlbumRepository:
    if settings.backend != BACKEND_DYNAMODB:
        return InMemoryAlbumRepository()

    client = dynamo.init_client(settings)
    dynamo.ensure_table(client, settings.table_name)
    return DynamoAlbumRepository(client, settings.table_name)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Any failure here aborts startup: bad config, unreachable store, table creation.
    try:
        settings = get_settings()
    except ConfigError:
        setup_logging()
        logger.exception("startup_failed reason=config")
        raise

    setup_logging(settings.log_level)
    try:
        repository = build_repository(settings)
        catalog = albums_service.init_catalog(repository)
        if settings.seed_from_store:
            await catalog.load()
    except Exception:
        logger.exception("startup_failed backend=%s table=%s", settings.backend, settings.table_name)
        dynamo.close_client()
        raise

    logger.info("albums_api_ready backend=%s table=%s", settings.backend, settings.table_name)
    try:
        yield
    finally:
        albums_service.reset_catalog()
        dynamo.close_client()


app = FastAPI(title="albums-api", lifespan=lifespan)

app.include_router(albums_router.router, tags=["albums"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "albums api"}


def run() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(app, host=settings.server_host, port=settings.server_port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
