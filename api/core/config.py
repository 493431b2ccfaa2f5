"""
Application settings read from the environment.

An optional `.env` file in the working directory is loaded first; values
already present in the process environment win over the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

BACKEND_MEMORY = "memory"
BACKEND_DYNAMODB = "dynamodb"

DEFAULT_TABLE_NAME = "albums"
DEFAULT_SERVER_HOST = "localhost"
DEFAULT_SERVER_PORT = 8080

_TRUE_VALUES = {"1", "true", "yes", "on"}

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
_LOG_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class Settings:
    backend: str = BACKEND_DYNAMODB
    table_name: str = DEFAULT_TABLE_NAME
    aws_region: str = ""
    use_static_credentials: bool = False
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_session_token: str = ""
    aws_endpoint_url: str | None = None
    server_host: str = DEFAULT_SERVER_HOST
    server_port: int = DEFAULT_SERVER_PORT
    log_level: str = "INFO"
    seed_from_store: bool = True


_settings: Settings | None = None


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def _env_first(*names: str) -> str:
    for name in names:
        value = _env(name)
        if value:
            return value
    return ""


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if not raw:
        return default
    return raw.lower() in _TRUE_VALUES


def _env_port(name: str, default: int) -> int:
    raw = _env(name)
    if not raw:
        return default
    try:
        port = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}.") from exc
    if not 0 < port < 65536:
        raise ConfigError(f"{name} is out of range: {port}.")
    return port


def _env_log_level(name: str, default: str) -> str:
    level = (_env(name, default) or default).upper()
    return _LOG_LEVEL_ALIASES.get(level, level)


def validate(settings: Settings) -> Settings:
    if settings.log_level not in LOG_LEVELS:
        raise ConfigError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {settings.log_level!r}.")
    if settings.backend not in (BACKEND_MEMORY, BACKEND_DYNAMODB):
        raise ConfigError(
            f"ALBUMS_BACKEND must be '{BACKEND_MEMORY}' or '{BACKEND_DYNAMODB}', got {settings.backend!r}."
        )
    if settings.backend != BACKEND_DYNAMODB:
        return settings

    if not settings.table_name:
        raise ConfigError("ALBUMS_TABLE is empty.")
    if not settings.aws_region:
        raise ConfigError("AWS_REGION is not set.")
    if settings.use_static_credentials:
        if not settings.aws_access_key_id:
            raise ConfigError("USE_STATIC_CREDENTIALS is set but AWS_ACCESS_KEY_ID is missing.")
        if not settings.aws_secret_access_key:
            raise ConfigError("USE_STATIC_CREDENTIALS is set but AWS_YOUR_SECRET_KEY is missing.")
    return settings


def load_settings(*, dotenv_path: str | None = None) -> Settings:
    """
    Build settings from `.env` + environment and validate them.

    Raises ConfigError on anything the service cannot start with.
    """
    load_dotenv(dotenv_path=dotenv_path or find_dotenv(usecwd=True), override=False)

    settings = Settings(
        backend=(_env("ALBUMS_BACKEND", BACKEND_DYNAMODB) or BACKEND_DYNAMODB).lower(),
        table_name=_env("ALBUMS_TABLE", DEFAULT_TABLE_NAME),
        aws_region=_env("AWS_REGION"),
        use_static_credentials=_env_bool("USE_STATIC_CREDENTIALS", False),
        aws_access_key_id=_env("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=_env_first("AWS_YOUR_SECRET_KEY", "AWS_SECRET_ACCESS_KEY"),
        aws_session_token=_env_first("AWS_TOKEN", "AWS_SESSION_TOKEN"),
        aws_endpoint_url=_env("AWS_ENDPOINT_URL") or None,
        server_host=_env("SERVER_HOST", DEFAULT_SERVER_HOST) or DEFAULT_SERVER_HOST,
        server_port=_env_port("SERVER_PORT", DEFAULT_SERVER_PORT),
        log_level=_env_log_level("LOG_LEVEL", "INFO"),
        seed_from_store=_env_bool("ALBUMS_SEED_FROM_STORE", True),
    )
    return validate(settings)


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
