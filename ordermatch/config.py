"""Runtime configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

_CREDENTIAL_ENV = "DB_PASSWORD"


@dataclass(frozen=True)
class Config:
    """Database and server settings."""

    db_host: str
    db_port: str
    db_user: str
    db_password: str
    db_name: str
    server_port: str


def _env(key: str, default: str) -> str:
    return os.environ.get(key) or default


def get_config() -> Config:
    """Build a Config from the environment, loading .env outside production."""
    if os.environ.get("APP_ENV") != "production":
        load_dotenv(".env")
    return Config(
        db_host=_env("DB_HOST", "localhost"),
        db_port=_env("DB_PORT", "5432"),
        db_user=_env("DB_USER", "postgres"),
        db_password=_env(_CREDENTIAL_ENV, "password"),
        db_name=_env("DB_NAME", "order_matching_system"),
        server_port=_env("SERVER_PORT", "8080"),
    )