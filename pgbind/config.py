"""Connection configuration models and loading helpers."""

from __future__ import annotations

import os
from pathlib import Path

import tomllib

from pydantic import BaseModel, ConfigDict, Field, ValidationError

CONFIG_FILE = Path.home() / ".config" / "pgbind" / "config.toml"
PASSWORD_ENV = "PGBIND_PASSWORD"


class ConnectionConfig(BaseModel):
    """Settings used to open a connection; fixed for the lifetime of a client."""

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = 5432
    database: str = "postgres"
    username: str = "postgres"
    password: str = Field(default="", repr=False)
    debug: bool = False
    connect_timeout: float = 5.0
    persistent: bool = True
    statement_cache_size: int = 100

    def connect_kwargs(self) -> dict[str, object]:
        """Keyword arguments for `asyncpg.connect`."""

        kwargs: dict[str, object] = {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.username,
            "timeout": self.connect_timeout,
            "statement_cache_size": self.statement_cache_size if self.persistent else 0,
        }
        if self.password:
            kwargs["password"] = self.password
        return kwargs

    def with_debug(self, debug: bool) -> ConnectionConfig:
        return self.model_copy(update={"debug": debug})


class AppConfig(BaseModel):
    """Shape of the configuration file."""

    database: ConnectionConfig = Field(default_factory=ConnectionConfig)


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing or malformed."""

    try:
        data = _read_config_file(path or CONFIG_FILE)
    except (tomllib.TOMLDecodeError, OSError):
        data = {}

    password = os.environ.get(PASSWORD_ENV)
    if password:
        data["password"] = password
    try:
        return AppConfig(database=ConnectionConfig(**data))
    except ValidationError:
        return AppConfig()


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    section = raw.get("database") if isinstance(raw, dict) else None
    if not isinstance(section, dict):
        return data
    for key in ("host", "database", "username", "password"):
        value = section.get(key)
        if isinstance(value, str):
            data[key] = value
    for key in ("port", "statement_cache_size"):
        value = section.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            data[key] = value
    for key in ("debug", "persistent"):
        value = section.get(key)
        if isinstance(value, bool):
            data[key] = value
    timeout = section.get("connect_timeout")
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool):
        data["connect_timeout"] = float(timeout)
    return data


__all__ = ["AppConfig", "CONFIG_FILE", "ConnectionConfig", "PASSWORD_ENV", "load_config"]
