"""
mysql_persistence.settings

Configuration model for MySQL connections and persistence components (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for connections and persistences.
- Hide credentials from repr/logging.
- Offer a cached settings instance for components that are not configured explicitly.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONNECT_TIMEOUT = 1000
DEFAULT_IDLE_TIMEOUT = 10000
DEFAULT_MAX_POOL_SIZE = 3
DEFAULT_RETRIES_COUNT = 3
DEFAULT_MAX_PAGE_SIZE = 100


class ConnectionSettings(BaseModel):
    # A full URI wins over host/port/database when both are given.
    uri: str | None = None
    host: str | None = None
    port: int | None = 3306
    database: str | None = None
    # Extra driver parameters appended to the URL query string (e.g. ssl=false).
    params: dict[str, str] = Field(default_factory=dict)


class CredentialSettings(BaseModel):
    username: str | None = None
    password: str | None = Field(default=None, repr=False)


class ConnectionOptions(BaseModel):
    # Timeouts are in milliseconds.
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
    idle_timeout: int = DEFAULT_IDLE_TIMEOUT
    max_pool_size: int = DEFAULT_MAX_POOL_SIZE
    retries: int = DEFAULT_RETRIES_COUNT
    max_page_size: int = DEFAULT_MAX_PAGE_SIZE


class MysqlSettings(BaseSettings):
    """
    Connection, credential and option sections plus persistence-level values.

    Nested values come from env vars such as `MYSQL_CONNECTION__HOST` or
    `MYSQL_OPTIONS__MAX_POOL_SIZE`.
    """

    model_config = SettingsConfigDict(
        env_prefix="MYSQL_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    service_name: str = "mysql-persistence"
    log_level: str = "INFO"

    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)
    credential: CredentialSettings = Field(default_factory=CredentialSettings)
    options: ConnectionOptions = Field(default_factory=ConnectionOptions)

    # `collection` is accepted for compatibility; `table` takes precedence.
    collection: str | None = None
    table: str | None = None
    schema_name: str | None = None

    def table_name(self, default: str | None = None) -> str | None:
        return self.table or self.collection or default


@lru_cache(maxsize=1)
def get_settings() -> MysqlSettings:
    # Cache avoids re-parsing env vars for every component that falls back to defaults.
    return MysqlSettings()


# --- Module Notes -----------------------------------------------------------
# Persistence components copy what they need from these settings in `configure`;
# a connection created locally by a persistence is configured from the same object.
