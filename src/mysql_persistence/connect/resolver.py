"""
mysql_persistence.connect.resolver

Resolves MySQL connection and credential settings into a driver URL.

Responsibilities:
- Validate connection settings (uri, or host + port + database).
- Compose a SQLAlchemy `URL` for the async MySQL driver.
"""

from __future__ import annotations

from sqlalchemy.engine import URL, make_url

from mysql_persistence.errors import ConfigError
from mysql_persistence.settings import ConnectionSettings, CredentialSettings, MysqlSettings

ASYNC_DRIVER = "mysql+aiomysql"


class MysqlConnectionResolver:
    def __init__(self) -> None:
        self._connection = ConnectionSettings()
        self._credential = CredentialSettings()

    def configure(self, settings: MysqlSettings) -> None:
        self._connection = settings.connection
        self._credential = settings.credential

    def _validate(self, correlation_id: str | None) -> None:
        conn = self._connection
        if conn.uri:
            return
        if not conn.host:
            raise ConfigError("NO_HOST", "Connection host is not set", correlation_id=correlation_id)
        if not conn.port:
            raise ConfigError("NO_PORT", "Connection port is not set", correlation_id=correlation_id)
        if not conn.database:
            raise ConfigError(
                "NO_DATABASE", "Connection database is not set", correlation_id=correlation_id
            )

    def _compose_url(self) -> URL:
        conn = self._connection
        if conn.uri:
            url = make_url(conn.uri)
            # Plain mysql:// URIs are pointed at the async driver.
            if url.drivername in ("mysql", "mariadb"):
                url = url.set(drivername=ASYNC_DRIVER)
            return url

        username = self._credential.username or None
        password = self._credential.password if username else None
        return URL.create(
            drivername=ASYNC_DRIVER,
            username=username,
            password=password or None,
            host=conn.host,
            port=conn.port,
            database=conn.database,
            query=dict(conn.params),
        )

    def resolve(self, *, correlation_id: str | None = None) -> URL:
        self._validate(correlation_id)
        return self._compose_url()


# --- Module Notes -----------------------------------------------------------
# Only a single host is supported; aiomysql has no notion of multi-host clusters.
