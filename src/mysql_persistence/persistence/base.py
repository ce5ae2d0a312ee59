"""
mysql_persistence.persistence.base

Generic MySQL persistence component.

Responsibilities:
- Own the lifecycle of a persistence (configure, references, open/close, clear).
- Collect and auto-create schema objects when the table does not exist yet.
- Build parameterized SQL from column maps and convert rows into typed items.
- Provide filter-based paging, listing, counting, random pick, insert and delete.

Child classes pass SQL fragments (filter, sort, select) built from their own
filter parameters; column values always travel as bound parameters.
"""

from __future__ import annotations

import asyncio
import json
import random
from collections.abc import Mapping, Sequence
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import text
from sqlalchemy.engine import Result, RowMapping
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from mysql_persistence.connect.connection import MysqlConnection
from mysql_persistence.data import DataPage, PagingParams
from mysql_persistence.errors import (
    InvalidStateError,
    MysqlConnectionError,
    QueryTerminatedError,
)
from mysql_persistence.observability.logging import get_logger, log_context
from mysql_persistence.settings import DEFAULT_MAX_PAGE_SIZE, MysqlSettings, get_settings

T = TypeVar("T")

log = get_logger(__name__)

_MAP_ADAPTER: TypeAdapter[dict[str, Any]] = TypeAdapter(dict[str, Any])


def bind_name(index: int) -> str:
    return f"p{index}"


def bind_params(values: Sequence[Any], start: int = 0) -> dict[str, Any]:
    """
    Map positional values onto the `:p<N>` placeholders produced by the generators.
    """

    return {bind_name(start + i): value for i, value in enumerate(values)}


def quote_literal(value: Any) -> str:
    """
    Render a value as a MySQL string literal for use inside filter fragments.

    Colons get a backslash escape, which `text()` turns back into a plain colon.
    """

    escaped = str(value).replace("\\", "\\\\").replace("'", "''")
    escaped = escaped.replace(":", "\\:")
    return f"'{escaped}'"


def _to_column_value(value: Any) -> Any:
    # Nested structures are stored as JSON text.
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


def _from_column_value(value: Any) -> Any:
    # JSON text written by `_to_column_value`; other values pass through.
    if isinstance(value, (bytes, bytearray)):
        looks_like_json = value[:1] in (b"{", b"[")
    elif isinstance(value, str):
        looks_like_json = value[:1] in ("{", "[")
    else:
        return value

    if not looks_like_json:
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


class MysqlPersistence(Generic[T]):
    """
    Basic persistence component that stores items of any type in a MySQL table.

    Typical child class:

        class NotePersistence(MysqlPersistence[Note]):
            def __init__(self) -> None:
                super().__init__(Note, "notes")

            def define_schema(self) -> None:
                self.clear_schema()
                self.ensure_schema(
                    f"CREATE TABLE {self.quoted_table_name()} "
                    "(id VARCHAR(32) PRIMARY KEY, `title` VARCHAR(100), `body` TEXT)"
                )

            async def get_one_by_title(self, title: str) -> Note | None:
                items = await self.get_list_by_filter("`title`=" + quote_literal(title))
                return items[0] if items else None
    """

    def __init__(self, item_type: Any, table_name: str | None = None) -> None:
        self.item_type = item_type
        self._item_adapter: TypeAdapter[T] = TypeAdapter(item_type)

        self.settings: MysqlSettings | None = None
        self.connection: MysqlConnection | None = None
        self._local_connection = False

        self.engine: AsyncEngine | None = None
        self.database_name: str | None = None
        self.table_name: str | None = table_name
        self.schema_name: str | None = None
        self.max_page_size = DEFAULT_MAX_PAGE_SIZE

        self._schema_statements: list[str] = []
        self._opened = False
        # Set on close so in-flight row iteration stops.
        self._terminated = asyncio.Event()

    # --- configuration & references ------------------------------------------

    def configure(self, settings: MysqlSettings) -> None:
        self.settings = settings
        self.table_name = settings.table_name(self.table_name)
        self.schema_name = settings.schema_name or self.schema_name
        self.max_page_size = settings.options.max_page_size

    def set_references(self, connection: MysqlConnection | None = None) -> None:
        """
        Use a shared connection, or fall back to a local one built from settings.
        """

        if connection is not None:
            self.connection = connection
            self._local_connection = False
        else:
            self.connection = self._create_connection()
            self._local_connection = True

    def unset_references(self) -> None:
        self.connection = None

    def _create_connection(self) -> MysqlConnection:
        connection = MysqlConnection()
        connection.configure(self.settings or get_settings())
        return connection

    # --- schema ----------------------------------------------------------------

    def define_schema(self) -> None:
        """
        Override in child classes to declare tables and indexes.
        """

        self.clear_schema()

    def ensure_schema(self, schema_statement: str) -> None:
        self._schema_statements.append(schema_statement)

    def clear_schema(self) -> None:
        self._schema_statements = []

    def ensure_index(
        self,
        name: str,
        keys: Mapping[str, int | str],
        options: Mapping[str, Any] | None = None,
    ) -> None:
        """
        Add a CREATE INDEX statement; a key value of 1 is ascending, anything else DESC.

        Options: `unique` (truthy) and `type` (e.g. "BTREE").
        """

        options = options or {}
        builder = "CREATE"
        if options.get("unique"):
            builder += " UNIQUE"

        # MySQL index names live in the table's schema and cannot be qualified.
        builder += f" INDEX {self.quote_identifier(name)} ON {self.quoted_table_name()}"

        fields = ", ".join(
            self.quote_identifier(key) + ("" if str(asc) == "1" else " DESC")
            for key, asc in keys.items()
        )
        builder += f" ({fields})"

        if options.get("type"):
            builder += f" USING {options['type']}"

        self.ensure_schema(builder)

    async def create_schema(self, *, correlation_id: str | None = None) -> None:
        if not self._schema_statements:
            return

        if await self._check_table_exists():
            return

        log.debug(
            "table_autocreate",
            table=self.quoted_table_name(),
            statements=len(self._schema_statements),
            **log_context(correlation_id),
        )
        async with self._require_engine(correlation_id).begin() as conn:
            for statement in self._schema_statements:
                try:
                    await conn.exec_driver_sql(statement)
                except SQLAlchemyError:
                    log.error(
                        "table_autocreate_failed",
                        statement=statement,
                        **log_context(correlation_id),
                        exc_info=True,
                    )
                    raise

    async def _check_table_exists(self) -> bool:
        query = "SHOW TABLES"
        if self.schema_name:
            query += " FROM " + self.quote_identifier(self.schema_name)
        query += " LIKE :table"

        async with self._require_engine().connect() as conn:
            result = await conn.execute(text(query), {"table": self.table_name})
            rows = result.all()

        return any(value == self.table_name for row in rows for value in row)

    # --- conversion ------------------------------------------------------------

    def convert_to_public(self, row: RowMapping | Mapping[str, Any]) -> T:
        """
        Validate a row into `T`, reading JSON text columns back into nested values.

        Fields that reject the decoded value (plain strings that merely look like
        JSON) are validated from the raw column text instead.
        """

        values = dict(row)
        decoded = {key: _from_column_value(value) for key, value in values.items()}
        try:
            return self._item_adapter.validate_python(decoded)
        except ValidationError as exc:
            failed = {error["loc"][0] for error in exc.errors() if error["loc"]}
            retry = {
                key: values[key] if key in failed else value for key, value in decoded.items()
            }
            if retry == decoded:
                raise
        return self._item_adapter.validate_python(retry)

    def convert_from_public(self, item: T) -> dict[str, Any]:
        data = self._item_adapter.dump_python(item, mode="json")
        return {key: _to_column_value(value) for key, value in data.items()}

    def convert_from_public_partial(self, data: Mapping[str, Any]) -> dict[str, Any]:
        values = _MAP_ADAPTER.dump_python(dict(data), mode="json")
        return {key: _to_column_value(value) for key, value in values.items()}

    # --- SQL helpers -----------------------------------------------------------

    @staticmethod
    def quote_identifier(value: str | None) -> str:
        if not value:
            return value or ""
        if value[0] == "`":
            return value
        return f"`{value}`"

    def quoted_table_name(self) -> str:
        if self.schema_name:
            return self.quote_identifier(self.schema_name) + "." + self.quote_identifier(self.table_name)
        return self.quote_identifier(self.table_name)

    def generate_columns(self, columns: Sequence[str]) -> str:
        return ",".join(self.quote_identifier(column) for column in columns)

    def generate_parameters(self, count: int, start: int = 0) -> str:
        if count <= 0:
            return ""
        return ",".join(f":{bind_name(start + i)}" for i in range(count))

    def generate_set_parameters(self, columns: Sequence[str], start: int = 0) -> str:
        return ",".join(
            f"{self.quote_identifier(column)}=:{bind_name(start + i)}"
            for i, column in enumerate(columns)
        )

    def generate_columns_and_values(self, obj_map: Mapping[str, Any]) -> tuple[list[str], list[Any]]:
        return list(obj_map.keys()), list(obj_map.values())

    # --- state -----------------------------------------------------------------

    def is_open(self) -> bool:
        return self._opened

    def is_terminated(self) -> bool:
        return self._terminated.is_set()

    def _require_engine(self, correlation_id: str | None = None) -> AsyncEngine:
        if self.engine is None:
            raise InvalidStateError(
                "NOT_OPENED", "MySql persistence is not opened", correlation_id=correlation_id
            )
        return self.engine

    def _convert_rows(self, result: Result, correlation_id: str | None) -> list[T]:
        items: list[T] = []
        for row in result.mappings():
            if self.is_terminated():
                raise QueryTerminatedError(correlation_id=correlation_id)
            items.append(self.convert_to_public(row))
        return items

    # --- lifecycle -------------------------------------------------------------

    async def open(self, *, correlation_id: str | None = None) -> None:
        if self._opened:
            return

        self._terminated = asyncio.Event()

        if self.connection is None:
            self.connection = self._create_connection()
            self._local_connection = True

        if self._local_connection:
            await self.connection.open(correlation_id=correlation_id)

        if not self.connection.is_open():
            raise MysqlConnectionError(
                "CONNECT_FAILED", "MySql connection is not opened", correlation_id=correlation_id
            )

        self.engine = self.connection.get_engine()
        self.database_name = self.connection.get_database_name()

        self.define_schema()
        try:
            await self.create_schema(correlation_id=correlation_id)
        except SQLAlchemyError as exc:
            self.engine = None
            if self._local_connection:
                await self.connection.close(correlation_id=correlation_id)
                self.connection = None
            raise MysqlConnectionError(
                "CONNECT_FAILED", "Connection to mysql failed", correlation_id=correlation_id
            ) from exc

        self._opened = True
        log.debug(
            "mysql_persistence_opened",
            database=self.database_name,
            table=self.quoted_table_name(),
            **log_context(correlation_id),
        )

    async def close(self, *, correlation_id: str | None = None) -> None:
        if not self._opened:
            return

        if self.connection is None:
            raise InvalidStateError(
                "NO_CONNECTION", "MySql connection is missing", correlation_id=correlation_id
            )

        self._terminated.set()
        if self._local_connection:
            await self.connection.close(correlation_id=correlation_id)
            self.connection = None

        self._opened = False
        self.engine = None

    async def clear(self, *, correlation_id: str | None = None) -> None:
        if not self.table_name:
            raise InvalidStateError(
                "NO_TABLE", "Table name is not defined", correlation_id=correlation_id
            )

        try:
            async with self._require_engine(correlation_id).begin() as conn:
                await conn.execute(text("DELETE FROM " + self.quoted_table_name()))
        except SQLAlchemyError as exc:
            raise MysqlConnectionError(
                "CONNECT_FAILED", "Connection to mysql failed", correlation_id=correlation_id
            ) from exc

    # --- operations ------------------------------------------------------------

    async def get_page_by_filter(
        self,
        filter: str | None = None,
        paging: PagingParams | None = None,
        sort: str | None = None,
        select: str | None = None,
        *,
        correlation_id: str | None = None,
    ) -> DataPage[T]:
        query = f"SELECT {select or '*'} FROM {self.quoted_table_name()}"

        paging = paging or PagingParams()
        skip = paging.get_skip(-1)
        take = paging.get_take(self.max_page_size)

        if filter:
            query += " WHERE " + filter
        if sort:
            query += " ORDER BY " + sort

        query += f" LIMIT {take}"
        if skip >= 0:
            query += f" OFFSET {skip}"

        async with self._require_engine(correlation_id).connect() as conn:
            result = await conn.execute(text(query))
            items = self._convert_rows(result, correlation_id)

        log.debug(
            "items_retrieved",
            table=self.table_name,
            count=len(items),
            **log_context(correlation_id),
        )

        if paging.total:
            total = await self.get_count_by_filter(filter, correlation_id=correlation_id)
            return DataPage(data=items, total=total)

        return DataPage(data=items)

    async def get_count_by_filter(
        self, filter: str | None = None, *, correlation_id: str | None = None
    ) -> int:
        query = "SELECT COUNT(*) AS count FROM " + self.quoted_table_name()
        if filter:
            query += " WHERE " + filter

        async with self._require_engine(correlation_id).connect() as conn:
            result = await conn.execute(text(query))
            count = int(result.scalar() or 0)

        if count:
            log.debug(
                "items_counted",
                table=self.table_name,
                count=count,
                **log_context(correlation_id),
            )
        return count

    async def get_list_by_filter(
        self,
        filter: str | None = None,
        sort: str | None = None,
        select: str | None = None,
        *,
        correlation_id: str | None = None,
    ) -> list[T]:
        query = f"SELECT {select or '*'} FROM {self.quoted_table_name()}"
        if filter:
            query += " WHERE " + filter
        if sort:
            query += " ORDER BY " + sort

        async with self._require_engine(correlation_id).connect() as conn:
            result = await conn.execute(text(query))
            items = self._convert_rows(result, correlation_id)

        log.debug(
            "items_retrieved",
            table=self.table_name,
            count=len(items),
            **log_context(correlation_id),
        )
        return items

    async def get_one_random(
        self, filter: str | None = None, *, correlation_id: str | None = None
    ) -> T | None:
        count = await self.get_count_by_filter(filter, correlation_id=correlation_id)
        if count == 0:
            log.debug(
                "random_item_table_empty",
                table=self.table_name,
                **log_context(correlation_id),
            )
            return None

        if self.is_terminated():
            raise QueryTerminatedError(correlation_id=correlation_id)

        pos = random.randrange(count)

        query = "SELECT * FROM " + self.quoted_table_name()
        if filter:
            query += " WHERE " + filter
        query += f" LIMIT 1 OFFSET {pos}"

        async with self._require_engine(correlation_id).connect() as conn:
            result = await conn.execute(text(query))
            row = result.mappings().first()

        if row is None:
            log.debug("random_item_not_found", table=self.table_name, **log_context(correlation_id))
            return None

        log.debug("random_item_retrieved", table=self.table_name, **log_context(correlation_id))
        return self.convert_to_public(row)

    async def create(self, item: T, *, correlation_id: str | None = None) -> T:
        obj_map = self.convert_from_public(item)
        columns, values = self.generate_columns_and_values(obj_map)

        query = (
            f"INSERT INTO {self.quoted_table_name()} ({self.generate_columns(columns)})"
            f" VALUES ({self.generate_parameters(len(values))})"
        )

        async with self._require_engine(correlation_id).begin() as conn:
            await conn.execute(text(query), bind_params(values))

        log.debug(
            "item_created",
            table=self.table_name,
            id=obj_map.get("id"),
            **log_context(correlation_id),
        )
        return item

    async def delete_by_filter(
        self, filter: str | None = None, *, correlation_id: str | None = None
    ) -> None:
        query = "DELETE FROM " + self.quoted_table_name()
        if filter:
            query += " WHERE " + filter

        async with self._require_engine(correlation_id).begin() as conn:
            result = await conn.execute(text(query))

        log.debug(
            "items_deleted",
            table=self.table_name,
            count=result.rowcount,
            **log_context(correlation_id),
        )


# --- Module Notes -----------------------------------------------------------
# Filter, sort and select fragments are inserted verbatim; child classes must
# quote any user-supplied literal they embed (see `quote_literal`).
