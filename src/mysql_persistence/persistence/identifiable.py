"""
mysql_persistence.persistence.identifiable

MySQL persistence for items with unique ids.

Responsibilities:
- Fetch items by id or by a batch of ids.
- Create (with id generation), upsert, update and partially update items.
- Delete items by id or by a batch of ids.

Items are expected to expose an `id` (dict key, model field or attribute) that
maps onto the table's `id` primary key column.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from mysql_persistence.observability.logging import get_logger, log_context
from mysql_persistence.persistence.base import MysqlPersistence, bind_name, bind_params
from mysql_persistence.persistence.ids import (
    clone,
    generate_object_id_if_not_exists,
    generate_object_map_id_if_not_exists,
    get_object_id,
)

T = TypeVar("T")
K = TypeVar("K")

log = get_logger(__name__)


class IdentifiableMysqlPersistence(MysqlPersistence[T], Generic[T, K]):
    """
    In basic scenarios child classes only override the filter-based reads with
    their own filter-to-SQL translation; everything else works out of the box.
    """

    def __init__(self, item_type: Any, table_name: str) -> None:
        if not table_name:
            raise ValueError("Table name could not be empty")
        super().__init__(item_type, table_name)

    async def _fetch_by_id(self, conn: AsyncConnection, id: K) -> T | None:
        query = f"SELECT * FROM {self.quoted_table_name()} WHERE id=:{bind_name(0)}"
        result = await conn.execute(text(query), bind_params([id]))
        row = result.mappings().first()
        if row is None:
            return None
        return self.convert_to_public(row)

    async def get_list_by_ids(
        self, ids: Sequence[K], *, correlation_id: str | None = None
    ) -> list[T]:
        if not ids:
            return []

        query = (
            f"SELECT * FROM {self.quoted_table_name()}"
            f" WHERE id IN({self.generate_parameters(len(ids))})"
        )

        async with self._require_engine(correlation_id).connect() as conn:
            result = await conn.execute(text(query), bind_params(list(ids)))
            items = self._convert_rows(result, correlation_id)

        log.debug(
            "items_retrieved",
            table=self.table_name,
            count=len(items),
            **log_context(correlation_id),
        )
        return items

    async def get_one_by_id(self, id: K, *, correlation_id: str | None = None) -> T | None:
        async with self._require_engine(correlation_id).connect() as conn:
            item = await self._fetch_by_id(conn, id)

        if item is None:
            log.debug("item_not_found", table=self.table_name, id=id, **log_context(correlation_id))
        else:
            log.debug("item_retrieved", table=self.table_name, id=id, **log_context(correlation_id))
        return item

    async def create(self, item: T, *, correlation_id: str | None = None) -> T:
        new_item = generate_object_id_if_not_exists(clone(item))
        return await super().create(new_item, correlation_id=correlation_id)

    async def set(self, item: T, *, correlation_id: str | None = None) -> T | None:
        """
        Insert the item, or overwrite the row that already has its id.
        """

        obj_map = self.convert_from_public(item)
        id = generate_object_map_id_if_not_exists(obj_map)
        columns, values = self.generate_columns_and_values(obj_map)

        # The update clause reuses the insert placeholders by name.
        query = (
            f"INSERT INTO {self.quoted_table_name()} ({self.generate_columns(columns)})"
            f" VALUES ({self.generate_parameters(len(values))})"
            f" ON DUPLICATE KEY UPDATE {self.generate_set_parameters(columns)}"
        )

        async with self._require_engine(correlation_id).begin() as conn:
            await conn.execute(text(query), bind_params(values))
            result = await self._fetch_by_id(conn, id)

        log.debug("item_set", table=self.table_name, id=id, **log_context(correlation_id))
        return result

    async def update(self, item: T, *, correlation_id: str | None = None) -> T | None:
        obj_map = self.convert_from_public(item)
        id = get_object_id(obj_map)
        columns, values = self.generate_columns_and_values(obj_map)

        query = (
            f"UPDATE {self.quoted_table_name()} SET {self.generate_set_parameters(columns)}"
            f" WHERE id=:{bind_name(len(values))}"
        )

        async with self._require_engine(correlation_id).begin() as conn:
            await conn.execute(text(query), bind_params([*values, id]))
            result = await self._fetch_by_id(conn, id)

        log.debug("item_updated", table=self.table_name, id=id, **log_context(correlation_id))
        return result

    async def update_partially(
        self, id: K, data: Mapping[str, Any], *, correlation_id: str | None = None
    ) -> T | None:
        obj_map = self.convert_from_public_partial(data)
        if not obj_map:
            return await self.get_one_by_id(id, correlation_id=correlation_id)

        columns, values = self.generate_columns_and_values(obj_map)

        query = (
            f"UPDATE {self.quoted_table_name()} SET {self.generate_set_parameters(columns)}"
            f" WHERE id=:{bind_name(len(values))}"
        )

        async with self._require_engine(correlation_id).begin() as conn:
            await conn.execute(text(query), bind_params([*values, id]))
            result = await self._fetch_by_id(conn, id)

        log.debug(
            "item_updated_partially", table=self.table_name, id=id, **log_context(correlation_id)
        )
        return result

    async def delete_by_id(self, id: K, *, correlation_id: str | None = None) -> T | None:
        query = f"DELETE FROM {self.quoted_table_name()} WHERE id=:{bind_name(0)}"

        async with self._require_engine(correlation_id).begin() as conn:
            item = await self._fetch_by_id(conn, id)
            if item is None:
                return None
            await conn.execute(text(query), bind_params([id]))

        log.debug("item_deleted", table=self.table_name, id=id, **log_context(correlation_id))
        return item

    async def delete_by_ids(self, ids: Sequence[K], *, correlation_id: str | None = None) -> None:
        if not ids:
            return

        query = (
            f"DELETE FROM {self.quoted_table_name()}"
            f" WHERE id IN({self.generate_parameters(len(ids))})"
        )

        async with self._require_engine(correlation_id).begin() as conn:
            result = await conn.execute(text(query), bind_params(list(ids)))

        if result.rowcount:
            log.debug(
                "items_deleted",
                table=self.table_name,
                count=result.rowcount,
                **log_context(correlation_id),
            )
