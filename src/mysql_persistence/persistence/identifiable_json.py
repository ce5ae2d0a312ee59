"""
mysql_persistence.persistence.identifiable_json

Identifiable persistence that keeps each item as a JSON document.

Responsibilities:
- Declare the `(id, data JSON)` table layout.
- Wrap items into / unwrap items from the `data` column.
- Merge partial updates into the stored document with JSON_MERGE_PATCH.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter
from sqlalchemy import text
from sqlalchemy.engine import RowMapping

from mysql_persistence.observability.logging import get_logger, log_context
from mysql_persistence.persistence.base import bind_params
from mysql_persistence.persistence.identifiable import IdentifiableMysqlPersistence
from mysql_persistence.persistence.ids import clone, generate_object_id_if_not_exists

T = TypeVar("T")
K = TypeVar("K")

log = get_logger(__name__)

_PATCH_ADAPTER: TypeAdapter[dict[str, Any]] = TypeAdapter(dict[str, Any])


class IdentifiableJsonMysqlPersistence(IdentifiableMysqlPersistence[T, K], Generic[T, K]):
    """
    Child classes call `ensure_table()` from `define_schema` and may add generated
    columns over JSON paths (e.g. for unique indexes):

        def define_schema(self) -> None:
            self.clear_schema()
            self.ensure_table()
            self.ensure_schema(
                f"ALTER TABLE {self.quoted_table_name()} ADD `data_key` VARCHAR(50)"
                " AS (JSON_UNQUOTE(`data`->\\"$.key\\"))"
            )
            self.ensure_index(f"{self.table_name}_json_key", {"data_key": 1}, {"unique": True})
    """

    def ensure_table(self, id_type: str = "VARCHAR(32)", data_type: str = "JSON") -> None:
        self.ensure_schema(
            f"CREATE TABLE IF NOT EXISTS {self.quoted_table_name()}"
            f" (`id` {id_type} PRIMARY KEY, `data` {data_type})"
        )

    def convert_to_public(self, row: RowMapping | Mapping[str, Any]) -> T:
        data = row["data"]
        if isinstance(data, (str, bytes, bytearray)):
            return self._item_adapter.validate_json(data)
        return self._item_adapter.validate_python(data)

    def convert_from_public(self, item: T) -> dict[str, Any]:
        document = self._item_adapter.dump_python(item, mode="json")
        return {"id": document.get("id"), "data": json.dumps(document)}

    def convert_from_public_partial(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return {"data": json.dumps(_PATCH_ADAPTER.dump_python(dict(data), mode="json"))}

    async def set(self, item: T, *, correlation_id: str | None = None) -> T | None:
        # The id has to be inside the document too, not only in the key column.
        item = generate_object_id_if_not_exists(clone(item))
        return await super().set(item, correlation_id=correlation_id)

    async def update_partially(
        self, id: K, data: Mapping[str, Any], *, correlation_id: str | None = None
    ) -> T | None:
        if not data:
            return await self.get_one_by_id(id, correlation_id=correlation_id)

        patch = self.convert_from_public_partial(data)["data"]
        query = (
            f"UPDATE {self.quoted_table_name()}"
            " SET `data`=JSON_MERGE_PATCH(`data`, :p0) WHERE id=:p1"
        )

        async with self._require_engine(correlation_id).begin() as conn:
            await conn.execute(text(query), bind_params([patch, id]))
            result = await self._fetch_by_id(conn, id)

        log.debug(
            "item_updated_partially", table=self.table_name, id=id, **log_context(correlation_id)
        )
        return result
