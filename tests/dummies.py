"""
tests.dummies

Dummy items, persistences and a shared behaviour fixture.

Responsibilities:
- Provide three persistences over the same dummy shape: pydantic model items,
  plain dict items, and JSON-document items.
- Run the same CRUD / batch / random scenarios against any of them.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from mysql_persistence.data import DataPage, FilterParams, PagingParams
from mysql_persistence.persistence import (
    IdentifiableJsonMysqlPersistence,
    IdentifiableMysqlPersistence,
    quote_literal,
)


class Dummy(BaseModel):
    id: str | None = None
    key: str
    content: str


def _key_filter(filter: FilterParams | None, column: str) -> str | None:
    key = (filter or FilterParams()).get_as_nullable_string("key")
    if not key:
        return None
    return f"{column}={quote_literal(key)}"


class DummyMysqlPersistence(IdentifiableMysqlPersistence[Dummy, str]):
    def __init__(self) -> None:
        super().__init__(Dummy, "dummies")

    def define_schema(self) -> None:
        self.clear_schema()
        self.ensure_schema(
            f"CREATE TABLE {self.quoted_table_name()}"
            " (id VARCHAR(32) PRIMARY KEY, `key` VARCHAR(50), `content` TEXT)"
        )
        self.ensure_index(f"{self.table_name}_key", {"key": 1}, {"unique": True})

    async def get_page_by_filter(  # type: ignore[override]
        self, filter: FilterParams | None = None, paging: PagingParams | None = None
    ) -> DataPage[Dummy]:
        return await super().get_page_by_filter(_key_filter(filter, "`key`"), paging)


class DummyMapMysqlPersistence(IdentifiableMysqlPersistence[dict[str, Any], str]):
    def __init__(self) -> None:
        super().__init__(dict[str, Any], "dummies_map")

    def define_schema(self) -> None:
        self.clear_schema()
        self.ensure_schema(
            f"CREATE TABLE {self.quoted_table_name()}"
            " (id VARCHAR(32) PRIMARY KEY, `key` VARCHAR(50), `content` TEXT)"
        )
        self.ensure_index(f"{self.table_name}_key", {"key": 1}, {"unique": True})

    async def get_page_by_filter(  # type: ignore[override]
        self, filter: FilterParams | None = None, paging: PagingParams | None = None
    ) -> DataPage[dict[str, Any]]:
        return await super().get_page_by_filter(_key_filter(filter, "`key`"), paging)


class DummyJsonMysqlPersistence(IdentifiableJsonMysqlPersistence[Dummy, str]):
    def __init__(self) -> None:
        super().__init__(Dummy, "dummies_json")

    def define_schema(self) -> None:
        self.clear_schema()
        self.ensure_table()
        self.ensure_schema(
            f"ALTER TABLE {self.quoted_table_name()} ADD `data_key` VARCHAR(50)"
            ' AS (JSON_UNQUOTE(`data`->"$.key"))'
        )
        self.ensure_index(f"{self.table_name}_json_key", {"data_key": 1}, {"unique": True})

    async def get_page_by_filter(  # type: ignore[override]
        self, filter: FilterParams | None = None, paging: PagingParams | None = None
    ) -> DataPage[Dummy]:
        return await super().get_page_by_filter(_key_filter(filter, "`data_key`"), paging)


def field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name)


def with_changes(item: Any, **changes: Any) -> Any:
    if isinstance(item, dict):
        return {**item, **changes}
    return item.model_copy(update=changes)


class DummyPersistenceFixture:
    """
    Behaviour checks shared by every dummy persistence; the table must be empty.
    """

    def __init__(self, persistence: Any, *, as_dict: bool = False) -> None:
        self.persistence = persistence
        make = dict if as_dict else Dummy
        self.dummy1 = make(key="Key 11", content="Content 1")
        self.dummy2 = make(key="Key 2", content="Content 2")

    async def check_crud_operations(self) -> None:
        p = self.persistence

        dummy1 = await p.create(self.dummy1)
        assert field(dummy1, "id")
        assert field(dummy1, "key") == field(self.dummy1, "key")
        assert field(dummy1, "content") == field(self.dummy1, "content")

        dummy2 = await p.create(self.dummy2)
        assert field(dummy2, "id")
        assert field(dummy2, "key") == field(self.dummy2, "key")

        page = await p.get_page_by_filter(FilterParams(), PagingParams(skip=0, take=5, total=True))
        assert page.has_data
        assert len(page.data) == 2
        assert page.total == 2
        assert {field(item, "key") for item in page.data} == {"Key 11", "Key 2"}

        page = await p.get_page_by_filter(
            FilterParams.from_tuples("key", "Key 11"), PagingParams(skip=0, take=5, total=True)
        )
        assert len(page.data) == 1
        assert page.total == 1
        assert field(page.data[0], "key") == "Key 11"

        dummy1 = with_changes(dummy1, content="Updated Content 1")
        result = await p.update(dummy1)
        assert field(result, "id") == field(dummy1, "id")
        assert field(result, "content") == "Updated Content 1"

        dummy1 = with_changes(dummy1, content="Updated Content 2")
        result = await p.set(dummy1)
        assert field(result, "id") == field(dummy1, "id")
        assert field(result, "content") == "Updated Content 2"

        dummy2 = with_changes(dummy2, id="New_id", key="New_key")
        result = await p.set(dummy2)
        assert field(result, "id") == "New_id"
        assert field(result, "key") == "New_key"
        assert field(result, "content") == field(dummy2, "content")

        result = await p.update_partially(
            field(dummy1, "id"), {"content": "Partially Updated Content 1"}
        )
        assert field(result, "id") == field(dummy1, "id")
        assert field(result, "key") == field(dummy1, "key")
        assert field(result, "content") == "Partially Updated Content 1"

        result = await p.get_one_by_id(field(dummy1, "id"))
        assert field(result, "content") == "Partially Updated Content 1"

        result = await p.delete_by_id(field(dummy1, "id"))
        assert field(result, "id") == field(dummy1, "id")
        assert field(result, "content") == "Partially Updated Content 1"

        assert await p.get_one_by_id(field(dummy1, "id")) is None

    async def check_batch_operations(self) -> None:
        p = self.persistence

        dummy1 = await p.create(self.dummy1)
        dummy2 = await p.create(self.dummy2)
        ids = [field(dummy1, "id"), field(dummy2, "id")]

        items = await p.get_list_by_ids(ids)
        assert len(items) == 2

        await p.delete_by_ids(ids)

        assert await p.get_list_by_ids(ids) == []

    async def check_random_operation(self) -> None:
        p = self.persistence

        assert await p.get_one_random() is None

        await p.create(self.dummy1)
        await p.create(self.dummy2)

        result = await p.get_one_random()
        assert result is not None
        assert field(result, "key") in ("Key 11", "Key 2")
