"""
tests.fakes

In-memory stand-ins for the async SQLAlchemy engine and a shared connection.

Responsibilities:
- Record every statement and its bind parameters.
- Replay queued results in order, so query construction can be asserted without MySQL.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import asynccontextmanager
from typing import Any


class FakeMappingResult:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self._rows = rows

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self._rows)

    def all(self) -> list[dict[str, Any]]:
        return list(self._rows)

    def first(self) -> dict[str, Any] | None:
        return self._rows[0] if self._rows else None


class FakeResult:
    def __init__(self, rows: list[Mapping[str, Any]] | None = None, rowcount: int = 0) -> None:
        self._rows = [dict(row) for row in rows or []]
        self.rowcount = rowcount

    def mappings(self) -> FakeMappingResult:
        return FakeMappingResult(self._rows)

    def all(self) -> list[tuple[Any, ...]]:
        return [tuple(row.values()) for row in self._rows]

    def scalar(self) -> Any:
        if not self._rows:
            return None
        return next(iter(self._rows[0].values()))


class FakeConnection:
    def __init__(self, engine: FakeEngine) -> None:
        self._engine = engine

    async def execute(self, statement: Any, params: Mapping[str, Any] | None = None) -> FakeResult:
        return await self._engine.record(str(statement), params)

    async def exec_driver_sql(self, statement: str, params: Any = None) -> FakeResult:
        return await self._engine.record(statement, params)


class FakeEngine:
    def __init__(self) -> None:
        self.statements: list[tuple[str, dict[str, Any]]] = []
        self.transactions = 0
        self.disposed = False
        self.on_execute: Callable[[], Awaitable[None]] | None = None
        self._responses: list[FakeResult] = []

    def respond(self, *results: FakeResult) -> None:
        self._responses.extend(results)

    @property
    def sql(self) -> list[str]:
        return [statement for statement, _ in self.statements]

    async def record(self, statement: str, params: Any) -> FakeResult:
        self.statements.append((statement, dict(params or {})))
        if self.on_execute is not None:
            await self.on_execute()
        if self._responses:
            return self._responses.pop(0)
        return FakeResult()

    @asynccontextmanager
    async def connect(self):
        yield FakeConnection(self)

    @asynccontextmanager
    async def begin(self):
        self.transactions += 1
        yield FakeConnection(self)

    async def dispose(self) -> None:
        self.disposed = True


class FakeMysqlConnection:
    """
    Opened connection handed to persistences through `set_references`.
    """

    def __init__(self, engine: FakeEngine, database: str = "test") -> None:
        self.engine = engine
        self.database = database
        self.closed = False

    def is_open(self) -> bool:
        return not self.closed

    def get_engine(self) -> FakeEngine:
        return self.engine

    def get_database_name(self) -> str:
        return self.database

    async def open(self, *, correlation_id: str | None = None) -> None:
        self.closed = False

    async def close(self, *, correlation_id: str | None = None) -> None:
        self.closed = True
