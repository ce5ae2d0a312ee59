from __future__ import annotations

import pytest
import pytest_asyncio

from dummies import DummyJsonMysqlPersistence, DummyMysqlPersistence
from fakes import FakeEngine, FakeMysqlConnection, FakeResult


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


async def _open_with_existing_table(persistence, engine: FakeEngine):
    persistence.set_references(FakeMysqlConnection(engine))
    # SHOW TABLES reports the table, so no DDL runs on open.
    engine.respond(FakeResult([{"Tables_in_test": persistence.table_name}]))
    await persistence.open()
    engine.statements.clear()
    return persistence


@pytest_asyncio.fixture
async def persistence(engine: FakeEngine) -> DummyMysqlPersistence:
    return await _open_with_existing_table(DummyMysqlPersistence(), engine)


@pytest_asyncio.fixture
async def json_persistence(engine: FakeEngine) -> DummyJsonMysqlPersistence:
    return await _open_with_existing_table(DummyJsonMysqlPersistence(), engine)
