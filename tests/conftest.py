"""
Shared test configuration and fixtures.

Provides stores for every backend (memory, in-memory SQLite, in-memory
DuckDB), a store that can be told to fail, and a controllable clock.
"""

from collections.abc import Sequence

import pytest

from flat_object_storage.backends import MemoryStore, StoreOperation
from flat_object_storage.backends.duckdb import DuckDBConfig, DuckDBStore
from flat_object_storage.backends.sqlite import SQLiteConfig, SQLiteStore


class FakeClock:
    """Deterministic clock returning a settable Unix time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyStore(MemoryStore):
    """
    Memory store whose batches and reads can be made to fail.

    Failures happen before anything is applied, like a store that
    rejects the whole batch.
    """

    def __init__(self) -> None:
        super().__init__()
        self.fail_batches = 0
        self.fail_loads = 0
        self.batches: list[list[StoreOperation]] = []

    async def execute_batch(self, object_id: str, operations: Sequence[StoreOperation]) -> None:
        if self.fail_batches:
            self.fail_batches -= 1
            raise RuntimeError("batch rejected")
        self.batches.append(list(operations))
        await super().execute_batch(object_id, operations)

    async def load_rows(self, object_id: str):
        if self.fail_loads:
            self.fail_loads -= 1
            raise RuntimeError("read timed out")
        return await super().load_rows(object_id)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def memory_store():
    store = await MemoryStore.create()
    yield store
    await store.close()


@pytest.fixture
async def flaky_store():
    store = FlakyStore()
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
async def sqlite_store():
    """Real SQLite, in memory."""
    store = await SQLiteStore.create(SQLiteConfig(db_path=":memory:"))
    yield store
    await store.close()


@pytest.fixture
async def duckdb_store():
    """Real DuckDB, in memory."""
    store = await DuckDBStore.create(DuckDBConfig(db_path=":memory:"))
    yield store
    await store.close()


@pytest.fixture(params=["memory", "sqlite", "duckdb"])
async def store(request):
    """Each store implementation in turn."""
    if request.param == "memory":
        instance = await MemoryStore.create()
    elif request.param == "sqlite":
        instance = await SQLiteStore.create(SQLiteConfig(db_path=":memory:"))
    else:
        instance = await DuckDBStore.create(DuckDBConfig(db_path=":memory:"))
    yield instance
    await instance.close()
