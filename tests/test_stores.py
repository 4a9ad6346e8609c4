"""
Store contract tests.

Every test runs against each store implementation (memory, SQLite
and DuckDB, the latter two real and in memory).
"""

import asyncio

import pytest

from flat_object_storage.backends import DeleteRow, StoredRow, UpsertRow
from flat_object_storage.values import TypedValue


def upsert(object_id: str, key_path: str, value, timestamp: int = 100) -> UpsertRow:
    return UpsertRow(object_id, key_path, TypedValue.from_value(value), timestamp)


class TestReads:
    @pytest.mark.asyncio
    async def test_missing_object_has_no_rows(self, store):
        assert await store.load_rows("nobody") == []
        assert await store.exists("nobody") is False

    @pytest.mark.asyncio
    async def test_rows_come_back_sorted_by_path(self, store):
        await store.upsert_row(upsert("doc", "b", 2))
        await store.upsert_row(upsert("doc", "a", "x"))
        await store.upsert_row(upsert("other", "a", 1))

        rows = await store.load_rows("doc")

        assert [row.key_path for row in rows] == ["a", "b"]
        assert rows[0] == StoredRow("doc", "a", "x", "string", 100, 100)
        assert rows[1].value == "2"
        assert rows[1].value_type == "number"

    @pytest.mark.asyncio
    async def test_exists_after_write(self, store):
        await store.upsert_row(upsert("doc", "a", None))
        assert await store.exists("doc") is True


class TestWrites:
    @pytest.mark.asyncio
    async def test_upsert_preserves_created_at(self, store):
        await store.upsert_row(upsert("doc", "a", 1, timestamp=100))
        await store.upsert_row(upsert("doc", "a", [1, 2], timestamp=250))

        (row,) = await store.load_rows("doc")

        assert row.created_at == 100
        assert row.updated_at == 250
        assert row.value == "[1,2]"
        assert row.value_type == "array"

    @pytest.mark.asyncio
    async def test_delete_row(self, store):
        await store.upsert_row(upsert("doc", "a", 1))

        assert await store.delete_row("doc", "a") is True
        assert await store.delete_row("doc", "a") is False
        assert await store.exists("doc") is False

    @pytest.mark.asyncio
    async def test_delete_object_only_touches_that_object(self, store):
        await store.upsert_row(upsert("doc", "a", 1))
        await store.upsert_row(upsert("doc", "b", 2))
        await store.upsert_row(upsert("keep", "a", 3))

        removed = await store.delete_object("doc")

        assert removed == 2
        assert await store.exists("doc") is False
        assert await store.exists("keep") is True

    @pytest.mark.asyncio
    async def test_delete_object_missing(self, store):
        assert await store.delete_object("nobody") == 0


class TestBatches:
    @pytest.mark.asyncio
    async def test_batch_applies_in_order(self, store):
        await store.upsert_row(upsert("doc", "old", "x"))

        await store.execute_batch(
            "doc",
            [
                DeleteRow("doc", "old"),
                upsert("doc", "new", True, timestamp=200),
                upsert("doc", "list", ["a"], timestamp=200),
            ],
        )

        rows = {row.key_path: row for row in await store.load_rows("doc")}
        assert set(rows) == {"new", "list"}
        assert rows["new"].value == "true"
        assert rows["new"].created_at == 200

    @pytest.mark.asyncio
    async def test_failed_batch_applies_nothing(self, store):
        await store.upsert_row(upsert("doc", "a", 1))

        with pytest.raises(TypeError):
            await store.execute_batch(
                "doc",
                [
                    DeleteRow("doc", "a"),
                    upsert("doc", "b", 2),
                    "not an operation",
                ],
            )

        rows = await store.load_rows("doc")
        assert [(row.key_path, row.value) for row in rows] == [("a", "1")]

    @pytest.mark.asyncio
    async def test_store_is_usable_after_failed_batch(self, store):
        with pytest.raises(TypeError):
            await store.execute_batch("doc", [upsert("doc", "a", 1), object()])

        await store.execute_batch("doc", [upsert("doc", "a", 2)])

        (row,) = await store.load_rows("doc")
        assert row.value == "2"

    @pytest.mark.asyncio
    async def test_empty_batch(self, store):
        await store.execute_batch("doc", [])
        assert await store.load_rows("doc") == []


class TestStoredRow:
    def test_decode(self):
        row = StoredRow("doc", "n", "12", "number", 1, 1)
        assert row.decode().value == 12
        assert row.typed_value() == TypedValue.from_value(12)

    def test_decode_reports_fallback(self):
        row = StoredRow("doc", "n", "twelve", "number", 1, 1)
        result = row.decode()
        assert result.value == 0
        assert not result.ok


class TestSQLiteCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_batch_is_rolled_back(self, sqlite_store):
        operations = [upsert("doc", f"k{i}", i) for i in range(500)]
        task = asyncio.create_task(sqlite_store.execute_batch("doc", operations))
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        await sqlite_store.execute_batch("doc", [upsert("doc", "after", 1)])

        rows = await sqlite_store.load_rows("doc")
        assert [row.key_path for row in rows] == ["after"]
