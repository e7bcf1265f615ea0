"""Unit tests for the key-value access layer"""
import pytest
from unittest.mock import AsyncMock, MagicMock

import psycopg

from journal_api.db import keys
from journal_api.db.kv_store import InMemoryKeyValueStore, PostgresKeyValueStore
from journal_api.exceptions import (
    ConditionFailedError,
    QueryError,
    RecordNotFoundError,
    StoreConnectionError,
)


class TestInMemoryKeyValueStore:
    """Test the dict-backed store"""

    async def test_put_get(self, store):
        await store.put("pk", "sk", {"a": 1})
        assert await store.get("pk", "sk") == {"a": 1}
        assert await store.get("pk", "other") is None

    async def test_put_overwrites(self, store):
        await store.put("pk", "sk", {"a": 1})
        await store.put("pk", "sk", {"b": 2})
        assert await store.get("pk", "sk") == {"b": 2}

    async def test_copies_in_and_out(self, store):
        item = {"values": [1]}
        await store.put("pk", "sk", item)
        item["values"].append(2)
        fetched = await store.get("pk", "sk")
        fetched["values"].append(3)
        assert await store.get("pk", "sk") == {"values": [1]}

    async def test_query_prefix_and_order(self, store):
        for date in ["2024-05-02", "2024-05-01", "2024-04-30"]:
            await store.put("pk", keys.entry_sk(date), {"date": date})
        await store.put("pk", "OTHER#x", {"date": "other"})
        await store.put("other-pk", keys.entry_sk("2024-01-01"), {"date": "2024-01-01"})

        ascending = await store.query("pk", keys.ENTRY_PREFIX)
        assert [i["date"] for i in ascending] == ["2024-04-30", "2024-05-01", "2024-05-02"]

        latest = await store.query("pk", keys.ENTRY_PREFIX, limit=1, ascending=False)
        assert [i["date"] for i in latest] == ["2024-05-02"]

    async def test_update_merges(self, store):
        await store.put("pk", "sk", {"a": 1, "b": 2})
        updated = await store.update("pk", "sk", {"b": 3, "c": 4})
        assert updated == {"a": 1, "b": 3, "c": 4}

    async def test_update_missing(self, store):
        with pytest.raises(RecordNotFoundError):
            await store.update("pk", "sk", {"a": 1})

    async def test_conditional_update(self, store):
        await store.put("pk", "sk", {"isActive": True})
        await store.update("pk", "sk", {"isActive": False}, condition={"isActive": True})

        with pytest.raises(ConditionFailedError):
            await store.update("pk", "sk", {"isActive": False}, condition={"isActive": True})

    async def test_delete(self, store):
        await store.put("pk", "sk", {"a": 1})
        assert await store.delete("pk", "sk") is True
        assert await store.delete("pk", "sk") is False

    async def test_ping(self):
        assert await InMemoryKeyValueStore().ping() is True


class TestKeys:

    def test_partition_keys(self):
        assert keys.structure_pk("u1") == "USER#u1#STRUCTURE"
        assert keys.entries_pk("u1") == "USER#u1#ENTRIES"
        assert keys.actions_pk("u1") == "USER#u1#ACTIONS"

    def test_sort_keys(self):
        assert keys.structure_sk("2024-01-01", "s1") == "STRUCTURE#2024-01-01#s1"
        assert keys.entry_sk("2024-01-01") == "DATE#2024-01-01"
        assert keys.action_sk("a1") == "ACTION#a1"


def make_postgres_store(cursor):
    """PostgresKeyValueStore over a mocked Database"""
    conn = MagicMock()
    conn.commit = AsyncMock()
    cursor_cm = MagicMock()
    cursor_cm.__aenter__ = AsyncMock(return_value=cursor)
    cursor_cm.__aexit__ = AsyncMock(return_value=False)
    conn.cursor = MagicMock(return_value=cursor_cm)

    conn_cm = MagicMock()
    conn_cm.__aenter__ = AsyncMock(return_value=conn)
    conn_cm.__aexit__ = AsyncMock(return_value=False)

    database = MagicMock()
    database.table = "journal_items"
    database.connection = MagicMock(return_value=conn_cm)
    return PostgresKeyValueStore(database), conn


class TestPostgresKeyValueStore:
    """Test SQL store error handling with a mocked connection"""

    @pytest.fixture
    def cursor(self):
        cursor = AsyncMock()
        cursor.fetchone = AsyncMock(return_value=None)
        cursor.fetchall = AsyncMock(return_value=[])
        cursor.execute = AsyncMock()
        return cursor

    async def test_get_returns_item(self, cursor):
        cursor.fetchone.return_value = {"item": {"a": 1}}
        kv, _ = make_postgres_store(cursor)
        assert await kv.get("pk", "sk") == {"a": 1}

    async def test_put_commits(self, cursor):
        kv, conn = make_postgres_store(cursor)
        await kv.put("pk", "sk", {"a": 1})
        cursor.execute.assert_awaited_once()
        conn.commit.assert_awaited_once()

    async def test_query_returns_items(self, cursor):
        cursor.fetchall.return_value = [{"item": {"n": 1}}, {"item": {"n": 2}}]
        kv, _ = make_postgres_store(cursor)
        assert await kv.query("pk", "DATE#", limit=2) == [{"n": 1}, {"n": 2}]

    async def test_update_missing_record(self, cursor):
        kv, _ = make_postgres_store(cursor)
        with pytest.raises(RecordNotFoundError):
            await kv.update("pk", "sk", {"a": 1})

    async def test_update_condition_failed(self, cursor):
        # UPDATE returns nothing, existence check finds the row
        cursor.fetchone.side_effect = [None, {"item": {"isActive": False}}]
        kv, _ = make_postgres_store(cursor)
        with pytest.raises(ConditionFailedError):
            await kv.update("pk", "sk", {"isActive": False}, condition={"isActive": True})

    async def test_operational_error_wrapped(self, cursor):
        cursor.execute.side_effect = psycopg.OperationalError("connection refused")
        kv, _ = make_postgres_store(cursor)
        with pytest.raises(StoreConnectionError):
            await kv.get("pk", "sk")

    async def test_query_error_wrapped(self, cursor):
        cursor.execute.side_effect = psycopg.errors.UndefinedTable("no table")
        kv, _ = make_postgres_store(cursor)
        with pytest.raises(QueryError):
            await kv.query("pk")

    async def test_ping_failure(self, cursor):
        cursor.execute.side_effect = psycopg.OperationalError("down")
        kv, _ = make_postgres_store(cursor)
        assert await kv.ping() is False
