import sqlite3

import anyio
import pytest

from budget_tracker.errors import StoreError
from budget_tracker.store import MemoryStore, SQLiteStore


def test_sqlite_store_round_trip_and_filters(tmp_path):
    store = SQLiteStore(str(tmp_path / "nested" / "budget.db"))

    async def run():
        await store.put("u1", "transactions", "t1", {"id": "t1", "type": "expense", "amount": "5"})
        await store.put("u1", "transactions", "t2", {"id": "t2", "type": "income", "amount": "7"})
        await store.put("u2", "transactions", "t3", {"id": "t3", "type": "expense", "amount": "9"})
        expenses = await store.fetch("u1", "transactions", {"type": "expense"})
        await store.set_field("u1", "transactions", "t2", "amount", "8")
        await store.delete_field("u1", "transactions", "t1", "amount")
        t1 = await store.get("u1", "transactions", "t1")
        t2 = await store.get("u1", "transactions", "t2")
        await store.delete("u1", "transactions", "t2")
        missing = await store.get("u1", "transactions", "t2")
        await store.delete_collection("u1", "transactions")
        return expenses, t1, t2, missing, await store.fetch("u1", "transactions"), await store.fetch("u2", "transactions")

    expenses, t1, t2, missing, u1_left, u2_left = anyio.run(run)
    assert [r["id"] for r in expenses] == ["t1"]
    assert "amount" not in t1
    assert t2["amount"] == "8"
    assert missing is None
    assert u1_left == []
    assert [r["id"] for r in u2_left] == ["t3"]


def test_sqlite_store_skips_undecodable_rows(tmp_path):
    db_path = tmp_path / "budget.db"
    store = SQLiteStore(str(db_path))

    async def seed():
        await store.put("u1", "categories", "c1", {"id": "c1", "name": "Food"})

    anyio.run(seed)
    conn = sqlite3.connect(db_path)
    conn.execute(
        "INSERT INTO records (user_id, collection, id, data) VALUES ('u1', 'categories', 'c2', '{broken')"
    )
    conn.commit()
    conn.close()

    async def read():
        return await store.fetch("u1", "categories")

    assert [r["id"] for r in anyio.run(read)] == ["c1"]


def test_sqlite_errors_become_store_errors(tmp_path):
    db_path = tmp_path / "budget.db"
    db_path.mkdir()
    store = SQLiteStore(str(db_path))

    async def run():
        await store.fetch("u1", "categories")

    with pytest.raises(StoreError):
        anyio.run(run)


def test_set_field_on_missing_record_is_ignored():
    store = MemoryStore()

    async def run():
        await store.set_field("u1", "alerts", "nope", "is_read", True)
        return await store.fetch("u1", "alerts")

    assert anyio.run(run) == []


def test_live_query_filters_and_unsubscribes():
    store = MemoryStore()

    async def run():
        snapshots = []
        async with store.query("u1", "alerts", {"is_read": False}) as live:
            async for records in live:
                snapshots.append(sorted(r["id"] for r in records))
                if len(snapshots) == 1:
                    await store.put("u1", "alerts", "a", {"id": "a", "is_read": False})
                elif len(snapshots) == 2:
                    await store.put("u1", "alerts", "b", {"id": "b", "is_read": True})
                else:
                    break
        return snapshots, dict(store._subscribers)

    snapshots, subscribers = anyio.run(run)
    assert snapshots == [[], ["a"], ["a"]]
    assert subscribers == {}


def test_disconnect_fails_live_queries():
    store = MemoryStore()

    async def run():
        seen = []
        async with store.query("u1", "transactions") as live:
            async for records in live:
                seen.append(records)
                store.disconnect("u1", "transactions", PermissionError("permission denied"))
        return seen

    with pytest.raises(StoreError):
        anyio.run(run)


def test_cancelled_consumer_leaves_no_subscription():
    store = MemoryStore()

    async def run():
        with anyio.move_on_after(0.05):
            async with store.query("u1", "transactions") as live:
                async for _ in live:
                    pass
        await store.put("u1", "transactions", "t1", {"id": "t1"})
        return dict(store._subscribers)

    assert anyio.run(run) == {}
