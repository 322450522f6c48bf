# budget_tracker/store/sqlite.py
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Optional

import anyio
import anyio.to_thread

from budget_tracker.errors import StoreError
from budget_tracker.store.base import BaseStore

logger = logging.getLogger(__name__)


def _init_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS records (
            user_id TEXT NOT NULL,
            collection TEXT NOT NULL,
            id TEXT NOT NULL,
            data TEXT NOT NULL,
            PRIMARY KEY (user_id, collection, id)
        )
        """
    )
    conn.commit()


class SQLiteStore(BaseStore):
    """Store records as JSON rows in a single SQLite table.

    Every call opens its own connection in a worker thread, so a store can
    be shared freely between tasks.
    """

    def __init__(self, db_path: str) -> None:
        super().__init__()
        self.db_path = str(db_path)

    def _connect(self) -> sqlite3.Connection:
        path = Path(self.db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(path)
        _init_db(conn)
        return conn

    def _run(self, fn, *args):
        def _call():
            try:
                conn = self._connect()
            except sqlite3.Error as exc:
                raise StoreError(f"Could not open {self.db_path}: {exc}") from exc
            try:
                return fn(conn, *args)
            except sqlite3.Error as exc:
                raise StoreError(f"SQLite error on {self.db_path}: {exc}") from exc
            finally:
                conn.close()

        return anyio.to_thread.run_sync(_call)

    async def _load(self, user_id: str, collection: str) -> Dict[str, Dict[str, Any]]:
        def _select(conn):
            return conn.execute(
                "SELECT id, data FROM records WHERE user_id = ? AND collection = ?",
                (user_id, collection),
            ).fetchall()

        rows = await self._run(_select)
        records = {}
        for record_id, data in rows:
            try:
                records[record_id] = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(
                    "Skipping undecodable %s record %s for user %s",
                    collection, record_id, user_id,
                )
        return records

    async def _write(self, user_id: str, collection: str, record_id: str,
                     record: Dict[str, Any]) -> None:
        def _upsert(conn):
            conn.execute(
                """
                INSERT OR REPLACE INTO records (user_id, collection, id, data)
                VALUES (?, ?, ?, ?)
                """,
                (user_id, collection, record_id, json.dumps(record)),
            )
            conn.commit()

        await self._run(_upsert)

    async def _remove(self, user_id: str, collection: str,
                      record_id: Optional[str] = None) -> None:
        def _delete(conn):
            if record_id is None:
                conn.execute(
                    "DELETE FROM records WHERE user_id = ? AND collection = ?",
                    (user_id, collection),
                )
            else:
                conn.execute(
                    "DELETE FROM records WHERE user_id = ? AND collection = ? AND id = ?",
                    (user_id, collection, record_id),
                )
            conn.commit()

        await self._run(_delete)
