# budget_tracker/store/base.py
from __future__ import annotations

import copy
import logging
import math
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Dict, List, Optional

import anyio

from budget_tracker.errors import StoreError

logger = logging.getLogger(__name__)

TRANSACTIONS = "transactions"
CATEGORIES = "categories"
BUDGETS = "budgets"
ALERTS = "alerts"


def _matches(record: Dict[str, Any], where: Optional[Dict[str, Any]]) -> bool:
    if not where:
        return True
    return all(record.get(key) == value for key, value in where.items())


class LiveQuery:
    """A subscription to the full matching record set of one collection.

    Use as ``async with store.query(...) as live: async for records in live``.
    Each item is a complete snapshot; it replaces whatever the consumer
    derived from the previous one.
    """

    def __init__(self, store: "BaseStore", user_id: str, collection: str,
                 where: Optional[Dict[str, Any]] = None) -> None:
        self._store = store
        self.user_id = user_id
        self.collection = collection
        self.where = dict(where or {})
        self._send, self._receive = anyio.create_memory_object_stream(math.inf)

    async def __aenter__(self) -> "LiveQuery":
        self._store._subscribe(self)
        try:
            await self.refresh()
        except BaseException:
            self._close()
            raise
        return self

    async def __aexit__(self, *exc_info) -> None:
        self._close()

    def _close(self) -> None:
        self._store._unsubscribe(self)
        self._send.close()
        self._receive.close()

    def __aiter__(self) -> "LiveQuery":
        return self

    async def __anext__(self) -> List[Dict[str, Any]]:
        try:
            item = await self._receive.receive()
        except (anyio.EndOfStream, anyio.ClosedResourceError):
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise StoreError(
                f"Live query on {self.collection} for {self.user_id} failed: {item}"
            ) from item
        return item

    async def refresh(self) -> None:
        records = await self._store.fetch(self.user_id, self.collection, self.where)
        try:
            self._send.send_nowait(records)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            # consumer left while the snapshot was being read
            self._store._unsubscribe(self)

    def fail(self, error: BaseException) -> None:
        self._send.send_nowait(error)
        self._send.close()


class BaseStore(ABC):
    """Per-user hierarchical record store: ``users/<user>/<collection>/<id>``.

    Subclasses provide storage; this class provides filtering, field writes
    and change notification for live queries. Nothing is atomic across
    calls: a read followed by a write can lose a concurrent update.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[tuple, List[LiveQuery]] = defaultdict(list)

    @abstractmethod
    async def _load(self, user_id: str, collection: str) -> Dict[str, Dict[str, Any]]:
        """Return every record of a collection keyed by id."""

    @abstractmethod
    async def _write(self, user_id: str, collection: str, record_id: str,
                     record: Dict[str, Any]) -> None:
        """Create or replace one record."""

    @abstractmethod
    async def _remove(self, user_id: str, collection: str,
                      record_id: Optional[str] = None) -> None:
        """Remove one record, or the whole collection when record_id is None."""

    async def fetch(self, user_id: str, collection: str,
                    where: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        records = await self._load(user_id, collection)
        return [
            copy.deepcopy(record)
            for record in records.values()
            if _matches(record, where)
        ]

    async def get(self, user_id: str, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        records = await self._load(user_id, collection)
        record = records.get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def put(self, user_id: str, collection: str, record_id: str,
                  record: Dict[str, Any]) -> None:
        await self._write(user_id, collection, record_id, copy.deepcopy(record))
        await self._notify(user_id, collection)

    async def set_field(self, user_id: str, collection: str, record_id: str,
                        field: str, value: Any) -> None:
        record = await self.get(user_id, collection, record_id)
        if record is None:
            logger.debug("set_field on missing %s/%s/%s", user_id, collection, record_id)
            return
        record[field] = value
        await self.put(user_id, collection, record_id, record)

    async def delete_field(self, user_id: str, collection: str, record_id: str,
                           field: str) -> None:
        record = await self.get(user_id, collection, record_id)
        if record is None or field not in record:
            return
        del record[field]
        await self.put(user_id, collection, record_id, record)

    async def delete(self, user_id: str, collection: str, record_id: str) -> None:
        await self._remove(user_id, collection, record_id)
        await self._notify(user_id, collection)

    async def delete_collection(self, user_id: str, collection: str) -> None:
        await self._remove(user_id, collection)
        await self._notify(user_id, collection)

    def query(self, user_id: str, collection: str,
              where: Optional[Dict[str, Any]] = None) -> LiveQuery:
        return LiveQuery(self, user_id, collection, where)

    def disconnect(self, user_id: str, collection: str, error: BaseException) -> None:
        """Terminate every live query on a collection with ``error``."""
        for live in list(self._subscribers.get((user_id, collection), [])):
            live.fail(error)
            self._unsubscribe(live)

    def _subscribe(self, live: LiveQuery) -> None:
        self._subscribers[(live.user_id, live.collection)].append(live)

    def _unsubscribe(self, live: LiveQuery) -> None:
        key = (live.user_id, live.collection)
        subscribers = self._subscribers.get(key, [])
        if live in subscribers:
            subscribers.remove(live)
        if not subscribers:
            self._subscribers.pop(key, None)

    async def _notify(self, user_id: str, collection: str) -> None:
        for live in list(self._subscribers.get((user_id, collection), [])):
            await live.refresh()
