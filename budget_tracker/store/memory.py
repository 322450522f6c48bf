# budget_tracker/store/memory.py
from collections import defaultdict
from typing import Any, Dict, Optional

from budget_tracker.store.base import BaseStore


class MemoryStore(BaseStore):
    """Dict-backed store; everything is lost when the process exits."""

    def __init__(self) -> None:
        super().__init__()
        self._data: Dict[tuple, Dict[str, Dict[str, Any]]] = defaultdict(dict)

    async def _load(self, user_id: str, collection: str) -> Dict[str, Dict[str, Any]]:
        return dict(self._data.get((user_id, collection), {}))

    async def _write(self, user_id: str, collection: str, record_id: str,
                     record: Dict[str, Any]) -> None:
        self._data[(user_id, collection)][record_id] = record

    async def _remove(self, user_id: str, collection: str,
                      record_id: Optional[str] = None) -> None:
        if record_id is None:
            self._data.pop((user_id, collection), None)
            return
        self._data.get((user_id, collection), {}).pop(record_id, None)
