import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from qaforge.storage.base import RecordStore

class InMemoryStore(RecordStore):
    """
    Dict-backed RecordStore. Thread-safe; returns copies so callers never
    mutate stored records directly.
    """

    def __init__(self):
        self._records: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def create_record(self, kind: str, data: Dict[str, Any]) -> str:
        record_id = data.get("id") or uuid.uuid4().hex
        record = {**data, "id": record_id}
        record.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        with self._lock:
            self._records.setdefault(kind, {})[record_id] = record
            self._persist(kind)
        return record_id

    def get_record(self, kind: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._records.get(kind, {}).get(record_id)
            return dict(record) if record is not None else None

    def update_record(self, kind: str, record_id: str, patch: Dict[str, Any]) -> None:
        with self._lock:
            records = self._records.get(kind, {})
            if record_id not in records:
                raise KeyError(f"No {kind} record with id {record_id}")
            records[record_id].update({k: v for k, v in patch.items() if k != "id"})
            self._persist(kind)

    def list_records(self, kind: str, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                dict(r) for r in self._records.get(kind, {}).values()
                if self._matches(r, filter)
            ]

    def delete_records(self, kind: str, filter: Dict[str, Any]) -> int:
        with self._lock:
            records = self._records.get(kind, {})
            doomed = [rid for rid, r in records.items() if self._matches(r, filter)]
            for rid in doomed:
                del records[rid]
            if doomed:
                self._persist(kind)
            return len(doomed)

    @staticmethod
    def _matches(record: Dict[str, Any], filter: Optional[Dict[str, Any]]) -> bool:
        if not filter:
            return True
        return all(record.get(k) == v for k, v in filter.items())

    def _persist(self, kind: str) -> None:
        """Hook for durable subclasses; called with the lock held after every write."""
        pass
