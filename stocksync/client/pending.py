from __future__ import annotations

import enum
import threading
import uuid
from dataclasses import asdict, dataclass, field
from typing import Callable, Iterable, Optional

from stocksync.client.storage import KeyValueStore
from stocksync.core.dates import now_ms

PENDING_KEY = "pending_operations"


class OperationType(str, enum.Enum):
    SCAN = "scan"
    ITEM_CREATE = "item_create"
    ITEM_UPDATE = "item_update"
    ITEM_DELETE = "item_delete"


@dataclass
class PendingOperation:
    type: str
    payload: dict
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    retry_count: int = 0
    created_at: int = field(default_factory=now_ms)
    status: str = "pending"

    @property
    def is_scan(self) -> bool:
        return self.type == OperationType.SCAN.value

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PendingOperation":
        return cls(
            type=str(data["type"]),
            payload=dict(data.get("payload") or {}),
            id=str(data.get("id") or uuid.uuid4().hex),
            retry_count=int(data.get("retry_count") or 0),
            created_at=int(data.get("created_at") or 0),
            status=str(data.get("status") or "pending"),
        )


class PendingOperationStore:
    """FIFO list of pending operations persisted under one key."""

    def __init__(self, kv: KeyValueStore, *, key: str = PENDING_KEY) -> None:
        self.kv = kv
        self.key = key
        self._lock = threading.RLock()

    def load(self) -> list[PendingOperation]:
        with self._lock:
            raw = self.kv.get(self.key, []) or []
            return [PendingOperation.from_dict(entry) for entry in raw]

    def save(self, operations: Iterable[PendingOperation]) -> None:
        with self._lock:
            self.kv.set(self.key, [op.to_dict() for op in operations])

    def append(self, op_type, payload: dict) -> PendingOperation:
        op = PendingOperation(type=OperationType(op_type).value, payload=dict(payload))
        with self._lock:
            operations = self.load()
            operations.append(op)
            self.save(operations)
        return op

    def count(self) -> int:
        return len(self.load())

    def reconcile(
        self,
        snapshot_ids: set[str],
        survivors: Iterable[PendingOperation],
        rewrite: Optional[Callable[[PendingOperation], PendingOperation]] = None,
    ) -> list[PendingOperation]:
        """Replace the flushed snapshot with its survivors.

        Operations appended after the snapshot was taken are kept, in order,
        after the survivors; ``rewrite`` may adjust them (e.g. re-pointed ids).
        """
        with self._lock:
            fresh = [op for op in self.load() if op.id not in snapshot_ids]
            if rewrite is not None:
                fresh = [rewrite(op) for op in fresh]
            merged = list(survivors) + fresh
            self.save(merged)
            return merged


__all__ = ["OperationType", "PendingOperation", "PendingOperationStore"]
