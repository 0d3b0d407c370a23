"""
Bounded logs — fixed-capacity append-only buffers backing the locker access
log and the per-document audit trail.
"""
from collections import deque
from typing import Any, Dict, Iterable, List, Optional

ACCESS_LOG_CAPACITY = 100
AUDIT_TRAIL_CAPACITY = 50


class RingBuffer:
    """Append-only list that silently evicts the oldest entry once full."""

    def __init__(self, capacity: int, entries: Optional[Iterable[Dict[str, Any]]] = None):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries = deque(entries or [], maxlen=capacity)

    def append(self, entry: Dict[str, Any]) -> "RingBuffer":
        self._entries.append(entry)
        return self

    def tail(self, count: int) -> List[Dict[str, Any]]:
        """Most recent `count` entries, oldest first."""
        if count <= 0:
            return []
        return list(self._entries)[-count:]

    def to_list(self) -> List[Dict[str, Any]]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)


def append_bounded(entries: Optional[List[Dict[str, Any]]], entry: Dict[str, Any], capacity: int) -> List[Dict[str, Any]]:
    """Return a new list with `entry` appended and the oldest entries dropped past `capacity`.

    A fresh list is returned so SQLAlchemy JSON columns register the change.
    """
    return RingBuffer(capacity, entries).append(entry).to_list()
