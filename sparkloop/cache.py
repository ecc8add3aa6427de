"""Bounded least-recently-used cache."""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Hashable, Optional


class BoundedCache:
    """
    Fixed-capacity LRU map. Adding past capacity evicts the entry that was
    least recently added or read.
    """

    def __init__(self, capacity: int = 1000):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._items: OrderedDict[Hashable, Any] = OrderedDict()
        self.evictions = 0

    def __contains__(self, key: Hashable) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def get(self, key: Hashable, default: Optional[Any] = None) -> Any:
        if key not in self._items:
            return default
        self._items.move_to_end(key)
        return self._items[key]

    def put(self, key: Hashable, value: Any = True) -> None:
        if key in self._items:
            self._items.move_to_end(key)
        self._items[key] = value
        while len(self._items) > self.capacity:
            self._items.popitem(last=False)
            self.evictions += 1

    def add(self, key: Hashable) -> bool:
        """Mark a key as seen. Returns False if it was already present."""
        if key in self._items:
            self._items.move_to_end(key)
            return False
        self.put(key)
        return True
