"""Fixed-capacity hand-off between the dispatcher and consumer code."""

from __future__ import annotations

import enum
import queue
import threading
from collections import deque
from typing import Deque, Generic, List, Optional, TypeVar

T = TypeVar("T")


class OverflowPolicy(enum.Enum):
    DROP_NEWEST = "drop_newest"
    KEEP_LATEST = "keep_latest"


class BoundedQueue(Generic[T]):
    """Thread-safe bounded queue whose producer side never blocks.

    ``try_publish`` returns immediately. With ``DROP_NEWEST`` a full queue
    rejects the new item; with ``KEEP_LATEST`` the oldest queued item is
    evicted to make room. Either way ``dropped`` counts the lost items.
    """

    def __init__(self, capacity: int, policy: OverflowPolicy = OverflowPolicy.DROP_NEWEST) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.policy = policy
        self.dropped = 0
        self._items: Deque[T] = deque()
        self._not_empty = threading.Condition(threading.Lock())

    def try_publish(self, item: T) -> bool:
        """Offer ``item``; returns whether it was queued."""

        with self._not_empty:
            if len(self._items) >= self.capacity:
                self.dropped += 1
                if self.policy is OverflowPolicy.DROP_NEWEST:
                    return False
                self._items.popleft()
            self._items.append(item)
            self._not_empty.notify()
            return True

    def get(self, timeout: Optional[float] = None) -> T:
        """Wait for the oldest item; raises ``queue.Empty`` on timeout."""

        with self._not_empty:
            if not self._not_empty.wait_for(lambda: bool(self._items), timeout=timeout):
                raise queue.Empty
            return self._items.popleft()

    def get_nowait(self) -> T:
        with self._not_empty:
            if not self._items:
                raise queue.Empty
            return self._items.popleft()

    def drain(self) -> List[T]:
        with self._not_empty:
            items = list(self._items)
            self._items.clear()
            return items

    def __len__(self) -> int:
        with self._not_empty:
            return len(self._items)
