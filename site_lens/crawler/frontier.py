"""
Breadth-first crawl frontier: a visited set plus a FIFO of pending URLs.
"""
from __future__ import annotations

import threading
from collections import deque
from typing import Deque, FrozenSet, Optional, Set

__all__ = ("Frontier",)


class Frontier:
    """
    Visited/pending pair with at-most-once semantics.

    Every public method holds one lock, so a URL moves from "not seen" to
    "pending" exactly once no matter how many workers offer it.
    """

    def __init__(self) -> None:
        self._visited: Set[str] = set()
        self._pending: Deque[str] = deque()
        self._queued: Set[str] = set()
        self._offered = 0
        self._lock = threading.Lock()

    def seed(self, url: str) -> None:
        with self._lock:
            self._pending.clear()
            self._queued = {url}
            self._pending.append(url)
            self._offered = 1

    def next(self) -> Optional[str]:
        """Pop the head of the queue, or None when nothing is pending."""
        with self._lock:
            return self._pop()

    def mark_visited(self, url: str) -> None:
        with self._lock:
            self._visited.add(url)

    def claim(self) -> Optional[str]:
        """Pop the next URL and mark it visited in one step."""
        with self._lock:
            url = self._pop()
            if url is not None:
                self._visited.add(url)
            return url

    def offer(self, url: str) -> bool:
        """Enqueue *url* unless it was already visited or queued."""
        with self._lock:
            if url in self._visited or url in self._queued:
                return False
            self._queued.add(url)
            self._pending.append(url)
            self._offered += 1
            return True

    @property
    def visited(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._visited)

    @property
    def offered(self) -> int:
        """How many distinct URLs ever entered the queue (seed included)."""
        with self._lock:
            return self._offered

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def _pop(self) -> Optional[str]:
        if not self._pending:
            return None
        return self._pending.popleft()
