"""Per-key lock registry.

Serializes work on one key (an opportunity, or an opportunity/supplier pair)
while letting different keys proceed in parallel. Thread-safe within a single
process; cross-process writers are guarded by optimistic version checks at the
store instead.
"""

from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class KeyedLocks:
    """Lazily created ``threading.Lock`` per key."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, threading.Lock] = {}
        self._guard = threading.Lock()

    def _get_or_create(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        lock = self._get_or_create(key)
        with lock:
            yield

    def reset(self) -> None:
        """Forget all locks (useful for testing)."""
        with self._guard:
            self._locks.clear()
