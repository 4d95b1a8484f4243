# utils/locks.py
from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Hashable, Iterator


class KeyedLocks:
    """
    A registry of re-entrant locks, one per key.

    Used as the single-writer point per entity (one rental, one customer):
    callers hold the locks for every entity they read and write back.
    Keys are always acquired in sorted order so two callers locking the
    same set never deadlock.

    A key's lock lives only while someone holds or waits on it, so the
    registry stays as small as the number of entities in use.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> [lock, holders + waiters]
        self._locks: dict[Hashable, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: Hashable) -> threading.RLock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.RLock(), 0]
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: Hashable) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: Hashable) -> Iterator[None]:
        unique = sorted(set(keys), key=repr)
        with ExitStack() as stack:
            for key in unique:
                lock = self._checkout(key)
                stack.callback(self._checkin, key)
                lock.acquire()
                stack.callback(lock.release)
            yield
