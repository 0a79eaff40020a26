"""Per-resource locks that serialize check-then-commit admissions."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager


class ResourceLockRegistry:
    """Hands out one lock per ``(kind, resource_id)`` key.

    Holding the lock across the conflict check and the following insert or
    status change keeps two admissions for the same resource from both seeing
    "no conflict". The locks only cover this process; several workers sharing
    one database still need a storage-level exclusion constraint.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, int], threading.Lock] = {}

    def _lock_for(self, key: tuple[str, int]) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, kind: str, resource_id: int) -> Iterator[None]:
        lock = self._lock_for((kind, resource_id))
        with lock:
            yield

    @contextmanager
    def hold_all(self, kind: str, resource_ids: Iterable[int]) -> Iterator[None]:
        """Hold the locks of several resources, acquired in ascending id order."""
        with ExitStack() as stack:
            for resource_id in sorted(set(resource_ids)):
                stack.enter_context(self._lock_for((kind, resource_id)))
            yield
