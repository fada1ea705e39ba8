"""Per-document locking for read-transform-write sequences."""

import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager


class DocumentLockRegistry:
    """Hands out one lock per sidecar document.

    Holding the lock for a document while reading, transforming and writing it
    orders all mutations of that document, so no concurrent request can
    overwrite another's change. Documents with different paths never block
    each other.
    """

    def __init__(self):
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @staticmethod
    def _key(path: str) -> str:
        return os.path.normcase(os.path.abspath(path))

    def lock_for(self, path: str) -> threading.Lock:
        """Get the lock for a document path, creating it on first use."""
        key = self._key(path)
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, path: str) -> Iterator[None]:
        """Hold the lock for ``path`` for the duration of the block."""
        lock = self.lock_for(path)
        with lock:
            yield

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
