"""
Per-resource locks for the document store.

One lock guards the metadata file; each collection file gets its own
lock while someone holds or waits for it. Commands touching different
collections never wait on each other, while two commands touching the
same file take turns around their whole read-modify-write cycle.

Entries are dropped when the last holder releases them, so the registry
only ever holds collections with a command in flight.

Lock order, when both are needed: metadata first, then the collection.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0  # threads holding or waiting for `lock`


class StoreLocks:
    """Registry of the mutexes guarding the store's files."""

    def __init__(self):
        self.meta = threading.Lock()
        self._collections: Dict[str, _Entry] = {}
        self._registry_lock = threading.Lock()

    @contextmanager
    def collection(self, collection_id: str) -> Iterator[None]:
        """Hold the lock for one collection file for the duration of the block."""
        with self._registry_lock:
            entry = self._collections.get(collection_id)
            if entry is None:
                entry = _Entry()
                self._collections[collection_id] = entry
            entry.holders += 1

        try:
            with entry.lock:
                yield
        finally:
            with self._registry_lock:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._collections[collection_id]

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._collections)
