"""
=============================================================================
READ/WRITE LOCK
=============================================================================

A lock that lets many readers in at once but gives a writer exclusive
access. The standard library only ships mutual-exclusion locks, so this
one is built from a threading.Condition.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHO CAN HOLD THE LOCK?                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Held by        │ New reader     │ New writer                      │
    │   ───────────────┼────────────────┼───────────────                  │
    │   nobody         │ enters         │ enters                          │
    │   readers        │ enters*        │ waits                           │
    │   a writer       │ waits          │ waits                           │
    │                                                                      │
    │   * unless a writer is already waiting (writer preference)          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Writer preference keeps a steady stream of handshakes from starving the
one-time credential setup.
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """
    Writer-preferring read/write lock.

    Usage:
        lock = ReadWriteLock()

        with lock.read():
            ...  # shared access

        with lock.write():
            ...  # exclusive access
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a reader")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without a writer")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the lock in shared mode for the duration of the block."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the lock in exclusive mode for the duration of the block."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @property
    def readers(self) -> int:
        """Number of threads currently holding the lock for reading."""
        return self._readers

    @property
    def write_locked(self) -> bool:
        """True while a writer holds the lock."""
        return self._writer
