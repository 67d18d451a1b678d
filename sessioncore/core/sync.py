"""
Reader/Writer Lock with Poisoning

Provides the single synchronization primitive guarding a session's
mutable state:
- Shared mode for readers, exclusive mode for writers
- Writer preference: new readers queue behind a waiting writer so a
  steady stream of reads cannot starve a mutation
- Poisoning: an exception escaping an exclusive section marks the
  lock poisoned until clear_poison() is called

The lock is not reentrant. Holders must not call back into code that
acquires the same lock.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional


class PoisonPolicy(Enum):
    """
    What accessors do once a session's lock is poisoned.

    DEGRADE: reads return safe defaults, writes are dropped.
    RAISE: every access raises LockError.
    """
    DEGRADE = "degrade"
    RAISE = "raise"

    @classmethod
    def parse(cls, value: str) -> PoisonPolicy:
        return cls(value.strip().lower())


class ReadWriteLock:
    """
    Condition-variable based reader/writer lock.

    Usage:
        lock = ReadWriteLock()

        with lock.read():
            snapshot = dict(shared)

        with lock.write():
            shared["key"] = "value"
    """

    __slots__ = (
        "_cond",
        "_readers",
        "_writer",
        "_writers_waiting",
        "_poisoned",
        "_poison_cause",
    )

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers: int = 0
        self._writer: bool = False
        self._writers_waiting: int = 0
        self._poisoned: bool = False
        self._poison_cause: Optional[BaseException] = None

    # -------------------------------------------------------------------------
    # Acquisition
    # -------------------------------------------------------------------------

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() without matching acquire_read()")
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
                raise RuntimeError("release_write() without matching acquire_write()")
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
        """
        Hold the lock in exclusive mode for the duration of the block.

        Any exception raised inside the block poisons the lock before
        it is released and then propagates unchanged.
        """
        self.acquire_write()
        try:
            yield
        except BaseException as exc:
            self._poisoned = True
            self._poison_cause = exc
            raise
        finally:
            self.release_write()

    # -------------------------------------------------------------------------
    # Poisoning
    # -------------------------------------------------------------------------

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    @property
    def poison_cause(self) -> Optional[BaseException]:
        return self._poison_cause

    def clear_poison(self) -> None:
        with self._cond:
            self._poisoned = False
            self._poison_cause = None

    def __repr__(self) -> str:
        return (
            f"ReadWriteLock(readers={self._readers}, writer={self._writer}, "
            f"waiting={self._writers_waiting}, poisoned={self._poisoned})"
        )
