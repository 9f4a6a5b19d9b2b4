"""Clock helpers and lock acquisition with a deadlock guard."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator, Protocol

MAX_LOCK_DURATION = 20.0


class DeadlockError(RuntimeError):
    """Raised when a lock cannot be acquired within the allowed time."""


class _Acquirable(Protocol):
    def acquire(self, blocking: bool = ..., timeout: float = ...) -> bool: ...

    def release(self) -> None: ...


def now_ts_micro() -> int:
    """Microseconds since the Unix epoch."""
    return time.time_ns() // 1000


def now_ts_milli() -> int:
    """Milliseconds since the Unix epoch."""
    return now_ts_micro() // 1000


@contextmanager
def locked(lock: _Acquirable, timeout: float = MAX_LOCK_DURATION) -> Iterator[None]:
    """Hold ``lock`` for the duration of the block.

    Raises DeadlockError if the lock is not acquired within ``timeout`` seconds.
    """
    if not lock.acquire(timeout=timeout):
        raise DeadlockError("lock max duration exceeded, maybe deadlocked")
    try:
        yield
    finally:
        lock.release()