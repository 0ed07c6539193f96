"""Per-order serialization of mutating operations.

Two refund requests against the same order must not both pass the "no
completed refund yet" guard, so every mutation holds the order's lock across
load, check and persist. A registry entry lives only while some caller holds
or waits on that order's lock.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field


@dataclass
class _OrderLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0  # Callers holding or waiting on ``lock``


_registry_lock = threading.Lock()
_order_locks: dict[str, _OrderLock] = {}


def _acquire_entry(key: str) -> _OrderLock:
    with _registry_lock:
        entry = _order_locks.get(key)
        if entry is None:
            entry = _order_locks[key] = _OrderLock()
        entry.holders += 1
        return entry


def _release_entry(key: str, entry: _OrderLock) -> None:
    with _registry_lock:
        entry.holders -= 1
        if entry.holders == 0:
            del _order_locks[key]


@contextmanager
def order_lock(order_id) -> Iterator[None]:
    """Hold the lock for ``order_id`` for the duration of the block."""
    key = str(order_id)
    entry = _acquire_entry(key)
    try:
        with entry.lock:
            yield
    finally:
        _release_entry(key, entry)
