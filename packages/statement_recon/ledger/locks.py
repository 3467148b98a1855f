"""Per-account mutual exclusion for ledger mutations.

Every operation that changes an account's transactions or checkpoints (and
therefore re-runs reconciliation) holds the account's lock for the whole unit
of work. Different accounts never contend. The registry is process-local; a
multi-process deployment needs database-level locking on top.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from ..logging_setup import get_logger

logger = get_logger("statement_recon.ledger.locks")

_REGISTRY_LOCK = threading.Lock()
_ACCOUNT_LOCKS: dict[int, threading.Lock] = {}


def _lock_for(account_id: int) -> threading.Lock:
    with _REGISTRY_LOCK:
        lock = _ACCOUNT_LOCKS.get(account_id)
        if lock is None:
            lock = threading.Lock()
            _ACCOUNT_LOCKS[account_id] = lock
        return lock


@contextmanager
def account_lock(account_id: int) -> Iterator[None]:
    """Hold the account's lock for the duration of the ``with`` block."""

    lock = _lock_for(account_id)
    lock.acquire()
    logger.debug("acquired lock for account %d", account_id)
    try:
        yield
    finally:
        lock.release()


__all__ = ["account_lock"]
