from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from ..core.exceptions import ConcurrencyConflict


class UserLockTable:
    """One mutex per user id, created on first use.

    Entries are never evicted; the table is sized for a site workforce
    (hundreds of workers), not millions.
    """

    def __init__(self, *, timeout: float):
        self._timeout = float(timeout)
        self._locks: Dict[int, threading.Lock] = {}
        self._table_lock = threading.Lock()

    def _lock_for(self, user_id: int) -> threading.Lock:
        with self._table_lock:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, user_id: int) -> Iterator[None]:
        lock = self._lock_for(int(user_id))
        if not lock.acquire(timeout=self._timeout):
            raise ConcurrencyConflict(f"Timed out waiting for attendance lock of user {user_id}")
        try:
            yield
        finally:
            lock.release()
