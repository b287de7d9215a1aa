"""Mutual-exclusion domains for staff-scoped scheduling state."""

from contextlib import contextmanager
from threading import Lock, RLock
from typing import Iterator

from consultation.core import config


class StaffLocks:
    """Hands out one re-entrant lock per staff identity.

    With the ``global`` scope every staff member shares the same lock, which
    serializes the whole engine.
    """

    def __init__(self, scope: str = config.LOCK_SCOPE_STAFF):
        if scope not in {config.LOCK_SCOPE_STAFF, config.LOCK_SCOPE_GLOBAL}:
            raise ValueError(f'Unknown lock scope: {scope}')
        self.scope = scope
        self._registry_lock = Lock()
        self._global_lock = RLock()
        self._locks: dict[str, RLock] = {}

    def lock_for(self, staff_id: str) -> RLock:
        if self.scope == config.LOCK_SCOPE_GLOBAL:
            return self._global_lock

        with self._registry_lock:
            lock = self._locks.get(staff_id)
            if lock is None:
                lock = RLock()
                self._locks[staff_id] = lock
            return lock

    @contextmanager
    def hold(self, staff_id: str) -> Iterator[None]:
        lock = self.lock_for(staff_id)
        with lock:
            yield
