"""
Per-attempt mutual exclusion.

Every read-modify-write transition on an attempt runs while holding the lock
for that attempt id. Different attempts never contend. Waiting is bounded:
if the lock is not acquired within the timeout the caller gets a retryable
AttemptBusyError instead of hanging.

Locks are reference counted and dropped from the registry once nobody holds
or waits for them, so the registry does not grow with the number of attempts
ever seen.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from loguru import logger

from assessment.core.errors import AttemptBusyError


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class AttemptLocks:
    """Registry of locks keyed by attempt id."""

    def __init__(self, timeout_seconds: float = 2.0):
        self.timeout_seconds = timeout_seconds
        self._guard = threading.Lock()
        self._entries: dict[str, _LockEntry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, attempt_id: str, timeout_seconds: float | None = None) -> Iterator[None]:
        """Hold the attempt's lock for the duration of the block."""
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds

        with self._guard:
            entry = self._entries.get(attempt_id)
            if entry is None:
                entry = self._entries[attempt_id] = _LockEntry()
            entry.users += 1

        acquired = entry.lock.acquire(timeout=timeout)
        try:
            if not acquired:
                logger.warning(f"Attempt {attempt_id} busy; gave up after {timeout:.2f}s")
                raise AttemptBusyError(
                    "Another request is updating this attempt, please retry",
                    attempt_id=attempt_id,
                )
            yield
        finally:
            if acquired:
                entry.lock.release()
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    self._entries.pop(attempt_id, None)
