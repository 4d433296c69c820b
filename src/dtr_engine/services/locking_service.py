"""Per-employee serialization of read-decide-write sequences.

A scan (or a leave request) reads the employee's current records, decides,
then writes. Two such sequences for the same employee must never interleave,
so each one holds the employee's lock for its whole duration. Acquisition is
non-blocking: a request that finds the lock taken is rejected immediately
with a retryable ``ConcurrencyError`` instead of queueing behind the winner.

The lock is process-local. The unique constraints on the clock/leave tables
remain the backstop when several workers share one database.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable
from uuid import UUID

from dtr_engine.errors import (
    ConcurrencyError,
    ConcurrentLeaveRequestRejectedError,
    ConcurrentScanRejectedError,
)

logger = logging.getLogger(__name__)


class EmployeeLockRegistry:
    """Try-locks keyed by employee id."""

    def __init__(self, name: str, rejection: Callable[[UUID], ConcurrencyError]):
        self.name = name
        self._rejection = rejection
        self._locks: dict[UUID, asyncio.Lock] = {}

    @asynccontextmanager
    async def hold(self, employee_id: UUID) -> AsyncIterator[None]:
        """Hold the employee's lock, or raise the registry's rejection error.

        Raises:
            ConcurrencyError: another request for this employee is in flight
        """
        lock = self._locks.setdefault(employee_id, asyncio.Lock())
        if lock.locked():
            logger.info("Rejected concurrent %s request for employee %s", self.name, employee_id)
            raise self._rejection(employee_id)
        await lock.acquire()
        try:
            yield
        finally:
            lock.release()


def scan_lock_registry() -> EmployeeLockRegistry:
    return EmployeeLockRegistry("scan", ConcurrentScanRejectedError)


def leave_lock_registry() -> EmployeeLockRegistry:
    return EmployeeLockRegistry("leave", ConcurrentLeaveRequestRejectedError)


# Shared by every request served by this process
scan_locks = scan_lock_registry()
leave_locks = leave_lock_registry()
