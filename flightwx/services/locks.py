"""Per-booking asyncio locks shared by every mutating operation."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID


class BookingLocks:
    """Serialises state changes for a booking across monitor runs and requests."""

    def __init__(self) -> None:
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._waiters: dict[UUID, int] = {}

    @asynccontextmanager
    async def hold(self, booking_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(booking_id, asyncio.Lock())
        self._waiters[booking_id] = self._waiters.get(booking_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[booking_id] -= 1
            if self._waiters[booking_id] == 0:
                del self._waiters[booking_id]
                self._locks.pop(booking_id, None)

    def is_locked(self, booking_id: UUID) -> bool:
        lock = self._locks.get(booking_id)
        return lock is not None and lock.locked()


__all__ = ["BookingLocks"]
