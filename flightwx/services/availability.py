"""Participant availability from weekly patterns and date overrides."""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Optional

from flightwx.application.interfaces import (
    AvailabilityProviderInterface,
    AvailabilityRepositoryInterface,
)

logger = logging.getLogger(__name__)


def _covers(start: time, end: time, slot_start: time, slot_end: time) -> bool:
    return start <= slot_start and slot_end <= end


class AvailabilityCalendar(AvailabilityProviderInterface):
    """Answers availability queries.

    Overrides for a date replace the weekly pattern entirely. A blocked
    override vetoes any window it overlaps; an override without times
    covers the whole day.
    """

    def __init__(self, repository: AvailabilityRepositoryInterface):
        self._repository = repository

    async def is_available(
        self,
        user_id: str,
        on_date: date,
        start_time: time,
        end_time: Optional[time] = None,
    ) -> bool:
        slot_end = end_time or start_time

        overrides = await self._repository.list_overrides(user_id, on_date)
        if overrides:
            for override in overrides:
                if not override.is_blocked:
                    continue
                if override.start_time is None or override.end_time is None:
                    return False
                if override.start_time < slot_end and start_time < override.end_time:
                    return False
                if start_time == slot_end and override.start_time <= start_time < override.end_time:
                    return False
            for override in overrides:
                if override.is_blocked:
                    continue
                if override.start_time is None or override.end_time is None:
                    return True
                if _covers(override.start_time, override.end_time, start_time, slot_end):
                    return True
            return False

        patterns = await self._repository.list_patterns(user_id, on_date.weekday())
        for pattern in patterns:
            if pattern.is_active and _covers(pattern.start_time, pattern.end_time, start_time, slot_end):
                return True
        logger.debug("User %s unavailable on %s at %s", user_id, on_date, start_time)
        return False


__all__ = ["AvailabilityCalendar"]
