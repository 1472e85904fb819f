"""Stage 3: drop candidates either participant cannot make."""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta
from zoneinfo import ZoneInfo

from flightwx.domain.errors import NoValidSlot

from .types import Candidate, RescheduleContext, RescheduleState


async def filter_by_availability(state: RescheduleState, context: RescheduleContext) -> RescheduleState:
    booking = state.booking
    local_zone = ZoneInfo(context.config.timezone)
    duration = timedelta(minutes=booking.duration_minutes)

    async def both_available(candidate: Candidate) -> bool:
        start = candidate.start_time.astimezone(local_zone)
        end = start + duration
        for user_id in booking.participant_ids():
            if not await context.availability.is_available(user_id, start.date(), start.time(), end.time()):
                return False
        return True

    survivors = tuple([candidate for candidate in state.candidates if await both_available(candidate)])
    if not survivors:
        raise NoValidSlot(
            f"No valid slot in the {context.config.window_days}-day window for booking {booking.id}"
        )
    return replace(
        state,
        candidates=survivors,
        completed_stages=state.completed_stages + ("availability",),
    )


__all__ = ["filter_by_availability"]
