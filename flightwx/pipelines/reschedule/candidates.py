"""Stage 1: enumerate business-hour slots near the original time."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from .types import Candidate, RescheduleContext, RescheduleState


def proximity_score(slot: datetime, original: datetime) -> float:
    """100 at the original time, one point lost per hour away, floored at 0."""

    delta_hours = abs((slot - original).total_seconds()) / 3600.0
    return max(0.0, 100.0 - delta_hours)


async def generate_candidates(state: RescheduleState, context: RescheduleContext) -> RescheduleState:
    config = context.config
    local_zone = ZoneInfo(config.timezone)
    original = state.booking.scheduled_time
    window_end = state.now + timedelta(days=config.window_days)
    first_day = state.now.astimezone(local_zone).date()

    candidates: list[Candidate] = []
    for day_offset in range(config.window_days + 1):
        day = first_day + timedelta(days=day_offset)
        for hour in range(config.business_start_hour, config.business_end_hour + 1, config.slot_step_hours):
            slot = datetime.combine(day, time(hour), tzinfo=local_zone).astimezone(timezone.utc)
            if slot <= state.now or slot > window_end or slot == original:
                continue
            candidates.append(Candidate(start_time=slot, score=proximity_score(slot, original)))

    return replace(
        state,
        candidates=tuple(candidates),
        completed_stages=state.completed_stages + ("candidates",),
    )


__all__ = ["generate_candidates", "proximity_score"]
