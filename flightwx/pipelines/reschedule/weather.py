"""Stage 2: keep only candidates whose corridor weather is within minimums."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Optional

from .types import Candidate, RescheduleContext, RescheduleState

logger = logging.getLogger(__name__)


async def filter_by_weather(state: RescheduleState, context: RescheduleContext) -> RescheduleState:
    booking = state.booking
    semaphore = asyncio.Semaphore(context.config.weather_concurrency)

    async def check(candidate: Candidate) -> Optional[Candidate]:
        async with semaphore:
            result = await context.validator.validate_flight_weather(
                booking.departure,
                booking.arrival,
                booking.training_level,
                at=candidate.start_time,
                cross_validate=context.config.cross_validate,
            )
        if not result.is_valid:
            return None
        return replace(
            candidate,
            weather_confidence=result.confidence,
            weather_snapshot=tuple(result.snapshot()),
        )

    checked = await asyncio.gather(*(check(candidate) for candidate in state.candidates))
    survivors = tuple(candidate for candidate in checked if candidate is not None)
    logger.debug(
        "Booking %s: %d of %d candidates passed weather",
        booking.id,
        len(survivors),
        len(state.candidates),
    )
    return replace(
        state,
        candidates=survivors,
        completed_stages=state.completed_stages + ("weather",),
    )


__all__ = ["filter_by_weather"]
