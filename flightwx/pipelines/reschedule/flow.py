"""Ordered execution of the reschedule option pipeline.

1. ``candidates`` – enumerate business-hour slots in the window and score
   them by proximity to the original time.
2. ``weather`` – validate each slot's corridor against the training
   level's minimums and keep the valid ones.
3. ``availability`` – keep slots both the student and the instructor can
   make; no survivors aborts with ``NoValidSlot``.
4. ``ranking`` – sort by combined score, earliest first on ties, and keep
   the top options.

Nothing is persisted until all four stages have finished.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Iterable, List
from uuid import UUID

from flightwx.application.interfaces import (
    BookingRepositoryInterface,
    RescheduleOptionRepositoryInterface,
)
from flightwx.domain.errors import BookingNotFound, InvalidBookingState
from flightwx.domain.models import Booking, RescheduleOption
from flightwx.domain.services import BookingStatusDomainService
from flightwx.telemetry import observe_options_generated

from .availability import filter_by_availability
from .candidates import generate_candidates
from .ranking import normalised_confidence, rank_candidates
from .types import RescheduleContext, RescheduleState
from .weather import filter_by_weather

logger = logging.getLogger(__name__)

StageFunc = Callable[[RescheduleState, RescheduleContext], Awaitable[RescheduleState]]


@dataclass(frozen=True)
class PipelineStage:
    """One named stage of the reschedule pipeline."""

    order: int
    name: str
    run: StageFunc
    summary: str


class RescheduleEngine:
    """Generates, filters, ranks and stores alternative slots for a booking."""

    _STAGES: List[PipelineStage] = [
        PipelineStage(
            1,
            "candidates",
            generate_candidates,
            "Enumerate business-hour slots over the window and score proximity.",
        ),
        PipelineStage(
            2,
            "weather",
            filter_by_weather,
            "Validate each slot's corridor against the training-level minimums.",
        ),
        PipelineStage(
            3,
            "availability",
            filter_by_availability,
            "Require both participants to be available for the whole slot.",
        ),
        PipelineStage(
            4,
            "ranking",
            rank_candidates,
            "Sort by combined score, earliest first on ties, keep the top options.",
        ),
    ]

    def __init__(
        self,
        bookings: BookingRepositoryInterface,
        options: RescheduleOptionRepositoryInterface,
        context: RescheduleContext,
    ):
        self._bookings = bookings
        self._options = options
        self._context = context

    @classmethod
    def describe(cls) -> Iterable[PipelineStage]:
        """Expose the ordered list of stages for debugging and documentation."""

        return tuple(cls._STAGES)

    async def run_stages(self, booking: Booking, now: datetime) -> RescheduleState:
        state = RescheduleState(booking=booking, now=now)
        for stage in self._STAGES:
            state = await stage.run(state, self._context)
            logger.debug(
                "Reschedule stage %d (%s) for booking %s left %d candidates",
                stage.order,
                stage.name,
                booking.id,
                len(state.candidates),
            )
        return state

    async def generate_options(self, booking_id: UUID) -> List[RescheduleOption]:
        """Replace the booking's option set with a freshly ranked one."""

        booking = await self._bookings.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        if BookingStatusDomainService.is_terminal(booking.status):
            raise InvalidBookingState(
                f"Booking {booking_id} is {booking.status.value}; options cannot be generated"
            )

        now = self._context.clock()
        state = await self.run_stages(booking, now)

        options = [
            RescheduleOption(
                booking_id=booking.id,
                start_time=candidate.start_time,
                rank=rank,
                score=candidate.score,
                weather_confidence=candidate.weather_confidence,
                confidence=normalised_confidence(candidate.combined_score),
                weather_snapshot=list(candidate.weather_snapshot),
                created_at=now,
            )
            for rank, candidate in enumerate(state.candidates, start=1)
        ]
        stored = await self._options.replace_options(booking.id, options)
        observe_options_generated(len(stored))
        logger.info("Generated %d reschedule options for booking %s", len(stored), booking.id)
        return stored


__all__ = ["PipelineStage", "RescheduleEngine"]
