"""Detect weather conflicts for upcoming bookings."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List

from flightwx.application.interfaces import BookingRepositoryInterface
from flightwx.domain.models import (
    Booking,
    BookingStatus,
    ConflictKind,
    ConflictResult,
    Severity,
)
from flightwx.domain.services import ConflictDomainService
from flightwx.services.weather_validator import WeatherValidator

logger = logging.getLogger(__name__)

MONITORED_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.AT_RISK)


class ConflictDetector:
    """Validates booking corridors and classifies any conflict found."""

    def __init__(
        self,
        bookings: BookingRepositoryInterface,
        validator: WeatherValidator,
        *,
        cross_validate: bool = False,
        concurrency: int = 8,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._bookings = bookings
        self._validator = validator
        self._cross_validate = cross_validate
        self._concurrency = concurrency
        self._clock = clock

    async def due_bookings(self, lookahead_hours: float = 48.0) -> List[Booking]:
        now = self._clock()
        return await self._bookings.list_bookings_due_within(
            now, now + timedelta(hours=lookahead_hours), MONITORED_STATUSES
        )

    async def check_booking(self, booking: Booking) -> ConflictResult:
        weather = await self._validator.validate_flight_weather(
            booking.departure,
            booking.arrival,
            booking.training_level,
            at=booking.scheduled_time,
            cross_validate=self._cross_validate,
        )
        now = self._clock()
        hours = ConflictDomainService.hours_until(booking.scheduled_time, now)
        has_conflict = not weather.is_valid

        if has_conflict:
            severity = ConflictDomainService.severity_for(hours)
            should_notify = ConflictDomainService.should_notify(booking.status, severity)
            recommendations = ConflictDomainService.recommendations(
                hours, [violation.message for violation in weather.violations]
            )
        else:
            severity = Severity.NONE
            should_notify = False
            recommendations = []

        result = ConflictResult(
            booking_id=booking.id,
            has_conflict=has_conflict,
            conflict_kind=ConflictKind.WEATHER if has_conflict else ConflictKind.NONE,
            severity=severity,
            should_notify=should_notify,
            weather=weather,
            recommendations=recommendations,
            hours_until_departure=round(hours, 4),
            previous_status=booking.status,
            next_status=ConflictDomainService.next_status(booking.status, has_conflict),
            evaluated_at=now,
        )
        if has_conflict:
            logger.info(
                "Weather conflict for booking %s: severity=%s violations=%d hours=%.2f",
                booking.id,
                severity.value,
                len(weather.violations),
                hours,
            )
        return result

    async def scan(self, lookahead_hours: float = 48.0) -> List[ConflictResult]:
        """Check every confirmed or at-risk booking due within the lookahead.

        A booking that fails to evaluate is logged and left out of the
        results; the rest of the scan carries on.
        """

        bookings = await self.due_bookings(lookahead_hours)
        semaphore = asyncio.Semaphore(self._concurrency)

        async def bounded(booking: Booking) -> ConflictResult:
            async with semaphore:
                return await self.check_booking(booking)

        outcomes = await asyncio.gather(
            *(bounded(booking) for booking in bookings), return_exceptions=True
        )
        results: List[ConflictResult] = []
        for booking, outcome in zip(bookings, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error("Conflict check failed for booking %s: %s", booking.id, outcome)
                continue
            results.append(outcome)
        return results


__all__ = ["ConflictDetector", "MONITORED_STATUSES"]
