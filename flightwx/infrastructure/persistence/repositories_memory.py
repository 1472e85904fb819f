"""In-process repositories used by the memory storage backend and the tests."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from itertools import count
from typing import Any, Iterable, List, Optional
from uuid import UUID

from flightwx.application.interfaces import (
    AuditSinkInterface,
    AvailabilityRepositoryInterface,
    BookingRepositoryInterface,
    PreferenceRankingRepositoryInterface,
    RescheduleOptionRepositoryInterface,
)
from flightwx.domain.errors import BookingNotFound
from flightwx.domain.models import (
    AuditEvent,
    AuditEventType,
    AvailabilityOverride,
    AvailabilityPattern,
    Booking,
    BookingStatus,
    PreferenceRanking,
    RescheduleOption,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryBookingRepository(BookingRepositoryInterface):
    def __init__(self, bookings: Iterable[Booking] = ()):
        self._bookings: dict[UUID, Booking] = {}
        for booking in bookings:
            self._bookings[booking.id] = booking

    async def add(self, booking: Booking) -> Booking:
        now = _utcnow()
        stored = booking.model_copy(
            update={"created_at": booking.created_at or now, "updated_at": now}
        )
        self._bookings[stored.id] = stored
        return stored

    async def get_booking(self, booking_id: UUID) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    async def list_bookings(
        self,
        student_id: Optional[str] = None,
        instructor_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Booking]:
        matching = [
            booking
            for booking in self._bookings.values()
            if (student_id is None or booking.student_id == student_id)
            and (instructor_id is None or booking.instructor_id == instructor_id)
            and (status is None or booking.status == status)
        ]
        matching.sort(key=lambda booking: booking.scheduled_time)
        return matching[offset : offset + limit]

    async def list_bookings_due_within(
        self,
        start: datetime,
        end: datetime,
        statuses: Iterable[BookingStatus],
    ) -> List[Booking]:
        wanted = set(statuses)
        due = [
            booking
            for booking in self._bookings.values()
            if booking.status in wanted and start <= booking.scheduled_time <= end
        ]
        return sorted(due, key=lambda booking: booking.scheduled_time)

    async def update_booking_status(
        self, booking_id: UUID, status: BookingStatus
    ) -> Booking:
        booking = self._require(booking_id)
        updated = booking.model_copy(update={"status": status, "updated_at": _utcnow()})
        self._bookings[booking_id] = updated
        return updated

    async def reschedule_booking(
        self, booking_id: UUID, scheduled_time: datetime, status: BookingStatus
    ) -> Booking:
        booking = self._require(booking_id)
        updated = booking.model_copy(
            update={"scheduled_time": scheduled_time, "status": status, "updated_at": _utcnow()}
        )
        self._bookings[booking_id] = updated
        return updated

    def _require(self, booking_id: UUID) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        return booking


class InMemoryRescheduleOptionRepository(RescheduleOptionRepositoryInterface):
    def __init__(self) -> None:
        self._by_booking: dict[UUID, List[RescheduleOption]] = {}

    async def replace_options(
        self, booking_id: UUID, options: List[RescheduleOption]
    ) -> List[RescheduleOption]:
        now = _utcnow()
        stored = [
            option if option.created_at else option.model_copy(update={"created_at": now})
            for option in options
        ]
        self._by_booking[booking_id] = stored
        return list(stored)

    async def list_options(self, booking_id: UUID) -> List[RescheduleOption]:
        return sorted(self._by_booking.get(booking_id, []), key=lambda option: option.rank)

    async def get_option(self, option_id: UUID) -> Optional[RescheduleOption]:
        for options in self._by_booking.values():
            for option in options:
                if option.id == option_id:
                    return option
        return None


class InMemoryPreferenceRankingRepository(PreferenceRankingRepositoryInterface):
    def __init__(self) -> None:
        self._rows: dict[tuple[UUID, str], PreferenceRanking] = {}

    async def replace_rankings(
        self, booking_id: UUID, rankings: List[PreferenceRanking]
    ) -> None:
        for key in [key for key in self._rows if key[0] == booking_id]:
            del self._rows[key]
        for ranking in rankings:
            self._rows[(booking_id, ranking.user_id)] = ranking

    async def get_ranking(
        self, booking_id: UUID, user_id: str
    ) -> Optional[PreferenceRanking]:
        return self._rows.get((booking_id, user_id))

    async def list_rankings(self, booking_id: UUID) -> List[PreferenceRanking]:
        rows = [row for key, row in self._rows.items() if key[0] == booking_id]
        return sorted(rows, key=lambda row: row.role.value)

    async def save_submission(
        self, ranking: PreferenceRanking, now: datetime
    ) -> bool:
        key = (ranking.booking_id, ranking.user_id)
        stored = self._rows.get(key)
        if stored is None or now > stored.deadline:
            return False
        self._rows[key] = ranking.model_copy(update={"deadline": stored.deadline})
        return True


class InMemoryAvailabilityRepository(AvailabilityRepositoryInterface):
    def __init__(
        self,
        patterns: Iterable[AvailabilityPattern] = (),
        overrides: Iterable[AvailabilityOverride] = (),
    ):
        self._ids = count(1)
        self.patterns: List[AvailabilityPattern] = [self._with_id(pattern) for pattern in patterns]
        self.overrides: List[AvailabilityOverride] = [self._with_id(override) for override in overrides]

    def _with_id(self, row):
        if row.id is not None:
            return row
        return row.model_copy(update={"id": next(self._ids)})

    async def list_patterns(self, user_id: str, day_of_week: int) -> List[AvailabilityPattern]:
        return [
            pattern
            for pattern in self.patterns
            if pattern.user_id == user_id and pattern.day_of_week == day_of_week
        ]

    async def list_overrides(self, user_id: str, on_date: date) -> List[AvailabilityOverride]:
        return [
            override
            for override in self.overrides
            if override.user_id == user_id and override.date == on_date
        ]

    async def list_user_patterns(self, user_id: str) -> List[AvailabilityPattern]:
        rows = [pattern for pattern in self.patterns if pattern.user_id == user_id]
        return sorted(rows, key=lambda pattern: (pattern.day_of_week, pattern.start_time))

    async def get_pattern(self, pattern_id: int) -> Optional[AvailabilityPattern]:
        return next((pattern for pattern in self.patterns if pattern.id == pattern_id), None)

    async def add_pattern(self, pattern: AvailabilityPattern) -> AvailabilityPattern:
        stored = pattern.model_copy(update={"id": next(self._ids)})
        self.patterns.append(stored)
        return stored

    async def update_pattern(self, pattern: AvailabilityPattern) -> Optional[AvailabilityPattern]:
        for index, existing in enumerate(self.patterns):
            if existing.id == pattern.id:
                self.patterns[index] = pattern
                return pattern
        return None

    async def delete_pattern(self, pattern_id: int) -> bool:
        remaining = [pattern for pattern in self.patterns if pattern.id != pattern_id]
        deleted = len(remaining) != len(self.patterns)
        self.patterns = remaining
        return deleted

    async def list_user_overrides(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[AvailabilityOverride]:
        rows = [
            override
            for override in self.overrides
            if override.user_id == user_id
            and (start_date is None or override.date >= start_date)
            and (end_date is None or override.date <= end_date)
        ]
        return sorted(rows, key=lambda override: (override.date, override.start_time or time.min))

    async def get_override(self, override_id: int) -> Optional[AvailabilityOverride]:
        return next((override for override in self.overrides if override.id == override_id), None)

    async def add_override(self, override: AvailabilityOverride) -> AvailabilityOverride:
        stored = override.model_copy(update={"id": next(self._ids)})
        self.overrides.append(stored)
        return stored

    async def delete_override(self, override_id: int) -> bool:
        remaining = [override for override in self.overrides if override.id != override_id]
        deleted = len(remaining) != len(self.overrides)
        self.overrides = remaining
        return deleted


class InMemoryAuditSink(AuditSinkInterface):
    def __init__(self) -> None:
        self.events: List[AuditEvent] = []

    async def record(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        actor_id: Optional[str],
        data: dict[str, Any],
    ) -> None:
        self.events.append(
            AuditEvent(
                event_type=event_type,
                entity_type=entity_type,
                entity_id=entity_id,
                actor_id=actor_id,
                data=dict(data),
                created_at=_utcnow(),
            )
        )

    def of_type(self, event_type: AuditEventType) -> List[AuditEvent]:
        return [event for event in self.events if event.event_type == event_type]


__all__ = [
    "InMemoryAuditSink",
    "InMemoryAvailabilityRepository",
    "InMemoryBookingRepository",
    "InMemoryPreferenceRankingRepository",
    "InMemoryRescheduleOptionRepository",
]
