"""Participant preference collection and instructor-priority resolution."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence
from uuid import UUID

from flightwx.application.interfaces import (
    AuditSinkInterface,
    PreferenceRankingRepositoryInterface,
    RescheduleOptionRepositoryInterface,
)
from flightwx.domain.errors import (
    DeadlinePassed,
    InvalidPreference,
    PreferenceNotFound,
    PreferencesIncomplete,
)
from flightwx.domain.models import (
    AuditEventType,
    Booking,
    ParticipantRole,
    PreferenceRanking,
)
from flightwx.domain.services import PreferenceDomainService
from flightwx.services.locks import BookingLocks
from flightwx.services.outbox import SideEffectOutbox

logger = logging.getLogger(__name__)

MAX_RANKED_OPTIONS = 3


class PreferenceResolver:
    """Stores each participant's ranking and resolves them into one option.

    Resolution is not a vote: the instructor's highest-ranked option is
    selected and the student's ranking is recorded but not consulted.
    """

    def __init__(
        self,
        rankings: PreferenceRankingRepositoryInterface,
        options: RescheduleOptionRepositoryInterface,
        audit: AuditSinkInterface,
        locks: BookingLocks,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._rankings = rankings
        self._options = options
        self._audit = audit
        self._locks = locks
        self._clock = clock

    @staticmethod
    def compute_deadline(scheduled_time: datetime, notified_at: datetime) -> datetime:
        return PreferenceDomainService.compute_deadline(scheduled_time, notified_at)

    async def open_preferences(self, booking: Booking, notified_at: datetime) -> List[PreferenceRanking]:
        """Replace both participants' rows with empty ones under a fresh deadline."""

        deadline = self.compute_deadline(booking.scheduled_time, notified_at)
        rows = [
            PreferenceRanking(
                booking_id=booking.id,
                user_id=booking.student_id,
                role=ParticipantRole.STUDENT,
                deadline=deadline,
            ),
            PreferenceRanking(
                booking_id=booking.id,
                user_id=booking.instructor_id,
                role=ParticipantRole.INSTRUCTOR,
                deadline=deadline,
            ),
        ]
        await self._rankings.replace_rankings(booking.id, rows)
        logger.info("Opened preferences for booking %s until %s", booking.id, deadline.isoformat())
        return rows

    async def submit(
        self,
        booking_id: UUID,
        user_id: str,
        ranked_option_ids: Sequence[UUID],
        unavailable_option_ids: Sequence[UUID] = (),
    ) -> PreferenceRanking:
        """Record a participant's ranking; last write wins until the stored deadline."""

        async with self._locks.hold(booking_id):
            row = await self._rankings.get_ranking(booking_id, user_id)
            if row is None:
                raise PreferenceNotFound(
                    f"No preference row for user {user_id} on booking {booking_id}"
                )

            now = self._clock()
            if PreferenceDomainService.is_deadline_passed(row.deadline, now):
                raise DeadlinePassed(row.deadline)

            await self._check_option_ids(booking_id, ranked_option_ids, unavailable_option_ids)
            ranked: list[Optional[UUID]] = list(ranked_option_ids) + [None] * (
                MAX_RANKED_OPTIONS - len(ranked_option_ids)
            )
            updated = row.model_copy(
                update={
                    "option_1_id": ranked[0],
                    "option_2_id": ranked[1],
                    "option_3_id": ranked[2],
                    "unavailable_option_ids": list(unavailable_option_ids),
                    "submitted_at": now,
                }
            )
            if not await self._rankings.save_submission(updated, now):
                raise DeadlinePassed(row.deadline)

        outbox = SideEffectOutbox(self._audit)
        outbox.record(
            AuditEventType.PREFERENCE_SUBMITTED,
            "booking",
            str(booking_id),
            user_id,
            {
                "role": updated.role.value,
                "ranked_option_ids": [str(option_id) for option_id in ranked_option_ids],
                "unavailable_option_ids": [str(option_id) for option_id in unavailable_option_ids],
            },
        )
        await outbox.dispatch()
        return updated

    async def _check_option_ids(
        self,
        booking_id: UUID,
        ranked_option_ids: Sequence[UUID],
        unavailable_option_ids: Sequence[UUID],
    ) -> None:
        if len(ranked_option_ids) > MAX_RANKED_OPTIONS:
            raise InvalidPreference(f"At most {MAX_RANKED_OPTIONS} options can be ranked")
        if len(set(ranked_option_ids)) != len(ranked_option_ids):
            raise InvalidPreference("Ranked options must be distinct")
        if set(ranked_option_ids) & set(unavailable_option_ids):
            raise InvalidPreference("An option cannot be both ranked and unavailable")

        live_ids = {option.id for option in await self._options.list_options(booking_id)}
        unknown = (set(ranked_option_ids) | set(unavailable_option_ids)) - live_ids
        if unknown:
            raise InvalidPreference(
                "Unknown option ids for this booking: "
                + ", ".join(sorted(str(option_id) for option_id in unknown))
            )

    async def get_preference(self, booking_id: UUID, user_id: str) -> PreferenceRanking:
        row = await self._rankings.get_ranking(booking_id, user_id)
        if row is None:
            raise PreferenceNotFound(
                f"No preference row for user {user_id} on booking {booking_id}"
            )
        return row

    async def list_preferences(self, booking_id: UUID) -> List[PreferenceRanking]:
        return await self._rankings.list_rankings(booking_id)

    async def resolve(self, booking_id: UUID) -> Optional[UUID]:
        """Return the instructor's first ranked option, or None if they ranked none."""

        rows = {row.role: row for row in await self._rankings.list_rankings(booking_id)}
        student = rows.get(ParticipantRole.STUDENT)
        instructor = rows.get(ParticipantRole.INSTRUCTOR)
        if student is None or instructor is None or not (student.is_submitted and instructor.is_submitted):
            raise PreferencesIncomplete(
                f"Both participants must submit preferences for booking {booking_id}"
            )
        return PreferenceDomainService.resolve(instructor)


__all__ = ["MAX_RANKED_OPTIONS", "PreferenceResolver"]
