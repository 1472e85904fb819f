import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from flightwx.application.interfaces import (
    AuditSinkInterface,
    AvailabilityProviderInterface,
    BookingRepositoryInterface,
    NotificationSenderInterface,
    RescheduleOptionRepositoryInterface,
)
from flightwx.domain.errors import BookingNotFound, InvalidBookingState, OptionNotFound
from flightwx.domain.models import (
    AuditEventType,
    Booking,
    BookingStatus,
    ConfirmationOutcome,
    RescheduleOption,
)
from flightwx.domain.services import BookingStatusDomainService
from flightwx.pipelines.reschedule import RescheduleEngine
from flightwx.services.locks import BookingLocks
from flightwx.services.outbox import DispatchResult, SideEffectOutbox
from flightwx.services.preference_resolver import PreferenceResolver
from flightwx.services.weather_validator import WeatherValidator

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RegenerationResult:
    booking: Booking
    options: List[RescheduleOption]
    deadline: datetime
    status_changed: bool
    side_effects: DispatchResult


class RegenerateOptionsUseCase:
    """Use case for replacing a booking's reschedule options"""

    def __init__(
        self,
        booking_repository: BookingRepositoryInterface,
        engine: RescheduleEngine,
        resolver: PreferenceResolver,
        audit: AuditSinkInterface,
        notifications: NotificationSenderInterface,
        locks: BookingLocks,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.booking_repository = booking_repository
        self.engine = engine
        self.resolver = resolver
        self.audit = audit
        self.notifications = notifications
        self.locks = locks
        self.clock = clock

    async def execute(self, booking_id: UUID, actor_id: Optional[str] = None) -> RegenerationResult:
        """Generate options for a booking, holding its lock"""
        async with self.locks.hold(booking_id):
            booking = await self.booking_repository.get_booking(booking_id)
            if booking is None:
                raise BookingNotFound(booking_id)
            return await self.execute_locked(booking, actor_id or SYSTEM_ACTOR)

    async def execute_locked(
        self,
        booking: Booking,
        actor_id: str,
        reason: str = "Reschedule options generated",
    ) -> RegenerationResult:
        """Generate options when the caller already holds the booking lock"""
        if booking.status != BookingStatus.RESCHEDULING:
            BookingStatusDomainService.ensure_transition(booking.status, BookingStatus.RESCHEDULING)

        options = await self.engine.generate_options(booking.id)
        notified_at = self.clock()
        rows = await self.resolver.open_preferences(booking, notified_at)
        deadline = rows[0].deadline

        previous_status = booking.status
        status_changed = previous_status != BookingStatus.RESCHEDULING
        if status_changed:
            booking = await self.booking_repository.update_booking_status(
                booking.id, BookingStatus.RESCHEDULING
            )
            logger.info(
                "Booking %s status %s -> %s (%s)",
                booking.id,
                previous_status.value,
                BookingStatus.RESCHEDULING.value,
                reason,
            )

        outbox = SideEffectOutbox(self.audit)
        outbox.record(
            AuditEventType.OPTIONS_GENERATED,
            "booking",
            str(booking.id),
            actor_id,
            {
                "option_ids": [str(option.id) for option in options],
                "deadline": deadline.isoformat(),
            },
        )
        if status_changed:
            outbox.record(
                AuditEventType.STATUS_CHANGED,
                "booking",
                str(booking.id),
                actor_id,
                {
                    "previous_status": previous_status.value,
                    "new_status": BookingStatus.RESCHEDULING.value,
                    "reason": reason,
                },
            )
        notified_booking = booking
        outbox.notify(
            "options_available",
            lambda: self.notifications.send_options_available(notified_booking, options, deadline),
        )
        side_effects = await outbox.dispatch()
        return RegenerationResult(
            booking=booking,
            options=options,
            deadline=deadline,
            status_changed=status_changed,
            side_effects=side_effects,
        )


class ConfirmRescheduleUseCase:
    """Use case for committing the resolved reschedule option"""

    def __init__(
        self,
        booking_repository: BookingRepositoryInterface,
        option_repository: RescheduleOptionRepositoryInterface,
        resolver: PreferenceResolver,
        validator: WeatherValidator,
        availability: AvailabilityProviderInterface,
        audit: AuditSinkInterface,
        notifications: NotificationSenderInterface,
        locks: BookingLocks,
        cross_validate: bool = False,
        timezone_name: str = "UTC",
    ):
        self.booking_repository = booking_repository
        self.option_repository = option_repository
        self.resolver = resolver
        self.validator = validator
        self.availability = availability
        self.audit = audit
        self.notifications = notifications
        self.locks = locks
        self.cross_validate = cross_validate
        self.timezone_name = timezone_name

    async def execute(self, booking_id: UUID, actor_id: Optional[str] = None) -> ConfirmationOutcome:
        """Resolve preferences and re-validate weather before committing"""
        actor = actor_id or SYSTEM_ACTOR
        outbox = SideEffectOutbox(self.audit)

        async with self.locks.hold(booking_id):
            booking = await self.booking_repository.get_booking(booking_id)
            if booking is None:
                raise BookingNotFound(booking_id)
            if booking.status != BookingStatus.RESCHEDULING:
                raise InvalidBookingState(
                    f"Booking {booking_id} is {booking.status.value}, not rescheduling"
                )

            option_id = await self.resolver.resolve(booking_id)
            if option_id is None:
                outcome = self._reject(
                    outbox, booking, actor, None, "Instructor did not rank any option"
                )
                await outbox.dispatch()
                return outcome

            option = await self.option_repository.get_option(option_id)
            if option is None or option.booking_id != booking_id:
                raise OptionNotFound(f"Option {option_id} not found for booking {booking_id}")

            if not await self._participants_available(booking, option):
                outcome = self._reject(
                    outbox, booking, actor, option.id, "A participant is no longer available"
                )
                await outbox.dispatch()
                return outcome

            weather = await self.validator.validate_flight_weather(
                booking.departure,
                booking.arrival,
                booking.training_level,
                at=option.start_time,
                cross_validate=self.cross_validate,
            )
            if not weather.is_valid:
                outcome = self._reject(
                    outbox,
                    booking,
                    actor,
                    option.id,
                    "Weather no longer meets minimums at the selected time",
                )
                outcome = outcome.model_copy(update={"weather": weather})
                await outbox.dispatch()
                return outcome

            BookingStatusDomainService.ensure_transition(booking.status, BookingStatus.CONFIRMED)
            previous_time = booking.scheduled_time
            updated = await self.booking_repository.reschedule_booking(
                booking.id, option.start_time, BookingStatus.CONFIRMED
            )
            logger.info(
                "Booking %s rescheduled from %s to %s",
                booking.id,
                previous_time.isoformat(),
                option.start_time.isoformat(),
            )

            outbox.record(
                AuditEventType.BOOKING_RESCHEDULED,
                "booking",
                str(booking.id),
                actor,
                {
                    "option_id": str(option.id),
                    "previous_time": previous_time.isoformat(),
                    "new_time": option.start_time.isoformat(),
                    "weather_confidence": weather.confidence,
                },
            )
            outbox.record(
                AuditEventType.STATUS_CHANGED,
                "booking",
                str(booking.id),
                actor,
                {
                    "previous_status": BookingStatus.RESCHEDULING.value,
                    "new_status": BookingStatus.CONFIRMED.value,
                    "reason": "Reschedule confirmed",
                },
            )
            outbox.notify(
                "reschedule_confirmed",
                lambda: self.notifications.send_reschedule_confirmed(updated, previous_time),
            )

        await outbox.dispatch()
        return ConfirmationOutcome(
            booking_id=booking_id,
            confirmed=True,
            selected_option_id=option.id,
            new_time=option.start_time,
            weather=weather,
        )

    async def _participants_available(self, booking: Booking, option: RescheduleOption) -> bool:
        start = option.start_time.astimezone(ZoneInfo(self.timezone_name))
        end = start + timedelta(minutes=booking.duration_minutes)
        for user_id in booking.participant_ids():
            if not await self.availability.is_available(user_id, start.date(), start.time(), end.time()):
                return False
        return True

    @staticmethod
    def _reject(
        outbox: SideEffectOutbox,
        booking: Booking,
        actor: str,
        option_id: Optional[UUID],
        reason: str,
    ) -> ConfirmationOutcome:
        logger.warning("Reschedule of booking %s rejected: %s", booking.id, reason)
        outbox.record(
            AuditEventType.RESCHEDULE_REJECTED,
            "booking",
            str(booking.id),
            actor,
            {"option_id": str(option_id) if option_id else None, "reason": reason},
        )
        return ConfirmationOutcome(
            booking_id=booking.id,
            confirmed=False,
            requires_new_options=True,
            selected_option_id=option_id,
            reason=reason,
        )
