import logging
from typing import Optional
from uuid import UUID

from flightwx.application.interfaces import AuditSinkInterface, BookingRepositoryInterface
from flightwx.application.use_cases.reschedule_use_cases import SYSTEM_ACTOR
from flightwx.domain.errors import BookingNotFound
from flightwx.domain.models import AuditEventType, Booking, BookingStatus
from flightwx.domain.services import BookingStatusDomainService
from flightwx.services.locks import BookingLocks
from flightwx.services.outbox import SideEffectOutbox

logger = logging.getLogger(__name__)


class ChangeBookingStatusUseCase:
    """Use case for explicit participant or admin status changes"""

    def __init__(
        self,
        booking_repository: BookingRepositoryInterface,
        audit: AuditSinkInterface,
        locks: BookingLocks,
    ):
        self.booking_repository = booking_repository
        self.audit = audit
        self.locks = locks

    async def execute(
        self,
        booking_id: UUID,
        target: BookingStatus,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Booking:
        """Move the booking to ``target`` if the state machine allows it"""
        actor = actor_id or SYSTEM_ACTOR
        outbox = SideEffectOutbox(self.audit)

        async with self.locks.hold(booking_id):
            booking = await self.booking_repository.get_booking(booking_id)
            if booking is None:
                raise BookingNotFound(booking_id)

            BookingStatusDomainService.ensure_transition(booking.status, target)
            previous_status = booking.status
            updated = await self.booking_repository.update_booking_status(booking_id, target)
            logger.info(
                "Booking %s status %s -> %s by %s",
                booking_id,
                previous_status.value,
                target.value,
                actor,
            )
            outbox.record(
                AuditEventType.STATUS_CHANGED,
                "booking",
                str(booking_id),
                actor,
                {
                    "previous_status": previous_status.value,
                    "new_status": target.value,
                    "reason": reason or f"Booking {target.value}",
                },
            )

        await outbox.dispatch()
        return updated


__all__ = ["ChangeBookingStatusUseCase"]
