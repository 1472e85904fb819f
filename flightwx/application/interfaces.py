from abc import ABC, abstractmethod
from datetime import date, datetime, time
from typing import Any, Iterable, List, Optional
from uuid import UUID

from flightwx.domain.models import (
    AuditEventType,
    AvailabilityOverride,
    AvailabilityPattern,
    Booking,
    BookingStatus,
    Coordinate,
    PreferenceRanking,
    RescheduleOption,
    WeatherReading,
)


class WeatherProviderInterface(ABC):
    """Contract for an external weather data source"""

    name: str

    @abstractmethod
    def is_configured(self) -> bool:
        ...

    @abstractmethod
    async def fetch(
        self, coordinate: Coordinate, at: Optional[datetime] = None
    ) -> WeatherReading:
        ...


class BookingRepositoryInterface(ABC):
    """Persistence contract for bookings"""

    @abstractmethod
    async def add(self, booking: Booking) -> Booking:
        ...

    @abstractmethod
    async def get_booking(self, booking_id: UUID) -> Optional[Booking]:
        ...

    @abstractmethod
    async def list_bookings(
        self,
        student_id: Optional[str] = None,
        instructor_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Booking]:
        """Bookings matching every given filter, earliest departure first."""

    @abstractmethod
    async def list_bookings_due_within(
        self,
        start: datetime,
        end: datetime,
        statuses: Iterable[BookingStatus],
    ) -> List[Booking]:
        ...

    @abstractmethod
    async def update_booking_status(
        self, booking_id: UUID, status: BookingStatus
    ) -> Booking:
        ...

    @abstractmethod
    async def reschedule_booking(
        self, booking_id: UUID, scheduled_time: datetime, status: BookingStatus
    ) -> Booking:
        ...


class RescheduleOptionRepositoryInterface(ABC):
    """Persistence contract for reschedule options"""

    @abstractmethod
    async def replace_options(
        self, booking_id: UUID, options: List[RescheduleOption]
    ) -> List[RescheduleOption]:
        """Delete every option for the booking, then insert ``options``."""

    @abstractmethod
    async def list_options(self, booking_id: UUID) -> List[RescheduleOption]:
        ...

    @abstractmethod
    async def get_option(self, option_id: UUID) -> Optional[RescheduleOption]:
        ...


class PreferenceRankingRepositoryInterface(ABC):
    """Persistence contract for participant preference rows"""

    @abstractmethod
    async def replace_rankings(
        self, booking_id: UUID, rankings: List[PreferenceRanking]
    ) -> None:
        ...

    @abstractmethod
    async def get_ranking(
        self, booking_id: UUID, user_id: str
    ) -> Optional[PreferenceRanking]:
        ...

    @abstractmethod
    async def list_rankings(self, booking_id: UUID) -> List[PreferenceRanking]:
        ...

    @abstractmethod
    async def save_submission(
        self, ranking: PreferenceRanking, now: datetime
    ) -> bool:
        """Persist a submission only while ``now`` is not past the stored deadline.

        Returns False when the stored deadline has passed.
        """


class AvailabilityRepositoryInterface(ABC):
    """Persistence contract for recurring and date-specific availability"""

    @abstractmethod
    async def list_patterns(self, user_id: str, day_of_week: int) -> List[AvailabilityPattern]:
        ...

    @abstractmethod
    async def list_overrides(self, user_id: str, on_date: date) -> List[AvailabilityOverride]:
        ...

    @abstractmethod
    async def list_user_patterns(self, user_id: str) -> List[AvailabilityPattern]:
        ...

    @abstractmethod
    async def get_pattern(self, pattern_id: int) -> Optional[AvailabilityPattern]:
        ...

    @abstractmethod
    async def add_pattern(self, pattern: AvailabilityPattern) -> AvailabilityPattern:
        ...

    @abstractmethod
    async def update_pattern(self, pattern: AvailabilityPattern) -> Optional[AvailabilityPattern]:
        """Overwrite the stored pattern with the same id; None when it is gone."""

    @abstractmethod
    async def delete_pattern(self, pattern_id: int) -> bool:
        ...

    @abstractmethod
    async def list_user_overrides(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[AvailabilityOverride]:
        ...

    @abstractmethod
    async def get_override(self, override_id: int) -> Optional[AvailabilityOverride]:
        ...

    @abstractmethod
    async def add_override(self, override: AvailabilityOverride) -> AvailabilityOverride:
        ...

    @abstractmethod
    async def delete_override(self, override_id: int) -> bool:
        ...


class AvailabilityProviderInterface(ABC):
    """Answers whether a participant can fly in a time window"""

    @abstractmethod
    async def is_available(
        self,
        user_id: str,
        on_date: date,
        start_time: time,
        end_time: Optional[time] = None,
    ) -> bool:
        ...


class AuditSinkInterface(ABC):
    """Append-only audit trail"""

    @abstractmethod
    async def record(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        actor_id: Optional[str],
        data: dict[str, Any],
    ) -> None:
        ...


class NotificationSenderInterface(ABC):
    """Outbound participant notifications"""

    @abstractmethod
    async def send_weather_alert(self, booking: Booking, details: dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def send_options_available(
        self, booking: Booking, options: List[RescheduleOption], deadline: datetime
    ) -> None:
        ...

    @abstractmethod
    async def send_weather_cleared(self, booking: Booking) -> None:
        ...

    @abstractmethod
    async def send_reschedule_confirmed(
        self, booking: Booking, previous_time: datetime
    ) -> None:
        ...
