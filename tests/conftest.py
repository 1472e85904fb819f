"""Shared fakes and fixtures for the engine tests."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from typing import Any, Callable, List, Optional

import pytest

from flightwx.application.interfaces import (
    NotificationSenderInterface,
    WeatherProviderInterface,
)
from flightwx.config.settings import MonitorConfig, RescheduleConfig, Settings
from flightwx.container import ServiceContainer, build_container
from flightwx.domain.models import (
    AvailabilityPattern,
    Booking,
    ConditionType,
    Coordinate,
    RescheduleOption,
    TrainingLevel,
    WeatherReading,
)
from flightwx.infrastructure.persistence.repositories_memory import (
    InMemoryAuditSink,
    InMemoryAvailabilityRepository,
)

# Monday
NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)

PALO_ALTO = Coordinate(latitude=37.4611, longitude=-122.1150)
SAN_CARLOS = Coordinate(latitude=37.5119, longitude=-122.2495)

STUDENT_ID = "student-1"
INSTRUCTOR_ID = "instructor-1"


class FixedClock:
    """Callable clock the tests move by hand."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


def make_reading(**overrides: Any) -> WeatherReading:
    values: dict[str, Any] = {
        "coordinate": PALO_ALTO,
        "timestamp": NOW,
        "visibility": 10.0,
        "ceiling": 5000.0,
        "wind_speed": 5.0,
        "wind_direction": 0.0,
        "temperature": 68.0,
        "humidity": 40.0,
        "pressure": 30.0,
        "conditions": frozenset({ConditionType.CLEAR}),
        "provider": "fake",
    }
    values.update(overrides)
    return WeatherReading(**values)


def make_booking(**overrides: Any) -> Booking:
    values: dict[str, Any] = {
        "student_id": STUDENT_ID,
        "instructor_id": INSTRUCTOR_ID,
        "student_email": "student@example.com",
        "instructor_email": "instructor@example.com",
        "departure_airport": "KPAO",
        "arrival_airport": "KSQL",
        "departure": PALO_ALTO,
        "arrival": SAN_CARLOS,
        "scheduled_time": NOW + timedelta(hours=30),
        "duration_minutes": 60,
        "training_level": TrainingLevel.PRIVATE_PILOT,
    }
    values.update(overrides)
    return Booking(**values)


class FakeProvider(WeatherProviderInterface):
    """Weather provider returning canned readings and recording its calls."""

    def __init__(
        self,
        name: str = "primary",
        reading: Optional[WeatherReading] = None,
        error: Optional[BaseException] = None,
        configured: bool = True,
        for_time: Optional[Callable[[Coordinate, Optional[datetime]], WeatherReading]] = None,
    ):
        self.name = name
        self.reading = reading or make_reading()
        self.error = error
        self.configured = configured
        self.for_time = for_time
        self.calls: List[tuple[Coordinate, Optional[datetime]]] = []

    def is_configured(self) -> bool:
        return self.configured

    async def fetch(self, coordinate: Coordinate, at: Optional[datetime] = None) -> WeatherReading:
        self.calls.append((coordinate, at))
        if self.error is not None:
            raise self.error
        if self.for_time is not None:
            reading = self.for_time(coordinate, at)
        else:
            reading = self.reading
        return reading.model_copy(update={"coordinate": coordinate, "provider": self.name})


class RecordingNotifications(NotificationSenderInterface):
    def __init__(self) -> None:
        self.sent: List[tuple[str, Any]] = []

    def kinds(self) -> List[str]:
        return [kind for kind, _ in self.sent]

    async def send_weather_alert(self, booking: Booking, details: dict[str, Any]) -> None:
        self.sent.append(("weather_alert", details))

    async def send_options_available(
        self, booking: Booking, options: List[RescheduleOption], deadline: datetime
    ) -> None:
        self.sent.append(("options_available", [option.id for option in options]))

    async def send_weather_cleared(self, booking: Booking) -> None:
        self.sent.append(("weather_cleared", booking.id))

    async def send_reschedule_confirmed(self, booking: Booking, previous_time: datetime) -> None:
        self.sent.append(("reschedule_confirmed", previous_time))


def always_available(*user_ids: str) -> InMemoryAvailabilityRepository:
    """Weekly patterns covering 06:00-22:00 every day for each user."""

    users = user_ids or (STUDENT_ID, INSTRUCTOR_ID)
    return InMemoryAvailabilityRepository(
        patterns=[
            AvailabilityPattern(
                user_id=user_id,
                day_of_week=day,
                start_time=time(6, 0),
                end_time=time(22, 0),
            )
            for user_id in users
            for day in range(7)
        ]
    )


def memory_settings(**monitor_overrides: Any) -> Settings:
    return Settings(
        storage_backend="memory",
        monitor=MonitorConfig(enabled=False, **monitor_overrides),
        reschedule=RescheduleConfig(timezone="UTC"),
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def notifications() -> RecordingNotifications:
    return RecordingNotifications()


@pytest.fixture
def audit() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def make_container(
    clock: FixedClock,
    notifications: RecordingNotifications,
    audit: InMemoryAuditSink,
) -> Callable[..., ServiceContainer]:
    """Build a memory-backed container around fake providers."""

    def factory(
        *providers: WeatherProviderInterface,
        availability_repository: Optional[InMemoryAvailabilityRepository] = None,
        settings: Optional[Settings] = None,
    ) -> ServiceContainer:
        return build_container(
            settings or memory_settings(),
            providers=list(providers) or [FakeProvider()],
            availability_repository=availability_repository or always_available(),
            audit=audit,
            notifications=notifications,
            clock=clock,
        )

    return factory
