"""Pure domain rules: severity, deadlines, status transitions and advice."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest

from conftest import NOW, FakeProvider, make_booking, make_reading
from flightwx.domain.errors import InvalidStatusTransition
from flightwx.domain.models import (
    BookingStatus,
    ConflictKind,
    ParticipantRole,
    PreferenceRanking,
    Severity,
)
from flightwx.domain.services import (
    BookingStatusDomainService,
    ConflictDomainService,
    PreferenceDomainService,
)
from flightwx.infrastructure.persistence.repositories_memory import InMemoryBookingRepository
from flightwx.services.conflict_detector import ConflictDetector
from flightwx.services.weather_cache import WeatherCache
from flightwx.services.weather_gateway import WeatherGateway
from flightwx.services.weather_validator import WeatherValidator


@pytest.mark.parametrize(
    ("offset", "severity"),
    [
        (timedelta(minutes=30), Severity.CRITICAL),
        (timedelta(hours=1, minutes=59), Severity.CRITICAL),
        (timedelta(hours=2), Severity.CRITICAL),
        (timedelta(hours=2, minutes=1), Severity.WARNING),
        (timedelta(hours=12), Severity.WARNING),
        (timedelta(hours=12, minutes=1), Severity.NONE),
    ],
)
def test_severity_by_time_to_departure(offset, severity):
    hours = ConflictDomainService.hours_until(NOW + offset, NOW)

    assert ConflictDomainService.severity_for(hours) == severity


def test_only_fresh_or_critical_conflicts_notify():
    assert ConflictDomainService.should_notify(BookingStatus.CONFIRMED, Severity.NONE)
    assert ConflictDomainService.should_notify(BookingStatus.AT_RISK, Severity.CRITICAL)
    assert not ConflictDomainService.should_notify(BookingStatus.AT_RISK, Severity.WARNING)


def test_conflicts_move_confirmed_to_at_risk_and_back():
    assert ConflictDomainService.next_status(BookingStatus.CONFIRMED, True) == BookingStatus.AT_RISK
    assert ConflictDomainService.next_status(BookingStatus.AT_RISK, False) == BookingStatus.CONFIRMED
    assert ConflictDomainService.next_status(BookingStatus.AT_RISK, True) is None
    assert ConflictDomainService.next_status(BookingStatus.CONFIRMED, False) is None


@pytest.mark.parametrize(
    ("hours", "first_word"),
    [(1.0, "Departure"), (5.0, "Reschedule"), (10.0, "Monitor"), (30.0, "Conditions")],
)
def test_recommendations_are_tiered(hours, first_word):
    advice = ConflictDomainService.recommendations(hours, ["Visibility 2 SM below minimum 3 SM"])

    assert advice[0].startswith(first_word)
    assert advice[-1] == "Current issues: Visibility 2 SM below minimum 3 SM"


def test_deadline_is_the_earlier_of_buffer_and_response_window():
    far = PreferenceDomainService.compute_deadline(NOW + timedelta(hours=30), NOW)
    near = PreferenceDomainService.compute_deadline(NOW + timedelta(hours=6), NOW)

    assert far == NOW + timedelta(hours=12)
    assert near == NOW + timedelta(hours=5, minutes=30)


def test_deadline_boundary_is_inclusive():
    deadline = NOW + timedelta(hours=1)

    assert not PreferenceDomainService.is_deadline_passed(deadline, deadline)
    assert PreferenceDomainService.is_deadline_passed(deadline, deadline + timedelta(seconds=1))


def test_instructor_first_choice_resolves():
    first, second = uuid4(), uuid4()
    instructor = PreferenceRanking(
        booking_id=uuid4(),
        user_id="instructor-1",
        role=ParticipantRole.INSTRUCTOR,
        option_1_id=None,
        option_2_id=first,
        option_3_id=second,
        deadline=NOW,
    )

    assert PreferenceDomainService.resolve(instructor) == first
    assert PreferenceDomainService.resolve(instructor.model_copy(update={"option_2_id": None, "option_3_id": None})) is None


@pytest.mark.parametrize(
    ("current", "target", "allowed"),
    [
        (BookingStatus.CONFIRMED, BookingStatus.AT_RISK, True),
        (BookingStatus.CONFIRMED, BookingStatus.RESCHEDULING, True),
        (BookingStatus.AT_RISK, BookingStatus.RESCHEDULING, True),
        (BookingStatus.RESCHEDULING, BookingStatus.CONFIRMED, True),
        (BookingStatus.RESCHEDULING, BookingStatus.AT_RISK, False),
        (BookingStatus.CANCELLED, BookingStatus.CONFIRMED, False),
        (BookingStatus.COMPLETED, BookingStatus.RESCHEDULING, False),
    ],
)
def test_status_transitions(current, target, allowed):
    assert BookingStatusDomainService.can_transition(current, target) is allowed
    if not allowed:
        with pytest.raises(InvalidStatusTransition):
            BookingStatusDomainService.ensure_transition(current, target)


def test_terminal_statuses():
    assert BookingStatusDomainService.is_terminal(BookingStatus.CANCELLED)
    assert BookingStatusDomainService.is_terminal(BookingStatus.COMPLETED)
    assert not BookingStatusDomainService.is_terminal(BookingStatus.AT_RISK)


def _detector(provider: FakeProvider, *bookings) -> ConflictDetector:
    validator = WeatherValidator(WeatherGateway([provider], WeatherCache()), clock=lambda: NOW)
    return ConflictDetector(InMemoryBookingRepository(bookings), validator, clock=lambda: NOW)


def test_distant_conflict_is_still_a_conflict_without_severity():
    booking = make_booking(scheduled_time=NOW + timedelta(hours=12, minutes=1))
    detector = _detector(FakeProvider(reading=make_reading(visibility=1.0)), booking)

    result = asyncio.run(detector.check_booking(booking))

    assert result.has_conflict
    assert result.conflict_kind == ConflictKind.WEATHER
    assert result.severity == Severity.NONE
    assert result.should_notify
    assert result.next_status == BookingStatus.AT_RISK
    assert result.recommendations[0].startswith("Conditions may improve")


def test_clear_weather_has_no_conflict():
    booking = make_booking(scheduled_time=NOW + timedelta(hours=3))
    detector = _detector(FakeProvider(), booking)

    result = asyncio.run(detector.check_booking(booking))

    assert not result.has_conflict
    assert result.severity == Severity.NONE
    assert not result.should_notify
    assert result.next_status is None
    assert result.hours_until_departure == 3.0


def test_scan_only_covers_monitored_bookings_in_the_lookahead():
    due = make_booking(scheduled_time=NOW + timedelta(hours=6))
    too_far = make_booking(scheduled_time=NOW + timedelta(hours=72))
    cancelled = make_booking(scheduled_time=NOW + timedelta(hours=6), status=BookingStatus.CANCELLED)
    detector = _detector(FakeProvider(), due, too_far, cancelled)

    results = asyncio.run(detector.scan(lookahead_hours=48))

    assert [result.booking_id for result in results] == [due.id]
