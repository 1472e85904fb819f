"""Candidate generation, filtering and ranking of reschedule options."""

from __future__ import annotations

import asyncio
from datetime import date, timedelta

import pytest

from conftest import NOW, STUDENT_ID, FakeProvider, always_available, make_booking, make_reading
from flightwx.config.settings import RescheduleConfig
from flightwx.domain.errors import InvalidBookingState, NoValidSlot
from flightwx.domain.models import AvailabilityOverride, BookingStatus
from flightwx.infrastructure.persistence.repositories_memory import InMemoryAvailabilityRepository
from flightwx.pipelines.reschedule import (
    RescheduleContext,
    RescheduleEngine,
    RescheduleState,
    generate_candidates,
    proximity_score,
)

TUESDAY = date(2026, 6, 2)


def _stored(container, booking):
    return asyncio.run(container.bookings.add(booking))


def _hours(options):
    return [(option.start_time - NOW).total_seconds() / 3600 for option in options]


def test_stages_run_in_order():
    assert [stage.name for stage in RescheduleEngine.describe()] == [
        "candidates",
        "weather",
        "availability",
        "ranking",
    ]


def test_proximity_score_loses_a_point_per_hour():
    original = NOW + timedelta(hours=30)

    assert proximity_score(original, original) == 100.0
    assert proximity_score(original - timedelta(hours=4), original) == 96.0
    assert proximity_score(original + timedelta(days=5), original) == 0.0


def test_candidates_skip_the_original_and_past_slots(make_container):
    container = make_container()
    booking = make_booking()
    context = RescheduleContext(
        validator=container.validator,
        availability=container.availability,
        config=RescheduleConfig(timezone="UTC"),
    )

    state = asyncio.run(generate_candidates(RescheduleState(booking=booking, now=NOW), context))

    starts = [candidate.start_time for candidate in state.candidates]
    assert booking.scheduled_time not in starts
    assert all(NOW < start <= NOW + timedelta(days=7) for start in starts)
    assert all(8 <= start.hour <= 18 and start.hour % 2 == 0 for start in starts)
    # Monday afternoon, six full days and next Monday morning, minus the original slot.
    assert len(starts) == 3 + 36 + 3 - 1
    assert state.completed_stages == ("candidates",)


def test_top_three_options_are_ranked_by_proximity(make_container):
    container = make_container()
    booking = _stored(container, make_booking())

    options = asyncio.run(container.engine.generate_options(booking.id))

    assert [option.rank for option in options] == [1, 2, 3]
    assert _hours(options) == [28.0, 26.0, 24.0]
    assert all(0.0 <= option.confidence <= 1.0 for option in options)
    assert options[0].confidence == pytest.approx(108 / 110)
    assert options[0].weather_confidence == 100.0
    assert len(options[0].weather_snapshot) == 5


def test_ties_go_to_the_earlier_slot(make_container):
    container = make_container()
    booking = _stored(container, make_booking(scheduled_time=NOW + timedelta(hours=29)))

    options = asyncio.run(container.engine.generate_options(booking.id))

    assert _hours(options) == [28.0, 30.0, 26.0]


def test_ranking_is_deterministic(make_container):
    container = make_container()
    booking = _stored(container, make_booking())

    first = asyncio.run(container.engine.generate_options(booking.id))
    container.gateway.cache.clear()
    second = asyncio.run(container.engine.generate_options(booking.id))

    assert [option.start_time for option in first] == [option.start_time for option in second]
    assert [option.score for option in first] == [option.score for option in second]


def test_weather_invalid_slots_are_excluded(make_container):
    bad_time = NOW + timedelta(hours=28)

    def reading_for(coordinate, at):
        if at == bad_time:
            return make_reading(visibility=1.0)
        return make_reading()

    container = make_container(FakeProvider(for_time=reading_for))
    booking = _stored(container, make_booking())

    options = asyncio.run(container.engine.generate_options(booking.id))

    assert _hours(options) == [26.0, 24.0, 22.0]


def test_blocked_day_removes_its_slots(make_container):
    availability = always_available()
    availability.overrides.append(
        AvailabilityOverride(user_id=STUDENT_ID, date=TUESDAY, is_blocked=True, reason="exam")
    )
    container = make_container(availability_repository=availability)
    booking = _stored(container, make_booking())

    options = asyncio.run(container.engine.generate_options(booking.id))

    assert all(option.start_time.date() != TUESDAY for option in options)
    assert _hours(options) == [44.0, 46.0, 48.0]


def test_no_slot_when_nobody_is_available(make_container):
    container = make_container(availability_repository=InMemoryAvailabilityRepository())
    booking = _stored(container, make_booking())

    with pytest.raises(NoValidSlot):
        asyncio.run(container.engine.generate_options(booking.id))

    assert asyncio.run(container.options.list_options(booking.id)) == []


def test_regeneration_replaces_the_previous_set(make_container):
    container = make_container()
    booking = _stored(container, make_booking())

    asyncio.run(container.engine.generate_options(booking.id))
    latest = asyncio.run(container.engine.generate_options(booking.id))

    live = asyncio.run(container.options.list_options(booking.id))
    assert [option.id for option in live] == [option.id for option in latest]


def test_terminal_bookings_cannot_get_options(make_container):
    container = make_container()
    booking = _stored(container, make_booking(status=BookingStatus.CANCELLED))

    with pytest.raises(InvalidBookingState):
        asyncio.run(container.engine.generate_options(booking.id))
