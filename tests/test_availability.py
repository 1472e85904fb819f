"""Weekly patterns and date overrides."""

from __future__ import annotations

import asyncio
from datetime import date, time

from flightwx.domain.models import AvailabilityOverride, AvailabilityPattern
from flightwx.infrastructure.persistence.repositories_memory import InMemoryAvailabilityRepository
from flightwx.services.availability import AvailabilityCalendar

MONDAY = date(2026, 6, 1)
TUESDAY = date(2026, 6, 2)


def _calendar(patterns=(), overrides=()) -> AvailabilityCalendar:
    return AvailabilityCalendar(InMemoryAvailabilityRepository(patterns, overrides))


def _available(calendar, on_date, start, end=None, user_id="pilot"):
    return asyncio.run(calendar.is_available(user_id, on_date, start, end))


MORNINGS = [AvailabilityPattern(user_id="pilot", day_of_week=0, start_time=time(8), end_time=time(12))]


def test_pattern_must_cover_the_whole_slot():
    calendar = _calendar(MORNINGS)

    assert _available(calendar, MONDAY, time(8), time(9))
    assert _available(calendar, MONDAY, time(11), time(12))
    assert not _available(calendar, MONDAY, time(11), time(13))
    assert not _available(calendar, TUESDAY, time(9), time(10))


def test_inactive_patterns_are_ignored():
    calendar = _calendar([MORNINGS[0].model_copy(update={"is_active": False})])

    assert not _available(calendar, MONDAY, time(9), time(10))


def test_other_users_patterns_do_not_count():
    calendar = _calendar(MORNINGS)

    assert not _available(calendar, MONDAY, time(9), time(10), user_id="someone-else")


def test_whole_day_block_vetoes_the_pattern():
    calendar = _calendar(
        MORNINGS,
        [AvailabilityOverride(user_id="pilot", date=MONDAY, is_blocked=True, reason="checkride")],
    )

    assert not _available(calendar, MONDAY, time(9), time(10))


def test_partial_block_only_vetoes_overlapping_slots():
    calendar = _calendar(
        MORNINGS,
        [
            AvailabilityOverride(user_id="pilot", date=MONDAY, start_time=time(9), end_time=time(10), is_blocked=True),
            AvailabilityOverride(user_id="pilot", date=MONDAY, start_time=time(8), end_time=time(12)),
        ],
    )

    assert not _available(calendar, MONDAY, time(9, 30), time(10, 30))
    assert _available(calendar, MONDAY, time(10), time(11))
    assert not _available(calendar, MONDAY, time(9, 30))


def test_overrides_replace_the_weekly_pattern_for_their_date():
    calendar = _calendar(
        MORNINGS,
        [AvailabilityOverride(user_id="pilot", date=MONDAY, start_time=time(14), end_time=time(18))],
    )

    assert _available(calendar, MONDAY, time(15), time(16))
    assert not _available(calendar, MONDAY, time(9), time(10))


def test_open_override_without_times_covers_the_day():
    calendar = _calendar(overrides=[AvailabilityOverride(user_id="pilot", date=TUESDAY)])

    assert _available(calendar, TUESDAY, time(20), time(21))
