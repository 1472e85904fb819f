"""Conflict monitor runs from detection through escalation."""

from __future__ import annotations

import asyncio
from datetime import timedelta

from conftest import NOW, FakeProvider, make_booking, make_reading, memory_settings
from flightwx.config.settings import ResilienceConfig
from flightwx.domain.models import AuditEventType, BookingStatus, RunStatus, TrainingLevel

DEPARTURE = NOW + timedelta(hours=6)


def _bad_at(at_time):
    def reading_for(coordinate, at):
        if at == at_time:
            return make_reading(visibility=2.0)
        return make_reading()

    return reading_for


def _add(container, **overrides):
    return asyncio.run(container.bookings.add(make_booking(**overrides)))


def test_conflict_marks_booking_at_risk_and_alerts(make_container, notifications, audit):
    container = make_container(
        FakeProvider(reading=make_reading(visibility=2.0)),
        settings=memory_settings(auto_generate_options=False),
    )
    booking = _add(container, scheduled_time=DEPARTURE, training_level=TrainingLevel.PRIVATE_PILOT)

    report = asyncio.run(container.monitor.run_once())

    assert report.status == RunStatus.OK
    assert (report.processed, report.succeeded, report.errored) == (1, 1, 0)
    assert report.conflicts == 1
    assert report.notifications == 1
    assert report.status_changes == 1
    assert report.options_generated == 0
    assert container.monitor.last_report == report

    stored = asyncio.run(container.bookings.get_booking(booking.id))
    assert stored.status == BookingStatus.AT_RISK

    kind, details = notifications.sent[0]
    assert kind == "weather_alert"
    assert details["severity"] == "warning"
    assert details["hours_until_departure"] == 6.0
    assert any("Visibility" in message for message in details["violations"])

    assert len(audit.of_type(AuditEventType.CONFLICT_DETECTED)) == 1
    assert audit.of_type(AuditEventType.STATUS_CHANGED)[0].data["new_status"] == "at_risk"
    assert audit.of_type(AuditEventType.NOTIFICATION_SENT)[0].data["notification_type"] == "weather_alert"


def test_fresh_conflict_generates_options(make_container, notifications):
    container = make_container(FakeProvider(for_time=_bad_at(DEPARTURE)))
    booking = _add(container, scheduled_time=DEPARTURE)

    report = asyncio.run(container.monitor.run_once())

    assert report.conflicts == 1
    assert report.options_generated == 3
    assert report.status_changes == 2
    assert report.notifications == 2
    assert notifications.kinds() == ["weather_alert", "options_available"]

    stored = asyncio.run(container.bookings.get_booking(booking.id))
    assert stored.status == BookingStatus.RESCHEDULING
    options = asyncio.run(container.options.list_options(booking.id))
    assert [(option.start_time - NOW) for option in options] == [
        timedelta(hours=4),
        timedelta(hours=2),
        timedelta(hours=20),
    ]
    rows = asyncio.run(container.resolver.list_preferences(booking.id))
    assert {row.deadline for row in rows} == {DEPARTURE - timedelta(minutes=30)}


def test_repeat_warning_for_at_risk_booking_stays_quiet(make_container, notifications):
    container = make_container(
        FakeProvider(reading=make_reading(visibility=2.0)),
        settings=memory_settings(auto_generate_options=False),
    )
    booking = _add(container, scheduled_time=DEPARTURE, status=BookingStatus.AT_RISK)

    report = asyncio.run(container.monitor.run_once())

    assert report.conflicts == 1
    assert report.notifications == 0
    assert report.status_changes == 0
    assert notifications.sent == []
    stored = asyncio.run(container.bookings.get_booking(booking.id))
    assert stored.status == BookingStatus.AT_RISK


def test_critical_conflict_always_alerts(make_container, notifications):
    container = make_container(
        FakeProvider(reading=make_reading(visibility=2.0)),
        settings=memory_settings(auto_generate_options=False),
    )
    _add(container, scheduled_time=NOW + timedelta(hours=1), status=BookingStatus.AT_RISK)

    asyncio.run(container.monitor.run_once())

    kind, details = notifications.sent[0]
    assert kind == "weather_alert"
    assert details["severity"] == "critical"


def test_cleared_weather_restores_confirmation(make_container, notifications, audit):
    container = make_container(FakeProvider())
    booking = _add(container, scheduled_time=DEPARTURE, status=BookingStatus.AT_RISK)

    report = asyncio.run(container.monitor.run_once())

    assert report.conflicts == 0
    assert report.status_changes == 1
    assert notifications.kinds() == ["weather_cleared"]
    stored = asyncio.run(container.bookings.get_booking(booking.id))
    assert stored.status == BookingStatus.CONFIRMED
    assert audit.of_type(AuditEventType.STATUS_CHANGED)[0].data["reason"] == "Weather conditions improved"


def test_one_failing_booking_degrades_the_run(make_container):
    broken_time = NOW + timedelta(hours=8)

    def reading_for(coordinate, at):
        if at == broken_time:
            raise RuntimeError("parser bug")
        return make_reading()

    settings = memory_settings()
    settings.resilience = ResilienceConfig(failure_threshold=100)
    container = make_container(FakeProvider(for_time=reading_for), settings=settings)
    healthy = _add(container, scheduled_time=DEPARTURE)
    broken = _add(container, scheduled_time=broken_time)

    report = asyncio.run(container.monitor.run_once())

    assert report.status == RunStatus.DEGRADED
    assert (report.processed, report.succeeded, report.errored) == (2, 1, 1)
    assert report.errors == [f"{broken.id}: parser bug"]
    stored = asyncio.run(container.bookings.get_booking(healthy.id))
    assert stored.status == BookingStatus.CONFIRMED


class SlowProvider(FakeProvider):
    async def fetch(self, coordinate, at=None):
        await asyncio.sleep(1.0)
        return await super().fetch(coordinate, at)


def test_slow_booking_times_out(make_container):
    container = make_container(
        SlowProvider(),
        settings=memory_settings(booking_timeout_seconds=0.05),
    )
    booking = _add(container, scheduled_time=DEPARTURE)

    report = asyncio.run(container.monitor.run_once())

    assert report.status == RunStatus.FAILED
    assert report.errors == [f"{booking.id}: booking timed out"]


def test_empty_run_is_ok(make_container):
    container = make_container()
    _add(container, scheduled_time=NOW + timedelta(days=5))

    report = asyncio.run(container.monitor.run_once())

    assert report.status == RunStatus.OK
    assert report.processed == 0


def test_zero_lookahead_is_not_replaced_by_the_default(make_container):
    container = make_container(FakeProvider(reading=make_reading(visibility=2.0)))
    booking = _add(container, scheduled_time=DEPARTURE)

    report = asyncio.run(container.monitor.run_once(lookahead_hours=0))

    assert report.status == RunStatus.OK
    assert report.processed == 0
    stored = asyncio.run(container.bookings.get_booking(booking.id))
    assert stored.status == BookingStatus.CONFIRMED
