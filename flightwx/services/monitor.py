"""Periodic conflict monitor tying detection, escalation and side effects together."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from flightwx.application.interfaces import (
    AuditSinkInterface,
    BookingRepositoryInterface,
    NotificationSenderInterface,
)
from flightwx.application.use_cases.reschedule_use_cases import (
    SYSTEM_ACTOR,
    RegenerateOptionsUseCase,
)
from flightwx.config.settings import MonitorConfig
from flightwx.domain.errors import FlightWxError, NoValidSlot
from flightwx.domain.models import (
    AuditEventType,
    Booking,
    BookingStatus,
    ConflictResult,
    MonitorRunReport,
    RunStatus,
)
from flightwx.domain.services import BookingStatusDomainService
from flightwx.services.conflict_detector import ConflictDetector
from flightwx.services.locks import BookingLocks
from flightwx.services.outbox import SideEffectOutbox
from flightwx.telemetry import observe_booking, observe_conflict, observe_monitor_run

logger = logging.getLogger(__name__)


@dataclass
class _BookingOutcome:
    conflict: bool = False
    notifications: int = 0
    status_changes: int = 0
    options_generated: int = 0


class ConflictMonitorLoop:
    """Runs the conflict scan over every due booking, once or periodically.

    Bookings are evaluated concurrently but each one is handled under its
    booking lock. A failing booking is counted and the run carries on; the
    run is ``degraded`` when some bookings errored and ``failed`` when none
    could be processed.
    """

    def __init__(
        self,
        bookings: BookingRepositoryInterface,
        detector: ConflictDetector,
        regenerate: RegenerateOptionsUseCase,
        audit: AuditSinkInterface,
        notifications: NotificationSenderInterface,
        locks: BookingLocks,
        config: MonitorConfig,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._bookings = bookings
        self._detector = detector
        self._regenerate = regenerate
        self._audit = audit
        self._notifications = notifications
        self._locks = locks
        self._config = config
        self._clock = clock
        self._run_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task[None]] = None
        self.last_report: Optional[MonitorRunReport] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self, lookahead_hours: Optional[float] = None) -> MonitorRunReport:
        """Scan every due booking once and return aggregate counts."""

        async with self._run_lock:
            if lookahead_hours is None:
                lookahead_hours = self._config.lookahead_hours
            report = await self._run(lookahead_hours)
        self.last_report = report
        observe_monitor_run(report.status.value, report.duration_seconds)
        logger.info(
            "Monitor run %s: processed=%d succeeded=%d errored=%d conflicts=%d "
            "notifications=%d status_changes=%d options=%d duration=%.2fs",
            report.status.value,
            report.processed,
            report.succeeded,
            report.errored,
            report.conflicts,
            report.notifications,
            report.status_changes,
            report.options_generated,
            report.duration_seconds,
        )
        return report

    async def _run(self, lookahead_hours: float) -> MonitorRunReport:
        started = time.perf_counter()
        report = MonitorRunReport(started_at=self._clock())

        try:
            due = await self._detector.due_bookings(lookahead_hours)
        except Exception as exc:
            logger.exception("Monitor run could not list due bookings")
            report.status = RunStatus.FAILED
            report.errors.append(f"listing bookings failed: {exc}")
            return self._finish(report, started)

        semaphore = asyncio.Semaphore(self._config.concurrency)

        async def bounded(booking: Booking) -> _BookingOutcome:
            async with semaphore:
                return await asyncio.wait_for(
                    self._process(booking), timeout=self._config.booking_timeout_seconds
                )

        tasks = [asyncio.create_task(bounded(booking)) for booking in due]
        report.processed = len(tasks)
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=self._config.run_timeout_seconds)
            if pending:
                report.timed_out = True
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)

        for booking, task in zip(due, tasks):
            if task.cancelled():
                report.errored += 1
                report.errors.append(f"{booking.id}: run deadline exceeded")
                observe_booking("timeout")
                continue
            exc = task.exception()
            if exc is not None:
                report.errored += 1
                if isinstance(exc, asyncio.TimeoutError):
                    report.errors.append(f"{booking.id}: booking timed out")
                    observe_booking("timeout")
                else:
                    report.errors.append(f"{booking.id}: {exc}")
                    observe_booking("error")
                logger.error("Monitor failed for booking %s: %r", booking.id, exc)
                continue
            outcome = task.result()
            report.succeeded += 1
            report.conflicts += int(outcome.conflict)
            report.notifications += outcome.notifications
            report.status_changes += outcome.status_changes
            report.options_generated += outcome.options_generated
            observe_booking("conflict" if outcome.conflict else "clear")

        if report.errored and report.errored == report.processed:
            report.status = RunStatus.FAILED
        elif report.errored:
            report.status = RunStatus.DEGRADED
        return self._finish(report, started)

    def _finish(self, report: MonitorRunReport, started: float) -> MonitorRunReport:
        report.finished_at = self._clock()
        report.duration_seconds = round(time.perf_counter() - started, 4)
        return report

    async def _process(self, booking: Booking) -> _BookingOutcome:
        async with self._locks.hold(booking.id):
            current = await self._bookings.get_booking(booking.id)
            if current is None or current.status not in (BookingStatus.CONFIRMED, BookingStatus.AT_RISK):
                return _BookingOutcome()

            result = await self._detector.check_booking(current)
            outcome = _BookingOutcome(conflict=result.has_conflict)
            outbox = SideEffectOutbox(self._audit)

            if result.has_conflict:
                observe_conflict(result.severity.value)

            updated = current
            if result.next_status is not None:
                BookingStatusDomainService.ensure_transition(current.status, result.next_status)
                updated = await self._bookings.update_booking_status(current.id, result.next_status)
                outcome.status_changes += 1
                reason = (
                    "Weather conflict detected"
                    if result.has_conflict
                    else "Weather conditions improved"
                )
                logger.info(
                    "Booking %s status %s -> %s (%s)",
                    current.id,
                    current.status.value,
                    result.next_status.value,
                    reason,
                )
                outbox.record(
                    AuditEventType.STATUS_CHANGED,
                    "booking",
                    str(current.id),
                    SYSTEM_ACTOR,
                    {
                        "previous_status": current.status.value,
                        "new_status": result.next_status.value,
                        "reason": reason,
                    },
                )

            self._queue_check_audit(outbox, result)
            self._queue_notifications(outbox, updated, result)

            if (
                result.has_conflict
                and result.previous_status == BookingStatus.CONFIRMED
                and self._config.auto_generate_options
            ):
                dispatched = await outbox.dispatch()
                outcome.notifications += dispatched.notifications
                outcome.options_generated, escalation_changes, escalation_notes = await self._escalate(updated)
                outcome.status_changes += escalation_changes
                outcome.notifications += escalation_notes

        dispatched = await outbox.dispatch()
        outcome.notifications += dispatched.notifications
        return outcome

    def _queue_check_audit(self, outbox: SideEffectOutbox, result: ConflictResult) -> None:
        data = {
            "severity": result.severity.value,
            "hours_until_departure": result.hours_until_departure,
            "confidence": result.weather.confidence,
            "weather_available": result.weather.weather_available,
            "violations": [violation.message for violation in result.weather.violations],
        }
        event_type = (
            AuditEventType.CONFLICT_DETECTED if result.has_conflict else AuditEventType.WEATHER_CHECK
        )
        outbox.record(event_type, "booking", str(result.booking_id), SYSTEM_ACTOR, data)

    def _queue_notifications(
        self, outbox: SideEffectOutbox, booking: Booking, result: ConflictResult
    ) -> None:
        if result.has_conflict and result.should_notify:
            details = {
                "severity": result.severity.value,
                "hours_until_departure": result.hours_until_departure,
                "violations": [violation.message for violation in result.weather.violations],
                "recommendations": result.recommendations,
            }
            outbox.notify("weather_alert", lambda: self._notifications.send_weather_alert(booking, details))
            outbox.record(
                AuditEventType.NOTIFICATION_SENT,
                "booking",
                str(booking.id),
                SYSTEM_ACTOR,
                {"notification_type": "weather_alert", "severity": result.severity.value},
            )
        elif result.next_status == BookingStatus.CONFIRMED:
            outbox.notify("weather_cleared", lambda: self._notifications.send_weather_cleared(booking))
            outbox.record(
                AuditEventType.NOTIFICATION_SENT,
                "booking",
                str(booking.id),
                SYSTEM_ACTOR,
                {"notification_type": "weather_cleared"},
            )

    async def _escalate(self, booking: Booking) -> tuple[int, int, int]:
        """Generate options for a fresh conflict; returns (options, status changes, notifications)."""

        try:
            regeneration = await self._regenerate.execute_locked(
                booking, SYSTEM_ACTOR, reason="Weather conflict detected; options generated"
            )
        except NoValidSlot as exc:
            logger.warning("No reschedule options for booking %s: %s", booking.id, exc)
            outbox = SideEffectOutbox(self._audit)
            outbox.record(
                AuditEventType.OPTIONS_UNAVAILABLE,
                "booking",
                str(booking.id),
                SYSTEM_ACTOR,
                {"reason": str(exc)},
            )
            await outbox.dispatch()
            return 0, 0, 0
        except FlightWxError:
            logger.exception("Option generation failed for booking %s", booking.id)
            return 0, 0, 0
        return (
            len(regeneration.options),
            int(regeneration.status_changed),
            regeneration.side_effects.notifications,
        )

    def start(self) -> None:
        """Launch the periodic loop on the running event loop."""

        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="conflict-monitor")
        logger.info("Conflict monitor started (interval=%ss)", self._config.interval_seconds)

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Conflict monitor run crashed")
            await asyncio.sleep(self._config.interval_seconds)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Conflict monitor stopped")


__all__ = ["ConflictMonitorLoop"]
