"""Participant notification adapters."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional

from flightwx.application.interfaces import NotificationSenderInterface
from flightwx.config.settings import MailConfig
from flightwx.domain.models import Booking, RescheduleOption
from flightwx.services.email import SmtpMailer

logger = logging.getLogger(__name__)

_TIME_FORMAT = "%Y-%m-%d %H:%M %Z"


def _route(booking: Booking) -> str:
    return f"{booking.departure_airport} -> {booking.arrival_airport}"


def weather_alert_message(booking: Booking, details: dict[str, Any]) -> tuple[str, str]:
    subject = f"Weather alert for your flight on {booking.scheduled_time:%Y-%m-%d}"
    lines = [
        f"Flight {_route(booking)} at {booking.scheduled_time.strftime(_TIME_FORMAT)}",
        f"Severity: {details.get('severity', 'unknown')}",
        f"Hours until departure: {details.get('hours_until_departure')}",
        "",
        "Issues:",
        *[f"  - {violation}" for violation in details.get("violations", [])],
        "",
        "Recommendations:",
        *[f"  - {item}" for item in details.get("recommendations", [])],
    ]
    return subject, "\n".join(lines)


def options_available_message(
    booking: Booking, options: List[RescheduleOption], deadline: datetime
) -> tuple[str, str]:
    subject = "Rescheduling options available for your flight"
    lines = [
        f"Weather prevents flight {_route(booking)} at "
        f"{booking.scheduled_time.strftime(_TIME_FORMAT)}.",
        "",
        "Available times:",
        *[
            f"  {option.rank}. {option.start_time.strftime(_TIME_FORMAT)} "
            f"(confidence {option.confidence:.0%}, option {option.id})"
            for option in options
        ],
        "",
        f"Rank your preferences before {deadline.strftime(_TIME_FORMAT)}.",
    ]
    return subject, "\n".join(lines)


def weather_cleared_message(booking: Booking) -> tuple[str, str]:
    subject = "Weather has cleared for your flight"
    body = (
        f"Conditions for flight {_route(booking)} at "
        f"{booking.scheduled_time.strftime(_TIME_FORMAT)} are back within minimums. "
        "The booking is confirmed."
    )
    return subject, body


def reschedule_confirmed_message(booking: Booking, previous_time: datetime) -> tuple[str, str]:
    subject = "Flight rescheduled successfully"
    body = (
        f"Flight {_route(booking)} moved from {previous_time.strftime(_TIME_FORMAT)} "
        f"to {booking.scheduled_time.strftime(_TIME_FORMAT)}."
    )
    return subject, body


class LoggingNotificationSender(NotificationSenderInterface):
    """Writes notifications to the log instead of delivering them."""

    def __init__(self, logger_name: Optional[str] = None):
        self._logger = logging.getLogger(logger_name) if logger_name else logger

    def _emit(self, booking: Booking, subject: str, body: str) -> None:
        self._logger.info(
            "Notification for booking %s (%s, %s): %s\n%s",
            booking.id,
            booking.student_id,
            booking.instructor_id,
            subject,
            body,
        )

    async def send_weather_alert(self, booking: Booking, details: dict[str, Any]) -> None:
        self._emit(booking, *weather_alert_message(booking, details))

    async def send_options_available(
        self, booking: Booking, options: List[RescheduleOption], deadline: datetime
    ) -> None:
        self._emit(booking, *options_available_message(booking, options, deadline))

    async def send_weather_cleared(self, booking: Booking) -> None:
        self._emit(booking, *weather_cleared_message(booking))

    async def send_reschedule_confirmed(
        self, booking: Booking, previous_time: datetime
    ) -> None:
        self._emit(booking, *reschedule_confirmed_message(booking, previous_time))


class EmailNotificationSender(NotificationSenderInterface):
    """Delivers notifications to both participants over SMTP."""

    def __init__(self, mail_settings: MailConfig, mailer: Optional[SmtpMailer] = None):
        self.mail_settings = mail_settings
        self.mailer = mailer or SmtpMailer(mail_settings)

    async def _deliver(self, booking: Booking, subject: str, body: str) -> None:
        recipients = [
            email for email in (booking.student_email, booking.instructor_email) if email
        ]
        if not recipients:
            logger.warning("Booking %s has no participant email; skipped '%s'", booking.id, subject)
            return
        await self.mailer.send(recipients, subject, body)
        logger.info("Sent '%s' for booking %s to %d recipient(s)", subject, booking.id, len(recipients))

    async def send_weather_alert(self, booking: Booking, details: dict[str, Any]) -> None:
        await self._deliver(booking, *weather_alert_message(booking, details))

    async def send_options_available(
        self, booking: Booking, options: List[RescheduleOption], deadline: datetime
    ) -> None:
        await self._deliver(booking, *options_available_message(booking, options, deadline))

    async def send_weather_cleared(self, booking: Booking) -> None:
        await self._deliver(booking, *weather_cleared_message(booking))

    async def send_reschedule_confirmed(
        self, booking: Booking, previous_time: datetime
    ) -> None:
        await self._deliver(booking, *reschedule_confirmed_message(booking, previous_time))


__all__ = [
    "EmailNotificationSender",
    "LoggingNotificationSender",
    "options_available_message",
    "reschedule_confirmed_message",
    "weather_alert_message",
    "weather_cleared_message",
]
