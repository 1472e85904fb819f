"""Exception types raised by the weather and rescheduling engine."""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class FlightWxError(RuntimeError):
    """Base class for engine errors."""


class ProviderError(FlightWxError):
    """Raised when a weather provider call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        retryable: bool = False,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.retryable = retryable
        self.status_code = status_code


class ForecastOutOfRange(ProviderError):
    """Raised when the requested time lies beyond the provider's forecast horizon."""


class CircuitOpenError(FlightWxError):
    """Raised when a call is rejected by an open circuit breaker."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Circuit '{name}' is open")
        self.name = name


class WeatherUnavailable(FlightWxError):
    """Raised when neither the cache nor any provider produced a reading."""


class BookingNotFound(FlightWxError):
    """Raised when a booking id is unknown."""

    def __init__(self, booking_id: object) -> None:
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id


class OptionNotFound(FlightWxError):
    """Raised when a reschedule option id is unknown."""


class PreferenceNotFound(FlightWxError):
    """Raised when no preference row exists for a participant."""


class InvalidStatusTransition(FlightWxError):
    """Raised when a booking status change is not allowed."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot transition booking from {current} to {target}")
        self.current = current
        self.target = target


class InvalidBookingState(FlightWxError):
    """Raised when an operation is not valid for the booking's status."""


class InvalidPreference(FlightWxError):
    """Raised when a submitted preference ranking is malformed."""


class DeadlinePassed(FlightWxError):
    """Raised when a preference is submitted after its stored deadline."""

    def __init__(self, deadline: datetime) -> None:
        super().__init__(f"Preference deadline passed at {deadline.isoformat()}")
        self.deadline = deadline


class PreferencesIncomplete(FlightWxError):
    """Raised when resolution is attempted before both participants submitted."""


class RescheduleStageError(FlightWxError):
    """Raised by a reschedule pipeline stage to abort without persisting."""


class NoValidSlot(RescheduleStageError):
    """Raised when no candidate survives weather and availability filtering."""


__all__ = [
    "BookingNotFound",
    "CircuitOpenError",
    "DeadlinePassed",
    "FlightWxError",
    "ForecastOutOfRange",
    "InvalidBookingState",
    "InvalidPreference",
    "InvalidStatusTransition",
    "NoValidSlot",
    "OptionNotFound",
    "PreferenceNotFound",
    "PreferencesIncomplete",
    "ProviderError",
    "RescheduleStageError",
    "WeatherUnavailable",
]
