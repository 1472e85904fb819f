"""Service layer helpers for external integrations."""

from .email import EmailServiceError, SmtpMailer
from .locks import BookingLocks
from .outbox import DispatchResult, SideEffectOutbox
from .weather_cache import WeatherCache

__all__ = [
    "BookingLocks",
    "DispatchResult",
    "SideEffectOutbox",
    "WeatherCache",
    "EmailServiceError",
    "SmtpMailer",
]
