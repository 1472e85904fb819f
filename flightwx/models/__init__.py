"""SQLAlchemy models for the MVC architecture."""

from .base import Base
from .audit_log import AuditLog  # noqa: F401
from .availability import AvailabilityOverride, AvailabilityPattern  # noqa: F401
from .booking import Booking  # noqa: F401
from .preference_ranking import PreferenceRanking  # noqa: F401
from .reschedule_option import RescheduleOption  # noqa: F401

__all__ = [
    "Base",
    "AuditLog",
    "AvailabilityOverride",
    "AvailabilityPattern",
    "Booking",
    "PreferenceRanking",
    "RescheduleOption",
]
