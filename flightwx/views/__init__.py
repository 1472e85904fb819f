"""Pydantic schemas used as views in the MVC architecture."""

from .availability import (
    AvailabilityCheckResponse,
    AvailabilityOverrideRequest,
    AvailabilityOverrideResponse,
    AvailabilityPatternRequest,
    AvailabilityPatternResponse,
    AvailabilityPatternUpdateRequest,
)
from .bookings import (
    BookingCreateRequest,
    BookingResponse,
    BookingStatusChangeRequest,
    ConflictCheckResponse,
)
from .common import ERROR_RESPONSES, ErrorResponse
from .monitor import CircuitStatusResponse, MonitorStatusResponse, ScanRequest
from .reschedule import (
    ConfirmRequest,
    ConfirmResponse,
    PreferenceResponse,
    PreferenceSubmitRequest,
    RegenerateOptionsResponse,
    RescheduleOptionResponse,
)

__all__ = [
    "AvailabilityCheckResponse",
    "AvailabilityOverrideRequest",
    "AvailabilityOverrideResponse",
    "AvailabilityPatternRequest",
    "AvailabilityPatternResponse",
    "AvailabilityPatternUpdateRequest",
    "BookingCreateRequest",
    "BookingResponse",
    "BookingStatusChangeRequest",
    "ConflictCheckResponse",
    "CircuitStatusResponse",
    "MonitorStatusResponse",
    "ScanRequest",
    "ConfirmRequest",
    "ConfirmResponse",
    "PreferenceResponse",
    "PreferenceSubmitRequest",
    "RegenerateOptionsResponse",
    "RescheduleOptionResponse",
    "ErrorResponse",
    "ERROR_RESPONSES",
]
