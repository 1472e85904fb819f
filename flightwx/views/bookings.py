"""Pydantic schemas for booking resources."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from flightwx.domain.models import (
    BookingStatus,
    Coordinate,
    ConflictKind,
    Severity,
    TrainingLevel,
    Violation,
)


class BookingCreateRequest(BaseModel):
    """Payload for registering a training flight."""

    student_id: str = Field(..., min_length=1, max_length=64)
    instructor_id: str = Field(..., min_length=1, max_length=64)
    student_email: Optional[str] = Field(None, max_length=255)
    instructor_email: Optional[str] = Field(None, max_length=255)
    departure_airport: str = Field(..., min_length=3, max_length=8)
    arrival_airport: str = Field(..., min_length=3, max_length=8)
    departure: Coordinate
    arrival: Coordinate
    scheduled_time: datetime
    duration_minutes: int = Field(60, gt=0, le=24 * 60)
    training_level: TrainingLevel


class BookingResponse(BaseModel):
    """Serialized representation of a booking."""

    id: UUID
    student_id: str
    instructor_id: str
    departure_airport: str
    arrival_airport: str
    departure: Coordinate
    arrival: Coordinate
    scheduled_time: datetime
    duration_minutes: int
    training_level: TrainingLevel
    status: BookingStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BookingStatusChangeRequest(BaseModel):
    """Who is cancelling or completing the booking, and why."""

    actor_id: Optional[str] = Field(None, max_length=64)
    reason: Optional[str] = Field(None, max_length=500)


class ConflictCheckResponse(BaseModel):
    """Outcome of a single on-demand conflict check."""

    booking_id: UUID
    has_conflict: bool
    conflict_kind: ConflictKind
    severity: Severity
    should_notify: bool
    hours_until_departure: float
    weather_available: bool
    confidence: float
    violations: list[Violation]
    recommendations: list[str]


__all__ = [
    "BookingCreateRequest",
    "BookingResponse",
    "BookingStatusChangeRequest",
    "ConflictCheckResponse",
]
