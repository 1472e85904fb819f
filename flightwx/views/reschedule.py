"""Pydantic schemas for reschedule options and preferences."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from flightwx.domain.models import BookingStatus, ParticipantRole, Violation


class RescheduleOptionResponse(BaseModel):
    id: UUID
    booking_id: UUID
    start_time: datetime
    rank: int
    score: float
    weather_confidence: float
    confidence: float
    weather_snapshot: list[dict[str, Any]]

    model_config = ConfigDict(from_attributes=True)


class RegenerateOptionsResponse(BaseModel):
    booking_id: UUID
    status: BookingStatus
    deadline: datetime
    options: list[RescheduleOptionResponse]


class PreferenceSubmitRequest(BaseModel):
    """Up to three ranked options, best first."""

    ranked_option_ids: list[UUID] = Field(default_factory=list, max_length=3)
    unavailable_option_ids: list[UUID] = Field(default_factory=list)


class PreferenceResponse(BaseModel):
    booking_id: UUID
    user_id: str
    role: ParticipantRole
    ranked_option_ids: list[UUID]
    unavailable_option_ids: list[UUID]
    deadline: datetime
    submitted_at: Optional[datetime] = None


class ConfirmRequest(BaseModel):
    actor_id: Optional[str] = Field(None, max_length=64)


class ConfirmResponse(BaseModel):
    booking_id: UUID
    confirmed: bool
    requires_new_options: bool
    selected_option_id: Optional[UUID] = None
    new_time: Optional[datetime] = None
    reason: Optional[str] = None
    violations: list[Violation] = Field(default_factory=list)


__all__ = [
    "ConfirmRequest",
    "ConfirmResponse",
    "PreferenceResponse",
    "PreferenceSubmitRequest",
    "RegenerateOptionsResponse",
    "RescheduleOptionResponse",
]
