"""Pydantic schemas for participant availability."""

from __future__ import annotations

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AvailabilityPatternRequest(BaseModel):
    """Weekly window a participant can fly in (Monday is 0)."""

    day_of_week: int = Field(..., ge=0, le=6)
    start_time: time
    end_time: time
    is_active: bool = True

    @model_validator(mode="after")
    def validate_window(self) -> "AvailabilityPatternRequest":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class AvailabilityPatternUpdateRequest(BaseModel):
    """Partial update of a weekly pattern; omitted fields keep their value."""

    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_active: Optional[bool] = None


class AvailabilityPatternResponse(BaseModel):
    id: int
    user_id: str
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class AvailabilityOverrideRequest(BaseModel):
    """Date-specific availability; leave both times empty to cover the whole day."""

    date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_blocked: bool = False
    reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def validate_window(self) -> "AvailabilityOverrideRequest":
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be given together")
        if self.start_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class AvailabilityOverrideResponse(BaseModel):
    id: int
    user_id: str
    date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_blocked: bool
    reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AvailabilityCheckResponse(BaseModel):
    user_id: str
    date: date
    start_time: time
    end_time: Optional[time] = None
    available: bool


__all__ = [
    "AvailabilityCheckResponse",
    "AvailabilityOverrideRequest",
    "AvailabilityOverrideResponse",
    "AvailabilityPatternRequest",
    "AvailabilityPatternResponse",
    "AvailabilityPatternUpdateRequest",
]
