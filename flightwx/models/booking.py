"""SQLAlchemy model for scheduled training flights."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Integer, String
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.dialects.postgresql import UUID

from flightwx.domain.models import BookingStatus, TrainingLevel
from flightwx.models.base import Base


def utc_now() -> datetime:
    """Get the current UTC time."""
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    student_id = Column(String(64), nullable=False, index=True)
    instructor_id = Column(String(64), nullable=False, index=True)
    student_email = Column(String(255), nullable=True)
    instructor_email = Column(String(255), nullable=True)
    departure_airport = Column(String(8), nullable=False)
    arrival_airport = Column(String(8), nullable=False)
    departure_latitude = Column(Float, nullable=False)
    departure_longitude = Column(Float, nullable=False)
    arrival_latitude = Column(Float, nullable=False)
    arrival_longitude = Column(Float, nullable=False)
    scheduled_time = Column(DateTime(timezone=True), nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    training_level = Column(
        SqlEnum(TrainingLevel, name="training_level"),
        nullable=False,
    )
    status = Column(
        SqlEnum(BookingStatus, name="booking_status"),
        nullable=False,
        default=BookingStatus.CONFIRMED,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )


__all__ = ["Booking", "utc_now"]
