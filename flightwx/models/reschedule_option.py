"""SQLAlchemy model for generated reschedule options."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer
from sqlalchemy.dialects.postgresql import JSONB, UUID

from flightwx.models.base import Base
from flightwx.models.booking import utc_now


class RescheduleOption(Base):
    __tablename__ = "reschedule_options"

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    booking_id = Column(
        UUID(as_uuid=True),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_time = Column(DateTime(timezone=True), nullable=False)
    rank = Column(Integer, nullable=False, default=1)
    score = Column(Float, nullable=False, default=0.0)
    weather_confidence = Column(Float, nullable=False, default=0.0)
    confidence = Column(Float, nullable=False)
    weather_snapshot = Column(JSONB, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


__all__ = ["RescheduleOption"]
