"""SQLAlchemy models for participant availability."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Date, Integer, String, Text, Time

from flightwx.models.base import Base


class AvailabilityPattern(Base):
    __tablename__ = "availability_patterns"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # Monday is 0
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


class AvailabilityOverride(Base):
    __tablename__ = "availability_overrides"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    is_blocked = Column(Boolean, nullable=False, default=False)
    reason = Column(Text, nullable=True)


__all__ = ["AvailabilityOverride", "AvailabilityPattern"]
