"""SQLAlchemy model for participant preference rankings."""

from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy import Enum as SqlEnum
from sqlalchemy.dialects.postgresql import JSONB, UUID

from flightwx.domain.models import ParticipantRole
from flightwx.models.base import Base


class PreferenceRanking(Base):
    __tablename__ = "preference_rankings"
    __table_args__ = (
        UniqueConstraint("booking_id", "user_id", name="uq_preference_booking_user"),
    )

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
    user_id = Column(String(64), nullable=False)
    role = Column(SqlEnum(ParticipantRole, name="participant_role"), nullable=False)
    option_1_id = Column(UUID(as_uuid=True), nullable=True)
    option_2_id = Column(UUID(as_uuid=True), nullable=True)
    option_3_id = Column(UUID(as_uuid=True), nullable=True)
    unavailable_option_ids = Column(JSONB, nullable=False, default=list)
    deadline = Column(DateTime(timezone=True), nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)


__all__ = ["PreferenceRanking"]
