from datetime import date, datetime
from typing import Any, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, delete, select, update

from flightwx.application.interfaces import (
    AuditSinkInterface,
    AvailabilityRepositoryInterface,
    BookingRepositoryInterface,
    PreferenceRankingRepositoryInterface,
    RescheduleOptionRepositoryInterface,
)
from flightwx.database import Database
from flightwx.domain.errors import BookingNotFound
from flightwx.domain.models import (
    AuditEventType,
    AvailabilityOverride,
    AvailabilityPattern,
    Booking,
    BookingStatus,
    Coordinate,
    PreferenceRanking,
    RescheduleOption,
)
from flightwx.models import (
    AuditLog as AuditLogEntity,
    AvailabilityOverride as AvailabilityOverrideEntity,
    AvailabilityPattern as AvailabilityPatternEntity,
    Booking as BookingEntity,
    PreferenceRanking as PreferenceRankingEntity,
    RescheduleOption as RescheduleOptionEntity,
)
from flightwx.models.booking import utc_now


def _to_booking(entity: BookingEntity) -> Booking:
    return Booking(
        id=entity.id,
        student_id=entity.student_id,
        instructor_id=entity.instructor_id,
        student_email=entity.student_email,
        instructor_email=entity.instructor_email,
        departure_airport=entity.departure_airport,
        arrival_airport=entity.arrival_airport,
        departure=Coordinate(
            latitude=entity.departure_latitude, longitude=entity.departure_longitude
        ),
        arrival=Coordinate(
            latitude=entity.arrival_latitude, longitude=entity.arrival_longitude
        ),
        scheduled_time=entity.scheduled_time,
        duration_minutes=entity.duration_minutes,
        training_level=entity.training_level,
        status=entity.status,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )


def _to_ranking(entity: PreferenceRankingEntity) -> PreferenceRanking:
    return PreferenceRanking(
        booking_id=entity.booking_id,
        user_id=entity.user_id,
        role=entity.role,
        option_1_id=entity.option_1_id,
        option_2_id=entity.option_2_id,
        option_3_id=entity.option_3_id,
        unavailable_option_ids=[UUID(value) for value in entity.unavailable_option_ids or []],
        deadline=entity.deadline,
        submitted_at=entity.submitted_at,
    )


class SQLAlchemyBookingRepository(BookingRepositoryInterface):
    """SQLAlchemy implementation of the booking repository"""

    def __init__(self, database: Database):
        self.database = database

    async def add(self, booking: Booking) -> Booking:
        db_booking = BookingEntity(
            id=booking.id,
            student_id=booking.student_id,
            instructor_id=booking.instructor_id,
            student_email=booking.student_email,
            instructor_email=booking.instructor_email,
            departure_airport=booking.departure_airport,
            arrival_airport=booking.arrival_airport,
            departure_latitude=booking.departure.latitude,
            departure_longitude=booking.departure.longitude,
            arrival_latitude=booking.arrival.latitude,
            arrival_longitude=booking.arrival.longitude,
            scheduled_time=booking.scheduled_time,
            duration_minutes=booking.duration_minutes,
            training_level=booking.training_level,
            status=booking.status,
        )
        async with self.database.session() as session:
            session.add(db_booking)
            await session.commit()
            await session.refresh(db_booking)
            return _to_booking(db_booking)

    async def get_booking(self, booking_id: UUID) -> Optional[Booking]:
        async with self.database.session() as session:
            db_booking = await session.get(BookingEntity, booking_id)
            return _to_booking(db_booking) if db_booking else None

    async def list_bookings(
        self,
        student_id: Optional[str] = None,
        instructor_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Booking]:
        query = select(BookingEntity)
        if student_id is not None:
            query = query.where(BookingEntity.student_id == student_id)
        if instructor_id is not None:
            query = query.where(BookingEntity.instructor_id == instructor_id)
        if status is not None:
            query = query.where(BookingEntity.status == status)
        query = query.order_by(BookingEntity.scheduled_time).offset(offset).limit(limit)
        async with self.database.session() as session:
            result = await session.execute(query)
            return [_to_booking(row) for row in result.scalars().all()]


    async def list_bookings_due_within(
        self,
        start: datetime,
        end: datetime,
        statuses: Iterable[BookingStatus],
    ) -> List[Booking]:
        async with self.database.session() as session:
            result = await session.execute(
                select(BookingEntity)
                .where(
                    and_(
                        BookingEntity.scheduled_time >= start,
                        BookingEntity.scheduled_time <= end,
                        BookingEntity.status.in_(list(statuses)),
                    )
                )
                .order_by(BookingEntity.scheduled_time)
            )
            return [_to_booking(row) for row in result.scalars().all()]

    async def update_booking_status(
        self, booking_id: UUID, status: BookingStatus
    ) -> Booking:
        async with self.database.session() as session:
            db_booking = await session.get(BookingEntity, booking_id)
            if db_booking is None:
                raise BookingNotFound(booking_id)
            db_booking.status = status
            db_booking.updated_at = utc_now()
            await session.commit()
            await session.refresh(db_booking)
            return _to_booking(db_booking)

    async def reschedule_booking(
        self, booking_id: UUID, scheduled_time: datetime, status: BookingStatus
    ) -> Booking:
        async with self.database.session() as session:
            db_booking = await session.get(BookingEntity, booking_id)
            if db_booking is None:
                raise BookingNotFound(booking_id)
            db_booking.scheduled_time = scheduled_time
            db_booking.status = status
            db_booking.updated_at = utc_now()
            await session.commit()
            await session.refresh(db_booking)
            return _to_booking(db_booking)


class SQLAlchemyRescheduleOptionRepository(RescheduleOptionRepositoryInterface):
    """SQLAlchemy implementation of the reschedule option repository"""

    def __init__(self, database: Database):
        self.database = database

    async def replace_options(
        self, booking_id: UUID, options: List[RescheduleOption]
    ) -> List[RescheduleOption]:
        entities = [
            RescheduleOptionEntity(
                id=option.id,
                booking_id=booking_id,
                start_time=option.start_time,
                rank=option.rank,
                score=option.score,
                weather_confidence=option.weather_confidence,
                confidence=option.confidence,
                weather_snapshot=option.weather_snapshot,
                created_at=option.created_at or utc_now(),
            )
            for option in options
        ]
        async with self.database.session() as session:
            await session.execute(
                delete(RescheduleOptionEntity).where(
                    RescheduleOptionEntity.booking_id == booking_id
                )
            )
            session.add_all(entities)
            await session.commit()
            return [RescheduleOption.model_validate(entity) for entity in entities]

    async def list_options(self, booking_id: UUID) -> List[RescheduleOption]:
        async with self.database.session() as session:
            result = await session.execute(
                select(RescheduleOptionEntity)
                .where(RescheduleOptionEntity.booking_id == booking_id)
                .order_by(RescheduleOptionEntity.rank)
            )
            return [RescheduleOption.model_validate(row) for row in result.scalars().all()]

    async def get_option(self, option_id: UUID) -> Optional[RescheduleOption]:
        async with self.database.session() as session:
            db_option = await session.get(RescheduleOptionEntity, option_id)
            return RescheduleOption.model_validate(db_option) if db_option else None


class SQLAlchemyPreferenceRankingRepository(PreferenceRankingRepositoryInterface):
    """SQLAlchemy implementation of the preference ranking repository"""

    def __init__(self, database: Database):
        self.database = database

    async def replace_rankings(
        self, booking_id: UUID, rankings: List[PreferenceRanking]
    ) -> None:
        async with self.database.session() as session:
            await session.execute(
                delete(PreferenceRankingEntity).where(
                    PreferenceRankingEntity.booking_id == booking_id
                )
            )
            session.add_all(
                [
                    PreferenceRankingEntity(
                        booking_id=booking_id,
                        user_id=ranking.user_id,
                        role=ranking.role,
                        option_1_id=ranking.option_1_id,
                        option_2_id=ranking.option_2_id,
                        option_3_id=ranking.option_3_id,
                        unavailable_option_ids=[
                            str(option_id) for option_id in ranking.unavailable_option_ids
                        ],
                        deadline=ranking.deadline,
                        submitted_at=ranking.submitted_at,
                    )
                    for ranking in rankings
                ]
            )
            await session.commit()

    async def get_ranking(
        self, booking_id: UUID, user_id: str
    ) -> Optional[PreferenceRanking]:
        async with self.database.session() as session:
            result = await session.execute(
                select(PreferenceRankingEntity).where(
                    and_(
                        PreferenceRankingEntity.booking_id == booking_id,
                        PreferenceRankingEntity.user_id == user_id,
                    )
                )
            )
            row = result.scalar_one_or_none()
            return _to_ranking(row) if row else None

    async def list_rankings(self, booking_id: UUID) -> List[PreferenceRanking]:
        async with self.database.session() as session:
            result = await session.execute(
                select(PreferenceRankingEntity)
                .where(PreferenceRankingEntity.booking_id == booking_id)
                .order_by(PreferenceRankingEntity.role)
            )
            return [_to_ranking(row) for row in result.scalars().all()]

    async def save_submission(
        self, ranking: PreferenceRanking, now: datetime
    ) -> bool:
        # The deadline guard lives in the UPDATE so a late write cannot slip in.
        async with self.database.session() as session:
            result = await session.execute(
                update(PreferenceRankingEntity)
                .where(
                    and_(
                        PreferenceRankingEntity.booking_id == ranking.booking_id,
                        PreferenceRankingEntity.user_id == ranking.user_id,
                        PreferenceRankingEntity.deadline >= now,
                    )
                )
                .values(
                    option_1_id=ranking.option_1_id,
                    option_2_id=ranking.option_2_id,
                    option_3_id=ranking.option_3_id,
                    unavailable_option_ids=[
                        str(option_id) for option_id in ranking.unavailable_option_ids
                    ],
                    submitted_at=ranking.submitted_at,
                )
            )
            await session.commit()
            return result.rowcount > 0


class SQLAlchemyAvailabilityRepository(AvailabilityRepositoryInterface):
    """SQLAlchemy implementation of the availability repository"""

    def __init__(self, database: Database):
        self.database = database

    async def list_patterns(self, user_id: str, day_of_week: int) -> List[AvailabilityPattern]:
        async with self.database.session() as session:
            result = await session.execute(
                select(AvailabilityPatternEntity).where(
                    and_(
                        AvailabilityPatternEntity.user_id == user_id,
                        AvailabilityPatternEntity.day_of_week == day_of_week,
                    )
                )
            )
            return [AvailabilityPattern.model_validate(row) for row in result.scalars().all()]

    async def list_overrides(self, user_id: str, on_date: date) -> List[AvailabilityOverride]:
        async with self.database.session() as session:
            result = await session.execute(
                select(AvailabilityOverrideEntity).where(
                    and_(
                        AvailabilityOverrideEntity.user_id == user_id,
                        AvailabilityOverrideEntity.date == on_date,
                    )
                )
            )
            return [AvailabilityOverride.model_validate(row) for row in result.scalars().all()]

    async def list_user_patterns(self, user_id: str) -> List[AvailabilityPattern]:
        async with self.database.session() as session:
            result = await session.execute(
                select(AvailabilityPatternEntity)
                .where(AvailabilityPatternEntity.user_id == user_id)
                .order_by(AvailabilityPatternEntity.day_of_week, AvailabilityPatternEntity.start_time)
            )
            return [AvailabilityPattern.model_validate(row) for row in result.scalars().all()]

    async def get_pattern(self, pattern_id: int) -> Optional[AvailabilityPattern]:
        async with self.database.session() as session:
            db_pattern = await session.get(AvailabilityPatternEntity, pattern_id)
            return AvailabilityPattern.model_validate(db_pattern) if db_pattern else None

    async def add_pattern(self, pattern: AvailabilityPattern) -> AvailabilityPattern:
        db_pattern = AvailabilityPatternEntity(**pattern.model_dump(exclude={"id"}))
        async with self.database.session() as session:
            session.add(db_pattern)
            await session.commit()
            await session.refresh(db_pattern)
            return AvailabilityPattern.model_validate(db_pattern)

    async def update_pattern(self, pattern: AvailabilityPattern) -> Optional[AvailabilityPattern]:
        async with self.database.session() as session:
            db_pattern = await session.get(AvailabilityPatternEntity, pattern.id)
            if db_pattern is None:
                return None
            for field, value in pattern.model_dump(exclude={"id"}).items():
                setattr(db_pattern, field, value)
            await session.commit()
            await session.refresh(db_pattern)
            return AvailabilityPattern.model_validate(db_pattern)

    async def delete_pattern(self, pattern_id: int) -> bool:
        async with self.database.session() as session:
            result = await session.execute(
                delete(AvailabilityPatternEntity).where(AvailabilityPatternEntity.id == pattern_id)
            )
            await session.commit()
            return result.rowcount > 0

    async def list_user_overrides(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[AvailabilityOverride]:
        query = select(AvailabilityOverrideEntity).where(AvailabilityOverrideEntity.user_id == user_id)
        if start_date is not None:
            query = query.where(AvailabilityOverrideEntity.date >= start_date)
        if end_date is not None:
            query = query.where(AvailabilityOverrideEntity.date <= end_date)
        async with self.database.session() as session:
            result = await session.execute(
                query.order_by(AvailabilityOverrideEntity.date, AvailabilityOverrideEntity.start_time)
            )
            return [AvailabilityOverride.model_validate(row) for row in result.scalars().all()]

    async def get_override(self, override_id: int) -> Optional[AvailabilityOverride]:
        async with self.database.session() as session:
            db_override = await session.get(AvailabilityOverrideEntity, override_id)
            return AvailabilityOverride.model_validate(db_override) if db_override else None

    async def add_override(self, override: AvailabilityOverride) -> AvailabilityOverride:
        db_override = AvailabilityOverrideEntity(**override.model_dump(exclude={"id"}))
        async with self.database.session() as session:
            session.add(db_override)
            await session.commit()
            await session.refresh(db_override)
            return AvailabilityOverride.model_validate(db_override)

    async def delete_override(self, override_id: int) -> bool:
        async with self.database.session() as session:
            result = await session.execute(
                delete(AvailabilityOverrideEntity).where(AvailabilityOverrideEntity.id == override_id)
            )
            await session.commit()
            return result.rowcount > 0



class SQLAlchemyAuditSink(AuditSinkInterface):
    """Appends audit events to the audit_log table"""

    def __init__(self, database: Database):
        self.database = database

    async def record(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        actor_id: Optional[str],
        data: dict[str, Any],
    ) -> None:
        async with self.database.session() as session:
            session.add(
                AuditLogEntity(
                    event_type=event_type.value,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    actor_id=actor_id,
                    data=data,
                )
            )
            await session.commit()
