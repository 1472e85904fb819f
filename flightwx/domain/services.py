import math
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from .errors import InvalidStatusTransition
from .models import (
    BookingStatus,
    ConditionType,
    MinimumsProfile,
    PreferenceRanking,
    Severity,
    TrainingLevel,
)

_SEVERE_CONDITIONS = frozenset(
    {ConditionType.THUNDERSTORM, ConditionType.ICE, ConditionType.CONVECTIVE}
)

_PROFILES: dict[TrainingLevel, MinimumsProfile] = {
    TrainingLevel.STUDENT_PILOT: MinimumsProfile(
        training_level=TrainingLevel.STUDENT_PILOT,
        min_visibility=5.0,
        min_ceiling=3000.0,
        max_wind_speed=10.0,
        max_crosswind=8.0,
        allowed_conditions=frozenset({ConditionType.CLEAR, ConditionType.CLOUDS}),
        prohibited_conditions=_SEVERE_CONDITIONS
        | {
            ConditionType.RAIN,
            ConditionType.SNOW,
            ConditionType.FOG,
            ConditionType.MIST,
            ConditionType.HAZE,
        },
    ),
    TrainingLevel.PRIVATE_PILOT: MinimumsProfile(
        training_level=TrainingLevel.PRIVATE_PILOT,
        min_visibility=3.0,
        min_ceiling=1000.0,
        max_wind_speed=15.0,
        max_crosswind=10.0,
        allowed_conditions=frozenset(
            {ConditionType.CLEAR, ConditionType.CLOUDS, ConditionType.RAIN}
        ),
        prohibited_conditions=_SEVERE_CONDITIONS | {ConditionType.SNOW},
    ),
    TrainingLevel.INSTRUMENT_RATED: MinimumsProfile(
        training_level=TrainingLevel.INSTRUMENT_RATED,
        min_visibility=0.0,
        min_ceiling=None,
        max_wind_speed=25.0,
        max_crosswind=15.0,
        allowed_conditions=frozenset(ConditionType) - _SEVERE_CONDITIONS,
        prohibited_conditions=_SEVERE_CONDITIONS,
    ),
}

_ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.CONFIRMED: frozenset(
        {
            BookingStatus.AT_RISK,
            BookingStatus.RESCHEDULING,
            BookingStatus.CANCELLED,
            BookingStatus.COMPLETED,
        }
    ),
    BookingStatus.AT_RISK: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.RESCHEDULING, BookingStatus.CANCELLED}
    ),
    BookingStatus.RESCHEDULING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED}
    ),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


class MinimumsDomainService:
    """Domain service for training-level weather minimums"""

    @staticmethod
    def profile_for(training_level: TrainingLevel) -> MinimumsProfile:
        """Return the minimums profile for a training level"""
        return _PROFILES[TrainingLevel(training_level)]

    @staticmethod
    def crosswind(wind_speed: float, wind_direction: float) -> float:
        """Crosswind component derived from speed and direction in degrees"""
        return abs(wind_speed * math.sin(math.radians(wind_direction)))


class ConflictDomainService:
    """Domain service for conflict urgency and side-effect policy"""

    CRITICAL_HOURS = 2.0
    WARNING_HOURS = 12.0

    @staticmethod
    def hours_until(scheduled_time: datetime, now: datetime) -> float:
        return (scheduled_time - now).total_seconds() / 3600.0

    @classmethod
    def severity_for(cls, hours_until_departure: float) -> Severity:
        if hours_until_departure <= cls.CRITICAL_HOURS:
            return Severity.CRITICAL
        if hours_until_departure <= cls.WARNING_HOURS:
            return Severity.WARNING
        return Severity.NONE

    @staticmethod
    def should_notify(current_status: BookingStatus, severity: Severity) -> bool:
        """Fresh conflicts and critical ones always notify"""
        return current_status == BookingStatus.CONFIRMED or severity == Severity.CRITICAL

    @staticmethod
    def next_status(
        current_status: BookingStatus, has_conflict: bool
    ) -> Optional[BookingStatus]:
        if has_conflict and current_status == BookingStatus.CONFIRMED:
            return BookingStatus.AT_RISK
        if not has_conflict and current_status == BookingStatus.AT_RISK:
            return BookingStatus.CONFIRMED
        return None

    @staticmethod
    def recommendations(hours_until_departure: float, violation_messages: list[str]) -> list[str]:
        """Free-text advice tiered by time remaining, followed by the violations"""

        if hours_until_departure <= 2:
            advice = [
                "Departure is imminent: cancel or reschedule immediately.",
                "Contact the student directly to confirm they are aware.",
            ]
        elif hours_until_departure <= 6:
            advice = [
                "Reschedule recommended: conditions are unlikely to improve in time.",
                "Review the latest forecast before the pre-flight briefing.",
            ]
        elif hours_until_departure <= 12:
            advice = [
                "Monitor the forecast closely and prepare alternative times.",
                "Consider a ground lesson if conditions persist.",
            ]
        else:
            advice = [
                "Conditions may improve; keep monitoring the forecast.",
                "Alternative times have been suggested in case they do not.",
            ]

        if violation_messages:
            advice.append("Current issues: " + "; ".join(violation_messages))
        return advice


class BookingStatusDomainService:
    """Domain service for the booking status state machine"""

    @staticmethod
    def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
        return target in _ALLOWED_TRANSITIONS[current]

    @staticmethod
    def ensure_transition(current: BookingStatus, target: BookingStatus) -> None:
        if target not in _ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransition(current.value, target.value)

    @staticmethod
    def is_terminal(status: BookingStatus) -> bool:
        return not _ALLOWED_TRANSITIONS[status]


class PreferenceDomainService:
    """Domain service for preference deadlines and resolution"""

    SCHEDULE_BUFFER = timedelta(minutes=30)
    RESPONSE_WINDOW = timedelta(hours=12)

    @classmethod
    def compute_deadline(cls, scheduled_time: datetime, notified_at: datetime) -> datetime:
        """Whichever of departure-minus-buffer and response window closes first"""
        return min(scheduled_time - cls.SCHEDULE_BUFFER, notified_at + cls.RESPONSE_WINDOW)

    @staticmethod
    def is_deadline_passed(deadline: datetime, now: datetime) -> bool:
        return now > deadline

    @staticmethod
    def resolve(instructor: PreferenceRanking) -> Optional[UUID]:
        """Instructor's highest-ranked choice wins; the student's ranking is not consulted"""
        for option_id in instructor.ranked_option_ids:
            if option_id is not None:
                return option_id
        return None


__all__ = [
    "BookingStatusDomainService",
    "ConflictDomainService",
    "MinimumsDomainService",
    "PreferenceDomainService",
]
