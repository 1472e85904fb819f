from datetime import date, datetime, time
from enum import Enum
from typing import Any, List, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """Geographic point in decimal degrees"""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    model_config = ConfigDict(frozen=True)


class ConditionType(str, Enum):
    CLEAR = "clear"
    CLOUDS = "clouds"
    RAIN = "rain"
    SNOW = "snow"
    FOG = "fog"
    MIST = "mist"
    HAZE = "haze"
    THUNDERSTORM = "thunderstorm"
    ICE = "ice"
    CONVECTIVE = "convective"


class WeatherReading(BaseModel):
    """Normalised weather observation (or forecast) for one coordinate.

    Units: visibility in statute miles, ceiling in feet AGL (``None`` means
    no ceiling), wind in knots, temperature in Fahrenheit, pressure in inHg.
    """

    coordinate: Coordinate
    timestamp: datetime
    visibility: float
    ceiling: Optional[float] = None
    wind_speed: float
    wind_direction: float = 0.0
    crosswind: Optional[float] = None
    temperature: float
    humidity: float = 0.0
    pressure: float = 0.0
    conditions: frozenset[ConditionType] = frozenset()
    provider: str
    raw: dict[str, Any] = Field(default_factory=dict)
    valid_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class TrainingLevel(str, Enum):
    STUDENT_PILOT = "student_pilot"
    PRIVATE_PILOT = "private_pilot"
    INSTRUMENT_RATED = "instrument_rated"


class MinimumsProfile(BaseModel):
    """Weather thresholds a pilot of a training level may fly under"""

    training_level: TrainingLevel
    min_visibility: float
    min_ceiling: Optional[float] = None
    max_wind_speed: float
    max_crosswind: Optional[float] = None
    allowed_conditions: frozenset[ConditionType] = frozenset()
    prohibited_conditions: frozenset[ConditionType] = frozenset()

    model_config = ConfigDict(frozen=True)


class ViolationKind(str, Enum):
    VISIBILITY = "visibility"
    CEILING = "ceiling"
    WIND_SPEED = "wind_speed"
    CROSSWIND = "crosswind"
    PROHIBITED_CONDITION = "prohibited_condition"
    WEATHER_UNAVAILABLE = "weather_unavailable"


class Violation(BaseModel):
    kind: ViolationKind
    location: str = "point"
    actual: Optional[Union[float, str]] = None
    required: Optional[Union[float, str]] = None
    message: str


class ValidationResult(BaseModel):
    is_valid: bool
    violations: List[Violation] = Field(default_factory=list)


class PointWeather(BaseModel):
    """Validation outcome for a single corridor sample point"""

    location: str
    coordinate: Coordinate
    reading: Optional[WeatherReading] = None
    validation: ValidationResult
    confidence: float = 0.0


class FlightWeatherResult(BaseModel):
    """Aggregate validation across the whole flight corridor"""

    is_valid: bool
    violations: List[Violation] = Field(default_factory=list)
    points: List[PointWeather] = Field(default_factory=list)
    confidence: float = 0.0
    weather_available: bool = True
    checked_at: datetime
    valid_at: Optional[datetime] = None

    def snapshot(self) -> list[dict[str, Any]]:
        """Compact per-point summary stored alongside reschedule options."""

        summary: list[dict[str, Any]] = []
        for point in self.points:
            entry: dict[str, Any] = {
                "location": point.location,
                "latitude": point.coordinate.latitude,
                "longitude": point.coordinate.longitude,
                "confidence": point.confidence,
            }
            if point.reading is not None:
                entry.update(
                    visibility=point.reading.visibility,
                    ceiling=point.reading.ceiling,
                    wind_speed=point.reading.wind_speed,
                    temperature=point.reading.temperature,
                    conditions=sorted(c.value for c in point.reading.conditions),
                    provider=point.reading.provider,
                )
            summary.append(entry)
        return summary


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    AT_RISK = "at_risk"
    RESCHEDULING = "rescheduling"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Booking(BaseModel):
    """Domain model for a scheduled training flight"""

    id: UUID = Field(default_factory=uuid4)
    student_id: str
    instructor_id: str
    student_email: Optional[str] = None
    instructor_email: Optional[str] = None
    departure_airport: str
    arrival_airport: str
    departure: Coordinate
    arrival: Coordinate
    scheduled_time: datetime
    duration_minutes: int = Field(default=60, gt=0)
    training_level: TrainingLevel
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def participant_ids(self) -> tuple[str, str]:
        return self.student_id, self.instructor_id


class Severity(str, Enum):
    NONE = "none"
    WARNING = "warning"
    CRITICAL = "critical"


class ConflictKind(str, Enum):
    NONE = "none"
    WEATHER = "weather"


class ConflictResult(BaseModel):
    """Outcome of checking one booking; never persisted itself"""

    booking_id: UUID
    has_conflict: bool
    conflict_kind: ConflictKind = ConflictKind.NONE
    severity: Severity = Severity.NONE
    should_notify: bool = False
    weather: FlightWeatherResult
    recommendations: List[str] = Field(default_factory=list)
    hours_until_departure: float
    previous_status: BookingStatus
    next_status: Optional[BookingStatus] = None
    evaluated_at: datetime


class RescheduleOption(BaseModel):
    """Alternative slot offered to both participants"""

    id: UUID = Field(default_factory=uuid4)
    booking_id: UUID
    start_time: datetime
    rank: int = 1
    score: float = 0.0
    weather_confidence: float = 0.0
    confidence: float = Field(..., ge=0.0, le=1.0)
    weather_snapshot: List[dict[str, Any]] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True, from_attributes=True)


class ParticipantRole(str, Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"


class PreferenceRanking(BaseModel):
    """One participant's ranked choices for a booking's options"""

    booking_id: UUID
    user_id: str
    role: ParticipantRole
    option_1_id: Optional[UUID] = None
    option_2_id: Optional[UUID] = None
    option_3_id: Optional[UUID] = None
    unavailable_option_ids: List[UUID] = Field(default_factory=list)
    deadline: datetime
    submitted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def ranked_option_ids(self) -> list[Optional[UUID]]:
        return [self.option_1_id, self.option_2_id, self.option_3_id]

    @property
    def is_submitted(self) -> bool:
        return self.submitted_at is not None


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class AvailabilityPattern(BaseModel):
    """Recurring weekly availability window (Monday is 0)"""

    id: Optional[int] = None
    user_id: str
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: time
    end_time: time
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class AvailabilityOverride(BaseModel):
    """Date-specific availability; both times empty means the whole day"""

    id: Optional[int] = None
    user_id: str
    date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_blocked: bool = False
    reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AuditEventType(str, Enum):
    WEATHER_CHECK = "weather_check"
    CONFLICT_DETECTED = "weather_conflict_detected"
    STATUS_CHANGED = "booking_status_changed"
    NOTIFICATION_SENT = "notification_sent"
    OPTIONS_GENERATED = "reschedule_options_generated"
    OPTIONS_UNAVAILABLE = "reschedule_options_unavailable"
    PREFERENCE_SUBMITTED = "preference_submitted"
    BOOKING_RESCHEDULED = "booking_rescheduled"
    RESCHEDULE_REJECTED = "reschedule_rejected"


class AuditEvent(BaseModel):
    event_type: AuditEventType
    entity_type: str
    entity_id: str
    actor_id: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class ConfirmationOutcome(BaseModel):
    """Result of resolving and committing a reschedule"""

    booking_id: UUID
    confirmed: bool
    requires_new_options: bool = False
    selected_option_id: Optional[UUID] = None
    new_time: Optional[datetime] = None
    reason: Optional[str] = None
    weather: Optional[FlightWeatherResult] = None


class RunStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FAILED = "failed"


class MonitorRunReport(BaseModel):
    """Aggregate counts for one conflict monitor run"""

    status: RunStatus = RunStatus.OK
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    processed: int = 0
    succeeded: int = 0
    errored: int = 0
    conflicts: int = 0
    notifications: int = 0
    status_changes: int = 0
    options_generated: int = 0
    timed_out: bool = False
    errors: List[str] = Field(default_factory=list)
