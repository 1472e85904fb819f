"""Validate weather readings against training-level minimums."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from flightwx.domain.corridor import CorridorPoint, FlightCorridor
from flightwx.domain.errors import WeatherUnavailable
from flightwx.domain.models import (
    Coordinate,
    FlightWeatherResult,
    MinimumsProfile,
    PointWeather,
    TrainingLevel,
    ValidationResult,
    Violation,
    ViolationKind,
    WeatherReading,
)
from flightwx.domain.services import MinimumsDomainService
from flightwx.services.weather_gateway import WeatherGateway

logger = logging.getLogger(__name__)

SINGLE_PROVIDER_CONFIDENCE = 100.0


def validate(reading: WeatherReading, profile: MinimumsProfile, location: str = "point") -> ValidationResult:
    """Run every minimums check and report all violations, not just the first."""

    violations: list[Violation] = []

    if reading.visibility < profile.min_visibility:
        violations.append(
            Violation(
                kind=ViolationKind.VISIBILITY,
                location=location,
                actual=reading.visibility,
                required=profile.min_visibility,
                message=(
                    f"Visibility {reading.visibility:g} SM below minimum "
                    f"{profile.min_visibility:g} SM at {location}"
                ),
            )
        )

    # No reported ceiling means no obscuring layer.
    if (
        profile.min_ceiling is not None
        and reading.ceiling is not None
        and reading.ceiling < profile.min_ceiling
    ):
        violations.append(
            Violation(
                kind=ViolationKind.CEILING,
                location=location,
                actual=reading.ceiling,
                required=profile.min_ceiling,
                message=(
                    f"Ceiling {reading.ceiling:g} ft below minimum "
                    f"{profile.min_ceiling:g} ft at {location}"
                ),
            )
        )

    if reading.wind_speed > profile.max_wind_speed:
        violations.append(
            Violation(
                kind=ViolationKind.WIND_SPEED,
                location=location,
                actual=reading.wind_speed,
                required=profile.max_wind_speed,
                message=(
                    f"Wind {reading.wind_speed:g} kt exceeds maximum "
                    f"{profile.max_wind_speed:g} kt at {location}"
                ),
            )
        )

    if profile.max_crosswind is not None:
        crosswind = (
            reading.crosswind
            if reading.crosswind is not None
            else MinimumsDomainService.crosswind(reading.wind_speed, reading.wind_direction)
        )
        if crosswind > profile.max_crosswind:
            violations.append(
                Violation(
                    kind=ViolationKind.CROSSWIND,
                    location=location,
                    actual=round(crosswind, 2),
                    required=profile.max_crosswind,
                    message=(
                        f"Crosswind {crosswind:.1f} kt exceeds maximum "
                        f"{profile.max_crosswind:g} kt at {location}"
                    ),
                )
            )

    for condition in sorted(reading.conditions & profile.prohibited_conditions, key=lambda c: c.value):
        violations.append(
            Violation(
                kind=ViolationKind.PROHIBITED_CONDITION,
                location=location,
                actual=condition.value,
                message=f"Prohibited condition '{condition.value}' at {location}",
            )
        )

    return ValidationResult(is_valid=not violations, violations=violations)


class WeatherValidator:
    """Checks whole flight corridors through the weather gateway."""

    def __init__(
        self,
        gateway: WeatherGateway,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._gateway = gateway
        self._clock = clock

    @staticmethod
    def validate(reading: WeatherReading, profile: MinimumsProfile, location: str = "point") -> ValidationResult:
        return validate(reading, profile, location)

    async def _check_point(
        self,
        point: CorridorPoint,
        profile: MinimumsProfile,
        at: Optional[datetime],
        cross_validate: bool,
    ) -> PointWeather:
        if cross_validate:
            checked = await self._gateway.get_cross_validated(point.coordinate, at)
            reading, confidence = checked.reading, checked.confidence
        else:
            reading = await self._gateway.get(point.coordinate, at)
            confidence = SINGLE_PROVIDER_CONFIDENCE
        return PointWeather(
            location=point.label,
            coordinate=point.coordinate,
            reading=reading,
            validation=validate(reading, profile, point.label),
            confidence=confidence,
        )

    async def validate_flight_weather(
        self,
        departure: Coordinate,
        arrival: Coordinate,
        training_level: TrainingLevel,
        at: Optional[datetime] = None,
        cross_validate: bool = False,
    ) -> FlightWeatherResult:
        """Validate every corridor point; the flight is valid only if all are.

        Unavailable weather never counts as safe: the result is invalid with
        a single ``weather_unavailable`` violation.
        """

        profile = MinimumsDomainService.profile_for(training_level)
        corridor = FlightCorridor(departure, arrival)
        checked_at = self._clock()

        results = await asyncio.gather(
            *(self._check_point(point, profile, at, cross_validate) for point in corridor),
            return_exceptions=True,
        )
        points: list[PointWeather] = []
        unavailable: Optional[WeatherUnavailable] = None
        for result in results:
            if isinstance(result, WeatherUnavailable):
                unavailable = result
            elif isinstance(result, BaseException):
                raise result
            else:
                points.append(result)

        if unavailable is not None:
            logger.warning("Cannot confirm corridor weather: %s", unavailable)
            return FlightWeatherResult(
                is_valid=False,
                violations=[
                    Violation(
                        kind=ViolationKind.WEATHER_UNAVAILABLE,
                        location="corridor",
                        message="Weather data unavailable; cannot confirm flight safety",
                    )
                ],
                confidence=0.0,
                weather_available=False,
                checked_at=checked_at,
                valid_at=at,
            )

        violations = [violation for point in points for violation in point.validation.violations]
        confidence = round(sum(point.confidence for point in points) / len(points), 2)
        return FlightWeatherResult(
            is_valid=all(point.validation.is_valid for point in points),
            violations=violations,
            points=points,
            confidence=confidence,
            weather_available=True,
            checked_at=checked_at,
            valid_at=at,
        )


__all__ = ["WeatherValidator", "validate"]
