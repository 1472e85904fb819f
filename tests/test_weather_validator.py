"""Minimums validation for single readings and whole corridors."""

from __future__ import annotations

import asyncio

import pytest

from conftest import NOW, PALO_ALTO, SAN_CARLOS, FakeProvider, make_reading
from flightwx.domain.corridor import FlightCorridor, haversine_miles
from flightwx.domain.errors import ProviderError
from flightwx.domain.models import ConditionType, TrainingLevel, ViolationKind
from flightwx.domain.services import MinimumsDomainService
from flightwx.services.weather_cache import WeatherCache
from flightwx.services.weather_gateway import WeatherGateway
from flightwx.services.weather_validator import WeatherValidator, validate


@pytest.mark.parametrize("level", list(TrainingLevel))
def test_better_than_minimums_is_valid_for_every_level(level):
    reading = make_reading(visibility=10, ceiling=8000, wind_speed=3, wind_direction=0)

    result = validate(reading, MinimumsDomainService.profile_for(level))

    assert result.is_valid
    assert result.violations == []


@pytest.mark.parametrize(
    ("overrides", "kind"),
    [
        ({"visibility": 4.0}, ViolationKind.VISIBILITY),
        ({"ceiling": 2500.0}, ViolationKind.CEILING),
        ({"wind_speed": 12.0}, ViolationKind.WIND_SPEED),
        ({"wind_speed": 9.0, "crosswind": 9.0}, ViolationKind.CROSSWIND),
        ({"conditions": frozenset({ConditionType.RAIN})}, ViolationKind.PROHIBITED_CONDITION),
    ],
)
def test_single_dimension_violation_is_reported_alone(overrides, kind):
    reading = make_reading(**overrides)

    result = validate(reading, MinimumsDomainService.profile_for(TrainingLevel.STUDENT_PILOT))

    assert not result.is_valid
    assert [violation.kind for violation in result.violations] == [kind]


def test_minimums_relax_monotonically_with_training_level():
    levels = [TrainingLevel.STUDENT_PILOT, TrainingLevel.PRIVATE_PILOT, TrainingLevel.INSTRUMENT_RATED]
    profiles = [MinimumsDomainService.profile_for(level) for level in levels]

    for stricter, looser in zip(profiles, profiles[1:]):
        assert looser.min_visibility <= stricter.min_visibility
        assert (looser.min_ceiling or 0) <= (stricter.min_ceiling or 0)
        assert looser.max_wind_speed >= stricter.max_wind_speed
        assert (looser.max_crosswind or float("inf")) >= (stricter.max_crosswind or float("inf"))
        assert looser.prohibited_conditions <= stricter.prohibited_conditions

    # Novices need a ceiling above the certified minimum.
    assert profiles[0].min_ceiling == 3000.0
    assert profiles[0].max_crosswind == 8.0


def test_every_failing_check_is_reported():
    reading = make_reading(
        visibility=1.0,
        ceiling=500.0,
        wind_speed=30.0,
        wind_direction=90.0,
        conditions=frozenset({ConditionType.THUNDERSTORM, ConditionType.SNOW}),
    )

    result = validate(reading, MinimumsDomainService.profile_for(TrainingLevel.PRIVATE_PILOT))

    kinds = [violation.kind for violation in result.violations]
    assert kinds[:4] == [
        ViolationKind.VISIBILITY,
        ViolationKind.CEILING,
        ViolationKind.WIND_SPEED,
        ViolationKind.CROSSWIND,
    ]
    assert sorted(v.actual for v in result.violations if v.kind == ViolationKind.PROHIBITED_CONDITION) == [
        "snow",
        "thunderstorm",
    ]


def test_missing_ceiling_is_treated_as_unlimited():
    reading = make_reading(ceiling=None)

    result = validate(reading, MinimumsDomainService.profile_for(TrainingLevel.STUDENT_PILOT))

    assert result.is_valid


def test_crosswind_is_derived_when_not_reported():
    # 10 kt straight across the field is a 10 kt crosswind.
    reading = make_reading(wind_speed=10.0, wind_direction=90.0, crosswind=None)

    result = validate(reading, MinimumsDomainService.profile_for(TrainingLevel.STUDENT_PILOT))

    assert [violation.kind for violation in result.violations] == [ViolationKind.CROSSWIND]


def test_instrument_rating_tolerates_fog_but_not_convective_weather():
    profile = MinimumsDomainService.profile_for(TrainingLevel.INSTRUMENT_RATED)

    fog = validate(make_reading(visibility=0.5, ceiling=200.0, conditions=frozenset({ConditionType.FOG})), profile)
    storm = validate(make_reading(conditions=frozenset({ConditionType.CONVECTIVE})), profile)

    assert fog.is_valid
    assert not storm.is_valid


def test_corridor_has_five_labelled_points():
    corridor = FlightCorridor(PALO_ALTO, SAN_CARLOS)

    labels = [point.label for point in corridor]

    assert labels == ["departure", "waypoint_1", "waypoint_2", "waypoint_3", "arrival"]
    assert len(corridor) == 5
    midpoint = corridor.points[2].coordinate
    assert midpoint.latitude == pytest.approx((PALO_ALTO.latitude + SAN_CARLOS.latitude) / 2)
    assert 7 < haversine_miles(PALO_ALTO, SAN_CARLOS) < 9


def _validator(provider: FakeProvider) -> WeatherValidator:
    gateway = WeatherGateway([provider], WeatherCache())
    return WeatherValidator(gateway, clock=lambda: NOW)


def test_corridor_is_invalid_when_one_waypoint_fails():
    midpoint = FlightCorridor(PALO_ALTO, SAN_CARLOS).points[2].coordinate

    def reading_for(coordinate, at):
        if coordinate == midpoint:
            return make_reading(visibility=1.0)
        return make_reading()

    validator = _validator(FakeProvider(for_time=reading_for))

    result = asyncio.run(
        validator.validate_flight_weather(PALO_ALTO, SAN_CARLOS, TrainingLevel.PRIVATE_PILOT, at=NOW)
    )

    assert not result.is_valid
    assert [violation.location for violation in result.violations] == ["waypoint_2"]
    assert len(result.points) == 5
    assert result.confidence == 100.0


def test_unavailable_weather_never_counts_as_safe():
    validator = _validator(FakeProvider(error=ProviderError("primary", "down")))

    result = asyncio.run(
        validator.validate_flight_weather(PALO_ALTO, SAN_CARLOS, TrainingLevel.INSTRUMENT_RATED)
    )

    assert not result.is_valid
    assert not result.weather_available
    assert result.confidence == 0.0
    assert [violation.kind for violation in result.violations] == [ViolationKind.WEATHER_UNAVAILABLE]
