"""Flight corridor sampling geometry."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator

from .models import Coordinate

EARTH_RADIUS_MILES = 3959.0
WAYPOINT_FRACTIONS = (0.25, 0.5, 0.75)


@dataclass(frozen=True)
class CorridorPoint:
    """One named sample point along the route."""

    label: str
    coordinate: Coordinate


def _interpolate(start: Coordinate, end: Coordinate, fraction: float) -> Coordinate:
    return Coordinate(
        latitude=round(start.latitude + (end.latitude - start.latitude) * fraction, 6),
        longitude=round(start.longitude + (end.longitude - start.longitude) * fraction, 6),
    )


@dataclass(frozen=True)
class FlightCorridor:
    """Departure, three interpolated waypoints and arrival.

    Interpolation is linear in latitude/longitude, which is adequate for the
    short cross-country legs flown in training.
    """

    departure: Coordinate
    arrival: Coordinate

    @property
    def points(self) -> tuple[CorridorPoint, ...]:
        waypoints = tuple(
            CorridorPoint(f"waypoint_{index}", _interpolate(self.departure, self.arrival, fraction))
            for index, fraction in enumerate(WAYPOINT_FRACTIONS, start=1)
        )
        return (
            CorridorPoint("departure", self.departure),
            *waypoints,
            CorridorPoint("arrival", self.arrival),
        )

    def __iter__(self) -> Iterator[CorridorPoint]:
        return iter(self.points)

    def __len__(self) -> int:
        return len(WAYPOINT_FRACTIONS) + 2

    @property
    def distance_miles(self) -> float:
        return haversine_miles(self.departure, self.arrival)


def haversine_miles(start: Coordinate, end: Coordinate) -> float:
    """Great-circle distance in statute miles."""

    lat1 = math.radians(start.latitude)
    lat2 = math.radians(end.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(end.longitude - start.longitude)
    a = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


__all__ = ["CorridorPoint", "FlightCorridor", "haversine_miles"]
