"""Typed containers shared across the reschedule pipeline stages.

Stages never mutate these values; each one returns a new state built
with :func:`dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from flightwx.application.interfaces import AvailabilityProviderInterface
from flightwx.config.settings import RescheduleConfig
from flightwx.domain.models import Booking
from flightwx.services.weather_validator import WeatherValidator


@dataclass(frozen=True)
class Candidate:
    """One alternative slot and what the stages learned about it."""

    start_time: datetime
    score: float
    weather_confidence: float = 0.0
    weather_snapshot: tuple[Mapping[str, Any], ...] = ()
    combined_score: float = 0.0


@dataclass(frozen=True)
class RescheduleState:
    booking: Booking
    now: datetime
    candidates: tuple[Candidate, ...] = ()
    completed_stages: tuple[str, ...] = ()


@dataclass(frozen=True)
class RescheduleContext:
    """Collaborators handed to every stage."""

    validator: WeatherValidator
    availability: AvailabilityProviderInterface
    config: RescheduleConfig = field(default_factory=RescheduleConfig)
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)


__all__ = [
    "Candidate",
    "RescheduleContext",
    "RescheduleState",
]
