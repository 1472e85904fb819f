"""Reschedule option pipeline package.

Modules are organised by the order in which option generation executes:

1. `candidates` – slot enumeration and proximity scoring.
2. `weather` – corridor weather filtering.
3. `availability` – participant availability filtering.
4. `ranking` – combined scoring and top-N selection.
5. `flow` – the engine that runs the stages and persists the result.
"""

from flightwx.domain.errors import NoValidSlot, RescheduleStageError

from .availability import filter_by_availability
from .candidates import generate_candidates, proximity_score
from .flow import PipelineStage, RescheduleEngine
from .ranking import combined_score, normalised_confidence, rank_candidates
from .types import Candidate, RescheduleContext, RescheduleState
from .weather import filter_by_weather

__all__ = [
    "Candidate",
    "NoValidSlot",
    "PipelineStage",
    "RescheduleContext",
    "RescheduleEngine",
    "RescheduleStageError",
    "RescheduleState",
    "combined_score",
    "filter_by_availability",
    "filter_by_weather",
    "generate_candidates",
    "normalised_confidence",
    "proximity_score",
    "rank_candidates",
]
