"""Stage 4: order candidates and keep the best few."""

from __future__ import annotations

from dataclasses import replace

from .types import Candidate, RescheduleContext, RescheduleState

MAX_COMBINED_SCORE = 110.0


def combined_score(candidate: Candidate) -> float:
    """Proximity score plus up to 10 points of weather confidence."""

    return candidate.score + (candidate.weather_confidence / 100.0) * 10.0


def normalised_confidence(score: float) -> float:
    return min(1.0, max(0.0, score / MAX_COMBINED_SCORE))


async def rank_candidates(state: RescheduleState, context: RescheduleContext) -> RescheduleState:
    scored = [replace(candidate, combined_score=combined_score(candidate)) for candidate in state.candidates]
    scored.sort(key=lambda candidate: (-candidate.combined_score, candidate.start_time))
    return replace(
        state,
        candidates=tuple(scored[: context.config.max_options]),
        completed_stages=state.completed_stages + ("ranking",),
    )


__all__ = ["combined_score", "normalised_confidence", "rank_candidates"]
