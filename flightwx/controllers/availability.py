"""Weekly availability patterns and date overrides for participants."""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Response, status

from flightwx.controllers.dependencies import ContainerDep
from flightwx.domain.models import AvailabilityOverride, AvailabilityPattern
from flightwx.views import (
    ERROR_RESPONSES,
    AvailabilityCheckResponse,
    AvailabilityOverrideRequest,
    AvailabilityOverrideResponse,
    AvailabilityPatternRequest,
    AvailabilityPatternResponse,
    AvailabilityPatternUpdateRequest,
)

router = APIRouter(prefix="/availability", tags=["availability"], responses={404: ERROR_RESPONSES[404]})

logger = logging.getLogger(__name__)


def _not_found(kind: str, row_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{kind} {row_id} not found",
    )


@router.get("/{user_id}", response_model=AvailabilityCheckResponse)
async def check_availability(
    user_id: str,
    container: ContainerDep,
    on_date: date,
    start_time: time,
    end_time: Optional[time] = None,
) -> AvailabilityCheckResponse:
    """Whether the participant can fly in the window, overrides applied."""

    available = await container.availability.is_available(user_id, on_date, start_time, end_time)
    return AvailabilityCheckResponse(
        user_id=user_id,
        date=on_date,
        start_time=start_time,
        end_time=end_time,
        available=available,
    )


@router.get("/{user_id}/recurring", response_model=list[AvailabilityPatternResponse])
async def list_patterns(user_id: str, container: ContainerDep) -> list[AvailabilityPatternResponse]:
    patterns = await container.availability_repository.list_user_patterns(user_id)
    return [AvailabilityPatternResponse.model_validate(pattern) for pattern in patterns]


@router.post(
    "/{user_id}/recurring",
    response_model=AvailabilityPatternResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_pattern(
    user_id: str,
    payload: AvailabilityPatternRequest,
    container: ContainerDep,
) -> AvailabilityPatternResponse:
    pattern = await container.availability_repository.add_pattern(
        AvailabilityPattern(user_id=user_id, **payload.model_dump())
    )
    logger.info(
        "Added availability pattern %s for %s (day %s, %s-%s)",
        pattern.id,
        user_id,
        pattern.day_of_week,
        pattern.start_time,
        pattern.end_time,
    )
    return AvailabilityPatternResponse.model_validate(pattern)


@router.put("/{user_id}/recurring/{pattern_id}", response_model=AvailabilityPatternResponse)
async def update_pattern(
    user_id: str,
    pattern_id: int,
    payload: AvailabilityPatternUpdateRequest,
    container: ContainerDep,
) -> AvailabilityPatternResponse:
    existing = await container.availability_repository.get_pattern(pattern_id)
    if existing is None or existing.user_id != user_id:
        raise _not_found("Availability pattern", pattern_id)

    merged = existing.model_copy(update=payload.model_dump(exclude_none=True))
    if merged.end_time <= merged.start_time:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end_time must be after start_time",
        )

    updated = await container.availability_repository.update_pattern(merged)
    if updated is None:
        raise _not_found("Availability pattern", pattern_id)
    return AvailabilityPatternResponse.model_validate(updated)


@router.delete("/{user_id}/recurring/{pattern_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pattern(user_id: str, pattern_id: int, container: ContainerDep) -> Response:
    existing = await container.availability_repository.get_pattern(pattern_id)
    if existing is None or existing.user_id != user_id:
        raise _not_found("Availability pattern", pattern_id)
    await container.availability_repository.delete_pattern(pattern_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{user_id}/overrides", response_model=list[AvailabilityOverrideResponse])
async def list_overrides(
    user_id: str,
    container: ContainerDep,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
) -> list[AvailabilityOverrideResponse]:
    overrides = await container.availability_repository.list_user_overrides(
        user_id, start_date, end_date
    )
    return [AvailabilityOverrideResponse.model_validate(override) for override in overrides]


@router.post(
    "/{user_id}/overrides",
    response_model=AvailabilityOverrideResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_override(
    user_id: str,
    payload: AvailabilityOverrideRequest,
    container: ContainerDep,
) -> AvailabilityOverrideResponse:
    override = await container.availability_repository.add_override(
        AvailabilityOverride(user_id=user_id, **payload.model_dump())
    )
    logger.info(
        "Added availability override %s for %s on %s (blocked=%s)",
        override.id,
        user_id,
        override.date.isoformat(),
        override.is_blocked,
    )
    return AvailabilityOverrideResponse.model_validate(override)


@router.delete("/{user_id}/overrides/{override_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_override(user_id: str, override_id: int, container: ContainerDep) -> Response:
    existing = await container.availability_repository.get_override(override_id)
    if existing is None or existing.user_id != user_id:
        raise _not_found("Availability override", override_id)
    await container.availability_repository.delete_override(override_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
