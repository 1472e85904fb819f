"""Reschedule option, preference and confirmation endpoints."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from flightwx.controllers.dependencies import ContainerDep
from flightwx.domain.errors import (
    BookingNotFound,
    DeadlinePassed,
    InvalidBookingState,
    InvalidPreference,
    InvalidStatusTransition,
    NoValidSlot,
    OptionNotFound,
    PreferenceNotFound,
    PreferencesIncomplete,
)
from flightwx.domain.models import PreferenceRanking
from flightwx.views import (
    ERROR_RESPONSES,
    ConfirmRequest,
    ConfirmResponse,
    PreferenceResponse,
    PreferenceSubmitRequest,
    RegenerateOptionsResponse,
    RescheduleOptionResponse,
)

router = APIRouter(prefix="/reschedule", tags=["reschedule"], responses=ERROR_RESPONSES)

logger = logging.getLogger(__name__)


def _preference_response(row: PreferenceRanking) -> PreferenceResponse:
    return PreferenceResponse(
        booking_id=row.booking_id,
        user_id=row.user_id,
        role=row.role,
        ranked_option_ids=[option_id for option_id in row.ranked_option_ids if option_id],
        unavailable_option_ids=row.unavailable_option_ids,
        deadline=row.deadline,
        submitted_at=row.submitted_at,
    )


@router.post("/{booking_id}/options", response_model=RegenerateOptionsResponse)
async def regenerate_options(
    booking_id: UUID,
    container: ContainerDep,
    actor_id: Optional[str] = None,
) -> RegenerateOptionsResponse:
    """Replace the booking's options and reopen preference collection."""

    try:
        result = await container.regenerate.execute(booking_id, actor_id)
    except BookingNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (NoValidSlot, InvalidBookingState, InvalidStatusTransition) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return RegenerateOptionsResponse(
        booking_id=result.booking.id,
        status=result.booking.status,
        deadline=result.deadline,
        options=[RescheduleOptionResponse.model_validate(option) for option in result.options],
    )


@router.get("/{booking_id}/options", response_model=list[RescheduleOptionResponse])
async def list_options(booking_id: UUID, container: ContainerDep) -> list[RescheduleOptionResponse]:
    if await container.bookings.get_booking(booking_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking {booking_id} not found",
        )
    options = await container.options.list_options(booking_id)
    return [RescheduleOptionResponse.model_validate(option) for option in options]


@router.put("/{booking_id}/preferences/{user_id}", response_model=PreferenceResponse)
async def submit_preferences(
    booking_id: UUID,
    user_id: str,
    payload: PreferenceSubmitRequest,
    container: ContainerDep,
) -> PreferenceResponse:
    try:
        row = await container.resolver.submit(
            booking_id,
            user_id,
            payload.ranked_option_ids,
            payload.unavailable_option_ids,
        )
    except PreferenceNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DeadlinePassed as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except InvalidPreference as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    return _preference_response(row)


@router.get("/{booking_id}/preferences/{user_id}", response_model=PreferenceResponse)
async def get_preferences(
    booking_id: UUID,
    user_id: str,
    container: ContainerDep,
) -> PreferenceResponse:
    try:
        row = await container.resolver.get_preference(booking_id, user_id)
    except PreferenceNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _preference_response(row)


@router.post("/{booking_id}/confirm", response_model=ConfirmResponse)
async def confirm_reschedule(
    booking_id: UUID,
    container: ContainerDep,
    payload: Optional[ConfirmRequest] = None,
) -> ConfirmResponse:
    """Commit the instructor's choice after re-checking weather and availability."""

    actor_id = payload.actor_id if payload else None
    try:
        outcome = await container.confirm.execute(booking_id, actor_id)
    except (BookingNotFound, OptionNotFound) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (PreferencesIncomplete, InvalidBookingState, InvalidStatusTransition) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    response = ConfirmResponse(
        booking_id=outcome.booking_id,
        confirmed=outcome.confirmed,
        requires_new_options=outcome.requires_new_options,
        selected_option_id=outcome.selected_option_id,
        new_time=outcome.new_time,
        reason=outcome.reason,
        violations=outcome.weather.violations if outcome.weather else [],
    )
    if not outcome.confirmed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=response.model_dump(mode="json"),
        )
    return response


__all__ = ["router"]
