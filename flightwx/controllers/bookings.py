"""Booking registration, lifecycle actions and on-demand conflict checks."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from flightwx.container import ServiceContainer
from flightwx.controllers.dependencies import ContainerDep
from flightwx.domain.errors import BookingNotFound, InvalidStatusTransition
from flightwx.domain.models import Booking, BookingStatus
from flightwx.views import (
    ERROR_RESPONSES,
    BookingCreateRequest,
    BookingResponse,
    BookingStatusChangeRequest,
    ConflictCheckResponse,
)

router = APIRouter(prefix="/bookings", tags=["bookings"], responses={404: ERROR_RESPONSES[404]})

logger = logging.getLogger(__name__)


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreateRequest,
    container: ContainerDep,
) -> BookingResponse:
    if payload.scheduled_time.tzinfo is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="scheduled_time must include a timezone offset",
        )

    booking = await container.bookings.add(
        Booking(**payload.model_dump(), status=BookingStatus.CONFIRMED)
    )
    logger.info(
        "Registered booking %s (%s -> %s at %s)",
        booking.id,
        booking.departure_airport,
        booking.arrival_airport,
        booking.scheduled_time.isoformat(),
    )
    return BookingResponse.model_validate(booking)


@router.get("/", response_model=list[BookingResponse])
async def list_bookings(
    container: ContainerDep,
    student_id: Optional[str] = None,
    instructor_id: Optional[str] = None,
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> list[BookingResponse]:
    bookings = await container.bookings.list_bookings(
        student_id=student_id,
        instructor_id=instructor_id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    return [BookingResponse.model_validate(booking) for booking in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: UUID, container: ContainerDep) -> BookingResponse:
    booking = await container.bookings.get_booking(booking_id)
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking {booking_id} not found",
        )
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/check", response_model=ConflictCheckResponse)
async def check_booking(booking_id: UUID, container: ContainerDep) -> ConflictCheckResponse:
    """Evaluate the booking against current weather without changing its status."""

    booking = await container.bookings.get_booking(booking_id)
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Booking {booking_id} not found",
        )

    result = await container.detector.check_booking(booking)
    return ConflictCheckResponse(
        booking_id=result.booking_id,
        has_conflict=result.has_conflict,
        conflict_kind=result.conflict_kind,
        severity=result.severity,
        should_notify=result.should_notify,
        hours_until_departure=result.hours_until_departure,
        weather_available=result.weather.weather_available,
        confidence=result.weather.confidence,
        violations=result.weather.violations,
        recommendations=result.recommendations,
    )


async def _change_status(
    container: ServiceContainer,
    booking_id: UUID,
    target: BookingStatus,
    payload: Optional[BookingStatusChangeRequest],
) -> BookingResponse:
    payload = payload or BookingStatusChangeRequest()
    try:
        booking = await container.change_status.execute(
            booking_id, target, actor_id=payload.actor_id, reason=payload.reason
        )
    except BookingNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return BookingResponse.model_validate(booking)


@router.post(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    responses={409: ERROR_RESPONSES[409]},
)
async def cancel_booking(
    booking_id: UUID,
    container: ContainerDep,
    payload: Optional[BookingStatusChangeRequest] = None,
) -> BookingResponse:
    """Cancel a booking that has not yet completed."""

    return await _change_status(container, booking_id, BookingStatus.CANCELLED, payload)


@router.post(
    "/{booking_id}/complete",
    response_model=BookingResponse,
    responses={409: ERROR_RESPONSES[409]},
)
async def complete_booking(
    booking_id: UUID,
    container: ContainerDep,
    payload: Optional[BookingStatusChangeRequest] = None,
) -> BookingResponse:
    """Mark a confirmed booking as flown."""

    return await _change_status(container, booking_id, BookingStatus.COMPLETED, payload)


__all__ = ["router"]
