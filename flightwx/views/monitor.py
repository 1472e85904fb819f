"""Pydantic schemas for monitor endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from flightwx.domain.models import CircuitState


class ScanRequest(BaseModel):
    lookahead_hours: Optional[float] = Field(None, gt=0, le=24 * 14)


class CircuitStatusResponse(BaseModel):
    name: str
    state: CircuitState
    failures: int


class MonitorStatusResponse(BaseModel):
    running: bool
    cached_readings: int
    circuits: list[CircuitStatusResponse]


__all__ = ["CircuitStatusResponse", "MonitorStatusResponse", "ScanRequest"]
