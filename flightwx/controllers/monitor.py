"""Conflict monitor endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter

from flightwx.controllers.dependencies import ContainerDep
from flightwx.domain.models import MonitorRunReport
from flightwx.views import CircuitStatusResponse, MonitorStatusResponse, ScanRequest

router = APIRouter(prefix="/monitor", tags=["monitor"])


@router.post("/scan", response_model=MonitorRunReport)
async def run_scan(
    container: ContainerDep,
    payload: Optional[ScanRequest] = None,
) -> MonitorRunReport:
    """Run one conflict scan now; overlapping scans wait for each other."""

    lookahead = payload.lookahead_hours if payload else None
    return await container.monitor.run_once(lookahead)


@router.get("/status", response_model=MonitorStatusResponse)
async def monitor_status(container: ContainerDep) -> MonitorStatusResponse:
    return MonitorStatusResponse(
        running=container.monitor.is_running,
        cached_readings=len(container.gateway.cache),
        circuits=[
            CircuitStatusResponse(
                name=snapshot.name,
                state=snapshot.state,
                failures=snapshot.failure_count,
            )
            for snapshot in container.gateway.circuit_snapshots()
        ],
    )


__all__ = ["router"]
