"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from flightwx.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    """Return the service container attached at startup."""

    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return container


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]


__all__ = ["ContainerDep", "get_container"]
