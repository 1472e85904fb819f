"""Common response schemas."""

from typing import Any, Union

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Shape of every error body; ``detail`` carries a rejected confirmation as an object."""

    detail: Union[str, dict[str, Any], list[Any]]


ERROR_RESPONSES: dict[Union[int, str], dict[str, Any]] = {
    404: {"model": ErrorResponse, "description": "Booking, option or preference not found"},
    409: {"model": ErrorResponse, "description": "Operation conflicts with the booking state"},
}
