"""Response envelope shared by every endpoint."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope for successful responses.

    ``data`` carries the payload (a plan, a slot, a sectioned grocery list);
    ``message`` is shown to the user for explicit actions such as a manual
    grocery list regeneration.
    """

    success: bool = True
    data: T | None = None
    message: str = "Operation completed successfully"
    error: dict[str, Any] | None = None


class ErrorResponse(ApiResponse[None]):
    """Envelope built by the global exception handler.

    ``error`` always holds ``correlation_id`` and ``type``; diagnostic fields
    are added outside production only.
    """

    success: bool = False
    message: str = "An error occurred"
    error: dict[str, Any] | None = None
