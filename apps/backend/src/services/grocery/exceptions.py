"""Domain exceptions for grocery list generation.

Every failure of the external store surfaces as one of these types so the
API layer can branch on them explicitly. Each exception carries a stable
`error_code` used in error envelopes and log fields.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class GroceryListError(Exception):
    """Base class for grocery list domain errors."""

    message: str
    error_code: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class FetchFailure(GroceryListError):
    """A read from the store failed; nothing was mutated."""

    def __init__(self, message: str = "Failed to load grocery list data") -> None:
        super().__init__(message=message, error_code="fetch_failed")


class WriteFailure(GroceryListError):
    """Deleting, inserting, or committing grocery rows failed."""

    def __init__(self, message: str = "Failed to regenerate grocery list") -> None:
        super().__init__(message=message, error_code="write_failed")
