"""Errors raised by the meal plan and grocery item CRUD layers.

``core.error_handler`` maps the not-found family to 404 and the rule
violations to 400 with their message intact.
"""


class DomainError(Exception):
    """Base class for meal plan and grocery item errors."""


class PlanNotFoundError(DomainError):
    pass


class PlanItemNotFoundError(DomainError):
    """The slot id is unknown or belongs to another plan."""


class GroceryItemNotFoundError(DomainError):
    pass


class PlanValidationError(DomainError):
    """start_date falls after end_date."""


class SlotValidationError(DomainError):
    """A slot breaks the cook / leftover / eat_out rules."""
