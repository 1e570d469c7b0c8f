"""Entity resolution package."""

from aquamitra.entities.resolver import (
    UNASSIGNED_CITY,
    AccountNotFoundError,
    EmployeeNotFoundError,
    EntityResolver,
    normalise_city_filter,
)

__all__ = [
    "UNASSIGNED_CITY",
    "AccountNotFoundError",
    "EmployeeNotFoundError",
    "EntityResolver",
    "normalise_city_filter",
]
