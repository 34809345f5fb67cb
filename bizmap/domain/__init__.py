"""
Domain package for bizmap.

Exports the business record models shared by the store clients, the
directory state, the map view and the relay. Keep this package focused on
data definitions and validation concerns.
"""

from bizmap.domain.models import (
    ALL_CATEGORIES,
    DEFAULT_CATEGORY,
    BusinessRecord,
    NewBusinessRecord,
    Position,
    PowerType,
)

__all__ = [
    "ALL_CATEGORIES",
    "DEFAULT_CATEGORY",
    "BusinessRecord",
    "NewBusinessRecord",
    "Position",
    "PowerType",
]
