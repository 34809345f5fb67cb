"""
Error hierarchy for bizmap.

Store failures split into two kinds: the datastore could not be reached
(`StoreUnavailable`) or it refused a write (`ValidationError`). Missing
credentials at startup raise `ConfigMissing`. None of them are retried.
"""

from __future__ import annotations

from typing import Iterable


class BizMapError(Exception):
    """Base class for all bizmap errors."""


class ConfigMissing(BizMapError):
    """Required credential or endpoint is absent from the environment."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names = list(names)
        super().__init__(
            "Missing required configuration: "
            + ", ".join(self.names)
            + ". Set them in the environment or in .env."
        )


class StoreError(BizMapError):
    """Base class for datastore failures."""

    code: str = "store_error"


class StoreUnavailable(StoreError):
    """The datastore connection could not be established or was lost."""

    code = "store_unavailable"


class ValidationError(StoreError):
    """The datastore rejected a write payload."""

    code = "validation_error"


class CaptureNotAllowed(BizMapError):
    """The admin panel was opened without the admin flag."""


__all__ = [
    "BizMapError",
    "ConfigMissing",
    "StoreError",
    "StoreUnavailable",
    "ValidationError",
    "CaptureNotAllowed",
]
