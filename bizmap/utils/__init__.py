"""
Utilities package for bizmap.

Exports shared helpers for cross-cutting concerns such as logging. Keep this
package lightweight and free of domain-specific logic.
"""

from bizmap.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
