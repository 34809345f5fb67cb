"""
bizmap - map-based business directory.

This package renders a city map with markers for registered businesses and
lets an admin pick a location on the map to add a new one. It provides:

- A record store client for the hosted Postgres datastore, and one that goes
  through the relay instead
- The in-memory directory state with search, category filter and category list
- A map view adapter that renders markers idempotently and forwards map events
- The admin capture flow state machine
- A stateless relay service (FastAPI) and a CLI (Typer)
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from bizmap.capture.flow import AdminCaptureFlow, CaptureState, admin_from_url
from bizmap.config import Settings, get_settings
from bizmap.directory.state import DirectoryState
from bizmap.domain.models import (
    ALL_CATEGORIES,
    BusinessRecord,
    NewBusinessRecord,
    Position,
    PowerType,
)
from bizmap.errors import (
    BizMapError,
    CaptureNotAllowed,
    ConfigMissing,
    StoreError,
    StoreUnavailable,
    ValidationError,
)
from bizmap.infrastructure.record_store import PostgresRecordStore, RecordStore, RelayRecordStore
from bizmap.mapview.adapter import MapViewAdapter, MarkerColor, marker_color
from bizmap.mapview.engine import GeoJsonEngine, MapEngine
from bizmap.mapview.view import MapOptions, ViewState
from bizmap.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "ALL_CATEGORIES",
    "BusinessRecord",
    "NewBusinessRecord",
    "Position",
    "PowerType",
    # Errors
    "BizMapError",
    "CaptureNotAllowed",
    "ConfigMissing",
    "StoreError",
    "StoreUnavailable",
    "ValidationError",
    # Store
    "PostgresRecordStore",
    "RecordStore",
    "RelayRecordStore",
    # Directory, map and capture
    "DirectoryState",
    "GeoJsonEngine",
    "MapEngine",
    "MapOptions",
    "MapViewAdapter",
    "MarkerColor",
    "ViewState",
    "marker_color",
    "AdminCaptureFlow",
    "CaptureState",
    "admin_from_url",
    # Logging
    "configure_logging",
    "get_logger",
]
