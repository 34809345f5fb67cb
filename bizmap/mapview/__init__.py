"""
Map view package for bizmap.

Exports the adapter that turns directory records into markers and map
events into callbacks, the engine contract behind it, and the HTML page
generator used by the relay and the CLI.
"""

from bizmap.mapview.adapter import MapViewAdapter, MarkerColor, build_marker, marker_color, popup_html
from bizmap.mapview.engine import GeoJsonEngine, MapEngine, MarkerSpec
from bizmap.mapview.page import MapPage, render_map_page
from bizmap.mapview.view import MapOptions, ViewState

__all__ = [
    "GeoJsonEngine",
    "MapEngine",
    "MapOptions",
    "MapPage",
    "MapViewAdapter",
    "MarkerColor",
    "MarkerSpec",
    "ViewState",
    "build_marker",
    "marker_color",
    "popup_html",
    "render_map_page",
]
