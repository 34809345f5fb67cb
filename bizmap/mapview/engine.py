"""
Map rendering engine contract.

The engine is the capability provider behind `MapViewAdapter`: it places and
removes markers and reports viewport moves and clicks. `GeoJsonEngine` is a
headless implementation that keeps the marker set as a GeoJSON
FeatureCollection; the HTML page embeds that collection, and tests drive it
with synthetic events.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from bizmap.mapview.view import ViewState

MoveHandler = Callable[[ViewState], None]
ClickHandler = Callable[[float, float], None]


@dataclass(frozen=True)
class MarkerSpec:
    """Everything an engine needs to draw one marker and its popup."""

    key: str
    lng: float
    lat: float
    color: str
    popup_html: str
    properties: Dict[str, Any]


@runtime_checkable
class MapEngine(Protocol):
    def add_marker(self, marker: MarkerSpec) -> Any:
        """Draw a marker and return an engine handle for it."""
        ...

    def remove_marker(self, handle: Any) -> None:
        ...

    def set_handlers(self, on_move: MoveHandler, on_click: ClickHandler) -> None:
        """Install the single pair of event handlers for this engine."""
        ...

    def clear_handlers(self) -> None:
        ...

    def destroy(self) -> None:
        ...


class GeoJsonEngine:
    """
    Headless engine: markers are kept as GeoJSON point features.

    `emit_move` and `emit_click` play the role of the render loop, delivering
    one event per call to the installed handlers.
    """

    def __init__(self) -> None:
        self._markers: Dict[int, MarkerSpec] = {}
        self._handles = itertools.count(1)
        self._on_move: Optional[MoveHandler] = None
        self._on_click: Optional[ClickHandler] = None
        self.handler_installs = 0
        self.destroyed = False

    @property
    def marker_count(self) -> int:
        return len(self._markers)

    def add_marker(self, marker: MarkerSpec) -> int:
        if self.destroyed:
            raise RuntimeError("engine has been destroyed")
        handle = next(self._handles)
        self._markers[handle] = marker
        return handle

    def remove_marker(self, handle: int) -> None:
        self._markers.pop(handle, None)

    def set_handlers(self, on_move: MoveHandler, on_click: ClickHandler) -> None:
        self._on_move = on_move
        self._on_click = on_click
        self.handler_installs += 1

    def clear_handlers(self) -> None:
        self._on_move = None
        self._on_click = None

    def destroy(self) -> None:
        self._markers.clear()
        self.clear_handlers()
        self.destroyed = True

    def emit_move(self, view: ViewState) -> None:
        if self._on_move is not None:
            self._on_move(view)

    def emit_click(self, lng: float, lat: float) -> None:
        if self._on_click is not None:
            self._on_click(lng, lat)

    def markers(self) -> list[MarkerSpec]:
        return list(self._markers.values())

    def feature_collection(self) -> Dict[str, Any]:
        features = []
        for marker in self._markers.values():
            features.append(
                {
                    "type": "Feature",
                    "id": marker.key,
                    "geometry": {"type": "Point", "coordinates": [marker.lng, marker.lat]},
                    "properties": {
                        **marker.properties,
                        "color": marker.color,
                        "popup": marker.popup_html,
                    },
                }
            )
        return {"type": "FeatureCollection", "features": features}


__all__ = ["ClickHandler", "GeoJsonEngine", "MapEngine", "MarkerSpec", "MoveHandler"]
