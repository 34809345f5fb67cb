"""
View state and display options for the map.

`ViewState` is what viewport listeners receive; `MapOptions` carries the
purely decorative configuration (style, 3D buildings, traffic) which has no
influence on directory behaviour.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bizmap.config import Settings, get_settings


@dataclass(frozen=True)
class ViewState:
    center_lng: float
    center_lat: float
    zoom: float
    pitch: float = 0.0

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ViewState":
        settings = settings or get_settings()
        return cls(
            center_lng=settings.map_center_lng,
            center_lat=settings.map_center_lat,
            zoom=settings.map_zoom,
            pitch=settings.map_pitch,
        )

    def describe(self) -> str:
        """Readout in the form the map overlay shows it."""
        return f"Lng: {self.center_lng:.4f} | Lat: {self.center_lat:.4f} | Zoom: {self.zoom:.2f}"


@dataclass(frozen=True)
class MapOptions:
    style: str = "mapbox://styles/mapbox/satellite-streets-v12"
    show_buildings: bool = False
    show_traffic: bool = False

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MapOptions":
        settings = settings or get_settings()
        return cls(
            style=settings.map_style,
            show_buildings=settings.map_show_buildings,
            show_traffic=settings.map_show_traffic,
        )


__all__ = ["MapOptions", "ViewState"]
