"""
Map view adapter.

Owns one map engine for the lifetime between `mount()` and `unmount()` and
translates in both directions:

- directory records -> markers (`render_markers`), diffed against what is
  already drawn so repeated renders never stack duplicate markers;
- engine events -> registered callbacks (`on_viewport_change`,
  `on_map_click`).

Engine handlers are installed once per mount, however many listeners
subscribe.
"""

from __future__ import annotations

import html as html_module
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from bizmap.domain.models import BusinessRecord, Position, PowerType
from bizmap.mapview.engine import MapEngine, MarkerSpec
from bizmap.mapview.view import MapOptions, ViewState
from bizmap.utils.logging import get_logger

log = get_logger(__name__)

ViewportCallback = Callable[[ViewState], None]
ClickCallback = Callable[[Position], None]


class MarkerColor(str, Enum):
    GREEN = "#16a34a"
    BLUE = "#2563eb"
    AMBER = "#f59e0b"


POWER_LABELS = {
    PowerType.THREE_PHASE: "3-Phase",
    PowerType.SINGLE_PHASE: "Single-phase",
    PowerType.GENERATOR: "Generator",
}


def marker_color(record: BusinessRecord) -> MarkerColor:
    """Green takes card payment, else blue on three-phase power, else amber."""
    if record.accepts_card_payment:
        return MarkerColor.GREEN
    if record.power_type == PowerType.THREE_PHASE:
        return MarkerColor.BLUE
    return MarkerColor.AMBER


def popup_html(record: BusinessRecord) -> str:
    esc = html_module.escape
    payment = "Accepts card" if record.accepts_card_payment else "Cash only"
    parts = [
        f"<strong>{esc(record.name)}</strong>",
        f"<div>{esc(record.category)}</div>",
        f"<div>Power: {esc(POWER_LABELS[record.power_type])}</div>",
        f"<div>{payment}</div>",
    ]
    if record.photo_url:
        parts.append(
            f'<img src="{esc(record.photo_url, quote=True)}" alt="{esc(record.name, quote=True)}" '
            'style="max-width:180px;margin-top:6px;border-radius:4px"/>'
        )
    return "".join(parts)


def build_marker(record: BusinessRecord) -> MarkerSpec:
    return MarkerSpec(
        key=record.id,
        lng=record.lng,
        lat=record.lat,
        color=marker_color(record).value,
        popup_html=popup_html(record),
        properties={
            "name": record.name,
            "category": record.category,
            "powerType": record.power_type.value,
            "acceptsCardPayment": record.accepts_card_payment,
        },
    )


class MapViewAdapter:
    """
    One-directional bridge between directory records and a map engine.

    The engine is created on mount and destroyed on unmount. Pass
    `engine_factory` to be able to mount again after an unmount; an adapter
    built from a single engine instance can only be mounted once.

    Usage:
        adapter = MapViewAdapter(None, ViewState.from_settings(), engine_factory=GeoJsonEngine)
        adapter.mount()
        adapter.render_markers(directory.filtered(search, category))
        ...
        adapter.unmount()
    """

    def __init__(
        self,
        engine: Optional[MapEngine],
        initial_view: ViewState,
        options: Optional[MapOptions] = None,
        engine_factory: Optional[Callable[[], MapEngine]] = None,
    ) -> None:
        if engine is None and engine_factory is None:
            raise ValueError("MapViewAdapter needs an engine or an engine_factory")
        self.engine = engine
        self.engine_factory = engine_factory
        self.initial_view = initial_view
        self.options = options or MapOptions()
        self.view = initial_view
        self._mounted = False
        self._rendered: Dict[str, Tuple[MarkerSpec, Any]] = {}
        self._viewport_listeners: List[ViewportCallback] = []
        self._click_listeners: List[ClickCallback] = []

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def rendered_keys(self) -> List[str]:
        return list(self._rendered)

    def mount(self) -> None:
        if self._mounted:
            return
        if self.engine is None:
            if self.engine_factory is None:
                raise RuntimeError(
                    "map engine was destroyed by unmount(); pass engine_factory to mount again"
                )
            self.engine = self.engine_factory()
        self.engine.set_handlers(self._dispatch_move, self._dispatch_click)
        self.view = self.initial_view
        self._mounted = True
        log.debug("Map view mounted", extra={"view": self.view.describe()})

    def unmount(self) -> None:
        if not self._mounted or self.engine is None:
            return
        for _, handle in self._rendered.values():
            self.engine.remove_marker(handle)
        self._rendered.clear()
        self.engine.clear_handlers()
        self.engine.destroy()
        self.engine = None
        self._viewport_listeners.clear()
        self._click_listeners.clear()
        self._mounted = False
        log.debug("Map view unmounted")

    def render_markers(self, records: Iterable[BusinessRecord]) -> None:
        """Make the drawn markers match `records` exactly."""
        if not self._mounted:
            raise RuntimeError("render_markers() called on an unmounted map view")
        desired = {}
        for record in records:
            desired[record.id] = build_marker(record)

        for key in list(self._rendered):
            spec, handle = self._rendered[key]
            if desired.get(key) != spec:
                self.engine.remove_marker(handle)
                del self._rendered[key]

        for key, spec in desired.items():
            if key not in self._rendered:
                self._rendered[key] = (spec, self.engine.add_marker(spec))

    def on_viewport_change(self, callback: ViewportCallback) -> Callable[[], None]:
        self._viewport_listeners.append(callback)
        return lambda: self._discard(self._viewport_listeners, callback)

    def on_map_click(self, callback: ClickCallback) -> Callable[[], None]:
        self._click_listeners.append(callback)
        return lambda: self._discard(self._click_listeners, callback)

    @staticmethod
    def _discard(listeners: list, callback: Callable) -> None:
        if callback in listeners:
            listeners.remove(callback)

    def _dispatch_move(self, view: ViewState) -> None:
        self.view = view
        for callback in list(self._viewport_listeners):
            callback(view)

    def _dispatch_click(self, lng: float, lat: float) -> None:
        position = Position(lng, lat)
        for callback in list(self._click_listeners):
            callback(position)


__all__ = [
    "MapViewAdapter",
    "MarkerColor",
    "build_marker",
    "marker_color",
    "popup_html",
]
