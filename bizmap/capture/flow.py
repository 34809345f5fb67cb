"""
Admin capture flow.

A three-state machine that turns a map click plus form input into a new
business record:

    IDLE --open_panel()--> AWAITING_LOCATION --click--> READY --save() ok--> IDLE
                                   ^                      |  ^
                                   |                      |  +-- click / save() failed
    cancel() from any state returns to IDLE and discards coordinate and form.

The admin flag is an input computed once at page load (`admin_from_url`);
it is a UI affordance, not an authorization check.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlsplit

from bizmap.directory.state import DirectoryState
from bizmap.domain.models import BusinessRecord, NewBusinessRecord, Position, PowerType
from bizmap.errors import CaptureNotAllowed, StoreError, ValidationError
from bizmap.infrastructure.record_store import RecordStore, parse_new_record
from bizmap.mapview.adapter import MapViewAdapter
from bizmap.utils.logging import get_logger

log = get_logger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def admin_from_url(url: str, param: str = "admin") -> bool:
    """True when the page URL carries ``?admin=true`` (or 1/yes/on)."""
    values = parse_qs(urlsplit(url).query).get(param, [])
    return any(v.strip().lower() in _TRUTHY for v in values)


class CaptureState(str, Enum):
    IDLE = "idle"
    AWAITING_LOCATION = "awaiting_location"
    READY = "ready"


@dataclass
class CaptureForm:
    name: str = ""
    category: str = ""
    power_type: PowerType = PowerType.THREE_PHASE
    accepts_card_payment: bool = False
    photo_url: Optional[str] = None


FORM_FIELDS = frozenset(CaptureForm.__dataclass_fields__)


@dataclass
class AdminCaptureFlow:
    """
    State of one admin capture session.

    `store` receives the insert; `directory` is refreshed after a successful
    save so the new record shows up on the map.
    """

    store: RecordStore
    directory: DirectoryState
    is_admin: bool = False
    state: CaptureState = CaptureState.IDLE
    position: Optional[Position] = None
    form: CaptureForm = field(default_factory=CaptureForm)
    error: Optional[str] = None
    last_created: Optional[BusinessRecord] = None
    _unsubscribe: Optional[Callable[[], None]] = field(default=None, repr=False)

    @property
    def can_submit(self) -> bool:
        return (
            self.state == CaptureState.READY
            and self.position is not None
            and bool(self.form.name.strip())
        )

    def open_panel(self) -> None:
        if not self.is_admin:
            raise CaptureNotAllowed("The admin panel is only available with the admin flag")
        if self.state == CaptureState.IDLE:
            self.state = CaptureState.AWAITING_LOCATION
            self.error = None

    def handle_click(self, position: Position) -> None:
        if self.state == CaptureState.IDLE:
            return
        self.position = Position(*position)
        self.state = CaptureState.READY

    def update_form(self, **fields: Any) -> None:
        unknown = set(fields) - FORM_FIELDS
        if unknown:
            raise TypeError(f"Unknown form fields: {', '.join(sorted(unknown))}")
        if "power_type" in fields:
            fields["power_type"] = PowerType(fields["power_type"])
        self.form = replace(self.form, **fields)

    def cancel(self) -> None:
        self.state = CaptureState.IDLE
        self.position = None
        self.form = CaptureForm()
        self.error = None

    def _build_record(self) -> NewBusinessRecord:
        if self.position is None:
            raise ValidationError("A map location is required")
        return parse_new_record(
            {
                "name": self.form.name,
                "category": self.form.category,
                "lng": self.position.lng,
                "lat": self.position.lat,
                "power_type": self.form.power_type,
                "accepts_card_payment": self.form.accepts_card_payment,
                "photo_url": self.form.photo_url,
            }
        )

    async def save(self) -> Optional[BusinessRecord]:
        """
        Submit the form.

        Returns the stored record on success. Returns None, leaving the state
        unchanged, when submission is not allowed or the store fails; the
        failure text is kept verbatim in `error`.
        """
        if not self.can_submit:
            self.error = "A name and a map location are required"
            return None
        try:
            created = await self.store.insert(self._build_record())
        except StoreError as exc:
            self.error = str(exc)
            log.warning("Business insert failed", extra={"error": self.error})
            return None
        log.info("Business created", extra={"id": created.id, "business": created.name})
        self.last_created = created
        self.cancel()
        await self.directory.refresh()
        return created

    def bind(self, adapter: MapViewAdapter) -> None:
        """Feed the adapter's map clicks into this flow (once)."""
        if self._unsubscribe is None:
            self._unsubscribe = adapter.on_map_click(self.handle_click)

    def unbind(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


__all__ = [
    "AdminCaptureFlow",
    "CaptureForm",
    "CaptureState",
    "admin_from_url",
]
