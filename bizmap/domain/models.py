"""
Domain models for bizmap.

Defines the business record schema shared by the datastore table
(`db/init.sql`, snake_case columns) and the relay wire format (camelCase keys).
Coordinates are stored flat as `lng`/`lat` and exposed as a `position` pair.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DEFAULT_CATEGORY = "General"
ALL_CATEGORIES = "all"


class PowerType(str, Enum):
    THREE_PHASE = "three-phase"
    SINGLE_PHASE = "single-phase"
    GENERATOR = "generator"


class Position(NamedTuple):
    """A (longitude, latitude) pair in WGS84 degrees."""

    lng: float
    lat: float


class _BusinessFields(BaseModel):
    name: str = Field(..., description="Display name, never empty.")
    category: str = Field(DEFAULT_CATEGORY, description="Free-text classification.")
    lng: float = Field(..., ge=-180.0, le=180.0, description="Longitude.")
    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude.")
    power_type: PowerType = Field(PowerType.THREE_PHASE, description="Supply available on site.")
    accepts_card_payment: bool = Field(False, description="Card/POS payment accepted.")
    photo_url: Optional[str] = Field(None, description="Optional photo link, not validated.")

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _unpack_position(cls, data: Any) -> Any:
        # Accept {"position": [lng, lat]} alongside the flat lng/lat keys.
        if isinstance(data, dict) and data.get("position") is not None:
            data = dict(data)
            position = data.pop("position")
            if not isinstance(position, (list, tuple)) or len(position) != 2:
                raise ValueError("position must be a [lng, lat] pair")
            lng, lat = position
            data.setdefault("lng", lng)
            data.setdefault("lat", lat)
        return data

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_CATEGORY
        return value.strip() if isinstance(value, str) else value

    @field_validator("photo_url", mode="before")
    @classmethod
    def _blank_photo_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def position(self) -> Position:
        return Position(self.lng, self.lat)

    def to_row(self) -> Dict[str, Any]:
        """Column mapping for the datastore table."""
        return self.model_dump(mode="json")

    def to_wire(self) -> Dict[str, Any]:
        """camelCase mapping for the relay JSON surface."""
        return self.model_dump(mode="json", by_alias=True)


class NewBusinessRecord(_BusinessFields):
    """
    A business record that has not been persisted yet (no `id`).
    """


class BusinessRecord(_BusinessFields):
    """
    A persisted business record. `id` is assigned by the store and never
    changes afterwards.
    """

    id: str = Field(..., description="Store-assigned identifier.")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value)


__all__ = [
    "ALL_CATEGORIES",
    "DEFAULT_CATEGORY",
    "BusinessRecord",
    "NewBusinessRecord",
    "Position",
    "PowerType",
]
