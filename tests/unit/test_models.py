from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from bizmap.domain.models import BusinessRecord, NewBusinessRecord, Position, PowerType


def test_new_record_defaults() -> None:
    record = NewBusinessRecord(name="Ana's Shop", lng=-13.2, lat=8.5)

    assert record.category == "General"
    assert record.power_type is PowerType.THREE_PHASE
    assert record.accepts_card_payment is False
    assert record.photo_url is None
    assert record.position == Position(-13.2, 8.5)


def test_blank_category_and_photo_fall_back() -> None:
    record = NewBusinessRecord(name="Joe Bar", category="   ", photo_url="", lng=0, lat=0)

    assert record.category == "General"
    assert record.photo_url is None


@pytest.mark.parametrize("name", ["", "   "])
def test_blank_name_is_rejected(name: str) -> None:
    with pytest.raises(PydanticValidationError):
        NewBusinessRecord(name=name, lng=0, lat=0)


def test_missing_coordinates_are_rejected() -> None:
    with pytest.raises(PydanticValidationError):
        NewBusinessRecord.model_validate({"name": "Nowhere"})


def test_out_of_range_latitude_is_rejected() -> None:
    with pytest.raises(PydanticValidationError):
        NewBusinessRecord(name="Pole", lng=0, lat=91)


def test_position_pair_is_accepted_on_input() -> None:
    record = NewBusinessRecord.model_validate({"name": "Kroo Town Depot", "position": [-13.2, 8.5]})

    assert (record.lng, record.lat) == (-13.2, 8.5)


def test_wire_format_uses_camel_case_and_row_format_snake_case() -> None:
    record = BusinessRecord(
        id=7,
        name="Ana's Shop",
        category="Market",
        lng=-13.2,
        lat=8.5,
        power_type=PowerType.SINGLE_PHASE,
        accepts_card_payment=True,
    )

    wire = record.to_wire()
    row = record.to_row()

    assert wire["id"] == "7"
    assert wire["powerType"] == "single-phase"
    assert wire["acceptsCardPayment"] is True
    assert "photoUrl" in wire
    assert row["power_type"] == "single-phase"
    assert row["accepts_card_payment"] is True


def test_wire_payload_round_trips_into_record() -> None:
    payload = {
        "id": "abc",
        "name": "Joe Bar",
        "category": "Restaurant",
        "lng": -13.25,
        "lat": 8.47,
        "powerType": "generator",
        "acceptsCardPayment": False,
        "photoUrl": "https://example.test/joe.jpg",
    }

    record = BusinessRecord.model_validate(payload)

    assert record.power_type is PowerType.GENERATOR
    assert record.photo_url == "https://example.test/joe.jpg"


def test_records_are_immutable() -> None:
    record = BusinessRecord(id="1", name="Ana's Shop", lng=0, lat=0)

    with pytest.raises(PydanticValidationError):
        record.id = "2"


@pytest.mark.parametrize("position", [5, [1.0], [1.0, 2.0, 3.0], "ab"])
def test_position_must_be_a_pair(position) -> None:
    with pytest.raises(PydanticValidationError, match="position must be a"):
        NewBusinessRecord.model_validate({"name": "Kroo Town Depot", "position": position})
