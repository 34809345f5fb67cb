from __future__ import annotations

import httpx
import pytest

from conftest import FakeRecordStore

from bizmap.capture.flow import AdminCaptureFlow, CaptureForm, CaptureState, admin_from_url
from bizmap.directory.state import DirectoryState
from bizmap.domain.models import Position, PowerType
from bizmap.errors import CaptureNotAllowed, StoreUnavailable, ValidationError
from bizmap.infrastructure.record_store import RelayRecordStore
from bizmap.mapview.adapter import MapViewAdapter
from bizmap.mapview.engine import GeoJsonEngine
from bizmap.mapview.view import ViewState


@pytest.fixture
def flow(fake_store: FakeRecordStore) -> AdminCaptureFlow:
    return AdminCaptureFlow(store=fake_store, directory=DirectoryState(fake_store), is_admin=True)


@pytest.mark.parametrize(
    "url, expected",
    [
        ("http://localhost:3001/?admin=true", True),
        ("http://localhost:3001/?admin=1", True),
        ("http://localhost:3001/?foo=bar&admin=TRUE", True),
        ("http://localhost:3001/?admin=false", False),
        ("http://localhost:3001/?admin=", False),
        ("http://localhost:3001/", False),
    ],
)
def test_admin_flag_from_url(url: str, expected: bool) -> None:
    assert admin_from_url(url) is expected


def test_panel_requires_admin_flag(fake_store: FakeRecordStore) -> None:
    flow = AdminCaptureFlow(store=fake_store, directory=DirectoryState(fake_store))

    with pytest.raises(CaptureNotAllowed):
        flow.open_panel()
    assert flow.state == CaptureState.IDLE


def test_click_while_idle_is_ignored(flow: AdminCaptureFlow) -> None:
    flow.handle_click(Position(-13.2, 8.5))

    assert flow.state == CaptureState.IDLE
    assert flow.position is None


@pytest.mark.asyncio
async def test_save_without_name_keeps_ready_and_does_not_insert(
    flow: AdminCaptureFlow, fake_store: FakeRecordStore
) -> None:
    flow.open_panel()
    assert flow.state == CaptureState.AWAITING_LOCATION

    flow.handle_click(Position(-13.2, 8.5))
    assert flow.state == CaptureState.READY
    assert flow.position == Position(-13.2, 8.5)

    result = await flow.save()

    assert result is None
    assert flow.state == CaptureState.READY
    assert fake_store.insert_calls == 0
    assert not flow.can_submit


@pytest.mark.asyncio
async def test_save_without_location_is_refused(flow: AdminCaptureFlow, fake_store: FakeRecordStore) -> None:
    flow.open_panel()
    flow.update_form(name="Kroo Town Depot")

    assert await flow.save() is None
    assert flow.state == CaptureState.AWAITING_LOCATION
    assert fake_store.insert_calls == 0


def test_later_click_overwrites_coordinate(flow: AdminCaptureFlow) -> None:
    flow.open_panel()
    flow.handle_click(Position(-13.2, 8.5))
    flow.handle_click(Position(-13.3, 8.4))

    assert flow.state == CaptureState.READY
    assert flow.position == Position(-13.3, 8.4)


@pytest.mark.asyncio
async def test_successful_save_inserts_refreshes_and_resets(
    flow: AdminCaptureFlow, fake_store: FakeRecordStore
) -> None:
    flow.open_panel()
    flow.handle_click(Position(-13.2, 8.5))
    flow.update_form(
        name="Kroo Town Depot",
        category="Hardware",
        power_type="generator",
        accepts_card_payment=True,
    )

    created = await flow.save()

    assert created is not None
    assert created.name == "Kroo Town Depot"
    assert created.power_type is PowerType.GENERATOR
    assert created.position == Position(-13.2, 8.5)
    assert flow.last_created == created
    assert flow.state == CaptureState.IDLE
    assert flow.position is None
    assert flow.form == CaptureForm()
    assert fake_store.insert_calls == 1
    assert fake_store.fetch_calls == 1
    assert created.id in [r.id for r in flow.directory.records]
    assert "Hardware" in flow.directory.distinct_categories()


@pytest.mark.asyncio
async def test_blank_category_is_stored_as_general(flow: AdminCaptureFlow) -> None:
    flow.open_panel()
    flow.handle_click(Position(-13.2, 8.5))
    flow.update_form(name="Corner Shop")

    created = await flow.save()

    assert created is not None
    assert created.category == "General"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failure",
    [StoreUnavailable("Datastore unreachable: timeout"), ValidationError("name: too long")],
)
async def test_store_failure_keeps_form_and_reports_message(
    flow: AdminCaptureFlow, fake_store: FakeRecordStore, failure: Exception
) -> None:
    fake_store.fail_insert = failure
    flow.open_panel()
    flow.handle_click(Position(-13.2, 8.5))
    flow.update_form(name="Joe Bar 2", category="Restaurant")

    assert await flow.save() is None

    assert flow.state == CaptureState.READY
    assert flow.position == Position(-13.2, 8.5)
    assert flow.form.name == "Joe Bar 2"
    assert flow.error == str(failure)
    assert fake_store.fetch_calls == 0

    fake_store.fail_insert = None
    created = await flow.save()
    assert created is not None
    assert flow.error is None


def test_cancel_discards_everything(flow: AdminCaptureFlow) -> None:
    flow.open_panel()
    flow.handle_click(Position(-13.2, 8.5))
    flow.update_form(name="Draft")

    flow.cancel()

    assert flow.state == CaptureState.IDLE
    assert flow.position is None
    assert flow.form == CaptureForm()


def test_unknown_form_field_is_rejected(flow: AdminCaptureFlow) -> None:
    with pytest.raises(TypeError):
        flow.update_form(rating=5)


def test_bound_flow_receives_engine_clicks(flow: AdminCaptureFlow) -> None:
    engine = GeoJsonEngine()
    adapter = MapViewAdapter(engine, ViewState(-13.2344, 8.4844, 13.0))
    adapter.mount()
    flow.bind(adapter)
    flow.bind(adapter)
    flow.open_panel()

    engine.emit_click(-13.21, 8.49)

    assert flow.state == CaptureState.READY
    assert flow.position == Position(-13.21, 8.49)

    flow.unbind()
    flow.cancel()
    flow.open_panel()
    engine.emit_click(-13.0, 8.0)
    assert flow.state == CaptureState.AWAITING_LOCATION


def test_record_cannot_be_built_without_location(flow: AdminCaptureFlow) -> None:
    flow.update_form(name="Kroo Town Depot")

    with pytest.raises(ValidationError, match="location"):
        flow._build_record()


@pytest.mark.asyncio
async def test_garbled_relay_reply_is_shown_to_the_admin(fake_store: FakeRecordStore) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>proxy</html>", headers={"content-type": "text/html"})

    async with RelayRecordStore("http://relay.test", transport=httpx.MockTransport(handler)) as relay:
        flow = AdminCaptureFlow(store=relay, directory=DirectoryState(fake_store), is_admin=True)
        flow.open_panel()
        flow.handle_click(Position(-13.2, 8.5))
        flow.update_form(name="Joe Bar 2")

        assert await flow.save() is None

    assert flow.state == CaptureState.READY
    assert "non-JSON" in flow.error
    assert flow.form.name == "Joe Bar 2"
