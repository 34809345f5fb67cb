"""
Integration tests for the Postgres record store and the relay.

These tests run against a real PostgreSQL instance and verify that:
1. Inserted businesses come back with a store-assigned id
2. Table constraints surface as ValidationError
3. The directory and the relay see what the store holds

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

from bizmap.config import Settings
from bizmap.directory.state import DirectoryState
from bizmap.domain.models import NewBusinessRecord, PowerType
from bizmap.errors import ValidationError
from bizmap.infrastructure.record_store import PostgresRecordStore
from bizmap.relay.app import create_app

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


def _ana() -> NewBusinessRecord:
    return NewBusinessRecord(
        name="Ana's Shop",
        category="Market",
        lng=-13.2344,
        lat=8.4844,
        power_type=PowerType.THREE_PHASE,
        accepts_card_payment=True,
    )


class TestPostgresRecordStore:
    """Round trips through the businesses table."""

    @pytest.mark.asyncio
    async def test_insert_then_fetch(self, clean_businesses_table, test_settings: Settings, test_dsn: str):
        """Verify an inserted record is returned with an id and read back unchanged."""
        async with PostgresRecordStore(settings=test_settings, dsn_override=test_dsn) as store:
            created = await store.insert(_ana())
            records = await store.fetch_all()

        assert created.id
        assert [r.id for r in records] == [created.id]
        assert records[0].name == "Ana's Shop"
        assert records[0].accepts_card_payment is True
        assert records[0].position == created.position

    @pytest.mark.asyncio
    async def test_empty_table_fetches_nothing(self, clean_businesses_table, test_settings: Settings, test_dsn: str):
        """Verify an empty table yields an empty list."""
        async with PostgresRecordStore(settings=test_settings, dsn_override=test_dsn) as store:
            assert await store.fetch_all() == []

    @pytest.mark.asyncio
    async def test_check_constraint_is_validation_error(
        self, clean_businesses_table, test_settings: Settings, test_dsn: str
    ):
        """Verify the table's range check is reported as a validation failure."""
        out_of_range = NewBusinessRecord.model_construct(
            name="Pole Shop",
            category="General",
            lng=0.0,
            lat=95.0,
            power_type=PowerType.THREE_PHASE,
            accepts_card_payment=False,
            photo_url=None,
        )

        async with PostgresRecordStore(settings=test_settings, dsn_override=test_dsn) as store:
            with pytest.raises(ValidationError):
                await store.insert(out_of_range)
            assert await store.fetch_all() == []

    @pytest.mark.asyncio
    async def test_directory_refresh_sees_inserts(
        self, clean_businesses_table, test_settings: Settings, test_dsn: str
    ):
        """Verify the directory reflects the table after a refresh."""
        async with PostgresRecordStore(settings=test_settings, dsn_override=test_dsn) as store:
            directory = DirectoryState(store)
            await directory.refresh()
            assert directory.count() == 0

            await store.insert(_ana())
            await directory.refresh()

        assert directory.count() == 1
        assert directory.distinct_categories() == ["all", "Market"]


class TestRelay:
    """The relay in front of a real datastore."""

    def test_post_then_get(self, clean_businesses_table, test_settings: Settings, test_dsn: str):
        """Verify a POSTed business is listed by GET."""
        store = PostgresRecordStore(settings=test_settings, dsn_override=test_dsn)
        with TestClient(create_app(test_settings, store=store)) as client:
            posted = client.post(
                "/businesses",
                json={"name": "Joe Bar", "category": "Restaurant", "position": [-13.25, 8.47], "powerType": "generator"},
            ).json()
            listed = client.get("/businesses").json()

        assert posted["error"] is None
        assert [b["id"] for b in listed] == [posted["data"][0]["id"]]
        assert listed[0]["powerType"] == "generator"
