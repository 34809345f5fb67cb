"""
Pytest configuration for bizmap.

Provides fixtures for:
- An in-memory record store with failure injection (unit tests)
- The two-business sample directory used throughout the tests
- Database connection management and table cleanup (integration tests)
"""

from __future__ import annotations

import itertools
import os
from pathlib import Path
from typing import Generator, Iterable, List, Optional

import psycopg
import pytest

from bizmap.config import Settings
from bizmap.domain.models import BusinessRecord, NewBusinessRecord, PowerType


def make_record(
    id: str,
    name: str,
    category: str = "General",
    lng: float = -13.2344,
    lat: float = 8.4844,
    power_type: PowerType = PowerType.THREE_PHASE,
    accepts_card_payment: bool = False,
    photo_url: Optional[str] = None,
) -> BusinessRecord:
    return BusinessRecord(
        id=id,
        name=name,
        category=category,
        lng=lng,
        lat=lat,
        power_type=power_type,
        accepts_card_payment=accepts_card_payment,
        photo_url=photo_url,
    )


class FakeRecordStore:
    """In-memory RecordStore; set `fail_fetch` / `fail_insert` to an exception to inject failures."""

    def __init__(self, records: Iterable[BusinessRecord] = ()) -> None:
        self.rows: List[BusinessRecord] = list(records)
        self.fail_fetch: Optional[Exception] = None
        self.fail_insert: Optional[Exception] = None
        self.fetch_calls = 0
        self.insert_calls = 0
        self._ids = itertools.count(100)

    async def fetch_all(self) -> List[BusinessRecord]:
        self.fetch_calls += 1
        if self.fail_fetch is not None:
            raise self.fail_fetch
        return list(self.rows)

    async def insert(self, record: NewBusinessRecord) -> BusinessRecord:
        self.insert_calls += 1
        if self.fail_insert is not None:
            raise self.fail_insert
        created = BusinessRecord(id=str(next(self._ids)), **record.model_dump())
        self.rows.append(created)
        return created

    async def __aenter__(self) -> "FakeRecordStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None


@pytest.fixture
def sample_records() -> List[BusinessRecord]:
    return [
        make_record(
            "1",
            "Ana's Shop",
            category="Market",
            power_type=PowerType.THREE_PHASE,
            accepts_card_payment=True,
        ),
        make_record(
            "2",
            "Joe Bar",
            category="Restaurant",
            lng=-13.25,
            lat=8.47,
            power_type=PowerType.GENERATOR,
            accepts_card_payment=False,
        ),
    ]


@pytest.fixture
def fake_store(sample_records: List[BusinessRecord]) -> FakeRecordStore:
    return FakeRecordStore(sample_records)


@pytest.fixture
def unit_settings() -> Settings:
    """Settings isolated from the developer's .env file."""
    return Settings(
        _env_file=None,
        store_key="test-key",
        map_access_token="pk.test-token",
        relay_url="http://relay.test",
    )


# Integration fixtures


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        _env_file=None,
        store_host=os.getenv("STORE_HOST", "localhost"),
        store_port=int(os.getenv("STORE_PORT", "5432")),
        store_user=os.getenv("STORE_USER", "postgres"),
        store_key=os.getenv("STORE_KEY", "postgres"),
        store_name=os.getenv("STORE_NAME", "bizmap"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    return (
        f"postgresql://{test_settings.store_user}:{test_settings.store_key}"
        f"@{test_settings.store_host}:{test_settings.store_port}/{test_settings.store_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection with the schema applied.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
        with conn.cursor() as cur:
            cur.execute(init_sql_path.read_text(encoding="utf-8"))
        conn.commit()
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def clean_businesses_table(db_connection: psycopg.Connection):
    """
    Empty the businesses table before and after each test function.
    """
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.businesses;")
    db_connection.commit()
    yield
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.businesses;")
    db_connection.commit()
