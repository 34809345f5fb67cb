"""
Datastore connection factory utilities for bizmap.

Builds the connection string for the hosted Postgres datastore from settings
and creates the async connection pool used by `PostgresRecordStore`. The pool
is owned by whoever creates it (the relay lifespan or a CLI command); there
is no module-level singleton.

No retry policy is applied: each call is a single attempt.
"""

from __future__ import annotations

from typing import Optional

from psycopg.conninfo import make_conninfo
from psycopg_pool import AsyncConnectionPool

from bizmap.config import Settings, get_settings


def build_dsn(settings: Optional[Settings] = None) -> str:
    """
    Compose a DSN string from settings.

    Raises
    ------
    ConfigMissing
        If the datastore key or endpoint is not configured.
    """
    settings = settings or get_settings()
    settings.require_store()
    return make_conninfo(
        host=settings.store_host,
        port=settings.store_port,
        user=settings.store_user,
        password=settings.store_key,
        dbname=settings.store_name,
    )


def describe_store(settings: Optional[Settings] = None) -> str:
    """Credential-free description of the datastore endpoint, for logs."""
    settings = settings or get_settings()
    return f"{settings.store_user}@{settings.store_host}:{settings.store_port}/{settings.store_name}"


def create_async_pool(
    settings: Optional[Settings] = None,
    dsn_override: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Create (but do not open) the asynchronous connection pool.

    Parameters
    ----------
    settings : Settings, optional
        Source of endpoint, credentials and pool sizes.
    dsn_override : str, optional
        Explicit connection string, bypassing the settings credentials.

    Returns
    -------
    AsyncConnectionPool
        A closed pool; call ``await pool.open()`` before use.
    """
    settings = settings or get_settings()
    dsn = dsn_override or build_dsn(settings)
    return AsyncConnectionPool(
        conninfo=dsn,
        min_size=settings.store_pool_min,
        max_size=settings.store_pool_max,
        open=False,
    )


__all__ = ["build_dsn", "create_async_pool", "describe_store"]
