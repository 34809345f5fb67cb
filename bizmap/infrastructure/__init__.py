"""
Infrastructure package for bizmap.

Centralizes datastore connectivity (pool factory) and the record store
clients. Keep this layer focused on I/O and error translation, decoupled
from directory and map logic.
"""

from bizmap.infrastructure.db_factory import build_dsn, create_async_pool, describe_store
from bizmap.infrastructure.record_store import (
    PostgresRecordStore,
    RecordStore,
    RelayRecordStore,
    parse_new_record,
    store_from_settings,
)

__all__ = [
    "build_dsn",
    "create_async_pool",
    "describe_store",
    "PostgresRecordStore",
    "RecordStore",
    "RelayRecordStore",
    "parse_new_record",
    "store_from_settings",
]
