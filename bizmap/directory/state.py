"""
Business directory state.

Holds the authoritative in-memory collection of business records and the
derived read-only views the map and the CLI render: the searched/filtered
subset and the category list.

The collection is an immutable tuple replaced wholesale by `refresh()`, so a
reader sees either the previous collection or the new one, never a mix.
Refreshes are serialized: a second `refresh()` waits for the one in flight,
so the collection always ends up holding the last-completing fetch.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Dict, Iterable, List, Sequence, Tuple

from bizmap.domain.models import ALL_CATEGORIES, BusinessRecord
from bizmap.errors import StoreError
from bizmap.infrastructure.record_store import RecordStore
from bizmap.utils.logging import get_logger

log = get_logger(__name__)


def filter_records(
    records: Iterable[BusinessRecord],
    search_text: str = "",
    category: str = ALL_CATEGORIES,
) -> List[BusinessRecord]:
    """
    Case-insensitive substring search over name or category, then an exact
    category filter unless `category` is the "all" sentinel.
    """
    needle = (search_text or "").strip().casefold()
    wanted = category or ALL_CATEGORIES
    matched = []
    for record in records:
        if wanted != ALL_CATEGORIES and record.category != wanted:
            continue
        if needle and needle not in record.name.casefold() and needle not in record.category.casefold():
            continue
        matched.append(record)
    return matched


def categories_of(records: Iterable[BusinessRecord]) -> List[str]:
    """The "all" sentinel followed by unique non-empty categories, first-seen order."""
    seen: Dict[str, None] = {}
    for record in records:
        if record.category:
            seen.setdefault(record.category, None)
    return [ALL_CATEGORIES, *seen]


class DirectoryState:
    """
    In-memory directory of business records fed by a `RecordStore`.

    Only `refresh()` mutates the collection; everything else is a pure view.
    """

    def __init__(self, store: RecordStore, records: Sequence[BusinessRecord] = ()) -> None:
        self._store = store
        self._records: Tuple[BusinessRecord, ...] = tuple(records)
        self._refresh_lock = asyncio.Lock()
        self.last_error: str | None = None

    @property
    def records(self) -> Tuple[BusinessRecord, ...]:
        return self._records

    def count(self) -> int:
        return len(self._records)

    async def refresh(self) -> Tuple[BusinessRecord, ...]:
        """
        Re-fetch every record and replace the collection in one step.

        Any `StoreError` on the read degrades to an empty directory instead of
        propagating; the message is kept in `last_error`.
        """
        async with self._refresh_lock:
            try:
                fetched = tuple(await self._store.fetch_all())
                self.last_error = None
            except StoreError as exc:
                log.warning("Directory refresh failed; showing no businesses", extra={"error": str(exc)})
                fetched = ()
                self.last_error = str(exc)
            self._records = fetched
            log.info("Directory refreshed", extra={"records": len(fetched)})
            return fetched

    def filtered(self, search_text: str = "", category: str = ALL_CATEGORIES) -> List[BusinessRecord]:
        return filter_records(self._records, search_text, category)

    def distinct_categories(self) -> List[str]:
        return categories_of(self._records)

    def stats(self) -> Dict[str, int]:
        """Record counts by payment/power class, as the map colors them."""
        counts = Counter(
            "card" if r.accepts_card_payment else r.power_type.value for r in self._records
        )
        return dict(counts)


__all__ = ["DirectoryState", "categories_of", "filter_records"]
