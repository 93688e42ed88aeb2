from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import TypeVar

from job_scraper.exceptions import BatchWriteError
from job_scraper.models import ListingRecord
from job_scraper.storage import JOBS_TABLE, MAX_BATCH_ITEMS, ItemStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

SECONDS_PER_DAY = 24 * 60 * 60


def chunk_records(records: Sequence[T], size: int = MAX_BATCH_ITEMS) -> list[list[T]]:
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [list(records[start:start + size]) for start in range(0, len(records), size)]


class BatchWriter:
    """Persists listings in bulk writes of at most ``MAX_BATCH_ITEMS`` items.

    Every chunk is attempted even if an earlier one fails; chunks that were
    written stay written. Failures are reported together at the end.
    """

    def __init__(
        self,
        store: ItemStore,
        *,
        retention_days: int = 30,
        table: str = JOBS_TABLE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._retention_seconds = retention_days * SECONDS_PER_DAY
        self._table = table
        self._clock = clock

    def _items_for(self, chunk: list[ListingRecord]) -> list[dict[str, object]]:
        now = self._clock()
        created_at_ms = int(now * 1000)
        ttl = int(now) + self._retention_seconds
        return [record.to_item(created_at_ms, ttl) for record in chunk]

    def persist(self, records: Sequence[ListingRecord]) -> int:
        written = 0
        failures: list[tuple[int, list[str], str]] = []
        for index, chunk in enumerate(chunk_records(records)):
            try:
                self._store.batch_put_items(self._table, self._items_for(chunk))
            except Exception as exc:  # noqa: BLE001 - reported below
                identifiers = [record.identifier for record in chunk]
                logger.error("failed to write chunk %d (%d listings): %s", index, len(chunk), exc)
                failures.append((index, identifiers, str(exc)))
                continue
            written += len(chunk)

        if failures:
            raise BatchWriteError(failures, written)
        logger.debug("persisted %d listings", written)
        return written
