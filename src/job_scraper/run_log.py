from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from job_scraper.exceptions import RunLogError
from job_scraper.models import RunRecord
from job_scraper.storage import SCRAPING_LOGS_TABLE, ItemStore

logger = logging.getLogger(__name__)


def _iso(epoch_seconds: float) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).replace(microsecond=0).isoformat()


class RunLog:
    """Run accounting: one record per run, opened once and finalized once."""

    def __init__(
        self,
        store: ItemStore,
        *,
        table: str = SCRAPING_LOGS_TABLE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._table = table
        self._clock = clock
        self._open_runs: set[str] = set()

    def open(self) -> str:
        run_id = str(uuid.uuid4())
        now = self._clock()
        self._store.put_item(
            self._table,
            {
                "id": run_id,
                "start_time": _iso(now),
                "end_time": None,
                "success": None,
                "jobs_found": 0,
                "error": None,
                "created_at": int(now * 1000),
            },
        )
        self._open_runs.add(run_id)
        logger.info("run %s started", run_id)
        return run_id

    def finalize(self, run_id: str, success: bool, count: int, error: str | None = None) -> None:
        if run_id not in self._open_runs:
            raise RunLogError(f"run {run_id} is not open or was already finalized")
        self._store.update_item(
            self._table,
            run_id,
            {
                "end_time": _iso(self._clock()),
                "success": success,
                "jobs_found": count,
                "error": error,
            },
        )
        self._open_runs.discard(run_id)
        logger.info("run %s finished success=%s jobs_found=%d", run_id, success, count)

    def get(self, run_id: str) -> RunRecord | None:
        item = self._store.get_item(self._table, run_id)
        if item is None:
            return None
        success = item.get("success")
        return RunRecord(
            run_id=item["id"],
            start_time=item["start_time"],
            end_time=item.get("end_time"),
            success=None if success is None else bool(success),
            jobs_found=int(item.get("jobs_found") or 0),
            error=item.get("error"),
            created_at=int(item["created_at"]),
        )
