import pytest

from job_scraper.exceptions import RunLogError
from job_scraper.run_log import RunLog
from job_scraper.storage import StateStore


def test_open_creates_an_open_record(tmp_path) -> None:
    with StateStore(tmp_path / "jobs.sqlite") as store:
        run_log = RunLog(store, clock=lambda: 1_760_000_000.0)
        run_id = run_log.open()

        record = run_log.get(run_id)
        assert record is not None
        assert record.is_open
        assert record.success is None
        assert record.jobs_found == 0
        assert record.start_time == "2025-10-09T08:53:20+00:00"
        assert record.created_at == 1_760_000_000_000


def test_finalize_writes_terminal_state(tmp_path) -> None:
    with StateStore(tmp_path / "jobs.sqlite") as store:
        run_log = RunLog(store)
        run_id = run_log.open()
        run_log.finalize(run_id, success=False, count=7, error="browser crashed")

        record = run_log.get(run_id)
        assert not record.is_open
        assert record.success is False
        assert record.jobs_found == 7
        assert record.error == "browser crashed"


def test_finalize_happens_only_once(tmp_path) -> None:
    with StateStore(tmp_path / "jobs.sqlite") as store:
        run_log = RunLog(store)
        run_id = run_log.open()
        run_log.finalize(run_id, success=True, count=3)

        with pytest.raises(RunLogError):
            run_log.finalize(run_id, success=False, count=0, error="late failure")

        record = run_log.get(run_id)
        assert record.success is True
        assert record.jobs_found == 3


def test_finalize_unknown_run_is_rejected(tmp_path) -> None:
    with StateStore(tmp_path / "jobs.sqlite") as store:
        with pytest.raises(RunLogError):
            RunLog(store).finalize("nope", success=True, count=0)
