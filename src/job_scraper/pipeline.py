from __future__ import annotations

import logging
from collections.abc import Callable

from job_scraper.batch_writer import BatchWriter
from job_scraper.config import Settings
from job_scraper.models import RunSummary, SearchCombination
from job_scraper.page import PageSession, PlaywrightSession
from job_scraper.pagination import PaginationController
from job_scraper.rate_limiter import DelayKind, RateLimiter
from job_scraper.retry import RetryPolicy
from job_scraper.run_log import RunLog
from job_scraper.storage import ItemStore, StateStore

logger = logging.getLogger(__name__)

SessionFactory = Callable[[Settings], PageSession]


class RunOrchestrator:
    """One scraping run over the whole query x location matrix.

    Combinations run one after another on a single browser session. A
    combination that fails is logged and skipped; its records are not
    persisted. The run record is finalized and the session closed on every
    exit path.
    """

    def __init__(
        self,
        settings: Settings,
        store: ItemStore,
        *,
        session_factory: SessionFactory = PlaywrightSession,
        rate_limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.settings = settings
        self.rate_limiter = rate_limiter or RateLimiter(settings.delay_windows)
        self.retry_policy = retry_policy or RetryPolicy(settings.max_retries, settings.base_delay_seconds)
        self.run_log = RunLog(store)
        self.writer = BatchWriter(store, retention_days=settings.retention_days)
        self._session_factory = session_factory

    def _scrape_combination(
        self, run_id: str, controller: PaginationController, combination: SearchCombination
    ) -> list[str]:
        logger.info(
            "scraping %s",
            combination.label,
            extra={"run_id": run_id, "query": combination.query, "location": combination.location},
        )
        records = controller.scrape(combination)
        self.writer.persist(records)
        return [record.identifier for record in records]

    def run(self) -> RunSummary:
        run_id = self.run_log.open()
        found_ids: list[str] = []
        failed: list[str] = []
        success = False
        error: str | None = "run interrupted"
        session: PageSession | None = None

        try:
            session = self._session_factory(self.settings)
            controller = PaginationController.from_settings(
                session.page, self.settings, self.retry_policy, self.rate_limiter
            )
            combinations = list(self.settings.combinations())
            for position, combination in enumerate(combinations):
                try:
                    found_ids.extend(self._scrape_combination(run_id, controller, combination))
                except Exception:
                    logger.exception(
                        "error scraping %s",
                        combination.label,
                        extra={"run_id": run_id, "query": combination.query, "location": combination.location},
                    )
                    failed.append(combination.label)
                if position < len(combinations) - 1:
                    self.rate_limiter.pause(DelayKind.INTER_SEARCH)
            success = True
            error = None
        except Exception as exc:
            logger.exception("scraping run failed", extra={"run_id": run_id})
            error = str(exc) or type(exc).__name__
        finally:
            if session is not None:
                try:
                    session.close()
                except Exception:  # noqa: BLE001 - the run record must still be finalized
                    logger.exception("failed to close browser session")
            self.run_log.finalize(run_id, success, len(found_ids), error)

        logger.info(
            "run %s complete: %d listings, %d failed combination(s)",
            run_id,
            len(found_ids),
            len(failed),
            extra={"run_id": run_id, "jobs_found": len(found_ids), "success": success},
        )
        return RunSummary(
            run_id=run_id,
            success=success,
            jobs_found=len(found_ids),
            failed_combinations=failed,
            error=error,
        )


def run_pipeline(
    settings: Settings,
    *,
    session_factory: SessionFactory = PlaywrightSession,
    rate_limiter: RateLimiter | None = None,
    retry_policy: RetryPolicy | None = None,
) -> RunSummary:
    with StateStore(settings.db_path) as store:
        orchestrator = RunOrchestrator(
            settings,
            store,
            session_factory=session_factory,
            rate_limiter=rate_limiter,
            retry_policy=retry_policy,
        )
        return orchestrator.run()
