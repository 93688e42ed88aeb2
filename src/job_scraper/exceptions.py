"""Error taxonomy for the scraping engine.

Listing validation failures are not errors: the extractor returns ``None``
for them. Everything else derives from ``ScraperError`` so the orchestrator
can tell its own faults apart from unexpected ones in logs.
"""

from __future__ import annotations

from job_scraper.models import SearchCombination


class ScraperError(Exception):
    """Base class for all errors raised by the scraping engine."""


class RetriesExhaustedError(ScraperError):
    """An operation kept failing after every allowed attempt."""

    def __init__(self, description: str, attempts: int) -> None:
        self.description = description
        self.attempts = attempts
        super().__init__(f"retries exhausted: {description} failed after {attempts} attempts")


class NoCardsFoundError(ScraperError):
    """The card list was absent or empty; rendering may still be in progress."""


class CombinationFailedError(ScraperError):
    """One search combination was abandoned."""

    def __init__(self, combination: SearchCombination, page: int, partial_count: int) -> None:
        self.combination = combination
        self.page = page
        self.partial_count = partial_count
        super().__init__(
            f"scraping '{combination.label}' failed on page {page} "
            f"after collecting {partial_count} listings"
        )


class PersistenceError(ScraperError):
    """Base class for storage failures."""


class BatchWriteError(PersistenceError):
    """One or more chunks of a batch write failed.

    ``failures`` holds ``(chunk_index, identifiers, message)`` tuples so the
    caller can tell exactly which chunks were not stored.
    """

    def __init__(self, failures: list[tuple[int, list[str], str]], written: int) -> None:
        self.failures = failures
        self.written = written
        indexes = ", ".join(str(index) for index, _, _ in failures)
        super().__init__(f"batch write failed for chunk(s) {indexes}; {written} items written")


class RunLogError(PersistenceError):
    """Run accounting was used out of order (unknown run, double finalize)."""
