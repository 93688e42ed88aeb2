from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any
from urllib.parse import urlencode

from job_scraper.config import Settings
from job_scraper.exceptions import CombinationFailedError, NoCardsFoundError
from job_scraper.extractor import ListingExtractor
from job_scraper.models import ListingRecord, PageCursor, SearchCombination
from job_scraper.page import Page
from job_scraper.rate_limiter import DelayKind, RateLimiter
from job_scraper.retry import RetryPolicy

logger = logging.getLogger(__name__)

CARD_SELECTOR = ".job-card-container"
RESULTS_PER_PAGE = 25
CARD_WAIT_ATTEMPTS = 3

NEXT_PAGE_SCRIPT = """
() => {
    const next = document.querySelector('button.next');
    return next !== null && !next.hasAttribute('disabled');
}
"""


class ScrapeState(str, Enum):
    INIT = "init"
    FETCHING_PAGE = "fetching_page"
    EXTRACTING_CARDS = "extracting_cards"
    DECIDING_NEXT_PAGE = "deciding_next_page"
    DONE = "done"
    FAILED = "failed"


def build_search_url(base_url: str, query: str, location: str, page: int) -> str:
    params = {
        "keywords": query,
        "location": location,
        "start": (page - 1) * RESULTS_PER_PAGE,
        "position": 1,
        "pageNum": page,
    }
    return f"{base_url}?{urlencode(params)}"


class PaginationController:
    """Drives one search combination page by page until it has enough listings.

    Each state has one handler that does its work against the cursor and
    returns the next state. Any fault that escapes a handler (retries
    exhausted included) abandons the combination with
    ``CombinationFailedError``.
    """

    def __init__(
        self,
        page: Page,
        extractor: ListingExtractor,
        retry_policy: RetryPolicy,
        rate_limiter: RateLimiter,
        *,
        max_jobs: int,
        search_url: str,
        navigation_timeout: float = 30.0,
        card_wait_timeout: float = 10.0,
    ) -> None:
        self._page = page
        self._extractor = extractor
        self._retry = retry_policy
        self._limiter = rate_limiter
        self._max_jobs = max_jobs
        self._search_url = search_url
        self._navigation_timeout = navigation_timeout
        self._card_wait_timeout = card_wait_timeout
        self._handlers: dict[ScrapeState, Callable[[SearchCombination, PageCursor], ScrapeState]] = {
            ScrapeState.INIT: self._init,
            ScrapeState.FETCHING_PAGE: self._fetch_page,
            ScrapeState.EXTRACTING_CARDS: self._extract_cards,
            ScrapeState.DECIDING_NEXT_PAGE: self._decide_next_page,
        }

    @classmethod
    def from_settings(
        cls,
        page: Page,
        settings: Settings,
        retry_policy: RetryPolicy,
        rate_limiter: RateLimiter,
    ) -> PaginationController:
        extractor = ListingExtractor(
            page,
            retry_policy,
            detail_timeout=settings.detail_wait_timeout_seconds,
        )
        return cls(
            page,
            extractor,
            retry_policy,
            rate_limiter,
            max_jobs=settings.max_jobs_per_run,
            search_url=settings.search_url,
            navigation_timeout=settings.navigation_timeout_seconds,
            card_wait_timeout=settings.card_wait_timeout_seconds,
        )

    def scrape(self, combination: SearchCombination) -> list[ListingRecord]:
        cursor = PageCursor()
        state = ScrapeState.INIT
        try:
            while state is not ScrapeState.DONE:
                logger.debug("%s: %s (page %d)", combination.label, state.value, cursor.page_number)
                state = self._handlers[state](combination, cursor)
        except Exception as exc:
            logger.debug("%s: %s", combination.label, ScrapeState.FAILED.value)
            raise CombinationFailedError(combination, cursor.page_number, cursor.record_count) from exc

        logger.info(
            "%s: collected %d listings across %d page(s)",
            combination.label,
            cursor.record_count,
            cursor.page_number,
        )
        return list(cursor.records)

    def _url_for(self, combination: SearchCombination, page_number: int) -> str:
        return build_search_url(self._search_url, combination.query, combination.location, page_number)

    def _init(self, combination: SearchCombination, cursor: PageCursor) -> ScrapeState:
        self._limiter.pause(DelayKind.PRE_SEARCH)
        cursor.page_number = 1
        cursor.url = self._url_for(combination, 1)
        return ScrapeState.FETCHING_PAGE

    def _fetch_page(self, combination: SearchCombination, cursor: PageCursor) -> ScrapeState:
        url = cursor.url
        self._retry.execute(
            lambda: self._page.navigate(url, timeout=self._navigation_timeout),
            description=f"navigate to page {cursor.page_number}",
        )
        self._limiter.pause(DelayKind.PAGE_SETTLE)
        return ScrapeState.EXTRACTING_CARDS

    def _wait_for_cards(self) -> list[Any]:
        cards = self._page.wait_for_selector(CARD_SELECTOR, timeout=self._card_wait_timeout)
        if not cards:
            raise NoCardsFoundError(f"no elements matched {CARD_SELECTOR!r}")
        return cards

    def _extract_cards(self, combination: SearchCombination, cursor: PageCursor) -> ScrapeState:
        cards = self._retry.execute(
            self._wait_for_cards,
            max_attempts=CARD_WAIT_ATTEMPTS,
            description="wait for listing cards",
        )
        for card in cards:
            if cursor.record_count >= self._max_jobs:
                break
            self._limiter.pause(DelayKind.INTER_CARD)
            record = self._extractor.extract(card)
            if record is not None:
                cursor.records.append(record)
        return ScrapeState.DECIDING_NEXT_PAGE

    def has_next_page(self) -> bool:
        try:
            return bool(self._page.evaluate(NEXT_PAGE_SCRIPT))
        except Exception as exc:  # noqa: BLE001 - treat as last page
            logger.warning("could not check for a next page: %s", exc)
            return False

    def _decide_next_page(self, combination: SearchCombination, cursor: PageCursor) -> ScrapeState:
        if cursor.record_count >= self._max_jobs:
            return ScrapeState.DONE
        if not self.has_next_page():
            return ScrapeState.DONE
        cursor.page_number += 1
        cursor.url = self._url_for(combination, cursor.page_number)
        self._limiter.pause(DelayKind.INTER_PAGE)
        return ScrapeState.FETCHING_PAGE
