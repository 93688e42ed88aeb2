from urllib.parse import parse_qs, urlparse

import pytest

from fakes import FakeCard, FakePage, SleepRecorder, cards_for, detail_snapshot
from job_scraper.config import Settings
from job_scraper.exceptions import CombinationFailedError, NoCardsFoundError, RetriesExhaustedError
from job_scraper.models import SearchCombination
from job_scraper.pagination import PaginationController, build_search_url
from job_scraper.rate_limiter import DelayKind, RateLimiter
from job_scraper.retry import RetryPolicy

COMBINATION = SearchCombination(query="python developer", location="Remote")


def _controller(page: FakePage, *, max_jobs: int = 100, sleep: SleepRecorder | None = None, limiter=None):
    settings = Settings(max_jobs_per_run=max_jobs)
    retry = RetryPolicy(settings.max_retries, settings.base_delay_seconds, sleep=sleep or SleepRecorder())
    return PaginationController.from_settings(page, settings, retry, limiter or RateLimiter.disabled())


def _page_numbers(page: FakePage) -> list[int]:
    return [int(parse_qs(urlparse(url).query)["pageNum"][0]) for url in page.navigations]


def test_search_url_is_deterministic() -> None:
    url = build_search_url("https://www.linkedin.com/jobs/search/", "data engineer", "Berlin", 3)
    params = parse_qs(urlparse(url).query)

    assert url == build_search_url("https://www.linkedin.com/jobs/search/", "data engineer", "Berlin", 3)
    assert params == {
        "keywords": ["data engineer"],
        "location": ["Berlin"],
        "start": ["50"],
        "position": ["1"],
        "pageNum": ["3"],
    }


def test_stops_at_max_jobs_without_requesting_next_page() -> None:
    page = FakePage([cards_for("a", 3)])

    records = _controller(page, max_jobs=2).scrape(COMBINATION)

    assert [record.identifier for record in records] == ["a-1", "a-2"]
    assert _page_numbers(page) == [1]


def test_follows_pages_until_source_reports_last_page() -> None:
    page = FakePage([cards_for("p1", 2), cards_for("p2", 2)])

    records = _controller(page).scrape(COMBINATION)

    assert [record.identifier for record in records] == ["p1-1", "p1-2", "p2-1", "p2-2"]
    assert _page_numbers(page) == [1, 2]
    assert "start=25" in page.navigations[1]


@pytest.mark.parametrize("max_jobs", [1, 3, 4, 5, 9])
def test_never_returns_more_than_max_jobs(max_jobs: int) -> None:
    page = FakePage([cards_for("p1", 3), cards_for("p2", 3), cards_for("p3", 3)])

    records = _controller(page, max_jobs=max_jobs).scrape(COMBINATION)

    assert len(records) == min(max_jobs, 9)


def test_navigation_recovers_after_two_timeouts() -> None:
    sleep = SleepRecorder()
    page = FakePage([cards_for("a", 2)], navigation_failures=2)

    records = _controller(page, sleep=sleep).scrape(COMBINATION)

    assert len(records) == 2
    assert len(page.navigations) == 3
    assert sleep.calls == [1.0, 2.0]


def test_every_navigation_uses_the_thirty_second_timeout() -> None:
    page = FakePage([cards_for("p1", 1), cards_for("p2", 1)], navigation_failures=2)

    _controller(page).scrape(COMBINATION)

    assert page.navigation_timeouts == [30.0, 30.0, 30.0, 30.0]


def test_navigation_exhausting_retries_fails_the_combination() -> None:
    page = FakePage([cards_for("a", 2)], failing_queries=("python developer",))

    with pytest.raises(CombinationFailedError) as excinfo:
        _controller(page).scrape(COMBINATION)

    assert len(page.navigations) == 3
    assert excinfo.value.combination == COMBINATION
    assert excinfo.value.page == 1
    assert isinstance(excinfo.value.__cause__, RetriesExhaustedError)


def test_waits_for_late_rendering_cards() -> None:
    page = FakePage([cards_for("a", 1)], empty_card_waits=2)

    records = _controller(page).scrape(COMBINATION)

    assert len(records) == 1
    assert page.card_waits == 3


def test_missing_cards_after_all_attempts_fails_the_combination() -> None:
    page = FakePage([[]])

    with pytest.raises(CombinationFailedError) as excinfo:
        _controller(page).scrape(COMBINATION)

    assert page.card_waits == 3
    assert isinstance(excinfo.value.__cause__.__cause__, NoCardsFoundError)


def test_rejected_cards_are_skipped() -> None:
    cards = [
        FakeCard(detail_snapshot("1")),
        FakeCard(detail_snapshot("2", title="")),
        FakeCard(detail_snapshot("3")),
    ]
    page = FakePage([cards])

    records = _controller(page).scrape(COMBINATION)

    assert [record.identifier for record in records] == ["1", "3"]


def test_next_page_check_failure_ends_the_combination() -> None:
    class BrokenNextPage(FakePage):
        def evaluate(self, script, arg=None):
            if arg is None:
                raise RuntimeError("execution context was destroyed")
            return super().evaluate(script, arg)

    page = BrokenNextPage([cards_for("a", 2), cards_for("b", 2)])

    records = _controller(page).scrape(COMBINATION)

    assert len(records) == 2
    assert _page_numbers(page) == [1]


def test_pacing_points_are_applied_in_order() -> None:
    class RecordingLimiter(RateLimiter):
        def __init__(self) -> None:
            super().__init__()
            self.kinds: list[DelayKind] = []

        def pause(self, kind: DelayKind) -> float:
            self.kinds.append(kind)
            return 0.0

    limiter = RecordingLimiter()
    page = FakePage([cards_for("p1", 2), cards_for("p2", 1)])

    _controller(page, limiter=limiter).scrape(COMBINATION)

    assert limiter.kinds == [
        DelayKind.PRE_SEARCH,
        DelayKind.PAGE_SETTLE,
        DelayKind.INTER_CARD,
        DelayKind.INTER_CARD,
        DelayKind.INTER_PAGE,
        DelayKind.PAGE_SETTLE,
        DelayKind.INTER_CARD,
    ]
