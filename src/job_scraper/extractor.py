from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from job_scraper.models import ListingRecord
from job_scraper.page import Page
from job_scraper.retry import RetryPolicy

logger = logging.getLogger(__name__)

DETAIL_VIEW_SELECTOR = ".job-view-layout"
ACTIVATION_ATTEMPTS = 3

# Alternatives are tried in order; the first non-empty text wins.
FIELD_SELECTORS: dict[str, tuple[str, ...]] = {
    "title": (
        "h1.job-details-jobs-unified-top-card__job-title",
        ".job-details-jobs-unified-top-card__job-title",
    ),
    "company": (
        ".job-details-jobs-unified-top-card__company-name",
        'a[data-tracking-control-name="public_jobs_unified-top-card-job-company-name"]',
    ),
    "location": (
        ".job-details-jobs-unified-top-card__bullet",
        '[data-tracking-control-name="public_jobs_unified-top-card-job-location"]',
    ),
    "description": (
        '.job-view-layout [data-tracking-control-name="public_jobs_unified-top-card-job-details"]',
        ".job-details-jobs-unified-top-card__description-container",
    ),
    "job_type": (".job-details-jobs-unified-top-card__job-type",),
    "salary": (".job-details-jobs-unified-top-card__salary-range",),
    "posted_date": (".job-details-jobs-unified-top-card__posted-date",),
}
ID_SELECTORS = ("[data-job-id]", DETAIL_VIEW_SELECTOR)

DETAIL_SCRIPT = """
({card, fields, idSelectors}) => {
    const cardIdElement = card
        ? (card.hasAttribute('data-job-id') ? card : card.querySelector('[data-job-id]'))
        : null;
    const text = (selector) => {
        const element = document.querySelector(selector);
        return element && element.textContent ? element.textContent.trim() : '';
    };
    const values = {};
    for (const [name, selectors] of Object.entries(fields)) {
        values[name] = selectors.map(text);
    }
    const ids = idSelectors.map((selector) => {
        const element = document.querySelector(selector);
        return element ? element.getAttribute('data-job-id') || '' : '';
    });
    return {
        fields: values,
        cardId: cardIdElement ? cardIdElement.getAttribute('data-job-id') || '' : '',
        ids: ids,
        path: window.location.pathname,
        url: window.location.href,
    };
}
"""

REQUIRED_FIELDS = ("identifier", "title", "company")
OPTIONAL_FIELDS = ("location", "description", "salary", "job_type", "posted_date", "url")


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def first_non_empty(candidates: Any) -> str:
    if isinstance(candidates, str):
        return _clean(candidates)
    for candidate in candidates or ():
        cleaned = _clean(candidate)
        if cleaned:
            return cleaned
    return ""


def _identifier_from(snapshot: Mapping[str, Any]) -> str:
    # The clicked card's own id wins; page-wide lookups match the first card.
    identifier = _clean(snapshot.get("cardId")) or first_non_empty(snapshot.get("ids"))
    if identifier:
        return identifier
    segments = [segment for segment in _clean(snapshot.get("path")).split("/") if segment]
    return segments[-1] if segments else ""


def validate_listing(raw: Mapping[str, Any]) -> ListingRecord | None:
    """Build a ``ListingRecord`` from resolved field values.

    Returns ``None`` when identifier, title or company is blank. Blank salary
    and job type become ``None``; other text fields may be empty.
    """
    values = {key: _clean(raw.get(key)) for key in (*REQUIRED_FIELDS, *OPTIONAL_FIELDS)}
    missing = [key for key in REQUIRED_FIELDS if not values[key]]
    if missing:
        logger.warning("skipping listing with missing required fields: %s", ", ".join(missing))
        return None

    return ListingRecord(
        identifier=values["identifier"],
        title=values["title"],
        company=values["company"],
        location=values["location"],
        description=values["description"],
        salary=values["salary"] or None,
        job_type=values["job_type"] or None,
        posted_date=values["posted_date"],
        url=values["url"],
    )


def resolve_snapshot(snapshot: Mapping[str, Any]) -> dict[str, str]:
    fields = snapshot.get("fields") or {}
    resolved = {name: first_non_empty(fields.get(name)) for name in FIELD_SELECTORS}
    resolved["identifier"] = _identifier_from(snapshot)
    resolved["url"] = _clean(snapshot.get("url"))
    return resolved


class ListingExtractor:
    def __init__(
        self,
        page: Page,
        retry_policy: RetryPolicy,
        *,
        detail_timeout: float = 5.0,
        activation_attempts: int = ACTIVATION_ATTEMPTS,
    ) -> None:
        self._page = page
        self._retry = retry_policy
        self._detail_timeout = detail_timeout
        self._activation_attempts = activation_attempts

    def _activate(self, card: Any) -> None:
        self._page.click(card, timeout=self._detail_timeout)
        self._page.wait_for_selector(DETAIL_VIEW_SELECTOR, timeout=self._detail_timeout)

    def extract(self, card: Any) -> ListingRecord | None:
        self._retry.execute(
            lambda: self._activate(card),
            max_attempts=self._activation_attempts,
            description="open listing details",
        )
        snapshot = self._page.evaluate(
            DETAIL_SCRIPT,
            {"card": card, "fields": FIELD_SELECTORS, "idSelectors": list(ID_SELECTORS)},
        )
        record = validate_listing(resolve_snapshot(snapshot or {}))
        if record is not None:
            logger.debug("scraped listing %s: %s at %s", record.identifier, record.title, record.company)
        return record
