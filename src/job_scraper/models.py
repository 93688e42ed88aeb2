from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ListingRecord:
    identifier: str
    title: str
    company: str
    location: str
    description: str
    salary: str | None
    job_type: str | None
    posted_date: str
    url: str

    def to_item(self, created_at_ms: int, ttl: int) -> dict[str, object]:
        return {
            "id": self.identifier,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "description": self.description,
            "salary": self.salary,
            "job_type": self.job_type,
            "posted_date": self.posted_date,
            "url": self.url,
            "created_at": created_at_ms,
            "ttl": ttl,
        }


@dataclass(frozen=True)
class RunRecord:
    run_id: str
    start_time: str
    end_time: str | None
    success: bool | None
    jobs_found: int
    error: str | None
    created_at: int

    @property
    def is_open(self) -> bool:
        return self.end_time is None


@dataclass(frozen=True)
class SearchCombination:
    query: str
    location: str

    @property
    def label(self) -> str:
        return f"{self.query} in {self.location}"


@dataclass
class PageCursor:
    """Transient pagination state for one search combination."""

    page_number: int = 1
    url: str = ""
    records: list[ListingRecord] = field(default_factory=list)

    @property
    def record_count(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class RunSummary:
    run_id: str
    success: bool
    jobs_found: int
    failed_combinations: list[str]
    error: str | None = None
