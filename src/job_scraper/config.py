from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path
from typing import Literal, Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator

from job_scraper.models import SearchCombination
from job_scraper.rate_limiter import DEFAULT_DELAY_WINDOWS, DelayKind, DelayWindow

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DB_PATH = PROJECT_ROOT / "data" / "jobs.sqlite"
DEFAULT_SEARCH_URL = "https://www.linkedin.com/jobs/search/"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)

_TRUE_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    search_queries: list[str] = Field(default_factory=lambda: ["software engineer"], min_length=1)
    locations: list[str] = Field(default_factory=lambda: ["United States"], min_length=1)
    max_jobs_per_run: int = Field(default=100, ge=1)
    max_retries: int = Field(default=3, ge=1)
    base_delay_seconds: float = Field(default=1.0, ge=0.0)
    retention_days: int = Field(default=30, ge=1)
    navigation_timeout_seconds: float = Field(default=30.0, gt=0.0)
    card_wait_timeout_seconds: float = Field(default=10.0, gt=0.0)
    detail_wait_timeout_seconds: float = Field(default=5.0, gt=0.0)
    search_url: str = DEFAULT_SEARCH_URL
    db_path: Path = Field(default=DEFAULT_DB_PATH)
    user_agent: str = DEFAULT_USER_AGENT
    headless: bool = True
    log_level: str = "INFO"
    log_format: Literal["key-value", "json"] = "key-value"
    delay_windows: dict[DelayKind, DelayWindow] = Field(
        default_factory=lambda: dict(DEFAULT_DELAY_WINDOWS)
    )

    @field_validator("search_queries", "locations")
    @classmethod
    def _strip_blank_entries(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value if item.strip()]
        if not cleaned:
            raise ValueError("at least one non-blank entry is required")
        return cleaned

    @field_validator("search_url")
    @classmethod
    def _validate_search_url(cls, value: str) -> str:
        if not value.startswith("https://"):
            raise ValueError("SEARCH_URL must use https://")
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"invalid log level: {value}")
        return level

    def combinations(self) -> Iterator[SearchCombination]:
        for query in self.search_queries:
            for location in self.locations:
                yield SearchCombination(query=query, location=location)


def _env_value(environ: Mapping[str, str], key: str) -> str:
    return environ.get(key, "").strip()


def _parse_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    source = os.environ if environ is None else environ
    payload: dict[str, object] = {
        "max_jobs_per_run": int(_env_value(source, "MAX_JOBS_PER_RUN") or "100"),
        "max_retries": int(_env_value(source, "MAX_RETRIES") or "3"),
        "base_delay_seconds": float(_env_value(source, "BASE_DELAY_SECONDS") or "1"),
        "retention_days": int(_env_value(source, "RETENTION_DAYS") or "30"),
        "navigation_timeout_seconds": float(_env_value(source, "NAVIGATION_TIMEOUT_SECONDS") or "30"),
        "card_wait_timeout_seconds": float(_env_value(source, "CARD_WAIT_TIMEOUT_SECONDS") or "10"),
        "detail_wait_timeout_seconds": float(_env_value(source, "DETAIL_WAIT_TIMEOUT_SECONDS") or "5"),
        "search_url": _env_value(source, "SEARCH_URL") or DEFAULT_SEARCH_URL,
        "db_path": Path(_env_value(source, "DB_PATH") or DEFAULT_DB_PATH),
        "user_agent": _env_value(source, "USER_AGENT") or DEFAULT_USER_AGENT,
        "headless": (_env_value(source, "HEADLESS") or "true").lower() in _TRUE_VALUES,
        "log_level": _env_value(source, "LOG_LEVEL") or "INFO",
        "log_format": _env_value(source, "LOG_FORMAT") or "key-value",
    }
    queries = _parse_csv(_env_value(source, "SEARCH_QUERIES"))
    if queries:
        payload["search_queries"] = queries
    locations = _parse_csv(_env_value(source, "LOCATIONS"))
    if locations:
        payload["locations"] = locations

    try:
        return Settings(**payload)
    except ValidationError as exc:
        raise ValueError(str(exc)) from exc
