from __future__ import annotations

import argparse
import time

from job_scraper.config import load_settings
from job_scraper.logging_config import configure_logging
from job_scraper.pipeline import run_pipeline
from job_scraper.storage import JOBS_TABLE, StateStore


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="job-scraper")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Scrape every configured query/location and store the listings")
    subparsers.add_parser("healthcheck", help="Validate config and local storage readiness")
    subparsers.add_parser("purge-expired", help="Delete stored listings past their retention window")

    return parser


def _cmd_run() -> int:
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_format)
    result = run_pipeline(settings)

    print(
        "run summary:",
        f"run_id={result.run_id}",
        f"success={result.success}",
        f"jobs_found={result.jobs_found}",
        f"failed_combinations={len(result.failed_combinations)}",
    )
    if result.error:
        print(f"error: {result.error}")

    return 0 if result.success else 1


def _cmd_healthcheck() -> int:
    settings = load_settings()
    combinations = list(settings.combinations())

    try:
        with StateStore(settings.db_path) as store:
            stored = store.count(JOBS_TABLE)
    except Exception as exc:
        print(f"state db check failed: {exc}")
        return 1

    print(f"{len(combinations)} search combination(s) configured, max {settings.max_jobs_per_run} listings each")
    print(f"state db ready: {settings.db_path} ({stored} listings stored)")
    print("healthcheck passed")
    return 0


def _cmd_purge_expired() -> int:
    settings = load_settings()
    with StateStore(settings.db_path) as store:
        removed = store.purge_expired(int(time.time()))
    print(f"removed {removed} expired listing(s)")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "run":
            return _cmd_run()
        if args.command == "healthcheck":
            return _cmd_healthcheck()
        if args.command == "purge-expired":
            return _cmd_purge_expired()
    except ValueError as exc:
        print(exc)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
