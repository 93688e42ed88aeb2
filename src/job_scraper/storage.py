from __future__ import annotations

import sqlite3
from collections.abc import Mapping, Sequence
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Protocol

JOBS_TABLE = "jobs"
SCRAPING_LOGS_TABLE = "scraping_logs"
MAX_BATCH_ITEMS = 25

_TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    JOBS_TABLE: (
        "id",
        "title",
        "company",
        "location",
        "description",
        "salary",
        "job_type",
        "posted_date",
        "url",
        "created_at",
        "ttl",
    ),
    SCRAPING_LOGS_TABLE: (
        "id",
        "start_time",
        "end_time",
        "success",
        "jobs_found",
        "error",
        "created_at",
    ),
}


class ItemStore(Protocol):
    def put_item(self, table: str, item: Mapping[str, Any]) -> None: ...

    def batch_put_items(self, table: str, items: Sequence[Mapping[str, Any]]) -> None: ...

    def update_item(self, table: str, key: str, fields: Mapping[str, Any]) -> None: ...

    def get_item(self, table: str, key: str) -> dict[str, Any] | None: ...


class StateStore(AbstractContextManager["StateStore"]):
    """Key/value style item store on sqlite.

    Every table is keyed by ``id``; puts are upserts, so writing an item
    with a known id replaces the stored values (last write wins).
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        with self.conn:
            self.conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {JOBS_TABLE} (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    company TEXT NOT NULL,
                    location TEXT NOT NULL DEFAULT '',
                    description TEXT NOT NULL DEFAULT '',
                    salary TEXT,
                    job_type TEXT,
                    posted_date TEXT NOT NULL DEFAULT '',
                    url TEXT NOT NULL DEFAULT '',
                    created_at INTEGER NOT NULL,
                    ttl INTEGER NOT NULL
                )
                """
            )
            self.conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {SCRAPING_LOGS_TABLE} (
                    id TEXT PRIMARY KEY,
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    success INTEGER,
                    jobs_found INTEGER NOT NULL DEFAULT 0,
                    error TEXT,
                    created_at INTEGER NOT NULL
                )
                """
            )

    def _columns(self, table: str, fields: Sequence[str]) -> tuple[str, ...]:
        try:
            known = _TABLE_COLUMNS[table]
        except KeyError:
            raise ValueError(f"unknown table: {table}") from None
        unknown = [name for name in fields if name not in known]
        if unknown:
            raise ValueError(f"unknown column(s) for {table}: {', '.join(unknown)}")
        return tuple(fields)

    def _upsert_sql(self, table: str, columns: tuple[str, ...]) -> str:
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(f"{name} = excluded.{name}" for name in columns if name != "id")
        conflict = f"DO UPDATE SET {updates}" if updates else "DO NOTHING"
        return (
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT(id) {conflict}"
        )

    def put_item(self, table: str, item: Mapping[str, Any]) -> None:
        self.batch_put_items(table, [item])

    def batch_put_items(self, table: str, items: Sequence[Mapping[str, Any]]) -> None:
        if len(items) > MAX_BATCH_ITEMS:
            raise ValueError(f"batch of {len(items)} items exceeds limit of {MAX_BATCH_ITEMS}")
        if not items:
            return
        columns = self._columns(table, list(items[0].keys()))
        if "id" not in columns:
            raise ValueError("items must carry an 'id'")
        rows = []
        for item in items:
            if tuple(item.keys()) != columns:
                raise ValueError("all items in a batch must share the same fields")
            rows.append(tuple(item[name] for name in columns))
        with self.conn:
            self.conn.executemany(self._upsert_sql(table, columns), rows)

    def update_item(self, table: str, key: str, fields: Mapping[str, Any]) -> None:
        columns = self._columns(table, [name for name in fields if name != "id"])
        if not columns:
            return
        assignments = ", ".join(f"{name} = ?" for name in columns)
        with self.conn:
            cursor = self.conn.execute(
                f"UPDATE {table} SET {assignments} WHERE id = ?",
                (*(fields[name] for name in columns), key),
            )
        if cursor.rowcount == 0:
            raise KeyError(f"{table} has no item with id {key!r}")

    def get_item(self, table: str, key: str) -> dict[str, Any] | None:
        self._columns(table, [])
        row = self.conn.execute(f"SELECT * FROM {table} WHERE id = ?", (key,)).fetchone()
        return dict(row) if row is not None else None

    def scan(self, table: str, limit: int | None = None) -> list[dict[str, Any]]:
        self._columns(table, [])
        sql = f"SELECT * FROM {table} ORDER BY created_at, id"
        params: tuple[Any, ...] = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        return [dict(row) for row in self.conn.execute(sql, params).fetchall()]

    def count(self, table: str) -> int:
        self._columns(table, [])
        row = self.conn.execute(f"SELECT COUNT(*) AS c FROM {table}").fetchone()
        return int(row["c"]) if row else 0

    def purge_expired(self, now_epoch_seconds: int) -> int:
        with self.conn:
            cursor = self.conn.execute(f"DELETE FROM {JOBS_TABLE} WHERE ttl <= ?", (now_epoch_seconds,))
        return cursor.rowcount

    def close(self) -> None:
        self.conn.close()

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.close()
