"""SQLite database layer for the key/value store and the applied-jobs ledger."""

import json
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Any

from autoapply.core.schemas import AppliedRecord

_KV_TABLE = """
CREATE TABLE IF NOT EXISTS kv (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""

_APPLIED_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS applied_jobs (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    applied_date    TEXT    NOT NULL,
    title           TEXT    NOT NULL,
    company         TEXT    NOT NULL,
    title_key       TEXT    NOT NULL,
    company_key     TEXT    NOT NULL,
    location        TEXT    NOT NULL DEFAULT '',
    job_id          TEXT    NOT NULL DEFAULT '',
    match_score     INTEGER,
    submitted_at    TEXT    NOT NULL,
    form_snapshot   TEXT    NOT NULL DEFAULT '{}',
    UNIQUE(applied_date, title_key, company_key)
);
"""


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_KV_TABLE)
    conn.execute(_APPLIED_JOBS_TABLE)
    conn.commit()
    return conn


# --- key/value ---


def get_value(conn: sqlite3.Connection, key: str) -> Any | None:
    """Return the decoded JSON value stored under key, or None."""
    row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
    if row is None:
        return None
    return json.loads(row["value"])


def set_value(conn: sqlite3.Connection, key: str, value: Any) -> None:
    """Insert or replace the JSON-encoded value under key."""
    conn.execute(
        """
        INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?)
        ON CONFLICT(key) DO UPDATE SET
            value = excluded.value,
            updated_at = excluded.updated_at
        """,
        (key, json.dumps(value), datetime.now().isoformat()),
    )
    conn.commit()


def delete_value(conn: sqlite3.Connection, key: str) -> bool:
    """Delete key. Returns True if a row was removed."""
    cursor = conn.execute("DELETE FROM kv WHERE key = ?", (key,))
    conn.commit()
    return cursor.rowcount > 0


# --- applied jobs ledger ---


def _identity_key(text: str) -> str:
    return " ".join(text.split()).lower()


def insert_applied_record(conn: sqlite3.Connection, record: AppliedRecord) -> bool:
    """Append a record to its day's ledger, ignoring same-day (title, company) repeats.

    Returns True if a new row was inserted, False if it was a duplicate.
    """
    try:
        conn.execute(
            """
            INSERT INTO applied_jobs
                (applied_date, title, company, title_key, company_key,
                 location, job_id, match_score, submitted_at, form_snapshot)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.submitted_at.date().isoformat(),
                record.title,
                record.company,
                _identity_key(record.title),
                _identity_key(record.company),
                record.location,
                record.job_id,
                record.match_score,
                record.submitted_at.isoformat(),
                json.dumps(record.form_snapshot),
            ),
        )
        conn.commit()
        return True
    except sqlite3.IntegrityError:
        return False


def count_applied(conn: sqlite3.Connection, target_date: date | None = None) -> int:
    """Return how many applications were recorded today (or on the given date)."""
    d = (target_date or date.today()).isoformat()
    row = conn.execute(
        "SELECT COUNT(*) AS n FROM applied_jobs WHERE applied_date = ?", (d,),
    ).fetchone()
    return int(row["n"])


def list_applied(
    conn: sqlite3.Connection,
    target_date: date | None = None,
) -> list[AppliedRecord]:
    """Return the ledger for today (or the given date), oldest first."""
    d = (target_date or date.today()).isoformat()
    rows = conn.execute(
        """
        SELECT title, company, location, job_id, match_score, submitted_at, form_snapshot
        FROM applied_jobs WHERE applied_date = ? ORDER BY id
        """,
        (d,),
    ).fetchall()
    return [
        AppliedRecord(
            title=row["title"],
            company=row["company"],
            location=row["location"],
            job_id=row["job_id"],
            match_score=row["match_score"],
            submitted_at=datetime.fromisoformat(row["submitted_at"]),
            form_snapshot=json.loads(row["form_snapshot"]),
        )
        for row in rows
    ]


def is_applied(
    conn: sqlite3.Connection,
    title: str,
    company: str,
    target_date: date | None = None,
) -> bool:
    """Check whether (title, company) is already in the day's ledger."""
    d = (target_date or date.today()).isoformat()
    row = conn.execute(
        """
        SELECT 1 FROM applied_jobs
        WHERE applied_date = ? AND title_key = ? AND company_key = ?
        LIMIT 1
        """,
        (d, _identity_key(title), _identity_key(company)),
    ).fetchone()
    return row is not None
