"""Tests for the database layer: init, key/value store, applied-jobs ledger."""

from datetime import date, datetime, timedelta

import pytest

from autoapply.core.db import (
    count_applied,
    delete_value,
    get_value,
    init_db,
    insert_applied_record,
    is_applied,
    list_applied,
    set_value,
)
from autoapply.core.schemas import AppliedRecord


def _record(title: str = "X", company: str = "Y", **kw: object) -> AppliedRecord:
    return AppliedRecord(title=title, company=company, **kw)  # type: ignore[arg-type]


@pytest.fixture()
def db(tmp_path):  # type: ignore[no-untyped-def]
    """Provide a fresh SQLite connection per test."""
    return init_db(tmp_path / "test.db")


class TestInitDb:
    def test_creates_tables(self, db) -> None:  # type: ignore[no-untyped-def]
        tables = {
            row[0]
            for row in db.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }
        assert "kv" in tables
        assert "applied_jobs" in tables

    def test_idempotent(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        """Calling init_db twice on the same path doesn't error."""
        p = tmp_path / "double.db"
        init_db(p).close()
        conn = init_db(p)
        assert conn is not None

    def test_creates_parent_directory(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        p = tmp_path / "nested" / "dir" / "app.db"
        init_db(p).close()
        assert p.exists()


# ---------------------------------------------------------------------------
# Key/value
# ---------------------------------------------------------------------------


class TestKeyValue:
    def test_missing_key(self, db) -> None:  # type: ignore[no-untyped-def]
        assert get_value(db, "cursor") is None

    def test_roundtrip_json(self, db) -> None:  # type: ignore[no-untyped-def]
        set_value(db, "cursor", {"campaign_index": 1, "campaigns": [{"title": "Dev"}]})
        assert get_value(db, "cursor") == {"campaign_index": 1, "campaigns": [{"title": "Dev"}]}

    def test_overwrite(self, db) -> None:  # type: ignore[no-untyped-def]
        set_value(db, "control", {"command": "pause"})
        set_value(db, "control", {"command": "stop"})
        assert get_value(db, "control") == {"command": "stop"}
        assert db.execute("SELECT COUNT(*) FROM kv").fetchone()[0] == 1

    def test_delete(self, db) -> None:  # type: ignore[no-untyped-def]
        set_value(db, "cursor", {})
        assert delete_value(db, "cursor") is True
        assert delete_value(db, "cursor") is False
        assert get_value(db, "cursor") is None


# ---------------------------------------------------------------------------
# Applied-jobs ledger
# ---------------------------------------------------------------------------


class TestAppliedLedger:
    def test_insert_new(self, db) -> None:  # type: ignore[no-untyped-def]
        assert insert_applied_record(db, _record()) is True
        assert count_applied(db) == 1

    def test_same_day_duplicate_rejected(self, db) -> None:  # type: ignore[no-untyped-def]
        assert insert_applied_record(db, _record(title="X", company="Y")) is True
        assert insert_applied_record(db, _record(title="X", company="Y")) is False
        assert count_applied(db) == 1

    def test_duplicate_ignores_case_and_whitespace(self, db) -> None:  # type: ignore[no-untyped-def]
        insert_applied_record(db, _record(title="Python Developer", company="Acme"))
        assert insert_applied_record(db, _record(title=" python  developer", company="ACME")) is False

    def test_same_job_next_day_allowed(self, db) -> None:  # type: ignore[no-untyped-def]
        yesterday = datetime.now() - timedelta(days=1)
        insert_applied_record(db, _record(submitted_at=yesterday))
        assert insert_applied_record(db, _record()) is True
        assert count_applied(db) == 1
        assert count_applied(db, yesterday.date()) == 1

    def test_list_roundtrip(self, db) -> None:  # type: ignore[no-untyped-def]
        insert_applied_record(
            db,
            _record(
                title="Python Developer",
                company="Acme",
                location="Berlin",
                job_id="123",
                match_score=4,
                form_snapshot={"Years of experience": "6"},
            ),
        )
        records = list_applied(db)
        assert len(records) == 1
        assert records[0].title == "Python Developer"
        assert records[0].match_score == 4
        assert records[0].form_snapshot == {"Years of experience": "6"}

    def test_list_other_day_empty(self, db) -> None:  # type: ignore[no-untyped-def]
        insert_applied_record(db, _record())
        assert list_applied(db, date.today() - timedelta(days=3)) == []

    def test_is_applied(self, db) -> None:  # type: ignore[no-untyped-def]
        insert_applied_record(db, _record(title="X", company="Y"))
        assert is_applied(db, "X", "Y") is True
        assert is_applied(db, "x", " y ") is True
        assert is_applied(db, "X", "Z") is False
