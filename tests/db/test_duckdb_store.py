"""Tests for the DuckDB store."""

from datetime import datetime, timedelta, timezone

import pytest

from webanalyzer.core.context import Context
from webanalyzer.core.statistics import TotalVisitorStats
from webanalyzer.db.duckdb import DuckDBStore
from webanalyzer.db.schema import Event, ImportedPage, PageView, Session
from webanalyzer.validation import QueryCancelledError

DAY = datetime(2024, 5, 1, 10, 0)


def table_names(store) -> set[str]:
    sql = "SELECT table_name FROM information_schema.tables WHERE table_type = 'BASE TABLE'"
    rows = store.query(Context.background(), sql, [])
    return {row["table_name"] for row in rows}


def test_schema_is_created(store):
    assert table_names(store) == {
        "session",
        "page_view",
        "event",
        "imported_visitors",
        "imported_page",
        "imported_entry_page",
        "imported_exit_page",
        "imported_referrer",
    }


def test_schema_creation_can_be_skipped():
    store = DuckDBStore(":memory:", create_schema=False)

    assert table_names(store) == set()
    store.close()


def test_schema_creation_is_idempotent(store):
    store.create_schema()

    assert "session" in table_names(store)


def test_save_and_count(store):
    ctx = Context.background()
    store.save([PageView(visitor_id=1, time=DAY, path="/"), PageView(visitor_id=2, time=DAY, path="/foo")])
    store.save([Event(visitor_id=1, time=DAY, event_name="signup", event_meta_keys=["plan"], event_meta_values=["pro"])])

    assert store.count(ctx, "SELECT count(*) FROM page_view", []) == 2
    assert store.query(ctx, "SELECT event_meta_keys, event_meta_values FROM event", []) == [
        {"event_meta_keys": ["plan"], "event_meta_values": ["pro"]}
    ]


def test_save_nothing(store):
    store.save([])

    assert store.count(Context.background(), "SELECT count(*) FROM session", []) == 0


def test_session_start_defaults_to_time(store):
    store.save([Session(visitor_id=1, time=DAY, is_bounce=True)])
    row = store.query_row(Context.background(), "SELECT start, sign, is_bounce FROM session", [])

    assert row == {"start": DAY, "sign": 1, "is_bounce": 1}


def test_aware_timestamps_are_stored_as_utc(store):
    berlin = timezone(timedelta(hours=2))
    store.save([PageView(visitor_id=1, time=datetime(2024, 5, 1, 12, 0, tzinfo=berlin))])
    row = store.query_row(Context.background(), "SELECT time FROM page_view", [])

    assert row["time"] == datetime(2024, 5, 1, 10, 0)


def test_imported_rows(store):
    store.save([ImportedPage(date=DAY.date(), path="/", visitors=5)])

    assert store.count(Context.background(), "SELECT sum(visitors) FROM imported_page", []) == 5


def test_count_null_is_zero(store):
    assert store.count(Context.background(), "SELECT sum(page_views) FROM session", []) == 0


def test_count_without_rows_is_zero(store):
    assert store.count(Context.background(), "SELECT 1 FROM session", []) == 0


def test_query_row_without_rows(store):
    assert store.query_row(Context.background(), "SELECT * FROM session", []) is None


def test_select_one_without_rows_is_empty(store):
    stats = store.select_one(Context.background(), TotalVisitorStats, "SELECT * FROM session WHERE false", [])

    assert stats.visitors == 0
    assert stats.bounce_rate == 0


def test_select_decodes_rows(store):
    rows = store.select(
        Context.background(),
        TotalVisitorStats,
        "SELECT 3 AS visitors, 4 AS sessions, 0.5::DECIMAL(10, 2) AS bounce_rate",
        [],
    )

    assert rows[0].visitors == 3
    assert rows[0].bounce_rate == pytest.approx(0.5)


def test_session_timezone_is_utc(store):
    row = store.query_row(Context.background(), "SELECT current_setting('TimeZone') AS tz", [])

    assert row["tz"] == "UTC"


def test_cancelled_context(store):
    ctx = Context()
    ctx.cancel()

    with pytest.raises(QueryCancelledError, match="cancelled"):
        store.query(ctx, "SELECT 1", [])


def test_expired_deadline(store):
    with pytest.raises(QueryCancelledError, match="deadline"):
        store.query(Context.with_timeout(0), "SELECT 1", [])


def test_database_errors_propagate(store):
    with pytest.raises(Exception, match="missing_table"):
        store.query(Context.background(), "SELECT * FROM missing_table", [])


class TestFromUrl:
    def test_memory(self):
        for url in ("duckdb:///:memory:", "duckdb://:memory:", "duckdb://"):
            store = DuckDBStore.from_url(url)

            assert store.path == ":memory:"
            store.close()

    def test_file(self, tmp_path):
        path = tmp_path / "analytics.duckdb"
        store = DuckDBStore.from_url(f"duckdb://{path}")
        store.save([Session(visitor_id=1, time=DAY)])
        store.close()

        reopened = DuckDBStore(str(path))

        assert reopened.count(Context.background(), "SELECT count(*) FROM session", []) == 1
        reopened.close()

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid DuckDB URL"):
            DuckDBStore.from_url("postgres://localhost/analytics")
