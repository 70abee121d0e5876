"""Tests for time on page, session duration and event duration queries."""

from datetime import date, datetime, timedelta

from webanalyzer.core.filter import Filter
from webanalyzer.db.schema import Event, ImportedVisitors, PageView, Session
from webanalyzer.sql.derived import (
    avg_time_on_page,
    avg_time_on_page_by_path,
    time_on_page_expression,
    total_event_duration,
    total_imported_session_duration,
    total_session_duration,
    total_time_on_page,
)

DAY = datetime(2024, 5, 1, 9, 0)


def validated(**kwargs) -> Filter:
    f = Filter(from_=DAY, to=DAY, **kwargs)
    f.validate()
    return f


def seed_page_views(store):
    """One session whose page views were followed after 180, 120, 600 and 600 seconds."""
    durations = [0, 180, 120, 600, 600]
    paths = ["/", "/a", "/b", "/c", "/d"]
    elapsed = 0
    page_views = []

    for path, duration in zip(paths, durations):
        elapsed += duration
        page_views.append(
            PageView(
                visitor_id=1,
                session_id=1,
                time=DAY + timedelta(seconds=elapsed),
                path=path,
                duration_seconds=duration,
            )
        )

    store.save(page_views)


def test_time_on_page_expression():
    assert time_on_page_expression(validated()) == (
        "nth_value(v.duration_seconds, 2) OVER (PARTITION BY v.visitor_id, v.session_id "
        "ORDER BY v.time ROWS BETWEEN CURRENT ROW AND 1 FOLLOWING)"
    )
    assert "nth_value(least(v.duration_seconds, 200), 2)" in time_on_page_expression(
        validated(max_time_on_page_seconds=200)
    )


def test_total_time_on_page_is_capped(store):
    seed_page_views(store)
    f = validated(max_time_on_page_seconds=200)

    assert store.count(f.ctx, *total_time_on_page(f)) == 700


def test_total_time_on_page_without_cap(store):
    seed_page_views(store)
    f = validated()

    assert store.count(f.ctx, *total_time_on_page(f)) == 1500


def test_avg_time_on_page(store):
    seed_page_views(store)
    f = validated(max_time_on_page_seconds=200)

    assert store.count(f.ctx, *avg_time_on_page(f)) == 175


def test_path_filter_keeps_following_page_view(store):
    """Filtering by path must not change which page view follows another."""
    seed_page_views(store)
    f = validated(path=["/b"])

    assert store.count(f.ctx, *total_time_on_page(f)) == 600


def test_avg_time_on_page_by_path(store):
    seed_page_views(store)
    store.save(
        [
            PageView(visitor_id=2, session_id=1, time=DAY, path="/a"),
            PageView(visitor_id=2, session_id=1, time=DAY + timedelta(seconds=60), path="/", duration_seconds=60),
        ]
    )
    f = validated()
    sql, args = avg_time_on_page_by_path(f, ["/", "/a", "/d"])
    rows = {row["path"]: row["average_time_spent_seconds"] for row in store.query(f.ctx, sql, args)}

    assert rows == {"/": 180, "/a": 90}


def test_total_session_duration(store):
    first = Session(visitor_id=1, session_id=1, time=DAY, duration_seconds=30)
    store.save(
        [
            first,
            first.model_copy(update={"sign": -1}),
            Session(visitor_id=1, session_id=1, time=DAY + timedelta(minutes=2), duration_seconds=120),
            Session(visitor_id=2, session_id=1, time=DAY, duration_seconds=45),
        ]
    )
    f = validated()

    assert store.count(f.ctx, *total_session_duration(f)) == 165


def test_total_session_duration_by_path(store):
    store.save(
        [
            Session(visitor_id=1, session_id=1, time=DAY, duration_seconds=120),
            Session(visitor_id=2, session_id=1, time=DAY, duration_seconds=45),
        ]
    )
    store.save(
        [
            PageView(visitor_id=1, session_id=1, time=DAY, path="/pricing"),
            PageView(visitor_id=2, session_id=1, time=DAY, path="/"),
        ]
    )
    f = validated(path=["/pricing"])
    sql, args = total_session_duration(f)

    assert "INNER JOIN (SELECT v.visitor_id, v.session_id FROM page_view v" in sql
    assert store.count(f.ctx, sql, args) == 120


def test_total_imported_session_duration(store):
    store.save(
        [
            ImportedVisitors(date=date(2024, 4, 29), session_duration=300),
            ImportedVisitors(date=date(2024, 4, 30), session_duration=200),
        ]
    )
    f = Filter(from_=date(2024, 4, 30), to=DAY, imported_until=DAY)
    f.validate()

    assert total_imported_session_duration(validated()) is None
    assert store.count(f.ctx, *total_imported_session_duration(f)) == 200


def test_total_event_duration(store):
    store.save(
        [
            Event(visitor_id=1, session_id=1, time=DAY, event_name="video", duration_seconds=30),
            Event(visitor_id=2, session_id=1, time=DAY, event_name="video", duration_seconds=50),
            Event(visitor_id=2, session_id=1, time=DAY, event_name="signup", duration_seconds=5),
        ]
    )
    f = validated(event_name=["video"])

    assert store.count(f.ctx, *total_event_duration(f)) == 80
