"""Tests for event statistics."""

from datetime import datetime, timedelta

import pytest

from webanalyzer.core.filter import Filter
from webanalyzer.db.schema import Event, Session

D1 = datetime(2024, 5, 1, 10, 0)


def seed_events(store):
    """Three visitors signing up, one of them also downloading a file."""
    store.save(
        [
            Session(visitor_id=1, session_id=1, time=D1, page_views=2),
            Session(visitor_id=2, session_id=1, time=D1, page_views=1, is_bounce=True),
            Session(visitor_id=3, session_id=1, time=D1, page_views=1, is_bounce=True),
        ]
    )
    store.save(
        [
            Event(
                visitor_id=1, session_id=1, time=D1, event_name="signup", duration_seconds=10,
                event_meta_keys=["plan"], event_meta_values=["pro"],
            ),
            Event(
                visitor_id=2, session_id=1, time=D1, event_name="signup", duration_seconds=20,
                event_meta_keys=["plan"], event_meta_values=["free"],
            ),
            Event(
                visitor_id=3, session_id=1, time=D1, event_name="signup", duration_seconds=30,
                event_meta_keys=["plan"], event_meta_values=["pro"],
            ),
            Event(
                visitor_id=1, session_id=1, time=D1 + timedelta(minutes=1), event_name="download",
                event_meta_keys=["file"], event_meta_values=["a.pdf"],
            ),
        ]
    )


def day_filter(**kwargs) -> Filter:
    return Filter(from_=D1, to=D1, **kwargs)


def test_events(analyzer, store):
    seed_events(store)
    signup, download = analyzer.events.events(day_filter())

    assert signup.name == "signup"
    assert (signup.count, signup.visitors, signup.views) == (3, 3, 4)
    assert signup.cr == pytest.approx(1.0)
    assert signup.average_duration_seconds == 20
    assert signup.meta_keys == ["plan"]
    assert download.name == "download"
    assert (download.count, download.visitors, download.views) == (1, 1, 2)
    assert download.cr == pytest.approx(1 / 3)
    assert download.meta_keys == ["file"]


def test_events_filtered_by_name(analyzer, store):
    seed_events(store)
    stats = analyzer.events.events(day_filter(event_name=["download"]))

    assert [(s.name, s.visitors) for s in stats] == [("download", 1)]


def test_breakdown(analyzer, store):
    seed_events(store)
    stats = analyzer.events.breakdown(day_filter(event_name=["signup"], event_meta_key=["plan"]))

    assert [(s.meta_value, s.count, s.visitors, s.views) for s in stats] == [("pro", 2, 2, 3), ("free", 1, 1, 1)]
    assert stats[0].cr == pytest.approx(2 / 3)
    assert stats[0].average_duration_seconds == 20


def test_breakdown_needs_name_and_key(analyzer, store):
    seed_events(store)

    assert analyzer.events.breakdown(day_filter(event_name=["signup"])) == []
    assert analyzer.events.breakdown(day_filter(event_meta_key=["plan"])) == []


def test_list(analyzer, store):
    seed_events(store)
    stats = analyzer.events.list(day_filter())

    assert [(s.name, s.meta, s.visitors, s.count) for s in stats] == [
        ("signup", {"plan": "pro"}, 2, 2),
        ("download", {"file": "a.pdf"}, 1, 1),
        ("signup", {"plan": "free"}, 1, 1),
    ]


def test_list_filtered_by_metadata(analyzer, store):
    seed_events(store)
    stats = analyzer.events.list(day_filter(event_name=["signup"], event_meta={"plan": "free"}))

    assert [(s.name, s.meta, s.count) for s in stats] == [("signup", {"plan": "free"}, 1)]


def test_total_with_conversion_rate(analyzer, store):
    seed_events(store)
    stats = analyzer.visitors.total(day_filter(event_name=["download"], include_cr=True))

    assert (stats.visitors, stats.sessions, stats.views) == (1, 1, 2)
    assert stats.cr == pytest.approx(1 / 3)


def test_total_without_event(analyzer, store):
    store.save(
        [
            Session(visitor_id=1, session_id=1, time=D1, page_views=3),
            Session(visitor_id=2, session_id=1, time=D1, page_views=1, is_bounce=True),
            Session(visitor_id=3, session_id=1, time=D1, page_views=2),
        ]
    )
    store.save([Event(visitor_id=1, session_id=1, time=D1, event_name="signup")])
    stats = analyzer.visitors.total(day_filter(event_name=["!signup"]))

    assert (stats.visitors, stats.sessions, stats.views, stats.bounces) == (2, 2, 3, 1)


def test_custom_metric(analyzer, store):
    store.save(
        [
            Session(visitor_id=1, session_id=1, time=D1, page_views=1),
            Session(visitor_id=2, session_id=1, time=D1, page_views=1),
        ]
    )
    store.save(
        [
            Event(
                visitor_id=1, session_id=1, time=D1, event_name="purchase",
                event_meta_keys=["amount"], event_meta_values=["10"],
            ),
            Event(
                visitor_id=2, session_id=1, time=D1, event_name="purchase",
                event_meta_keys=["currency", "amount"], event_meta_values=["EUR", "25"],
            ),
            Event(visitor_id=2, session_id=1, time=D1, event_name="signup"),
        ]
    )
    f = day_filter(event_name=["purchase"], custom_metric_key="amount", custom_metric_type="float")
    stats = analyzer.visitors.total(f)

    assert stats.visitors == 2
    assert stats.custom_metric_avg == pytest.approx(17.5)
    assert stats.custom_metric_total == pytest.approx(35)


def test_time_spent_growth_uses_event_duration(analyzer, store):
    seed_events(store)
    store.save(
        [
            Event(visitor_id=9, session_id=1, time=D1 - timedelta(days=7), event_name="signup", duration_seconds=30),
        ]
    )
    store.save([Session(visitor_id=9, session_id=1, time=D1 - timedelta(days=7), page_views=1)])
    growth = analyzer.visitors.growth(day_filter(event_name=["signup"]))

    assert growth.visitors_growth == pytest.approx(2.0)
    assert growth.time_spent_growth == pytest.approx(1.0)
