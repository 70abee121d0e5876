"""Tests for tag statistics."""

from datetime import datetime

import pytest

from webanalyzer.core.filter import Filter
from webanalyzer.db.schema import PageView, Session

D1 = datetime(2024, 5, 1, 10, 0)


def seed_tags(store):
    store.save([Session(visitor_id=visitor_id, session_id=1, time=D1, page_views=1) for visitor_id in (1, 2, 3, 4)])
    store.save(
        [
            PageView(
                visitor_id=1, session_id=1, time=D1, path="/", tag_keys=["author", "type"],
                tag_values=["John", "post"],
            ),
            PageView(visitor_id=2, session_id=1, time=D1, path="/", tag_keys=["author"], tag_values=["John"]),
            PageView(visitor_id=3, session_id=1, time=D1, path="/a", tag_keys=["author"], tag_values=["Alice"]),
            PageView(visitor_id=4, session_id=1, time=D1, path="/b"),
        ]
    )


def day_filter(**kwargs) -> Filter:
    return Filter(from_=D1, to=D1, **kwargs)


def test_keys(analyzer, store):
    seed_tags(store)
    author, kind = analyzer.tags.keys(day_filter())

    assert (author.key, author.visitors, author.views) == ("author", 3, 3)
    assert author.relative_visitors == pytest.approx(0.75)
    assert author.relative_views == pytest.approx(0.75)
    assert (kind.key, kind.visitors, kind.views) == ("type", 1, 1)


def test_breakdown(analyzer, store):
    seed_tags(store)
    stats = analyzer.tags.breakdown(day_filter(tag=["author"]))

    assert [(s.key, s.value, s.visitors) for s in stats] == [("author", "John", 2), ("author", "Alice", 1)]


def test_breakdown_needs_key(analyzer, store):
    seed_tags(store)

    assert analyzer.tags.breakdown(day_filter()) == []


def test_pages_filtered_by_tag_value(analyzer, store):
    seed_tags(store)
    stats = analyzer.pages.by_path(day_filter(tags={"author": "John"}))

    assert [(s.path, s.visitors) for s in stats] == [("/", 2)]


def test_pages_without_tag_value(analyzer, store):
    seed_tags(store)
    stats = analyzer.pages.by_path(day_filter(tags={"author": "!John"}))

    assert [(s.path, s.visitors) for s in stats] == [("/a", 1), ("/b", 1)]
