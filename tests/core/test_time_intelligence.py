"""Tests for growth rates and previous period shifting."""

from datetime import date, datetime, timedelta, timezone

import pytest

from webanalyzer.core.filter import Filter, today
from webanalyzer.core.time_intelligence import calculate_growth, previous_period


def utc(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "current,previous,expected",
    [
        (0, 0, 0.0),
        (5, 0, 1.0),
        (150, 100, 0.5),
        (50, 100, -0.5),
        (0, 10, -1.0),
        (0.75, 0.5, 0.5),
    ],
)
def test_calculate_growth(current, previous, expected):
    assert calculate_growth(current, previous) == pytest.approx(expected)


def test_previous_period_of_range():
    f = Filter(from_=date(2024, 5, 8), to=date(2024, 5, 14))
    f.validate()
    previous_period(f)

    assert f.from_ == utc(2024, 5, 1)
    assert f.to == utc(2024, 5, 7)
    assert not f.include_time


def test_previous_period_of_single_day():
    """A single past day is compared to the same weekday one week earlier."""
    f = Filter(from_=date(2024, 5, 8), to=date(2024, 5, 8))
    f.validate()
    previous_period(f)

    assert f.from_ == utc(2024, 5, 1)
    assert f.to == utc(2024, 5, 1)
    assert not f.include_time


def test_previous_period_of_today():
    f = Filter(from_=today(), to=today())
    f.validate()
    before = datetime.now(timezone.utc) - timedelta(days=7)
    previous_period(f)
    after = datetime.now(timezone.utc) - timedelta(days=7)

    assert f.from_ == today() - timedelta(days=7)
    assert before <= f.to <= after
    assert f.include_time


def test_previous_period_includes_imported_range():
    f = Filter(from_=date(2024, 5, 1), to=date(2024, 5, 10), imported_until=date(2024, 5, 5))
    f.validate()
    previous_period(f)

    assert f.to == utc(2024, 4, 30)
    assert f.from_ == utc(2024, 4, 21)
