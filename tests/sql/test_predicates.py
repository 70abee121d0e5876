"""Tests for compiling filter dimensions into SQL predicates."""

from datetime import date, datetime

import pytest

from webanalyzer.core.fields import Field, Table
from webanalyzer.core.filter import PERIOD_MONTH, PERIOD_WEEK, WEEKDAY_SUNDAY, Filter, Search
from webanalyzer.sql.predicates import (
    compile_array_contains,
    compile_array_map,
    compile_platform,
    compile_values,
    field_predicates,
    local_time,
    sample_predicate,
    time_bucket,
    time_predicate,
)


def validated(**kwargs) -> Filter:
    f = Filter(**kwargs)
    f.validate()
    return f


class TestCompileValues:
    def test_single_value(self):
        assert compile_values("v.path", ["/"]) == ("v.path = ?", ["/"])

    def test_values_are_ored(self):
        assert compile_values("v.path", ["/", "/foo"]) == ("(v.path = ? OR v.path = ?)", ["/", "/foo"])

    def test_negation(self):
        assert compile_values("v.path", ["!/"]) == ("coalesce(v.path, '') != ?", ["/"])

    def test_negations_are_anded_to_positives(self):
        sql, args = compile_values("v.path", ["/a", "!/b", "/c"])

        assert sql == "((v.path = ? OR v.path = ?) AND coalesce(v.path, '') != ?)"
        assert args == ["/a", "/c", "/b"]

    def test_null(self):
        assert compile_values("t.referrer", ["null"]) == ("coalesce(t.referrer, '') = ''", [])
        assert compile_values("t.referrer", ["!NULL"]) == ("coalesce(t.referrer, '') != ''", [])

    def test_regex(self):
        assert compile_values("v.path", ["^/blog"], regex=True) == ("regexp_matches(v.path, ?)", ["^/blog"])
        assert compile_values("v.path", ["!^/blog"], regex=True) == (
            "NOT regexp_matches(coalesce(v.path, ''), ?)",
            ["^/blog"],
        )

    def test_empty(self):
        assert compile_values("v.path", []) == ("", [])


class TestArrays:
    def test_map_value(self):
        sql, args = compile_array_map("v.tag_keys", "v.tag_values", {"author": "John"})

        assert sql == "v.tag_values[list_position(v.tag_keys, ?)] = ?"
        assert args == ["author", "John"]

    def test_map_negated_value(self):
        sql, args = compile_array_map("v.tag_keys", "v.tag_values", {"author": "!John"})

        assert sql == "coalesce(v.tag_values[list_position(v.tag_keys, ?)], '') != ?"
        assert args == ["author", "John"]

    def test_map_null(self):
        assert compile_array_map("v.tag_keys", "v.tag_values", {"author": "null"}) == (
            "NOT list_contains(v.tag_keys, ?)",
            ["author"],
        )
        assert compile_array_map("v.tag_keys", "v.tag_values", {"author": "!null"}) == (
            "list_contains(v.tag_keys, ?)",
            ["author"],
        )

    def test_contains(self):
        sql, args = compile_array_contains("e.event_meta_keys", ["plan", "!trial"])

        assert sql == "list_contains(e.event_meta_keys, ?) AND NOT list_contains(e.event_meta_keys, ?)"
        assert args == ["plan", "trial"]


@pytest.mark.parametrize(
    "platform,expected",
    [
        ("desktop", "t.desktop = 1"),
        ("!desktop", "t.desktop = 0"),
        ("Mobile", "t.mobile = 1"),
        ("unknown", "(t.desktop = 0 AND t.mobile = 0)"),
        ("!unknown", "NOT (t.desktop = 0 AND t.mobile = 0)"),
        ("tablet", ""),
    ],
)
def test_compile_platform(platform, expected):
    assert compile_platform("t", platform) == expected


class TestTime:
    def test_time_predicate_by_day(self):
        f = validated(client_id=1, from_=date(2024, 5, 1), to=date(2024, 5, 3))
        sql, args = time_predicate(f, "t")

        assert sql == "t.client_id = ? AND CAST(t.time AS DATE) >= ? AND CAST(t.time AS DATE) <= ?"
        assert args == [1, date(2024, 5, 1), date(2024, 5, 3)]

    def test_time_predicate_in_timezone(self):
        f = validated(from_=date(2024, 5, 1), timezone="Europe/Berlin")
        sql, _ = time_predicate(f, "v")

        assert "CAST(timezone('Europe/Berlin', v.time::TIMESTAMPTZ) AS DATE) >= ?" in sql

    def test_time_predicate_with_time_of_day(self):
        f = validated(from_=datetime(2024, 5, 1, 10, 30), include_time=True)
        sql, args = time_predicate(f, "t")

        assert sql == "t.client_id = ? AND t.time >= ?"
        assert args == [0, datetime(2024, 5, 1, 10, 30)]
        assert args[1].tzinfo is None

    def test_time_predicate_without_range(self):
        assert time_predicate(validated(client_id=5), "e") == ("e.client_id = ?", [5])

    def test_local_time(self):
        assert local_time("t.time", validated()) == "t.time"
        assert local_time("t.time", validated(timezone="America/New_York")) == (
            "timezone('America/New_York', t.time::TIMESTAMPTZ)"
        )

    def test_day_bucket(self):
        assert time_bucket("day", "t.time", validated()) == "CAST(t.time AS DATE)"
        assert time_bucket("day", "t.time", validated(period=PERIOD_MONTH)) == (
            "CAST(date_trunc('month', t.time) AS DATE)"
        )
        assert time_bucket("day", "t.time", validated(period=PERIOD_WEEK)) == "CAST(date_trunc('week', t.time) AS DATE)"

    def test_week_starting_sunday(self):
        f = validated(period=PERIOD_WEEK, weekday_mode=WEEKDAY_SUNDAY)

        assert time_bucket("day", "t.time", f) == (
            "CAST(date_trunc('week', t.time + INTERVAL 1 DAY) - INTERVAL 1 DAY AS DATE)"
        )

    def test_weekday_bucket(self):
        assert time_bucket("weekday", "v.time", validated()) == "isodow(v.time)"
        assert time_bucket("weekday", "v.time", validated(weekday_mode=WEEKDAY_SUNDAY)) == "(dayofweek(v.time) + 1)"

    def test_hour_bucket_of_imported_dates(self):
        assert time_bucket("hour", "v.time", validated()) == "hour(v.time)"
        assert time_bucket("hour", "date", validated(), is_date=True) == "0"

    def test_unknown_bucket(self):
        with pytest.raises(ValueError, match="Unknown time bucket"):
            time_bucket("second", "v.time", validated())


def test_sample_predicate():
    assert sample_predicate(validated(sample=0.25), "t") == ("hash(t.visitor_id) % 10000 < ?", [2500])
    assert sample_predicate(validated(sample=0), "t") == ("", [])
    assert sample_predicate(validated(sample=1), "t") == ("", [])


class TestFieldPredicates:
    def test_predicates_are_scoped_to_their_table(self):
        f = validated(path=["/"], entry_path=["/home"], country=["de"])

        assert field_predicates(f, Table.PAGE_VIEWS, "v") == (["v.path = ?", "v.country_code = ?"], ["/", "de"])
        assert field_predicates(f, Table.SESSIONS, "t") == (
            ["t.entry_path = ?", "t.country_code = ?"],
            ["/home", "de"],
        )

    def test_tags_on_page_views_only(self):
        f = validated(tags={"author": "John"}, tag=["type"])
        parts, args = field_predicates(f, Table.PAGE_VIEWS, "v")

        assert parts == [
            "v.tag_values[list_position(v.tag_keys, ?)] = ?",
            "list_contains(v.tag_keys, ?)",
        ]
        assert args == ["author", "John", "type"]
        assert field_predicates(f, Table.SESSIONS, "t") == ([], [])

    def test_event_predicates(self):
        f = validated(event_name=["signup"], event_meta={"plan": "pro"})
        parts, args = field_predicates(f, Table.EVENTS, "e")

        assert parts == ["e.event_name = ?", "e.event_meta_values[list_position(e.event_meta_keys, ?)] = ?"]
        assert args == ["signup", "plan", "pro"]

    def test_visitor_and_session(self):
        f = validated(visitor_id=1, session_id=2)

        assert field_predicates(f, Table.SESSIONS, "t") == (
            ["t.visitor_id = ? AND t.session_id = ?"],
            [1, 2],
        )

    def test_search(self):
        f = validated(search=[Search(Field.PATH, "blog"), Search(Field.EVENT_NAME, "sign")])

        assert field_predicates(f, Table.PAGE_VIEWS, "v") == (["v.path ILIKE ?"], ["%blog%"])
        assert field_predicates(f, Table.EVENTS, "e") == (
            ["e.path ILIKE ?", "e.event_name ILIKE ?"],
            ["%blog%", "%sign%"],
        )

    def test_any_path(self):
        f = validated(any_path=["/pricing", "/signup"])
        parts, args = field_predicates(f, Table.SESSIONS, "t")

        assert len(parts) == 1
        assert parts[0].startswith("EXISTS (SELECT 1 FROM page_view pv WHERE pv.client_id = t.client_id")
        assert parts[0].endswith("AND pv.path IN (?, ?))")
        assert args == ["/pricing", "/signup"]

    def test_platform(self):
        f = validated(platform="mobile")

        assert field_predicates(f, Table.EVENTS, "e") == (["e.mobile = 1"], [])
