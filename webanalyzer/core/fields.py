"""Field catalog: every column a query can select, group or order by.

Each field maps to one SQL expression per fact table. The expressions use the
fixed table aliases below ("t" sessions, "v" page views, "e" events) and the
join aliases assigned by the planner ("j" for the session or page view join,
"k" for the inner event join, "l" for the left event join and "uvd" for the
unique visitors by period join).
"""

from dataclasses import dataclass
from enum import Enum, unique
from typing import Literal

from webanalyzer.sql.symmetric_aggregate import build_symmetric_aggregate_sql, session_key

Category = Literal["dimension", "aggregate", "raw", "marker"]
Bucket = Literal["day", "hour", "minute", "weekday"]
TotalKind = Literal["visitors", "views", "sessions"]

# Placeholders resolved by the query builder.
TOTAL = "{total}"
METRIC_TYPE = "{metric_type}"


class Table(Enum):
    """Fact tables a query can read from."""

    SESSIONS = ("session", "t")
    PAGE_VIEWS = ("page_view", "v")
    EVENTS = ("event", "e")

    def __init__(self, table_name: str, alias: str):
        self.table_name = table_name
        self.alias = alias


@dataclass(frozen=True)
class FieldDefinition:
    """Definition of a catalog entry.

    Attributes:
        key: Unique identifier of the entry
        alias: Output column name
        sessions: Expression against the sessions table (alias "t")
        page_views: Expression against the page view table (alias "v")
        events: Expression against the event table (alias "e")
        imported: Expression against an imported table, None if unavailable there
        merged: Expression re-aggregating the union of live and imported rows
        category: How the field takes part in grouping
        bucket: Time bucket computed from the row time, if any
        total: Denominator substituted for the {total} placeholder
        param: Filter value bound for the "?" in the expression
        descending: Default sort direction
    """

    key: str
    alias: str
    sessions: str | None = None
    page_views: str | None = None
    events: str | None = None
    imported: str | None = None
    merged: str | None = None
    category: Category = "dimension"
    bucket: Bucket | None = None
    total: TotalKind | None = None
    param: str | None = None
    descending: bool = False

    def expression(self, table: Table) -> str | None:
        if table is Table.SESSIONS:
            return self.sessions
        if table is Table.PAGE_VIEWS:
            return self.page_views
        return self.events


def _visitors(a: str) -> str:
    return f"count(DISTINCT {a}.visitor_id)"


def _sessions(a: str) -> str:
    return f"count(DISTINCT {session_key(a)})"


def _session_sum(measure: str, a: str) -> str:
    return build_symmetric_aggregate_sql(measure, session_key(a), "sum")


def _column(key: str, column: str, *, alias: str | None = None, imported: str | None = None) -> FieldDefinition:
    """A plain column present on all three fact tables."""
    return FieldDefinition(
        key=key,
        alias=alias or column,
        sessions=f"t.{column}",
        page_views=f"v.{column}",
        events=f"e.{column}",
        imported=imported,
    )


def _raw(key: str, column: str, *, descending: bool = False) -> FieldDefinition:
    return FieldDefinition(
        key=key,
        alias=column,
        sessions=f"t.{column}",
        page_views=f"v.{column}",
        events=f"e.{column}",
        category="raw",
        descending=descending,
    )


def _select_all(a: str, columns: tuple[str, ...]) -> str:
    return ", ".join(f'{a}.{column} AS "{column}"' for column in columns)


SESSION_LIST_COLUMNS = (
    "visitor_id",
    "session_id",
    "time",
    "start",
    "duration_seconds",
    "hostname",
    "entry_path",
    "exit_path",
    "entry_title",
    "exit_title",
    "page_views",
    "is_bounce",
    "language",
    "country_code",
    "region",
    "city",
    "referrer",
    "referrer_name",
    "os",
    "browser",
    "desktop",
    "mobile",
    "screen_class",
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "channel",
)

PAGE_VIEW_LIST_COLUMNS = (
    "visitor_id",
    "session_id",
    "time",
    "duration_seconds",
    "hostname",
    "path",
    "title",
    "tag_keys",
    "tag_values",
)

EVENT_LIST_COLUMNS = (
    "visitor_id",
    "session_id",
    "time",
    "event_name",
    "event_meta_keys",
    "event_meta_values",
    "duration_seconds",
    "hostname",
    "path",
    "title",
)

_VISITORS = {a: _visitors(a) for a in "tve"}
_SESSIONS = {a: _sessions(a) for a in "tve"}
_VIEWS = {
    "t": _session_sum("t.page_views", "t"),
    "v": "count(*)",
    "e": _session_sum("j.page_views", "e"),
}
_BOUNCES = {
    "t": _session_sum("t.is_bounce", "t"),
    "v": _session_sum("j.is_bounce", "v"),
    "e": _session_sum("j.is_bounce", "e"),
}


def _per_table(template) -> dict[str, str]:
    return {"sessions": template("t"), "page_views": template("v"), "events": template("e")}


def _custom_metric(agg: str) -> str:
    value = f"TRY_CAST(e.event_meta_values[list_position(e.event_meta_keys, ?)] AS {METRIC_TYPE})"
    return f"coalesce({agg}({value}), 0)"


def _platform(a: str, condition: str) -> str:
    return f"count(DISTINCT {a}.visitor_id) FILTER (WHERE {condition.format(a=a)})"


@unique
class Field(Enum):
    """Closed catalog of selectable, groupable and orderable fields.

    Fields are compared by identity only.
    """

    # identity and raw columns
    VISITOR_ID = _raw("visitor_id", "visitor_id")
    SESSION_ID = _raw("session_id", "session_id")
    TIME = _raw("time", "time", descending=True)
    IS_BOUNCE = FieldDefinition(key="is_bounce", alias="is_bounce", sessions="t.is_bounce", category="raw")
    PAGE_VIEWS_RAW = FieldDefinition(key="page_views_raw", alias="page_views", sessions="t.page_views", category="raw")
    TAG_KEYS_RAW = FieldDefinition(key="tag_keys_raw", alias="tag_keys", page_views="v.tag_keys", category="raw")
    TAG_VALUES_RAW = FieldDefinition(key="tag_values_raw", alias="tag_values", page_views="v.tag_values", category="raw")
    EVENT_META_KEYS_RAW = FieldDefinition(
        key="event_meta_keys_raw", alias="event_meta_keys", events="e.event_meta_keys", category="raw"
    )
    EVENT_META_VALUES_RAW = FieldDefinition(
        key="event_meta_values_raw", alias="event_meta_values", events="e.event_meta_values", category="raw"
    )

    # whole-row markers
    SESSIONS_ALL = FieldDefinition(
        key="sessions_all", alias="", sessions=_select_all("t", SESSION_LIST_COLUMNS), category="marker"
    )
    PAGE_VIEWS_ALL = FieldDefinition(
        key="page_views_all", alias="", page_views=_select_all("v", PAGE_VIEW_LIST_COLUMNS), category="marker"
    )
    EVENTS_ALL = FieldDefinition(
        key="events_all", alias="", events=_select_all("e", EVENT_LIST_COLUMNS), category="marker"
    )

    # counts
    VISITORS = FieldDefinition(
        key="visitors",
        alias="visitors",
        **_per_table(lambda a: _VISITORS[a]),
        imported="sum(visitors)",
        merged="sum(visitors)",
        category="aggregate",
        descending=True,
    )
    VISITORS_RAW = FieldDefinition(
        key="visitors_raw",
        alias="visitors",
        sessions=_VISITORS["t"],
        category="aggregate",
        descending=True,
    )
    SESSIONS = FieldDefinition(
        key="sessions",
        alias="sessions",
        **_per_table(lambda a: _SESSIONS[a]),
        imported="sum(sessions)",
        merged="sum(sessions)",
        category="aggregate",
        descending=True,
    )
    VIEWS = FieldDefinition(
        key="views",
        alias="views",
        **_per_table(lambda a: _VIEWS[a]),
        imported="sum(views)",
        merged="sum(views)",
        category="aggregate",
        descending=True,
    )
    BOUNCES = FieldDefinition(
        key="bounces",
        alias="bounces",
        **_per_table(lambda a: _BOUNCES[a]),
        imported="sum(bounces)",
        merged="sum(bounces)",
        category="aggregate",
        descending=True,
    )
    BOUNCE_RATE = FieldDefinition(
        key="bounce_rate",
        alias="bounce_rate",
        **_per_table(lambda a: f"{_BOUNCES[a]} / greatest({_SESSIONS[a]}, 1)"),
        merged="sum(bounces) / greatest(sum(sessions), 1)",
        category="aggregate",
        descending=True,
    )
    RELATIVE_VISITORS = FieldDefinition(
        key="relative_visitors",
        alias="relative_visitors",
        **_per_table(lambda a: f"{_VISITORS[a]} / greatest({TOTAL}, 1)"),
        merged=f"sum(visitors) / greatest({TOTAL}, 1)",
        category="aggregate",
        total="visitors",
        descending=True,
    )
    RELATIVE_VIEWS = FieldDefinition(
        key="relative_views",
        alias="relative_views",
        **_per_table(lambda a: f"{_VIEWS[a]} / greatest({TOTAL}, 1)"),
        merged=f"sum(views) / greatest({TOTAL}, 1)",
        category="aggregate",
        total="views",
        descending=True,
    )
    CR = FieldDefinition(
        key="cr",
        alias="cr",
        **_per_table(lambda a: f"{_VISITORS[a]} / greatest({TOTAL}, 1)"),
        merged=f"sum(visitors) / greatest({TOTAL}, 1)",
        category="aggregate",
        total="visitors",
        descending=True,
    )
    CR_PERIOD = FieldDefinition(
        key="cr_period",
        alias="cr",
        **_per_table(lambda a: f"{_VISITORS[a]} / greatest(max(uvd.visitors), 1)"),
        merged="max(cr)",
        category="aggregate",
        descending=True,
    )
    ENTRIES = FieldDefinition(
        key="entries",
        alias="entries",
        **_per_table(lambda a: _SESSIONS[a]),
        imported="sum(sessions)",
        merged="sum(entries)",
        category="aggregate",
        descending=True,
    )
    EXITS = FieldDefinition(
        key="exits",
        alias="exits",
        **_per_table(lambda a: _SESSIONS[a]),
        imported="sum(sessions)",
        merged="sum(exits)",
        category="aggregate",
        descending=True,
    )
    ENTRY_RATE = FieldDefinition(
        key="entry_rate",
        alias="entry_rate",
        **_per_table(lambda a: f"{_SESSIONS[a]} / greatest({TOTAL}, 1)"),
        merged=f"sum(entries) / greatest({TOTAL}, 1)",
        category="aggregate",
        total="sessions",
        descending=True,
    )
    EXIT_RATE = FieldDefinition(
        key="exit_rate",
        alias="exit_rate",
        **_per_table(lambda a: f"{_SESSIONS[a]} / greatest({TOTAL}, 1)"),
        merged=f"sum(exits) / greatest({TOTAL}, 1)",
        category="aggregate",
        total="sessions",
        descending=True,
    )
    COUNT = FieldDefinition(
        key="count",
        alias="count",
        **_per_table(lambda a: "count(*)"),
        category="aggregate",
        descending=True,
    )
    PLATFORM_DESKTOP = FieldDefinition(
        key="platform_desktop",
        alias="platform_desktop",
        **_per_table(lambda a: _platform(a, "{a}.desktop = 1")),
        category="aggregate",
        descending=True,
    )
    PLATFORM_MOBILE = FieldDefinition(
        key="platform_mobile",
        alias="platform_mobile",
        **_per_table(lambda a: _platform(a, "{a}.mobile = 1")),
        category="aggregate",
        descending=True,
    )
    PLATFORM_UNKNOWN = FieldDefinition(
        key="platform_unknown",
        alias="platform_unknown",
        **_per_table(lambda a: _platform(a, "{a}.desktop = 0 AND {a}.mobile = 0")),
        category="aggregate",
        descending=True,
    )

    # durations and custom metrics
    EVENT_TIME_SPENT = FieldDefinition(
        key="event_time_spent",
        alias="average_time_spent_seconds",
        events="coalesce(round(avg(e.duration_seconds)), 0)::BIGINT",
        category="aggregate",
        descending=True,
    )
    EVENT_DURATION = FieldDefinition(
        key="event_duration",
        alias="duration_seconds",
        events="coalesce(sum(e.duration_seconds), 0)",
        category="aggregate",
        descending=True,
    )
    SESSION_DURATION_AVG = FieldDefinition(
        key="session_duration_avg",
        alias="average_time_spent_seconds",
        sessions=f"coalesce(round({build_symmetric_aggregate_sql('t.duration_seconds', session_key('t'), 'avg')}), 0)::BIGINT",
        category="aggregate",
        descending=True,
    )
    CUSTOM_METRIC_AVG = FieldDefinition(
        key="custom_metric_avg",
        alias="custom_metric_avg",
        events=_custom_metric("avg"),
        category="aggregate",
        param="custom_metric_key",
        descending=True,
    )
    CUSTOM_METRIC_TOTAL = FieldDefinition(
        key="custom_metric_total",
        alias="custom_metric_total",
        events=_custom_metric("sum"),
        category="aggregate",
        param="custom_metric_key",
        descending=True,
    )

    # time buckets
    DAY = FieldDefinition(key="day", alias="day", bucket="day")
    HOUR = FieldDefinition(key="hour", alias="hour", bucket="hour")
    MINUTE = FieldDefinition(key="minute", alias="minute", bucket="minute")
    WEEKDAY = FieldDefinition(key="weekday", alias="weekday", bucket="weekday")

    # dimensions
    HOSTNAME = _column("hostname", "hostname")
    PATH = FieldDefinition(key="path", alias="path", page_views="v.path", events="e.path", imported="path")
    TITLE = FieldDefinition(key="title", alias="title", page_views="v.title", events="e.title", imported="title")
    ENTRY_PATH = FieldDefinition(
        key="entry_path",
        alias="entry_path",
        sessions="t.entry_path",
        page_views="j.entry_path",
        events="j.entry_path",
        imported="entry_path",
    )
    ENTRY_TITLE = FieldDefinition(
        key="entry_title",
        alias="entry_title",
        sessions="t.entry_title",
        page_views="j.entry_title",
        events="j.entry_title",
    )
    EXIT_PATH = FieldDefinition(
        key="exit_path",
        alias="exit_path",
        sessions="t.exit_path",
        page_views="j.exit_path",
        events="j.exit_path",
        imported="exit_path",
    )
    EXIT_TITLE = FieldDefinition(
        key="exit_title",
        alias="exit_title",
        sessions="t.exit_title",
        page_views="j.exit_title",
        events="j.exit_title",
    )
    LANGUAGE = _column("language", "language")
    COUNTRY = _column("country", "country_code")
    REGION = _column("region", "region")
    CITY = _column("city", "city")
    REFERRER = _column("referrer", "referrer", imported="referrer")
    REFERRER_NAME = _column("referrer_name", "referrer_name", imported="referrer")
    REFERRER_ICON = FieldDefinition(
        key="referrer_icon",
        alias="referrer_icon",
        **_per_table(lambda a: f"any_value({a}.referrer_icon)"),
        merged="any_value(referrer_icon)",
        category="aggregate",
    )
    ANY_REFERRER = FieldDefinition(
        key="any_referrer",
        alias="referrer",
        **_per_table(lambda a: f"any_value({a}.referrer)"),
        merged="any_value(referrer)",
        category="aggregate",
    )
    CHANNEL = _column("channel", "channel")
    OS = _column("os", "os")
    OS_VERSION = _column("os_version", "os_version")
    BROWSER = _column("browser", "browser")
    BROWSER_VERSION = _column("browser_version", "browser_version")
    SCREEN_CLASS = _column("screen_class", "screen_class")
    UTM_SOURCE = _column("utm_source", "utm_source")
    UTM_MEDIUM = _column("utm_medium", "utm_medium")
    UTM_CAMPAIGN = _column("utm_campaign", "utm_campaign")
    UTM_CONTENT = _column("utm_content", "utm_content")
    UTM_TERM = _column("utm_term", "utm_term")
    TAG_KEY = FieldDefinition(key="tag_key", alias="key", page_views="v.tag_key")
    TAG_VALUE = FieldDefinition(key="tag_value", alias="value", page_views="v.tag_value")

    # events
    # path and title of the event itself, "l" is the left event join of session queries
    EVENT_PATH = FieldDefinition(
        key="event_path", alias="event_path", sessions="coalesce(l.path, '')", events="e.path"
    )
    EVENT_TITLE = FieldDefinition(
        key="event_title", alias="event_title", sessions="coalesce(l.title, '')", events="e.title"
    )
    EVENT_META_KEYS = FieldDefinition(
        key="event_meta_keys",
        alias="meta_keys",
        events="list_sort(list_distinct(flatten(list(e.event_meta_keys))))",
        category="aggregate",
    )
    EVENT_META_VALUE = FieldDefinition(
        key="event_meta_value",
        alias="meta_value",
        events="e.event_meta_values[list_position(e.event_meta_keys, ?)]",
        param="event_meta_key",
    )

    @property
    def definition(self) -> FieldDefinition:
        return self.value

    @property
    def alias(self) -> str:
        return self.value.alias

    @property
    def is_aggregate(self) -> bool:
        return self.value.category == "aggregate"

    def expression(self, table: Table) -> str | None:
        return self.value.expression(table)


def fields_contain(fields, *needles: Field) -> bool:
    """Whether any of the needles is in the field list."""
    return any(field in needles for field in fields)
