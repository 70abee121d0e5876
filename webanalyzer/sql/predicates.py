"""Translate filter dimensions into SQL predicates with positional arguments.

Values are always bound as parameters. A leading "!" negates a value and the
literal "null" (any case) matches absent values. Positive values of one
dimension are OR'd, negated values are AND'd to that group.
"""

from dataclasses import dataclass
from datetime import datetime

from webanalyzer.core.fields import Field, Table
from webanalyzer.core.filter import WEEKDAY_SUNDAY, Filter

ALL_TABLES = frozenset(Table)
PAGE_VIEWS_AND_EVENTS = frozenset((Table.PAGE_VIEWS, Table.EVENTS))
SESSIONS_ONLY = frozenset((Table.SESSIONS,))
EVENTS_ONLY = frozenset((Table.EVENTS,))

# resolution of sampling predicates
SAMPLE_BUCKETS = 10000


@dataclass(frozen=True)
class Dimension:
    """A list-valued filter attribute and the column it restricts."""

    attribute: str
    column: str
    tables: frozenset
    regex: bool = False


DIMENSIONS = (
    Dimension("hostname", "hostname", ALL_TABLES),
    Dimension("path", "path", PAGE_VIEWS_AND_EVENTS),
    Dimension("entry_path", "entry_path", SESSIONS_ONLY),
    Dimension("exit_path", "exit_path", SESSIONS_ONLY),
    Dimension("path_pattern", "path", PAGE_VIEWS_AND_EVENTS, regex=True),
    Dimension("language", "language", ALL_TABLES),
    Dimension("country", "country_code", ALL_TABLES),
    Dimension("region", "region", ALL_TABLES),
    Dimension("city", "city", ALL_TABLES),
    Dimension("referrer", "referrer", ALL_TABLES),
    Dimension("referrer_name", "referrer_name", ALL_TABLES),
    Dimension("channel", "channel", ALL_TABLES),
    Dimension("os", "os", ALL_TABLES),
    Dimension("os_version", "os_version", ALL_TABLES),
    Dimension("browser", "browser", ALL_TABLES),
    Dimension("browser_version", "browser_version", ALL_TABLES),
    Dimension("screen_class", "screen_class", ALL_TABLES),
    Dimension("utm_source", "utm_source", ALL_TABLES),
    Dimension("utm_medium", "utm_medium", ALL_TABLES),
    Dimension("utm_campaign", "utm_campaign", ALL_TABLES),
    Dimension("utm_content", "utm_content", ALL_TABLES),
    Dimension("utm_term", "utm_term", ALL_TABLES),
)

# Fields that can be searched, with the column and tables they live on.
SEARCHABLE = {
    Field.HOSTNAME: ("hostname", ALL_TABLES),
    Field.PATH: ("path", PAGE_VIEWS_AND_EVENTS),
    Field.TITLE: ("title", PAGE_VIEWS_AND_EVENTS),
    Field.ENTRY_PATH: ("entry_path", SESSIONS_ONLY),
    Field.EXIT_PATH: ("exit_path", SESSIONS_ONLY),
    Field.LANGUAGE: ("language", ALL_TABLES),
    Field.COUNTRY: ("country_code", ALL_TABLES),
    Field.REGION: ("region", ALL_TABLES),
    Field.CITY: ("city", ALL_TABLES),
    Field.REFERRER: ("referrer", ALL_TABLES),
    Field.REFERRER_NAME: ("referrer_name", ALL_TABLES),
    Field.CHANNEL: ("channel", ALL_TABLES),
    Field.OS: ("os", ALL_TABLES),
    Field.OS_VERSION: ("os_version", ALL_TABLES),
    Field.BROWSER: ("browser", ALL_TABLES),
    Field.BROWSER_VERSION: ("browser_version", ALL_TABLES),
    Field.SCREEN_CLASS: ("screen_class", ALL_TABLES),
    Field.UTM_SOURCE: ("utm_source", ALL_TABLES),
    Field.UTM_MEDIUM: ("utm_medium", ALL_TABLES),
    Field.UTM_CAMPAIGN: ("utm_campaign", ALL_TABLES),
    Field.UTM_CONTENT: ("utm_content", ALL_TABLES),
    Field.UTM_TERM: ("utm_term", ALL_TABLES),
    Field.EVENT_NAME: ("event_name", EVENTS_ONLY),
    Field.EVENT_PATH: ("path", EVENTS_ONLY),
}


def is_null(value: str) -> bool:
    return value.lower() == "null"


def split_negation(value: str) -> tuple[str, bool]:
    if value.startswith("!"):
        return value[1:], True
    return value, False


def combine(parts: list[str]) -> str:
    return " AND ".join(parts)


def with_fallback(values: list[str], fallback: str) -> list[str]:
    """Extend values so that the fallback also matches (or excludes) empty columns."""
    extended = list(values)

    for value in values:
        raw, negated = split_negation(value)

        if raw.lower() == fallback:
            extended.append("!null" if negated else "null")

    return extended


def compile_values(column: str, values: list[str], regex: bool = False) -> tuple[str, list]:
    """Compile the values of one dimension into a single predicate.

    Args:
        column: Qualified column the values are compared against
        values: Filter values, optionally prefixed with "!"
        regex: Whether values are regular expressions

    Returns:
        Tuple of (predicate, args), the predicate is empty if there are no values
    """
    positive, negative = [], []
    positive_args, negative_args = [], []

    for value in values:
        raw, negated = split_negation(value)

        if is_null(raw):
            if negated:
                negative.append(f"coalesce({column}, '') != ''")
            else:
                positive.append(f"coalesce({column}, '') = ''")
        elif regex:
            if negated:
                negative.append(f"NOT regexp_matches(coalesce({column}, ''), ?)")
                negative_args.append(raw)
            else:
                positive.append(f"regexp_matches({column}, ?)")
                positive_args.append(raw)
        elif negated:
            negative.append(f"coalesce({column}, '') != ?")
            negative_args.append(raw)
        else:
            positive.append(f"{column} = ?")
            positive_args.append(raw)

    parts = []

    if positive:
        parts.append(f"({' OR '.join(positive)})" if len(positive) > 1 else positive[0])

    parts.extend(negative)

    if not parts:
        return "", []

    sql = combine(parts)
    return (f"({sql})" if len(parts) > 1 else sql), positive_args + negative_args


def compile_array_map(keys_column: str, values_column: str, pairs: dict[str, str]) -> tuple[str, list]:
    """Compile key/value pairs stored as parallel key and value arrays.

    The value of a key is looked up at the position of that key in the key
    array. "null" matches rows without the key, "!null" rows that have it.
    """
    parts, args = [], []

    for key, value in pairs.items():
        raw, negated = split_negation(value)
        lookup = f"{values_column}[list_position({keys_column}, ?)]"

        if is_null(raw):
            if negated:
                parts.append(f"list_contains({keys_column}, ?)")
            else:
                parts.append(f"NOT list_contains({keys_column}, ?)")
            args.append(key)
        elif negated:
            parts.append(f"coalesce({lookup}, '') != ?")
            args.extend((key, raw))
        else:
            parts.append(f"{lookup} = ?")
            args.extend((key, raw))

    return combine(parts), args


def compile_array_contains(column: str, values: list[str]) -> tuple[str, list]:
    """Compile values that must (or with "!" must not) be contained in an array column."""
    positive, negative, positive_args, negative_args = [], [], [], []

    for value in values:
        raw, negated = split_negation(value)

        if negated:
            negative.append(f"NOT list_contains({column}, ?)")
            negative_args.append(raw)
        else:
            positive.append(f"list_contains({column}, ?)")
            positive_args.append(raw)

    parts = []

    if positive:
        parts.append(f"({' OR '.join(positive)})" if len(positive) > 1 else positive[0])

    parts.extend(negative)

    if not parts:
        return "", []

    return combine(parts), positive_args + negative_args


def compile_platform(alias: str, platform: str) -> str:
    raw, negated = split_negation(platform)
    raw = raw.lower()

    if raw == "desktop":
        return f"{alias}.desktop = {0 if negated else 1}"
    elif raw == "mobile":
        return f"{alias}.mobile = {0 if negated else 1}"
    elif raw == "unknown":
        condition = f"{alias}.desktop = 0 AND {alias}.mobile = 0"
        return f"NOT ({condition})" if negated else f"({condition})"

    return ""


def local_time(column: str, filter: Filter) -> str:
    """Expression converting a UTC timestamp column to the filter's timezone."""
    tz = filter.tz

    if tz.key == "UTC":
        return column

    # the zone name has been validated and cannot contain quotes
    return f"timezone('{tz.key}', {column}::TIMESTAMPTZ)"


def time_bucket(bucket: str, column: str, filter: Filter, is_date: bool = False) -> str:
    """Expression grouping a timestamp (or date) column into a time bucket.

    Args:
        bucket: One of day, hour, minute, weekday
        column: Qualified timestamp column, or a date column if is_date is set
        filter: Filter providing timezone, period and weekday mode
        is_date: Whether the column already holds local dates (imported tables)
    """
    value = column if is_date else local_time(column, filter)

    if bucket == "day":
        if filter.period == "week":
            if filter.weekday_mode == WEEKDAY_SUNDAY:
                return f"CAST(date_trunc('week', {value} + INTERVAL 1 DAY) - INTERVAL 1 DAY AS DATE)"
            return f"CAST(date_trunc('week', {value}) AS DATE)"
        elif filter.period in ("month", "year"):
            return f"CAST(date_trunc('{filter.period}', {value}) AS DATE)"
        return f"CAST({value} AS DATE)"

    elif bucket in ("hour", "minute"):
        if is_date:
            return "0"
        return f"{bucket}({value})"

    elif bucket == "weekday":
        if filter.weekday_mode == WEEKDAY_SUNDAY:
            return f"(dayofweek({value}) + 1)"
        return f"isodow({value})"

    raise ValueError(f"Unknown time bucket: {bucket}")


def time_predicate(filter: Filter, alias: str) -> tuple[str, list]:
    """Tenant and time range restriction, always the first predicate of a query."""
    parts = [f"{alias}.client_id = ?"]
    args: list = [filter.client_id]

    if filter.include_time:
        if filter.from_ is not None:
            parts.append(f"{alias}.time >= ?")
            args.append(_to_naive_utc(filter.from_))
        if filter.to is not None:
            parts.append(f"{alias}.time <= ?")
            args.append(_to_naive_utc(filter.to))
    else:
        day = f"CAST({local_time(f'{alias}.time', filter)} AS DATE)"

        if filter.from_ is not None:
            parts.append(f"{day} >= ?")
            args.append(filter.from_.date())
        if filter.to is not None:
            parts.append(f"{day} <= ?")
            args.append(filter.to.date())

    return combine(parts), args


def imported_time_predicate(filter: Filter) -> tuple[str, list]:
    """Tenant and imported sub-range restriction for imported tables."""
    return "client_id = ? AND date >= ? AND date <= ?", [
        filter.client_id,
        filter.imported_from.date(),
        filter.imported_to.date(),
    ]


def _to_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC."""
    if value.tzinfo is None:
        return value
    offset = value.utcoffset()
    return (value - offset).replace(tzinfo=None) if offset else value.replace(tzinfo=None)


def sample_predicate(filter: Filter, alias: str) -> tuple[str, list]:
    """Deterministic visitor sample.

    Fractions in (0, 1) keep visitors whose hashed ID falls below the fraction,
    so every sub-query of one statement keeps the same visitors. Zero and
    values of one or more read everything.
    """
    if not 0 < filter.sample < 1:
        return "", []

    return f"hash({alias}.visitor_id) % {SAMPLE_BUCKETS} < ?", [int(filter.sample * SAMPLE_BUCKETS)]


def any_path_predicate(filter: Filter, alias: str) -> tuple[str, list]:
    """Restrict to sessions that viewed any of the given paths."""
    if not filter.any_path:
        return "", []

    placeholders = ", ".join("?" for _ in filter.any_path)
    sql = (
        "EXISTS (SELECT 1 FROM page_view pv "
        f"WHERE pv.client_id = {alias}.client_id "
        f"AND pv.visitor_id = {alias}.visitor_id "
        f"AND pv.session_id = {alias}.session_id "
        f"AND pv.path IN ({placeholders}))"
    )
    return sql, list(filter.any_path)


def event_predicates(filter: Filter, alias: str) -> tuple[list[str], list]:
    """Event name and metadata predicates against the event columns behind alias."""
    parts, args = [], []

    for sql, values in (
        compile_values(f"{alias}.event_name", filter.event_name),
        compile_array_contains(f"{alias}.event_meta_keys", filter.event_meta_key),
        compile_array_map(f"{alias}.event_meta_keys", f"{alias}.event_meta_values", filter.event_meta),
    ):
        if sql:
            parts.append(sql)
            args.extend(values)

    return parts, args


def field_predicates(filter: Filter, table: Table, alias: str) -> tuple[list[str], list]:
    """All dimension predicates owned by a table, in a fixed order.

    Args:
        filter: Validated filter
        table: Table the predicates run against
        alias: Alias of that table in the query

    Returns:
        Tuple of (predicates, args)
    """
    parts, args = [], []

    def add(sql: str, values: list) -> None:
        if sql:
            parts.append(sql)
            args.extend(values)

    for dimension in DIMENSIONS:
        if table not in dimension.tables:
            continue

        values = getattr(filter, dimension.attribute)

        if dimension.attribute == "hostname" and filter.hostname_fallback:
            values = with_fallback(values, filter.hostname_fallback)

        add(*compile_values(f"{alias}.{dimension.column}", values, dimension.regex))

    if filter.platform:
        add(compile_platform(alias, filter.platform), [])

    if table is Table.PAGE_VIEWS:
        add(*compile_array_map(f"{alias}.tag_keys", f"{alias}.tag_values", filter.tags))
        add(*compile_array_contains(f"{alias}.tag_keys", filter.tag))

    if table is Table.EVENTS:
        event_parts, event_args = event_predicates(filter, alias)
        parts.extend(event_parts)
        args.extend(event_args)

    if filter.visitor_id and filter.session_id:
        add(f"{alias}.visitor_id = ? AND {alias}.session_id = ?", [filter.visitor_id, filter.session_id])

    for search in filter.search:
        column, tables = SEARCHABLE.get(search.field, (None, ()))

        if column and table in tables:
            add(f"{alias}.{column} ILIKE ?", [f"%{search.input}%"])

    add(*any_path_predicate(filter, alias))
    return parts, args
