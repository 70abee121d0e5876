"""Queries for metrics that are not plain aggregates of one table.

Time on page is the duration of the following page view in the same
session, read with a two-row window. Session duration is summed over the
current version of each session.
"""

from webanalyzer.core.fields import Field, Table
from webanalyzer.core.filter import Filter
from webanalyzer.sql.planner import join_sessions
from webanalyzer.sql.predicates import (
    combine,
    field_predicates,
    imported_time_predicate,
    sample_predicate,
    time_predicate,
)
from webanalyzer.sql.query_builder import QueryBuilder


def time_on_page_expression(filter: Filter, alias: str = "v") -> str:
    """Per page view time on page, capped at max_time_on_page_seconds if set."""
    duration = f"{alias}.duration_seconds"

    if filter.max_time_on_page_seconds > 0:
        duration = f"least({duration}, {int(filter.max_time_on_page_seconds)})"

    return (
        f"nth_value({duration}, 2) OVER (PARTITION BY {alias}.visitor_id, {alias}.session_id "
        f"ORDER BY {alias}.time ROWS BETWEEN CURRENT ROW AND 1 FOLLOWING)"
    )


def _page_view_times(filter: Filter) -> tuple[str, list, list[str], list]:
    """Page views with their time on page, restricted by the filter.

    The window runs over all page views of the time range, dimension
    predicates are applied afterwards so that filtering by path doesn't change
    which page view follows another.
    """
    where, args = time_predicate(filter, "v")
    sample, sample_args = sample_predicate(filter, "v")

    if sample:
        where = combine([where, sample])
        args += sample_args

    sql = f"SELECT v.*, {time_on_page_expression(filter)} AS time_on_page FROM page_view v WHERE {where}"
    source = f"({sql}) w"
    sessions = join_sessions(filter.without("sort", "search"), Table.PAGE_VIEWS, [])

    if sessions is not None:
        join_sql, join_args = sessions.query()
        source += f" INNER JOIN ({join_sql}) j ON j.visitor_id = w.visitor_id AND j.session_id = w.session_id"
        args += join_args

    predicates, predicate_args = field_predicates(filter, Table.PAGE_VIEWS, "w")
    return source, args, ["w.time_on_page > 0", *predicates], predicate_args


def total_time_on_page(filter: Filter) -> tuple[str, list]:
    """Sum of time on page over all matching page views."""
    source, args, where, where_args = _page_view_times(filter)
    return f"SELECT coalesce(sum(w.time_on_page), 0) FROM {source} WHERE {combine(where)}", args + where_args


def avg_time_on_page(filter: Filter) -> tuple[str, list]:
    """Average time on page over all matching page views."""
    source, args, where, where_args = _page_view_times(filter)
    sql = f"SELECT coalesce(round(avg(w.time_on_page)), 0)::BIGINT FROM {source} WHERE {combine(where)}"
    return sql, args + where_args


def avg_time_on_page_by_path(filter: Filter, paths: list[str] | None = None) -> tuple[str, list]:
    """Average time on page per path.

    Args:
        filter: Validated filter
        paths: Restrict the result to these paths

    Returns:
        Tuple of (sql, args) selecting path and average_time_spent_seconds
    """
    source, args, where, where_args = _page_view_times(filter)

    if paths:
        where.append(f"w.path IN ({', '.join('?' for _ in paths)})")
        where_args += list(paths)

    sql = (
        "SELECT w.path AS path, coalesce(round(avg(w.time_on_page)), 0)::BIGINT AS average_time_spent_seconds "
        f"FROM {source} WHERE {combine(where)} GROUP BY w.path"
    )
    return sql, args + where_args


def total_session_duration(filter: Filter) -> tuple[str, list]:
    """Sum of the net duration of every current session.

    Sessions are narrowed to those with a matching page view when the
    filter restricts page views.
    """
    where, args = time_predicate(filter, "t")
    predicates, predicate_args = field_predicates(filter, Table.SESSIONS, "t")
    sample, sample_args = sample_predicate(filter, "t")
    join = ""
    join_args: list = []

    if filter.path or filter.path_pattern or filter.tags or filter.tag:
        pv_where, join_args = time_predicate(filter, "v")
        pv_predicates, pv_args = field_predicates(filter, Table.PAGE_VIEWS, "v")
        join_args += pv_args
        join = (
            f" INNER JOIN (SELECT v.visitor_id, v.session_id FROM page_view v "
            f"WHERE {combine([pv_where, *pv_predicates])} GROUP BY v.visitor_id, v.session_id) v "
            "ON v.visitor_id = t.visitor_id AND v.session_id = t.session_id"
        )

    parts = [where, *predicates]

    if sample:
        parts.append(sample)

    sql = (
        "SELECT coalesce(sum(duration_seconds), 0) FROM ("
        "SELECT sum(t.duration_seconds * t.sign) AS duration_seconds "
        f"FROM session t{join} WHERE {combine(parts)} "
        "GROUP BY t.visitor_id, t.session_id HAVING sum(t.sign) > 0)"
    )
    return sql, join_args + args + predicate_args + sample_args


def total_imported_session_duration(filter: Filter) -> tuple[str, list] | None:
    """Session duration of the imported sub-range, None if nothing is imported."""
    if filter.imported_from is None or filter.imported_to is None:
        return None

    where, args = imported_time_predicate(filter)
    return f"SELECT coalesce(sum(session_duration), 0) FROM imported_visitors WHERE {where}", args


def total_event_duration(filter: Filter) -> tuple[str, list]:
    """Sum of the duration of all matching events."""
    builder = QueryBuilder(filter=filter.without("sort"), table=Table.EVENTS, fields=[Field.EVENT_DURATION])
    return builder.query()
