"""Symmetric aggregate support for handling fan-out in joins.

Session-level columns (page views, bounces, duration) are repeated once per
joined page view or event. Summing them directly would count a session once
per joined row. Symmetric aggregates count each session exactly once:

    SUM(DISTINCT HASH(key) * 2^20 + value) - SUM(DISTINCT HASH(key) * 2^20)

The key of a session is the composite (visitor_id, session_id).
"""

from typing import Literal

# visitor_id is a 64 bit and session_id a 32 bit unsigned integer, so this
# packs both into a single HUGEINT without collisions.
_SESSION_ID_RANGE = 4294967296


def session_key(alias: str) -> str:
    """Composite (visitor_id, session_id) key of the rows behind an alias."""
    return f"({alias}.visitor_id::HUGEINT * {_SESSION_ID_RANGE} + {alias}.session_id)"


def build_symmetric_aggregate_sql(
    measure_expr: str,
    primary_key: str,
    agg_type: Literal["sum", "avg"],
    model_alias: str | None = None,
) -> str:
    """Build SQL for a symmetric aggregate to prevent double-counting in fan-out joins.

    Args:
        measure_expr: The measure expression to aggregate (e.g., "page_views" or "j.is_bounce")
        primary_key: Expression identifying the entity the measure belongs to
        agg_type: Type of aggregation (sum, avg)
        model_alias: Optional alias to prefix unqualified measure columns

    Returns:
        SQL expression using symmetric aggregates

    Examples:
        >>> build_symmetric_aggregate_sql("page_views", "t.session_key", "sum", "t")
        '(SUM(DISTINCT (HASH(t.session_key)::HUGEINT * (1::HUGEINT << 20)) + coalesce(t.page_views, 0)) - SUM(DISTINCT (HASH(t.session_key)::HUGEINT * (1::HUGEINT << 20))))'
    """
    if model_alias and "." not in measure_expr:
        measure_col = f"{model_alias}.{measure_expr}"
    else:
        measure_col = measure_expr

    hash_expr = f"HASH({primary_key})::HUGEINT"
    multiplier = "(1::HUGEINT << 20)"

    # rows without a joined value must still cancel out against the hash sum
    sum_expr = (
        f"(SUM(DISTINCT ({hash_expr} * {multiplier}) + coalesce({measure_col}, 0)) "
        f"- SUM(DISTINCT ({hash_expr} * {multiplier})))"
    )

    if agg_type == "sum":
        return sum_expr

    elif agg_type == "avg":
        return f"{sum_expr} / NULLIF(COUNT(DISTINCT {primary_key}), 0)"

    else:
        raise ValueError(f"Unsupported aggregation type for symmetric aggregates: {agg_type}")
