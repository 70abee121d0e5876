"""Pick the primary table of a query and the sub-queries joined to it.

Page views are the finest grain, so page view level fields and filters
outrank event level ones, which outrank the session default. Every join is a
sub-query correlated on (visitor_id, session_id), grouped by its own
columns, with a filter scoped to what that join restricts.
"""

from webanalyzer.core.fields import Field, Table, fields_contain
from webanalyzer.core.filter import Filter
from webanalyzer.sql.query_builder import Join, QueryBuilder

# attributes an event join must not restrict by, path filtering belongs to page views
_EVENT_JOIN_EXCLUDED = ("sort", "path", "any_path", "path_pattern", "search")


def select_table(filter: Filter, fields: list[Field]) -> Table:
    """Choose the primary table for a field list and filter."""
    if fields_contain(fields, Field.EVENT_PATH, Field.EVENT_TITLE):
        return Table.EVENTS

    tag_fields = fields_contain(fields, Field.TAG_KEY, Field.TAG_VALUE)
    all_sessions = Field.SESSIONS_ALL in fields
    custom_metric = bool(filter.custom_metric_type and filter.custom_metric_key)

    page_view_level = (
        filter.path
        or filter.path_pattern
        or filter.tags
        or filter.tag
        or fields_contain(
            fields,
            Field.PAGE_VIEWS_ALL,
            Field.PATH,
            Field.ENTRIES,
            Field.EXITS,
            Field.HOUR,
            Field.MINUTE,
            Field.TAG_KEYS_RAW,
            Field.TAG_VALUES_RAW,
        )
        or tag_fields
        or filter.search_contains(Field.PATH)
    )

    # whole rows of one table never switch to events for a custom metric
    if page_view_level and (not custom_metric or tag_fields or Field.PAGE_VIEWS_ALL in fields) and not all_sessions:
        return Table.PAGE_VIEWS

    if fields_contain(fields, Field.ENTRY_PATH, Field.EXIT_PATH):
        return Table.SESSIONS

    if (
        filter.event_name or fields_contain(fields, Field.EVENT_NAME, Field.EVENTS_ALL) or custom_metric
    ) and not all_sessions:
        return Table.EVENTS

    return Table.SESSIONS


def join_sessions(filter: Filter, table: Table, fields: list[Field]) -> QueryBuilder | None:
    """Session columns (entry/exit path, bounces, views) for page view or event rows."""
    entry = bool(filter.entry_path) or Field.ENTRY_PATH in fields or filter.search_contains(Field.ENTRY_PATH)
    exit_ = bool(filter.exit_path) or Field.EXIT_PATH in fields or filter.search_contains(Field.EXIT_PATH)
    bounces = fields_contain(fields, Field.BOUNCES, Field.BOUNCE_RATE)
    views = table is Table.EVENTS and fields_contain(fields, Field.VIEWS, Field.RELATIVE_VIEWS)

    if not (entry or exit_ or bounces or views):
        return None

    session_fields = [Field.VISITOR_ID, Field.SESSION_ID]

    if entry:
        session_fields.append(Field.ENTRY_PATH)

        if filter.include_title:
            session_fields.append(Field.ENTRY_TITLE)

    if exit_:
        session_fields.append(Field.EXIT_PATH)

        if filter.include_title:
            session_fields.append(Field.EXIT_TITLE)

    if bounces:
        session_fields.append(Field.IS_BOUNCE)

    if views:
        session_fields.append(Field.PAGE_VIEWS_RAW)

    return QueryBuilder(
        filter=filter.without("sort"),
        table=Table.SESSIONS,
        fields=session_fields,
        group_by=list(session_fields),
    )


def join_page_views(filter: Filter, fields: list[Field]) -> QueryBuilder | None:
    """Page views narrowing a sessions query by path or tags."""
    raw_tags = fields_contain(fields, Field.TAG_KEYS_RAW, Field.TAG_VALUES_RAW)

    if not (
        filter.path
        or filter.path_pattern
        or filter.tag
        or filter.tags
        or filter.search_contains(Field.PATH)
        or raw_tags
    ):
        return None

    page_view_fields = [Field.VISITOR_ID, Field.SESSION_ID]

    if Field.TAG_KEYS_RAW in fields:
        page_view_fields.append(Field.TAG_KEYS_RAW)

    if Field.TAG_VALUES_RAW in fields:
        page_view_fields.append(Field.TAG_VALUES_RAW)

    return QueryBuilder(
        filter=filter.without("sort"),
        table=Table.PAGE_VIEWS,
        fields=page_view_fields,
        group_by=list(page_view_fields),
    )


def join_events(filter: Filter) -> QueryBuilder | None:
    """Sessions with a matching event, for positive event name filters."""
    if not filter.event_name:
        return None

    event_fields = [Field.VISITOR_ID, Field.SESSION_ID]
    return QueryBuilder(
        filter=filter.without(*_EVENT_JOIN_EXCLUDED),
        table=Table.EVENTS,
        fields=event_fields,
        group_by=list(event_fields),
    )


def left_join_events(filter: Filter, fields: list[Field] | None = None) -> QueryBuilder:
    """Events of each session, restricted by the outer WHERE instead of the join.

    Selecting the event path moves path filters and search into the join,
    as they then restrict the events rather than page views.
    """
    fields = fields or []
    event_fields = [Field.VISITOR_ID, Field.SESSION_ID, Field.EVENT_NAME]
    excluded = _EVENT_JOIN_EXCLUDED

    if Field.EVENT_PATH in fields:
        event_fields.append(Field.PATH)
        excluded = ("sort",)

    if Field.EVENT_TITLE in fields:
        event_fields.append(Field.TITLE)

    if filter.event_meta:
        event_fields += [Field.EVENT_META_KEYS_RAW, Field.EVENT_META_VALUES_RAW]
    elif filter.event_meta_key:
        event_fields.append(Field.EVENT_META_KEYS_RAW)

    return QueryBuilder(
        filter=filter.without("event_name", "event_meta_key", "event_meta", *excluded),
        table=Table.EVENTS,
        fields=event_fields,
        group_by=list(event_fields),
    )


def join_or_left_join_events(filter: Filter) -> tuple[Join | None, bool]:
    """Event correlation for page view and session queries.

    Negated event names need a left join so rows without that event survive,
    the negation is then applied by the outer WHERE.

    Returns:
        Tuple of (join or None, whether the outer query filters events)
    """
    if any(name.startswith("!") for name in filter.event_name):
        return Join(left_join_events(filter), "l", "LEFT"), True

    builder = join_events(filter)
    return (Join(builder, "k") if builder else None), False


def join_unique_visitors_by_period(filter: Filter, fields: list[Field]) -> Join | None:
    """Visitors per time bucket without dimension filters, the conversion rate base."""
    if Field.CR_PERIOD not in fields:
        return None

    if Field.DAY in fields:
        bucket = Field.DAY
    elif Field.MINUTE in fields:
        bucket = Field.MINUTE
    else:
        bucket = Field.HOUR

    builder = QueryBuilder(
        filter=filter.time_only(),
        table=Table.SESSIONS,
        fields=[bucket, Field.VISITORS_RAW],
        group_by=[bucket],
    )
    return Join(builder, "uvd", "LEFT", bucket=bucket)


def plan_query(
    filter: Filter,
    fields: list[Field],
    group_by: list[Field] | None = None,
    order_by: list[Field] | None = None,
    fields_imported: list[Field] | None = None,
    table_imported: str = "",
) -> QueryBuilder:
    """Plan the statement for a validated filter.

    Args:
        filter: Validated filter
        fields: Fields to select, in output order
        group_by: Fields to group by
        order_by: Default ordering, replaced by the filter's sort if set
        fields_imported: Fields that can be read from the imported table
        table_imported: Imported table merged for the imported sub-range

    Returns:
        Root builder of the join tree
    """
    fields = list(fields)
    group_by = list(group_by or [])
    order_by = list(order_by or [])
    table = select_table(filter, fields)
    include_event_filter = False
    joins: list[Join] = []

    if (
        fields_contain(fields, Field.EVENT_NAME, Field.EVENTS_ALL)
        or filter.custom_metric_key
        or filter.custom_metric_type
    ) and not fields_contain(fields, Field.TAG_KEY, Field.TAG_VALUE, Field.SESSIONS_ALL, Field.PAGE_VIEWS_ALL):
        table = Table.EVENTS
        include_event_filter = True
        sessions = join_sessions(filter, table, fields)

        if sessions:
            joins.append(Join(sessions, "j"))
    elif table is Table.EVENTS:
        table = Table.SESSIONS
        fields = [f for f in fields if f is not Field.PATH]
        group_by = [f for f in group_by if f is not Field.PATH]
        order_by = [f for f in order_by if f is not Field.PATH]
        include_event_filter = True
        joins.append(Join(left_join_events(filter, fields), "l", "LEFT"))
    else:
        if table is Table.PAGE_VIEWS:
            first = join_sessions(filter, table, fields)
        else:
            first = join_page_views(filter, fields)

        if first:
            joins.append(Join(first, "j"))

        second, include_event_filter = join_or_left_join_events(filter)

        if second:
            joins.append(second)

    third = join_unique_visitors_by_period(filter, fields)

    if third:
        joins.append(third)

    return QueryBuilder(
        filter=filter,
        table=table,
        fields=fields,
        group_by=group_by,
        order_by=order_by,
        fields_imported=list(fields_imported or []),
        table_imported=table_imported,
        joins=tuple(joins),
        include_event_filter=include_event_filter,
        offset=filter.offset,
        limit=filter.limit,
    )


def build_query(
    filter: Filter,
    fields: list[Field],
    group_by: list[Field] | None = None,
    order_by: list[Field] | None = None,
    fields_imported: list[Field] | None = None,
    table_imported: str = "",
) -> tuple[str, list]:
    """Build the SQL statement and its positional args for a validated filter."""
    return plan_query(filter, fields, group_by, order_by, fields_imported, table_imported).query()
