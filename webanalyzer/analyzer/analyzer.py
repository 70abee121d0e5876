"""Entry point for running analyses against a store."""

from webanalyzer.analyzer.attributes import Demographics, Device, UTM
from webanalyzer.analyzer.events import Events
from webanalyzer.analyzer.options import FilterOptions
from webanalyzer.analyzer.pages import Pages
from webanalyzer.analyzer.sessions import Sessions
from webanalyzer.analyzer.tags import Tags
from webanalyzer.analyzer.time import Time
from webanalyzer.analyzer.visitors import Visitors
from webanalyzer.core.fields import Field
from webanalyzer.core.filter import LIST_ATTRIBUTES, MAP_ATTRIBUTES, NULL_CLIENT, Filter
from webanalyzer.core.statistics import MetaStats
from webanalyzer.db.base import Store
from webanalyzer.sql.planner import build_query


class Analyzer:
    """Analysis methods for one store, grouped by subject.

    Example:
        >>> analyzer = Analyzer(DuckDBStore("analytics.duckdb"), client_id=42)
        >>> analyzer.visitors.total(Filter(from_=past_day(7), to=today()))
        TotalVisitorStats(visitors=..., views=..., ...)

    Every method accepts an optional filter. None means the empty filter of
    the configured client. Filters are copied before validation, so the
    caller's filter is never changed.
    """

    def __init__(self, store: Store, client_id: int = NULL_CLIENT):
        """Initialize analyzer.

        Args:
            store: Store the queries run against
            client_id: Tenant used when no filter is passed
        """
        self.store = store
        self.client_id = client_id
        self.visitors = Visitors(self)
        self.pages = Pages(self)
        self.events = Events(self)
        self.tags = Tags(self)
        self.demographics = Demographics(self)
        self.device = Device(self)
        self.utm = UTM(self)
        self.sessions = Sessions(self)
        self.time = Time(self)
        self.options = FilterOptions(self)

    def get_filter(self, filter: Filter | None) -> Filter:
        """Return a validated copy of the filter."""
        if filter is None:
            filter = Filter(client_id=self.client_id)

        filter = filter.copy()
        filter.validate()
        return filter

    def totals_filter(self, filter: Filter) -> Filter:
        """Copy of a validated filter keeping only tenant, time range and sampling.

        The imported split of the given filter is kept.
        """
        totals = filter.without(*LIST_ATTRIBUTES, *MAP_ATTRIBUTES, "platform", "search", "sort")
        totals.visitor_id = 0
        totals.session_id = 0
        totals.custom_metric_key = ""
        totals.custom_metric_type = ""
        return totals

    def select_by_attribute(
        self, filter: Filter | None, model: type[MetaStats], *attributes: Field, table_imported: str = ""
    ) -> list[MetaStats]:
        """Visitors and their share grouped by one or more attributes.

        Args:
            filter: Filter or None
            model: Result record to decode rows into
            attributes: Fields to group by, the first one is the attribute of interest
            table_imported: Imported table holding the first attribute, if any

        Returns:
            List of records ordered by visitors and then the attributes
        """
        filter = self.get_filter(filter)
        fields = [*attributes, Field.VISITORS, Field.RELATIVE_VISITORS]
        order_by = [Field.VISITORS, *attributes]
        sql, args = build_query(
            filter,
            fields,
            group_by=list(attributes),
            order_by=order_by,
            fields_imported=[attributes[0], Field.VISITORS],
            table_imported=table_imported,
        )
        return self.store.select(filter.ctx, model, sql, args)
