"""Statistics about hostnames, pages and entry and exit pages."""

from webanalyzer.analyzer.component import Component
from webanalyzer.core.fields import Field
from webanalyzer.core.filter import Filter
from webanalyzer.core.statistics import ConversionStats, EntryStats, ExitStats, HostnameStats, PageStats
from webanalyzer.sql.derived import avg_time_on_page_by_path
from webanalyzer.sql.planner import build_query

IMPORTED_PAGE = "imported_page"
IMPORTED_ENTRY_PAGE = "imported_entry_page"
IMPORTED_EXIT_PAGE = "imported_exit_page"


class Pages(Component):
    """Statistics about pages."""

    def hostname(self, filter: Filter | None = None) -> list[HostnameStats]:
        """Visitors, views, sessions and bounces grouped by hostname."""
        filter = self.analyzer.get_filter(filter)
        fields = [
            Field.HOSTNAME,
            Field.VISITORS,
            Field.VIEWS,
            Field.SESSIONS,
            Field.BOUNCES,
            Field.RELATIVE_VISITORS,
            Field.RELATIVE_VIEWS,
            Field.BOUNCE_RATE,
        ]
        sql, args = build_query(filter, fields, [Field.HOSTNAME], [Field.VISITORS, Field.HOSTNAME])
        return self.store.select(filter.ctx, HostnameStats, sql, args)

    def by_path(self, filter: Filter | None = None) -> list[PageStats]:
        """Visitor statistics grouped by path, and title if include_title is set.

        The average time on page is added if include_time_on_page is set.
        """
        filter = self.analyzer.get_filter(filter)
        dimensions = [Field.PATH]

        if filter.include_title:
            dimensions.append(Field.TITLE)

        fields = [
            *dimensions,
            Field.VISITORS,
            Field.SESSIONS,
            Field.RELATIVE_VISITORS,
            Field.BOUNCES,
            Field.RELATIVE_VIEWS,
            Field.BOUNCE_RATE,
            Field.VIEWS,
        ]
        fields_imported = [*dimensions, Field.VISITORS, Field.SESSIONS, Field.VIEWS, Field.BOUNCES]
        sql, args = build_query(
            filter, fields, dimensions, [Field.VISITORS, Field.PATH], fields_imported, IMPORTED_PAGE
        )
        stats = self.store.select(filter.ctx, PageStats, sql, args)

        if filter.include_time_on_page and stats:
            time_on_page = self._avg_time_on_page(filter, [stat.path for stat in stats])
            stats = [
                stat.model_copy(update={"average_time_spent_seconds": time_on_page.get(stat.path, 0)})
                for stat in stats
            ]

        return stats

    def entry(self, filter: Filter | None = None) -> list[EntryStats]:
        """Sessions entering the site at each path.

        Visitors are the visitors with a session entering at that path.
        """
        filter = self.analyzer.get_filter(filter)
        dimensions = [Field.ENTRY_PATH]

        if filter.include_title:
            dimensions.append(Field.ENTRY_TITLE)

        fields = [*dimensions, Field.VISITORS, Field.SESSIONS, Field.ENTRIES, Field.ENTRY_RATE]
        fields_imported = [Field.ENTRY_PATH, Field.VISITORS, Field.SESSIONS, Field.ENTRIES]
        sql, args = build_query(
            filter, fields, dimensions, [Field.ENTRIES, Field.ENTRY_PATH], fields_imported, IMPORTED_ENTRY_PAGE
        )
        stats = self.store.select(filter.ctx, EntryStats, sql, args)

        if filter.include_time_on_page and stats:
            time_on_page = self._avg_time_on_page(filter, [stat.path for stat in stats])
            stats = [
                stat.model_copy(update={"average_time_spent_seconds": time_on_page.get(stat.path, 0)})
                for stat in stats
            ]

        return stats

    def exit(self, filter: Filter | None = None) -> list[ExitStats]:
        """Sessions leaving the site at each path."""
        filter = self.analyzer.get_filter(filter)
        dimensions = [Field.EXIT_PATH]

        if filter.include_title:
            dimensions.append(Field.EXIT_TITLE)

        fields = [*dimensions, Field.VISITORS, Field.SESSIONS, Field.EXITS, Field.EXIT_RATE]
        fields_imported = [Field.EXIT_PATH, Field.VISITORS, Field.SESSIONS, Field.EXITS]
        sql, args = build_query(
            filter, fields, dimensions, [Field.EXITS, Field.EXIT_PATH], fields_imported, IMPORTED_EXIT_PAGE
        )
        return self.store.select(filter.ctx, ExitStats, sql, args)

    def by_event_path(self, filter: Filter | None = None) -> list[PageStats]:
        """Visitor statistics grouped by the path events were sent from.

        Path filters and path search restrict the event path. Sessions without
        a matching event are grouped under an empty path for negated event names.
        """
        filter = self.analyzer.get_filter(filter)
        dimensions = [Field.EVENT_PATH]

        if filter.include_title:
            dimensions.append(Field.EVENT_TITLE)

        fields = [
            *dimensions,
            Field.VISITORS,
            Field.SESSIONS,
            Field.RELATIVE_VISITORS,
            Field.BOUNCES,
            Field.RELATIVE_VIEWS,
            Field.BOUNCE_RATE,
            Field.VIEWS,
        ]
        sql, args = build_query(filter, fields, dimensions, [Field.VISITORS, Field.EVENT_PATH])
        return self.store.select(filter.ctx, PageStats, sql, args)

    def conversions(self, filter: Filter | None = None) -> ConversionStats:
        """Visitors and views matching the filter and their share of all visitors.

        Custom metrics are included if an event name and a custom metric key
        and type are set.
        """
        filter = self.analyzer.get_filter(filter)
        fields = [Field.VISITORS, Field.VIEWS, Field.CR]

        if filter.event_name and filter.custom_metric_key and filter.custom_metric_type:
            fields += [Field.CUSTOM_METRIC_AVG, Field.CUSTOM_METRIC_TOTAL]

        sql, args = build_query(filter, fields)
        return self.store.select_one(filter.ctx, ConversionStats, sql, args)

    def _avg_time_on_page(self, filter: Filter, paths: list[str]) -> dict[str, int]:
        sql, args = avg_time_on_page_by_path(filter, paths)
        rows = self.store.query(filter.ctx, sql, args)
        return {row["path"]: int(row["average_time_spent_seconds"]) for row in rows}
