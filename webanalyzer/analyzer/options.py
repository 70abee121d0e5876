"""Distinct values of filterable attributes, to offer as filter suggestions."""

from webanalyzer.analyzer.component import Component
from webanalyzer.core.fields import Table
from webanalyzer.core.filter import Filter
from webanalyzer.sql.predicates import combine, compile_array_contains, compile_values, time_predicate


class FilterOptions(Component):
    """Values present in the time range of a filter, sorted ascending.

    Only tenant and time range of the filter apply, unless a method says
    otherwise. The search restricts values to those containing it, ignoring
    case. Empty values are never returned.
    """

    def hostnames(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "hostname", search)

    def pages(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.PAGE_VIEWS, "path", search)

    def referrer(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "referrer", search)

    def referrer_name(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "referrer_name", search)

    def utm_source(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "utm_source", search)

    def utm_medium(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "utm_medium", search)

    def utm_campaign(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "utm_campaign", search)

    def utm_content(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "utm_content", search)

    def utm_term(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "utm_term", search)

    def channel(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "channel", search)

    def events(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.EVENTS, "event_name", search)

    def countries(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "country_code", search)

    def regions(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "region", search)

    def cities(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "city", search)

    def languages(self, filter: Filter | None = None, search: str = "") -> list[str]:
        return self._distinct(filter, Table.SESSIONS, "language", search)

    def event_meta_keys(self, filter: Filter | None = None, search: str = "") -> list[str]:
        """Metadata keys of events, restricted by the filter's event names.

        Returns nothing unless the filter has a time range or event names.
        """
        filter = self.analyzer.get_filter(filter)

        if not (_has_time_range(filter) or filter.event_name):
            return []

        return self._unnested(filter, Table.EVENTS, "e.event_meta_keys", search, _event_predicates(filter))

    def event_meta_values(self, filter: Filter | None = None, search: str = "") -> list[str]:
        """Metadata values of events, restricted by event names and metadata keys.

        All values of an event are returned if it has one of the keys. Returns
        nothing unless the filter has a time range, event names or metadata keys.
        """
        filter = self.analyzer.get_filter(filter)

        if not (_has_time_range(filter) or filter.event_name or filter.event_meta_key):
            return []

        return self._unnested(filter, Table.EVENTS, "e.event_meta_values", search, _event_predicates(filter))

    def tag_keys(self, filter: Filter | None = None, search: str = "") -> list[str]:
        """Tag keys of page views. Returns nothing without a time range."""
        filter = self.analyzer.get_filter(filter)

        if not _has_time_range(filter):
            return []

        return self._unnested(filter, Table.PAGE_VIEWS, "v.tag_keys", search)

    def tag_values(self, filter: Filter | None = None, search: str = "") -> list[str]:
        """Values stored for the tag keys in filter.tag.

        Returns nothing without a time range or tag keys.
        """
        filter = self.analyzer.get_filter(filter)

        if not _has_time_range(filter) or not filter.tag:
            return []

        where, args = time_predicate(filter, "v")
        keys, key_args = compile_values("tag_key", filter.tag)
        sql = (
            "SELECT DISTINCT value FROM ("
            f"SELECT unnest(v.tag_keys) AS tag_key, unnest(v.tag_values) AS value FROM page_view v WHERE {where}"
            f") WHERE {keys} AND value != ''"
        )
        args += key_args
        sql, args = _with_search(sql, args, "value", search)
        return self._values(filter, sql + " ORDER BY value", args)

    def _distinct(self, filter: Filter | None, table: Table, column: str, search: str) -> list[str]:
        filter = self.analyzer.get_filter(filter)
        a = table.alias
        where, args = time_predicate(filter, a)
        sql = f"SELECT DISTINCT {a}.{column} AS value FROM {table.table_name} {a} WHERE {where} AND {a}.{column} != ''"
        sql, args = _with_search(sql, args, f"{a}.{column}", search)
        return self._values(filter, sql + " ORDER BY value", args)

    def _unnested(
        self,
        filter: Filter,
        table: Table,
        column: str,
        search: str,
        predicates: tuple[list[str], list] | None = None,
    ) -> list[str]:
        a = table.alias
        where, args = time_predicate(filter, a)

        if predicates:
            parts, predicate_args = predicates
            where = combine([where, *parts])
            args += predicate_args

        sql = (
            f"SELECT DISTINCT value FROM (SELECT unnest({column}) AS value FROM {table.table_name} {a} WHERE {where}) "
            "WHERE value != ''"
        )
        sql, args = _with_search(sql, args, "value", search)
        return self._values(filter, sql + " ORDER BY value", args)

    def _values(self, filter: Filter, sql: str, args: list) -> list[str]:
        return [row["value"] for row in self.store.query(filter.ctx, sql, args)]


def _has_time_range(filter: Filter) -> bool:
    return filter.from_ is not None or filter.to is not None


def _event_predicates(filter: Filter) -> tuple[list[str], list]:
    parts, args = [], []

    for sql, values in (
        compile_values("e.event_name", filter.event_name),
        compile_array_contains("e.event_meta_keys", filter.event_meta_key),
    ):
        if sql:
            parts.append(sql)
            args += values

    return parts, args


def _with_search(sql: str, args: list, column: str, search: str) -> tuple[str, list]:
    search = search.strip()

    if not search:
        return sql, args

    return f"{sql} AND {column} ILIKE ?", [*args, f"%{search}%"]
