"""Assemble a single parameterized statement from a planned query."""

import logging
from dataclasses import dataclass, field
from typing import Literal

from webanalyzer.core.fields import METRIC_TYPE, TOTAL, Field, Table
from webanalyzer.core.filter import CUSTOM_METRIC_FLOAT, Filter
from webanalyzer.db.schema import SESSION_COLUMNS
from webanalyzer.sql.predicates import (
    combine,
    compile_values,
    event_predicates,
    field_predicates,
    imported_time_predicate,
    sample_predicate,
    time_bucket,
    time_predicate,
)
from webanalyzer.sql.symmetric_aggregate import session_key
from webanalyzer.validation import validate_identifier

logger = logging.getLogger(__name__)

# the sign column is summed, every other column identifies a session version
_SESSION_VERSION_COLUMNS = ", ".join(f'"{column}"' for column in SESSION_COLUMNS if column != "sign")


@dataclass(frozen=True)
class Join:
    """A sub-query joined to its parent.

    Joins without a bucket correlate on (visitor_id, session_id). Joins with a
    bucket correlate on the time bucket of the parent rows.
    """

    builder: "QueryBuilder"
    alias: str
    kind: Literal["INNER", "LEFT"] = "INNER"
    bucket: Field | None = None


def denominator(kind: str, filter: Filter, imported: bool = False) -> tuple[str, list]:
    """Total of a count over the whole time range, ignoring dimension predicates.

    Args:
        kind: visitors, views or sessions
        filter: Validated filter providing tenant and time range
        imported: Add the total of the imported sub-range

    Returns:
        Tuple of (scalar expression, args)
    """
    totals = filter.time_only()
    where, args = time_predicate(totals, "s")
    sample, sample_args = sample_predicate(totals, "s")

    if sample:
        where = combine([where, sample])
        args += sample_args

    if kind == "visitors":
        select = "count(DISTINCT s.visitor_id)"
    elif kind == "views":
        select = "coalesce(sum(s.page_views * s.sign), 0)"
    elif kind == "sessions":
        select = f"count(DISTINCT {session_key('s')})"
    else:
        raise ValueError(f"Unknown denominator: {kind}")

    sql = f"(SELECT {select} FROM session s WHERE {where})"

    if imported and filter.imported_from is not None and filter.imported_to is not None:
        imported_where, imported_args = imported_time_predicate(filter)
        sql = f"({sql} + (SELECT coalesce(sum({kind}), 0) FROM imported_visitors WHERE {imported_where}))"
        args += imported_args

    return sql, args


@dataclass
class QueryBuilder:
    """Construction context for one statement or join sub-statement.

    Built by the planner, consumed once by query().
    """

    filter: Filter
    table: Table
    fields: list[Field]
    group_by: list[Field] = field(default_factory=list)
    order_by: list[Field] = field(default_factory=list)
    fields_imported: list[Field] = field(default_factory=list)
    table_imported: str = ""
    joins: tuple[Join, ...] = ()
    include_event_filter: bool = False
    offset: int = 0
    limit: int = 0

    @property
    def alias(self) -> str:
        return self.table.alias

    @property
    def explode_tags(self) -> bool:
        """Whether page views are read once per tag."""
        return self.table is Table.PAGE_VIEWS and (Field.TAG_KEY in self.fields or Field.TAG_VALUE in self.fields)

    def query(self) -> tuple[str, list]:
        """Build the SQL statement.

        Returns:
            Tuple of (sql, args) with args in placeholder order
        """
        if self._union_imported():
            sql, args = self._query_with_imported()
        else:
            sql, args = self._query_live(order=True)

        logger.debug("built %s query with %d args", self.table.table_name, len(args))
        return sql, args

    def _union_imported(self) -> bool:
        f = self.filter
        return bool(
            self.table_imported
            and self.fields_imported
            and f.imported_until is not None
            and f.imported_from is not None
            and f.imported_to is not None
        )

    def _query_live(self, order: bool) -> tuple[str, list]:
        args: list = []

        select, select_args = self._select()
        args += select_args
        source, source_args = self._source()
        args += source_args
        sql = f"SELECT {select} FROM {source}"

        for join in self.joins:
            join_sql, join_args = join.builder.query()
            args += join_args
            alias = join.alias

            # renamed so the bucket column doesn't shadow the outer bucket alias in GROUP BY
            if join.bucket is not None:
                alias += "(bucket, visitors)"

            sql += f" {join.kind} JOIN ({join_sql}) {alias} ON {self._join_condition(join)}"

        where, where_args = self._outer_where()

        if where:
            sql += f" WHERE {where}"
            args += where_args

        if self.group_by:
            sql += " GROUP BY " + ", ".join(f'"{f.alias}"' for f in self.group_by)

        if order:
            order_sql, order_args = self._order_by(union=False)

            if order_sql:
                sql += f" ORDER BY {order_sql}"
                args += order_args

            sql += self._pagination()

        return sql, args

    def _select(self) -> tuple[str, list]:
        parts, args = [], []

        for f in self.fields:
            expr, expr_args = self._field_sql(f)
            parts.append(expr if f.definition.category == "marker" else f'{expr} AS "{f.alias}"')
            args += expr_args

        return ", ".join(parts), args

    def _field_sql(self, f: Field) -> tuple[str, list]:
        definition = f.definition

        if definition.bucket:
            return time_bucket(definition.bucket, f"{self.alias}.time", self.filter), []

        expr = definition.expression(self.table)

        if expr is None:
            raise ValueError(f"Field {f.name} cannot be read from table {self.table.table_name}")

        args: list = []

        if METRIC_TYPE in expr:
            metric_type = "DOUBLE" if self.filter.custom_metric_type == CUSTOM_METRIC_FLOAT else "BIGINT"
            expr = expr.replace(METRIC_TYPE, metric_type)

        if definition.param:
            args.append(self._param(definition.param))

        if definition.total:
            total, total_args = denominator(definition.total, self.filter)
            expr = expr.replace(TOTAL, total)
            args += total_args

        return expr, args

    def _param(self, name: str):
        if name == "custom_metric_key":
            return self.filter.custom_metric_key
        elif name == "event_meta_key":
            return self.filter.event_meta_key[0] if self.filter.event_meta_key else ""
        raise ValueError(f"Unknown field parameter: {name}")

    def _source(self) -> tuple[str, list]:
        a = self.alias
        where, args = self._where()

        if self.table is Table.SESSIONS:
            sql = (
                f"(SELECT {_SESSION_VERSION_COLUMNS} FROM session {a} WHERE {where} "
                f"GROUP BY {_SESSION_VERSION_COLUMNS} HAVING sum({a}.sign) > 0) {a}"
            )
        elif self.explode_tags:
            sql = (
                f"(SELECT {a}.*, unnest({a}.tag_keys) AS tag_key, unnest({a}.tag_values) AS tag_value "
                f"FROM page_view {a} WHERE {where}) {a}"
            )
        else:
            sql = f"(SELECT * FROM {self.table.table_name} {a} WHERE {where}) {a}"

        if self.filter.hostname_fallback:
            # replaced after filtering, the hostname predicates match empty values themselves
            sql = f"(SELECT * REPLACE (coalesce(nullif({a}.hostname, ''), ?) AS hostname) FROM {sql}) {a}"
            args = [self.filter.hostname_fallback, *args]

        return sql, args

    def _where(self) -> tuple[str, list]:
        where, args = time_predicate(self.filter, self.alias)
        parts = [where]

        field_parts, field_args = field_predicates(self.filter, self.table, self.alias)
        parts += field_parts
        args += field_args

        sample, sample_args = sample_predicate(self.filter, self.alias)

        if sample:
            parts.append(sample)
            args += sample_args

        return combine(parts), args

    def _join_condition(self, join: Join) -> str:
        if join.bucket is not None:
            bucket = time_bucket(join.bucket.definition.bucket, f"{self.alias}.time", self.filter)
            return f"{join.alias}.bucket = {bucket}"

        return (
            f"{join.alias}.visitor_id = {self.alias}.visitor_id "
            f"AND {join.alias}.session_id = {self.alias}.session_id"
        )

    def _outer_where(self) -> tuple[str, list]:
        parts, args = [], []

        if self.include_event_filter and self.table is not Table.EVENTS:
            left = next((join for join in self.joins if join.kind == "LEFT" and join.bucket is None), None)

            if left is not None:
                parts, args = event_predicates(self.filter, left.alias)

        if self.explode_tags and Field.TAG_VALUE in self.fields and self.filter.tag:
            sql, tag_args = compile_values(f"{self.alias}.tag_key", self.filter.tag)
            parts.append(sql)
            args += tag_args

        return combine(parts), args

    def _order_by(self, union: bool) -> tuple[str, list]:
        if self.filter.sort:
            items = [(s.field, "DESC" if s.direction == "desc" else "ASC") for s in self.filter.sort]
        else:
            items = [(f, "DESC" if f.definition.descending else "ASC") for f in self.order_by]

        parts, args = [], []

        for f, direction in items:
            if f in self.fields and f.definition.category != "marker":
                parts.append(f'"{f.alias}" {direction}')
            elif not union:
                expr, expr_args = self._field_sql(f)
                parts.append(f"{expr} {direction}")
                args += expr_args

        return ", ".join(parts), args

    def _pagination(self) -> str:
        sql = ""

        if self.limit > 0:
            sql += f" LIMIT {int(self.limit)}"

        if self.offset > 0:
            sql += f" OFFSET {int(self.offset)}"

        return sql

    def _query_with_imported(self) -> tuple[str, list]:
        validate_identifier(self.table_imported, "imported table")
        parts, args = [], []

        for f in self.fields:
            expr, expr_args = self._merged_sql(f)
            parts.append(f'{expr} AS "{f.alias}"')
            args += expr_args

        live, live_args = self._query_live(order=False)
        imported, imported_args = self._imported_query()
        args += live_args + imported_args
        sql = f"SELECT {', '.join(parts)} FROM ({live} UNION ALL {imported}) u"

        if self.group_by:
            sql += " GROUP BY " + ", ".join(f'"{f.alias}"' for f in self.group_by)

        order_sql, _ = self._order_by(union=True)

        if order_sql:
            sql += f" ORDER BY {order_sql}"

        return sql + self._pagination(), args

    def _merged_sql(self, f: Field) -> tuple[str, list]:
        definition = f.definition

        if f in self.group_by:
            return f'"{f.alias}"', []

        if definition.merged:
            if definition.total:
                total, args = denominator(definition.total, self.filter, imported=True)
                return definition.merged.replace(TOTAL, total), args

            return definition.merged, []

        if f.is_aggregate:
            return f'sum("{f.alias}")', []

        return f'any_value("{f.alias}")', []

    def _imported_query(self) -> tuple[str, list]:
        parts = []

        for f in self.fields:
            if f in self.fields_imported:
                if f.definition.bucket:
                    expr = time_bucket(f.definition.bucket, "date", self.filter, is_date=True)
                elif f.definition.imported:
                    expr = f.definition.imported
                else:
                    raise ValueError(f"Field {f.name} is not available in imported tables")
            elif f in self.group_by and f.definition.category == "dimension" and not f.definition.bucket:
                # same value as an empty live column, so both halves merge into one group
                expr = "''"
            else:
                expr = "NULL"

            parts.append(f'{expr} AS "{f.alias}"')

        where, args = imported_time_predicate(self.filter)
        sql = f"SELECT {', '.join(parts)} FROM {self.table_imported} WHERE {where}"
        group_by = [f for f in self.group_by if f in self.fields_imported]

        if group_by:
            sql += " GROUP BY " + ", ".join(f'"{f.alias}"' for f in group_by)

        return sql, args
