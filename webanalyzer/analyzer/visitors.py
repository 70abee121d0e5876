"""Visitor, page view and session counts, over time and compared to the previous period."""

from datetime import datetime, timedelta, timezone

from webanalyzer.analyzer.component import Component
from webanalyzer.core.fields import Field
from webanalyzer.core.filter import Filter
from webanalyzer.core.statistics import (
    ActiveVisitorStats,
    Growth,
    GrowthStats,
    ReferrerStats,
    TotalVisitorsPageViewsStats,
    TotalVisitorStats,
    VisitorHourStats,
    VisitorMinuteStats,
    VisitorStats,
    VisitorWeekdayHourStats,
)
from webanalyzer.core.time_intelligence import calculate_growth, previous_period
from webanalyzer.sql.derived import (
    total_event_duration,
    total_imported_session_duration,
    total_session_duration,
    total_time_on_page,
)
from webanalyzer.sql.planner import build_query
from webanalyzer.validation import NoPeriodOrDayError

IMPORTED_VISITORS = "imported_visitors"
IMPORTED_REFERRER = "imported_referrer"

_TOTALS = [Field.VISITORS, Field.SESSIONS, Field.VIEWS, Field.BOUNCES, Field.BOUNCE_RATE]
_TOTALS_IMPORTED = [Field.VISITORS, Field.SESSIONS, Field.VIEWS, Field.BOUNCES]


def _include_custom_metric(filter: Filter) -> bool:
    return bool(filter.event_name and filter.custom_metric_type and filter.custom_metric_key)


def _metric_fields(filter: Filter, cr: Field) -> list[Field]:
    """Conversion rate and custom metric fields requested by the filter."""
    fields = []

    if filter.include_cr:
        fields.append(cr)

    if _include_custom_metric(filter):
        fields += [Field.CUSTOM_METRIC_AVG, Field.CUSTOM_METRIC_TOTAL]

    return fields


class Visitors(Component):
    """Statistics about visitors."""

    def active(self, filter: Filter | None, duration: timedelta) -> tuple[list[ActiveVisitorStats], int]:
        """Visitors active within the given duration, per hostname and path.

        Args:
            filter: Filter or None
            duration: How far back to look, e.g. timedelta(minutes=5)

        Returns:
            Tuple of (visitors per hostname and path, total active visitors)
        """
        filter = self.analyzer.get_filter(filter)
        filter.from_ = datetime.now(timezone.utc) - duration
        filter.include_time = True
        fields = [Field.HOSTNAME, Field.PATH]
        group_by = [Field.HOSTNAME, Field.PATH]
        order_by = [Field.VISITORS, Field.HOSTNAME, Field.PATH]

        if filter.include_title:
            fields.append(Field.TITLE)
            group_by.append(Field.TITLE)
            order_by.append(Field.TITLE)

        fields.append(Field.VISITORS)
        sql, args = build_query(filter, fields, group_by, order_by)
        stats = self.store.select(filter.ctx, ActiveVisitorStats, sql, args)
        sql, args = build_query(filter, [Field.VISITORS])
        return stats, self.store.count(filter.ctx, sql, args)

    def total(self, filter: Filter | None = None) -> TotalVisitorStats:
        """Total visitors, sessions, views, bounces and bounce rate.

        The conversion rate is included if include_cr is set. Custom metrics are
        included if an event name and a custom metric key and type are set.
        """
        filter = self.analyzer.get_filter(filter)
        fields = _TOTALS + _metric_fields(filter, Field.CR)
        sql, args = build_query(filter, fields, fields_imported=_TOTALS_IMPORTED, table_imported=IMPORTED_VISITORS)
        return self.store.select_one(filter.ctx, TotalVisitorStats, sql, args)

    def total_visitors(self, filter: Filter | None = None) -> int:
        """Unique visitors of the time range, ignoring every other filter."""
        filter = self.analyzer.totals_filter(self.analyzer.get_filter(filter))
        sql, args = build_query(
            filter, [Field.VISITORS], fields_imported=[Field.VISITORS], table_imported=IMPORTED_VISITORS
        )
        return self.store.count(filter.ctx, sql, args)

    def total_page_views(self, filter: Filter | None = None) -> int:
        """Page views of the time range, ignoring every other filter."""
        filter = self.analyzer.totals_filter(self.analyzer.get_filter(filter))
        sql, args = build_query(filter, [Field.VIEWS], fields_imported=[Field.VIEWS], table_imported=IMPORTED_VISITORS)
        return self.store.count(filter.ctx, sql, args)

    def total_sessions(self, filter: Filter | None = None) -> int:
        """Sessions of the time range, ignoring every other filter."""
        filter = self.analyzer.totals_filter(self.analyzer.get_filter(filter))
        sql, args = build_query(
            filter, [Field.SESSIONS], fields_imported=[Field.SESSIONS], table_imported=IMPORTED_VISITORS
        )
        return self.store.count(filter.ctx, sql, args)

    def total_visitors_page_views(self, filter: Filter | None = None) -> TotalVisitorsPageViewsStats:
        """Total visitors and page views with their growth against the previous period.

        Raises:
            NoPeriodOrDayError: If the filter has no from_ or to date
        """
        filter = self.analyzer.get_filter(filter)

        if filter.from_ is None or filter.to is None:
            raise NoPeriodOrDayError()

        fields = [Field.VISITORS, Field.VIEWS]
        sql, args = build_query(filter, fields, fields_imported=fields, table_imported=IMPORTED_VISITORS)
        current = self.store.select_one(filter.ctx, TotalVisitorsPageViewsStats, sql, args)
        previous_period(filter)
        sql, args = build_query(filter, fields, fields_imported=fields, table_imported=IMPORTED_VISITORS)
        previous = self.store.select_one(filter.ctx, TotalVisitorsPageViewsStats, sql, args)
        return TotalVisitorsPageViewsStats(
            visitors=current.visitors,
            views=current.views,
            visitors_growth=calculate_growth(current.visitors, previous.visitors),
            views_growth=calculate_growth(current.views, previous.views),
        )

    def by_period(self, filter: Filter | None = None) -> list[VisitorStats]:
        """Visitor statistics grouped by day, week, month or year (see Filter.period)."""
        filter = self.analyzer.get_filter(filter)
        fields = [Field.DAY, *_TOTALS, *_metric_fields(filter, Field.CR_PERIOD)]
        sql, args = build_query(
            filter,
            fields,
            group_by=[Field.DAY],
            order_by=[Field.DAY, Field.VISITORS],
            fields_imported=[Field.DAY, *_TOTALS_IMPORTED],
            table_imported=IMPORTED_VISITORS,
        )
        return self.store.select(filter.ctx, VisitorStats, sql, args)

    def by_hour(self, filter: Filter | None = None) -> list[VisitorHourStats]:
        """Visitor statistics grouped by hour of the day."""
        filter = self.analyzer.get_filter(filter)
        fields = [Field.HOUR, *_TOTALS, *_metric_fields(filter, Field.CR_PERIOD)]
        sql, args = build_query(
            filter,
            fields,
            group_by=[Field.HOUR],
            order_by=[Field.HOUR, Field.VISITORS],
            fields_imported=[Field.HOUR, *_TOTALS_IMPORTED],
            table_imported=IMPORTED_VISITORS,
        )
        return self.store.select(filter.ctx, VisitorHourStats, sql, args)

    def by_minute(self, filter: Filter | None = None) -> list[VisitorMinuteStats]:
        """Visitor statistics grouped by minute of the hour. Imported data has no minutes."""
        filter = self.analyzer.get_filter(filter)
        fields = [Field.MINUTE, *_TOTALS, *_metric_fields(filter, Field.CR_PERIOD)]
        sql, args = build_query(filter, fields, group_by=[Field.MINUTE], order_by=[Field.MINUTE, Field.VISITORS])
        return self.store.select(filter.ctx, VisitorMinuteStats, sql, args)

    def by_weekday_and_hour(self, filter: Filter | None = None) -> list[VisitorWeekdayHourStats]:
        filter = self.analyzer.get_filter(filter)
        fields = [Field.WEEKDAY, Field.HOUR, Field.VISITORS, Field.SESSIONS, Field.VIEWS, Field.BOUNCES]
        sql, args = build_query(
            filter, fields, group_by=[Field.WEEKDAY, Field.HOUR], order_by=[Field.WEEKDAY, Field.HOUR]
        )
        return self.store.select(filter.ctx, VisitorWeekdayHourStats, sql, args)

    def growth(self, filter: Filter | None = None) -> Growth:
        """Growth of the filtered period against the period before it.

        Time spent is the event duration if an event name is set, the session
        duration if no path is set and the time on page otherwise.

        Raises:
            NoPeriodOrDayError: If the filter has no from_ or to date
        """
        filter = self.analyzer.get_filter(filter)

        if filter.from_ is None or filter.to is None:
            raise NoPeriodOrDayError()

        fields = _TOTALS + _metric_fields(filter, Field.CR)
        sql, args = build_query(filter, fields, fields_imported=_TOTALS_IMPORTED, table_imported=IMPORTED_VISITORS)
        current = self.store.select_one(filter.ctx, GrowthStats, sql, args)
        current_time_spent = self._time_spent(filter)

        previous_period(filter)
        sql, args = build_query(filter, fields, fields_imported=_TOTALS_IMPORTED, table_imported=IMPORTED_VISITORS)
        previous = self.store.select_one(filter.ctx, GrowthStats, sql, args)
        previous_time_spent = self._time_spent(filter)

        return Growth(
            visitors_growth=calculate_growth(current.visitors, previous.visitors),
            views_growth=calculate_growth(current.views, previous.views),
            sessions_growth=calculate_growth(current.sessions, previous.sessions),
            bounces_growth=calculate_growth(current.bounce_rate, previous.bounce_rate),
            time_spent_growth=calculate_growth(current_time_spent, previous_time_spent),
            cr_growth=calculate_growth(current.cr, previous.cr),
            custom_metric_avg_growth=calculate_growth(current.custom_metric_avg, previous.custom_metric_avg),
            custom_metric_total_growth=calculate_growth(current.custom_metric_total, previous.custom_metric_total),
        )

    def referrer(self, filter: Filter | None = None) -> list[ReferrerStats]:
        """Visitors, sessions and bounces grouped by referrer name.

        If the filter restricts referrers, rows are also grouped by the full
        referrer. Otherwise one of the referrers of each name is returned.
        """
        filter = self.analyzer.get_filter(filter)
        fields = [
            Field.REFERRER_NAME,
            Field.REFERRER_ICON,
            Field.VISITORS,
            Field.SESSIONS,
            Field.RELATIVE_VISITORS,
            Field.BOUNCES,
            Field.BOUNCE_RATE,
        ]
        group_by = [Field.REFERRER_NAME]
        order_by = [Field.VISITORS, Field.REFERRER_NAME]

        if filter.referrer or filter.referrer_name:
            fields.append(Field.REFERRER)
            group_by.append(Field.REFERRER)
            order_by.append(Field.REFERRER)
        else:
            fields.append(Field.ANY_REFERRER)

        fields_imported = []

        if filter.imported_until is not None:
            fields_imported = [Field.REFERRER_NAME, Field.VISITORS, Field.SESSIONS, Field.BOUNCES]

        sql, args = build_query(filter, fields, group_by, order_by, fields_imported, IMPORTED_REFERRER)
        return self.store.select(filter.ctx, ReferrerStats, sql, args)

    def _time_spent(self, filter: Filter) -> int:
        if filter.event_name:
            sql, args = total_event_duration(filter)
            return self.store.count(filter.ctx, sql, args)

        if filter.path:
            sql, args = total_time_on_page(filter)
            return self.store.count(filter.ctx, sql, args)

        sql, args = total_session_duration(filter)
        total = self.store.count(filter.ctx, sql, args)
        imported = total_imported_session_duration(filter)

        if imported is not None:
            total += self.store.count(filter.ctx, *imported)

        return total
