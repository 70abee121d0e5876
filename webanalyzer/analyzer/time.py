"""Time spent on pages."""

from webanalyzer.analyzer.component import Component
from webanalyzer.core.filter import Filter
from webanalyzer.core.statistics import TimeSpentStats
from webanalyzer.sql.derived import avg_time_on_page, total_time_on_page


class Time(Component):
    """Statistics about the time visitors spend on pages.

    The time on a page is read from the page view following it in the same
    session, so the last page of a session has no time on page. Set
    max_time_on_page_seconds on the filter to cap outliers.
    """

    def avg_time_on_page(self, filter: Filter | None = None) -> TimeSpentStats:
        """Average and total time on page of all matching page views."""
        filter = self.analyzer.get_filter(filter)
        sql, args = avg_time_on_page(filter)
        average = self.store.count(filter.ctx, sql, args)
        sql, args = total_time_on_page(filter)
        total = self.store.count(filter.ctx, sql, args)
        return TimeSpentStats(average_time_on_page_seconds=average, total_time_on_page_seconds=total)

    def total_time_on_page(self, filter: Filter | None = None) -> int:
        """Sum of the time on page of all matching page views, in seconds."""
        filter = self.analyzer.get_filter(filter)
        sql, args = total_time_on_page(filter)
        return self.store.count(filter.ctx, sql, args)
