"""Statistics about page view tags."""

import logging

from webanalyzer.analyzer.component import Component
from webanalyzer.core.fields import Field
from webanalyzer.core.filter import Filter
from webanalyzer.core.statistics import TagStats
from webanalyzer.sql.planner import build_query

logger = logging.getLogger(__name__)

_COUNTS = [Field.VISITORS, Field.VIEWS, Field.RELATIVE_VISITORS, Field.RELATIVE_VIEWS]


class Tags(Component):
    """Statistics about tags."""

    def keys(self, filter: Filter | None = None) -> list[TagStats]:
        """Visitors and views grouped by tag key."""
        filter = self.analyzer.get_filter(filter)
        sql, args = build_query(filter, [Field.TAG_KEY, *_COUNTS], [Field.TAG_KEY], [Field.VISITORS, Field.TAG_KEY])
        return self.store.select(filter.ctx, TagStats, sql, args)

    def breakdown(self, filter: Filter | None = None) -> list[TagStats]:
        """Visitors and views grouped by the values of the filtered tag keys.

        The filter must set at least one tag key, otherwise the result is empty.
        """
        filter = self.analyzer.get_filter(filter)

        if not filter.tag:
            logger.debug("tag breakdown without tag key")
            return []

        sql, args = build_query(
            filter,
            [Field.TAG_KEY, Field.TAG_VALUE, *_COUNTS],
            [Field.TAG_KEY, Field.TAG_VALUE],
            [Field.VISITORS, Field.TAG_VALUE],
        )
        return self.store.select(filter.ctx, TagStats, sql, args)
