"""Statistics about custom events."""

from __future__ import annotations

import logging

from webanalyzer.analyzer.component import Component
from webanalyzer.core.fields import Field
from webanalyzer.core.filter import Filter
from webanalyzer.core.statistics import EventListStats, EventStats
from webanalyzer.sql.planner import build_query

logger = logging.getLogger(__name__)


class Events(Component):
    """Statistics about events."""

    def events(self, filter: Filter | None = None) -> list[EventStats]:
        """Visitors, views, conversion rate and average duration per event name."""
        filter = self.analyzer.get_filter(filter)
        fields = [
            Field.EVENT_NAME,
            Field.COUNT,
            Field.VISITORS,
            Field.VIEWS,
            Field.CR,
            Field.EVENT_TIME_SPENT,
            Field.EVENT_META_KEYS,
        ]
        sql, args = build_query(filter, fields, [Field.EVENT_NAME], [Field.VISITORS, Field.EVENT_NAME])
        return self.store.select(filter.ctx, EventStats, sql, args)

    def breakdown(self, filter: Filter | None = None) -> list[EventStats]:
        """Event statistics grouped by the value of one metadata key.

        The filter must set an event name and a metadata key (the first one is
        used), otherwise the result is empty.
        """
        filter = self.analyzer.get_filter(filter)

        if not filter.event_name or not filter.event_meta_key:
            logger.debug("event breakdown without event name or metadata key")
            return []

        fields = [
            Field.EVENT_NAME,
            Field.COUNT,
            Field.VISITORS,
            Field.VIEWS,
            Field.CR,
            Field.EVENT_TIME_SPENT,
            Field.EVENT_META_VALUE,
        ]
        sql, args = build_query(
            filter,
            fields,
            [Field.EVENT_NAME, Field.EVENT_META_VALUE],
            [Field.VISITORS, Field.EVENT_META_VALUE],
        )
        return self.store.select(filter.ctx, EventStats, sql, args)

    def list(self, filter: Filter | None = None) -> list[EventListStats]:
        """Events with their metadata as key-value pairs, by count."""
        filter = self.analyzer.get_filter(filter)
        meta = [Field.EVENT_META_KEYS_RAW, Field.EVENT_META_VALUES_RAW]
        fields = [Field.EVENT_NAME, *meta, Field.VISITORS, Field.COUNT]
        sql, args = build_query(filter, fields, [Field.EVENT_NAME, *meta], [Field.COUNT, Field.EVENT_NAME])
        return [
            EventListStats(
                name=row["event_name"],
                meta=dict(zip(row["event_meta_keys"] or [], row["event_meta_values"] or [])),
                visitors=row["visitors"],
                count=row["count"],
            )
            for row in self.store.query(filter.ctx, sql, args)
        ]
