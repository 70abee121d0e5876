"""Session listings and the page views and events of a single session."""

from __future__ import annotations

import logging

from webanalyzer.analyzer.component import Component
from webanalyzer.core.fields import Field
from webanalyzer.core.filter import Filter
from webanalyzer.core.statistics import EventStep, PageViewStep, SessionStats, SessionStep
from webanalyzer.sql.planner import build_query

logger = logging.getLogger(__name__)


class Sessions(Component):
    """Statistics about individual sessions."""

    def list(self, filter: Filter | None = None) -> list[SessionStats]:
        """Sessions matching the filter, latest first.

        Use the filter's limit and offset to page through the result.
        """
        filter = self.analyzer.get_filter(filter)
        sql, args = build_query(filter, [Field.SESSIONS_ALL], order_by=[Field.TIME])
        return self.store.select(filter.ctx, SessionStats, sql, args)

    def breakdown(self, filter: Filter | None = None) -> list[SessionStep]:
        """Page views and events of one session in chronological order.

        The filter must set both a visitor and a session ID, otherwise the
        result is empty. Dimension filters are ignored.
        """
        filter = self.analyzer.get_filter(filter)

        if not filter.visitor_id or not filter.session_id:
            logger.debug("session breakdown without visitor and session ID")
            return []

        session = filter.time_only()
        session.visitor_id = filter.visitor_id
        session.session_id = filter.session_id
        sql, args = build_query(session, [Field.PAGE_VIEWS_ALL])
        page_views = self.store.select(filter.ctx, PageViewStep, sql, args)
        sql, args = build_query(session, [Field.EVENTS_ALL])
        events = self.store.select(filter.ctx, EventStep, sql, args)
        steps = [SessionStep(page_view=page_view) for page_view in page_views]
        steps += [SessionStep(event=event) for event in events]
        steps.sort(key=lambda step: (step.page_view or step.event).time)
        return steps
