"""Shared base of the analyzer sub-objects."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from webanalyzer.analyzer.analyzer import Analyzer


class Component:
    """Analysis methods grouped by subject, sharing the analyzer's store."""

    def __init__(self, analyzer: "Analyzer"):
        self.analyzer = analyzer
        self.store = analyzer.store
