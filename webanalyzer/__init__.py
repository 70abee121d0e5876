"""webanalyzer: SQL query engine for privacy-friendly web analytics."""

__version__ = "0.1.0"

from webanalyzer.core.context import Context
from webanalyzer.core.fields import Field, Table
from webanalyzer.core.filter import (
    NULL_CLIENT,
    PERIOD_DAY,
    PERIOD_MONTH,
    PERIOD_WEEK,
    PERIOD_YEAR,
    WEEKDAY_MONDAY,
    WEEKDAY_SUNDAY,
    Filter,
    Search,
    Sort,
)
from webanalyzer.validation import AnalyzerError, NoPeriodOrDayError, QueryCancelledError

__all__ = [
    "Analyzer",
    "AnalyzerError",
    "Context",
    "DuckDBStore",
    "Field",
    "Filter",
    "NoPeriodOrDayError",
    "NULL_CLIENT",
    "PERIOD_DAY",
    "PERIOD_MONTH",
    "PERIOD_WEEK",
    "PERIOD_YEAR",
    "QueryCancelledError",
    "Search",
    "Sort",
    "Table",
    "WEEKDAY_MONDAY",
    "WEEKDAY_SUNDAY",
]


def __getattr__(name):  # Lazy import to avoid importing duckdb on package import
    if name == "Analyzer":
        from webanalyzer.analyzer.analyzer import Analyzer  # type: ignore

        return Analyzer
    if name == "DuckDBStore":
        from webanalyzer.db.duckdb import DuckDBStore  # type: ignore

        return DuckDBStore
    raise AttributeError(name)
