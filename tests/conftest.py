"""Pytest configuration and fixtures."""

import pytest

from webanalyzer.analyzer.analyzer import Analyzer
from webanalyzer.db.duckdb import DuckDBStore


@pytest.fixture
def store():
    """In-memory DuckDB store with the analytics tables created."""
    store = DuckDBStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def analyzer(store):
    """Analyzer for the default client of the in-memory store."""
    return Analyzer(store)
