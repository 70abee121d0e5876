"""DuckDB store."""

import logging
import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import duckdb
from pydantic import BaseModel

from webanalyzer.core.context import Context
from webanalyzer.db.base import Store
from webanalyzer.db.schema import RECORD_TABLES, SCHEMA, Session

logger = logging.getLogger(__name__)


def _normalize(value: Any) -> Any:
    """Convert DuckDB result values into Python primitives."""
    if isinstance(value, Decimal):
        return float(value)
    return value


def _to_column(value: Any) -> Any:
    """Convert a record value into what the column stores."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class DuckDBStore(Store):
    """Store backed by a DuckDB database.

    Timestamps are stored as naive UTC. Every cursor runs with the UTC time
    zone so timezone conversions in queries are well defined.
    """

    def __init__(self, path: str = ":memory:", create_schema: bool = True):
        """Initialize DuckDB store.

        Args:
            path: Database file path or ":memory:" for in-memory database
            create_schema: Create the analytics tables if they don't exist
        """
        self.path = path
        self.conn = duckdb.connect(path)
        self.conn.execute("SET TimeZone = 'UTC'")

        if create_schema:
            self.create_schema()

    @classmethod
    def from_url(cls, url: str) -> "DuckDBStore":
        """Create store from connection URL.

        Args:
            url: Connection URL (e.g., "duckdb:///:memory:" or "duckdb:///path/to/db.duckdb")

        Returns:
            DuckDBStore instance
        """
        if not url.startswith("duckdb://"):
            raise ValueError(f"Invalid DuckDB URL: {url}")

        # duckdb:///:memory: -> :memory:
        # duckdb:///tmp/app.db -> /tmp/app.db
        db_path = url[len("duckdb://") :]

        if db_path in ("/:memory:", ":memory:", "", "/"):
            db_path = ":memory:"

        return cls(db_path)

    def create_schema(self) -> None:
        for statement in SCHEMA:
            self.conn.execute(statement)

    def query(self, ctx: Context, sql: str, args: list) -> list[dict[str, Any]]:
        ctx.raise_if_done()
        logger.debug("executing query (%d args): %s", len(args), sql)

        # one cursor per statement, so concurrent requests don't share state
        cursor = self.conn.cursor()
        timer = None
        remaining = ctx.remaining()

        if remaining is not None:
            timer = threading.Timer(remaining, cursor.interrupt)
            timer.start()

        try:
            cursor.execute("SET TimeZone = 'UTC'")
            result = cursor.execute(sql, args)
            columns = [column[0] for column in result.description]
            return [dict(zip(columns, (_normalize(value) for value in row))) for row in result.fetchall()]
        finally:
            if timer is not None:
                timer.cancel()

            cursor.close()

    def save(self, records: list[BaseModel]) -> None:
        """Insert records into the table of their type."""
        if not records:
            return

        model = type(records[0])
        table = RECORD_TABLES[model]
        columns = list(model.model_fields)
        rows = []

        for record in records:
            values = record.model_dump()

            if isinstance(record, Session) and values["start"] is None:
                values["start"] = values["time"]

            rows.append([_to_column(values[column]) for column in columns])

        column_list = ", ".join(f'"{column}"' for column in columns)
        placeholders = ", ".join("?" for _ in columns)
        self.conn.executemany(f"INSERT INTO {table} ({column_list}) VALUES ({placeholders})", rows)

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()
