"""Store interface consumed by the analyzer."""

from abc import ABC, abstractmethod
from typing import Any, TypeVar

from pydantic import BaseModel

from webanalyzer.core.context import Context

ModelT = TypeVar("ModelT", bound=BaseModel)


class Store(ABC):
    """Executes generated statements against the analytics tables.

    Every call receives the context of the request it belongs to. Errors
    raised by the underlying database propagate unchanged.
    """

    @abstractmethod
    def query(self, ctx: Context, sql: str, args: list) -> list[dict[str, Any]]:
        """Execute SQL and return all rows keyed by column name.

        Args:
            ctx: Cancellation handle of the request
            sql: SQL with positional "?" placeholders
            args: Values for the placeholders, in order

        Returns:
            List of rows as dictionaries
        """
        raise NotImplementedError

    def query_row(self, ctx: Context, sql: str, args: list) -> dict[str, Any] | None:
        """Execute SQL and return the first row, None if there is none."""
        rows = self.query(ctx, sql, args)
        return rows[0] if rows else None

    def count(self, ctx: Context, sql: str, args: list) -> int:
        """Execute a scalar query and return its value as an integer (NULL is 0)."""
        row = self.query_row(ctx, sql, args)

        if not row:
            return 0

        value = next(iter(row.values()))
        return int(value) if value is not None else 0

    def select(self, ctx: Context, model: type[ModelT], sql: str, args: list) -> list[ModelT]:
        """Execute SQL and decode every row into a result record."""
        return [model.model_validate(row) for row in self.query(ctx, sql, args)]

    def select_one(self, ctx: Context, model: type[ModelT], sql: str, args: list) -> ModelT:
        """Execute SQL and decode the first row, or an empty record if there is none."""
        row = self.query_row(ctx, sql, args)
        return model.model_validate(row or {})

    @abstractmethod
    def close(self) -> None:
        """Release the connection."""
        raise NotImplementedError
