"""Cancellation handle passed along with every store operation."""

import threading
import time

from webanalyzer.validation import QueryCancelledError


class Context:
    """Carries cancellation and an optional deadline for a unit of work.

    A context is created once per request and shared by every query issued
    on its behalf. Stores check it before running a statement and interrupt
    running statements when the deadline passes.
    """

    def __init__(self, deadline: float | None = None):
        self.deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> "Context":
        """A context that is never cancelled."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> "Context":
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Seconds left until the deadline, None if there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def done(self) -> bool:
        if self.cancelled:
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def raise_if_done(self) -> None:
        if self.cancelled:
            raise QueryCancelledError("context cancelled")
        if self.done():
            raise QueryCancelledError("context deadline exceeded")

    def __repr__(self) -> str:
        return f"Context(deadline={self.deadline!r}, cancelled={self.cancelled})"
