"""Store abstraction layer."""

from webanalyzer.db.base import Store

__all__ = ["Store"]
