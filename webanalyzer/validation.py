"""Errors and input validation helpers for the analyzer."""

import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# IANA zone names only contain these characters. Anything else would be unsafe
# to embed into generated SQL as a literal.
_TIMEZONE_PATTERN = re.compile(r"^[A-Za-z0-9_+\-/]+$")

# Pattern for valid SQL identifiers: starts with letter or underscore,
# followed by letters, digits, or underscores.
_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class AnalyzerError(Exception):
    """Base class for all errors raised by the analyzer."""

    pass


class NoPeriodOrDayError(AnalyzerError):
    """Raised when a statistic needs a bounded time range but none was given."""

    def __init__(self, message: str = "no period or day specified"):
        super().__init__(message)


class QueryCancelledError(AnalyzerError):
    """Raised when a query context was cancelled or ran past its deadline."""

    pass


def validate_identifier(value: str, name: str = "identifier") -> str:
    """Validate that a value is a safe SQL identifier.

    Args:
        value: The identifier value to validate
        name: Human-readable name for error messages (e.g., "imported table")

    Returns:
        The validated identifier (unchanged if valid)

    Raises:
        ValueError: If the identifier contains invalid characters
    """
    if not value:
        raise ValueError(f"Invalid {name}: cannot be empty")

    if not _IDENTIFIER_PATTERN.match(value):
        raise ValueError(
            f"Invalid {name}: '{value}'. "
            f"Identifiers must start with a letter or underscore and contain only "
            f"letters, digits and underscores."
        )

    return value


def validate_timezone(value: str | ZoneInfo) -> ZoneInfo:
    """Resolve a timezone name to a ZoneInfo that is safe to embed into SQL.

    Raises:
        ValueError: If the name is not a known IANA zone
    """
    if isinstance(value, ZoneInfo):
        value = value.key

    if not value or not _TIMEZONE_PATTERN.match(value):
        raise ValueError(f"Invalid timezone: '{value}'")

    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: '{value}'") from e
