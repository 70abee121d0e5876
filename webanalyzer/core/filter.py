"""Filter: the normalized description of an analysis query."""

from __future__ import annotations

import copy as _copy
from dataclasses import dataclass
from dataclasses import field as dc_field
from datetime import date, datetime, timedelta, timezone
from typing import Literal
from zoneinfo import ZoneInfo

from webanalyzer.core.context import Context
from webanalyzer.core.fields import Field
from webanalyzer.validation import validate_timezone

NULL_CLIENT = 0

PERIOD_DAY = "day"
PERIOD_WEEK = "week"
PERIOD_MONTH = "month"
PERIOD_YEAR = "year"

WEEKDAY_MONDAY = 1
WEEKDAY_SUNDAY = 2

CUSTOM_METRIC_INTEGER = "integer"
CUSTOM_METRIC_FLOAT = "float"

UTC = ZoneInfo("UTC")

Period = Literal["day", "week", "month", "year"]
Direction = Literal["asc", "desc"]

# List-valued dimension attributes, in declaration order. Validation removes
# duplicates from each of them and equality compares them order-insensitively.
LIST_ATTRIBUTES = (
    "hostname",
    "path",
    "any_path",
    "entry_path",
    "exit_path",
    "path_pattern",
    "language",
    "country",
    "region",
    "city",
    "referrer",
    "referrer_name",
    "channel",
    "os",
    "os_version",
    "browser",
    "browser_version",
    "screen_class",
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "tag",
    "event_name",
    "event_meta_key",
)

MAP_ATTRIBUTES = ("tags", "event_meta")

# Scalar attributes compared by equal().
_SCALAR_ATTRIBUTES = (
    "client_id",
    "from_",
    "to",
    "imported_until",
    "period",
    "platform",
    "hostname_fallback",
    "visitor_id",
    "session_id",
    "offset",
    "limit",
    "custom_metric_key",
    "custom_metric_type",
    "include_time",
    "include_title",
    "include_time_on_page",
    "include_cr",
    "weekday_mode",
    "max_time_on_page_seconds",
    "sample",
)


@dataclass(frozen=True)
class Search:
    """Case-insensitive substring search on a single field."""

    field: Field
    input: str


@dataclass(frozen=True)
class Sort:
    """Ordering override for the outer query."""

    field: Field
    direction: Direction = "asc"


def today() -> datetime:
    """Midnight of the current day in UTC."""
    now = datetime.now(timezone.utc)
    return datetime(now.year, now.month, now.day, tzinfo=timezone.utc)


def past_day(n: int) -> datetime:
    """Midnight UTC n days ago."""
    return today() - timedelta(days=n)


def to_date(value: date | datetime) -> datetime:
    """Truncate a date or datetime to midnight UTC of its calendar day."""
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def to_utc(value: date | datetime) -> datetime:
    """Convert to an aware UTC datetime. Naive values are taken as UTC."""
    if not isinstance(value, datetime):
        return to_date(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _remove_duplicates(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


@dataclass(eq=False)
class Filter:
    """Everything an analysis query is restricted, grouped and ordered by.

    Dimension values may be prefixed with "!" to negate them, and the literal
    "null" (any case) matches absent values. Call validate() before building
    queries. The analyzer does that on a copy, so callers can reuse filters.

    Rows without a hostname are read as hostname_fallback if it is set.
    """

    client_id: int = NULL_CLIENT
    timezone: ZoneInfo | str | None = None
    from_: date | datetime | None = None
    to: date | datetime | None = None
    imported_until: date | datetime | None = None
    period: Period = PERIOD_DAY

    hostname: list[str] = dc_field(default_factory=list)
    hostname_fallback: str = ""
    path: list[str] = dc_field(default_factory=list)
    any_path: list[str] = dc_field(default_factory=list)
    entry_path: list[str] = dc_field(default_factory=list)
    exit_path: list[str] = dc_field(default_factory=list)
    path_pattern: list[str] = dc_field(default_factory=list)
    language: list[str] = dc_field(default_factory=list)
    country: list[str] = dc_field(default_factory=list)
    region: list[str] = dc_field(default_factory=list)
    city: list[str] = dc_field(default_factory=list)
    referrer: list[str] = dc_field(default_factory=list)
    referrer_name: list[str] = dc_field(default_factory=list)
    channel: list[str] = dc_field(default_factory=list)
    os: list[str] = dc_field(default_factory=list)
    os_version: list[str] = dc_field(default_factory=list)
    browser: list[str] = dc_field(default_factory=list)
    browser_version: list[str] = dc_field(default_factory=list)
    platform: str = ""
    screen_class: list[str] = dc_field(default_factory=list)
    utm_source: list[str] = dc_field(default_factory=list)
    utm_medium: list[str] = dc_field(default_factory=list)
    utm_campaign: list[str] = dc_field(default_factory=list)
    utm_content: list[str] = dc_field(default_factory=list)
    utm_term: list[str] = dc_field(default_factory=list)
    tags: dict[str, str] = dc_field(default_factory=dict)
    tag: list[str] = dc_field(default_factory=list)
    event_name: list[str] = dc_field(default_factory=list)
    event_meta_key: list[str] = dc_field(default_factory=list)
    event_meta: dict[str, str] = dc_field(default_factory=dict)

    visitor_id: int = 0
    session_id: int = 0

    search: list[Search] = dc_field(default_factory=list)
    sort: list[Sort] = dc_field(default_factory=list)
    offset: int = 0
    limit: int = 0

    custom_metric_key: str = ""
    custom_metric_type: str = ""

    include_time: bool = False
    include_title: bool = False
    include_time_on_page: bool = False
    include_cr: bool = False
    weekday_mode: int = WEEKDAY_MONDAY
    max_time_on_page_seconds: int = 0
    sample: float = 0

    ctx: Context | None = dc_field(default=None, repr=False)

    _imported_from: datetime | None = dc_field(default=None, init=False, repr=False)
    _imported_to: datetime | None = dc_field(default=None, init=False, repr=False)

    @property
    def imported_from(self) -> datetime | None:
        """Start of the sub-range read from imported tables (set by validate)."""
        return self._imported_from

    @property
    def imported_to(self) -> datetime | None:
        """End of the sub-range read from imported tables (set by validate)."""
        return self._imported_to

    @property
    def tz(self) -> ZoneInfo:
        """The validated timezone. Falls back to UTC before validation."""
        if isinstance(self.timezone, ZoneInfo):
            return self.timezone
        return validate_timezone(self.timezone) if self.timezone else UTC

    def validate(self) -> None:
        """Normalize the filter in place. Running it twice changes nothing."""
        if self.ctx is None:
            self.ctx = Context.background()

        self.timezone = validate_timezone(self.timezone) if self.timezone else UTC

        if self.from_ is not None:
            self.from_ = to_utc(self.from_) if self.include_time else to_date(self.from_)

        if self.to is not None:
            self.to = to_utc(self.to) if self.include_time else to_date(self.to)

        if self.from_ is not None and self.to is not None and self.from_ > self.to:
            self.from_, self.to = self.to, self.from_

        if self.imported_until is not None:
            self.imported_until = to_date(self.imported_until)

            if self.from_ is not None and self.from_ < self.imported_until:
                self._imported_from = self.from_

                if self.to is None or self.to < self.imported_until:
                    self._imported_to = self.to
                else:
                    self.from_ = self.imported_until
                    self._imported_to = self.imported_until - timedelta(days=1)

        # tomorrow instead of today, so that "today" is complete in every timezone
        tomorrow = today() + timedelta(days=1)

        if self.to is not None and self.to > tomorrow:
            self.to = tomorrow

        if self.path and self.path_pattern:
            self.path_pattern = []

        self.hostname_fallback = self.hostname_fallback.strip().lower()
        self.search = [Search(s.field, s.input.strip()) for s in self.search]
        self.sort = [Sort(s.field, "desc" if str(s.direction).lower() == "desc" else "asc") for s in self.sort]
        self.offset = max(self.offset, 0)
        self.limit = max(self.limit, 0)

        if self.custom_metric_type not in ("", CUSTOM_METRIC_INTEGER, CUSTOM_METRIC_FLOAT):
            self.custom_metric_type = ""

        if self.weekday_mode not in (WEEKDAY_MONDAY, WEEKDAY_SUNDAY):
            self.weekday_mode = WEEKDAY_MONDAY

        for name in LIST_ATTRIBUTES:
            setattr(self, name, _remove_duplicates(getattr(self, name)))

        self.country = [c for c in self.country if len(c) == 2 or (len(c) == 3 and c.startswith("!"))]

    def empty(self) -> bool:
        """Whether no dimension predicate is set. Time range and flags are ignored."""
        return (
            not any(getattr(self, name) for name in LIST_ATTRIBUTES)
            and not self.tags
            and not self.event_meta
            and self.platform == ""
            and self.visitor_id == 0
            and self.session_id == 0
            and not self.search
        )

    def equal(self, other: Filter) -> bool:
        """Structural equality ignoring list order and the context."""
        if str(self.tz) != str(other.tz):
            return False

        for name in _SCALAR_ATTRIBUTES:
            if getattr(self, name) != getattr(other, name):
                return False

        for name in LIST_ATTRIBUTES:
            if sorted(getattr(self, name)) != sorted(getattr(other, name)):
                return False

        for name in MAP_ATTRIBUTES:
            if getattr(self, name) != getattr(other, name):
                return False

        def search_key(s: Search):
            return (s.field.name, s.input)

        def sort_key(s: Sort):
            return (s.field.name, s.direction)

        return sorted(self.search, key=search_key) == sorted(other.search, key=search_key) and sorted(
            self.sort, key=sort_key
        ) == sorted(other.sort, key=sort_key)

    def copy(self) -> Filter:
        """Return a clone whose lists and maps can be changed independently."""
        clone = _copy.copy(self)

        for name in LIST_ATTRIBUTES:
            setattr(clone, name, list(getattr(self, name)))

        clone.tags = dict(self.tags)
        clone.event_meta = dict(self.event_meta)
        clone.search = list(self.search)
        clone.sort = list(self.sort)
        return clone

    def without(self, *names: str) -> Filter:
        """Return a copy with the named attributes reset to empty."""
        clone = self.copy()

        for name in names:
            value = getattr(clone, name)

            if isinstance(value, list):
                setattr(clone, name, [])
            elif isinstance(value, dict):
                setattr(clone, name, {})
            elif isinstance(value, str):
                setattr(clone, name, "")
            else:
                raise ValueError(f"Cannot reset filter attribute '{name}'")

        return clone

    def time_only(self) -> Filter:
        """A filter sharing only tenant, timezone and time range with this one."""
        return Filter(
            client_id=self.client_id,
            timezone=self.timezone,
            from_=self.from_,
            to=self.to,
            period=self.period,
            include_time=self.include_time,
            weekday_mode=self.weekday_mode,
            sample=self.sample,
            ctx=self.ctx,
        )

    def search_contains(self, field: Field) -> bool:
        return any(s.field is field for s in self.search)
