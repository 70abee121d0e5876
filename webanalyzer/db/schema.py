"""Table layout of the analytics store and the records written into it."""

from datetime import date, datetime

from pydantic import BaseModel, Field

_VISITOR_ATTRIBUTES = """
    language VARCHAR NOT NULL DEFAULT '',
    country_code VARCHAR NOT NULL DEFAULT '',
    region VARCHAR NOT NULL DEFAULT '',
    city VARCHAR NOT NULL DEFAULT '',
    referrer VARCHAR NOT NULL DEFAULT '',
    referrer_name VARCHAR NOT NULL DEFAULT '',
    referrer_icon VARCHAR NOT NULL DEFAULT '',
    os VARCHAR NOT NULL DEFAULT '',
    os_version VARCHAR NOT NULL DEFAULT '',
    browser VARCHAR NOT NULL DEFAULT '',
    browser_version VARCHAR NOT NULL DEFAULT '',
    desktop TINYINT NOT NULL DEFAULT 0,
    mobile TINYINT NOT NULL DEFAULT 0,
    screen_class VARCHAR NOT NULL DEFAULT '',
    utm_source VARCHAR NOT NULL DEFAULT '',
    utm_medium VARCHAR NOT NULL DEFAULT '',
    utm_campaign VARCHAR NOT NULL DEFAULT '',
    utm_content VARCHAR NOT NULL DEFAULT '',
    utm_term VARCHAR NOT NULL DEFAULT '',
    channel VARCHAR NOT NULL DEFAULT ''"""

SCHEMA = [
    f"""CREATE TABLE IF NOT EXISTS session (
    client_id BIGINT NOT NULL,
    visitor_id UBIGINT NOT NULL,
    session_id UINTEGER NOT NULL,
    sign TINYINT NOT NULL,
    "time" TIMESTAMP NOT NULL,
    "start" TIMESTAMP NOT NULL,
    duration_seconds INTEGER NOT NULL DEFAULT 0,
    hostname VARCHAR NOT NULL DEFAULT '',
    entry_path VARCHAR NOT NULL DEFAULT '',
    exit_path VARCHAR NOT NULL DEFAULT '',
    entry_title VARCHAR NOT NULL DEFAULT '',
    exit_title VARCHAR NOT NULL DEFAULT '',
    page_views INTEGER NOT NULL DEFAULT 0,
    is_bounce TINYINT NOT NULL DEFAULT 0,{_VISITOR_ATTRIBUTES}
)""",
    f"""CREATE TABLE IF NOT EXISTS page_view (
    client_id BIGINT NOT NULL,
    visitor_id UBIGINT NOT NULL,
    session_id UINTEGER NOT NULL,
    "time" TIMESTAMP NOT NULL,
    duration_seconds INTEGER NOT NULL DEFAULT 0,
    hostname VARCHAR NOT NULL DEFAULT '',
    path VARCHAR NOT NULL DEFAULT '',
    title VARCHAR NOT NULL DEFAULT '',{_VISITOR_ATTRIBUTES},
    tag_keys VARCHAR[] NOT NULL,
    tag_values VARCHAR[] NOT NULL
)""",
    f"""CREATE TABLE IF NOT EXISTS event (
    client_id BIGINT NOT NULL,
    visitor_id UBIGINT NOT NULL,
    session_id UINTEGER NOT NULL,
    "time" TIMESTAMP NOT NULL,
    event_name VARCHAR NOT NULL,
    event_meta_keys VARCHAR[] NOT NULL,
    event_meta_values VARCHAR[] NOT NULL,
    duration_seconds INTEGER NOT NULL DEFAULT 0,
    hostname VARCHAR NOT NULL DEFAULT '',
    path VARCHAR NOT NULL DEFAULT '',
    title VARCHAR NOT NULL DEFAULT '',{_VISITOR_ATTRIBUTES}
)""",
    """CREATE TABLE IF NOT EXISTS imported_visitors (
    client_id BIGINT NOT NULL,
    date DATE NOT NULL,
    visitors BIGINT NOT NULL DEFAULT 0,
    views BIGINT NOT NULL DEFAULT 0,
    sessions BIGINT NOT NULL DEFAULT 0,
    bounces BIGINT NOT NULL DEFAULT 0,
    session_duration BIGINT NOT NULL DEFAULT 0
)""",
    """CREATE TABLE IF NOT EXISTS imported_page (
    client_id BIGINT NOT NULL,
    date DATE NOT NULL,
    path VARCHAR NOT NULL,
    title VARCHAR NOT NULL DEFAULT '',
    visitors BIGINT NOT NULL DEFAULT 0,
    views BIGINT NOT NULL DEFAULT 0,
    sessions BIGINT NOT NULL DEFAULT 0,
    bounces BIGINT NOT NULL DEFAULT 0
)""",
    """CREATE TABLE IF NOT EXISTS imported_entry_page (
    client_id BIGINT NOT NULL,
    date DATE NOT NULL,
    entry_path VARCHAR NOT NULL,
    visitors BIGINT NOT NULL DEFAULT 0,
    sessions BIGINT NOT NULL DEFAULT 0
)""",
    """CREATE TABLE IF NOT EXISTS imported_exit_page (
    client_id BIGINT NOT NULL,
    date DATE NOT NULL,
    exit_path VARCHAR NOT NULL,
    visitors BIGINT NOT NULL DEFAULT 0,
    sessions BIGINT NOT NULL DEFAULT 0
)""",
    """CREATE TABLE IF NOT EXISTS imported_referrer (
    client_id BIGINT NOT NULL,
    date DATE NOT NULL,
    referrer VARCHAR NOT NULL,
    visitors BIGINT NOT NULL DEFAULT 0,
    sessions BIGINT NOT NULL DEFAULT 0,
    bounces BIGINT NOT NULL DEFAULT 0
)""",
]


class VisitorAttributes(BaseModel):
    """Attributes shared by sessions, page views and events."""

    client_id: int = 0
    visitor_id: int
    session_id: int = 0
    time: datetime
    hostname: str = ""
    language: str = ""
    country_code: str = ""
    region: str = ""
    city: str = ""
    referrer: str = ""
    referrer_name: str = ""
    referrer_icon: str = ""
    os: str = ""
    os_version: str = ""
    browser: str = ""
    browser_version: str = ""
    desktop: bool = False
    mobile: bool = False
    screen_class: str = ""
    utm_source: str = ""
    utm_medium: str = ""
    utm_campaign: str = ""
    utm_content: str = ""
    utm_term: str = ""
    channel: str = ""


class Session(VisitorAttributes):
    """One version of a session. Updates cancel the previous version with sign -1."""

    sign: int = Field(default=1, description="+1 for the current version, -1 to cancel it")
    start: datetime | None = Field(default=None, description="Session start, defaults to time")
    duration_seconds: int = 0
    entry_path: str = ""
    exit_path: str = ""
    entry_title: str = ""
    exit_title: str = ""
    page_views: int = 0
    is_bounce: bool = False


class PageView(VisitorAttributes):
    """A page view. duration_seconds is the time spent on the previous page."""

    duration_seconds: int = 0
    path: str = ""
    title: str = ""
    tag_keys: list[str] = Field(default_factory=list)
    tag_values: list[str] = Field(default_factory=list)


class Event(VisitorAttributes):
    event_name: str
    event_meta_keys: list[str] = Field(default_factory=list)
    event_meta_values: list[str] = Field(default_factory=list)
    duration_seconds: int = 0
    path: str = ""
    title: str = ""


class ImportedVisitors(BaseModel):
    client_id: int = 0
    date: date
    visitors: int = 0
    views: int = 0
    sessions: int = 0
    bounces: int = 0
    session_duration: int = 0


class ImportedPage(BaseModel):
    client_id: int = 0
    date: date
    path: str
    title: str = ""
    visitors: int = 0
    views: int = 0
    sessions: int = 0
    bounces: int = 0


class ImportedEntryPage(BaseModel):
    client_id: int = 0
    date: date
    entry_path: str
    visitors: int = 0
    sessions: int = 0


class ImportedExitPage(BaseModel):
    client_id: int = 0
    date: date
    exit_path: str
    visitors: int = 0
    sessions: int = 0


class ImportedReferrer(BaseModel):
    client_id: int = 0
    date: date
    referrer: str
    visitors: int = 0
    sessions: int = 0
    bounces: int = 0


# Table each record type is written to.
RECORD_TABLES = {
    Session: "session",
    PageView: "page_view",
    Event: "event",
    ImportedVisitors: "imported_visitors",
    ImportedPage: "imported_page",
    ImportedEntryPage: "imported_entry_page",
    ImportedExitPage: "imported_exit_page",
    ImportedReferrer: "imported_referrer",
}

SESSION_COLUMNS = tuple(Session.model_fields)
