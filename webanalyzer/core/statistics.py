"""Result records returned by the analyzer."""

from datetime import date, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class Stats(BaseModel):
    """Base for result records. SQL NULLs fall back to the field default."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class ActiveVisitorStats(Stats):
    hostname: str = ""
    path: str = ""
    title: str = ""
    visitors: int = 0


class TotalVisitorStats(Stats):
    visitors: int = 0
    views: int = 0
    sessions: int = 0
    bounces: int = 0
    bounce_rate: float = 0
    cr: float = 0
    custom_metric_avg: float = 0
    custom_metric_total: float = 0


class TotalVisitorsPageViewsStats(Stats):
    visitors: int = 0
    views: int = 0
    visitors_growth: float = 0
    views_growth: float = 0


class VisitorStats(Stats):
    day: date | None = None
    visitors: int = 0
    views: int = 0
    sessions: int = 0
    bounces: int = 0
    bounce_rate: float = 0
    cr: float = 0
    custom_metric_avg: float = 0
    custom_metric_total: float = 0


class VisitorHourStats(Stats):
    hour: int = 0
    visitors: int = 0
    views: int = 0
    sessions: int = 0
    bounces: int = 0
    bounce_rate: float = 0
    cr: float = 0
    custom_metric_avg: float = 0
    custom_metric_total: float = 0


class VisitorMinuteStats(Stats):
    minute: int = 0
    visitors: int = 0
    views: int = 0
    sessions: int = 0
    bounces: int = 0
    bounce_rate: float = 0
    cr: float = 0
    custom_metric_avg: float = 0
    custom_metric_total: float = 0


class VisitorWeekdayHourStats(Stats):
    weekday: int = 0
    hour: int = 0
    visitors: int = 0


class GrowthStats(Stats):
    """Totals of one period, compared by growth()."""

    visitors: int = 0
    views: int = 0
    sessions: int = 0
    bounces: int = 0
    bounce_rate: float = 0
    cr: float = 0
    custom_metric_avg: float = 0
    custom_metric_total: float = 0


class Growth(Stats):
    """Relative change of the current period against the previous one."""

    visitors_growth: float = 0
    views_growth: float = 0
    sessions_growth: float = 0
    bounces_growth: float = 0
    time_spent_growth: float = 0
    cr_growth: float = 0
    custom_metric_avg_growth: float = 0
    custom_metric_total_growth: float = 0


class HostnameStats(Stats):
    hostname: str = ""
    visitors: int = 0
    views: int = 0
    sessions: int = 0
    bounces: int = 0
    relative_visitors: float = 0
    relative_views: float = 0
    bounce_rate: float = 0


class PageStats(Stats):
    path: str = Field(default="", validation_alias=AliasChoices("path", "event_path"))
    title: str = Field(default="", validation_alias=AliasChoices("title", "event_title"))
    visitors: int = 0
    views: int = 0
    sessions: int = 0
    bounces: int = 0
    relative_visitors: float = 0
    relative_views: float = 0
    bounce_rate: float = 0
    average_time_spent_seconds: int = 0


class EntryStats(Stats):
    path: str = Field(default="", validation_alias=AliasChoices("entry_path", "path"))
    title: str = Field(default="", validation_alias=AliasChoices("entry_title", "title"))
    visitors: int = 0
    sessions: int = 0
    entries: int = 0
    entry_rate: float = 0
    average_time_spent_seconds: int = 0


class ExitStats(Stats):
    path: str = Field(default="", validation_alias=AliasChoices("exit_path", "path"))
    title: str = Field(default="", validation_alias=AliasChoices("exit_title", "title"))
    visitors: int = 0
    sessions: int = 0
    exits: int = 0
    exit_rate: float = 0


class ConversionStats(Stats):
    """Visitors reaching the filtered pages or events, as a share of all visitors."""

    visitors: int = 0
    views: int = 0
    cr: float = 0
    custom_metric_avg: float = 0
    custom_metric_total: float = 0


class EventStats(Stats):
    name: str = Field(default="", validation_alias=AliasChoices("event_name", "name"))
    count: int = 0
    visitors: int = 0
    views: int = 0
    cr: float = 0
    average_duration_seconds: int = Field(
        default=0, validation_alias=AliasChoices("average_time_spent_seconds", "average_duration_seconds")
    )
    meta_keys: list[str] = Field(default_factory=list)
    meta_value: str = ""


class EventListStats(Stats):
    name: str = Field(default="", validation_alias=AliasChoices("event_name", "name"))
    meta: dict[str, str] = Field(default_factory=dict)
    visitors: int = 0
    count: int = 0


class ReferrerStats(Stats):
    referrer: str = ""
    referrer_name: str = ""
    referrer_icon: str = ""
    visitors: int = 0
    sessions: int = 0
    relative_visitors: float = 0
    bounces: int = 0
    bounce_rate: float = 0


class PlatformStats(Stats):
    platform_desktop: int = 0
    platform_mobile: int = 0
    platform_unknown: int = 0
    relative_platform_desktop: float = 0
    relative_platform_mobile: float = 0
    relative_platform_unknown: float = 0


class MetaStats(Stats):
    """Visitor count and share shared by all attribute breakdowns."""

    visitors: int = 0
    relative_visitors: float = 0


class LanguageStats(MetaStats):
    language: str = ""


class CountryStats(MetaStats):
    country_code: str = ""


class RegionStats(MetaStats):
    country_code: str = ""
    region: str = ""


class CityStats(MetaStats):
    country_code: str = ""
    region: str = ""
    city: str = ""


class BrowserStats(MetaStats):
    browser: str = ""


class BrowserVersionStats(MetaStats):
    browser: str = ""
    browser_version: str = ""


class OSStats(MetaStats):
    os: str = ""


class OSVersionStats(MetaStats):
    os: str = ""
    os_version: str = ""


class ScreenClassStats(MetaStats):
    screen_class: str = ""


class UTMSourceStats(MetaStats):
    utm_source: str = ""


class UTMMediumStats(MetaStats):
    utm_medium: str = ""


class UTMCampaignStats(MetaStats):
    utm_campaign: str = ""


class UTMContentStats(MetaStats):
    utm_content: str = ""


class UTMTermStats(MetaStats):
    utm_term: str = ""


class ChannelStats(MetaStats):
    channel: str = ""


class TagStats(Stats):
    key: str = ""
    value: str = ""
    visitors: int = 0
    views: int = 0
    relative_visitors: float = 0
    relative_views: float = 0


class TimeSpentStats(Stats):
    """Average and total time spent on pages of the filtered sessions."""

    average_time_on_page_seconds: int = 0
    total_time_on_page_seconds: int = 0


class SessionStats(Stats):
    visitor_id: int = 0
    session_id: int = 0
    time: datetime | None = None
    start: datetime | None = None
    duration_seconds: int = 0
    hostname: str = ""
    entry_path: str = ""
    exit_path: str = ""
    entry_title: str = ""
    exit_title: str = ""
    page_views: int = 0
    is_bounce: bool = False
    language: str = ""
    country_code: str = ""
    region: str = ""
    city: str = ""
    referrer: str = ""
    referrer_name: str = ""
    os: str = ""
    browser: str = ""
    desktop: bool = False
    mobile: bool = False
    screen_class: str = ""
    utm_source: str = ""
    utm_medium: str = ""
    utm_campaign: str = ""
    utm_content: str = ""
    utm_term: str = ""
    channel: str = ""


class PageViewStep(Stats):
    visitor_id: int = 0
    session_id: int = 0
    time: datetime | None = None
    duration_seconds: int = 0
    hostname: str = ""
    path: str = ""
    title: str = ""
    tag_keys: list[str] = Field(default_factory=list)
    tag_values: list[str] = Field(default_factory=list)


class EventStep(Stats):
    visitor_id: int = 0
    session_id: int = 0
    time: datetime | None = None
    event_name: str = ""
    event_meta_keys: list[str] = Field(default_factory=list)
    event_meta_values: list[str] = Field(default_factory=list)
    duration_seconds: int = 0
    hostname: str = ""
    path: str = ""
    title: str = ""


class SessionStep(Stats):
    """One step of a session, either a page view or an event."""

    page_view: PageViewStep | None = None
    event: EventStep | None = None
