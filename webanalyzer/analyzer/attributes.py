"""Visitor attribute breakdowns: demographics, devices and campaigns."""

from webanalyzer.analyzer.component import Component
from webanalyzer.core.fields import Field
from webanalyzer.core.filter import Filter
from webanalyzer.core.statistics import (
    BrowserStats,
    BrowserVersionStats,
    ChannelStats,
    CityStats,
    CountryStats,
    LanguageStats,
    OSStats,
    OSVersionStats,
    PlatformStats,
    RegionStats,
    ScreenClassStats,
    UTMCampaignStats,
    UTMContentStats,
    UTMMediumStats,
    UTMSourceStats,
    UTMTermStats,
)
from webanalyzer.sql.planner import build_query


class Demographics(Component):
    """Statistics about where visitors come from."""

    def languages(self, filter: Filter | None = None) -> list[LanguageStats]:
        return self.analyzer.select_by_attribute(filter, LanguageStats, Field.LANGUAGE)

    def countries(self, filter: Filter | None = None) -> list[CountryStats]:
        return self.analyzer.select_by_attribute(filter, CountryStats, Field.COUNTRY)

    def regions(self, filter: Filter | None = None) -> list[RegionStats]:
        """Visitors grouped by region, qualified by country."""
        return self.analyzer.select_by_attribute(filter, RegionStats, Field.REGION, Field.COUNTRY)

    def cities(self, filter: Filter | None = None) -> list[CityStats]:
        """Visitors grouped by city, qualified by country and region."""
        return self.analyzer.select_by_attribute(filter, CityStats, Field.CITY, Field.COUNTRY, Field.REGION)


class Device(Component):
    """Statistics about the devices visitors use."""

    def platform(self, filter: Filter | None = None) -> PlatformStats:
        """Visitors on desktop, mobile and unknown platforms and their share."""
        filter = self.analyzer.get_filter(filter)
        fields = [Field.PLATFORM_DESKTOP, Field.PLATFORM_MOBILE, Field.PLATFORM_UNKNOWN]
        sql, args = build_query(filter, fields)
        stats = self.store.select_one(filter.ctx, PlatformStats, sql, args)
        total = stats.platform_desktop + stats.platform_mobile + stats.platform_unknown

        if total == 0:
            return stats

        return stats.model_copy(
            update={
                "relative_platform_desktop": stats.platform_desktop / total,
                "relative_platform_mobile": stats.platform_mobile / total,
                "relative_platform_unknown": stats.platform_unknown / total,
            }
        )

    def browser(self, filter: Filter | None = None) -> list[BrowserStats]:
        return self.analyzer.select_by_attribute(filter, BrowserStats, Field.BROWSER)

    def browser_versions(self, filter: Filter | None = None) -> list[BrowserVersionStats]:
        return self.analyzer.select_by_attribute(filter, BrowserVersionStats, Field.BROWSER, Field.BROWSER_VERSION)

    def os(self, filter: Filter | None = None) -> list[OSStats]:
        return self.analyzer.select_by_attribute(filter, OSStats, Field.OS)

    def os_versions(self, filter: Filter | None = None) -> list[OSVersionStats]:
        return self.analyzer.select_by_attribute(filter, OSVersionStats, Field.OS, Field.OS_VERSION)

    def screen_class(self, filter: Filter | None = None) -> list[ScreenClassStats]:
        return self.analyzer.select_by_attribute(filter, ScreenClassStats, Field.SCREEN_CLASS)


class UTM(Component):
    """Statistics about campaign parameters and channels."""

    def source(self, filter: Filter | None = None) -> list[UTMSourceStats]:
        return self.analyzer.select_by_attribute(filter, UTMSourceStats, Field.UTM_SOURCE)

    def medium(self, filter: Filter | None = None) -> list[UTMMediumStats]:
        return self.analyzer.select_by_attribute(filter, UTMMediumStats, Field.UTM_MEDIUM)

    def campaign(self, filter: Filter | None = None) -> list[UTMCampaignStats]:
        return self.analyzer.select_by_attribute(filter, UTMCampaignStats, Field.UTM_CAMPAIGN)

    def content(self, filter: Filter | None = None) -> list[UTMContentStats]:
        return self.analyzer.select_by_attribute(filter, UTMContentStats, Field.UTM_CONTENT)

    def term(self, filter: Filter | None = None) -> list[UTMTermStats]:
        return self.analyzer.select_by_attribute(filter, UTMTermStats, Field.UTM_TERM)

    def channel(self, filter: Filter | None = None) -> list[ChannelStats]:
        return self.analyzer.select_by_attribute(filter, ChannelStats, Field.CHANNEL)
