"""
Analytics - traffic reports built from the Cloudflare GraphQL Analytics API.

Pipeline:
- Query planning (main totals query + chunked breakdown queries)
- Slot aggregation (hourly or daily totals, status codes, browsers)
- Breakdown aggregation (paths, countries; failing chunks are skipped)
- Gap-filled time series and the final ranked report
"""

from sitepulse.analytics.breakdowns import is_content_path
from sitepulse.analytics.manager import AnalyticsManager, fetch_analytics
from sitepulse.analytics.models import (
    AnalyticsReport,
    BrowserCount,
    CountryCount,
    FailedChunk,
    Granularity,
    Mode,
    PathCount,
    Period,
    ReportWindow,
    StatusCount,
    TimeSlot,
)

__all__ = [
    "AnalyticsManager",
    "AnalyticsReport",
    "BrowserCount",
    "CountryCount",
    "FailedChunk",
    "Granularity",
    "Mode",
    "PathCount",
    "Period",
    "ReportWindow",
    "StatusCount",
    "TimeSlot",
    "fetch_analytics",
    "is_content_path",
]
