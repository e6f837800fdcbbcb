"""
SitePulse - traffic analytics for a Cloudflare-hosted personal site.

Main Features:
- One-call traffic reports over N days (hourly for 1 day, daily otherwise)
- Chunked path/country breakdowns that respect Cloudflare's query limits
- Engagement mode: page views of real content pages only
- Zone lookup and Pages deployment status helpers
- MCP server exposing all of the above as tools

Quick Start:
    >>> from sitepulse import fetch_analytics
    >>> report = await fetch_analytics(zone_id, api_token, days=7)
    >>> report.total_requests

Architecture:
    Caller → AnalyticsManager → QueryPlanner → CloudflareClient → GraphQL API
"""

__version__ = "0.1.0"

from sitepulse.analytics import AnalyticsManager, AnalyticsReport, fetch_analytics
from sitepulse.core.client import CloudflareClient
from sitepulse.core.config import SitePulseConfig
from sitepulse.core.exceptions import (
    ApiReportedError,
    ConfigurationError,
    DeploymentNotFoundError,
    ParseError,
    ResolutionError,
    SitePulseError,
    TransportError,
    ValidationError,
)

__all__ = [
    "AnalyticsManager",
    "AnalyticsReport",
    "ApiReportedError",
    "CloudflareClient",
    "ConfigurationError",
    "DeploymentNotFoundError",
    "ParseError",
    "ResolutionError",
    "SitePulseConfig",
    "SitePulseError",
    "TransportError",
    "ValidationError",
    "__version__",
    "fetch_analytics",
]
