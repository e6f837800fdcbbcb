"""
Analytics Manager - fetches and aggregates site traffic for a period.

Flow for one report:
    plan main query -> execute (fatal on failure) -> aggregate slots
        -> plan breakdown chunks -> execute each in order (failures isolated)
        -> merge partials -> gap-fill series -> assemble report

Cancellation (task cancel or a caller's asyncio.timeout) aborts the whole
call: only transport, parse and API-reported errors are absorbed per
chunk, so CancelledError propagates and no partial report is returned.
"""

from __future__ import annotations

from datetime import UTC, datetime
import logging

import httpx

from sitepulse.analytics.breakdowns import (
    BreakdownPartial,
    merge_breakdowns,
    parse_breakdown_chunk,
)
from sitepulse.analytics.models import AnalyticsReport, FailedChunk, Mode, ReportWindow
from sitepulse.analytics.planner import (
    BreakdownChunk,
    build_breakdown_query,
    build_main_query,
    plan_chunks,
    plan_period,
)
from sitepulse.analytics.report import assemble_report
from sitepulse.analytics.series import build_series
from sitepulse.analytics.slots import aggregate_slots
from sitepulse.core.client import CloudflareClient
from sitepulse.core.config import SitePulseConfig
from sitepulse.core.exceptions import (
    ApiReportedError,
    ConfigurationError,
    ParseError,
    TransportError,
)

logger = logging.getLogger(__name__)


class AnalyticsManager:
    """
    Builds traffic reports from the Cloudflare GraphQL Analytics API.

    Every call is self-contained: nothing is cached between reports.

    Example:
        >>> async with CloudflareClient(config) as client:
        ...     manager = AnalyticsManager(client, config)
        ...     report = await manager.fetch_report(days=7)
    """

    def __init__(self, client: CloudflareClient, config: SitePulseConfig | None = None):
        """
        Initialize analytics manager.

        Args:
            client: Cloudflare client used for every query
            config: Planning limits; defaults to the client's config
        """
        self.client = client
        self.config = config or client.config

    async def resolve_zone_id(self) -> str:
        """
        Zone to report on: the configured zone, else the configured domain's zone.

        Raises:
            ConfigurationError: If neither zone_id nor domain is configured
            ResolutionError: If the domain has no zone
        """
        if self.config.zone_id:
            return self.config.zone_id
        if self.config.domain:
            return await self.client.fetch_zone_id(self.config.domain)
        raise ConfigurationError("Neither zone_id nor domain is configured")

    async def fetch_report(
        self,
        days: int,
        engagement: bool = False,
        zone_id: str | None = None,
        now: datetime | None = None,
    ) -> AnalyticsReport:
        """
        Fetch and aggregate traffic for the last ``days`` days.

        Args:
            days: Period length; 1 gives 24 hourly slots, more gives daily slots
            engagement: Count page views of content paths instead of all requests
            zone_id: Zone to query (defaults to resolve_zone_id())
            now: Reference instant (defaults to the current UTC time)

        Returns:
            AnalyticsReport

        Raises:
            ValidationError: If days < 1
            ConfigurationError: If limits or zone settings are unusable
            TransportError, ParseError, ApiReportedError: If the main query fails
        """
        period = plan_period(days)
        mode = Mode.from_flag(engagement)
        self.config.validate_breakdown_budget()

        zone = zone_id or await self.resolve_zone_id()
        window = ReportWindow(period, _utc(now))

        main_query = build_main_query(zone, window, mode)
        logger.debug("Main query for %s (%s mode)", period.label, mode.value)
        data = await self.client.execute_graphql(main_query.document)
        totals = aggregate_slots(data, period, mode)

        chunks = plan_chunks(
            window,
            chunk_days=self.config.breakdown_chunk_days,
            max_query_fields=self.config.max_query_fields,
            max_window_seconds=self.config.breakdown_max_window_seconds,
        )

        partials: list[BreakdownPartial] = []
        failed: list[FailedChunk] = []
        for chunk in chunks:
            try:
                partials.append(await self._fetch_chunk(zone, chunk, mode))
            except (TransportError, ParseError, ApiReportedError) as e:
                logger.warning(
                    "Breakdown chunk %d (%s..%s) failed, skipping: %s",
                    chunk.index,
                    chunk.start.isoformat(),
                    chunk.end.isoformat(),
                    e,
                )
                failed.append(
                    FailedChunk(
                        index=chunk.index,
                        start=chunk.start,
                        end=chunk.end,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                )

        series = build_series(totals.slots, window)
        report = assemble_report(
            period,
            mode,
            series,
            totals,
            merge_breakdowns(partials),
            failed_chunks=failed,
            top_n=self.config.top_n,
            generated_at=window.now,
        )

        logger.info(
            f"Analytics {report.period} ({mode.value}): {report.total_requests} total, "
            f"{len(chunks) - len(failed)}/{len(chunks)} breakdown chunks ok"
        )
        return report

    async def _fetch_chunk(
        self, zone_id: str, chunk: BreakdownChunk, mode: Mode
    ) -> BreakdownPartial:
        query = build_breakdown_query(
            zone_id,
            chunk,
            mode,
            path_limit=self.config.path_limit,
            engagement_path_limit=self.config.engagement_path_limit,
            country_limit=self.config.country_limit,
            max_query_fields=self.config.max_query_fields,
        )
        logger.debug("Breakdown %r: %d fields", chunk, query.field_count)
        data = await self.client.execute_graphql(query.document)
        return parse_breakdown_chunk(data, chunk, mode, self.config.content_prefixes)


def _utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(UTC)
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now.astimezone(UTC)


async def fetch_analytics(
    zone_id: str,
    api_token: str,
    days: int,
    engagement: bool = False,
    *,
    config: SitePulseConfig | None = None,
    now: datetime | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AnalyticsReport:
    """
    Fetch a traffic report in one call.

    Args:
        zone_id: Cloudflare zone tag
        api_token: API token with Analytics:Read
        days: Period length in days
        engagement: Engagement mode (page views, content paths, HTTP 200 only)
        config: Optional base config for limits and endpoints
        now: Optional reference instant
        transport: Optional httpx transport (used by tests)

    Returns:
        AnalyticsReport

    Example:
        >>> report = await fetch_analytics("zone123", token, days=7)
        >>> report.total_requests
    """
    base = config or SitePulseConfig()
    effective = base.model_copy(update={"zone_id": zone_id, "api_token": api_token})
    effective.require_token()

    async with CloudflareClient(effective, transport=transport) as client:
        manager = AnalyticsManager(client, effective)
        return await manager.fetch_report(days, engagement=engagement, zone_id=zone_id, now=now)
