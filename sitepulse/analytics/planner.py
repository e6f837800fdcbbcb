"""
Query Planner - turns a period and mode into GraphQL documents.

Two query classes are used:
- httpRequests1hGroups / httpRequests1dGroups for the time-bucketed totals
  (one "main" query spanning the whole period)
- httpRequestsAdaptiveGroups for path/country breakdowns, which only accepts
  narrow time windows, so the period is split into sub-windows and grouped
  into chunks that respect the per-query field cap
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging

from sitepulse.analytics.models import Granularity, Mode, Period, ReportWindow
from sitepulse.core.exceptions import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

MAIN_ALIAS = "series"
PATHS_ALIAS = "paths"
COUNTRIES_ALIAS = "countries"

DEFAULT_CHUNK_DAYS = 5
DEFAULT_MAX_QUERY_FIELDS = 12
DEFAULT_MAX_WINDOW_SECONDS = 86400


@dataclass(frozen=True)
class GraphQLQuery:
    """
    A rendered GraphQL document.

    Attributes:
        document: Query text sent to the API
        aliases: Named top-level fields inside ``zones { ... }``
    """

    document: str
    aliases: tuple[str, ...]

    @property
    def field_count(self) -> int:
        return len(self.aliases)


@dataclass(frozen=True)
class BreakdownChunk:
    """
    A group of consecutive sub-windows fetched by one breakdown query.

    Attributes:
        index: Position in the plan (0-based)
        offset: Index of the first sub-window within the period
        windows: (start, end) instants of each sub-window, oldest first
    """

    index: int
    offset: int
    windows: tuple[tuple[datetime, datetime], ...] = field(default_factory=tuple)

    @property
    def start(self) -> datetime:
        return self.windows[0][0]

    @property
    def end(self) -> datetime:
        return self.windows[-1][1]

    def __len__(self) -> int:
        return len(self.windows)

    def __repr__(self) -> str:
        return f"BreakdownChunk(#{self.index}, [{self.offset}, {self.offset + len(self)}))"


def plan_period(days: int) -> Period:
    """
    Validate the requested length and build a Period.

    Raises:
        ValidationError: If days is not a positive integer
    """
    if isinstance(days, bool) or not isinstance(days, int) or days < 1:
        raise ValidationError(f"days must be a positive integer, got {days!r}")
    return Period(days)


def _instant(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def build_main_query(zone_id: str, window: ReportWindow, mode: Mode) -> GraphQLQuery:
    """
    Build the totals query covering the full period.

    Hourly periods use httpRequests1hGroups keyed by ``datetime``; daily
    periods use httpRequests1dGroups keyed by ``date``.
    """
    metric = mode.count_metric

    if window.granularity is Granularity.HOURLY:
        dataset = "httpRequests1hGroups"
        dimension = "datetime"
        time_filter = (
            f'datetime_geq: "{_instant(window.start)}", datetime_leq: "{_instant(window.end)}"'
        )
    else:
        dataset = "httpRequests1dGroups"
        dimension = "date"
        time_filter = (
            f'date_geq: "{window.start.date().isoformat()}", '
            f'date_leq: "{window.end.date().isoformat()}"'
        )

    document = f"""{{
  viewer {{
    zones(filter: {{ zoneTag: "{zone_id}" }}) {{
      {MAIN_ALIAS}: {dataset}(
        filter: {{ {time_filter} }}
        limit: 1000
        orderBy: [{dimension}_ASC]
      ) {{
        dimensions {{ {dimension} }}
        sum {{
          {metric}
          bytes
          cachedBytes
          cachedRequests
          threats
          responseStatusMap {{ requests edgeResponseStatus }}
          browserMap {{ pageViews uaBrowserFamily }}
        }}
      }}
    }}
  }}
}}"""
    return GraphQLQuery(document=document, aliases=(MAIN_ALIAS,))


def plan_chunks(
    window: ReportWindow,
    chunk_days: int = DEFAULT_CHUNK_DAYS,
    max_query_fields: int = DEFAULT_MAX_QUERY_FIELDS,
    max_window_seconds: int = DEFAULT_MAX_WINDOW_SECONDS,
) -> list[BreakdownChunk]:
    """
    Split the period's sub-windows into ordered chunks.

    Each chunk holds at most ``chunk_days`` sub-windows; the final chunk may
    be shorter. With 12 days and chunk_days=5 the chunks cover sub-window
    offsets [0, 5), [5, 10) and [10, 12).

    Raises:
        ConfigurationError: If one chunk would need more than
            ``max_query_fields`` fields, or a sub-window is wider than
            ``max_window_seconds``
    """
    if chunk_days < 1:
        raise ConfigurationError(f"chunk_days must be >= 1, got {chunk_days}")
    if 2 * chunk_days > max_query_fields:
        raise ConfigurationError(
            f"chunk_days={chunk_days} needs {2 * chunk_days} fields per query, "
            f"above the cap of {max_query_fields}"
        )

    sub_windows = window.sub_windows()
    for start, end in sub_windows:
        if (end - start).total_seconds() > max_window_seconds:
            raise ConfigurationError(
                f"sub-window {_instant(start)}..{_instant(end)} exceeds {max_window_seconds}s"
            )

    chunks = []
    for index, offset in enumerate(range(0, len(sub_windows), chunk_days)):
        chunks.append(
            BreakdownChunk(
                index=index,
                offset=offset,
                windows=tuple(sub_windows[offset : offset + chunk_days]),
            )
        )

    logger.debug(
        "Planned %d breakdown chunk(s) for %s (%d sub-windows)",
        len(chunks),
        window.period.label,
        len(sub_windows),
    )
    return chunks


def build_breakdown_query(
    zone_id: str,
    chunk: BreakdownChunk,
    mode: Mode,
    path_limit: int = 10,
    engagement_path_limit: int = 50,
    country_limit: int = 10,
    max_query_fields: int = DEFAULT_MAX_QUERY_FIELDS,
) -> GraphQLQuery:
    """
    Build one breakdown query: a paths alias and a countries alias per sub-window.

    Aliases are ``paths_<i>`` / ``countries_<i>`` where ``i`` is the position
    of the sub-window inside the chunk.

    Raises:
        ConfigurationError: If the rendered query would exceed the field cap
    """
    engagement = mode is Mode.ENGAGEMENT
    paths_limit = engagement_path_limit if engagement else path_limit
    status_filter = ", edgeResponseStatus: 200" if engagement else ""

    aliases: list[str] = []
    blocks: list[str] = []
    for i, (start, end) in enumerate(chunk.windows):
        time_filter = (
            f'datetime_geq: "{_instant(start)}", datetime_lt: "{_instant(end)}"{status_filter}'
        )
        for alias, limit, dimension in (
            (f"{PATHS_ALIAS}_{i}", paths_limit, "clientRequestPath"),
            (f"{COUNTRIES_ALIAS}_{i}", country_limit, "clientCountryName"),
        ):
            aliases.append(alias)
            blocks.append(
                f"""      {alias}: httpRequestsAdaptiveGroups(
        filter: {{ {time_filter} }}
        limit: {limit}
        orderBy: [count_DESC]
      ) {{
        count
        dimensions {{ {dimension} }}
      }}"""
            )

    if len(aliases) > max_query_fields:
        raise ConfigurationError(
            f"breakdown query for chunk {chunk.index} has {len(aliases)} fields, "
            f"above the cap of {max_query_fields}"
        )

    body = "\n".join(blocks)
    document = f"""{{
  viewer {{
    zones(filter: {{ zoneTag: "{zone_id}" }}) {{
{body}
    }}
  }}
}}"""
    return GraphQLQuery(document=document, aliases=tuple(aliases))
