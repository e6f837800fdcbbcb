"""Report Assembler - ranking, truncation and the final report value."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import TypeVar

from sitepulse.analytics.breakdowns import BreakdownPartial
from sitepulse.analytics.models import (
    AnalyticsReport,
    BrowserCount,
    CountryCount,
    FailedChunk,
    Mode,
    PathCount,
    Period,
    StatusCount,
    TimeSlot,
)
from sitepulse.analytics.slots import SlotAggregate

K = TypeVar("K", str, int)

DEFAULT_TOP_N = 10


def rank(counts: Mapping[K, int], limit: int = DEFAULT_TOP_N) -> list[tuple[K, int]]:
    """
    Top ``limit`` entries by count descending.

    Ties are broken by key ascending so the order is reproducible.
    """
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ordered[:limit]


def assemble_report(
    period: Period,
    mode: Mode,
    series: Sequence[TimeSlot],
    totals: SlotAggregate,
    breakdowns: BreakdownPartial,
    failed_chunks: Sequence[FailedChunk] = (),
    top_n: int = DEFAULT_TOP_N,
    generated_at: datetime | None = None,
) -> AnalyticsReport:
    """Build the report; total_requests is the exact sum of the series."""
    return AnalyticsReport(
        period=period.label,
        granularity=period.granularity,
        mode=mode,
        total_requests=sum(slot.count for slot in series),
        time_series=list(series),
        top_paths=[PathCount(path=k, count=v) for k, v in rank(breakdowns.paths, top_n)],
        top_countries=[
            CountryCount(country=k, count=v) for k, v in rank(breakdowns.countries, top_n)
        ],
        status_codes=[StatusCount(status=k, count=v) for k, v in rank(totals.status_codes, top_n)],
        browsers=[BrowserCount(browser=k, count=v) for k, v in rank(totals.browsers, top_n)],
        failed_chunks=list(failed_chunks),
        generated_at=generated_at or datetime.now(UTC),
    )
