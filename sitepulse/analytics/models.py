"""
Analytics models - data structures for traffic reports.

Contains:
- Granularity / Mode enums (how a period is bucketed, what is counted)
- Period / ReportWindow (requested length and its concrete UTC instants)
- Pydantic models for the report returned to callers
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, computed_field

HOURS_PER_DAY = 24


class Granularity(str, Enum):
    """
    Time bucketing of a report.

    The only granularity-specific operations live here: flooring an instant to
    its slot, labelling a slot, and turning a raw response key into a label.
    Everything downstream (summing, gap-filling, ranking) is shared.
    """

    HOURLY = "hourly"
    DAILY = "daily"

    @property
    def step(self) -> timedelta:
        """Width of one slot."""
        return timedelta(hours=1) if self is Granularity.HOURLY else timedelta(days=1)

    def floor(self, moment: datetime) -> datetime:
        """Start of the slot containing ``moment`` (UTC)."""
        moment = moment.astimezone(UTC)
        if self is Granularity.HOURLY:
            return moment.replace(minute=0, second=0, microsecond=0)
        return moment.replace(hour=0, minute=0, second=0, microsecond=0)

    def label(self, slot_start: datetime) -> str:
        """ISO hour (``2026-10-18T14:00:00Z``) or ISO date (``2026-10-18``)."""
        if self is Granularity.HOURLY:
            return slot_start.strftime("%Y-%m-%dT%H:00:00Z")
        return slot_start.date().isoformat()

    def slot_key(self, raw: str) -> str:
        """
        Normalize a raw response key to a slot label.

        Hourly keys are timestamps truncated to their hour, so several raw
        entries inside one hour share a label. Daily keys are ISO dates.

        Raises:
            ValueError: If ``raw`` cannot be parsed
        """
        if self is Granularity.HOURLY:
            moment = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=UTC)
            return self.label(self.floor(moment))
        return date.fromisoformat(raw).isoformat()


class Mode(str, Enum):
    """
    Reporting mode.

    STANDARD counts raw requests. ENGAGEMENT counts page views, only looks at
    HTTP 200 responses in breakdowns, and keeps content paths only.
    """

    STANDARD = "standard"
    ENGAGEMENT = "engagement"

    @classmethod
    def from_flag(cls, engagement: bool) -> Mode:
        return cls.ENGAGEMENT if engagement else cls.STANDARD

    @property
    def count_metric(self) -> str:
        """Name of the summed field used as the slot count."""
        return "pageViews" if self is Mode.ENGAGEMENT else "requests"


@dataclass(frozen=True)
class Period:
    """
    Requested report length.

    Attributes:
        length: Number of days (>= 1)

    Example:
        >>> Period(1).granularity
        <Granularity.HOURLY: 'hourly'>
        >>> Period(7).slot_count
        7
    """

    length: int

    @property
    def granularity(self) -> Granularity:
        return Granularity.HOURLY if self.length == 1 else Granularity.DAILY

    @property
    def slot_count(self) -> int:
        return HOURS_PER_DAY if self.granularity is Granularity.HOURLY else self.length

    @property
    def label(self) -> str:
        return f"{self.length}d"


@dataclass(frozen=True)
class ReportWindow:
    """
    A period pinned to a concrete ``now``.

    Hourly windows start 23 hours before the current hour, so the current
    hour is the last of 24 slots. Daily windows start at UTC midnight
    ``length - 1`` days ago, so today is the last slot.

    Attributes:
        period: Requested period
        now: Reference instant (timezone-aware, UTC)
    """

    period: Period
    now: datetime

    @property
    def granularity(self) -> Granularity:
        return self.period.granularity

    @property
    def start(self) -> datetime:
        step = self.granularity.step
        return self.granularity.floor(self.now) - step * (self.period.slot_count - 1)

    @property
    def end(self) -> datetime:
        return self.now

    def slot_starts(self) -> list[datetime]:
        """Start instant of every expected slot, oldest first."""
        step = self.granularity.step
        first = self.start
        return [first + step * i for i in range(self.period.slot_count)]

    def labels(self) -> list[str]:
        return [self.granularity.label(s) for s in self.slot_starts()]

    def sub_windows(self) -> list[tuple[datetime, datetime]]:
        """
        Breakdown sub-windows, oldest first.

        Daily periods yield one window per calendar day (the last one ends at
        ``now``); hourly periods yield a single window from the first hour to
        ``now``.
        """
        if self.granularity is Granularity.HOURLY:
            return [(self.start, self.end)]

        day = timedelta(days=1)
        windows = []
        for slot_start in self.slot_starts():
            windows.append((slot_start, min(slot_start + day, self.end)))
        return windows


class TimeSlot(BaseModel):
    """Aggregated metrics for one hour or one day."""

    label: str = Field(..., description="ISO date or ISO hour of the slot")
    count: int = Field(0, description="Requests, or page views in engagement mode")
    bytes: int = Field(0, description="Bytes served")
    cached_bytes: int = Field(0, description="Bytes served from cache")
    cached_requests: int = Field(0, description="Requests served from cache")
    threats: int = Field(0, description="Requests flagged as threats")


class PathCount(BaseModel):
    path: str
    count: int


class CountryCount(BaseModel):
    country: str
    count: int


class StatusCount(BaseModel):
    status: int
    count: int


class BrowserCount(BaseModel):
    browser: str
    count: int = Field(..., description="Page views for this browser family")


class FailedChunk(BaseModel):
    """A breakdown chunk whose query failed and contributed nothing."""

    index: int = Field(..., description="Position of the chunk in the plan")
    start: datetime = Field(..., description="Start of the chunk's first sub-window")
    end: datetime = Field(..., description="End of the chunk's last sub-window")
    error_type: str = Field(..., description="Exception class name")
    error: str = Field(..., description="Human-readable failure message")


class AnalyticsReport(BaseModel):
    """Traffic report for one period."""

    period: str = Field(..., description="Period label, e.g. '7d'")
    granularity: Granularity
    mode: Mode
    total_requests: int = Field(0, description="Sum of all slot counts")
    time_series: list[TimeSlot] = Field(default_factory=list)
    top_paths: list[PathCount] = Field(default_factory=list)
    top_countries: list[CountryCount] = Field(default_factory=list)
    status_codes: list[StatusCount] = Field(default_factory=list)
    browsers: list[BrowserCount] = Field(default_factory=list)
    failed_chunks: list[FailedChunk] = Field(
        default_factory=list, description="Breakdown chunks that failed (paths/countries incomplete)"
    )
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="When the report was built"
    )

    @computed_field
    @property
    def is_partial(self) -> bool:
        """True when path/country breakdowns miss at least one chunk."""
        return bool(self.failed_chunks)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return self.model_dump(mode="json")

    def __repr__(self) -> str:
        return (
            f"AnalyticsReport("
            f"period={self.period}, "
            f"total={self.total_requests}, "
            f"slots={len(self.time_series)}, "
            f"partial={self.is_partial})"
        )
