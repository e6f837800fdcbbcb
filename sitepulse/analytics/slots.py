"""Slot Aggregator - parses the main totals response into per-slot accumulators."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
import logging
from typing import Any

from sitepulse.analytics.models import Granularity, Mode, Period
from sitepulse.analytics.planner import MAIN_ALIAS
from sitepulse.core.exceptions import ParseError

logger = logging.getLogger(__name__)

UNKNOWN_BROWSER = "Unknown"


@dataclass
class SlotTotals:
    """Running sums for one slot."""

    count: int = 0
    bytes: int = 0
    cached_bytes: int = 0
    cached_requests: int = 0
    threats: int = 0

    def add(self, other: SlotTotals) -> None:
        self.count += other.count
        self.bytes += other.bytes
        self.cached_bytes += other.cached_bytes
        self.cached_requests += other.cached_requests
        self.threats += other.threats


@dataclass
class SlotAggregate:
    """
    Everything the main query yields.

    Attributes:
        slots: Slot label -> summed totals (only slots present in the response)
        status_codes: HTTP status -> requests over the whole period
        browsers: Browser family -> page views over the whole period
    """

    slots: dict[str, SlotTotals] = field(default_factory=dict)
    status_codes: Counter[int] = field(default_factory=Counter)
    browsers: Counter[str] = field(default_factory=Counter)


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return 0


def first_zone(data: dict[str, Any]) -> dict[str, Any]:
    """
    Return the first zone object of a GraphQL ``data`` payload.

    Raises:
        ParseError: If viewer.zones is missing or empty
    """
    viewer = data.get("viewer")
    zones = viewer.get("zones") if isinstance(viewer, dict) else None
    if not isinstance(zones, list) or not zones or not isinstance(zones[0], dict):
        raise ParseError("No zone data returned")
    return zones[0]


def _entry_key(entry: dict[str, Any], granularity: Granularity) -> str:
    dimension = "datetime" if granularity is Granularity.HOURLY else "date"
    dimensions = entry.get("dimensions")
    raw = dimensions.get(dimension) if isinstance(dimensions, dict) else None
    if not isinstance(raw, str):
        raise ParseError(f"Series entry has no '{dimension}' dimension")
    try:
        return granularity.slot_key(raw)
    except ValueError as e:
        raise ParseError(f"Unparseable {dimension} {raw!r}: {e}") from e


def _map_items(sums: dict[str, Any], name: str, key: str) -> list[dict[str, Any]]:
    items = sums.get(name)
    if items is None:
        return []
    if not isinstance(items, list):
        raise ParseError(f"Series entry for {key} has a malformed '{name}'")
    return [item for item in items if isinstance(item, dict)]


def aggregate_slots(data: dict[str, Any], period: Period, mode: Mode) -> SlotAggregate:
    """
    Accumulate the main query's rows into slots and period-wide maps.

    Rows that normalize to the same slot label are summed, never overwritten.

    Args:
        data: ``data`` object of the main query response
        period: Requested period (selects hourly or daily keys)
        mode: Selects requests or page views as the slot count

    Returns:
        SlotAggregate

    Raises:
        ParseError: If the payload shape is unusable
    """
    zone = first_zone(data)
    rows = zone.get(MAIN_ALIAS)
    if rows is None:
        rows = []
    if not isinstance(rows, list):
        raise ParseError(f"Expected a list under '{MAIN_ALIAS}', got {type(rows).__name__}")

    aggregate = SlotAggregate()
    metric = mode.count_metric

    for entry in rows:
        if not isinstance(entry, dict):
            raise ParseError("Series entry is not an object")
        key = _entry_key(entry, period.granularity)
        sums = entry.get("sum") or {}
        if not isinstance(sums, dict):
            raise ParseError(f"Series entry for {key} has a malformed 'sum'")

        totals = SlotTotals(
            count=_as_int(sums.get(metric)),
            bytes=_as_int(sums.get("bytes")),
            cached_bytes=_as_int(sums.get("cachedBytes")),
            cached_requests=_as_int(sums.get("cachedRequests")),
            threats=_as_int(sums.get("threats")),
        )
        aggregate.slots.setdefault(key, SlotTotals()).add(totals)

        for item in _map_items(sums, "responseStatusMap", key):
            status = _as_int(item.get("edgeResponseStatus"))
            aggregate.status_codes[status] += _as_int(item.get("requests"))

        for item in _map_items(sums, "browserMap", key):
            family = item.get("uaBrowserFamily") or UNKNOWN_BROWSER
            if not isinstance(family, str):
                raise ParseError(f"Series entry for {key} has a non-string browser {family!r}")
            aggregate.browsers[family] += _as_int(item.get("pageViews"))

    logger.debug(
        "Aggregated %d row(s) into %d slot(s) (%s)",
        len(rows),
        len(aggregate.slots),
        period.granularity.value,
    )
    return aggregate
