"""
Breakdown Aggregator - path and country counts across chunks.

Each chunk's response is parsed into its own BreakdownPartial; partials are
then folded together with merge_breakdowns(). Merging is a plain sum, so the
result does not depend on chunk order.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
import logging
from typing import Any

from sitepulse.analytics.models import Mode
from sitepulse.analytics.planner import COUNTRIES_ALIAS, PATHS_ALIAS, BreakdownChunk
from sitepulse.analytics.slots import first_zone
from sitepulse.core.config import DEFAULT_CONTENT_PREFIXES
from sitepulse.core.exceptions import ParseError

logger = logging.getLogger(__name__)

UNKNOWN_COUNTRY = "Unknown"


def is_content_path(path: str, prefixes: Sequence[str] = DEFAULT_CONTENT_PREFIXES) -> bool:
    """
    Whether a path looks like a real content page (home, blog, apps, about, tags).

    Matching is by prefix on the trailing-slash-trimmed path, so ``/about-team``
    counts as content while ``/assets/logo.png`` does not.

    Example:
        >>> is_content_path("/blog/my-post/")
        True
        >>> is_content_path("/api/health")
        False
    """
    if path == "/":
        return True
    trimmed = path.rstrip("/")
    return any(trimmed.startswith(prefix) for prefix in prefixes)


@dataclass
class BreakdownPartial:
    """Path and country counts contributed by one chunk (or a merge of chunks)."""

    paths: Counter[str] = field(default_factory=Counter)
    countries: Counter[str] = field(default_factory=Counter)


def _rows(zone: dict[str, Any], alias: str) -> list[dict[str, Any]]:
    rows = zone.get(alias)
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise ParseError(f"Expected a list under '{alias}', got {type(rows).__name__}")
    return [row for row in rows if isinstance(row, dict)]


def _dimension(row: dict[str, Any], name: str, default: str) -> str:
    dimensions = row.get("dimensions")
    value = dimensions.get(name) if isinstance(dimensions, dict) else None
    if value is None or value == "":
        return default
    if not isinstance(value, str):
        raise ParseError(f"Breakdown row has a non-string {name}: {value!r}")
    return value


def _count(row: dict[str, Any]) -> int:
    value = row.get("count")
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    return int(value)


def parse_breakdown_chunk(
    data: dict[str, Any],
    chunk: BreakdownChunk,
    mode: Mode,
    content_prefixes: Sequence[str] = DEFAULT_CONTENT_PREFIXES,
) -> BreakdownPartial:
    """
    Parse one breakdown chunk's response.

    Args:
        data: ``data`` object of the chunk's response
        chunk: The chunk the query was built from (gives the alias count)
        mode: In ENGAGEMENT mode non-content paths are dropped
        content_prefixes: Prefixes accepted by is_content_path

    Raises:
        ParseError: If the payload shape is unusable
    """
    zone = first_zone(data)
    partial = BreakdownPartial()
    engagement = mode is Mode.ENGAGEMENT

    for i in range(len(chunk)):
        for row in _rows(zone, f"{PATHS_ALIAS}_{i}"):
            path = _dimension(row, "clientRequestPath", "/")
            if engagement and not is_content_path(path, content_prefixes):
                continue
            partial.paths[path] += _count(row)

        for row in _rows(zone, f"{COUNTRIES_ALIAS}_{i}"):
            country = _dimension(row, "clientCountryName", UNKNOWN_COUNTRY)
            partial.countries[country] += _count(row)

    return partial


def merge_breakdowns(partials: Iterable[BreakdownPartial]) -> BreakdownPartial:
    """Fold partials into one; order-independent."""
    merged = BreakdownPartial()
    for partial in partials:
        merged.paths.update(partial.paths)
        merged.countries.update(partial.countries)
    return merged
