"""Series Builder - gap-filled, chronological time series."""

from __future__ import annotations

from collections.abc import Mapping

from sitepulse.analytics.models import ReportWindow, TimeSlot
from sitepulse.analytics.slots import SlotTotals


def build_series(slots: Mapping[str, SlotTotals], window: ReportWindow) -> list[TimeSlot]:
    """
    Expand accumulated slots into the full series for ``window``.

    Labels come from the window boundaries, not from ``slots``; labels the
    API omitted (zero traffic) get all-zero slots, and keys outside the
    window are ignored.
    """
    series = []
    for label in window.labels():
        totals = slots.get(label) or SlotTotals()
        series.append(
            TimeSlot(
                label=label,
                count=totals.count,
                bytes=totals.bytes,
                cached_bytes=totals.cached_bytes,
                cached_requests=totals.cached_requests,
                threats=totals.threats,
            )
        )
    return series
