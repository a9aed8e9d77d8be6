"""Uptime summaries derived from check history."""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from lanmon.core.database import HistoryEntry
from lanmon.schemas.services import UptimeSegment, UptimeSummary


def summarize_uptime(entries: Sequence[HistoryEntry]) -> UptimeSummary:
    """Percent of ``up`` samples plus run-length status segments.

    ``entries`` must be in chronological order. An empty window has no
    percentage (``None``), which callers render as "no data" rather than 0%.
    """
    segments: list[UptimeSegment] = []
    up_count = 0
    for entry in entries:
        if entry.status == "up":
            up_count += 1
        if segments and segments[-1].status == entry.status:
            segments[-1].count += 1
        else:
            segments.append(UptimeSegment(status=entry.status, count=1))

    if not entries:
        return UptimeSummary(percent_up=None, segments=[])

    # Ties round up: 6.25 -> 6.3
    percent_up = float(
        (Decimal(100 * up_count) / Decimal(len(entries))).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    )
    return UptimeSummary(percent_up=percent_up, segments=segments)
