"""History view: slips grouped by local day."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Iterable

from slip_engine.dates import format_date_for_display, now_local, to_local_date_key
from slip_engine.schema import HistorySection, SlipEvent


def group_by_date(events: Iterable[SlipEvent], now: datetime | None = None) -> list[HistorySection]:
    """Sections newest day first, each holding its slips newest first."""

    now = now or now_local()
    grouped: dict[str, list[SlipEvent]] = defaultdict(list)
    for event in events:
        grouped[to_local_date_key(event.timestamp)].append(event)

    return [
        HistorySection(
            date=date,
            title=format_date_for_display(date, now),
            events=sorted(grouped[date], key=lambda e: e.timestamp, reverse=True),
        )
        for date in sorted(grouped, reverse=True)
    ]
