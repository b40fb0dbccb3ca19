"""CSV adapter for slip events."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from slip_engine.constants import SOURCES
from slip_engine.dates import format_timestamp, parse_timestamp
from slip_engine.schema import SlipEvent

FIELDNAMES = ["id", "timestamp", "source"]

_REQUIRED_FIELDS = {"id", "timestamp"}
_VALID_SOURCES = set(SOURCES)


def _parse_row(row: dict, row_number: int) -> SlipEvent:
    missing = sorted(field for field in _REQUIRED_FIELDS if not row.get(field))
    if missing:
        raise ValueError(f"Row {row_number}: missing required fields {missing}")

    try:
        timestamp = parse_timestamp(row["timestamp"])
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Row {row_number}: malformed timestamp") from exc

    source = (row.get("source") or "manual").strip()
    if source not in _VALID_SOURCES:
        raise ValueError(f"Row {row_number}: invalid source '{source}'")

    return SlipEvent(id=row["id"].strip(), timestamp=timestamp, source=source)


def parse(file_path: str) -> list[SlipEvent]:
    """Parse CSV file into a list of slip events."""

    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            return []

        events: list[SlipEvent] = []
        seen: set[str] = set()
        for row_number, row in enumerate(reader, start=2):
            event = _parse_row(row, row_number)
            if event.id in seen:
                raise ValueError(f"Row {row_number}: duplicate id '{event.id}'")
            seen.add(event.id)
            events.append(event)
        return events


def export_events(events: Iterable[SlipEvent], file_path: str) -> None:
    """Write events to CSV in collection order."""

    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=FIELDNAMES)
        writer.writeheader()
        for event in events:
            writer.writerow(
                {"id": event.id, "timestamp": format_timestamp(event.timestamp), "source": event.source}
            )
