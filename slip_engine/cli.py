"""Command-line interface for logging slips and reading stats."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from slip_engine.adapters import csv_adapter, json_adapter
from slip_engine.config import get_settings
from slip_engine.constants import DEFAULT_HISTORY_DAYS
from slip_engine.dates import format_hour_range, format_time, format_timestamp
from slip_engine.engine import SlipEngine

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if hasattr(value, "__dataclass_fields__"):
        value = asdict(value)
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if hasattr(value, "isoformat") and hasattr(value, "tzinfo"):
        return format_timestamp(value)
    return value


def _emit(args: argparse.Namespace, payload: Any, text: str) -> None:
    if args.json:
        print(json.dumps(_jsonable(payload), indent=2))
    else:
        print(text)


def _adapter_for(path: Path):
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return csv_adapter
    if suffix == ".json":
        return json_adapter
    raise ValueError("Unsupported format, expected .csv or .json")


def cmd_log(engine: SlipEngine, args: argparse.Namespace) -> int:
    event = engine.record()
    status = engine.today()
    text = f"Slip logged at {format_time(event.timestamp)} ({status.count}/{status.limit} today)"
    if not engine.store.last_write_ok:
        text += " [not saved]"
    _emit(args, {"event": event, "today": status}, text)
    return 0


def cmd_undo(engine: SlipEngine, args: argparse.Namespace) -> int:
    undone = engine.undo_last()
    _emit(args, {"undone": undone}, "Last slip undone." if undone else "Nothing to undo.")
    return 0 if undone else 1


def cmd_delete(engine: SlipEngine, args: argparse.Namespace) -> int:
    removed = engine.remove(args.id)
    _emit(args, {"removed": removed}, f"Deleted {args.id}." if removed else f"No slip with id {args.id}.")
    return 0


def cmd_today(engine: SlipEngine, args: argparse.Namespace) -> int:
    status = engine.today()
    lines = [f"{status.count} / {status.limit}  {status.status_message}"]
    if status.is_under_limit and status.remaining > 0:
        noun = "slip" if status.remaining == 1 else "slips"
        lines.append(f"{status.remaining} {noun} remaining today")
    if engine.store.can_undo():
        seconds = engine.store.undo_seconds_remaining()
        lines.append(f"Undo available for {seconds // 60}:{seconds % 60:02d}")
    _emit(args, status, "\n".join(lines))
    return 0


def cmd_streak(engine: SlipEngine, args: argparse.Namespace) -> int:
    info = engine.streak()
    noun = "day" if info.current == 1 else "days"
    text = f"{info.current} {noun} under limit (best: {info.best})"
    _emit(args, info, text)
    return 0


def cmd_stats(engine: SlipEngine, args: argparse.Namespace) -> int:
    stats = engine.stats(args.range)
    payload = _jsonable(stats)
    payload["peak_hour_label"] = stats.peak_hour_label
    payload["peak_day_name"] = stats.peak_day_name

    lines = [f"=== Last {args.range} days ==="]
    if not stats.has_any_data:
        lines.append("No data yet.")
    else:
        lines.append(f"Total slips: {stats.total_slips}")
        lines.append(f"Avg per day: {stats.avg_per_day:.2f}")
        lines.append(f"Days under limit: {stats.days_under_limit_percent:.0f}%")
        if stats.best_day is not None and stats.worst_day is not None:
            lines.append(f"Best day: {stats.best_day.display_date} ({stats.best_day.count})")
            lines.append(f"Worst day: {stats.worst_day.display_date} ({stats.worst_day.count})")
        if stats.has_enough_data_for_patterns:
            lines.append(f"Peak hour: {stats.peak_hour_label or '—'}")
            lines.append(f"Peak day: {stats.peak_day_name or '—'}")
        else:
            lines.append("Not enough data in this window for patterns.")
        for day in stats.daily_counts:
            marker = " !" if day.is_over_limit else ""
            lines.append(f"  {day.display_date:<10} {day.count}{marker}")
    _emit(args, payload, "\n".join(lines))
    return 0


def cmd_history(engine: SlipEngine, args: argparse.Namespace) -> int:
    sections = engine.history()[: args.limit]
    lines = []
    for section in sections:
        lines.append(f"{section.title} ({len(section.events)})")
        lines.extend(f"  {format_time(e.timestamp)}  {e.id}" for e in section.events)
    _emit(args, sections, "\n".join(lines) if lines else "No slips logged yet.")
    return 0


def cmd_insight(engine: SlipEngine, args: argparse.Namespace) -> int:
    hour = engine.insight()
    if not engine.events:
        text = "Start logging to discover your patterns."
    elif hour is None:
        text = "Keep logging to reveal patterns."
    else:
        text = f"Most slips happen {format_hour_range(hour)}."
    _emit(args, {"peak_hour": hour}, text)
    return 0


def cmd_limit(engine: SlipEngine, args: argparse.Namespace) -> int:
    if args.up:
        engine.settings.increment_limit()
    elif args.down:
        engine.settings.decrement_limit()
    elif args.value is not None:
        engine.set_limit(args.value)
    _emit(args, {"daily_limit": engine.limit}, f"Daily limit: {engine.limit}")
    return 0


def cmd_habit(engine: SlipEngine, args: argparse.Namespace) -> int:
    settings = engine.set_habit_name(args.name)
    _emit(args, settings, f"Tracking: {settings.habit_name or '(unnamed habit)'}")
    return 0


def cmd_export(engine: SlipEngine, args: argparse.Namespace) -> int:
    path = Path(args.path)
    _adapter_for(path).export_events(engine.events, str(path))
    _emit(args, {"exported": len(engine.events), "path": str(path)}, f"Exported {len(engine.events)} slips to {path}")
    return 0


def cmd_import(engine: SlipEngine, args: argparse.Namespace) -> int:
    path = Path(args.path)
    events = _adapter_for(path).parse(str(path))
    added = engine.import_events(events)
    _emit(args, {"imported": added}, f"Imported {added} of {len(events)} slips.")
    return 0


def cmd_reset(engine: SlipEngine, args: argparse.Namespace) -> int:
    if not args.yes:
        print("Refusing to delete all data without --yes.", file=sys.stderr)
        return 2
    engine.reset_all()
    _emit(args, {"reset": True}, "All data has been cleared.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="slip", description="Log habit slips and review streaks and stats")
    parser.add_argument("--data", help="Path to the JSON data file (default: SLIP_DATA_PATH or ~/.config/slip)")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("log", help="Record a slip now").set_defaults(func=cmd_log)
    sub.add_parser("undo", help="Undo the last slip within the undo window").set_defaults(func=cmd_undo)

    p = sub.add_parser("delete", help="Delete a slip by id")
    p.add_argument("id")
    p.set_defaults(func=cmd_delete)

    sub.add_parser("today", help="Show today's count").set_defaults(func=cmd_today)
    sub.add_parser("streak", help="Show current and best streak").set_defaults(func=cmd_streak)

    p = sub.add_parser("stats", help="Show stats for a trailing window")
    p.add_argument("--range", type=int, default=None, help="Window length in days (7, 30, ...)")
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("history", help="List slips grouped by day")
    p.add_argument("--limit", type=int, default=DEFAULT_HISTORY_DAYS, help="Number of days to show")
    p.set_defaults(func=cmd_history)

    sub.add_parser("insight", help="Show the all-time peak slip hour").set_defaults(func=cmd_insight)

    p = sub.add_parser("limit", help="Show or change the daily limit")
    group = p.add_mutually_exclusive_group()
    group.add_argument("value", nargs="?", type=int)
    group.add_argument("--up", action="store_true")
    group.add_argument("--down", action="store_true")
    p.set_defaults(func=cmd_limit)

    p = sub.add_parser("habit", help="Name the habit being tracked")
    p.add_argument("name")
    p.set_defaults(func=cmd_habit)

    p = sub.add_parser("export", help="Export slips to .csv or .json")
    p.add_argument("path")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("import", help="Import slips from .csv or .json")
    p.add_argument("path")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("reset", help="Delete all slips and reset settings")
    p.add_argument("--yes", action="store_true", help="Confirm deleting everything")
    p.set_defaults(func=cmd_reset)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = get_settings(data_path=args.data)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )
    if getattr(args, "range", 0) is None:
        args.range = config.default_range

    engine = SlipEngine.from_config(config)
    try:
        return args.func(engine, args)
    except ValueError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
