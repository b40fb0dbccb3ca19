"""Time streak and stats recomputation on a synthetic multi-year history."""

from __future__ import annotations

import argparse
import json
import sys
import time
from datetime import timedelta
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from slip_engine.adapters import csv_adapter, json_adapter
from slip_engine.dates import now_local
from slip_engine.schema import SlipEvent
from slip_engine.stats import compute_stats
from slip_engine.streak import compute_streak


def synthetic_events(years: int, mean_per_day: float, seed: int) -> list[SlipEvent]:
    rng = np.random.default_rng(seed)
    start = now_local().replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=365 * years)
    events: list[SlipEvent] = []
    for day in range(365 * years + 1):
        for _ in range(int(rng.poisson(mean_per_day))):
            offset = timedelta(days=day, minutes=int(rng.integers(0, 24 * 60)))
            events.append(SlipEvent(id=f"e{len(events)}", timestamp=start + offset))
    return events


def _load_events(path: Path):
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(str(path))
    if suffix == ".json":
        return json_adapter.parse(str(path))
    raise ValueError("Unsupported input format, expected .csv or .json")


def _time(fn, repeats: int) -> dict:
    samples = []
    for _ in range(repeats):
        started = time.perf_counter()
        fn()
        samples.append((time.perf_counter() - started) * 1000.0)
    values = np.asarray(samples)
    return {
        "mean_ms": float(values.mean()),
        "std_ms": float(values.std()),
        "p95_ms": float(np.percentile(values, 95)),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark slip-engine aggregation")
    parser.add_argument("--data", help="Optional CSV/JSON slips file instead of synthetic data")
    parser.add_argument("--years", type=int, default=3)
    parser.add_argument("--per-day", type=float, default=2.5)
    parser.add_argument("--limit", type=int, default=3)
    parser.add_argument("--repeats", type=int, default=20)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    if args.data:
        events = _load_events(Path(args.data))
    else:
        events = synthetic_events(args.years, args.per_day, args.seed)

    now = now_local()
    report = {
        "n_events": len(events),
        "streak": _time(lambda: compute_streak(events, args.limit, now), args.repeats),
        "stats_7": _time(lambda: compute_stats(events, args.limit, 7, now), args.repeats),
        "stats_30": _time(lambda: compute_stats(events, args.limit, 30, now), args.repeats),
        "result": {
            "streak": vars(compute_streak(events, args.limit, now)),
            "total_30": compute_stats(events, args.limit, 30, now).total_slips,
        },
    }

    print(json.dumps(report, indent=2))

    outputs_dir = Path("outputs")
    outputs_dir.mkdir(parents=True, exist_ok=True)
    out_path = outputs_dir / "benchmark_report.json"
    out_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    print(f"Saved benchmark report to {out_path}")


if __name__ == "__main__":
    main()
