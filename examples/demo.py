"""Demo script for slip-engine."""

import sys
import tempfile
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from slip_engine.adapters.csv_adapter import parse
from slip_engine.adapters.json_adapter import JsonStorage
from slip_engine.engine import SlipEngine


def main() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        engine = SlipEngine(JsonStorage(Path(tmp) / "data.json"))
        engine.load()
        engine.import_events(parse("examples/sample_slips.csv"))
        engine.record()
        print("Today:", engine.today())
        print("Streak:", engine.streak())
        stats = engine.stats(7)
        print("Stats:", stats.total_slips, "slips,", f"{stats.days_under_limit_percent:.1f}% under limit")
        print("Patterns:", stats.peak_hour_label, stats.peak_day_name)
        print("Undo:", engine.undo_last())


if __name__ == "__main__":
    main()
