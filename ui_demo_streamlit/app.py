"""Streamlit dashboard for slip-engine."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

from slip_engine.adapters import csv_adapter, json_adapter
from slip_engine.config import get_settings
from slip_engine.constants import LIMIT_MAX, LIMIT_MIN, STATS_RANGES
from slip_engine.dates import format_hour_range, format_time
from slip_engine.engine import SlipEngine


def _parse_events_from_path(file_path: str) -> list:
    suffix = Path(file_path).suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(file_path)
    if suffix == ".json":
        return json_adapter.parse(file_path)
    raise ValueError("Unsupported file type. Please use .csv or .json")


def _parse_uploaded(uploaded_file) -> list:
    suffix = Path(uploaded_file.name).suffix.lower()
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as handle:
        handle.write(uploaded_file.getbuffer())
        temp_path = handle.name
    return _parse_events_from_path(temp_path)


def build_dashboard(engine: SlipEngine, range_days: int) -> dict[str, Any]:
    """Collect every view the dashboard renders into one payload."""

    stats = engine.stats(range_days)
    return {
        "today": engine.today(),
        "streak": engine.streak(),
        "stats": stats,
        "chart": [{"date": day.date, "slips": day.count} for day in reversed(stats.daily_counts)],
        "insight": engine.insight(),
        "history": engine.history(),
        "can_undo": engine.store.can_undo(),
        "undo_seconds": engine.store.undo_seconds_remaining(),
    }


def main() -> None:
    import streamlit as st

    st.set_page_config(page_title="Slip", layout="wide")

    if "engine" not in st.session_state:
        st.session_state.engine = SlipEngine.from_config(get_settings())
    engine: SlipEngine = st.session_state.engine

    with st.sidebar:
        st.header("Settings")
        habit = st.text_input("Habit", value=engine.settings.settings.habit_name)
        if habit.strip() != engine.settings.settings.habit_name:
            engine.set_habit_name(habit)
        limit = st.number_input(
            "Daily limit", min_value=LIMIT_MIN, max_value=LIMIT_MAX, value=engine.limit, step=1
        )
        if int(limit) != engine.limit:
            engine.set_limit(int(limit))
        range_name = st.radio("Stats range", options=list(STATS_RANGES), horizontal=True)
        uploaded = st.file_uploader("Import slips", type=["csv", "json"])
        if uploaded is not None and st.button("Import"):
            try:
                added = engine.import_events(_parse_uploaded(uploaded))
                st.success(f"Imported {added} slips.")
            except ValueError as exc:
                st.error(f"Input error: {exc}")
        confirm = st.checkbox("I understand this deletes everything")
        if st.button("Reset all data", disabled=not confirm):
            engine.reset_all()
            st.warning("All data has been cleared.")

    title = engine.settings.settings.habit_name or "habit"
    st.title(f"I slipped ({title})")

    c1, c2 = st.columns(2)
    if c1.button("I slipped", type="primary"):
        engine.record()
        if not engine.store.last_write_ok:
            st.error("Slip logged but could not be saved.")
    data = build_dashboard(engine, STATS_RANGES[range_name])
    if data["can_undo"] and c2.button(f"Undo ({data['undo_seconds']}s)"):
        engine.undo_last()
        data = build_dashboard(engine, STATS_RANGES[range_name])

    today, streak, stats = data["today"], data["streak"], data["stats"]

    st.subheader("Today")
    t1, t2, t3 = st.columns(3)
    t1.metric("Slips today", f"{today.count} / {today.limit}")
    t2.metric("Status", today.status_message)
    t3.metric("Remaining", today.remaining)

    st.subheader("Streak")
    s1, s2 = st.columns(2)
    s1.metric("Current", streak.current)
    s2.metric("Best", streak.best)

    if data["insight"] is not None:
        st.info(f"Most slips happen {format_hour_range(data['insight'])}.")
    elif not stats.has_any_data:
        st.info("Start logging to discover your patterns.")

    st.subheader(f"Last {len(stats.daily_counts)} days")
    m1, m2, m3 = st.columns(3)
    m1.metric("Total slips", stats.total_slips)
    m2.metric("Avg per day", f"{stats.avg_per_day:.2f}")
    m3.metric("Days under limit", f"{stats.days_under_limit_percent:.0f}%")
    st.bar_chart(data["chart"], x="date", y="slips")
    if stats.has_enough_data_for_patterns:
        p1, p2 = st.columns(2)
        p1.metric("Peak hour", stats.peak_hour_label or "—")
        p2.metric("Peak day", stats.peak_day_name or "—")

    st.subheader("History")
    for section in data["history"]:
        with st.expander(f"{section.title} ({len(section.events)})"):
            for event in section.events:
                st.write(format_time(event.timestamp))


if __name__ == "__main__":
    main()
