import streamlit as st
import pandas as pd
import httpx
from datetime import datetime, timedelta, timezone
from dotenv import load_dotenv
import logging
import os
import altair as alt
from zoneinfo import ZoneInfo

from controls import (
    WEEKDAYS,
    clamp_max_humidity,
    clamp_min_humidity,
    format_days,
    moisture_label,
    reconcile_band,
    schedule_form_error,
)

load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("irrigation_dashboard")

LOCAL_TZ = ZoneInfo(os.getenv("DASHBOARD_TZ", "UTC"))

API_ROOT  = os.getenv("IRRIGATION_API_BASE", "http://localhost:8000").rstrip("/")
API_BASE  = f"{API_ROOT}/api"                  # FastAPI base url
VALVE_ID  = os.getenv("DEFAULT_VALVE_ID", "valve1")
REFRESH_S = 5                                  # live panels poll this often
REQUEST_TIMEOUT = 15.0                         # seconds

HISTORY_WINDOWS = {"Last 24 hours": 24, "Last 7 days": 168, "Last 15 days": 360}
DEFAULT_DAYS = (1, 3, 5)                       # Mon / Wed / Fri

GREEN = "#2ecc71"
BLUE  = "#3b82f6"


# ---------- helper functions ----------------------------------------
def valve_label(valve_id: str) -> str:
    return "Valve 1" if valve_id == VALVE_ID else valve_id

@st.cache_data(ttl=REFRESH_S)
def fetch_latest_reading() -> dict | None:
    """Newest sensor reading, or None when the firmware hasn't sent any."""
    try:
        r = httpx.get(f"{API_BASE}/readings/latest", timeout=REQUEST_TIMEOUT)
        if r.status_code == 404:
            return None
        r.raise_for_status()
        return r.json()
    except httpx.HTTPError as exc:
        logger.error("Could not load latest reading: %s", exc)
        return None

@st.cache_data(ttl=REFRESH_S)
def fetch_config() -> dict | None:
    try:
        r = httpx.get(f"{API_BASE}/config", timeout=REQUEST_TIMEOUT)
        r.raise_for_status()
        return r.json()
    except httpx.HTTPError as exc:
        logger.error("Could not load auto-mode config: %s", exc)
        return None

@st.cache_data(ttl=REFRESH_S)
def fetch_valve_status(valve_id: str) -> bool | None:
    try:
        r = httpx.get(f"{API_BASE}/valves/{valve_id}/status", timeout=REQUEST_TIMEOUT)
        r.raise_for_status()
        return bool(r.json()["is_on"])
    except httpx.HTTPError as exc:
        logger.error("Could not load status of %s: %s", valve_id, exc)
        return None

@st.cache_data(ttl=REFRESH_S)
def fetch_schedules() -> list[dict] | None:
    try:
        r = httpx.get(f"{API_BASE}/schedules", timeout=REQUEST_TIMEOUT)
        r.raise_for_status()
        return r.json()
    except httpx.HTTPError as exc:
        logger.error("Could not load schedules: %s", exc)
        return None

@st.cache_data(ttl=30)
def fetch_history_df(hours: int) -> pd.DataFrame:
    """Return a DataFrame indexed by ts with soil_moisture / temperature columns."""
    resp = httpx.get(
        f"{API_BASE}/readings/history",
        params={"hours": hours},
        timeout=REQUEST_TIMEOUT,
    )
    resp.raise_for_status()
    rows = resp.json()
    if not rows:
        return pd.DataFrame([], columns=["ts", "soil_moisture", "temperature"]).set_index("ts")

    df = pd.DataFrame(rows)[["ts", "soil_moisture", "temperature"]]
    df["ts"] = pd.to_datetime(df["ts"])
    return df.set_index("ts").sort_index()

def toggle_valve(valve_id: str) -> dict | None:
    """
    POST /api/valves/{id}/toggle – returns the new status or None on failure.
    """
    try:
        r = httpx.post(f"{API_BASE}/valves/{valve_id}/toggle", timeout=REQUEST_TIMEOUT)
        r.raise_for_status()
        return r.json()
    except httpx.HTTPError as exc:
        logger.error("Error toggling %s: %s", valve_id, exc)
        return None

def update_config(**fields) -> dict | None:
    """PATCH only the fields given; the API merges them."""
    try:
        r = httpx.patch(f"{API_BASE}/config", json=fields, timeout=REQUEST_TIMEOUT)
        r.raise_for_status()
        return r.json()
    except httpx.HTTPError as exc:
        logger.error("Error saving config %s: %s", fields, exc)
        return None

def add_schedule(time_text: str, minutes: int, days: list[int], valve_id: str = VALVE_ID) -> bool:
    try:
        r = httpx.post(
            f"{API_BASE}/schedules",
            json={"time": time_text, "minutes": int(minutes),
                  "valve_id": valve_id, "days": sorted(set(days))},
            timeout=REQUEST_TIMEOUT,
        )
        return r.status_code == 201
    except httpx.RequestError as exc:
        logger.error("Error adding schedule: %s", exc)
        return False

def remove_schedule(schedule_id: int) -> bool:
    try:
        r = httpx.delete(f"{API_BASE}/schedules/{schedule_id}", timeout=REQUEST_TIMEOUT)
        return r.status_code == 204
    except httpx.RequestError as exc:
        logger.error("Error removing schedule %s: %s", schedule_id, exc)
        return False

def demo_history_df(now: datetime | None = None) -> pd.DataFrame:
    """Placeholder series (one week, every 6 h) shown until real data arrives."""
    now = now or datetime.now(timezone.utc)
    rows = [
        {
            "ts": now - timedelta(hours=6 * (27 - i)),
            "soil_moisture": 45 + (i % 5) * 5,
            "temperature": 22 + (i % 4),
        }
        for i in range(28)
    ]
    return pd.DataFrame(rows).set_index("ts")

def build_history_chart(df: pd.DataFrame, show_soil: bool, show_temp: bool):
    """Soil moisture on the left axis, temperature on the right; None if nothing to draw."""
    base = alt.Chart(df.reset_index()).encode(x=alt.X("ts:T", title=None))

    layers = []
    if show_soil:
        layers.append(
            base.mark_line(color=GREEN, strokeWidth=3).encode(
                y=alt.Y("soil_moisture:Q", title="Soil moisture (%)",
                        scale=alt.Scale(domain=[0, 100])),
                tooltip=[alt.Tooltip("ts:T", format="%d/%m %H:%M"), "soil_moisture"],
            )
        )
    if show_temp:
        layers.append(
            base.mark_line(color=BLUE, strokeWidth=3).encode(
                y=alt.Y("temperature:Q", title="Temperature (°C)",
                        axis=alt.Axis(orient="right")),
                tooltip=[alt.Tooltip("ts:T", format="%d/%m %H:%M"), "temperature"],
            )
        )

    if not layers:
        return None
    return alt.layer(*layers).resolve_scale(y="independent")

def sync_config_state(cfg: dict) -> None:
    """
    Copy a newly observed config document into the widget state, keeping
    min < max even if the stored values don't.
    """
    if st.session_state.get("cfg_seen") == cfg:
        return
    lo, hi = reconcile_band(cfg["min_humidity"], cfg["max_humidity"],
                            cfg["min_humidity"], cfg["max_humidity"])
    st.session_state.auto_mode = cfg["auto_mode_enabled"]
    st.session_state.min_hum = lo
    st.session_state.max_hum = hi
    st.session_state.cfg_seen = cfg

# ---------- widget callbacks ----------------------------------------
def on_auto_mode_change() -> None:
    enabled = st.session_state.auto_mode
    if update_config(auto_mode_enabled=enabled) is None:
        st.error("Could not save the configuration.")
    fetch_config.clear()

def on_min_humidity_change() -> None:
    v = clamp_min_humidity(st.session_state.min_hum, st.session_state.max_hum)
    st.session_state.min_hum = v
    if st.session_state.auto_mode:
        if update_config(min_humidity=v) is None:
            st.error("Could not save the configuration.")
        fetch_config.clear()

def on_max_humidity_change() -> None:
    v = clamp_max_humidity(st.session_state.max_hum, st.session_state.min_hum)
    st.session_state.max_hum = v
    if st.session_state.auto_mode:
        if update_config(max_humidity=v) is None:
            st.error("Could not save the configuration.")
        fetch_config.clear()

def on_add_schedule() -> None:
    """
    Validate the schedule form, create the entry and reset the time input.
    Outcome is left in session state for the panel to show.
    """
    start = st.session_state.get("sched_time")
    minutes = st.session_state.get("sched_minutes", 1)
    days = [value for value, _ in WEEKDAYS if st.session_state.get(f"day_{value}")]
    time_text = start.strftime("%H:%M") if start else None

    problem = schedule_form_error(time_text, days, minutes)
    if problem:
        st.session_state.sched_flash = ("warning", problem)
    elif add_schedule(time_text, minutes, days):
        fetch_schedules.clear()
        st.session_state.sched_time = None
        st.session_state.sched_flash = ("success", f"Scheduled {time_text} for {minutes} min")
    else:
        st.session_state.sched_flash = ("error", "Could not add the schedule.")


# --------------------------------------------------------------------
# Panels (each refreshes on its own)
# --------------------------------------------------------------------

@st.fragment(run_every=REFRESH_S)
def render_stats() -> None:
    reading = fetch_latest_reading()
    col_soil, col_temp = st.columns(2)

    if reading is None:
        col_soil.metric("💧 Soil moisture", "—")
        col_temp.metric("🌡️ Temperature", "—")
        return

    soil = reading["soil_moisture"]
    temp = reading.get("temperature")
    col_soil.metric("💧 Soil moisture", f"{soil:.0f}%", moisture_label(soil), delta_color="off")
    col_temp.metric("🌡️ Temperature", f"{temp:.1f}°C" if temp is not None else "—")


@st.fragment(run_every=REFRESH_S)
def render_controls() -> None:
    cfg = fetch_config()
    if cfg is None:
        st.error("Could not reach the irrigation API.")
        return
    sync_config_state(cfg)
    auto = st.session_state.auto_mode

    col_auto, col_manual = st.columns(2)

    # 1️⃣ Automatic mode
    with col_auto:
        st.subheader("Automatic mode")
        st.toggle(
            "Automatic irrigation",
            key="auto_mode",
            on_change=on_auto_mode_change,
        )
        st.slider(
            "Min. humidity (turns on)",
            min_value=0, max_value=100, step=1,
            key="min_hum",
            on_change=on_min_humidity_change,
            disabled=not auto,
            format="%d%%",
        )
        st.slider(
            "Max./target humidity (turns off)",
            min_value=0, max_value=100, step=1,
            key="max_hum",
            on_change=on_max_humidity_change,
            disabled=not auto,
            format="%d%%",
        )
        st.caption(
            f"Active band: waters below **{st.session_state.min_hum}%** "
            f"and stops on reaching **{st.session_state.max_hum}%**."
        )

    # 2️⃣ Manual control
    with col_manual:
        st.subheader("Manual control")
        is_on = fetch_valve_status(VALVE_ID)
        if is_on is None:
            st.error("Could not read the valve status.")
            return

        st.markdown(f"**{valve_label(VALVE_ID)}**")
        if is_on:
            st.success("ACTIVE")
        else:
            st.info("INACTIVE")

        if st.button("Turn off" if is_on else "Turn on", key="valve_toggle", disabled=auto):
            if toggle_valve(VALVE_ID) is None:
                st.error("Could not toggle the valve.")
            fetch_valve_status.clear()
            st.rerun(scope="fragment")
        if auto:
            st.caption("Disabled in automatic mode")


@st.fragment(run_every=REFRESH_S)
def render_schedules() -> None:
    st.subheader("Irrigation schedule")

    # 1️⃣ New entry form
    col_time, col_valve, col_dur = st.columns(3)
    st.session_state.setdefault("sched_time", None)
    col_time.time_input("Start time", step=60, key="sched_time")
    col_valve.selectbox("Valve", [VALVE_ID], format_func=valve_label, disabled=True)
    col_dur.number_input("Duration (min)", min_value=1, value=1, step=1, key="sched_minutes")

    st.markdown("Days:")
    day_cols = st.columns(len(WEEKDAYS))
    for col, (value, label) in zip(day_cols, WEEKDAYS):
        col.checkbox(label, value=value in DEFAULT_DAYS, key=f"day_{value}")

    st.button("＋ Add", key="sched_add", on_click=on_add_schedule)
    flash = st.session_state.pop("sched_flash", None)
    if flash:
        kind, text = flash
        getattr(st, kind)(text)

    # 2️⃣ Existing entries
    entries = fetch_schedules()
    if entries is None:
        st.error("Could not load the schedules.")
        return
    if not entries:
        st.info("No times scheduled.")
        return

    for it in entries:
        col_txt, col_btn = st.columns([5, 1])
        parts = [it["time"], f"{it['minutes']} min", valve_label(it["valve_id"])]
        if it.get("days"):
            parts.append(format_days(it["days"]))
        if it.get("enabled") is False:
            parts.append("(disabled)")
        col_txt.markdown(" • ".join(parts))
        if col_btn.button("Remove", key=f"del_{it['id']}"):
            if remove_schedule(it["id"]):
                fetch_schedules.clear()
                st.rerun(scope="fragment")
            else:
                st.error("Could not remove the schedule.")


# --------------------------------------------------------------------
# Page renderers
# --------------------------------------------------------------------

def render_home() -> None:
    st.title("🌿 Smart Garden Panel")
    render_stats()
    st.divider()
    render_controls()
    st.divider()
    render_schedules()
    st.caption(f"Live panels refresh every {REFRESH_S} s")


def render_history() -> None:
    st.title("📈 Soil moisture & temperature history")

    col_win, col_soil, col_temp = st.columns([2, 1, 1])
    window = col_win.radio("Time window", list(HISTORY_WINDOWS), index=1, horizontal=True)
    show_soil = col_soil.checkbox("Soil moisture", value=True)
    show_temp = col_temp.checkbox("Temperature", value=True)

    try:
        df = fetch_history_df(HISTORY_WINDOWS[window])
    except httpx.HTTPError as exc:
        logger.error("Could not load history: %s", exc)
        st.error("Could not load the history.")
        return

    if df.empty:
        st.info("No readings in this window yet – showing sample data.")
        df = demo_history_df()

    if df.index.tz is None:              # localise naïve index to UTC first
        df.index = df.index.tz_localize("UTC")
    df.index = df.index.tz_convert(LOCAL_TZ)

    chart = build_history_chart(df, show_soil, show_temp)
    if chart is None:
        st.info("Select at least one series to plot.")
    else:
        st.altair_chart(chart, use_container_width=True)

    st.caption(f"Updated {datetime.now(LOCAL_TZ):%Y-%m-%d %H:%M %Z}")


def render_data_export() -> None:
    """Download sensor readings as CSV."""
    st.title("📤 Data Export")

    window = st.radio("Time window", list(HISTORY_WINDOWS), horizontal=True)
    hours = HISTORY_WINDOWS[window]

    try:
        df = fetch_history_df(hours)
    except httpx.HTTPError as exc:
        logger.error("Could not load readings for export: %s", exc)
        st.error("Could not load the readings.")
        return

    if df.empty:
        st.info("No records for the selected range.")
        return

    st.dataframe(df)

    st.download_button(
        label="💾 Download CSV",
        data=df.to_csv().encode(),
        file_name=f"readings_{hours}h.csv",
        mime="text/csv",
    )

# --------------------------------------------------------------------
# Main entrypoint
# --------------------------------------------------------------------
def main() -> None:
    st.set_page_config(page_title="Smart Garden Dashboard", layout="centered")

    # Sidebar navigation
    st.sidebar.title("🔀 Navigation")
    page = st.sidebar.radio("Jump to:", ["Home", "History", "Export data"], index=0)

    # Route to selected page
    if page == "Home":
        render_home()
    elif page == "History":
        render_history()
    elif page == "Export data":
        render_data_export()

# Run immediately when Streamlit executes the file
if __name__ == "__main__":
    main()
