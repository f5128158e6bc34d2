import streamlit as st
import pandas as pd


def set_page():
    st.set_page_config(
        page_title="Anganwadi Nutrition Dashboard",
        page_icon="🍲",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    st.markdown(
        """
        <style>
        .main { padding-top: 0.5rem; }
        .block-container { padding-top: 1.0rem; padding-bottom: 2rem; }
        div[data-testid="stMetric"] { background: rgba(255,255,255,0.04); border: 1px solid rgba(255,255,255,0.06); padding: 14px 14px 10px 14px; border-radius: 14px; }
        div[data-testid="stMetricValue"] { font-size: 28px; }
        .card { background: rgba(255,255,255,0.04); border: 1px solid rgba(255,255,255,0.06); border-radius: 16px; padding: 16px; }
        .muted { opacity: 0.75; }
        .small { font-size: 0.92rem; }
        </style>
        """,
        unsafe_allow_html=True,
    )


def status_badge(status: str) -> str:
    status = (status or "unknown").lower()
    if status == "sam":
        return "🔴 SAM"
    if status == "mam":
        return "🟠 MAM"
    if status == "normal":
        return "🟢 Normal"
    return "⚪ Unknown"


def pct(x: float) -> float:
    try:
        return float(x) * 100.0
    except (TypeError, ValueError):
        return 0.0


def clamp01(x: float) -> float:
    try:
        x = float(x)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(1.0, x))


def gauge(label: str, value01: float, hint: str = ""):
    v = clamp01(value01)
    st.markdown(
        f"**{label}**  <span class='muted small'>{hint}</span>",
        unsafe_allow_html=True,
    )
    st.progress(v)
    st.caption(f"{v*100:.1f}%")


def card(title: str, body_md: str):
    st.markdown(
        f"<div class='card'><h4 style='margin:0 0 8px 0'>{title}</h4>{body_md}</div>",
        unsafe_allow_html=True,
    )


def status_cards(counts: dict):
    """SAM / MAM / Normal / total metric row from a center summary."""
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("SAM Cases", counts.get("sam_count", 0), help="Severe acute malnutrition")
    c2.metric("MAM Cases", counts.get("mam_count", 0), help="Moderate acute malnutrition")
    c3.metric("Normal", counts.get("normal_count", 0))
    c4.metric("Total Children", counts.get("total_count", 0))


def to_df_children(children):
    if not isinstance(children, list) or not children:
        return pd.DataFrame()
    df = pd.DataFrame(children)
    df["status"] = df["current_status"].map(status_badge)
    for col in ("created_at", "updated_at"):
        if col in df.columns:
            df[col] = pd.to_datetime(df[col], errors="coerce", utc=True)
    return df


def to_df_records(records):
    """Normalize health records into a DataFrame, most recent first."""
    if not isinstance(records, list) or not records:
        return pd.DataFrame()

    df = pd.DataFrame(records)
    df["recorded_at"] = pd.to_datetime(df["recorded_at"], errors="coerce", utc=True)
    df = df.dropna(subset=["recorded_at"]).sort_values("recorded_at", ascending=False)
    df["status"] = df["predicted_status"].map(status_badge)
    for col in ("sam_probability", "mam_probability", "normal_probability"):
        df[col.replace("_probability", "_pct")] = df[col].map(pct).round(1)
    return df
