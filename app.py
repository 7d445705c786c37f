# app.py — gated home: balance across currencies, profit totals, recent sessions

import streamlit as st
import pandas as pd
import altair as alt

from supabase_client import app_env

# ---- Page meta (run first) ----
env_suffix = " (DEV)" if app_env() == "dev" else ""
st.set_page_config(
    page_title=f"Sapphire{env_suffix}",
    page_icon="💎",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ---- Auth gate (hide everything until logged in) ----
from auth import require_auth
user = require_auth()

# ---- Shared sidebar (only after auth) ----
from sidebar import render_sidebar, load_active_session
render_sidebar()

from balance import total_balance
from cache import CURRENCY_LIST, SESSION_LIST, get_cached
from db_currency import list_currencies
from db_sessions import list_sessions
from db_stats import get_profit_series, get_profit_totals
from live_session import state_at
from formatting import (
    colored_profit_loss,
    format_amount,
    format_date,
    format_duration_short,
    format_game_name,
    format_minutes,
    format_profit_loss,
)

USER_ID = user["id"]

# ---- First login nudge ----
st.session_state.setdefault("first_login_sidebar_hint_shown", False)
if st.session_state.get("profile_created") and not st.session_state.first_login_sidebar_hint_shown:
    st.toast("👈 Pages live in the left sidebar. Start by adding a currency and a store.", icon="👈")
    st.session_state.first_login_sidebar_hint_shown = True


# ---------- Data (cached per tag) ----------
currencies = get_cached(
    f"currencies:{USER_ID}", [CURRENCY_LIST], lambda: list_currencies(USER_ID)
)
recent = get_cached(
    f"sessions_recent:{USER_ID}", [SESSION_LIST], lambda: list_sessions(USER_ID, limit=5)
)
totals = get_cached(
    f"profit_totals:{USER_ID}", [SESSION_LIST], lambda: get_profit_totals(USER_ID)
)
series = get_cached(
    f"profit_series:{USER_ID}", [SESSION_LIST], lambda: get_profit_series(USER_ID)
)


# ---------- Header ----------
name = st.session_state.get("display_name") or user.get("email", "")
st.title(f"Welcome back, {name}")


# ---------- Active session shortcut ----------
active = load_active_session()
if active:
    # cached row, so re-run the clock for this page run
    state = state_at(active)
    with st.container(border=True):
        c1, c2, c3, c4 = st.columns([2, 1, 1, 1])
        c1.markdown(f"### 🎯 Session in progress — {format_game_name(active)}")
        c2.metric("Time", format_minutes(state.elapsed_minutes))
        c3.metric("Stack", format_amount(state.current_stack))
        if c4.button("Open session", type="primary", use_container_width=True):
            st.switch_page("pages/02_Active_Session.py")
else:
    if st.button("▶️ Start a live session", type="primary"):
        st.switch_page("pages/02_Active_Session.py")


# ---------- Top metrics ----------
m1, m2, m3, m4 = st.columns(4)
m1.metric("Total balance", format_amount(total_balance(currencies)))
m2.metric("Profit (all time)", format_profit_loss(totals["all_time"]))
m3.metric("This month", format_profit_loss(totals["month"]))
m4.metric("This week", format_profit_loss(totals["week"]))

s1, s2, s3 = st.columns(3)
s1.metric("Sessions", totals["session_count"])
s2.metric("Win rate", f"{totals['win_rate']:.1f}%")
s3.metric("All-in luck (actual − EV)", format_profit_loss(round(totals["ev_difference"])))

st.markdown("---")


# ---------- Cumulative profit chart ----------
left, right = st.columns([3, 2])

with left:
    st.subheader("📈 Cumulative profit")
    if series:
        df = pd.DataFrame(series)
        df["session"] = range(1, len(df) + 1)
        chart = (
            alt.Chart(df)
            .mark_line(point=True)
            .encode(
                x=alt.X("session:Q", axis=alt.Axis(title="Session #", tickMinStep=1)),
                y=alt.Y("cumulative:Q", axis=alt.Axis(title="Cumulative profit")),
                tooltip=[
                    alt.Tooltip("start_time:T", title="Date"),
                    alt.Tooltip("profit:Q", title="Session", format=","),
                    alt.Tooltip("cumulative:Q", title="Total", format=","),
                ],
            )
            .properties(height=300)
        )
        st.altair_chart(chart, use_container_width=True)
    else:
        st.info("No completed sessions yet.")

with right:
    st.subheader("💰 Currencies")
    if currencies:
        rows = [
            {"Currency": c.get("name"), "Balance": format_amount(c.get("current_balance"))}
            for c in currencies
        ]
        st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)
    else:
        st.caption("No currencies yet.")
        if st.button("Add a currency"):
            st.switch_page("pages/03_Currencies.py")


# ---------- Recent sessions ----------
st.subheader("🕑 Recent sessions")
sessions = recent.get("sessions") or []
if not sessions:
    st.caption("Nothing recorded yet.")
for s in sessions:
    c1, c2, c3, c4 = st.columns([2, 2, 1, 1])
    c1.write(format_date(s.get("start_time")))
    c2.write(f"{(s.get('store') or {}).get('name') or '-'} · {format_game_name(s)}")
    c3.write(format_duration_short(s.get("start_time"), s.get("end_time")))
    c4.markdown(colored_profit_loss(s.get("profit_loss")))

if sessions and st.button("All sessions →"):
    st.switch_page("pages/01_Sessions.py")
