# 01_Sessions.py — archived sessions: filters, profit chart, manual entry, detail + all-ins

import streamlit as st
import pandas as pd
import altair as alt
from datetime import datetime, time, timezone
from typing import Any, Dict, List, Optional

st.set_page_config(
    page_title="Sessions | Sapphire",
    page_icon="📜",
    layout="wide",
)

from auth import require_auth
from sidebar import render_sidebar

user = require_auth()
render_sidebar()

import actions
from all_in import record_actual, record_ev
from cache import CURRENCY_LIST, SESSION_LIST, STORE_LIST, get_cached, session_tag
from db_all_in import list_by_session
from db_currency import list_currencies
from db_sessions import get_session, list_sessions
from db_stores import list_cash_games, list_stores, list_tournaments
from errors import NotFoundError
from filters import GAME_TYPES, PERIOD_LABELS, PERIOD_PRESETS, SessionFilter, query_page, session_filter_to_query
from formatting import (
    colored_profit_loss,
    format_amount,
    format_blinds,
    format_date,
    format_duration_short,
    format_game_name,
    format_time,
)
from live_session import TIMELINE_HIDDEN_TYPES

USER_ID = user["id"]
PAGE_SIZE = 20


# =============================================================================
# HELPERS
# =============================================================================

def _done(res: actions.ActionResult, message: str) -> bool:
    if res.success:
        st.toast(message, icon="✅")
        return True
    st.error(res.error)
    return False


def _combine(d, t) -> Optional[datetime]:
    if d is None:
        return None
    return datetime.combine(d, t or time(0, 0)).astimezone(timezone.utc)


def _stores() -> List[Dict[str, Any]]:
    return get_cached(f"stores:{USER_ID}", [STORE_LIST], lambda: list_stores(USER_ID))


def _currencies() -> List[Dict[str, Any]]:
    return get_cached(f"currencies:{USER_ID}", [CURRENCY_LIST], lambda: list_currencies(USER_ID))


def _game_picker(prefix: str, store_id: Optional[str], game_type: str, current: Optional[str] = None) -> Optional[str]:
    """Select box for the store's cash games or tournaments. Returns the id."""
    if not store_id:
        return None
    if game_type == "cash":
        games = list_cash_games(USER_ID, store_id)
        label = lambda g: format_blinds(g)
    else:
        games = list_tournaments(USER_ID, store_id)
        label = lambda g: g.get("name") or f"Buy-in {format_amount(g.get('buy_in'))}"
    if not games:
        st.caption("This store has no games of that type yet.")
        return None
    ids = [g["id"] for g in games]
    names = {g["id"]: label(g) for g in games}
    index = ids.index(current) if current in ids else 0
    return st.selectbox("Game", ids, index=index, format_func=lambda i: names[i], key=f"{prefix}_game")


# =============================================================================
# DETAIL VIEW
# =============================================================================

def _render_all_ins(session_id: str):
    st.markdown("#### 🎲 All-ins")
    data = get_cached(
        f"all_ins:{session_id}", [session_tag(session_id)], lambda: list_by_session(USER_ID, session_id)
    )
    summary = data["summary"]

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("All-ins", summary.count)
    c2.metric("Avg. equity", f"{summary.average_win_rate:.1f}%")
    c3.metric("EV", format_amount(round(summary.all_in_ev)))
    c4.metric("Actual − EV", f"{summary.ev_difference:+,.0f}")

    records = data["records"]
    if records:
        df = pd.DataFrame(
            [
                {
                    "Time": format_time(r.get("recorded_at")),
                    "Pot": r.get("pot_amount"),
                    "Equity %": float(r.get("win_probability") or 0),
                    "Run it": r.get("run_it_times") or 1,
                    "Won": "✅" if r.get("actual_result") else "❌",
                    "EV": round(record_ev(r)),
                    "Actual": round(record_actual(r)),
                }
                for r in records
            ]
        )
        st.dataframe(df, hide_index=True, use_container_width=True)

        to_delete = st.selectbox(
            "Remove an all-in",
            [None] + [r["id"] for r in records],
            format_func=lambda i: "—" if i is None else next(
                f"{format_time(r.get('recorded_at'))} · pot {format_amount(r.get('pot_amount'))}"
                for r in records if r["id"] == i
            ),
            key=f"allin_del_{session_id}",
        )
        if to_delete and st.button("Delete all-in", key=f"allin_del_btn_{session_id}"):
            if _done(actions.delete_all_in(to_delete), "All-in removed"):
                st.rerun()

    with st.form(f"allin_form_{session_id}", clear_on_submit=True):
        st.markdown("**Record an all-in**")
        f1, f2, f3 = st.columns(3)
        pot = f1.number_input("Pot", min_value=1, step=100, value=1000)
        prob = f2.number_input("Equity (%)", min_value=0.0, max_value=100.0, value=50.0, step=1.0)
        won = f3.checkbox("Won")
        f4, f5 = st.columns(2)
        times = f4.number_input("Run it (times)", min_value=1, max_value=10, value=1)
        wins = f5.number_input("Wins in runout", min_value=0, max_value=10, value=0)
        if st.form_submit_button("Save all-in"):
            payload = {"pot_amount": int(pot), "win_probability": float(prob), "actual_result": bool(won)}
            if times > 1:
                payload.update({"run_it_times": int(times), "wins_in_runout": int(wins)})
            if _done(actions.create_all_in(session_id, payload), "All-in recorded"):
                st.rerun()


def _render_detail(session_id: str):
    try:
        session = get_cached(
            f"session:{session_id}", [session_tag(session_id)], lambda: get_session(USER_ID, session_id)
        )
    except NotFoundError as e:
        st.session_state.pop("sessions_selected", None)
        st.warning(e.message)
        return

    if st.button("← Back to list"):
        st.session_state.pop("sessions_selected", None)
        st.rerun()

    store_name = (session.get("store") or {}).get("name") or "-"
    st.header(f"{format_date(session.get('start_time'))} · {store_name}")

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Game", format_game_name(session))
    c2.metric("Buy-in", format_amount(session.get("buy_in")))
    c3.metric("Cash-out", format_amount(session.get("cash_out")))
    c4.metric("Duration", format_duration_short(session.get("start_time"), session.get("end_time")))
    st.markdown(f"**Profit / loss:** {colored_profit_loss(session.get('profit_loss'))}")
    if session.get("notes"):
        st.markdown(session["notes"])

    events = [e for e in session.get("events") or [] if e.get("event_type") not in TIMELINE_HIDDEN_TYPES]
    if events:
        with st.expander(f"Timeline ({len(events)} events)"):
            for e in events:
                st.write(f"{format_time(e.get('recorded_at'))} · {e.get('event_type')} {e.get('event_data') or ''}")

    _render_all_ins(session_id)

    st.markdown("---")
    with st.expander("✏️ Edit session"):
        with st.form(f"edit_session_{session_id}"):
            buy_in = st.number_input("Buy-in", min_value=1, value=int(session.get("buy_in") or 1))
            cash_out = st.number_input("Cash-out", min_value=0, value=int(session.get("cash_out") or 0))
            notes = st.text_area("Notes", value=session.get("notes") or "")
            if st.form_submit_button("Save changes"):
                res = actions.update_session(
                    session_id, {"buy_in": int(buy_in), "cash_out": int(cash_out), "notes": notes or None}
                )
                if _done(res, "Session updated"):
                    st.rerun()

    with st.expander("🗑️ Delete session"):
        st.warning("This removes the session from your history and balances.")
        if st.button("Delete permanently", type="primary", key=f"del_session_{session_id}"):
            if _done(actions.delete_session(session_id), "Session deleted"):
                st.session_state.pop("sessions_selected", None)
                st.rerun()


# =============================================================================
# NEW ARCHIVE SESSION
# =============================================================================

def _render_new_session_form():
    stores = _stores()
    with st.expander("➕ Record a past session"):
        if not stores:
            st.info("Add a store first (Stores page).")
            return

        store_ids = [s["id"] for s in stores]
        names = {s["id"]: s.get("name") for s in stores}
        store_id = st.selectbox("Store", store_ids, format_func=lambda i: names[i], key="new_store")
        game_type = st.radio("Game type", ["cash", "tournament"], horizontal=True, key="new_game_type")
        game_id = _game_picker("new", store_id, game_type)

        with st.form("new_archive_session", clear_on_submit=True):
            d1, d2, d3 = st.columns(3)
            start_date = d1.date_input("Date")
            start_t = d2.time_input("Start", value=time(18, 0))
            end_t = d3.time_input("End", value=time(22, 0))
            a1, a2 = st.columns(2)
            buy_in = a1.number_input("Buy-in", min_value=1, step=100, value=1000)
            cash_out = a2.number_input("Cash-out", min_value=0, step=100, value=0)
            notes = st.text_area("Notes")
            if st.form_submit_button("Save session", type="primary"):
                start = _combine(start_date, start_t)
                end = _combine(start_date, end_t)
                payload = {
                    "store_id": store_id,
                    "game_type": game_type,
                    "cash_game_id": game_id if game_type == "cash" else None,
                    "tournament_id": game_id if game_type == "tournament" else None,
                    "start_time": start,
                    "end_time": end,
                    "buy_in": int(buy_in),
                    "cash_out": int(cash_out),
                    "notes": notes or None,
                }
                if _done(actions.create_archive_session(payload), "Session saved"):
                    st.rerun()


# =============================================================================
# LIST VIEW
# =============================================================================

def _render_filters() -> SessionFilter:
    flt: SessionFilter = st.session_state.setdefault("sessions_filter", SessionFilter())
    stores = _stores()
    currencies = _currencies()

    c1, c2, c3, c4 = st.columns(4)
    flt.game_type = c1.selectbox(
        "Game type", GAME_TYPES, index=GAME_TYPES.index(flt.game_type),
        format_func=lambda g: {"all": "All", "cash": "Cash", "tournament": "Tournament"}[g],
    )
    flt.period_preset = c2.selectbox(
        "Period", PERIOD_PRESETS, index=PERIOD_PRESETS.index(flt.period_preset),
        format_func=lambda p: PERIOD_LABELS[p],
    )
    store_names = {s["id"]: s.get("name") for s in stores}
    flt.store_id = c3.selectbox(
        "Store", [None] + list(store_names), format_func=lambda i: "All" if i is None else store_names[i],
    )
    currency_names = {c["id"]: c.get("name") for c in currencies}
    flt.currency_id = c4.selectbox(
        "Currency", [None] + list(currency_names), format_func=lambda i: "All" if i is None else currency_names[i],
    )

    if flt.period_preset == "custom":
        r1, r2 = st.columns(2)
        flt.custom_range = (r1.date_input("From", value=flt.custom_range[0]), r2.date_input("To", value=flt.custom_range[1]))
    return flt


def _render_profit_chart(sessions: List[Dict[str, Any]]):
    rows = [
        {"date": format_date(s.get("start_time")), "start": s.get("start_time"), "profit": s.get("profit_loss") or 0}
        for s in sessions
        if s.get("profit_loss") is not None
    ]
    if not rows:
        return
    df = pd.DataFrame(rows).sort_values("start")
    chart = (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("date:N", sort=None, title=None),
            y=alt.Y("profit:Q", title="Profit / loss"),
            color=alt.condition(alt.datum.profit >= 0, alt.value("#22c55e"), alt.value("#ef4444")),
            tooltip=["date:N", alt.Tooltip("profit:Q", format=",")],
        )
        .properties(height=240)
    )
    st.altair_chart(chart, use_container_width=True)


def _render_list():
    st.title("📜 Sessions")
    _render_new_session_form()

    flt = _render_filters()
    query = session_filter_to_query(flt)
    page = query_page(st.session_state, "sessions_page", query)

    key = f"sessions:{USER_ID}:{sorted(query.items(), key=lambda kv: kv[0])}:{page}"
    result = get_cached(
        key,
        [SESSION_LIST],
        lambda: list_sessions(USER_ID, limit=PAGE_SIZE, offset=page * PAGE_SIZE, **query),
    )
    sessions = result["sessions"]

    total_pl = sum(s.get("profit_loss") or 0 for s in sessions)
    st.caption(f"{result['total']} sessions · this page {colored_profit_loss(total_pl)}")
    _render_profit_chart(sessions)

    if not sessions:
        st.info("No sessions match these filters.")

    for s in sessions:
        with st.container(border=True):
            c1, c2, c3, c4, c5 = st.columns([2, 2, 1, 1, 1])
            c1.markdown(f"**{format_date(s.get('start_time'))}** {format_time(s.get('start_time'))}")
            c2.write(f"{(s.get('store') or {}).get('name') or '-'} · {format_game_name(s)}")
            c3.write(format_duration_short(s.get("start_time"), s.get("end_time")))
            c4.markdown(colored_profit_loss(s.get("profit_loss")))
            if c5.button("Open", key=f"open_{s['id']}"):
                st.session_state["sessions_selected"] = s["id"]
                st.rerun()

    p1, _, p2 = st.columns([1, 4, 1])
    if page > 0 and p1.button("← Newer"):
        st.session_state["sessions_page"] = page - 1
        st.rerun()
    if result["has_more"] and p2.button("Older →"):
        st.session_state["sessions_page"] = page + 1
        st.rerun()


selected = st.session_state.get("sessions_selected")
if selected:
    _render_detail(selected)
else:
    _render_list()
