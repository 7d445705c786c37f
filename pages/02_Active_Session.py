# 02_Active_Session.py — live session: start, stack / rebuy / addon, timer, hands, timeline, tablemates, end

import streamlit as st
import pandas as pd
import altair as alt
from typing import Any, Dict, List, Optional

st.set_page_config(
    page_title="Active Session | Sapphire",
    page_icon="🎯",
    layout="wide",
)

from auth import require_auth
from sidebar import render_sidebar, load_active_session

user = require_auth()
render_sidebar()

import actions
import live_session as ls
from cache import PLAYER_LIST, STORE_LIST, get_cached, session_tag
from db import parse_ts
from db_live import list_tablemates
from db_players import list_players
from db_stores import list_cash_games, list_stores, list_tournaments
from formatting import (
    colored_profit_loss,
    format_amount,
    format_blinds,
    format_game_name,
    format_minutes,
    format_time,
)

USER_ID = user["id"]

EVENT_LABELS = {
    ls.SESSION_START: "▶️ Session started",
    ls.SESSION_PAUSE: "⏸️ Paused",
    ls.SESSION_RESUME: "⏯️ Resumed",
    ls.SESSION_END: "⏹️ Session ended",
    ls.STACK_UPDATE: "📊 Stack",
    ls.REBUY: "🔁 Rebuy",
    ls.ADDON: "➕ Add-on",
    ls.HANDS_PASSED: "🃏 Hands passed",
    ls.PLAYER_SEATED: "🪑 Player seated",
    ls.HAND_RECORDED: "📝 Hand recorded",
}


def _done(res: actions.ActionResult, message: str) -> bool:
    if res.success:
        st.toast(message, icon="✅")
        return True
    st.error(res.error)
    return False


def _describe(event: Dict[str, Any]) -> str:
    kind = event.get("event_type")
    data = event.get("event_data") or {}
    label = EVENT_LABELS.get(kind, kind)
    if kind == ls.STACK_UPDATE:
        return f"{label}: {format_amount(data.get('amount'))}"
    if kind in ls.BUY_IN_EVENT_TYPES:
        chips = f" ({format_amount(data['chips'])} chips)" if data.get("chips") else ""
        return f"{label}: {format_amount(ls.event_cost(event))}{chips}"
    if kind == ls.HANDS_PASSED:
        return f"{label}: {data.get('count')}"
    if kind == ls.PLAYER_SEATED:
        return f"{label}: seat {data.get('seatNumber')} · {data.get('playerName')}"
    if kind == ls.SESSION_END:
        return f"{label}: cash-out {format_amount(data.get('cashOut'))}"
    return label


# =============================================================================
# START
# =============================================================================

def _render_start():
    st.title("🎯 Start a session")
    last = st.session_state.pop("last_session_result", None)
    if last is not None:
        st.success(f"Session ended. Result: {colored_profit_loss(last)}")

    stores = get_cached(f"stores:{USER_ID}", [STORE_LIST], lambda: list_stores(USER_ID))
    if not stores:
        st.info("Add a store and a game first (Stores page).")
        if st.button("Go to Stores"):
            st.switch_page("pages/04_Stores.py")
        return

    names = {s["id"]: s.get("name") for s in stores}
    store_id = st.selectbox("Store", list(names), format_func=lambda i: names[i])
    game_type = st.radio("Game type", ["cash", "tournament"], horizontal=True)

    if game_type == "cash":
        games = list_cash_games(USER_ID, store_id)
        game_label = lambda g: format_blinds(g)
    else:
        games = list_tournaments(USER_ID, store_id)
        game_label = lambda g: g.get("name") or f"Buy-in {format_amount(g.get('buy_in'))}"

    game_id = None
    default_buy_in = 1000
    if games:
        game_names = {g["id"]: game_label(g) for g in games}
        game_id = st.selectbox("Game", list(game_names), format_func=lambda i: game_names[i])
        if game_type == "tournament":
            game = next(g for g in games if g["id"] == game_id)
            default_buy_in = int(game.get("buy_in") or 0) + int(game.get("rake") or 0) or default_buy_in
    else:
        st.caption("This store has no games of that type. You can still start without one.")

    with st.form("start_session"):
        c1, c2 = st.columns(2)
        buy_in = c1.number_input("Buy-in", min_value=1, step=100, value=default_buy_in)
        initial_stack = c2.number_input("Starting stack (optional)", min_value=0, step=100, value=0)
        if st.form_submit_button("Start session", type="primary"):
            payload = {
                "store_id": store_id,
                "game_type": game_type,
                "cash_game_id": game_id if game_type == "cash" else None,
                "tournament_id": game_id if game_type == "tournament" else None,
                "buy_in": int(buy_in),
                "initial_stack": int(initial_stack) or None,
            }
            if _done(actions.start_session(payload), "Session started. Good luck!"):
                st.rerun()


# =============================================================================
# ACTIVE
# =============================================================================

def _render_controls(session: Dict[str, Any], state: ls.LiveState):
    sid = session["id"]

    b1, b2, b3, b4 = st.columns(4)
    if state.is_paused:
        if b1.button("⏯️ Resume", use_container_width=True):
            if _done(actions.resume_session(sid), "Resumed"):
                st.rerun()
    else:
        if b1.button("⏸️ Pause", use_container_width=True):
            if _done(actions.pause_session(sid), "Paused"):
                st.rerun()

    if b2.button("🃏 Hand +1", use_container_width=True):
        if _done(actions.record_hand_complete(sid), "Hand counted"):
            st.rerun()
    if b3.button("↩️ Hand −1", use_container_width=True, disabled=state.hands_played == 0):
        if _done(actions.undo_hand_complete(sid), "Last hand removed"):
            st.rerun()
    with b4.popover("Hands passed", use_container_width=True):
        n = st.number_input("Hands", min_value=1, value=10, key="hands_passed_n")
        if st.button("Add hands", key="hands_passed_btn"):
            if _done(actions.record_hands_passed(sid, {"count": int(n)}), "Hands added"):
                st.rerun()

    t_stack, t_rebuy, t_addon, t_allin, t_end = st.tabs(["Stack", "Rebuy", "Add-on", "All-in", "End session"])

    with t_stack:
        with st.form("stack_form", clear_on_submit=True):
            amount = st.number_input("Current stack", min_value=1, step=100, value=max(1, state.current_stack))
            if st.form_submit_button("Update stack"):
                if _done(actions.update_stack(sid, {"amount": int(amount)}), "Stack updated"):
                    st.rerun()

    for tab, kind, fn in ((t_rebuy, "rebuy", actions.record_rebuy), (t_addon, "addon", actions.record_addon)):
        with tab:
            with st.form(f"{kind}_form", clear_on_submit=True):
                c1, c2 = st.columns(2)
                cost = c1.number_input("Cost", min_value=1, step=100, value=1000, key=f"{kind}_cost")
                chips = c2.number_input("Chips received (optional)", min_value=0, step=100, value=0, key=f"{kind}_chips")
                if st.form_submit_button(f"Record {kind}"):
                    res = fn(sid, {"cost": int(cost), "chips": int(chips) or None})
                    if _done(res, f"{kind.capitalize()} recorded"):
                        st.rerun()

    with t_allin:
        with st.form("live_allin_form", clear_on_submit=True):
            c1, c2, c3 = st.columns(3)
            pot = c1.number_input("Pot", min_value=1, step=100, value=1000)
            prob = c2.number_input("Equity (%)", min_value=0.0, max_value=100.0, value=50.0)
            won = c3.checkbox("Won")
            if st.form_submit_button("Save all-in"):
                payload = {"pot_amount": int(pot), "win_probability": float(prob), "actual_result": bool(won)}
                if _done(actions.create_all_in(sid, payload), "All-in recorded"):
                    st.rerun()

    with t_end:
        with st.form("end_form"):
            c1, c2 = st.columns(2)
            cash_out = c1.number_input("Cash-out", min_value=0, step=100, value=max(0, state.current_stack))
            position = c2.number_input("Final position (tournaments)", min_value=0, value=0)
            if st.form_submit_button("End session", type="primary"):
                res = actions.end_session(sid, {"cash_out": int(cash_out), "final_position": int(position) or None})
                if res.success:
                    st.session_state["last_session_result"] = res.data["profit_loss"]
                    st.rerun()
                st.error(res.error)


def _render_stack_chart(session: Dict[str, Any]):
    points = ls.stack_history(session.get("events") or [], session.get("buy_in"))
    if len(points) < 2:
        return
    df = pd.DataFrame(points, columns=["time", "stack"])
    chart = (
        alt.Chart(df)
        .mark_line(point=True, interpolate="step-after")
        .encode(
            x=alt.X("time:T", title=None),
            y=alt.Y("stack:Q", title="Stack"),
            tooltip=[alt.Tooltip("time:T", format="%H:%M"), alt.Tooltip("stack:Q", format=",")],
        )
        .properties(height=220)
    )
    st.altair_chart(chart, use_container_width=True)


def _render_timeline(session: Dict[str, Any]):
    st.markdown("#### 🕑 Timeline")
    events = [e for e in session.get("events") or [] if e.get("event_type") not in ls.TIMELINE_HIDDEN_TYPES]
    for e in reversed(events):
        locked = e.get("event_type") in ls.LOCKED_EVENT_TYPES
        c1, c2, c3 = st.columns([1, 4, 1])
        c1.write(format_time(e.get("recorded_at")))
        c2.write(_describe(e))
        if locked:
            continue
        with c3.popover("Edit"):
            if e.get("event_type") in ls.AMOUNT_EDITABLE_TYPES:
                current = ls.event_cost(e) if e.get("event_type") in ls.BUY_IN_EVENT_TYPES else int((e.get("event_data") or {}).get("amount") or 1)
                new_amount = st.number_input("Amount", min_value=1, value=max(1, current), key=f"amt_{e['id']}")
                if st.button("Save amount", key=f"amt_btn_{e['id']}"):
                    if _done(actions.update_event(e["id"], {"amount": int(new_amount)}), "Event updated"):
                        st.rerun()
            new_time = st.time_input("Time", value=parse_ts(e.get("recorded_at")).astimezone().time(), key=f"time_{e['id']}")
            if st.button("Save time", key=f"time_btn_{e['id']}"):
                at = parse_ts(e.get("recorded_at")).astimezone()
                edited = at.replace(hour=new_time.hour, minute=new_time.minute, second=0, microsecond=0)
                if _done(actions.update_event(e["id"], {"recorded_at": edited}), "Time updated"):
                    st.rerun()
            if st.button("🗑️ Delete", key=f"del_{e['id']}"):
                if _done(actions.delete_event(e["id"]), "Event removed"):
                    st.rerun()


def _render_tablemates(session: Dict[str, Any]):
    sid = session["id"]
    st.markdown("#### 👥 Tablemates")
    mates = get_cached(f"tablemates:{sid}", [session_tag(sid)], lambda: list_tablemates(USER_ID, sid))
    players = get_cached(f"players:{USER_ID}", [PLAYER_LIST], lambda: list_players(USER_ID))
    player_names = {p["id"]: p.get("name") for p in players}

    for m in mates:
        with st.container(border=True):
            c1, c2, c3 = st.columns([1, 3, 2])
            c1.write(f"Seat {m.get('seat_number') or '-'}")
            linked = player_names.get(m.get("player_id"))
            c2.markdown(f"**{m.get('nickname')}**" + (f" → {linked}" if linked else ""))
            if m.get("session_notes"):
                c2.caption(m["session_notes"])
            with c3.popover("Manage"):
                if player_names:
                    pid = st.selectbox(
                        "Link to player", list(player_names), format_func=lambda i: player_names[i], key=f"link_{m['id']}"
                    )
                    if st.button("Link", key=f"link_btn_{m['id']}"):
                        if _done(actions.link_tablemate(m["id"], pid), "Linked"):
                            st.rerun()
                new_name = st.text_input("New player name", value=m.get("nickname") or "", key=f"conv_{m['id']}")
                if st.button("Save as player", key=f"conv_btn_{m['id']}"):
                    res = actions.convert_tablemate_to_player(m["id"], {"player_name": new_name})
                    if _done(res, "Player created"):
                        st.rerun()
                if st.button("🗑️ Remove", key=f"rm_{m['id']}"):
                    if _done(actions.delete_tablemate(m["id"]), "Removed"):
                        st.rerun()

    with st.form("tablemate_form", clear_on_submit=True):
        c1, c2 = st.columns([3, 1])
        nickname = c1.text_input("Nickname")
        seat = c2.number_input("Seat", min_value=0, max_value=10, value=0)
        notes = st.text_input("Notes")
        if st.form_submit_button("Add tablemate"):
            payload = {"nickname": nickname, "seat_number": int(seat) or None, "session_notes": notes or None}
            if _done(actions.add_tablemate(sid, payload), "Tablemate added"):
                st.rerun()


def _render_active(session: Dict[str, Any]):
    state = ls.state_at(session)

    title = f"🎯 {(session.get('store') or {}).get('name') or 'Session'} · {format_game_name(session)}"
    st.title(title + (" (paused)" if state.is_paused else ""))

    buy_in = int(session.get("buy_in") or 0)
    m1, m2, m3, m4, m5 = st.columns(5)
    m1.metric("Time", format_minutes(state.elapsed_minutes))
    m2.metric("Stack", format_amount(state.current_stack))
    m3.metric("Buy-in total", format_amount(buy_in))
    m4.metric("Profit / loss", f"{state.current_stack - buy_in:+,}")
    m5.metric("Hands", state.hands_played)

    if st.button("🔄 Refresh"):
        st.rerun()

    _render_controls(session, state)
    st.markdown("---")

    left, right = st.columns([3, 2])
    with left:
        _render_stack_chart(session)
        _render_timeline(session)
    with right:
        _render_tablemates(session)


active = load_active_session()
if active:
    _render_active(active)
else:
    _render_start()
