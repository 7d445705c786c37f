# 04_Stores.py — stores, their cash games and tournaments (blind levels, prize structures)

import streamlit as st
import pandas as pd
from typing import Any, Dict, List, Optional

st.set_page_config(
    page_title="Stores | Sapphire",
    page_icon="🏢",
    layout="wide",
)

from auth import require_auth
from sidebar import render_sidebar

user = require_auth()
render_sidebar()

import actions
from cache import CURRENCY_LIST, STORE_LIST, get_cached, store_tag
from db_currency import list_currencies
from db_stores import get_store, list_stores
from errors import NotFoundError
from formatting import format_amount, format_blinds

USER_ID = user["id"]

BLIND_COLUMNS = ["level", "is_break", "small_blind", "big_blind", "ante", "duration_minutes"]


def _done(res: actions.ActionResult, message: str) -> bool:
    if res.success:
        st.toast(message, icon="✅")
        return True
    st.error(res.error)
    return False


def _currency_select(label: str, key: str, current: Optional[str] = None) -> Optional[str]:
    currencies = get_cached(f"currencies:{USER_ID}", [CURRENCY_LIST], lambda: list_currencies(USER_ID))
    names = {c["id"]: c.get("name") for c in currencies}
    options = [None] + list(names)
    index = options.index(current) if current in options else 0
    return st.selectbox(label, options, index=index, key=key, format_func=lambda i: "—" if i is None else names[i])


def _opt_int(v) -> Optional[int]:
    """data_editor cells come back as NaN / float."""
    if v is None or pd.isna(v):
        return None
    return int(v)


# =============================================================================
# CASH GAMES
# =============================================================================

def _render_cash_games(store: Dict[str, Any]):
    for g in store.get("cash_games") or []:
        with st.container(border=True):
            c1, c2, c3, c4 = st.columns([3, 2, 1, 1])
            c1.markdown(f"**{format_blinds(g)}**" + (" · archived" if g.get("is_archived") else ""))
            c2.write(g.get("currency_name") or "-")
            if c3.button("Unarchive" if g.get("is_archived") else "Archive", key=f"arch_cg_{g['id']}"):
                if _done(actions.archive_cash_game(g["id"], not g.get("is_archived")), "Updated"):
                    st.rerun()
            if c4.button("🗑️", key=f"del_cg_{g['id']}"):
                if _done(actions.delete_cash_game(g["id"]), "Cash game deleted"):
                    st.rerun()

    with st.form(f"new_cash_game_{store['id']}", clear_on_submit=True):
        st.markdown("**New cash game**")
        c1, c2, c3, c4 = st.columns(4)
        sb_ = c1.number_input("SB", min_value=1, value=1)
        bb = c2.number_input("BB", min_value=1, value=2)
        s1 = c3.number_input("Straddle 1", min_value=0, value=0)
        s2 = c4.number_input("Straddle 2", min_value=0, value=0)
        c5, c6, c7 = st.columns(3)
        ante = c5.number_input("Ante", min_value=0, value=0)
        ante_type = c6.selectbox("Ante type", [None, "all_ante", "bb_ante"], format_func=lambda a: a or "—")
        with c7:
            currency_id = _currency_select("Currency", f"cg_currency_{store['id']}")
        notes = st.text_input("Notes")
        if st.form_submit_button("Add cash game"):
            payload = {
                "small_blind": int(sb_),
                "big_blind": int(bb),
                "straddle1": int(s1) or None,
                "straddle2": int(s2) or None,
                "ante": int(ante) or None,
                "ante_type": ante_type if ante else None,
                "currency_id": currency_id,
                "notes": notes or None,
            }
            if _done(actions.create_cash_game(store["id"], payload), "Cash game added"):
                st.rerun()


# =============================================================================
# TOURNAMENTS
# =============================================================================

def _render_blind_editor(t: Dict[str, Any]):
    df = pd.DataFrame(t.get("blind_levels") or [], columns=BLIND_COLUMNS)
    edited = st.data_editor(
        df,
        num_rows="dynamic",
        hide_index=True,
        use_container_width=True,
        key=f"blinds_{t['id']}",
        column_config={
            "level": st.column_config.NumberColumn("Level", min_value=1, step=1),
            "is_break": st.column_config.CheckboxColumn("Break"),
            "small_blind": st.column_config.NumberColumn("SB", min_value=1),
            "big_blind": st.column_config.NumberColumn("BB", min_value=1),
            "ante": st.column_config.NumberColumn("Ante", min_value=1),
            "duration_minutes": st.column_config.NumberColumn("Minutes", min_value=1),
        },
    )
    if st.button("Save blind levels", key=f"save_blinds_{t['id']}"):
        levels: List[Dict[str, Any]] = []
        for i, row in enumerate(edited.to_dict("records"), start=1):
            if _opt_int(row.get("duration_minutes")) is None:
                continue
            levels.append(
                {
                    "level": _opt_int(row.get("level")) or i,
                    "is_break": bool(row.get("is_break")) if not pd.isna(row.get("is_break")) else False,
                    "small_blind": _opt_int(row.get("small_blind")),
                    "big_blind": _opt_int(row.get("big_blind")),
                    "ante": _opt_int(row.get("ante")),
                    "duration_minutes": _opt_int(row.get("duration_minutes")),
                }
            )
        if _done(actions.set_blind_levels(t["id"], levels), "Blind levels saved"):
            st.rerun()


def _render_prizes(t: Dict[str, Any]):
    structures = t.get("prize_structures") or []
    if not structures:
        st.caption("No prize structure.")
        return
    for s in structures:
        upper = s.get("max_entrants") or "∞"
        st.markdown(f"**Entrants {s.get('min_entrants')}–{upper}**")
        rows = []
        for lvl in s.get("prize_levels") or []:
            for item in lvl.get("prize_items") or []:
                if item.get("prize_type") == "percentage":
                    value = f"{item.get('percentage')}%"
                elif item.get("prize_type") == "fixed_amount":
                    value = format_amount(item.get("fixed_amount"))
                else:
                    value = item.get("custom_prize_label")
                rows.append({"Places": f"{lvl.get('min_position')}–{lvl.get('max_position')}", "Prize": value})
        if rows:
            st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)


def _render_tournaments(store: Dict[str, Any]):
    tournaments = store.get("tournaments") or []
    for idx, t in enumerate(tournaments):
        name = t.get("name") or f"Buy-in {format_amount(t.get('buy_in'))}"
        with st.expander(name + (" · archived" if t.get("is_archived") else "")):
            c1, c2, c3, c4 = st.columns(4)
            c1.metric("Buy-in", format_amount(t.get("buy_in")))
            c2.metric("Rake", format_amount(t.get("rake")))
            c3.metric("Starting stack", format_amount(t.get("starting_stack")))
            c4.metric("Currency", t.get("currency_name") or "-")

            st.markdown("##### Blind levels")
            _render_blind_editor(t)
            st.markdown("##### Prizes")
            _render_prizes(t)

            b1, b2, b3, b4 = st.columns(4)
            if b1.button("↑ Move up", key=f"up_{t['id']}", disabled=idx == 0):
                order = [x["id"] for x in tournaments]
                order[idx - 1], order[idx] = order[idx], order[idx - 1]
                items = [{"id": tid, "sort_order": i} for i, tid in enumerate(order)]
                if _done(actions.reorder_tournaments(store["id"], items), "Reordered"):
                    st.rerun()
            if b2.button("↓ Move down", key=f"down_{t['id']}", disabled=idx == len(tournaments) - 1):
                order = [x["id"] for x in tournaments]
                order[idx + 1], order[idx] = order[idx], order[idx + 1]
                items = [{"id": tid, "sort_order": i} for i, tid in enumerate(order)]
                if _done(actions.reorder_tournaments(store["id"], items), "Reordered"):
                    st.rerun()
            if b3.button("Unarchive" if t.get("is_archived") else "Archive", key=f"arch_t_{t['id']}"):
                if _done(actions.archive_tournament(t["id"], not t.get("is_archived")), "Updated"):
                    st.rerun()
            if b4.button("🗑️ Delete", key=f"del_t_{t['id']}"):
                if _done(actions.delete_tournament(t["id"]), "Tournament deleted"):
                    st.rerun()

    with st.form(f"new_tournament_{store['id']}", clear_on_submit=True):
        st.markdown("**New tournament**")
        name = st.text_input("Name")
        c1, c2, c3 = st.columns(3)
        buy_in = c1.number_input("Buy-in", min_value=1, step=100, value=1000)
        rake = c2.number_input("Rake", min_value=0, step=100, value=0)
        stack = c3.number_input("Starting stack", min_value=0, step=1000, value=0)
        currency_id = _currency_select("Currency", f"t_currency_{store['id']}")
        notes = st.text_input("Notes", key=f"t_notes_{store['id']}")
        if st.form_submit_button("Add tournament"):
            payload = {
                "name": name or None,
                "buy_in": int(buy_in),
                "rake": int(rake) or None,
                "starting_stack": int(stack) or None,
                "currency_id": currency_id,
                "notes": notes or None,
            }
            if _done(actions.create_tournament(store["id"], payload), "Tournament added"):
                st.rerun()


# =============================================================================
# STORE DETAIL / LIST
# =============================================================================

def _render_detail(store_id: str):
    try:
        store = get_cached(f"store:{store_id}", [store_tag(store_id)], lambda: get_store(USER_ID, store_id))
    except NotFoundError as e:
        st.session_state.pop("store_selected", None)
        st.warning(e.message)
        return

    if st.button("← All stores"):
        st.session_state.pop("store_selected", None)
        st.rerun()

    st.title(f"🏢 {store.get('name')}" + (" (archived)" if store.get("is_archived") else ""))
    if store.get("address"):
        st.write(store["address"])
    if store.get("google_maps_url"):
        st.link_button("📍 Open in Google Maps", store["google_maps_url"])
    if store.get("notes"):
        st.caption(store["notes"])

    t_cash, t_tourn, t_settings = st.tabs(["Cash games", "Tournaments", "Settings"])
    with t_cash:
        _render_cash_games(store)
    with t_tourn:
        _render_tournaments(store)
    with t_settings:
        with st.form(f"edit_store_{store_id}"):
            name = st.text_input("Name", value=store.get("name") or "")
            address = st.text_input("Address", value=store.get("address") or "")
            map_url = st.text_input("Custom map URL", value=store.get("custom_map_url") or "")
            notes = st.text_area("Notes", value=store.get("notes") or "")
            if st.form_submit_button("Save"):
                payload = {
                    "name": name,
                    "address": address or None,
                    "custom_map_url": map_url or None,
                    "notes": notes or None,
                }
                if _done(actions.update_store(store_id, payload), "Store saved"):
                    st.rerun()

        c1, c2 = st.columns(2)
        if c1.button("Unarchive" if store.get("is_archived") else "Archive"):
            if _done(actions.archive_store(store_id, not store.get("is_archived")), "Updated"):
                st.rerun()
        if c2.button("🗑️ Delete store", type="primary"):
            if _done(actions.delete_store(store_id), "Store deleted"):
                st.session_state.pop("store_selected", None)
                st.rerun()


def _render_list():
    st.title("🏢 Stores")
    show_archived = st.toggle("Show archived", value=False)
    stores = get_cached(
        f"stores:{USER_ID}:{show_archived}",
        [STORE_LIST],
        lambda: list_stores(USER_ID, include_archived=show_archived),
    )

    with st.expander("➕ New store"):
        with st.form("new_store", clear_on_submit=True):
            name = st.text_input("Name")
            address = st.text_input("Address")
            map_url = st.text_input("Custom map URL")
            notes = st.text_area("Notes")
            if st.form_submit_button("Create", type="primary"):
                payload = {
                    "name": name,
                    "address": address or None,
                    "custom_map_url": map_url or None,
                    "notes": notes or None,
                }
                if _done(actions.create_store(payload), "Store created"):
                    st.rerun()

    if not stores:
        st.info("No stores yet.")

    for s in stores:
        with st.container(border=True):
            c1, c2, c3 = st.columns([3, 2, 1])
            c1.markdown(f"**{s.get('name')}**" + (" · archived" if s.get("is_archived") else ""))
            c2.caption(f"{s.get('cash_game_count', 0)} cash games · {s.get('tournament_count', 0)} tournaments")
            if c3.button("Open", key=f"open_store_{s['id']}"):
                st.session_state["store_selected"] = s["id"]
                st.rerun()


selected = st.session_state.get("store_selected")
if selected:
    _render_detail(selected)
else:
    _render_list()
