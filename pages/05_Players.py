# 05_Players.py — player notebook: search / tag filter, notes, tags

import streamlit as st
from datetime import date

st.set_page_config(
    page_title="Players | Sapphire",
    page_icon="👥",
    layout="wide",
)

from auth import require_auth
from sidebar import render_sidebar

user = require_auth()
render_sidebar()

import actions
from cache import PLAYER_LIST, PLAYER_TAGS, get_cached, player_tag
from db_players import get_player, list_players, list_tags
from errors import NotFoundError
from filters import PlayerFilter, filter_players, has_active_player_filters
from formatting import format_date

USER_ID = user["id"]


def _done(res: actions.ActionResult, message: str) -> bool:
    if res.success:
        st.toast(message, icon="✅")
        return True
    st.error(res.error)
    return False


def _tag_badges(tags) -> str:
    return " ".join(f":blue-background[{t.get('name')}]" for t in tags or [])


# =============================================================================
# TAG MANAGEMENT
# =============================================================================

def _render_tag_manager(tags):
    with st.expander("🏷️ Manage tags"):
        for t in tags:
            c1, c2, c3 = st.columns([3, 1, 1])
            c1.markdown(f"**{t.get('name')}**")
            c2.color_picker("Colour", value=t.get("color") or "#3b82f6", key=f"tag_color_{t['id']}", disabled=True,
                            label_visibility="collapsed")
            if c3.button("🗑️", key=f"del_tag_{t['id']}"):
                if _done(actions.delete_tag(t["id"]), "Tag deleted"):
                    st.rerun()

        with st.form("new_tag", clear_on_submit=True):
            c1, c2 = st.columns([3, 1])
            name = c1.text_input("Tag name")
            color = c2.color_picker("Colour", value="#3b82f6")
            if st.form_submit_button("Add tag"):
                if _done(actions.create_tag({"name": name, "color": color}), "Tag created"):
                    st.rerun()


# =============================================================================
# DETAIL
# =============================================================================

def _render_detail(player_id: str, tags):
    try:
        player = get_cached(f"player:{player_id}", [player_tag(player_id)], lambda: get_player(USER_ID, player_id))
    except NotFoundError as e:
        st.session_state.pop("player_selected", None)
        st.warning(e.message)
        return

    if st.button("← All players"):
        st.session_state.pop("player_selected", None)
        st.rerun()

    st.title(f"👤 {player.get('name')}")
    if player.get("tags"):
        st.markdown(_tag_badges(player["tags"]))
    if player.get("general_notes"):
        st.info(player["general_notes"])

    t_notes, t_tags, t_settings = st.tabs(["Notes", "Tags", "Settings"])

    with t_notes:
        with st.form(f"new_note_{player_id}", clear_on_submit=True):
            when = st.date_input("Date", value=date.today())
            content = st.text_area("Note")
            if st.form_submit_button("Add note"):
                if _done(actions.add_note(player_id, {"note_date": when, "content": content}), "Note added"):
                    st.rerun()

        for n in player.get("notes") or []:
            with st.container(border=True):
                c1, c2 = st.columns([5, 1])
                c1.caption(format_date(n.get("note_date")))
                c1.write(n.get("content"))
                if c2.button("🗑️", key=f"del_note_{n['id']}"):
                    if _done(actions.delete_note(n["id"]), "Note removed"):
                        st.rerun()

    with t_tags:
        assigned = {str(t["id"]) for t in player.get("tags") or []}
        for t in tags:
            has = str(t["id"]) in assigned
            checked = st.checkbox(t.get("name"), value=has, key=f"assign_{player_id}_{t['id']}")
            if checked and not has:
                if _done(actions.assign_tag(player_id, t["id"]), "Tag added"):
                    st.rerun()
            elif has and not checked:
                if _done(actions.remove_tag(player_id, t["id"]), "Tag removed"):
                    st.rerun()
        if not tags:
            st.caption("Create tags from the player list first.")

    with t_settings:
        with st.form(f"edit_player_{player_id}"):
            name = st.text_input("Name", value=player.get("name") or "")
            notes = st.text_area("General notes", value=player.get("general_notes") or "")
            if st.form_submit_button("Save"):
                if _done(actions.update_player(player_id, {"name": name, "general_notes": notes or None}), "Saved"):
                    st.rerun()
        if st.button("🗑️ Delete player", type="primary"):
            if _done(actions.delete_player(player_id), "Player deleted"):
                st.session_state.pop("player_selected", None)
                st.rerun()


# =============================================================================
# LIST
# =============================================================================

def _render_list(tags):
    st.title("👥 Players")
    players = get_cached(f"players:{USER_ID}", [PLAYER_LIST], lambda: list_players(USER_ID))

    flt: PlayerFilter = st.session_state.setdefault("players_filter", PlayerFilter())
    c1, c2 = st.columns([2, 3])
    flt.search = c1.text_input("Search", value=flt.search)
    tag_names = {t["id"]: t.get("name") for t in tags}
    flt.tag_ids = c2.multiselect(
        "Tags (all must match)", list(tag_names), default=[t for t in flt.tag_ids if t in tag_names],
        format_func=lambda i: tag_names[i],
    )

    shown = filter_players(players, flt.search, flt.tag_ids)
    if has_active_player_filters(flt):
        st.caption(f"{len(shown)} of {len(players)} players")

    _render_tag_manager(tags)

    with st.expander("➕ New player"):
        with st.form("new_player", clear_on_submit=True):
            name = st.text_input("Name")
            notes = st.text_area("General notes")
            if st.form_submit_button("Create", type="primary"):
                if _done(actions.create_player({"name": name, "general_notes": notes or None}), "Player created"):
                    st.rerun()

    for p in shown:
        with st.container(border=True):
            c1, c2, c3 = st.columns([2, 3, 1])
            c1.markdown(f"**{p.get('name')}**")
            c2.markdown(_tag_badges(p.get("tags")))
            if c3.button("Open", key=f"open_player_{p['id']}"):
                st.session_state["player_selected"] = p["id"]
                st.rerun()


tags = get_cached(f"player_tags:{USER_ID}", [PLAYER_TAGS], lambda: list_tags(USER_ID))
selected = st.session_state.get("player_selected")
if selected:
    _render_detail(selected, tags)
else:
    _render_list(tags)
