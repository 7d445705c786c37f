# sidebar.py — Navigation sidebar for the Sapphire poker tracker

import streamlit as st

import db_live
import live_session
from auth import current_user_id, sign_out
from cache import ACTIVE_SESSION, get_cached
from formatting import format_amount, format_game_name, format_minutes
from errors import TrackerError


def load_active_session():
    """Active session (cached under the active-session tag), or None."""
    uid = current_user_id()
    return get_cached(f"active_session:{uid}", [ACTIVE_SESSION], lambda: db_live.get_active_session(uid))


def render_sidebar():
    """
    Render the sidebar with navigation, active session status, and user info.

    Call this at the top of every page after require_auth().
    """

    with st.sidebar:
        # ---------- Branding ----------
        st.markdown("## 💎 Sapphire")

        # ---------- User Info ----------
        name = st.session_state.get("display_name") or st.session_state.get("email", "")
        st.caption(f"👤 {name}")

        st.markdown("---")

        # ---------- Active Session Status ----------
        try:
            active = load_active_session()
        except TrackerError as e:
            print(f"[sidebar.render_sidebar] active session load failed: {e!r}")
            active = None

        if active:
            state = live_session.state_at(active)
            st.markdown("### 📍 Active Session")
            st.markdown(f"**Game:** {format_game_name(active)}")
            paused = " (paused)" if state.is_paused else ""
            st.markdown(f"**Time:** {format_minutes(state.elapsed_minutes)}{paused}")
            st.markdown(f"**Stack:** {format_amount(state.current_stack)}")

            if st.button("← Back to Session", use_container_width=True):
                st.switch_page("pages/02_Active_Session.py")

            st.markdown("---")

        # ---------- Navigation ----------
        st.markdown("### Navigation")

        if st.button("🏠 Dashboard", use_container_width=True):
            st.switch_page("app.py")

        if st.button("📜 Sessions", use_container_width=True):
            st.switch_page("pages/01_Sessions.py")

        if st.button("🎯 Active Session", use_container_width=True):
            st.switch_page("pages/02_Active_Session.py")

        if st.button("💰 Currencies", use_container_width=True):
            st.switch_page("pages/03_Currencies.py")

        if st.button("🏢 Stores", use_container_width=True):
            st.switch_page("pages/04_Stores.py")

        if st.button("👥 Players", use_container_width=True):
            st.switch_page("pages/05_Players.py")

        with st.expander("More", expanded=False):
            if st.button("✅ Tasks", use_container_width=True):
                st.switch_page("pages/06_Tasks.py")

            if st.button("⚙️ Account", use_container_width=True):
                st.switch_page("pages/07_Account.py")

        # ---------- Sign Out ----------
        st.markdown("---")
        if st.button("🚪 Sign Out", use_container_width=True):
            sign_out()
