# 07_Account.py — display name, password change, sign out

import streamlit as st
import httpx

st.set_page_config(
    page_title="Account | Sapphire",
    page_icon="⚙️",
    layout="centered",
)

from auth import AuthError, change_password, require_auth, sign_out
from sidebar import render_sidebar

user = require_auth()
render_sidebar()

import actions
from errors import TrackerError

st.title("⚙️ Account")
st.caption(f"Signed in as {user.get('email')}")

# ---------- Profile ----------
st.subheader("Profile")
with st.form("display_name_form"):
    name = st.text_input("Display name", value=st.session_state.get("display_name") or "")
    if st.form_submit_button("Save"):
        res = actions.update_display_name({"display_name": name})
        if res.success:
            st.session_state["display_name"] = (res.data or {}).get("display_name") or name.strip()
            st.success("Display name updated.")
        else:
            st.error(res.error)

# ---------- Password ----------
st.subheader("Password")
with st.form("password_form", clear_on_submit=True):
    pw1 = st.text_input("New password (8+ characters)", type="password")
    pw2 = st.text_input("Confirm new password", type="password")
    if st.form_submit_button("Change password"):
        if pw1 != pw2:
            st.error("Passwords do not match.")
        else:
            try:
                change_password(pw1)
            except (AuthError, TrackerError, httpx.HTTPError) as e:
                print(f"[07_Account] password change failed: {e!r}")
                st.error(str(e))
            else:
                st.success("Password changed.")

st.markdown("---")
if st.button("🚪 Sign out", type="primary"):
    sign_out()
