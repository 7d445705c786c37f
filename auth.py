# auth.py — Session-state only auth (no cookies, no refresh persistence)
# Streamlit Cloud compatible. Hard refresh = re-login.
from __future__ import annotations

from typing import Any, Dict, Optional

import streamlit as st
import httpx

from errors import AuthRequiredError
from supabase_client import (
    app_env,
    get_supabase,
    reset_supabase_client,
    supabase_anon_key,
    supabase_url,
)


AUTH_KEYS = ("authenticated", "access_token", "refresh_token", "user", "email", "is_active", "profile_created")


class AuthError(RuntimeError):
    """GoTrue rejected the request (bad credentials, weak password, ...)."""


# ---------------- GoTrue REST ----------------
def _gotrue_headers(token: Optional[str] = None) -> Dict[str, str]:
    key = supabase_anon_key().strip()
    return {
        "apikey": key,
        "Authorization": f"Bearer {token or key}",
        "Content-Type": "application/json",
    }


def _gotrue_endpoint(path: str) -> str:
    url = supabase_url().rstrip("/")
    if not url or not supabase_anon_key():
        raise RuntimeError("Missing SUPABASE_URL or SUPABASE_ANON_KEY in secrets.")
    return f"{url}/auth/v1/{path}"


def _raise_for_gotrue(r: httpx.Response, what: str) -> None:
    if r.status_code < 400:
        return
    error_detail = r.text
    try:
        error_json = r.json()
        error_detail = (
            error_json.get("error_description")
            or error_json.get("msg")
            or error_json.get("message")
            or r.text
        )
    except ValueError:
        pass
    raise AuthError(f"{what} failed: {error_detail}")


def _gotrue_password_login(email: str, password: str) -> dict:
    """Direct REST call to Supabase GoTrue for password auth."""
    r = httpx.post(
        _gotrue_endpoint("token?grant_type=password"),
        headers=_gotrue_headers(),
        json={"email": email, "password": password},
        timeout=20.0,
    )
    _raise_for_gotrue(r, "Login")
    return r.json()


def _gotrue_signup(email: str, password: str) -> dict:
    r = httpx.post(
        _gotrue_endpoint("signup"),
        headers=_gotrue_headers(),
        json={"email": email, "password": password},
        timeout=20.0,
    )
    _raise_for_gotrue(r, "Sign up")
    return r.json()


def change_password(new_password: str) -> None:
    """PUT /auth/v1/user with the current access token."""
    token = st.session_state.get("access_token")
    if not token:
        raise AuthRequiredError()
    if len(new_password or "") < 8:
        raise AuthError("Password must be at least 8 characters.")

    r = httpx.put(
        _gotrue_endpoint("user"),
        headers=_gotrue_headers(token),
        json={"password": new_password},
        timeout=20.0,
    )
    _raise_for_gotrue(r, "Password change")


# ---------------- Session state helpers ----------------
def _init_session_state():
    defaults = {
        "authenticated": False,
        "access_token": None,
        "refresh_token": None,
        "user": None,
        "email": None,
        "is_active": True,
        "profile_created": False,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def _clear_user_data():
    # Clear Supabase client so next login gets a fresh one
    reset_supabase_client()

    # Clear all user data caches to prevent bleed between users
    from cache import clear_all_user_caches
    clear_all_user_caches()


def _clear_auth_state():
    """Clear all auth-related session state."""
    for key in AUTH_KEYS:
        st.session_state[key] = False if key in ("authenticated", "profile_created") else None
    st.session_state["is_active"] = True
    _clear_user_data()


def _store_login(data: dict, fallback_email: str) -> None:
    access_token = data.get("access_token")
    if not access_token:
        raise AuthError("No access token received. Check your inbox to confirm the account.")

    _clear_user_data()

    user_obj = data.get("user") or {}
    st.session_state["authenticated"] = True
    st.session_state["access_token"] = access_token
    st.session_state["refresh_token"] = data.get("refresh_token")
    st.session_state["user"] = user_obj
    st.session_state["email"] = (user_obj.get("email") or fallback_email).strip().lower()


def _user_id_from(user: Any) -> Optional[str]:
    if isinstance(user, dict):
        uid = user.get("id") or user.get("user_id") or user.get("sub")
    else:
        uid = getattr(user, "id", None) or getattr(user, "user_id", None)
    return str(uid) if uid else None


def current_user_id() -> str:
    """Authenticated user's id, for data-layer calls outside require_auth()."""
    if not st.session_state.get("authenticated"):
        raise AuthRequiredError()
    uid = _user_id_from(st.session_state.get("user"))
    if not uid:
        raise AuthRequiredError()
    return uid


# ---------------- UI helpers ----------------
def _hide_sidebar_while_logged_out():
    st.markdown(
        """
        <style>
            section[data-testid="stSidebar"] [data-testid="stSidebarNav"] {
                display: none !important;
            }
            div[data-testid="stToolbar"] {display: none !important;}
            footer {visibility: hidden !important;}
        </style>
        """,
        unsafe_allow_html=True,
    )


# ---------------- Logout ----------------
def sign_out():
    """Clear session and force re-render to login screen."""
    _clear_auth_state()
    st.rerun()


# ---------------- Login UI ----------------
def _login_ui():
    _hide_sidebar_while_logged_out()

    st.title("Sapphire — Poker Tracker")
    if app_env() == "dev":
        st.caption("🔧 Development Environment")

    tab_login, tab_signup = st.tabs(["Sign In", "Create Account"])

    with tab_login:
        email_input = st.text_input("Email", key="login_email_input")
        password_input = st.text_input("Password", type="password", key="login_password_input")

        if st.button("Sign In", type="primary", use_container_width=True):
            if not email_input or not password_input:
                st.error("Please enter both email and password.")
            else:
                email = email_input.strip().lower()
                try:
                    _store_login(_gotrue_password_login(email, password_input), email)
                except (AuthError, httpx.HTTPError, RuntimeError) as e:
                    print(f"[auth._login_ui] login failed for {email}: {e!r}")
                    st.error(str(e))
                else:
                    st.rerun()

    with tab_signup:
        su_email = st.text_input("Email", key="signup_email_input")
        su_password = st.text_input("Password (8+ characters)", type="password", key="signup_password_input")
        su_confirm = st.text_input("Confirm password", type="password", key="signup_confirm_input")

        if st.button("Create Account", use_container_width=True):
            if not su_email or not su_password:
                st.error("Please enter both email and password.")
            elif su_password != su_confirm:
                st.error("Passwords do not match.")
            elif len(su_password) < 8:
                st.error("Password must be at least 8 characters.")
            else:
                email = su_email.strip().lower()
                try:
                    data = _gotrue_signup(email, su_password)
                except (AuthError, httpx.HTTPError, RuntimeError) as e:
                    print(f"[auth._login_ui] signup failed for {email}: {e!r}")
                    st.error(str(e))
                else:
                    if data.get("access_token"):
                        _store_login(data, email)
                        st.session_state["profile_created"] = True
                        st.rerun()
                    st.success("Account created. Confirm your email, then sign in.")

    st.stop()


# ---------------- Main auth gate ----------------
def require_auth() -> Dict[str, str]:
    """
    Main authentication gate. Call at the top of every protected page.

    Returns {"id", "email"} for the signed-in user.
    Shows login UI and stops execution if not authenticated.
    """
    _init_session_state()

    if not st.session_state.get("authenticated"):
        _login_ui()
        st.stop()

    access_token = st.session_state.get("access_token")
    user = st.session_state.get("user")

    if not access_token or not user:
        _clear_auth_state()
        _login_ui()
        st.stop()

    # Bind the JWT so row-level security sees this user
    try:
        sb = get_supabase()
        sb.auth.set_session(access_token, st.session_state.get("refresh_token") or "")
    except Exception as e:
        print(f"[auth.require_auth] session bind failed: {e!r}")
        _clear_auth_state()
        _login_ui()
        st.stop()

    user_id = _user_id_from(user)
    if not user_id:
        st.error("Authentication error: Could not determine user ID.")
        if st.button("Sign Out"):
            sign_out()
        st.stop()

    email = str(st.session_state.get("email") or "")

    # Profile gate
    from db import ensure_profile
    try:
        profile = ensure_profile(user_id, email)
    except Exception as e:
        print(f"[auth.require_auth] ensure_profile error: {e!r}")
        profile = None

    if not profile:
        st.error("Could not load or create your profile.")
        if st.button("Sign Out"):
            sign_out()
        st.stop()

    is_active = bool(profile.get("is_active", True))
    if not is_active:
        st.error("Your account has been disabled.")
        if st.button("Sign Out"):
            sign_out()
        st.stop()

    st.session_state["is_active"] = is_active
    st.session_state["display_name"] = profile.get("display_name") or email.split("@")[0]

    return {"id": user_id, "email": email}
