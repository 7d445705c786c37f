# supabase_client.py — config lookup + per-session anon client + cached service-role client
from __future__ import annotations

import os
import streamlit as st

from supabase import create_client, Client

# ---- client options import (version-proof) ----
try:
    # newer supabase-py versions
    from supabase.lib.client_options import ClientOptions as _ClientOptions
except Exception:
    _ClientOptions = None  # type: ignore


DEFAULT_TABLE_PREFIX = "sapphire_"


class SupabaseConfigError(RuntimeError):
    pass


def get_secret(name: str, default: str | None = None) -> str | None:
    """Read from env var first, then Streamlit secrets."""
    v = os.getenv(name)
    if v:
        return v
    try:
        if name in st.secrets:
            v2 = st.secrets[name]
            if v2:
                return str(v2)
    except Exception:
        # st.secrets raises when no secrets.toml exists at all
        pass
    return default


def app_env() -> str:
    return (get_secret("APP_ENV", "prod") or "prod").lower().strip()


def table_name(name: str) -> str:
    """All tables live under one prefix so several projects can share a database."""
    prefix = get_secret("TABLE_PREFIX", DEFAULT_TABLE_PREFIX)
    if prefix is None:
        prefix = DEFAULT_TABLE_PREFIX
    return f"{prefix}{name}"


def supabase_url() -> str:
    env = app_env()
    return str(get_secret("SUPABASE_URL_DEV" if env == "dev" else "SUPABASE_URL_PROD") or "")


def supabase_anon_key() -> str:
    env = app_env()
    return str(get_secret("SUPABASE_ANON_KEY_DEV" if env == "dev" else "SUPABASE_ANON_KEY_PROD") or "")


def _cfg():
    env = app_env()
    url = supabase_url()
    anon = supabase_anon_key()

    if env == "dev":
        svc = get_secret("SUPABASE_SERVICE_ROLE_KEY_DEV") or get_secret("SUPABASE_SERVICE_ROLE_KEY")
    else:
        svc = get_secret("SUPABASE_SERVICE_ROLE_KEY_PROD") or get_secret("SUPABASE_SERVICE_ROLE_KEY")

    if not url or not anon:
        raise SupabaseConfigError(
            "Missing Supabase credentials. Need SUPABASE_URL_* and SUPABASE_ANON_KEY_* for active APP_ENV."
        )

    return env, url, anon, svc


def _make_client(url: str, key: str) -> Client:
    """
    The SDK's local persistence/refresh is disabled: the JWT lives in
    st.session_state and is re-bound on every page run by auth.require_auth().
    """
    if _ClientOptions is None:
        return create_client(url, key)

    opts = _ClientOptions(
        persist_session=False,
        auto_refresh_token=False,
    )
    return create_client(url, key, options=opts)  # type: ignore[arg-type]


def get_supabase() -> Client:
    """Per-Streamlit-session ANON client (RLS enforced)."""
    if st.session_state.get("supabase_client_anon") is not None:
        return st.session_state["supabase_client_anon"]

    _, url, anon, _ = _cfg()
    st.session_state["supabase_client_anon"] = _make_client(url, anon)
    return st.session_state["supabase_client_anon"]


def get_supabase_admin() -> Client:
    """Cached SERVICE ROLE client (bypasses RLS). Only used for profile bootstrap."""
    if st.session_state.get("supabase_client_admin") is not None:
        return st.session_state["supabase_client_admin"]

    _, url, _, svc = _cfg()
    if not svc:
        raise SupabaseConfigError(
            "Missing service role key. Provide SUPABASE_SERVICE_ROLE_KEY_DEV/PROD (or SUPABASE_SERVICE_ROLE_KEY)."
        )

    st.session_state["supabase_client_admin"] = _make_client(url, svc)
    return st.session_state["supabase_client_admin"]


def reset_supabase_client():
    """
    Force creation of a new anon client on next get_supabase() call.
    Call this after login/logout so no auth state bleeds between users.
    """
    st.session_state.pop("supabase_client_anon", None)
