# db.py — shared persistence helpers (retry, soft delete, ownership) + profiles
#
# Every table carries user_id (owner) and most carry deleted_at (soft delete).
# Row-level security on Supabase enforces ownership too, but every query here
# also filters by user_id so a misconfigured policy never leaks rows.

from __future__ import annotations

from typing import Any, Dict, Optional, List
import datetime as dt
import time

import httpx
from supabase import Client

from errors import NotFoundError
from supabase_client import get_supabase, get_supabase_admin, table_name


def _sid(x: Any) -> str:
    """Safe id normalize (uuid.UUID -> str, None -> '')."""
    if x is None:
        return ""
    try:
        return str(x)
    except Exception:
        return ""


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _jsonable(value: Any) -> Any:
    """Dates/datetimes -> ISO strings so httpx can serialize the payload."""
    if isinstance(value, (dt.datetime, dt.date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def _client(sb: Optional[Client]) -> Client:
    return sb if sb is not None else get_supabase()


def _execute_with_retry(q, *, tries: int = 3, base_sleep: float = 0.2):
    """
    Retry wrapper for transient PostgREST/httpx read/connect hiccups.
    q must be a PostgREST query object that supports .execute().
    """
    last_err = None
    for attempt in range(tries):
        try:
            return q.execute()
        except (httpx.ReadError, httpx.ConnectError, httpx.TimeoutException) as e:
            last_err = e
            time.sleep(base_sleep * (2 ** attempt))  # 0.2, 0.4, 0.8
    raise last_err  # bubble after retries


def parse_ts(value) -> Optional[dt.datetime]:
    """
    Robust parse for timestamptz coming back from Supabase.
    Expects ISO strings like '2025-12-02T15:30:12.345678+00:00' or '...Z'.
    """
    if isinstance(value, dt.datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        return dt.datetime.fromisoformat(value)
    except ValueError:
        return None


# ---------- generic row helpers ----------

def table(sb: Client, name: str):
    return sb.table(table_name(name))


def not_deleted(q):
    """WHERE deleted_at IS NULL"""
    return q.is_("deleted_at", "null")


def select_rows(q) -> List[Dict[str, Any]]:
    res = _execute_with_retry(q)
    return list(res.data or [])


def first_row(q) -> Optional[Dict[str, Any]]:
    rows = select_rows(q.limit(1))
    return rows[0] if rows else None


def fetch_owned(
    name: str,
    row_id: Any,
    user_id: Any,
    missing_message: str,
    *,
    sb: Optional[Client] = None,
    filters: Optional[Dict[str, Any]] = None,
    soft_deletable: bool = True,
) -> Dict[str, Any]:
    """
    Return the row `row_id` of table `name` owned by `user_id`.
    Raises NotFoundError if it does not exist, belongs to someone else,
    or is soft-deleted.
    """
    sb = _client(sb)
    row_id = _sid(row_id)
    user_id = _sid(user_id)
    if not row_id or not user_id:
        raise NotFoundError(missing_message)

    q = table(sb, name).select("*").eq("id", row_id).eq("user_id", user_id)
    if soft_deletable:
        q = not_deleted(q)
    for col, val in (filters or {}).items():
        q = q.eq(col, val)

    row = first_row(q)
    if not row:
        raise NotFoundError(missing_message)
    return row


def insert_row(name: str, payload: Dict[str, Any], *, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    res = _execute_with_retry(table(sb, name).insert(_jsonable(payload)))
    rows = res.data or []
    if not rows:
        raise RuntimeError(f"Failed to insert row in '{name}'.")
    return rows[0]


def update_row(name: str, row_id: Any, changes: Dict[str, Any], *, sb: Optional[Client] = None) -> Dict[str, Any]:
    """Apply `changes` to one row, stamping updated_at. Returns the updated row."""
    sb = _client(sb)
    payload = dict(changes)
    payload["updated_at"] = _now_iso()
    res = _execute_with_retry(table(sb, name).update(_jsonable(payload)).eq("id", _sid(row_id)))
    rows = res.data or []
    return rows[0] if rows else {}


def soft_delete(name: str, row_id: Any, *, sb: Optional[Client] = None) -> Dict[str, Any]:
    """Mark a row deleted instead of removing it."""
    return update_row(name, row_id, {"deleted_at": _now_iso()}, sb=sb)


def pick_changes(data: Dict[str, Any], fields: List[str]) -> Dict[str, Any]:
    """
    Keep only the update fields the caller actually sent.
    Omitted => unchanged, explicit None => cleared.
    """
    return {f: data[f] for f in fields if f in data}


# ---------- PROFILES ----------

def get_profile(user_id: str, sb: Optional[Client] = None) -> Optional[Dict[str, Any]]:
    sb = _client(sb)
    user_id = _sid(user_id)
    if not user_id:
        return None
    return first_row(table(sb, "profiles").select("*").eq("user_id", user_id))


def ensure_profile(user_id: str, email: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    """
    Ensures a profiles row exists for this Supabase auth user id.
    Tries the caller's client first and falls back to the service role
    (new users can hit RLS before their first row exists).
    """
    if not user_id:
        raise RuntimeError("Missing auth user id. Refusing to map user.")

    email = (email or "").strip().lower()
    sb = _client(sb)

    row = get_profile(user_id, sb=sb)
    if row:
        return row

    payload = {
        "user_id": user_id,
        "email": email,
        "display_name": email.split("@")[0] if email else None,
        "is_active": True,
    }

    try:
        return insert_row("profiles", payload, sb=sb)
    except Exception as e:
        print(f"[db.ensure_profile] anon insert failed, retrying with service role: {e!r}")

    return insert_row("profiles", payload, sb=get_supabase_admin())


def update_display_name(user_id: str, display_name: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    profile = get_profile(user_id, sb=sb)
    if not profile:
        raise NotFoundError("Profile not found.")

    res = _execute_with_retry(
        table(sb, "profiles")
        .update({"display_name": display_name, "updated_at": _now_iso()})
        .eq("user_id", _sid(user_id))
    )
    rows = res.data or []
    return rows[0] if rows else profile
