# db_all_in.py — all-in records attached to a session

from __future__ import annotations

from typing import Any, Dict, Optional

from supabase import Client

from all_in import calculate_summary
from db import (
    _client,
    _now_iso,
    _sid,
    fetch_owned,
    insert_row,
    not_deleted,
    select_rows,
    soft_delete,
    table,
    update_row,
)
from db_sessions import SESSION_NOT_FOUND
from errors import ValidationError

ALL_IN_NOT_FOUND = "All-in record not found."
ALL_IN_FIELDS = ("pot_amount", "win_probability", "actual_result", "run_it_times", "wins_in_runout", "recorded_at")


def _owned_session(user_id: str, session_id: str, sb: Optional[Client]) -> Dict[str, Any]:
    return fetch_owned("poker_sessions", session_id, user_id, SESSION_NOT_FOUND, sb=sb)


def list_by_session(user_id: str, session_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    _owned_session(user_id, session_id, sb)
    records = select_rows(
        not_deleted(table(sb, "all_in_records").select("*").eq("session_id", _sid(session_id)))
        .order("recorded_at", desc=True)
    )
    return {"records": records, "summary": calculate_summary(records)}


def create_all_in(user_id: str, session_id: str, data: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    _owned_session(user_id, session_id, sb)
    payload = {k: v for k, v in data.items() if k in ALL_IN_FIELDS}
    payload.setdefault("recorded_at", _now_iso())
    payload.update({"user_id": _sid(user_id), "session_id": _sid(session_id)})
    return insert_row("all_in_records", payload, sb=sb)


def _owned_record(user_id: str, record_id: str, sb: Optional[Client]) -> Dict[str, Any]:
    record = fetch_owned("all_in_records", record_id, user_id, ALL_IN_NOT_FOUND, sb=sb)
    # parent session must still exist
    _owned_session(user_id, record["session_id"], sb)
    return record


def update_all_in(user_id: str, record_id: str, changes: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    record = _owned_record(user_id, record_id, sb)
    allowed = {k: v for k, v in changes.items() if k in ALL_IN_FIELDS}

    # the runout bound applies to the merged row, not just the submitted fields
    times = allowed.get("run_it_times", record.get("run_it_times"))
    wins = allowed.get("wins_in_runout", record.get("wins_in_runout"))
    if times is not None and wins is not None and int(wins) > int(times):
        raise ValidationError("Wins in runout cannot exceed run-it times.")

    return update_row("all_in_records", record_id, allowed, sb=sb)


def delete_all_in(user_id: str, record_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    record = _owned_record(user_id, record_id, sb)
    soft_delete("all_in_records", record_id, sb=sb)
    return record
