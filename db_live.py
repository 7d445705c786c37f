# db_live.py — live (active) session: event log writes, replayed state, tablemates
#
# Exactly one active session per user. Every action appends an event with
# sequence = last + 1; the current stack / timer are never stored, they are
# replayed from the log by live_session.replay_events().

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client

import live_session as ls
from db import (
    _client,
    _execute_with_retry,
    _now_iso,
    _sid,
    fetch_owned,
    first_row,
    insert_row,
    not_deleted,
    select_rows,
    soft_delete,
    table,
    update_row,
)
from db_players import create_player
from db_stores import list_blind_levels
from errors import ConflictError, NotFoundError, ValidationError

ACTIVE_NOT_FOUND = "No active session found."
EVENT_NOT_FOUND = "Event not found."
TABLEMATE_NOT_FOUND = "Tablemate not found."


def _iso(value) -> str:
    if value is None:
        return _now_iso()
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


# ---------- session lookup ----------

def _active_session(user_id: str, session_id: str, sb: Optional[Client]) -> Dict[str, Any]:
    try:
        return fetch_owned(
            "poker_sessions", session_id, user_id, ACTIVE_NOT_FOUND, sb=sb, filters={"is_active": True}
        )
    except NotFoundError:
        raise NotFoundError(ACTIVE_NOT_FOUND)


def find_active_session(user_id: str, sb: Optional[Client] = None) -> Optional[Dict[str, Any]]:
    sb = _client(sb)
    return first_row(
        not_deleted(table(sb, "poker_sessions").select("*").eq("user_id", _sid(user_id)).eq("is_active", True))
    )


def list_events(user_id: str, session_id: str, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    sb = _client(sb)
    fetch_owned("poker_sessions", session_id, user_id, "Session not found.", sb=sb)
    return select_rows(
        table(sb, "session_events").select("*").eq("session_id", _sid(session_id)).order("sequence")
    )


def _append_event(
    sb: Client,
    user_id: str,
    session_id: str,
    event_type: str,
    event_data: Optional[Dict[str, Any]] = None,
    recorded_at=None,
    sequence: Optional[int] = None,
) -> Dict[str, Any]:
    if sequence is None:
        last = first_row(
            table(sb, "session_events")
            .select("sequence")
            .eq("session_id", _sid(session_id))
            .order("sequence", desc=True)
        )
        sequence = int(last["sequence"]) + 1 if last else 1

    return insert_row(
        "session_events",
        {
            "session_id": _sid(session_id),
            "user_id": _sid(user_id),
            "event_type": event_type,
            "event_data": event_data or {},
            "sequence": sequence,
            "recorded_at": _iso(recorded_at),
        },
        sb=sb,
    )


# ---------- lifecycle ----------

def start_session(user_id: str, data: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    """
    Opens a new active session. Writes session_start (seq 1) and, when an
    initial chip stack is given, a stack_update (seq 2).
    """
    sb = _client(sb)
    if find_active_session(user_id, sb=sb):
        raise ConflictError("An active session already exists.")

    now = _now_iso()
    session = insert_row(
        "poker_sessions",
        {
            "user_id": _sid(user_id),
            "store_id": data.get("store_id"),
            "game_type": data.get("game_type"),
            "cash_game_id": data.get("cash_game_id"),
            "tournament_id": data.get("tournament_id"),
            "is_active": True,
            "start_time": now,
            "buy_in": int(data["buy_in"]),
            "timer_started_at": data.get("timer_started_at"),
        },
        sb=sb,
    )

    start_event = _append_event(sb, user_id, session["id"], ls.SESSION_START, {}, now, sequence=1)
    if data.get("initial_stack") is not None:
        _append_event(sb, user_id, session["id"], ls.STACK_UPDATE, {"amount": int(data["initial_stack"])}, now, sequence=2)

    return {"session_id": session["id"], "event_id": start_event.get("id"), "start_time": now, "session": session}


def end_session(
    user_id: str,
    session_id: str,
    cash_out: int,
    recorded_at=None,
    final_position: Optional[int] = None,
    sb: Optional[Client] = None,
) -> Dict[str, Any]:
    sb = _client(sb)
    session = _active_session(user_id, session_id, sb)
    at = _iso(recorded_at)

    event = _append_event(sb, user_id, session_id, ls.SESSION_END, {"cashOut": int(cash_out)}, at)
    updated = update_row(
        "poker_sessions",
        session_id,
        {"is_active": False, "end_time": at, "cash_out": int(cash_out), "final_position": final_position},
        sb=sb,
    )
    return {
        "session_id": session_id,
        "event_id": event.get("id"),
        "end_time": at,
        "profit_loss": int(cash_out) - int(session.get("buy_in") or 0),
        "session": updated or session,
    }


def pause_session(user_id: str, session_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    _active_session(user_id, session_id, sb)
    state = ls.replay_events(0, list_events(user_id, session_id, sb=sb))
    if state.is_paused:
        raise ValidationError("Session is already paused.")
    return _append_event(sb, user_id, session_id, ls.SESSION_PAUSE)


def resume_session(user_id: str, session_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    _active_session(user_id, session_id, sb)
    state = ls.replay_events(0, list_events(user_id, session_id, sb=sb))
    if not state.is_paused:
        raise ValidationError("Session is not paused.")
    return _append_event(sb, user_id, session_id, ls.SESSION_RESUME)


# ---------- recording ----------

def update_stack(user_id: str, session_id: str, amount: int, recorded_at=None, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    _active_session(user_id, session_id, sb)
    return _append_event(sb, user_id, session_id, ls.STACK_UPDATE, {"amount": int(amount)}, recorded_at)


def _record_chip_purchase(
    kind: str,
    user_id: str,
    session_id: str,
    cost: int,
    chips: Optional[int],
    recorded_at,
    sb: Optional[Client],
) -> Dict[str, Any]:
    sb = _client(sb)
    session = _active_session(user_id, session_id, sb)

    data: Dict[str, Any] = {"amount": int(cost), "cost": int(cost)}
    if chips is not None:
        data["chips"] = int(chips)

    event = _append_event(sb, user_id, session_id, kind, data, recorded_at)
    new_total = int(session.get("buy_in") or 0) + int(cost)
    update_row("poker_sessions", session_id, {"buy_in": new_total}, sb=sb)
    return {**event, "new_buy_in_total": new_total}


def record_rebuy(user_id: str, session_id: str, cost: int, chips: Optional[int] = None, recorded_at=None, sb: Optional[Client] = None) -> Dict[str, Any]:
    return _record_chip_purchase(ls.REBUY, user_id, session_id, cost, chips, recorded_at, sb)


def record_addon(user_id: str, session_id: str, cost: int, chips: Optional[int] = None, recorded_at=None, sb: Optional[Client] = None) -> Dict[str, Any]:
    return _record_chip_purchase(ls.ADDON, user_id, session_id, cost, chips, recorded_at, sb)


def record_hand_complete(user_id: str, session_id: str, position: Optional[str] = None, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    _active_session(user_id, session_id, sb)
    return _append_event(sb, user_id, session_id, ls.HAND_COMPLETE, {"position": position} if position else {})


def delete_latest_hand_complete(user_id: str, session_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    """Hand counter '-1'."""
    sb = _client(sb)
    _active_session(user_id, session_id, sb)
    latest = first_row(
        table(sb, "session_events")
        .select("*")
        .eq("session_id", _sid(session_id))
        .eq("event_type", ls.HAND_COMPLETE)
        .order("sequence", desc=True)
    )
    if not latest:
        raise NotFoundError("No hand to remove.")
    _execute_with_retry(table(sb, "session_events").delete().eq("id", latest["id"]))
    return latest


def record_hands_passed(user_id: str, session_id: str, count: int, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    _active_session(user_id, session_id, sb)
    return _append_event(sb, user_id, session_id, ls.HANDS_PASSED, {"count": int(count)})


def seat_player(
    user_id: str,
    session_id: str,
    seat_number: int,
    player_name: str,
    player_id: Optional[str] = None,
    sb: Optional[Client] = None,
) -> Dict[str, Any]:
    sb = _client(sb)
    _active_session(user_id, session_id, sb)
    data = {"seatNumber": int(seat_number), "playerName": player_name}
    if player_id:
        data["playerId"] = player_id
    return _append_event(sb, user_id, session_id, ls.PLAYER_SEATED, data)


def get_active_session(user_id: str, now: Optional[datetime] = None, sb: Optional[Client] = None) -> Optional[Dict[str, Any]]:
    """Active session + store + game + events + replayed LiveState, or None."""
    sb = _client(sb)
    session = find_active_session(user_id, sb=sb)
    if not session:
        return None

    events = select_rows(
        table(sb, "session_events").select("*").eq("session_id", _sid(session["id"])).order("sequence")
    )
    state = ls.replay_events(
        session.get("buy_in") or 0,
        events,
        now or datetime.now(timezone.utc),
        start_time=session.get("start_time"),
    )

    for key, name in (("store", "stores"), ("cash_game", "cash_games"), ("tournament", "tournaments")):
        ref = session.get(f"{key}_id")
        session[key] = first_row(table(sb, name).select("*").eq("id", _sid(ref))) if ref else None
    if session.get("tournament"):
        session["tournament"]["blind_levels"] = list_blind_levels(session["tournament"]["id"], sb=sb)

    session["all_in_records"] = select_rows(
        not_deleted(table(sb, "all_in_records").select("*").eq("session_id", _sid(session["id"])))
        .order("recorded_at")
    )
    session["events"] = events
    session["state"] = state
    return session


# ---------- event edits ----------

def _editable_event(user_id: str, event_id: str, sb: Client):
    event = first_row(
        table(sb, "session_events").select("*").eq("id", _sid(event_id)).eq("user_id", _sid(user_id))
    )
    if not event:
        raise NotFoundError(EVENT_NOT_FOUND)
    if event.get("event_type") in ls.LOCKED_EVENT_TYPES:
        raise ValidationError("This event cannot be changed.")

    session = first_row(
        not_deleted(
            table(sb, "poker_sessions")
            .select("*")
            .eq("id", _sid(event["session_id"]))
            .eq("user_id", _sid(user_id))
            .eq("is_active", True)
        )
    )
    if not session:
        raise ValidationError("Events of a finished session cannot be changed.")
    return event, session


def delete_event(user_id: str, event_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    """
    Removes one event. A pause and its resume go together; deleting a
    rebuy/addon takes its cost back out of the session buy-in.
    """
    sb = _client(sb)
    event, session = _editable_event(user_id, event_id, sb)

    if event.get("event_type") in ls.BUY_IN_EVENT_TYPES:
        new_total = int(session.get("buy_in") or 0) - ls.event_cost(event)
        update_row("poker_sessions", session["id"], {"buy_in": new_total}, sb=sb)

    deleted = [str(event["id"])]
    partner = ls.paired_event_id(list_events(user_id, session["id"], sb=sb), event)
    if partner:
        deleted.append(partner)

    for eid in deleted:
        _execute_with_retry(table(sb, "session_events").delete().eq("id", eid))

    return {"session_id": session["id"], "deleted_event_ids": deleted}


def update_event(
    user_id: str,
    event_id: str,
    amount: Optional[int] = None,
    recorded_at=None,
    now: Optional[datetime] = None,
    sb: Optional[Client] = None,
) -> Dict[str, Any]:
    """Edit the amount (stack/rebuy/addon) and/or time of an event."""
    sb = _client(sb)
    event, session = _editable_event(user_id, event_id, sb)
    changes: Dict[str, Any] = {}

    if amount is not None:
        if event.get("event_type") not in ls.AMOUNT_EDITABLE_TYPES:
            raise ValidationError("The amount of this event cannot be changed.")
        data = dict(event.get("event_data") or {})
        old_cost = ls.event_cost(event)
        data["amount"] = int(amount)
        if event.get("event_type") in ls.BUY_IN_EVENT_TYPES:
            data["cost"] = int(amount)
            new_total = int(session.get("buy_in") or 0) + int(amount) - old_cost
            update_row("poker_sessions", session["id"], {"buy_in": new_total}, sb=sb)
        changes["event_data"] = data

    if recorded_at is not None:
        events = list_events(user_id, session["id"], sb=sb)
        changes["recorded_at"] = ls.validate_event_time(events, event["id"], recorded_at, now).isoformat()

    if not changes:
        return event

    res = _execute_with_retry(
        table(sb, "session_events").update(changes).eq("id", _sid(event_id))
    )
    rows = res.data or []
    return rows[0] if rows else {**event, **changes}


def update_event_time(user_id: str, event_id: str, recorded_at, now: Optional[datetime] = None, sb: Optional[Client] = None) -> Dict[str, Any]:
    return update_event(user_id, event_id, recorded_at=recorded_at, now=now, sb=sb)


# ============================================================
#  TABLEMATES
# ============================================================

TABLEMATE_FIELDS = ("nickname", "seat_number", "session_notes", "player_id")


def list_tablemates(user_id: str, session_id: str, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    sb = _client(sb)
    fetch_owned("poker_sessions", session_id, user_id, "Session not found.", sb=sb)
    return select_rows(
        not_deleted(table(sb, "session_tablemates").select("*").eq("session_id", _sid(session_id)))
        .order("seat_number")
        .order("created_at")
    )


def add_tablemate(user_id: str, session_id: str, data: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    fetch_owned("poker_sessions", session_id, user_id, "Session not found.", sb=sb)
    payload = {k: v for k, v in data.items() if k in TABLEMATE_FIELDS}
    payload.update({"user_id": _sid(user_id), "session_id": _sid(session_id)})
    return insert_row("session_tablemates", payload, sb=sb)


def update_tablemate(user_id: str, tablemate_id: str, changes: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    fetch_owned("session_tablemates", tablemate_id, user_id, TABLEMATE_NOT_FOUND, sb=sb)
    allowed = {k: v for k, v in changes.items() if k in TABLEMATE_FIELDS}
    return update_row("session_tablemates", tablemate_id, allowed, sb=sb)


def delete_tablemate(user_id: str, tablemate_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    row = fetch_owned("session_tablemates", tablemate_id, user_id, TABLEMATE_NOT_FOUND, sb=sb)
    soft_delete("session_tablemates", tablemate_id, sb=sb)
    return row


def link_tablemate(user_id: str, tablemate_id: str, player_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    fetch_owned("session_tablemates", tablemate_id, user_id, TABLEMATE_NOT_FOUND, sb=sb)
    fetch_owned("players", player_id, user_id, "Player not found.", sb=sb)
    return update_row("session_tablemates", tablemate_id, {"player_id": _sid(player_id)}, sb=sb)


def convert_tablemate_to_player(
    user_id: str,
    tablemate_id: str,
    player_name: str,
    general_notes: Optional[str] = None,
    sb: Optional[Client] = None,
) -> Dict[str, Any]:
    """Create a permanent player from a tablemate and link them."""
    sb = _client(sb)
    fetch_owned("session_tablemates", tablemate_id, user_id, TABLEMATE_NOT_FOUND, sb=sb)
    player = create_player(user_id, player_name, general_notes, sb=sb)
    update_row("session_tablemates", tablemate_id, {"player_id": player["id"]}, sb=sb)
    return player
