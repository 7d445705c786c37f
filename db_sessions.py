# db_sessions.py — archived (completed) poker sessions

from __future__ import annotations

from typing import Any, Dict, List, Optional

from supabase import Client

from all_in import calculate_summary
from db import (
    _client,
    _execute_with_retry,
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

SESSION_NOT_FOUND = "Session not found."

SESSION_FIELDS = (
    "store_id",
    "game_type",
    "cash_game_id",
    "tournament_id",
    "start_time",
    "end_time",
    "buy_in",
    "cash_out",
    "notes",
)


def profit_loss(session: Dict[str, Any]) -> Optional[int]:
    """cash_out - buy_in, or None while there is no cash-out."""
    if session.get("cash_out") is None:
        return None
    return int(session["cash_out"]) - int(session.get("buy_in") or 0)


def _by_id(rows: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    return {str(r["id"]): r for r in rows if r.get("id")}


def _attach_relations(sb: Client, user_id: str, sessions: List[Dict[str, Any]]) -> None:
    """store / cash_game / tournament (each with its currency) + all-in records."""
    if not sessions:
        return

    def _fetch(name: str, ids) -> Dict[str, Dict[str, Any]]:
        ids = sorted({str(i) for i in ids if i})
        if not ids:
            return {}
        return _by_id(select_rows(table(sb, name).select("*").in_("id", ids)))

    stores = _fetch("stores", (s.get("store_id") for s in sessions))
    cash_games = _fetch("cash_games", (s.get("cash_game_id") for s in sessions))
    tournaments = _fetch("tournaments", (s.get("tournament_id") for s in sessions))
    currencies = _fetch(
        "currencies",
        [g.get("currency_id") for g in list(cash_games.values()) + list(tournaments.values())],
    )

    session_ids = [str(s["id"]) for s in sessions]
    all_ins: Dict[str, List[Dict[str, Any]]] = {}
    for r in select_rows(
        not_deleted(table(sb, "all_in_records").select("*").in_("session_id", session_ids))
        .order("recorded_at", desc=True)
    ):
        all_ins.setdefault(str(r["session_id"]), []).append(r)

    for s in sessions:
        s["store"] = stores.get(str(s.get("store_id")))
        for key, pool in (("cash_game", cash_games), ("tournament", tournaments)):
            game = pool.get(str(s.get(f"{key}_id")))
            if game is not None:
                game = {**game, "currency": currencies.get(str(game.get("currency_id")))}
            s[key] = game
        s["all_in_records"] = all_ins.get(str(s["id"]), [])
        s["profit_loss"] = profit_loss(s)
        s["all_in_summary"] = calculate_summary(s["all_in_records"])


def session_currency_id(session: Dict[str, Any]) -> Optional[str]:
    """Currency of the game a session was played in (cash game first)."""
    for key in ("cash_game", "tournament"):
        game = session.get(key) or {}
        if game.get("currency_id"):
            return str(game["currency_id"])
    return None


def lookup_session_currency_id(session: Dict[str, Any], sb: Optional[Client] = None) -> Optional[str]:
    """Same as session_currency_id for a bare row (ids only)."""
    sb = _client(sb)
    for key, name in (("cash_game_id", "cash_games"), ("tournament_id", "tournaments")):
        if session.get(key):
            game = first_row(table(sb, name).select("currency_id").eq("id", _sid(session[key])))
            if game and game.get("currency_id"):
                return str(game["currency_id"])
    return None


def list_sessions(
    user_id: str,
    store_id: Optional[str] = None,
    game_type: Optional[str] = None,
    currency_id: Optional[str] = None,
    start_from=None,
    start_to=None,
    limit: Optional[int] = 20,
    offset: int = 0,
    sb: Optional[Client] = None,
) -> Dict[str, Any]:
    """
    Completed sessions, newest start first.
    limit=None fetches everything (used by charts).
    """
    sb = _client(sb)

    def _base(select: str = "*", count: Optional[str] = None):
        q = table(sb, "poker_sessions").select(select, count=count)
        q = not_deleted(q.eq("user_id", _sid(user_id)).eq("is_active", False))
        if store_id:
            q = q.eq("store_id", _sid(store_id))
        if game_type:
            q = q.eq("game_type", game_type)
        if start_from:
            q = q.gte("start_time", start_from.isoformat() if hasattr(start_from, "isoformat") else start_from)
        if start_to:
            q = q.lt("start_time", start_to.isoformat() if hasattr(start_to, "isoformat") else start_to)
        return q

    rows: List[Dict[str, Any]]
    if currency_id:
        cash_ids = [r["id"] for r in select_rows(table(sb, "cash_games").select("id").eq("currency_id", _sid(currency_id)))]
        tourn_ids = [r["id"] for r in select_rows(table(sb, "tournaments").select("id").eq("currency_id", _sid(currency_id)))]
        if not cash_ids and not tourn_ids:
            return {"sessions": [], "total": 0, "has_more": False}

        merged: Dict[str, Dict[str, Any]] = {}
        for col, ids in (("cash_game_id", cash_ids), ("tournament_id", tourn_ids)):
            if ids:
                merged.update(_by_id(select_rows(_base().in_(col, [str(i) for i in ids]))))
        ordered = sorted(merged.values(), key=lambda r: str(r.get("start_time") or ""), reverse=True)
        total = len(ordered)
        rows = ordered[offset: offset + limit] if limit else ordered[offset:]
    else:
        res = _execute_with_retry(_base("id", count="exact"))
        total = int(res.count) if getattr(res, "count", None) is not None else len(res.data or [])

        q = _base().order("start_time", desc=True)
        if limit:
            q = q.range(offset, offset + limit - 1)
        rows = select_rows(q)

    _attach_relations(sb, user_id, rows)
    return {
        "sessions": rows,
        "total": total,
        "has_more": offset + len(rows) < total,
    }


def get_session(user_id: str, session_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    """Session + store + game + all-ins + events + profit/loss + summary."""
    sb = _client(sb)
    session = fetch_owned("poker_sessions", session_id, user_id, SESSION_NOT_FOUND, sb=sb)
    _attach_relations(sb, user_id, [session])
    session["events"] = select_rows(
        table(sb, "session_events").select("*").eq("session_id", _sid(session_id)).order("sequence")
    )
    return session


def create_archive_session(user_id: str, data: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    payload = {k: v for k, v in data.items() if k in SESSION_FIELDS}
    payload.update({"user_id": _sid(user_id), "is_active": False})
    return insert_row("poker_sessions", payload, sb=sb)


def update_session(user_id: str, session_id: str, changes: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    fetch_owned("poker_sessions", session_id, user_id, SESSION_NOT_FOUND, sb=sb)
    allowed = {k: v for k, v in changes.items() if k in SESSION_FIELDS}
    return update_row("poker_sessions", session_id, allowed, sb=sb)


def delete_session(user_id: str, session_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    existing = fetch_owned("poker_sessions", session_id, user_id, SESSION_NOT_FOUND, sb=sb)
    soft_delete("poker_sessions", session_id, sb=sb)
    return existing
