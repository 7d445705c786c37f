# db_stats.py — dashboard profit totals over completed sessions

from typing import Dict, Any, List, Optional
from datetime import datetime, timedelta, timezone

from supabase import Client

from all_in import calculate_summary
from db import _client, _sid, not_deleted, parse_ts, select_rows, table


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _profit(row: Dict[str, Any]) -> int:
    return int(row.get("cash_out") or 0) - int(row.get("buy_in") or 0)


# ---------- Player totals (all currencies) ----------

def get_profit_totals(user_id: str, now: Optional[datetime] = None, sb: Optional[Client] = None) -> Dict[str, Any]:
    """
    Profit / loss across every completed session of this user.

    Source: poker_sessions where is_active = false, cash_out is not null,
    deleted_at is null. Month and week boundaries are calendar based (UTC),
    weeks start on Monday.

    Also reports the all-in EV difference (actual - expected) over the same
    sessions, which is the "luck" figure shown on the dashboard.
    """
    zero = {
        "all_time": 0,
        "month": 0,
        "week": 0,
        "session_count": 0,
        "winning_sessions": 0,
        "win_rate": 0.0,
        "ev_difference": 0.0,
    }

    if not user_id:
        return zero

    sb = _client(sb)
    now = now or _now_utc()

    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    week_start = now.replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=now.weekday())

    try:
        rows = select_rows(
            not_deleted(
                table(sb, "poker_sessions")
                .select("id, buy_in, cash_out, start_time")
                .eq("user_id", _sid(user_id))
                .eq("is_active", False)
            ).not_.is_("cash_out", "null")
        )
    except Exception as e:
        print(f"[db_stats.get_profit_totals] query error: {e!r}")
        return zero

    all_time = month = week = 0
    winning = 0
    for r in rows:
        p = _profit(r)
        all_time += p
        if p > 0:
            winning += 1

        ts = parse_ts(r.get("start_time"))
        if isinstance(ts, datetime):
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=timezone.utc)
            if ts >= month_start:
                month += p
            if ts >= week_start:
                week += p

    ev_difference = 0.0
    session_ids = [str(r["id"]) for r in rows if r.get("id")]
    if session_ids:
        try:
            records = select_rows(
                not_deleted(table(sb, "all_in_records").select("*").in_("session_id", session_ids))
            )
            ev_difference = calculate_summary(records).ev_difference
        except Exception as e:
            print(f"[db_stats.get_profit_totals] all-in query error: {e!r}")

    count = len(rows)
    return {
        "all_time": all_time,
        "month": month,
        "week": week,
        "session_count": count,
        "winning_sessions": winning,
        "win_rate": (winning / count * 100.0) if count else 0.0,
        "ev_difference": float(ev_difference),
    }


# ---------- Cumulative profit series ----------

def get_profit_series(user_id: str, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    """
    [{start_time, profit, cumulative}] oldest first, for the dashboard chart.
    """
    if not user_id:
        return []

    sb = _client(sb)
    try:
        rows = select_rows(
            not_deleted(
                table(sb, "poker_sessions")
                .select("buy_in, cash_out, start_time")
                .eq("user_id", _sid(user_id))
                .eq("is_active", False)
            )
            .not_.is_("cash_out", "null")
            .order("start_time")
        )
    except Exception as e:
        print(f"[db_stats.get_profit_series] query error: {e!r}")
        return []

    out: List[Dict[str, Any]] = []
    running = 0
    for r in rows:
        p = _profit(r)
        running += p
        out.append({"start_time": parse_ts(r.get("start_time")), "profit": p, "cumulative": running})
    return out
