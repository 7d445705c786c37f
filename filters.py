# filters.py — session / player list filters (client side, after the cached load)

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Tuple

PERIOD_PRESETS = ("all", "thisMonth", "lastMonth", "thisYear", "custom")
PERIOD_LABELS = {
    "all": "All time",
    "thisMonth": "This month",
    "lastMonth": "Last month",
    "thisYear": "This year",
    "custom": "Custom range",
}
GAME_TYPES = ("all", "cash", "tournament")


@dataclass
class SessionFilter:
    game_type: str = "all"
    period_preset: str = "all"
    custom_range: Tuple[Optional[date], Optional[date]] = (None, None)
    store_id: Optional[str] = None
    currency_id: Optional[str] = None


@dataclass
class PlayerFilter:
    search: str = ""
    tag_ids: List[str] = field(default_factory=list)


def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        v = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            return datetime.fromisoformat(v).date()
        except ValueError:
            return None
    return None


def date_range_for_preset(preset: str, today: Optional[date] = None) -> Tuple[Optional[date], Optional[date]]:
    """
    [start, end) for a preset. Open on both sides for 'all' and unknown presets.
    """
    today = today or date.today()
    y, m = today.year, today.month

    if preset == "thisMonth":
        start = date(y, m, 1)
        end = date(y + 1, 1, 1) if m == 12 else date(y, m + 1, 1)
        return start, end
    if preset == "lastMonth":
        end = date(y, m, 1)
        start = date(y - 1, 12, 1) if m == 1 else date(y, m - 1, 1)
        return start, end
    if preset == "thisYear":
        return date(y, 1, 1), date(y + 1, 1, 1)
    return None, None


def resolve_range(flt: SessionFilter, today: Optional[date] = None) -> Tuple[Optional[date], Optional[date]]:
    if flt.period_preset == "custom":
        start, end = flt.custom_range or (None, None)
        # inclusive end date
        return start, (end + timedelta(days=1)) if end else None
    if flt.period_preset == "all":
        return None, None
    return date_range_for_preset(flt.period_preset, today)


def _session_currency_ids(session: Mapping[str, Any]) -> set:
    ids = set()
    for key in ("cash_game", "tournament"):
        game = session.get(key) or {}
        cid = game.get("currency_id") or (game.get("currency") or {}).get("id")
        if cid:
            ids.add(str(cid))
    return ids


def filter_sessions(
    sessions: Iterable[Mapping[str, Any]],
    flt: SessionFilter,
    today: Optional[date] = None,
) -> List[Mapping[str, Any]]:
    start, end = resolve_range(flt, today)
    out = []
    for s in sessions or []:
        if flt.game_type != "all" and s.get("game_type") != flt.game_type:
            continue

        started = _as_date(s.get("start_time"))
        if start and (started is None or started < start):
            continue
        if end and (started is None or started >= end):
            continue

        if flt.store_id and str(s.get("store_id") or (s.get("store") or {}).get("id") or "") != str(flt.store_id):
            continue

        if flt.currency_id and str(flt.currency_id) not in _session_currency_ids(s):
            continue

        out.append(s)
    return out


def has_active_session_filters(flt: SessionFilter) -> bool:
    return (
        flt.game_type != "all"
        or flt.period_preset != "all"
        or flt.currency_id is not None
        or flt.store_id is not None
    )


def filter_players(
    players: Iterable[Mapping[str, Any]],
    search: str = "",
    tag_ids: Sequence[str] = (),
) -> List[Mapping[str, Any]]:
    """Case-insensitive name match; player must carry ALL selected tags."""
    needle = (search or "").lower()
    wanted = {str(t) for t in tag_ids or []}
    out = []
    for p in players or []:
        if needle and needle not in (p.get("name") or "").lower():
            continue
        if wanted:
            have = {str(t.get("id")) for t in p.get("tags") or []}
            if not wanted.issubset(have):
                continue
        out.append(p)
    return out


def has_active_player_filters(flt: PlayerFilter) -> bool:
    return flt.search != "" or len(flt.tag_ids) > 0


def session_filter_to_query(flt: SessionFilter, today: Optional[date] = None) -> Dict[str, Any]:
    """Same filter expressed as db_sessions.list_sessions keyword args."""
    start, end = resolve_range(flt, today)
    return {
        "game_type": None if flt.game_type == "all" else flt.game_type,
        "store_id": flt.store_id,
        "currency_id": flt.currency_id,
        "start_from": start,
        "start_to": end,
    }


def query_page(state: MutableMapping[str, Any], key: str, query: Mapping[str, Any]) -> int:
    """
    Current page index stored under `key` in `state`.
    Goes back to page 0 whenever `query` differs from the one the page was
    turned on, so a narrower filter never lands past its last page.
    """
    signature = repr(sorted(query.items(), key=lambda kv: kv[0]))
    if state.get(f"{key}_query") != signature:
        state[f"{key}_query"] = signature
        state[key] = 0
    return state.setdefault(key, 0)
