# db_stores.py — stores, cash games, tournaments (blind levels + prize structures)

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from supabase import Client

from db import (
    _client,
    _execute_with_retry,
    _sid,
    fetch_owned,
    insert_row,
    not_deleted,
    select_rows,
    soft_delete,
    table,
    update_row,
)
from errors import NotFoundError, ValidationError
from formatting import store_map_url

STORE_NOT_FOUND = "Store not found."
CASH_GAME_NOT_FOUND = "Cash game not found."
TOURNAMENT_NOT_FOUND = "Tournament not found."

STORE_FIELDS = ("name", "address", "latitude", "longitude", "place_id", "custom_map_url", "notes")
CASH_GAME_FIELDS = ("currency_id", "small_blind", "big_blind", "straddle1", "straddle2", "ante", "ante_type", "notes")
TOURNAMENT_FIELDS = ("name", "currency_id", "buy_in", "rake", "starting_stack", "notes")


def _only(changes: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    return {k: v for k, v in changes.items() if k in fields}


def _count(sb: Client, name: str, store_id: str) -> int:
    q = (
        not_deleted(table(sb, name).select("id", count="exact"))
        .eq("store_id", store_id)
        .eq("is_archived", False)
    )
    res = _execute_with_retry(q)
    if getattr(res, "count", None) is not None:
        return int(res.count)
    return len(res.data or [])


def _currency_names(sb: Client, user_id: str) -> Dict[str, str]:
    rows = select_rows(table(sb, "currencies").select("id, name").eq("user_id", _sid(user_id)))
    return {str(r["id"]): r.get("name") for r in rows}


# ============================================================
#  STORES
# ============================================================

def list_stores(user_id: str, include_archived: bool = False, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    """Stores (newest first) with active cash-game / tournament counts."""
    sb = _client(sb)
    q = not_deleted(table(sb, "stores").select("*").eq("user_id", _sid(user_id)))
    if not include_archived:
        q = q.eq("is_archived", False)
    rows = select_rows(q.order("created_at", desc=True))

    return [
        {
            **r,
            "cash_game_count": _count(sb, "cash_games", r["id"]),
            "tournament_count": _count(sb, "tournaments", r["id"]),
        }
        for r in rows
    ]


def get_store(user_id: str, store_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    store = fetch_owned("stores", store_id, user_id, STORE_NOT_FOUND, sb=sb)
    currencies = _currency_names(sb, user_id)

    cash_games = select_rows(
        not_deleted(table(sb, "cash_games").select("*").eq("store_id", _sid(store_id)))
        .order("sort_order")
        .order("created_at", desc=True)
    )
    tournaments = select_rows(
        not_deleted(table(sb, "tournaments").select("*").eq("store_id", _sid(store_id)))
        .order("sort_order")
        .order("created_at", desc=True)
    )

    for g in cash_games:
        g["currency_name"] = currencies.get(str(g.get("currency_id")))
    for t in tournaments:
        t["currency_name"] = currencies.get(str(t.get("currency_id")))
        t["blind_levels"] = list_blind_levels(t["id"], sb=sb)
        t["prize_structures"] = list_prize_structures(t["id"], sb=sb)

    return {
        **store,
        "cash_games": cash_games,
        "tournaments": tournaments,
        "google_maps_url": store_map_url(store),
    }


def create_store(user_id: str, data: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    payload = _only(data, STORE_FIELDS)
    payload.update({"user_id": _sid(user_id), "is_archived": False})
    return insert_row("stores", payload, sb=sb)


def update_store(user_id: str, store_id: str, changes: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    fetch_owned("stores", store_id, user_id, STORE_NOT_FOUND, sb=sb)
    return update_row("stores", store_id, _only(changes, STORE_FIELDS), sb=sb)


def archive_store(user_id: str, store_id: str, is_archived: bool = True, sb: Optional[Client] = None) -> Dict[str, Any]:
    fetch_owned("stores", store_id, user_id, STORE_NOT_FOUND, sb=sb)
    return update_row("stores", store_id, {"is_archived": bool(is_archived)}, sb=sb)


def delete_store(user_id: str, store_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    fetch_owned("stores", store_id, user_id, STORE_NOT_FOUND, sb=sb)
    return soft_delete("stores", store_id, sb=sb)


def _owned_store_for_create(user_id: str, store_id: str, sb: Optional[Client]) -> Dict[str, Any]:
    # creating a game under someone else's store is a bad request, not a 404
    try:
        return fetch_owned("stores", store_id, user_id, STORE_NOT_FOUND, sb=sb)
    except NotFoundError:
        raise ValidationError("The selected store does not exist.")


# ============================================================
#  CASH GAMES
# ============================================================

def _check_blinds(game: Dict[str, Any]) -> None:
    """Blind ladder rules on a full (stored + changed) cash game row."""
    sb_amt = int(game.get("small_blind") or 0)
    bb_amt = int(game.get("big_blind") or 0)
    s1 = int(game.get("straddle1") or 0)
    s2 = int(game.get("straddle2") or 0)
    if bb_amt <= sb_amt:
        raise ValidationError("BB must be larger than SB.")
    if s1 and s1 <= bb_amt:
        raise ValidationError("Straddle 1 must be larger than BB.")
    if s2 and (not s1 or s2 <= s1):
        raise ValidationError("Straddle 2 must be larger than straddle 1.")
    if game.get("ante") and not game.get("ante_type"):
        raise ValidationError("Choose an ante type when setting an ante.")


def list_cash_games(user_id: str, store_id: str, include_archived: bool = False, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    sb = _client(sb)
    fetch_owned("stores", store_id, user_id, STORE_NOT_FOUND, sb=sb)
    q = not_deleted(table(sb, "cash_games").select("*").eq("store_id", _sid(store_id)))
    if not include_archived:
        q = q.eq("is_archived", False)
    rows = select_rows(q.order("sort_order").order("created_at", desc=True))
    currencies = _currency_names(sb, user_id)
    return [{**r, "currency_name": currencies.get(str(r.get("currency_id")))} for r in rows]


def get_cash_game(user_id: str, cash_game_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    return fetch_owned("cash_games", cash_game_id, user_id, CASH_GAME_NOT_FOUND, sb=sb)


def create_cash_game(user_id: str, store_id: str, data: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    _owned_store_for_create(user_id, store_id, sb)
    payload = _only(data, CASH_GAME_FIELDS)
    payload.update({"user_id": _sid(user_id), "store_id": _sid(store_id), "is_archived": False})
    return insert_row("cash_games", payload, sb=sb)


def update_cash_game(user_id: str, cash_game_id: str, changes: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    existing = get_cash_game(user_id, cash_game_id, sb=sb)
    _check_blinds({**existing, **changes})
    return update_row("cash_games", cash_game_id, _only(changes, CASH_GAME_FIELDS), sb=sb)


def archive_cash_game(user_id: str, cash_game_id: str, is_archived: bool = True, sb: Optional[Client] = None) -> Dict[str, Any]:
    get_cash_game(user_id, cash_game_id, sb=sb)
    return update_row("cash_games", cash_game_id, {"is_archived": bool(is_archived)}, sb=sb)


def delete_cash_game(user_id: str, cash_game_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    existing = get_cash_game(user_id, cash_game_id, sb=sb)
    soft_delete("cash_games", cash_game_id, sb=sb)
    return existing


# ============================================================
#  TOURNAMENTS
# ============================================================

def list_blind_levels(tournament_id: str, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    sb = _client(sb)
    return select_rows(
        table(sb, "tournament_blind_levels").select("*").eq("tournament_id", _sid(tournament_id)).order("level")
    )


def list_prize_structures(tournament_id: str, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    """structure -> prize_levels -> prize_items, each ordered by sort_order."""
    sb = _client(sb)
    structures = select_rows(
        table(sb, "tournament_prize_structures")
        .select("*")
        .eq("tournament_id", _sid(tournament_id))
        .order("sort_order")
    )
    for s in structures:
        levels = select_rows(
            table(sb, "tournament_prize_levels").select("*").eq("prize_structure_id", s["id"]).order("sort_order")
        )
        for lvl in levels:
            lvl["prize_items"] = select_rows(
                table(sb, "tournament_prize_items").select("*").eq("prize_level_id", lvl["id"]).order("sort_order")
            )
        s["prize_levels"] = levels
    return structures


def list_tournaments(user_id: str, store_id: str, include_archived: bool = False, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    sb = _client(sb)
    fetch_owned("stores", store_id, user_id, STORE_NOT_FOUND, sb=sb)
    q = not_deleted(table(sb, "tournaments").select("*").eq("store_id", _sid(store_id)))
    if not include_archived:
        q = q.eq("is_archived", False)
    rows = select_rows(q.order("created_at", desc=True))
    currencies = _currency_names(sb, user_id)
    return [{**r, "currency_name": currencies.get(str(r.get("currency_id")))} for r in rows]


def get_tournament(user_id: str, tournament_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    t = fetch_owned("tournaments", tournament_id, user_id, TOURNAMENT_NOT_FOUND, sb=sb)
    return {
        **t,
        "blind_levels": list_blind_levels(tournament_id, sb=sb),
        "prize_structures": list_prize_structures(tournament_id, sb=sb),
    }


def _insert_blind_levels(tournament_id: str, levels: List[Dict[str, Any]], sb: Client) -> None:
    if not levels:
        return
    rows = [
        {
            "tournament_id": _sid(tournament_id),
            "level": lvl["level"],
            "is_break": bool(lvl.get("is_break", False)),
            "small_blind": lvl.get("small_blind"),
            "big_blind": lvl.get("big_blind"),
            "ante": lvl.get("ante"),
            "duration_minutes": lvl["duration_minutes"],
        }
        for lvl in levels
    ]
    _execute_with_retry(table(sb, "tournament_blind_levels").insert(rows))


def _insert_prize_structures(tournament_id: str, structures: List[Dict[str, Any]], sb: Client) -> None:
    for s_idx, structure in enumerate(structures or []):
        new_structure = insert_row(
            "tournament_prize_structures",
            {
                "tournament_id": _sid(tournament_id),
                "min_entrants": structure["min_entrants"],
                "max_entrants": structure.get("max_entrants"),
                "sort_order": structure.get("sort_order") if structure.get("sort_order") is not None else s_idx,
            },
            sb=sb,
        )
        for l_idx, level in enumerate(structure.get("prize_levels") or []):
            new_level = insert_row(
                "tournament_prize_levels",
                {
                    "prize_structure_id": new_structure["id"],
                    "min_position": level["min_position"],
                    "max_position": level["max_position"],
                    "sort_order": level.get("sort_order") if level.get("sort_order") is not None else l_idx,
                },
                sb=sb,
            )
            items = [
                {
                    "prize_level_id": new_level["id"],
                    "prize_type": item["prize_type"],
                    "percentage": item.get("percentage"),
                    "fixed_amount": item.get("fixed_amount"),
                    "custom_prize_label": item.get("custom_prize_label"),
                    "custom_prize_value": item.get("custom_prize_value"),
                    "sort_order": item.get("sort_order") if item.get("sort_order") is not None else i_idx,
                }
                for i_idx, item in enumerate(level.get("prize_items") or [])
            ]
            if items:
                _execute_with_retry(table(sb, "tournament_prize_items").insert(items))


def create_tournament(user_id: str, store_id: str, data: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    """Creates the tournament plus optional blind levels / prize structures."""
    sb = _client(sb)
    _owned_store_for_create(user_id, store_id, sb)

    payload = _only(data, TOURNAMENT_FIELDS)
    payload.update({"user_id": _sid(user_id), "store_id": _sid(store_id), "is_archived": False})
    tournament = insert_row("tournaments", payload, sb=sb)

    _insert_prize_structures(tournament["id"], data.get("prize_structures") or [], sb)
    _insert_blind_levels(tournament["id"], data.get("blind_levels") or [], sb)
    return tournament


def update_tournament(user_id: str, tournament_id: str, changes: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    fetch_owned("tournaments", tournament_id, user_id, TOURNAMENT_NOT_FOUND, sb=sb)
    return update_row("tournaments", tournament_id, _only(changes, TOURNAMENT_FIELDS), sb=sb)


def archive_tournament(user_id: str, tournament_id: str, is_archived: bool = True, sb: Optional[Client] = None) -> Dict[str, Any]:
    fetch_owned("tournaments", tournament_id, user_id, TOURNAMENT_NOT_FOUND, sb=sb)
    return update_row("tournaments", tournament_id, {"is_archived": bool(is_archived)}, sb=sb)


def delete_tournament(user_id: str, tournament_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    existing = fetch_owned("tournaments", tournament_id, user_id, TOURNAMENT_NOT_FOUND, sb=sb)
    soft_delete("tournaments", tournament_id, sb=sb)
    return existing


def set_blind_levels(user_id: str, tournament_id: str, levels: List[Dict[str, Any]], sb: Optional[Client] = None) -> Dict[str, Any]:
    """Replace every blind level of the tournament."""
    sb = _client(sb)
    tournament = fetch_owned("tournaments", tournament_id, user_id, TOURNAMENT_NOT_FOUND, sb=sb)
    _execute_with_retry(
        table(sb, "tournament_blind_levels").delete().eq("tournament_id", _sid(tournament_id))
    )
    _insert_blind_levels(tournament_id, levels, sb)
    return tournament


def set_prize_structures(user_id: str, tournament_id: str, structures: List[Dict[str, Any]], sb: Optional[Client] = None) -> Dict[str, Any]:
    """Replace the structure -> level -> item tree (levels/items cascade in the DB)."""
    sb = _client(sb)
    tournament = fetch_owned("tournaments", tournament_id, user_id, TOURNAMENT_NOT_FOUND, sb=sb)
    _execute_with_retry(
        table(sb, "tournament_prize_structures").delete().eq("tournament_id", _sid(tournament_id))
    )
    _insert_prize_structures(tournament_id, structures, sb)
    return tournament


def reorder_tournaments(
    user_id: str,
    store_id: str,
    items: List[Tuple[str, int]],
    sb: Optional[Client] = None,
) -> int:
    """Apply (tournament_id, sort_order) pairs within one store. Returns rows touched."""
    sb = _client(sb)
    fetch_owned("stores", store_id, user_id, STORE_NOT_FOUND, sb=sb)
    touched = 0
    for tournament_id, sort_order in items:
        res = _execute_with_retry(
            table(sb, "tournaments")
            .update({"sort_order": int(sort_order)})
            .eq("id", _sid(tournament_id))
            .eq("store_id", _sid(store_id))
            .eq("user_id", _sid(user_id))
        )
        touched += len(res.data or [])
    return touched
