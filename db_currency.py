# db_currency.py — currencies, bonus / purchase transactions, balances

from __future__ import annotations

from typing import Any, Dict, List, Optional

from supabase import Client

from balance import BalanceBreakdown, calculate_balance
from db import (
    _client,
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

CURRENCY_NOT_FOUND = "Currency not found."
BONUS_NOT_FOUND = "Bonus not found."
PURCHASE_NOT_FOUND = "Purchase not found."


# ---------- balance ----------

def _game_ids(sb: Client, name: str, currency_id: str) -> List[str]:
    rows = select_rows(not_deleted(table(sb, name).select("id").eq("currency_id", currency_id)))
    return [str(r["id"]) for r in rows if r.get("id")]


def currency_sessions(currency_id: str, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    """
    Completed, non-deleted sessions played in a cash game or tournament
    that uses this currency. Newest first.
    """
    sb = _client(sb)
    cash_game_ids = _game_ids(sb, "cash_games", currency_id)
    tournament_ids = _game_ids(sb, "tournaments", currency_id)

    by_id: Dict[str, Dict[str, Any]] = {}
    for col, ids in (("cash_game_id", cash_game_ids), ("tournament_id", tournament_ids)):
        if not ids:
            continue
        q = (
            not_deleted(table(sb, "poker_sessions").select("*"))
            .in_(col, ids)
            .not_.is_("cash_out", "null")
        )
        for row in select_rows(q):
            by_id[str(row["id"])] = row

    return sorted(by_id.values(), key=lambda r: str(r.get("start_time") or ""), reverse=True)


def calculate_currency_balance(currency_id: str, sb: Optional[Client] = None) -> BalanceBreakdown:
    """
    initial + bonuses + purchases - buy-ins + cash-outs.
    Unknown currency => all zeros.
    """
    sb = _client(sb)
    currency_id = _sid(currency_id)
    if not currency_id:
        return BalanceBreakdown()

    currency = first_row(table(sb, "currencies").select("id, initial_balance").eq("id", currency_id))
    if not currency:
        return BalanceBreakdown()

    bonuses = select_rows(
        not_deleted(table(sb, "bonus_transactions").select("amount").eq("currency_id", currency_id))
    )
    purchases = select_rows(
        not_deleted(table(sb, "purchase_transactions").select("amount").eq("currency_id", currency_id))
    )
    sessions = currency_sessions(currency_id, sb=sb)

    return calculate_balance(currency.get("initial_balance") or 0, bonuses, purchases, sessions)


# ---------- currencies ----------

def list_currencies(user_id: str, include_archived: bool = False, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    sb = _client(sb)
    q = not_deleted(table(sb, "currencies").select("*").eq("user_id", _sid(user_id)))
    if not include_archived:
        q = q.eq("is_archived", False)
    rows = select_rows(q.order("created_at", desc=True))

    out = []
    for row in rows:
        breakdown = calculate_currency_balance(row["id"], sb=sb)
        out.append({**row, **breakdown.to_dict()})
    return out


def get_currency(user_id: str, currency_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    """Currency + balance breakdown + transaction history + linked games and sessions."""
    sb = _client(sb)
    currency = fetch_owned("currencies", currency_id, user_id, CURRENCY_NOT_FOUND, sb=sb)

    bonuses = list_bonuses(user_id, currency_id, sb=sb)
    purchases = list_purchases(user_id, currency_id, sb=sb)

    stores = {
        str(s["id"]): s.get("name")
        for s in select_rows(table(sb, "stores").select("id, name").eq("user_id", _sid(user_id)))
    }

    def _games(name: str) -> List[Dict[str, Any]]:
        rows = select_rows(
            not_deleted(table(sb, name).select("*").eq("currency_id", _sid(currency_id)))
            .order("created_at", desc=True)
        )
        return [{**r, "store_name": stores.get(str(r.get("store_id")))} for r in rows]

    breakdown = calculate_currency_balance(currency_id, sb=sb)

    return {
        **currency,
        **breakdown.to_dict(),
        "bonuses": bonuses,
        "purchases": purchases,
        "cash_games": _games("cash_games"),
        "tournaments": _games("tournaments"),
        "sessions": currency_sessions(currency_id, sb=sb),
    }


def create_currency(user_id: str, name: str, initial_balance: int = 0, sb: Optional[Client] = None) -> Dict[str, Any]:
    return insert_row(
        "currencies",
        {
            "user_id": _sid(user_id),
            "name": name,
            "initial_balance": int(initial_balance),
            "is_archived": False,
        },
        sb=sb,
    )


def update_currency(user_id: str, currency_id: str, changes: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    fetch_owned("currencies", currency_id, user_id, CURRENCY_NOT_FOUND, sb=sb)
    allowed = {k: v for k, v in changes.items() if k in ("name", "initial_balance")}
    return update_row("currencies", currency_id, allowed, sb=sb)


def _set_archived(user_id: str, currency_id: str, archived: bool, sb: Optional[Client]) -> Dict[str, Any]:
    fetch_owned("currencies", currency_id, user_id, CURRENCY_NOT_FOUND, sb=sb)
    return update_row("currencies", currency_id, {"is_archived": archived}, sb=sb)


def archive_currency(user_id: str, currency_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    return _set_archived(user_id, currency_id, True, sb)


def unarchive_currency(user_id: str, currency_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    return _set_archived(user_id, currency_id, False, sb)


def delete_currency(user_id: str, currency_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    fetch_owned("currencies", currency_id, user_id, CURRENCY_NOT_FOUND, sb=sb)
    return soft_delete("currencies", currency_id, sb=sb)


# ---------- bonus / purchase transactions ----------
#
# Both tables share one shape (amount, note column, transaction_date), so the
# helpers below are parameterised by table + the name of the free-text column.

def _list_transactions(name: str, user_id: str, currency_id: str, sb: Optional[Client]) -> List[Dict[str, Any]]:
    sb = _client(sb)
    fetch_owned("currencies", currency_id, user_id, CURRENCY_NOT_FOUND, sb=sb)
    return select_rows(
        not_deleted(table(sb, name).select("*").eq("currency_id", _sid(currency_id)))
        .order("transaction_date", desc=True)
    )


def _add_transaction(
    name: str,
    text_col: str,
    user_id: str,
    currency_id: str,
    amount: int,
    text: Optional[str],
    transaction_date,
    sb: Optional[Client],
) -> Dict[str, Any]:
    fetch_owned("currencies", currency_id, user_id, CURRENCY_NOT_FOUND, sb=sb)
    return insert_row(
        name,
        {
            "user_id": _sid(user_id),
            "currency_id": _sid(currency_id),
            "amount": int(amount),
            text_col: text,
            "transaction_date": transaction_date or _now_iso(),
        },
        sb=sb,
    )


def _owned_transaction(name: str, user_id: str, tx_id: str, missing: str, sb: Optional[Client]) -> Dict[str, Any]:
    return fetch_owned(name, tx_id, user_id, missing, sb=sb)


def list_bonuses(user_id: str, currency_id: str, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    return _list_transactions("bonus_transactions", user_id, currency_id, sb)


def add_bonus(
    user_id: str,
    currency_id: str,
    amount: int,
    source: Optional[str] = None,
    transaction_date=None,
    sb: Optional[Client] = None,
) -> Dict[str, Any]:
    return _add_transaction("bonus_transactions", "source", user_id, currency_id, amount, source, transaction_date, sb)


def update_bonus(user_id: str, bonus_id: str, changes: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    _owned_transaction("bonus_transactions", user_id, bonus_id, BONUS_NOT_FOUND, sb)
    allowed = {k: v for k, v in changes.items() if k in ("amount", "source", "transaction_date")}
    return update_row("bonus_transactions", bonus_id, allowed, sb=sb)


def delete_bonus(user_id: str, bonus_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    row = _owned_transaction("bonus_transactions", user_id, bonus_id, BONUS_NOT_FOUND, sb)
    soft_delete("bonus_transactions", bonus_id, sb=sb)
    return row


def list_purchases(user_id: str, currency_id: str, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    return _list_transactions("purchase_transactions", user_id, currency_id, sb)


def add_purchase(
    user_id: str,
    currency_id: str,
    amount: int,
    note: Optional[str] = None,
    transaction_date=None,
    sb: Optional[Client] = None,
) -> Dict[str, Any]:
    return _add_transaction("purchase_transactions", "note", user_id, currency_id, amount, note, transaction_date, sb)


def update_purchase(user_id: str, purchase_id: str, changes: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    _owned_transaction("purchase_transactions", user_id, purchase_id, PURCHASE_NOT_FOUND, sb)
    allowed = {k: v for k, v in changes.items() if k in ("amount", "note", "transaction_date")}
    return update_row("purchase_transactions", purchase_id, allowed, sb=sb)


def delete_purchase(user_id: str, purchase_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    row = _owned_transaction("purchase_transactions", user_id, purchase_id, PURCHASE_NOT_FOUND, sb)
    soft_delete("purchase_transactions", purchase_id, sb=sb)
    return row

