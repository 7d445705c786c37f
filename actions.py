# actions.py — mutation entry points used by the pages
#
# Each action: resolve the logged-in user -> validate input (schemas.py) ->
# call the data layer -> revalidate cache tags -> ActionResult.
# TrackerError / pydantic errors become ActionResult(success=False); anything
# else is a bug and propagates to Streamlit's error box.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

import db
import db_all_in
import db_currency
import db_live
import db_players
import db_sessions
import db_stores
import db_tasks
import schemas
from auth import current_user_id
from cache import (
    ACTIVE_SESSION,
    CURRENCY_LIST,
    PLAYER_LIST,
    PLAYER_TAGS,
    SESSION_LIST,
    STORE_LIST,
    TASK_LIST,
    currency_tag,
    player_tag,
    revalidate_tags,
    session_tag,
    store_tag,
)
from errors import TrackerError


@dataclass
class ActionResult:
    success: bool
    data: Any = None
    error: Optional[str] = None


Work = Callable[[str], Tuple[Any, Iterable[Optional[str]]]]


def _first_error(e: PydanticValidationError) -> str:
    errs = e.errors()
    if not errs:
        return "Invalid input."
    msg = str(errs[0].get("msg") or "Invalid input.")
    # pydantic prefixes custom validator messages
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    loc = ".".join(str(p) for p in errs[0].get("loc") or ())
    return f"{loc}: {msg}" if loc and errs[0].get("type") != "value_error" else msg


def _perform(origin: str, work: Work) -> ActionResult:
    try:
        user_id = current_user_id()
        data, tags = work(user_id)
    except PydanticValidationError as e:
        msg = _first_error(e)
        print(f"[actions.{origin}] invalid input: {msg}")
        return ActionResult(success=False, error=msg)
    except TrackerError as e:
        print(f"[actions.{origin}] {e.code}: {e.message}")
        return ActionResult(success=False, error=e.message)

    revalidate_tags(*[t for t in tags if t])
    return ActionResult(success=True, data=data)


def _currency_tags(*currency_ids: Optional[str]) -> List[str]:
    tags = [currency_tag(cid) for cid in dict.fromkeys(c for c in currency_ids if c)]
    return tags + [CURRENCY_LIST]


def _game_tags(store_id: Any, *currency_ids: Optional[str]) -> List[str]:
    return [store_tag(store_id), STORE_LIST] + _currency_tags(*currency_ids)


# ============================================================
#  CURRENCIES
# ============================================================

def create_currency(data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.CurrencyCreate(**data)
        row = db_currency.create_currency(uid, inp.name, inp.initial_balance)
        return row, [CURRENCY_LIST]
    return _perform("create_currency", work)


def update_currency(currency_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        changes = schemas.CurrencyUpdate(**data).changes()
        row = db_currency.update_currency(uid, currency_id, changes)
        return row, _currency_tags(currency_id)
    return _perform("update_currency", work)


def archive_currency(currency_id: str) -> ActionResult:
    def work(uid):
        return db_currency.archive_currency(uid, currency_id), _currency_tags(currency_id)
    return _perform("archive_currency", work)


def unarchive_currency(currency_id: str) -> ActionResult:
    def work(uid):
        return db_currency.unarchive_currency(uid, currency_id), _currency_tags(currency_id)
    return _perform("unarchive_currency", work)


def delete_currency(currency_id: str) -> ActionResult:
    def work(uid):
        return db_currency.delete_currency(uid, currency_id), [CURRENCY_LIST]
    return _perform("delete_currency", work)


def add_bonus(currency_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.BonusCreate(**data)
        row = db_currency.add_bonus(uid, currency_id, inp.amount, inp.source, inp.transaction_date)
        return row, _currency_tags(currency_id)
    return _perform("add_bonus", work)


def update_bonus(bonus_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        changes = schemas.BonusUpdate(**data).changes()
        row = db_currency.update_bonus(uid, bonus_id, changes)
        return row, _currency_tags(row.get("currency_id"))
    return _perform("update_bonus", work)


def delete_bonus(bonus_id: str) -> ActionResult:
    def work(uid):
        row = db_currency.delete_bonus(uid, bonus_id)
        return row, _currency_tags(row.get("currency_id"))
    return _perform("delete_bonus", work)


def add_purchase(currency_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.PurchaseCreate(**data)
        row = db_currency.add_purchase(uid, currency_id, inp.amount, inp.note, inp.transaction_date)
        return row, _currency_tags(currency_id)
    return _perform("add_purchase", work)


def update_purchase(purchase_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        changes = schemas.PurchaseUpdate(**data).changes()
        row = db_currency.update_purchase(uid, purchase_id, changes)
        return row, _currency_tags(row.get("currency_id"))
    return _perform("update_purchase", work)


def delete_purchase(purchase_id: str) -> ActionResult:
    def work(uid):
        row = db_currency.delete_purchase(uid, purchase_id)
        return row, _currency_tags(row.get("currency_id"))
    return _perform("delete_purchase", work)


# ============================================================
#  STORES / CASH GAMES / TOURNAMENTS
# ============================================================

def create_store(data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        row = db_stores.create_store(uid, schemas.StoreCreate(**data).model_dump())
        return row, [STORE_LIST, store_tag(row.get("id"))]
    return _perform("create_store", work)


def update_store(store_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        row = db_stores.update_store(uid, store_id, schemas.StoreUpdate(**data).changes())
        return row, [STORE_LIST, store_tag(store_id)]
    return _perform("update_store", work)


def archive_store(store_id: str, is_archived: bool = True) -> ActionResult:
    def work(uid):
        return db_stores.archive_store(uid, store_id, is_archived), [STORE_LIST, store_tag(store_id)]
    return _perform("archive_store", work)


def delete_store(store_id: str) -> ActionResult:
    def work(uid):
        return db_stores.delete_store(uid, store_id), [STORE_LIST, store_tag(store_id)]
    return _perform("delete_store", work)


def create_cash_game(store_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.CashGameCreate(**data)
        row = db_stores.create_cash_game(uid, store_id, inp.model_dump())
        return row, _game_tags(store_id, inp.currency_id)
    return _perform("create_cash_game", work)


def update_cash_game(cash_game_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        changes = schemas.CashGameUpdate(**data).changes()
        before = db_stores.get_cash_game(uid, cash_game_id)
        row = db_stores.update_cash_game(uid, cash_game_id, changes)
        return row, _game_tags(before.get("store_id"), before.get("currency_id"), changes.get("currency_id"))
    return _perform("update_cash_game", work)


def archive_cash_game(cash_game_id: str, is_archived: bool = True) -> ActionResult:
    def work(uid):
        row = db_stores.archive_cash_game(uid, cash_game_id, is_archived)
        return row, _game_tags(row.get("store_id"), row.get("currency_id"))
    return _perform("archive_cash_game", work)


def delete_cash_game(cash_game_id: str) -> ActionResult:
    def work(uid):
        row = db_stores.delete_cash_game(uid, cash_game_id)
        return row, _game_tags(row.get("store_id"), row.get("currency_id"))
    return _perform("delete_cash_game", work)


def create_tournament(store_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.TournamentCreate(**data)
        row = db_stores.create_tournament(uid, store_id, inp.model_dump())
        return row, _game_tags(store_id, inp.currency_id)
    return _perform("create_tournament", work)


def update_tournament(tournament_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        changes = schemas.TournamentUpdate(**data).changes()
        before = db_stores.get_tournament(uid, tournament_id)
        row = db_stores.update_tournament(uid, tournament_id, changes)
        return row, _game_tags(before.get("store_id"), before.get("currency_id"), changes.get("currency_id"))
    return _perform("update_tournament", work)


def archive_tournament(tournament_id: str, is_archived: bool = True) -> ActionResult:
    def work(uid):
        row = db_stores.archive_tournament(uid, tournament_id, is_archived)
        return row, _game_tags(row.get("store_id"), row.get("currency_id"))
    return _perform("archive_tournament", work)


def delete_tournament(tournament_id: str) -> ActionResult:
    def work(uid):
        row = db_stores.delete_tournament(uid, tournament_id)
        return row, _game_tags(row.get("store_id"), row.get("currency_id"))
    return _perform("delete_tournament", work)


def set_blind_levels(tournament_id: str, levels: List[Dict[str, Any]]) -> ActionResult:
    def work(uid):
        parsed = [schemas.BlindLevel(**lvl).model_dump() for lvl in levels]
        row = db_stores.set_blind_levels(uid, tournament_id, parsed)
        return row, [store_tag(row.get("store_id")), STORE_LIST]
    return _perform("set_blind_levels", work)


def set_prize_structures(tournament_id: str, structures: List[Dict[str, Any]]) -> ActionResult:
    def work(uid):
        parsed = [schemas.PrizeStructure(**s).model_dump() for s in structures]
        row = db_stores.set_prize_structures(uid, tournament_id, parsed)
        return row, [store_tag(row.get("store_id")), STORE_LIST]
    return _perform("set_prize_structures", work)


def reorder_tournaments(store_id: str, items: List[Dict[str, Any]]) -> ActionResult:
    def work(uid):
        parsed = [schemas.ReorderItem(**i) for i in items]
        touched = db_stores.reorder_tournaments(uid, store_id, [(i.id, i.sort_order) for i in parsed])
        return touched, [store_tag(store_id), STORE_LIST]
    return _perform("reorder_tournaments", work)


# ============================================================
#  ARCHIVED SESSIONS + ALL-INS
# ============================================================

def _session_tags(session_id: Any, *currency_ids: Optional[str]) -> List[str]:
    return [SESSION_LIST, session_tag(session_id)] + _currency_tags(*currency_ids)


def create_archive_session(data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.ArchiveSessionCreate(**data)
        row = db_sessions.create_archive_session(uid, inp.model_dump())
        return row, _session_tags(row.get("id"), db_sessions.lookup_session_currency_id(row))
    return _perform("create_archive_session", work)


def update_session(session_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        changes = schemas.SessionUpdate(**data).changes()
        before = db_sessions.get_session(uid, session_id)
        row = db_sessions.update_session(uid, session_id, changes)
        return row, _session_tags(
            session_id,
            db_sessions.session_currency_id(before),
            db_sessions.lookup_session_currency_id(row),
        )
    return _perform("update_session", work)


def delete_session(session_id: str) -> ActionResult:
    def work(uid):
        row = db_sessions.delete_session(uid, session_id)
        return row, _session_tags(session_id, db_sessions.lookup_session_currency_id(row))
    return _perform("delete_session", work)


def create_all_in(session_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.AllInCreate(**data)
        row = db_all_in.create_all_in(uid, session_id, inp.model_dump(exclude_none=True))
        return row, [session_tag(session_id), SESSION_LIST, ACTIVE_SESSION]
    return _perform("create_all_in", work)


def update_all_in(record_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        row = db_all_in.update_all_in(uid, record_id, schemas.AllInUpdate(**data).changes())
        return row, [session_tag(row.get("session_id")), SESSION_LIST, ACTIVE_SESSION]
    return _perform("update_all_in", work)


def delete_all_in(record_id: str) -> ActionResult:
    def work(uid):
        row = db_all_in.delete_all_in(uid, record_id)
        return row, [session_tag(row.get("session_id")), SESSION_LIST, ACTIVE_SESSION]
    return _perform("delete_all_in", work)


# ============================================================
#  LIVE SESSION
# ============================================================

def start_session(data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.LiveSessionStart(**data)
        return db_live.start_session(uid, inp.model_dump()), [ACTIVE_SESSION]
    return _perform("start_session", work)


def end_session(session_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.LiveSessionEnd(**data)
        out = db_live.end_session(uid, session_id, inp.cash_out, inp.recorded_at, inp.final_position)
        currency_id = db_sessions.lookup_session_currency_id(out["session"])
        return out, [ACTIVE_SESSION] + _session_tags(session_id, currency_id)
    return _perform("end_session", work)


def pause_session(session_id: str) -> ActionResult:
    return _perform("pause_session", lambda uid: (db_live.pause_session(uid, session_id), [ACTIVE_SESSION]))


def resume_session(session_id: str) -> ActionResult:
    return _perform("resume_session", lambda uid: (db_live.resume_session(uid, session_id), [ACTIVE_SESSION]))


def update_stack(session_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.StackUpdate(**data)
        return db_live.update_stack(uid, session_id, inp.amount, inp.recorded_at), [ACTIVE_SESSION]
    return _perform("update_stack", work)


def record_rebuy(session_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.ChipPurchase(**data)
        return db_live.record_rebuy(uid, session_id, inp.cost, inp.chips, inp.recorded_at), [ACTIVE_SESSION]
    return _perform("record_rebuy", work)


def record_addon(session_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.ChipPurchase(**data)
        return db_live.record_addon(uid, session_id, inp.cost, inp.chips, inp.recorded_at), [ACTIVE_SESSION]
    return _perform("record_addon", work)


def record_hand_complete(session_id: str, position: Optional[str] = None) -> ActionResult:
    return _perform(
        "record_hand_complete",
        lambda uid: (db_live.record_hand_complete(uid, session_id, position), [ACTIVE_SESSION]),
    )


def undo_hand_complete(session_id: str) -> ActionResult:
    return _perform(
        "undo_hand_complete",
        lambda uid: (db_live.delete_latest_hand_complete(uid, session_id), [ACTIVE_SESSION]),
    )


def record_hands_passed(session_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.HandsPassed(**data)
        return db_live.record_hands_passed(uid, session_id, inp.count), [ACTIVE_SESSION]
    return _perform("record_hands_passed", work)


def seat_player(session_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.SeatPlayer(**data)
        row = db_live.seat_player(uid, session_id, inp.seat_number, inp.player_name, inp.player_id)
        return row, [ACTIVE_SESSION]
    return _perform("seat_player", work)


def delete_event(event_id: str) -> ActionResult:
    def work(uid):
        out = db_live.delete_event(uid, event_id)
        return out, [ACTIVE_SESSION, session_tag(out["session_id"])]
    return _perform("delete_event", work)


def update_event(event_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.EventEdit(**data)
        row = db_live.update_event(uid, event_id, amount=inp.amount, recorded_at=inp.recorded_at)
        return row, [ACTIVE_SESSION, session_tag(row.get("session_id"))]
    return _perform("update_event", work)


# ---------- tablemates ----------

def add_tablemate(session_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.TablemateCreate(**data)
        row = db_live.add_tablemate(uid, session_id, inp.model_dump())
        return row, [ACTIVE_SESSION, session_tag(session_id)]
    return _perform("add_tablemate", work)


def update_tablemate(tablemate_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        row = db_live.update_tablemate(uid, tablemate_id, schemas.TablemateUpdate(**data).changes())
        return row, [ACTIVE_SESSION, session_tag(row.get("session_id"))]
    return _perform("update_tablemate", work)


def delete_tablemate(tablemate_id: str) -> ActionResult:
    def work(uid):
        row = db_live.delete_tablemate(uid, tablemate_id)
        return row, [ACTIVE_SESSION, session_tag(row.get("session_id"))]
    return _perform("delete_tablemate", work)


def link_tablemate(tablemate_id: str, player_id: str) -> ActionResult:
    def work(uid):
        row = db_live.link_tablemate(uid, tablemate_id, player_id)
        return row, [ACTIVE_SESSION, session_tag(row.get("session_id")), player_tag(player_id)]
    return _perform("link_tablemate", work)


def convert_tablemate_to_player(tablemate_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.TablemateConvert(**data)
        player = db_live.convert_tablemate_to_player(uid, tablemate_id, inp.player_name, inp.general_notes)
        mate = db.fetch_owned("session_tablemates", tablemate_id, uid, db_live.TABLEMATE_NOT_FOUND)
        return player, [ACTIVE_SESSION, session_tag(mate.get("session_id")), PLAYER_LIST, player_tag(player.get("id"))]
    return _perform("convert_tablemate_to_player", work)


# ============================================================
#  PLAYERS / TAGS / NOTES
# ============================================================

def _player_tags(player_id: Any) -> List[str]:
    return [PLAYER_LIST, player_tag(player_id)]


def create_player(data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.PlayerCreate(**data)
        row = db_players.create_player(uid, inp.name, inp.general_notes)
        return row, _player_tags(row.get("id"))
    return _perform("create_player", work)


def update_player(player_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        row = db_players.update_player(uid, player_id, schemas.PlayerUpdate(**data).changes())
        return row, _player_tags(player_id)
    return _perform("update_player", work)


def delete_player(player_id: str) -> ActionResult:
    return _perform(
        "delete_player",
        lambda uid: (db_players.delete_player(uid, player_id), _player_tags(player_id)),
    )


def create_tag(data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.TagCreate(**data)
        return db_players.create_tag(uid, inp.name, inp.color), [PLAYER_TAGS, PLAYER_LIST]
    return _perform("create_tag", work)


def update_tag(tag_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        row = db_players.update_tag(uid, tag_id, schemas.TagUpdate(**data).changes())
        return row, [PLAYER_TAGS, PLAYER_LIST]
    return _perform("update_tag", work)


def delete_tag(tag_id: str) -> ActionResult:
    return _perform(
        "delete_tag",
        lambda uid: (db_players.delete_tag(uid, tag_id), [PLAYER_TAGS, PLAYER_LIST]),
    )


def assign_tag(player_id: str, tag_id: str) -> ActionResult:
    return _perform(
        "assign_tag",
        lambda uid: (db_players.assign_tag(uid, player_id, tag_id), _player_tags(player_id)),
    )


def remove_tag(player_id: str, tag_id: str) -> ActionResult:
    return _perform(
        "remove_tag",
        lambda uid: (db_players.remove_tag(uid, player_id, tag_id), _player_tags(player_id)),
    )


def add_note(player_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.NoteCreate(**data)
        return db_players.add_note(uid, player_id, inp.note_date, inp.content), _player_tags(player_id)
    return _perform("add_note", work)


def update_note(note_id: str, data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        row = db_players.update_note(uid, note_id, schemas.NoteUpdate(**data).changes())
        return row, _player_tags(row.get("player_id"))
    return _perform("update_note", work)


def delete_note(note_id: str) -> ActionResult:
    def work(uid):
        row = db_players.delete_note(uid, note_id)
        return row, _player_tags(row.get("player_id"))
    return _perform("delete_note", work)


# ============================================================
#  TASKS / ACCOUNT
# ============================================================

def create_task(data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.TaskCreate(**data)
        return db_tasks.create_task(uid, inp.content), [TASK_LIST]
    return _perform("create_task", work)


def toggle_task(task_id: str) -> ActionResult:
    return _perform("toggle_task", lambda uid: (db_tasks.toggle_task(uid, task_id), [TASK_LIST]))


def delete_task(task_id: str) -> ActionResult:
    return _perform("delete_task", lambda uid: (db_tasks.delete_task(uid, task_id), [TASK_LIST]))


def update_display_name(data: Dict[str, Any]) -> ActionResult:
    def work(uid):
        inp = schemas.DisplayNameUpdate(**data)
        return db.update_display_name(uid, inp.display_name.strip()), []
    return _perform("update_display_name", work)
