# db_players.py — players, player tags, tag assignments and dated notes

from __future__ import annotations

from typing import Any, Dict, List, Optional

from supabase import Client

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
from errors import ConflictError, NotFoundError

PLAYER_NOT_FOUND = "Player not found."
TAG_NOT_FOUND = "Tag not found."
NOTE_NOT_FOUND = "Note not found."


# ---------- helpers ----------

def _tags_by_player(sb: Client, player_ids: List[str]) -> Dict[str, List[Dict[str, Any]]]:
    """player_id -> [{id, name, color}] (deleted tags dropped)."""
    if not player_ids:
        return {}
    assignments = select_rows(
        table(sb, "player_tag_assignments").select("player_id, tag_id").in_("player_id", player_ids)
    )
    tag_ids = sorted({str(a["tag_id"]) for a in assignments})
    if not tag_ids:
        return {}

    tags = {
        str(t["id"]): {"id": t["id"], "name": t.get("name"), "color": t.get("color")}
        for t in select_rows(not_deleted(table(sb, "player_tags").select("*").in_("id", tag_ids)))
    }

    out: Dict[str, List[Dict[str, Any]]] = {}
    for a in assignments:
        tag = tags.get(str(a["tag_id"]))
        if tag:
            out.setdefault(str(a["player_id"]), []).append(tag)
    for lst in out.values():
        lst.sort(key=lambda t: (t.get("name") or "").lower())
    return out


def _player_ids_with_all_tags(sb: Client, tag_ids: List[str]) -> List[str]:
    wanted = {str(t) for t in tag_ids}
    rows = select_rows(
        table(sb, "player_tag_assignments").select("player_id, tag_id").in_("tag_id", sorted(wanted))
    )
    seen: Dict[str, set] = {}
    for r in rows:
        seen.setdefault(str(r["player_id"]), set()).add(str(r["tag_id"]))
    return [pid for pid, tags in seen.items() if tags >= wanted]


def _ensure_unique_name(
    sb: Client,
    name_table: str,
    user_id: str,
    name: str,
    message: str,
    exclude_id: Optional[str] = None,
    permanent_only: bool = False,
) -> None:
    q = not_deleted(table(sb, name_table).select("id").eq("user_id", _sid(user_id)).eq("name", name))
    if permanent_only:
        q = q.eq("is_temporary", False)
    for row in select_rows(q):
        if str(row["id"]) != str(exclude_id or ""):
            raise ConflictError(message)


# ---------- players ----------

def list_players(
    user_id: str,
    search: Optional[str] = None,
    tag_ids: Optional[List[str]] = None,
    sb: Optional[Client] = None,
) -> List[Dict[str, Any]]:
    """
    Permanent, non-deleted players sorted by name. `search` matches the name
    case-insensitively; `tag_ids` keeps players that carry every listed tag.
    """
    sb = _client(sb)
    q = not_deleted(
        table(sb, "players").select("*").eq("user_id", _sid(user_id)).eq("is_temporary", False)
    )
    if search and search.strip():
        q = q.ilike("name", f"%{search.strip()}%")

    if tag_ids:
        matching = _player_ids_with_all_tags(sb, tag_ids)
        if not matching:
            return []
        q = q.in_("id", matching)

    players = select_rows(q.order("name"))
    tags = _tags_by_player(sb, [str(p["id"]) for p in players])
    for p in players:
        p["tags"] = tags.get(str(p["id"]), [])
    return players


def get_player(user_id: str, player_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    player = fetch_owned("players", player_id, user_id, PLAYER_NOT_FOUND, sb=sb)
    player["tags"] = _tags_by_player(sb, [str(player["id"])]).get(str(player["id"]), [])
    player["notes"] = select_rows(
        not_deleted(table(sb, "player_notes").select("*").eq("player_id", _sid(player_id)))
        .order("note_date", desc=True)
        .order("created_at", desc=True)
    )
    return player


def create_player(
    user_id: str,
    name: str,
    general_notes: Optional[str] = None,
    sb: Optional[Client] = None,
) -> Dict[str, Any]:
    sb = _client(sb)
    name = name.strip()
    _ensure_unique_name(sb, "players", user_id, name, "A player with this name already exists.", permanent_only=True)
    return insert_row(
        "players",
        {"user_id": _sid(user_id), "name": name, "general_notes": general_notes, "is_temporary": False},
        sb=sb,
    )


def update_player(user_id: str, player_id: str, changes: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    existing = fetch_owned("players", player_id, user_id, PLAYER_NOT_FOUND, sb=sb)
    allowed = {k: v for k, v in changes.items() if k in ("name", "general_notes")}
    if not allowed:
        return existing
    if allowed.get("name"):
        allowed["name"] = allowed["name"].strip()
        _ensure_unique_name(
            sb, "players", user_id, allowed["name"], "A player with this name already exists.",
            exclude_id=player_id, permanent_only=True,
        )
    return update_row("players", player_id, allowed, sb=sb)


def delete_player(user_id: str, player_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    row = fetch_owned("players", player_id, user_id, PLAYER_NOT_FOUND, sb=sb)
    soft_delete("players", player_id, sb=sb)
    return row


# ---------- tags ----------

def list_tags(user_id: str, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    sb = _client(sb)
    return select_rows(
        not_deleted(table(sb, "player_tags").select("*").eq("user_id", _sid(user_id))).order("name")
    )


def get_tag(user_id: str, tag_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    """Tag + how many live players carry it."""
    sb = _client(sb)
    tag = fetch_owned("player_tags", tag_id, user_id, TAG_NOT_FOUND, sb=sb)
    player_ids = [
        str(a["player_id"])
        for a in select_rows(table(sb, "player_tag_assignments").select("player_id").eq("tag_id", _sid(tag_id)))
    ]
    count = 0
    if player_ids:
        count = len(select_rows(not_deleted(table(sb, "players").select("id").in_("id", player_ids))))
    tag["player_count"] = count
    return tag


def create_tag(user_id: str, name: str, color: Optional[str] = None, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    name = name.strip()
    _ensure_unique_name(sb, "player_tags", user_id, name, "A tag with this name already exists.")
    return insert_row("player_tags", {"user_id": _sid(user_id), "name": name, "color": color}, sb=sb)


def update_tag(user_id: str, tag_id: str, changes: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    existing = fetch_owned("player_tags", tag_id, user_id, TAG_NOT_FOUND, sb=sb)
    allowed = {k: v for k, v in changes.items() if k in ("name", "color")}
    if not allowed:
        return existing
    if allowed.get("name"):
        allowed["name"] = allowed["name"].strip()
        _ensure_unique_name(
            sb, "player_tags", user_id, allowed["name"], "A tag with this name already exists.", exclude_id=tag_id
        )
    return update_row("player_tags", tag_id, allowed, sb=sb)


def delete_tag(user_id: str, tag_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    row = fetch_owned("player_tags", tag_id, user_id, TAG_NOT_FOUND, sb=sb)
    soft_delete("player_tags", tag_id, sb=sb)
    return row


# ---------- assignments ----------

def assign_tag(user_id: str, player_id: str, tag_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    fetch_owned("players", player_id, user_id, PLAYER_NOT_FOUND, sb=sb)
    fetch_owned("player_tags", tag_id, user_id, TAG_NOT_FOUND, sb=sb)

    existing = first_row(
        table(sb, "player_tag_assignments")
        .select("*")
        .eq("player_id", _sid(player_id))
        .eq("tag_id", _sid(tag_id))
    )
    if existing:
        raise ConflictError("This tag is already assigned.")
    return insert_row("player_tag_assignments", {"player_id": _sid(player_id), "tag_id": _sid(tag_id)}, sb=sb)


def remove_tag(user_id: str, player_id: str, tag_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    fetch_owned("players", player_id, user_id, PLAYER_NOT_FOUND, sb=sb)
    res = _execute_with_retry(
        table(sb, "player_tag_assignments")
        .delete()
        .eq("player_id", _sid(player_id))
        .eq("tag_id", _sid(tag_id))
    )
    rows = res.data or []
    if not rows:
        raise NotFoundError("Tag assignment not found.")
    return rows[0]


# ---------- notes ----------

def add_note(user_id: str, player_id: str, note_date: str, content: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    fetch_owned("players", player_id, user_id, PLAYER_NOT_FOUND, sb=sb)
    return insert_row(
        "player_notes",
        {"user_id": _sid(user_id), "player_id": _sid(player_id), "note_date": note_date, "content": content},
        sb=sb,
    )


def update_note(user_id: str, note_id: str, changes: Dict[str, Any], sb: Optional[Client] = None) -> Dict[str, Any]:
    existing = fetch_owned("player_notes", note_id, user_id, NOTE_NOT_FOUND, sb=sb)
    allowed = {k: v for k, v in changes.items() if k in ("note_date", "content")}
    if not allowed:
        return existing
    return update_row("player_notes", note_id, allowed, sb=sb)


def delete_note(user_id: str, note_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    row = fetch_owned("player_notes", note_id, user_id, NOTE_NOT_FOUND, sb=sb)
    soft_delete("player_notes", note_id, sb=sb)
    return row
