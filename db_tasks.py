# db_tasks.py — to-do list (standalone demo feature, hard deletes)

from __future__ import annotations

from typing import Any, Dict, List, Optional

from supabase import Client

from db import _client, _execute_with_retry, _sid, first_row, insert_row, select_rows, table, update_row
from errors import NotFoundError

TASK_NOT_FOUND = "Task not found."


def list_tasks(user_id: str, sb: Optional[Client] = None) -> List[Dict[str, Any]]:
    sb = _client(sb)
    return select_rows(
        table(sb, "tasks").select("*").eq("user_id", _sid(user_id)).order("created_at", desc=True)
    )


def _owned_task(sb: Client, user_id: str, task_id: str) -> Dict[str, Any]:
    row = first_row(table(sb, "tasks").select("*").eq("id", _sid(task_id)).eq("user_id", _sid(user_id)))
    if not row:
        raise NotFoundError(TASK_NOT_FOUND)
    return row


def create_task(user_id: str, content: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    return insert_row("tasks", {"user_id": _sid(user_id), "content": content, "is_completed": False}, sb=sb)


def toggle_task(user_id: str, task_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    task = _owned_task(sb, user_id, task_id)
    return update_row("tasks", task_id, {"is_completed": not bool(task.get("is_completed"))}, sb=sb)


def delete_task(user_id: str, task_id: str, sb: Optional[Client] = None) -> Dict[str, Any]:
    sb = _client(sb)
    task = _owned_task(sb, user_id, task_id)
    _execute_with_retry(table(sb, "tasks").delete().eq("id", _sid(task_id)))
    return task
