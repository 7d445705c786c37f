# 06_Tasks.py — simple to-do list

import streamlit as st

st.set_page_config(
    page_title="Tasks | Sapphire",
    page_icon="✅",
    layout="centered",
)

from auth import require_auth
from sidebar import render_sidebar

user = require_auth()
render_sidebar()

import actions
from cache import TASK_LIST, get_cached
from db_tasks import list_tasks
from schemas import TASK_MAX_LENGTH

USER_ID = user["id"]

st.title("✅ Tasks")

with st.form("new_task", clear_on_submit=True):
    content = st.text_input("New task", max_chars=TASK_MAX_LENGTH)
    if st.form_submit_button("Add"):
        res = actions.create_task({"content": content})
        if res.success:
            st.rerun()
        st.error(res.error)

tasks = get_cached(f"tasks:{USER_ID}", [TASK_LIST], lambda: list_tasks(USER_ID))
if not tasks:
    st.caption("Nothing to do. 🎉")

for t in tasks:
    c1, c2 = st.columns([6, 1])
    done = c1.checkbox(t.get("content"), value=bool(t.get("is_completed")), key=f"task_{t['id']}")
    if done != bool(t.get("is_completed")):
        res = actions.toggle_task(t["id"])
        if not res.success:
            st.error(res.error)
        st.rerun()
    if c2.button("🗑️", key=f"del_task_{t['id']}"):
        res = actions.delete_task(t["id"])
        if not res.success:
            st.error(res.error)
        st.rerun()
