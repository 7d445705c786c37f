# cache.py — Session-scoped, tag-invalidated caching for Supabase data
#
# Loaded data is cached in st.session_state under "_cache_<key>" and registered
# under one or more tag strings ("currency-list", "currency-<id>", ...).
# Mutations (see actions.py) revalidate tags, which drops every key
# registered under them so the next page run reloads from the database.

import streamlit as st
from typing import Any, Callable, Dict, Iterable, List


_VALUE_PREFIX = "_cache_"
_TAG_INDEX_KEY = "_cache_tag_index"


# ============================================================
#  TAGS
# ============================================================

CURRENCY_LIST = "currency-list"
SESSION_LIST = "session-list"
ACTIVE_SESSION = "active-session"
STORE_LIST = "store-list"
PLAYER_LIST = "player-list"
PLAYER_TAGS = "player-tags"
TASK_LIST = "task-list"


def currency_tag(currency_id: Any) -> str:
    return f"currency-{currency_id}"


def session_tag(session_id: Any) -> str:
    return f"session-{session_id}"


def store_tag(store_id: Any) -> str:
    return f"store-{store_id}"


def player_tag(player_id: Any) -> str:
    return f"player-{player_id}"


# ============================================================
#  CACHE
# ============================================================

def _tag_index() -> Dict[str, List[str]]:
    index = st.session_state.get(_TAG_INDEX_KEY)
    if index is None:
        index = {}
        st.session_state[_TAG_INDEX_KEY] = index
    return index


def get_cached(key: str, tags: Iterable[str], loader: Callable[[], Any]) -> Any:
    """
    Return the cached value for `key`, or call loader() and cache its result
    under every tag in `tags`.

    Loader errors propagate; nothing is cached for a failed load.

    Usage:
        from cache import get_cached, CURRENCY_LIST
        rows = get_cached(f"currencies_{uid}", [CURRENCY_LIST], lambda: list_currencies(uid))
    """
    cache_key = f"{_VALUE_PREFIX}{key}"

    if cache_key in st.session_state:
        return st.session_state[cache_key]

    value = loader()
    st.session_state[cache_key] = value

    index = _tag_index()
    for tag in tags:
        keys = index.setdefault(tag, [])
        if key not in keys:
            keys.append(key)

    return value


def is_cached(key: str) -> bool:
    return f"{_VALUE_PREFIX}{key}" in st.session_state


def revalidate_tag(tag: str) -> int:
    """
    Drop every cached entry registered under `tag`.
    Returns how many entries were dropped.
    """
    index = _tag_index()
    keys = index.pop(tag, [])
    dropped = 0
    for key in keys:
        cache_key = f"{_VALUE_PREFIX}{key}"
        if cache_key in st.session_state:
            del st.session_state[cache_key]
            dropped += 1
    return dropped


def revalidate_tags(*tags: str) -> int:
    dropped = 0
    for tag in tags:
        if tag:
            dropped += revalidate_tag(tag)
    return dropped


def clear_all_user_caches() -> None:
    """
    Clear ALL cached data.
    Call on logout/login to ensure no data bleeds between users.
    """
    keys_to_delete = [k for k in list(st.session_state.keys()) if str(k).startswith(_VALUE_PREFIX)]
    for k in keys_to_delete:
        del st.session_state[k]
