# 03_Currencies.py — currencies, balance breakdown, bonus / purchase history

import streamlit as st
import pandas as pd
from datetime import datetime, time, timezone
from typing import Any, Dict

st.set_page_config(
    page_title="Currencies | Sapphire",
    page_icon="💰",
    layout="wide",
)

from auth import require_auth
from sidebar import render_sidebar

user = require_auth()
render_sidebar()

import actions
from balance import total_balance
from cache import CURRENCY_LIST, currency_tag, get_cached
from db_currency import get_currency, list_currencies
from errors import NotFoundError
from formatting import colored_profit_loss, format_amount, format_blinds, format_date

USER_ID = user["id"]


def _done(res: actions.ActionResult, message: str) -> bool:
    if res.success:
        st.toast(message, icon="✅")
        return True
    st.error(res.error)
    return False


def _as_utc(d) -> datetime:
    return datetime.combine(d, time(12, 0)).astimezone(timezone.utc)


# =============================================================================
# DETAIL
# =============================================================================

def _transaction_form(kind: str, currency_id: str):
    text_label = "Source" if kind == "bonus" else "Note"
    text_key = "source" if kind == "bonus" else "note"
    with st.form(f"{kind}_form_{currency_id}", clear_on_submit=True):
        c1, c2, c3 = st.columns(3)
        amount = c1.number_input("Amount", min_value=1, step=100, value=1000)
        text = c2.text_input(text_label)
        when = c3.date_input("Date")
        if st.form_submit_button(f"Add {kind}"):
            payload = {"amount": int(amount), text_key: text or None, "transaction_date": _as_utc(when)}
            fn = actions.add_bonus if kind == "bonus" else actions.add_purchase
            if _done(fn(currency_id, payload), f"{kind.capitalize()} added"):
                st.rerun()


def _transaction_list(kind: str, rows):
    text_key = "source" if kind == "bonus" else "note"
    if not rows:
        st.caption(f"No {kind}s yet.")
        return
    for r in rows:
        c1, c2, c3, c4 = st.columns([1, 1, 3, 1])
        c1.write(format_date(r.get("transaction_date")))
        c2.write(format_amount(r.get("amount")))
        c3.write(r.get(text_key) or "")
        if c4.button("🗑️", key=f"del_{kind}_{r['id']}"):
            fn = actions.delete_bonus if kind == "bonus" else actions.delete_purchase
            if _done(fn(r["id"]), f"{kind.capitalize()} removed"):
                st.rerun()


def _render_detail(currency_id: str):
    try:
        currency: Dict[str, Any] = get_cached(
            f"currency:{currency_id}",
            [currency_tag(currency_id)],
            lambda: get_currency(USER_ID, currency_id),
        )
    except NotFoundError as e:
        st.session_state.pop("currency_selected", None)
        st.warning(e.message)
        return

    if st.button("← All currencies"):
        st.session_state.pop("currency_selected", None)
        st.rerun()

    title = currency.get("name") + (" (archived)" if currency.get("is_archived") else "")
    st.title(f"💰 {title}")

    m1, m2, m3, m4, m5, m6 = st.columns(6)
    m1.metric("Balance", format_amount(currency.get("current_balance")))
    m2.metric("Initial", format_amount(currency.get("initial_balance")))
    m3.metric("Bonuses", format_amount(currency.get("total_bonuses")))
    m4.metric("Purchases", format_amount(currency.get("total_purchases")))
    m5.metric("Buy-ins", format_amount(currency.get("total_buy_ins")))
    m6.metric("Cash-outs", format_amount(currency.get("total_cash_outs")))

    t_bonus, t_purchase, t_games, t_sessions, t_settings = st.tabs(
        ["Bonuses", "Purchases", "Games", "Sessions", "Settings"]
    )

    with t_bonus:
        _transaction_form("bonus", currency_id)
        _transaction_list("bonus", currency.get("bonuses") or [])

    with t_purchase:
        _transaction_form("purchase", currency_id)
        _transaction_list("purchase", currency.get("purchases") or [])

    with t_games:
        rows = [
            {"Store": g.get("store_name"), "Type": "Cash", "Game": format_blinds(g)}
            for g in currency.get("cash_games") or []
        ] + [
            {"Store": t.get("store_name"), "Type": "Tournament", "Game": t.get("name") or format_amount(t.get("buy_in"))}
            for t in currency.get("tournaments") or []
        ]
        if rows:
            st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)
        else:
            st.caption("No games use this currency yet.")

    with t_sessions:
        sessions = currency.get("sessions") or []
        if not sessions:
            st.caption("No completed sessions in this currency.")
        for s in sessions:
            c1, c2, c3 = st.columns([1, 1, 1])
            c1.write(format_date(s.get("start_time")))
            c2.write(f"{format_amount(s.get('buy_in'))} → {format_amount(s.get('cash_out'))}")
            c3.markdown(colored_profit_loss(int(s.get("cash_out") or 0) - int(s.get("buy_in") or 0)))

    with t_settings:
        with st.form(f"edit_currency_{currency_id}"):
            name = st.text_input("Name", value=currency.get("name") or "")
            initial = st.number_input("Initial balance", min_value=0, value=int(currency.get("initial_balance") or 0))
            if st.form_submit_button("Save"):
                if _done(actions.update_currency(currency_id, {"name": name, "initial_balance": int(initial)}), "Saved"):
                    st.rerun()

        c1, c2 = st.columns(2)
        if currency.get("is_archived"):
            if c1.button("Unarchive"):
                if _done(actions.unarchive_currency(currency_id), "Currency restored"):
                    st.rerun()
        else:
            if c1.button("Archive"):
                if _done(actions.archive_currency(currency_id), "Currency archived"):
                    st.rerun()
        if c2.button("🗑️ Delete currency", type="primary"):
            if _done(actions.delete_currency(currency_id), "Currency deleted"):
                st.session_state.pop("currency_selected", None)
                st.rerun()


# =============================================================================
# LIST
# =============================================================================

def _render_list():
    st.title("💰 Currencies")
    show_archived = st.toggle("Show archived", value=False)
    currencies = get_cached(
        f"currencies:{USER_ID}:{show_archived}",
        [CURRENCY_LIST],
        lambda: list_currencies(USER_ID, include_archived=show_archived),
    )

    st.metric("Total balance", format_amount(total_balance(c for c in currencies if not c.get("is_archived"))))

    with st.expander("➕ New currency"):
        with st.form("new_currency", clear_on_submit=True):
            name = st.text_input("Name")
            initial = st.number_input("Initial balance", min_value=0, step=100, value=0)
            if st.form_submit_button("Create", type="primary"):
                if _done(actions.create_currency({"name": name, "initial_balance": int(initial)}), "Currency created"):
                    st.rerun()

    if not currencies:
        st.info("No currencies yet.")

    for c in currencies:
        with st.container(border=True):
            c1, c2, c3 = st.columns([3, 2, 1])
            c1.markdown(f"**{c.get('name')}**" + (" · archived" if c.get("is_archived") else ""))
            c2.markdown(f"Balance **{format_amount(c.get('current_balance'))}**")
            if c3.button("Open", key=f"open_currency_{c['id']}"):
                st.session_state["currency_selected"] = c["id"]
                st.rerun()


selected = st.session_state.get("currency_selected")
if selected:
    _render_detail(selected)
else:
    _render_list()
