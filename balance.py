# balance.py — currency balance aggregation (pure, no DB access)
#
#   current = initial + Σbonuses + Σpurchases − Σbuy_ins + Σcash_outs
#
# Only completed sessions (cash_out present) count; soft-deleted rows never do.

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, Mapping


@dataclass(frozen=True)
class BalanceBreakdown:
    total_bonuses: int = 0
    total_purchases: int = 0
    total_buy_ins: int = 0
    total_cash_outs: int = 0
    current_balance: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def _safe_int(x, default: int = 0) -> int:
    try:
        return int(x)
    except (TypeError, ValueError):
        return default


def _live(rows: Iterable[Mapping[str, Any]]):
    for r in rows or []:
        if r.get("deleted_at"):
            continue
        yield r


def calculate_balance(
    initial_balance: int,
    bonuses: Iterable[Mapping[str, Any]] = (),
    purchases: Iterable[Mapping[str, Any]] = (),
    sessions: Iterable[Mapping[str, Any]] = (),
) -> BalanceBreakdown:
    total_bonuses = sum(_safe_int(b.get("amount")) for b in _live(bonuses))
    total_purchases = sum(_safe_int(p.get("amount")) for p in _live(purchases))

    total_buy_ins = 0
    total_cash_outs = 0
    for s in _live(sessions):
        if s.get("cash_out") is None:
            continue  # still running
        total_buy_ins += _safe_int(s.get("buy_in"))
        total_cash_outs += _safe_int(s.get("cash_out"))

    current = (
        _safe_int(initial_balance)
        + total_bonuses
        + total_purchases
        - total_buy_ins
        + total_cash_outs
    )

    return BalanceBreakdown(
        total_bonuses=total_bonuses,
        total_purchases=total_purchases,
        total_buy_ins=total_buy_ins,
        total_cash_outs=total_cash_outs,
        current_balance=current,
    )


def total_balance(currencies: Iterable[Mapping[str, Any]]) -> int:
    """Dashboard total: sum of current_balance over the given currencies."""
    return sum(_safe_int(c.get("current_balance")) for c in currencies or [])
