# all_in.py — all-in EV summary for a session (pure)

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Mapping


@dataclass(frozen=True)
class AllInSummary:
    count: int = 0
    total_pot_amount: int = 0
    average_win_rate: float = 0.0
    all_in_ev: float = 0.0
    actual_result_total: float = 0.0
    ev_difference: float = 0.0
    win_count: int = 0
    loss_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _prob(record: Mapping[str, Any]) -> float:
    # numeric(5,2) comes back from PostgREST as a string or float
    try:
        return float(record.get("win_probability") or 0)
    except (TypeError, ValueError):
        return 0.0


def _is_run_it_multiple(record: Mapping[str, Any]) -> bool:
    times = record.get("run_it_times")
    return times is not None and int(times) > 1


def record_ev(record: Mapping[str, Any]) -> float:
    return int(record.get("pot_amount") or 0) * _prob(record) / 100.0


def record_actual(record: Mapping[str, Any]) -> float:
    """Pot share actually won: partial for run-it-X, else all or nothing."""
    pot = int(record.get("pot_amount") or 0)
    wins = record.get("wins_in_runout")
    if _is_run_it_multiple(record) and wins is not None:
        return pot * int(wins) / int(record["run_it_times"])
    return float(pot) if record.get("actual_result") else 0.0


def is_win(record: Mapping[str, Any]) -> bool:
    if _is_run_it_multiple(record):
        return int(record.get("wins_in_runout") or 0) > 0
    return bool(record.get("actual_result"))


def calculate_summary(records: Iterable[Mapping[str, Any]]) -> AllInSummary:
    live: List[Mapping[str, Any]] = [r for r in records or [] if not r.get("deleted_at")]
    if not live:
        return AllInSummary()

    count = len(live)
    all_in_ev = sum(record_ev(r) for r in live)
    actual_total = sum(record_actual(r) for r in live)
    win_count = sum(1 for r in live if is_win(r))

    return AllInSummary(
        count=count,
        total_pot_amount=sum(int(r.get("pot_amount") or 0) for r in live),
        average_win_rate=sum(_prob(r) for r in live) / count,
        all_in_ev=all_in_ev,
        actual_result_total=actual_total,
        ev_difference=actual_total - all_in_ev,
        win_count=win_count,
        loss_count=count - win_count,
    )
