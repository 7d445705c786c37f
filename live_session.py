# live_session.py — replay of live-session events (pure, no DB access)
#
# A live session is an ordered event log (sequence 1..n). Everything the
# Active Session page shows (stack, timer, pause state, hand counter) is
# derived by replaying that log; nothing is stored twice.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from errors import ValidationError


SESSION_START = "session_start"
SESSION_RESUME = "session_resume"
SESSION_PAUSE = "session_pause"
SESSION_END = "session_end"
PLAYER_SEATED = "player_seated"
HAND_RECORDED = "hand_recorded"
HANDS_PASSED = "hands_passed"
HAND_COMPLETE = "hand_complete"
STACK_UPDATE = "stack_update"
REBUY = "rebuy"
ADDON = "addon"

EVENT_TYPES = (
    SESSION_START,
    SESSION_RESUME,
    SESSION_PAUSE,
    SESSION_END,
    PLAYER_SEATED,
    HAND_RECORDED,
    HANDS_PASSED,
    HAND_COMPLETE,
    STACK_UPDATE,
    REBUY,
    ADDON,
)

# start/end bracket the session and can never be edited or deleted
LOCKED_EVENT_TYPES = (SESSION_START, SESSION_END)
AMOUNT_EDITABLE_TYPES = (STACK_UPDATE, REBUY, ADDON)
BUY_IN_EVENT_TYPES = (REBUY, ADDON)

# hand_complete only drives the counter; the timeline hides it
TIMELINE_HIDDEN_TYPES = (HAND_COMPLETE,)


@dataclass
class LiveState:
    current_stack: int = 0
    elapsed_minutes: int = 0
    is_paused: bool = False
    paused_minutes: int = 0
    last_hand_at: Optional[datetime] = None
    last_hand_position: Optional[str] = None
    hands_played: int = 0
    events: List[Dict[str, Any]] = field(default_factory=list)


def _ts(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str) or not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _data(event: Mapping[str, Any]) -> Dict[str, Any]:
    return event.get("event_data") or {}


def _int_or_none(x) -> Optional[int]:
    if x is None:
        return None
    try:
        return int(x)
    except (TypeError, ValueError):
        return None


def ordered(events: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return sorted((dict(e) for e in events or []), key=lambda e: int(e.get("sequence") or 0))


def chips_added(event: Mapping[str, Any]) -> int:
    """Chips a rebuy/addon puts on the table; falls back to the cost."""
    data = _data(event)
    chips = _int_or_none(data.get("chips"))
    if chips is not None:
        return chips
    return _int_or_none(data.get("amount")) or 0


def event_cost(event: Mapping[str, Any]) -> int:
    data = _data(event)
    cost = _int_or_none(data.get("cost"))
    if cost is None:
        cost = _int_or_none(data.get("amount"))
    return cost or 0


def replay_events(
    buy_in: int,
    events: Iterable[Mapping[str, Any]],
    now: Optional[datetime] = None,
    start_time=None,
) -> LiveState:
    """
    Replay the event log and return the derived live state.

    `start_time` defaults to the session_start event's timestamp.
    """
    now = _ts(now) or datetime.now(timezone.utc)
    evs = ordered(events)

    stack = int(buy_in or 0)
    paused_seconds = 0.0
    pause_started: Optional[datetime] = None
    hands = 0
    last_hand: Optional[Dict[str, Any]] = None
    started = _ts(start_time)
    ended: Optional[datetime] = None

    for e in evs:
        kind = e.get("event_type")
        at = _ts(e.get("recorded_at"))
        data = _data(e)

        if kind == SESSION_START and started is None:
            started = at
        elif kind == STACK_UPDATE:
            amount = _int_or_none(data.get("amount"))
            if amount is not None:
                stack = amount
        elif kind in BUY_IN_EVENT_TYPES:
            stack += chips_added(e)
        elif kind == SESSION_PAUSE:
            if pause_started is None:
                pause_started = at
        elif kind == SESSION_RESUME:
            if pause_started is not None and at is not None:
                paused_seconds += (at - pause_started).total_seconds()
            pause_started = None
        elif kind == HAND_COMPLETE:
            hands += 1
            last_hand = e
        elif kind == HANDS_PASSED:
            hands += _int_or_none(data.get("count")) or 0
        elif kind == SESSION_END:
            ended = at

    clock_end = ended or now
    is_paused = pause_started is not None
    if is_paused:
        paused_seconds += max(0.0, (clock_end - pause_started).total_seconds())

    if started is None and evs:
        started = _ts(evs[0].get("recorded_at"))

    elapsed_seconds = 0.0
    if started is not None:
        elapsed_seconds = max(0.0, (clock_end - started).total_seconds() - paused_seconds)

    return LiveState(
        current_stack=stack,
        elapsed_minutes=int(elapsed_seconds // 60),
        is_paused=is_paused,
        paused_minutes=int(paused_seconds // 60),
        last_hand_at=_ts(last_hand.get("recorded_at")) if last_hand else None,
        last_hand_position=_data(last_hand).get("position") if last_hand else None,
        hands_played=hands,
        events=evs,
    )


def state_at(session: Mapping[str, Any], now: Optional[datetime] = None) -> LiveState:
    """Replay a loaded session's events against `now` (default: current time)."""
    return replay_events(
        session.get("buy_in") or 0,
        session.get("events") or [],
        now or datetime.now(timezone.utc),
        start_time=session.get("start_time"),
    )


def next_sequence(events: Iterable[Mapping[str, Any]]) -> int:
    seqs = [int(e.get("sequence") or 0) for e in events or []]
    return (max(seqs) if seqs else 0) + 1


def validate_event_time(
    events: Iterable[Mapping[str, Any]],
    event_id: str,
    new_time,
    now: Optional[datetime] = None,
) -> datetime:
    """
    An edited timestamp must stay strictly between its neighbours
    and cannot be in the future. Returns the parsed time.
    """
    new_at = _ts(new_time)
    if new_at is None:
        raise ValidationError("Invalid event time.")
    now = _ts(now) or datetime.now(timezone.utc)

    evs = ordered(events)
    idx = next((i for i, e in enumerate(evs) if str(e.get("id")) == str(event_id)), None)
    if idx is None:
        raise ValidationError("Event is not part of this session.")

    prev_at = _ts(evs[idx - 1].get("recorded_at")) if idx > 0 else None
    next_at = _ts(evs[idx + 1].get("recorded_at")) if idx + 1 < len(evs) else None

    if prev_at is not None and new_at <= prev_at:
        raise ValidationError("Time must be after the previous event.")
    if next_at is not None and new_at >= next_at:
        raise ValidationError("Time must be before the next event.")
    if new_at > now:
        raise ValidationError("Time cannot be in the future.")
    return new_at


def paired_event_id(events: Iterable[Mapping[str, Any]], event: Mapping[str, Any]) -> Optional[str]:
    """
    A pause and the resume that closes it are removed together.
    Returns the id of the partner event, if there is one.
    """
    kind = event.get("event_type")
    seq = int(event.get("sequence") or 0)
    evs = ordered(events)

    if kind == SESSION_PAUSE:
        for e in evs:
            s = int(e.get("sequence") or 0)
            if s <= seq:
                continue
            if e.get("event_type") == SESSION_PAUSE:
                return None
            if e.get("event_type") == SESSION_RESUME:
                return str(e.get("id"))
    elif kind == SESSION_RESUME:
        for e in reversed(evs):
            s = int(e.get("sequence") or 0)
            if s >= seq:
                continue
            if e.get("event_type") == SESSION_RESUME:
                return None
            if e.get("event_type") == SESSION_PAUSE:
                return str(e.get("id"))
    return None


def stack_history(events: Iterable[Mapping[str, Any]], buy_in: Optional[int] = None) -> List[Tuple[datetime, int]]:
    """(recorded_at, stack) points in event order, for the stack chart."""
    points: List[Tuple[datetime, int]] = []
    stack = int(buy_in or 0)
    for e in ordered(events):
        kind = e.get("event_type")
        at = _ts(e.get("recorded_at"))
        if at is None:
            continue
        if kind == SESSION_START and buy_in is not None:
            points.append((at, stack))
        elif kind == STACK_UPDATE:
            amount = _int_or_none(_data(e).get("amount"))
            if amount is None:
                continue
            stack = amount
            points.append((at, stack))
        elif kind in BUY_IN_EVENT_TYPES:
            stack += chips_added(e)
            points.append((at, stack))
    return points
