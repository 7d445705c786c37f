# formatting.py — display helpers shared by the pages

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional
from urllib.parse import quote

GOOGLE_MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1"


def _dt(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def format_amount(value: Any) -> str:
    if value is None:
        return "-"
    try:
        return f"{int(value):,}"
    except (TypeError, ValueError):
        return str(value)


def format_profit_loss(profit_loss: Optional[int]) -> str:
    """+1,000 / -1,000 / 0, and '-' when there is no result yet."""
    if profit_loss is None:
        return "-"
    formatted = f"{abs(int(profit_loss)):,}"
    if profit_loss > 0:
        return f"+{formatted}"
    if profit_loss < 0:
        return f"-{formatted}"
    return formatted


def profit_loss_color(profit_loss: Optional[int]) -> str:
    if profit_loss is None or profit_loss == 0:
        return "dimmed"
    return "green" if profit_loss > 0 else "red"


def colored_profit_loss(profit_loss: Optional[int]) -> str:
    """Markdown with Streamlit color syntax (:green[...])."""
    text = format_profit_loss(profit_loss)
    color = profit_loss_color(profit_loss)
    if color == "dimmed":
        return f":gray[{text}]"
    return f":{color}[{text}]"


def format_date(value) -> str:
    d = _dt(value)
    return d.strftime("%Y/%m/%d") if d else "-"


def format_time(value) -> str:
    d = _dt(value)
    return d.strftime("%H:%M") if d else "-"


def format_duration_short(start_time, end_time) -> str:
    start = _dt(start_time)
    end = _dt(end_time)
    if not end or not start:
        return "-"
    hours = (end - start).total_seconds() / 3600
    return f"{hours:.1f}h"


def format_minutes(minutes: int) -> str:
    """Live timer: 95 -> '1h 35m'."""
    minutes = max(0, int(minutes or 0))
    h, m = divmod(minutes, 60)
    return f"{h}h {m:02d}m" if h else f"{m}m"


def format_blinds(game: Optional[Mapping[str, Any]]) -> str:
    """SB/BB, plus straddles and ante when present."""
    if not game:
        return "-"
    parts = [format_amount(game.get("small_blind")), format_amount(game.get("big_blind"))]
    for key in ("straddle1", "straddle2"):
        if game.get(key):
            parts.append(format_amount(game[key]))
    text = "/".join(parts)
    if game.get("ante"):
        label = "BB ante" if game.get("ante_type") == "bb_ante" else "ante"
        text += f" ({label} {format_amount(game['ante'])})"
    return text


def format_game_name(session: Mapping[str, Any]) -> str:
    cash_game = session.get("cash_game")
    if cash_game:
        return f"{cash_game.get('small_blind')}/{cash_game.get('big_blind')}"
    tournament = session.get("tournament")
    if tournament:
        return tournament.get("name") or format_amount(tournament.get("buy_in"))
    return "-"


def google_maps_url(
    place_id: Optional[str] = None,
    latitude=None,
    longitude=None,
    address: Optional[str] = None,
) -> Optional[str]:
    """Place id first, then coordinates (both required), then address."""
    if place_id and place_id.strip():
        return f"{GOOGLE_MAPS_SEARCH_URL}&query_place_id={place_id}"

    if latitude is not None and longitude is not None:
        query = f"{latitude},{longitude}"
        return f"{GOOGLE_MAPS_SEARCH_URL}&query={quote(query, safe='')}"

    if address and address.strip():
        return f"{GOOGLE_MAPS_SEARCH_URL}&query={quote(address, safe='')}"

    return None


def store_map_url(store: Mapping[str, Any]) -> Optional[str]:
    if store.get("custom_map_url"):
        return store["custom_map_url"]
    return google_maps_url(
        store.get("place_id"),
        store.get("latitude"),
        store.get("longitude"),
        store.get("address"),
    )


def now_local() -> datetime:
    return datetime.now(timezone.utc).astimezone()
