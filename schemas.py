# schemas.py — pydantic input models for every mutation
#
# Create models carry defaults; Update models default everything to None and
# are dumped with exclude_unset=True, so an omitted field stays unchanged while
# an explicit None clears the column.

from __future__ import annotations

import re
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

GameType = Literal["cash", "tournament"]
AnteType = Literal["all_ante", "bb_ante"]
PrizeType = Literal["percentage", "fixed_amount", "custom_prize"]

MAX_SESSION_PAGE = 100
TASK_MAX_LENGTH = 500


class _Input(BaseModel):
    model_config = ConfigDict(extra="forbid")

    def changes(self) -> dict:
        """Fields the caller actually set (for partial updates)."""
        return self.model_dump(exclude_unset=True)


# ---------- Currencies ----------

class CurrencyCreate(_Input):
    name: str = Field(min_length=1, max_length=255)
    initial_balance: int = Field(default=0, ge=0)


class CurrencyUpdate(_Input):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    initial_balance: Optional[int] = Field(default=None, ge=0)


class BonusCreate(_Input):
    amount: int = Field(gt=0)
    source: Optional[str] = Field(default=None, max_length=255)
    transaction_date: Optional[datetime] = None


class BonusUpdate(_Input):
    amount: Optional[int] = Field(default=None, gt=0)
    source: Optional[str] = Field(default=None, max_length=255)
    transaction_date: Optional[datetime] = None


class PurchaseCreate(_Input):
    amount: int = Field(gt=0)
    note: Optional[str] = None
    transaction_date: Optional[datetime] = None


class PurchaseUpdate(_Input):
    amount: Optional[int] = Field(default=None, gt=0)
    note: Optional[str] = None
    transaction_date: Optional[datetime] = None


# ---------- Stores ----------

class StoreCreate(_Input):
    name: str = Field(min_length=1, max_length=255)
    address: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    place_id: Optional[str] = Field(default=None, max_length=255)
    custom_map_url: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("custom_map_url")
    @classmethod
    def _validate_url(cls, v: Optional[str]):
        if v is None:
            return v
        v = v.strip()
        if not re.match(r"^https?://[^\s/$.?#].[^\s]*$", v):
            raise ValueError("Enter a valid URL")
        return v


class StoreUpdate(StoreCreate):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class CashGameCreate(_Input):
    currency_id: Optional[str] = None
    small_blind: int = Field(gt=0)
    big_blind: int = Field(gt=0)
    straddle1: Optional[int] = Field(default=None, gt=0)
    straddle2: Optional[int] = Field(default=None, gt=0)
    ante: Optional[int] = Field(default=None, gt=0)
    ante_type: Optional[AnteType] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_blinds(self):
        if self.big_blind <= self.small_blind:
            raise ValueError("BB must be larger than SB")
        if self.straddle1 and self.straddle1 <= self.big_blind:
            raise ValueError("Straddle 1 must be larger than BB")
        if self.straddle2 and (not self.straddle1 or self.straddle2 <= self.straddle1):
            raise ValueError("Straddle 2 must be larger than straddle 1")
        if self.ante and not self.ante_type:
            raise ValueError("Choose an ante type when setting an ante")
        return self


class CashGameUpdate(_Input):
    currency_id: Optional[str] = None
    small_blind: Optional[int] = Field(default=None, gt=0)
    big_blind: Optional[int] = Field(default=None, gt=0)
    straddle1: Optional[int] = Field(default=None, gt=0)
    straddle2: Optional[int] = Field(default=None, gt=0)
    ante: Optional[int] = Field(default=None, gt=0)
    ante_type: Optional[AnteType] = None
    notes: Optional[str] = None


class BlindLevel(_Input):
    level: int = Field(ge=1)
    is_break: bool = False
    small_blind: Optional[int] = Field(default=None, gt=0)
    big_blind: Optional[int] = Field(default=None, gt=0)
    ante: Optional[int] = Field(default=None, gt=0)
    duration_minutes: int = Field(gt=0)

    @model_validator(mode="after")
    def _check_blinds(self):
        if self.is_break:
            return self
        if self.small_blind is None or self.big_blind is None:
            raise ValueError("SB and BB are required for a playing level")
        if self.big_blind <= self.small_blind:
            raise ValueError("BB must be larger than SB")
        return self


class PrizeItem(_Input):
    prize_type: PrizeType
    percentage: Optional[float] = Field(default=None, ge=0, le=100)
    fixed_amount: Optional[int] = Field(default=None, gt=0)
    custom_prize_label: Optional[str] = None
    custom_prize_value: Optional[int] = Field(default=None, ge=0)
    sort_order: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_value(self):
        if self.prize_type == "percentage" and self.percentage is None:
            raise ValueError("Percentage prizes need a percentage")
        if self.prize_type == "fixed_amount" and self.fixed_amount is None:
            raise ValueError("Fixed prizes need an amount")
        if self.prize_type == "custom_prize" and not self.custom_prize_label:
            raise ValueError("Custom prizes need a label")
        return self


class PrizeLevel(_Input):
    min_position: int = Field(ge=1)
    max_position: int = Field(ge=1)
    sort_order: Optional[int] = Field(default=None, ge=0)
    prize_items: List[PrizeItem] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_range(self):
        if self.max_position < self.min_position:
            raise ValueError("Max position must not be below min position")
        return self


class PrizeStructure(_Input):
    min_entrants: int = Field(ge=1)
    max_entrants: Optional[int] = Field(default=None, ge=1)
    sort_order: Optional[int] = Field(default=None, ge=0)
    prize_levels: List[PrizeLevel] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_range(self):
        if self.max_entrants is not None and self.max_entrants < self.min_entrants:
            raise ValueError("Max entrants must not be below min entrants")
        return self


class TournamentCreate(_Input):
    name: Optional[str] = Field(default=None, max_length=255)
    currency_id: Optional[str] = None
    buy_in: int = Field(gt=0)
    rake: Optional[int] = Field(default=None, gt=0)
    starting_stack: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None
    blind_levels: List[BlindLevel] = Field(default_factory=list)
    prize_structures: List[PrizeStructure] = Field(default_factory=list)


class TournamentUpdate(_Input):
    name: Optional[str] = Field(default=None, max_length=255)
    currency_id: Optional[str] = None
    buy_in: Optional[int] = Field(default=None, gt=0)
    rake: Optional[int] = Field(default=None, gt=0)
    starting_stack: Optional[int] = Field(default=None, gt=0)
    notes: Optional[str] = None


class ReorderItem(_Input):
    id: str
    sort_order: int = Field(ge=0)


# ---------- Sessions ----------

class ArchiveSessionCreate(_Input):
    store_id: Optional[str] = None
    game_type: Optional[GameType] = None
    cash_game_id: Optional[str] = None
    tournament_id: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    buy_in: int = Field(gt=0)
    cash_out: int = Field(ge=0)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_times(self):
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("End time must be after start time")
        return self


class SessionUpdate(_Input):
    store_id: Optional[str] = None
    game_type: Optional[GameType] = None
    cash_game_id: Optional[str] = None
    tournament_id: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    buy_in: Optional[int] = Field(default=None, gt=0)
    cash_out: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class SessionListQuery(_Input):
    store_id: Optional[str] = None
    game_type: Optional[GameType] = None
    currency_id: Optional[str] = None
    start_from: Optional[date] = None
    start_to: Optional[date] = None
    limit: int = Field(default=20, gt=0, le=MAX_SESSION_PAGE)
    offset: int = Field(default=0, ge=0)


class AllInCreate(_Input):
    pot_amount: int = Field(gt=0)
    win_probability: float = Field(ge=0, le=100)
    actual_result: bool
    run_it_times: Optional[int] = Field(default=None, ge=1, le=10)
    wins_in_runout: Optional[int] = Field(default=None, ge=0)
    recorded_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_runout(self):
        if self.run_it_times is not None and self.wins_in_runout is not None:
            if self.wins_in_runout > self.run_it_times:
                raise ValueError("Wins in runout cannot exceed run-it times")
        return self


class AllInUpdate(_Input):
    pot_amount: Optional[int] = Field(default=None, gt=0)
    win_probability: Optional[float] = Field(default=None, ge=0, le=100)
    actual_result: Optional[bool] = None
    run_it_times: Optional[int] = Field(default=None, ge=1, le=10)
    wins_in_runout: Optional[int] = Field(default=None, ge=0)
    recorded_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_runout(self):
        if self.run_it_times is not None and self.wins_in_runout is not None:
            if self.wins_in_runout > self.run_it_times:
                raise ValueError("Wins in runout cannot exceed run-it times")
        return self


# ---------- Live sessions ----------

class LiveSessionStart(_Input):
    store_id: Optional[str] = None
    game_type: Optional[GameType] = None
    cash_game_id: Optional[str] = None
    tournament_id: Optional[str] = None
    buy_in: int = Field(gt=0)
    initial_stack: Optional[int] = Field(default=None, gt=0)
    timer_started_at: Optional[datetime] = None


class LiveSessionEnd(_Input):
    cash_out: int = Field(ge=0)
    recorded_at: Optional[datetime] = None
    final_position: Optional[int] = Field(default=None, ge=1)


class StackUpdate(_Input):
    amount: int = Field(gt=0)
    recorded_at: Optional[datetime] = None


class ChipPurchase(_Input):
    """Rebuy or addon."""
    cost: int = Field(gt=0)
    chips: Optional[int] = Field(default=None, gt=0)
    recorded_at: Optional[datetime] = None


class HandsPassed(_Input):
    count: int = Field(gt=0)


class SeatPlayer(_Input):
    seat_number: int = Field(ge=1, le=9)
    player_name: str = Field(min_length=1)
    player_id: Optional[str] = None


class EventEdit(_Input):
    amount: Optional[int] = Field(default=None, gt=0)
    recorded_at: Optional[datetime] = None


class TablemateCreate(_Input):
    nickname: str = Field(min_length=1, max_length=100)
    seat_number: Optional[int] = Field(default=None, ge=1, le=10)
    session_notes: Optional[str] = None
    player_id: Optional[str] = None


class TablemateUpdate(_Input):
    nickname: Optional[str] = Field(default=None, min_length=1, max_length=100)
    seat_number: Optional[int] = Field(default=None, ge=1, le=10)
    session_notes: Optional[str] = None
    player_id: Optional[str] = None


class TablemateConvert(_Input):
    player_name: str = Field(min_length=1, max_length=255)
    general_notes: Optional[str] = None


# ---------- Players ----------

class PlayerCreate(_Input):
    name: str = Field(min_length=1, max_length=255)
    general_notes: Optional[str] = None


class PlayerUpdate(_Input):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    general_notes: Optional[str] = None


def _check_color(v: Optional[str]) -> Optional[str]:
    if v is not None and not _COLOR_RE.match(v):
        raise ValueError("Enter a valid colour code (#RRGGBB)")
    return v


class TagCreate(_Input):
    name: str = Field(min_length=1, max_length=100)
    color: Optional[str] = None

    @field_validator("color")
    @classmethod
    def _validate_color(cls, v: Optional[str]):
        return _check_color(v)


class TagUpdate(_Input):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = None

    @field_validator("color")
    @classmethod
    def _validate_color(cls, v: Optional[str]):
        return _check_color(v)


def _check_note_date(v):
    if isinstance(v, date):
        return v.isoformat()
    if v is not None and not _DATE_RE.match(str(v)):
        raise ValueError("Date must be YYYY-MM-DD")
    return v


class NoteCreate(_Input):
    note_date: str
    content: str = Field(min_length=1)

    @field_validator("note_date", mode="before")
    @classmethod
    def _validate_date(cls, v):
        return _check_note_date(v)


class NoteUpdate(_Input):
    note_date: Optional[str] = None
    content: Optional[str] = Field(default=None, min_length=1)

    @field_validator("note_date", mode="before")
    @classmethod
    def _validate_date(cls, v):
        return _check_note_date(v)


# ---------- Tasks ----------

class TaskCreate(_Input):
    content: str = Field(min_length=1, max_length=TASK_MAX_LENGTH)

    @field_validator("content")
    @classmethod
    def _not_blank(cls, v: str):
        if not v.strip():
            raise ValueError("Task content cannot be blank")
        return v.strip()


# ---------- Account ----------

class DisplayNameUpdate(_Input):
    display_name: str = Field(min_length=1, max_length=255)
