"""Player-level models: positions, roster reference data and attested match stats."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict


class Position(str, Enum):
    GOALKEEPER = "GK"
    DEFENDER = "DEF"
    MIDFIELDER = "MID"
    FORWARD = "FWD"

    @classmethod
    def parse(cls, value: Any) -> "Position":
        """Accept enum values, codes, full names or the roster's 0-3 integer codes."""

        if isinstance(value, Position):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            if not 0 <= value < len(_POSITION_BY_INDEX):
                raise ValueError(f"position index {value!r} is out of range")
            return _POSITION_BY_INDEX[value]
        text = str(value).strip().upper()
        if text.isdigit():
            return cls.parse(int(text))
        if text in _POSITION_ALIASES:
            return _POSITION_ALIASES[text]
        raise ValueError(f"unknown position {value!r}")


_POSITION_BY_INDEX = (
    Position.GOALKEEPER,
    Position.DEFENDER,
    Position.MIDFIELDER,
    Position.FORWARD,
)

_POSITION_ALIASES = {
    "GK": Position.GOALKEEPER,
    "GKP": Position.GOALKEEPER,
    "GOALKEEPER": Position.GOALKEEPER,
    "DEF": Position.DEFENDER,
    "DEFENDER": Position.DEFENDER,
    "MID": Position.MIDFIELDER,
    "MIDFIELDER": Position.MIDFIELDER,
    "FWD": Position.FORWARD,
    "FW": Position.FORWARD,
    "FORWARD": Position.FORWARD,
}

# Tally order used when comparing a lineup against a formation.
POSITION_ORDER = _POSITION_BY_INDEX


class RosterEntry(BaseModel):
    """Static reference data for one player."""

    player_id: str = Field(..., min_length=1)
    position: Position
    name: str = ""
    team_id: Optional[int] = None
    price: Optional[int] = Field(default=None, ge=0)
    active: bool = True

    model_config = ConfigDict(frozen=True)

    @field_validator("position", mode="before")
    @classmethod
    def _parse_position(cls, value: Any) -> Position:
        return Position.parse(value)


class PlayerPerformance(BaseModel):
    """One player's attested statistics for one round."""

    round_id: int = Field(..., ge=1)
    player_id: str = Field(..., min_length=1)
    goals: int = Field(default=0, ge=0)
    assists: int = Field(default=0, ge=0)
    minutes_played: int = Field(default=0, ge=0)
    clean_sheet: bool = False
    saves: int = Field(default=0, ge=0)
    disciplinary_penalty: Literal[0, -1, -3] = 0
    own_goal: bool = False
    penalty_miss: bool = False
    bonus_points: int = Field(default=0, ge=0)
    validated: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def played(self) -> bool:
        return self.validated and self.minutes_played > 0

    @property
    def cards(self) -> int:
        return 0 if self.disciplinary_penalty == 0 else 1
