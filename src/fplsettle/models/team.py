"""Team-level models: submissions, resolved lineups and calculated scores."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

from .performance import Position


class Formation(BaseModel):
    """Outfield shape of a starting eleven; exactly one goalkeeper is implied."""

    defenders: int = Field(..., ge=0)
    midfielders: int = Field(..., ge=0)
    forwards: int = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, value):
        if isinstance(value, str):
            parts = value.replace(" ", "").split("-")
            if len(parts) != 3 or not all(part.isdigit() for part in parts):
                raise ValueError(f"formation must look like '4-4-2', got {value!r}")
            value = [int(part) for part in parts]
        if isinstance(value, (list, tuple)):
            if len(value) != 3:
                raise ValueError("formation needs (defenders, midfielders, forwards)")
            value = dict(zip(("defenders", "midfielders", "forwards"), value))
        return value

    @property
    def label(self) -> str:
        return f"{self.defenders}-{self.midfielders}-{self.forwards}"

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.defenders, self.midfielders, self.forwards)

    def required_counts(self) -> Dict[Position, int]:
        return {
            Position.GOALKEEPER: 1,
            Position.DEFENDER: self.defenders,
            Position.MIDFIELDER: self.midfielders,
            Position.FORWARD: self.forwards,
        }


class SubmittedTeam(BaseModel):
    """An entrant's squad for one round, referenced by squad slot index."""

    round_id: int = Field(..., ge=1)
    entrant: str = Field(..., min_length=1)
    squad: Tuple[str, ...]
    starting_slots: Tuple[int, ...]
    captain_slot: int
    vice_captain_slot: int
    formation: Formation

    model_config = ConfigDict(frozen=True)

    def bench_slots(self) -> Tuple[int, ...]:
        starting = set(self.starting_slots)
        return tuple(slot for slot in range(len(self.squad)) if slot not in starting)


class Substitution(BaseModel):
    slot_out: int
    slot_in: int
    player_out: str
    player_in: str

    model_config = ConfigDict(frozen=True)


class EffectiveLineup(BaseModel):
    """Who actually counts after automatic substitution."""

    slots: Tuple[int, ...]
    bench_slots: Tuple[int, ...]
    substitutions: Tuple[Substitution, ...] = ()

    model_config = ConfigDict(frozen=True)


class TeamScore(BaseModel):
    round_id: int = Field(..., ge=1)
    entrant: str = Field(..., min_length=1)
    total_points: int = Field(..., ge=0)
    slot_points: Tuple[int, ...]
    effective_slots: Tuple[int, ...]
    bench_points: int = Field(..., ge=0)
    captain_bonus: int = Field(..., ge=0)
    captain_slot_used: Optional[int] = None
    goals: int = Field(default=0, ge=0)
    cards: int = Field(default=0, ge=0)
    substitutions: Tuple[Substitution, ...] = ()
    calculated: bool = True
    calculated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_totals(self) -> "TeamScore":
        if len(self.slot_points) != len(self.effective_slots):
            raise ValueError("slot_points must align with effective_slots")
        if self.total_points != sum(self.slot_points) + self.captain_bonus:
            raise ValueError("total_points must equal slot points plus captain bonus")
        return self
