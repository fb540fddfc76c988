from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from fplsettle.models import TeamScore
from fplsettle.settlement import Standing


class SubstitutionResponse(BaseModel):
    slot_out: int
    slot_in: int
    player_out: str
    player_in: str


class TeamScoreResponse(BaseModel):
    round_id: int
    entrant: str
    total_points: int
    bench_points: int
    captain_bonus: int
    captain_slot_used: Optional[int]
    goals: int
    cards: int
    effective_slots: List[int]
    slot_points: List[int]
    substitutions: List[SubstitutionResponse]
    calculated_at: datetime

    @classmethod
    def from_score(cls, score: TeamScore) -> "TeamScoreResponse":
        return cls(
            round_id=score.round_id,
            entrant=score.entrant,
            total_points=score.total_points,
            bench_points=score.bench_points,
            captain_bonus=score.captain_bonus,
            captain_slot_used=score.captain_slot_used,
            goals=score.goals,
            cards=score.cards,
            effective_slots=list(score.effective_slots),
            slot_points=list(score.slot_points),
            substitutions=[SubstitutionResponse(**sub.model_dump()) for sub in score.substitutions],
            calculated_at=score.calculated_at,
        )


class RoundScoresResponse(BaseModel):
    round_id: int
    calculated: List[TeamScoreResponse]


class StandingResponse(BaseModel):
    rank: int
    entrant: str
    total_points: int
    bench_points: int
    goals: int
    cards: int
    captain_bonus: int

    @classmethod
    def from_standing(cls, standing: Standing) -> "StandingResponse":
        return cls(
            rank=standing.rank,
            entrant=standing.entrant,
            total_points=standing.total_points,
            bench_points=standing.bench_points,
            goals=standing.goals,
            cards=standing.cards,
            captain_bonus=standing.captain_bonus,
        )
