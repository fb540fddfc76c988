"""Scoring rule sets for supported competitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Mapping, Tuple

from fplsettle.models.performance import Position


@dataclass(frozen=True)
class ScoringRules:
    key: str
    squad_size: int
    starting_size: int
    full_appearance_minutes: int
    appearance_points: int
    full_appearance_points: int
    goal_points: Mapping[Position, int]
    assist_points: int
    clean_sheet_points: Mapping[Position, int]
    saves_per_point: int
    own_goal_penalty: int
    penalty_miss_penalty: int
    formations: FrozenSet[Tuple[int, int, int]]

    @property
    def bench_size(self) -> int:
        return self.squad_size - self.starting_size


DEFAULT_RULESET = "FPL"

_SCORING_RULES: Dict[str, ScoringRules] = {
    "FPL": ScoringRules(
        key="FPL",
        squad_size=15,
        starting_size=11,
        full_appearance_minutes=60,
        appearance_points=1,
        full_appearance_points=2,
        goal_points={
            Position.GOALKEEPER: 6,
            Position.DEFENDER: 6,
            Position.MIDFIELDER: 5,
            Position.FORWARD: 4,
        },
        assist_points=3,
        clean_sheet_points={
            Position.GOALKEEPER: 4,
            Position.DEFENDER: 4,
            Position.MIDFIELDER: 1,
            Position.FORWARD: 0,
        },
        saves_per_point=3,
        own_goal_penalty=2,
        penalty_miss_penalty=2,
        formations=frozenset(
            {
                (3, 4, 3),
                (3, 5, 2),
                (4, 3, 3),
                (4, 4, 2),
                (4, 5, 1),
                (5, 2, 3),
                (5, 3, 2),
                (5, 4, 1),
            }
        ),
    ),
}


def iter_rules() -> Iterable[ScoringRules]:
    """Return an iterator of all configured rule sets."""

    return _SCORING_RULES.values()


def get_rules(key: str = DEFAULT_RULESET) -> ScoringRules:
    """Fetch a rule set by key, raising KeyError if missing."""

    normalized = key.strip().upper()
    if normalized not in _SCORING_RULES:
        raise KeyError(f"No scoring rules configured for {key!r}")
    return _SCORING_RULES[normalized]
