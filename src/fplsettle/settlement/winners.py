"""Winner determination and standings for a round."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Sequence, Tuple

from fplsettle.errors import InvalidInputError, NotReadyError
from fplsettle.models import TeamScore


# Each stage keeps the candidates holding the best value of one attribute.
_CASCADE: Tuple[Tuple[str, Callable[[Iterable[int]], int]], ...] = (
    ("total_points", max),
    ("bench_points", max),
    ("goals", max),
    ("cards", min),
)


@dataclass(frozen=True)
class Standing:
    rank: int
    entrant: str
    total_points: int
    bench_points: int
    goals: int
    cards: int
    captain_bonus: int


def _check_scores(scores: Sequence[TeamScore]) -> None:
    if not scores:
        raise NotReadyError("no participant scores to rank")
    round_ids = {score.round_id for score in scores}
    if len(round_ids) != 1:
        raise InvalidInputError(f"scores span several rounds: {sorted(round_ids)}")
    round_id = round_ids.pop()
    entrants = [score.entrant for score in scores]
    if len(set(entrants)) != len(entrants):
        raise InvalidInputError("an entrant appears more than once", round_id=round_id)
    pending = [score.entrant for score in scores if not score.calculated]
    if pending:
        raise NotReadyError(f"{len(pending)} score(s) not calculated yet", round_id=round_id)


def determine_winners(scores: Sequence[TeamScore]) -> Tuple[str, ...]:
    """Return the winning entrants, narrowing ties stage by stage.

    Candidates still level after every stage are joint winners. The result
    keeps the order in which ``scores`` were supplied.
    """

    _check_scores(scores)
    candidates = list(scores)
    for attribute, best_of in _CASCADE:
        if len(candidates) == 1:
            break
        best = best_of(getattr(score, attribute) for score in candidates)
        candidates = [score for score in candidates if getattr(score, attribute) == best]
    return tuple(score.entrant for score in candidates)


def tiebreak_key(score: TeamScore) -> Tuple[int, int, int, int]:
    return (-score.total_points, -score.bench_points, -score.goals, score.cards)


def rank_standings(scores: Sequence[TeamScore]) -> List[Standing]:
    """Order every entrant by the winner cascade; fully tied entrants share a rank."""

    _check_scores(scores)
    ordered = sorted(scores, key=lambda score: (tiebreak_key(score), score.entrant))
    standings: List[Standing] = []
    previous_key = None
    rank = 0
    for position, score in enumerate(ordered, start=1):
        key = tiebreak_key(score)
        if key != previous_key:
            rank = position
            previous_key = key
        standings.append(
            Standing(
                rank=rank,
                entrant=score.entrant,
                total_points=score.total_points,
                bench_points=score.bench_points,
                goals=score.goals,
                cards=score.cards,
                captain_bonus=score.captain_bonus,
            )
        )
    return standings
