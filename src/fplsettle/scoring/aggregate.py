"""Team score aggregation over a resolved lineup."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from fplsettle.config.scoring import ScoringRules, get_rules
from fplsettle.models import EffectiveLineup, PlayerPerformance, Position, SubmittedTeam, TeamScore

from .points import calculate_points


def aggregate_team_score(
    team: SubmittedTeam,
    lineup: EffectiveLineup,
    positions: Sequence[Position],
    performances: Sequence[Optional[PlayerPerformance]],
    rules: Optional[ScoringRules] = None,
    *,
    calculated_at: Optional[datetime] = None,
) -> TeamScore:
    """Build the TeamScore for one entrant.

    The captain bonus repeats the captain's own points (or the vice-captain's
    when the captain was substituted out), so a playing captain counts twice.
    Bench points are kept for tie-breaking only.
    """

    rules = rules or get_rules()
    points = [calculate_points(performances[slot], positions[slot], rules) for slot in range(len(team.squad))]

    slot_points = tuple(points[slot] for slot in lineup.slots)
    effective = set(lineup.slots)
    if team.captain_slot in effective:
        captain_slot_used: Optional[int] = team.captain_slot
    elif team.vice_captain_slot in effective:
        captain_slot_used = team.vice_captain_slot
    else:
        captain_slot_used = None
    captain_bonus = points[captain_slot_used] if captain_slot_used is not None else 0

    goals = 0
    cards = 0
    for slot in lineup.slots:
        performance = performances[slot]
        if performance is None or not performance.played:
            continue
        goals += performance.goals
        cards += performance.cards

    extra = {"calculated_at": calculated_at} if calculated_at is not None else {}
    return TeamScore(
        round_id=team.round_id,
        entrant=team.entrant,
        total_points=sum(slot_points) + captain_bonus,
        slot_points=slot_points,
        effective_slots=lineup.slots,
        bench_points=sum(points[slot] for slot in lineup.bench_slots),
        captain_bonus=captain_bonus,
        captain_slot_used=captain_slot_used,
        goals=goals,
        cards=cards,
        substitutions=lineup.substitutions,
        **extra,
    )
