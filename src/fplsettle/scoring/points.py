"""Per-player point calculation."""

from __future__ import annotations

from typing import Optional

from fplsettle.config.scoring import ScoringRules, get_rules
from fplsettle.models import PlayerPerformance, Position


def calculate_points(
    performance: Optional[PlayerPerformance],
    position: Position,
    rules: Optional[ScoringRules] = None,
) -> int:
    """Return the non-negative point total for one attested performance.

    Missing or unvalidated records and zero-minute appearances score 0.
    """

    if performance is None or not performance.validated or performance.minutes_played == 0:
        return 0
    rules = rules or get_rules()

    full_match = performance.minutes_played >= rules.full_appearance_minutes
    points = rules.full_appearance_points if full_match else rules.appearance_points
    points += performance.goals * rules.goal_points[position]
    points += performance.assists * rules.assist_points
    if full_match and performance.clean_sheet:
        points += rules.clean_sheet_points[position]
    if position is Position.GOALKEEPER:
        points += performance.saves // rules.saves_per_point
    points += performance.bonus_points

    # disciplinary_penalty is stored signed (-1 caution, -3 dismissal).
    points += performance.disciplinary_penalty
    if performance.own_goal:
        points -= rules.own_goal_penalty
    if performance.penalty_miss:
        points -= rules.penalty_miss_penalty
    return max(0, points)
