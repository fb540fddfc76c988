"""Point calculation, lineup resolution and team score aggregation."""

from .aggregate import aggregate_team_score
from .lineup import check_submitted_team, position_tally, resolve_lineup
from .points import calculate_points

__all__ = [
    "aggregate_team_score",
    "calculate_points",
    "check_submitted_team",
    "position_tally",
    "resolve_lineup",
]
