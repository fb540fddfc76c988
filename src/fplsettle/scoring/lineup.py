"""Automatic substitution for players who did not take part in a round."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

from fplsettle.config.scoring import ScoringRules, get_rules
from fplsettle.errors import InvalidInputError
from fplsettle.models import (
    POSITION_ORDER,
    EffectiveLineup,
    PlayerPerformance,
    Position,
    SubmittedTeam,
    Substitution,
)


logger = logging.getLogger(__name__)


def position_tally(positions: Iterable[Position]) -> Dict[Position, int]:
    counts = Counter(positions)
    return {position: counts.get(position, 0) for position in POSITION_ORDER}


def check_submitted_team(team: SubmittedTeam, rules: Optional[ScoringRules] = None) -> None:
    """Reject submissions the resolver cannot work with.

    Squad composition and budget are validated upstream; this only guards the
    slot references and the formation the engine relies on.
    """

    rules = rules or get_rules()
    round_id = team.round_id
    if len(team.squad) != rules.squad_size:
        raise InvalidInputError(
            f"squad must hold {rules.squad_size} players, got {len(team.squad)}", round_id=round_id
        )
    if len(set(team.squad)) != len(team.squad):
        raise InvalidInputError("squad contains duplicate players", round_id=round_id)
    if len(team.starting_slots) != rules.starting_size:
        raise InvalidInputError(
            f"starting lineup must hold {rules.starting_size} slots, got {len(team.starting_slots)}",
            round_id=round_id,
        )
    if len(set(team.starting_slots)) != len(team.starting_slots):
        raise InvalidInputError("starting lineup repeats a squad slot", round_id=round_id)
    for slot in (*team.starting_slots, team.captain_slot, team.vice_captain_slot):
        if not 0 <= slot < len(team.squad):
            raise InvalidInputError(f"squad slot {slot} is out of range", round_id=round_id)
    if team.captain_slot == team.vice_captain_slot:
        raise InvalidInputError("captain and vice-captain must be different slots", round_id=round_id)
    starting = set(team.starting_slots)
    if team.captain_slot not in starting or team.vice_captain_slot not in starting:
        raise InvalidInputError("captain and vice-captain must both start", round_id=round_id)
    if team.formation.as_tuple() not in rules.formations:
        raise InvalidInputError(f"formation {team.formation.label} is not allowed", round_id=round_id)


def _played(performance: Optional[PlayerPerformance]) -> bool:
    return performance is not None and performance.played


def resolve_lineup(
    team: SubmittedTeam,
    positions: Sequence[Position],
    performances: Sequence[Optional[PlayerPerformance]],
) -> EffectiveLineup:
    """Replace non-playing starters with the first eligible bench player.

    ``positions`` and ``performances`` are indexed by squad slot. Starters are
    visited in declared order and bench players in squad order; a bench player
    is used at most once. A swap must leave the (GK, DEF, MID, FWD) tally equal
    to the declared formation. Starters with no eligible replacement stay in
    the lineup and score nothing.
    """

    if len(positions) != len(team.squad) or len(performances) != len(team.squad):
        raise InvalidInputError("positions and performances must cover the whole squad", round_id=team.round_id)

    required = team.formation.required_counts()
    if position_tally(positions[slot] for slot in team.starting_slots) != required:
        raise InvalidInputError(
            f"starting lineup does not match formation {team.formation.label}", round_id=team.round_id
        )
    effective: List[int] = list(team.starting_slots)
    bench = team.bench_slots()
    used: set[int] = set()
    substitutions: List[Substitution] = []

    for index, slot in enumerate(team.starting_slots):
        if _played(performances[slot]):
            continue
        for candidate in bench:
            if candidate in used or not _played(performances[candidate]):
                continue
            if positions[candidate] != positions[slot]:
                trial = list(effective)
                trial[index] = candidate
                if position_tally(positions[s] for s in trial) != required:
                    continue
            effective[index] = candidate
            used.add(candidate)
            substitutions.append(
                Substitution(
                    slot_out=slot,
                    slot_in=candidate,
                    player_out=team.squad[slot],
                    player_in=team.squad[candidate],
                )
            )
            logger.debug(
                "Round %s %s: %s (slot %s) replaced by %s (slot %s)",
                team.round_id,
                team.entrant,
                team.squad[slot],
                slot,
                team.squad[candidate],
                candidate,
            )
            break

    effective_set = set(effective)
    return EffectiveLineup(
        slots=tuple(effective),
        bench_slots=tuple(slot for slot in range(len(team.squad)) if slot not in effective_set),
        substitutions=tuple(substitutions),
    )
