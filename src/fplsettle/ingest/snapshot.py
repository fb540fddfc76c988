"""Helpers to load round snapshots and attested performance CSVs."""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ValidationError

from fplsettle.errors import InvalidInputError
from fplsettle.models import PlayerPerformance, PoolState, RosterEntry, SubmittedTeam


logger = logging.getLogger(__name__)


DEFAULT_PERFORMANCE_MAPPING = {
    "player_id": "player_id",
    "goals": "goals",
    "assists": "assists",
    "minutes_played": "minutes",
    "clean_sheet": "clean_sheet",
    "saves": "saves",
    "yellow_card": "yellow_card",
    "red_card": "red_card",
    "own_goal": "own_goal",
    "penalty_miss": "penalty_miss",
    "bonus_points": "bonus",
    "validated": "validated",
}


class RoundSnapshot:
    """In-memory roster, pool and attestation data for one or more rounds."""

    def __init__(
        self,
        *,
        roster: Iterable[RosterEntry] = (),
        pools: Iterable[PoolState] = (),
        teams: Iterable[SubmittedTeam] = (),
        performances: Iterable[PlayerPerformance] = (),
    ):
        self._roster: Dict[str, RosterEntry] = {}
        self._pools: Dict[int, PoolState] = {}
        self._teams: Dict[Tuple[int, str], SubmittedTeam] = {}
        self._performances: Dict[Tuple[int, str], PlayerPerformance] = {}
        for entry in roster:
            self.add_roster_entry(entry)
        for pool in pools:
            self.add_pool(pool)
        for team in teams:
            self.add_team(team)
        self.add_performances(performances)

    def add_roster_entry(self, entry: RosterEntry) -> None:
        self._roster[entry.player_id] = entry

    def add_pool(self, pool: PoolState) -> None:
        self._pools[pool.round_id] = pool

    def add_team(self, team: SubmittedTeam) -> None:
        self._teams[(team.round_id, team.entrant)] = team

    def add_performances(self, performances: Iterable[PlayerPerformance]) -> None:
        for performance in performances:
            self._performances[(performance.round_id, performance.player_id)] = performance

    def get_roster_entry(self, player_id: str) -> Optional[RosterEntry]:
        return self._roster.get(player_id)

    def get_submitted_team(self, round_id: int, entrant: str) -> Optional[SubmittedTeam]:
        return self._teams.get((round_id, entrant))

    def get_pool(self, round_id: int) -> Optional[PoolState]:
        return self._pools.get(round_id)

    def get_participants(self, round_id: int) -> Sequence[str]:
        pool = self._pools.get(round_id)
        return pool.participants if pool else ()

    def finalize_pool(self, round_id: int, primary_winner: str, winning_score: int) -> None:
        pool = self._pools.get(round_id)
        if pool is None:
            raise KeyError(f"No pool for round {round_id}")
        self._pools[round_id] = pool.model_copy(
            update={"finalized": True, "winner": primary_winner, "winning_score": winning_score}
        )

    def get_performance(self, round_id: int, player_id: str) -> Optional[PlayerPerformance]:
        return self._performances.get((round_id, player_id))


def load_snapshot(path: Path) -> RoundSnapshot:
    """Read a JSON snapshot with ``roster``, ``pools``, ``teams`` and ``performances`` lists."""

    data = json.loads(path.read_text(encoding="utf-8"))
    try:
        snapshot = RoundSnapshot(
            roster=[RosterEntry.model_validate(item) for item in data.get("roster", [])],
            pools=[PoolState.model_validate(item) for item in data.get("pools", [])],
            teams=[SubmittedTeam.model_validate(item) for item in data.get("teams", [])],
            performances=[PlayerPerformance.model_validate(item) for item in data.get("performances", [])],
        )
    except ValidationError as exc:
        raise InvalidInputError(f"snapshot {path} is malformed: {exc}") from exc
    logger.info(
        "Loaded snapshot %s (%s players, %s pools, %s teams, %s performances)",
        path,
        len(data.get("roster", [])),
        len(data.get("pools", [])),
        len(data.get("teams", [])),
        len(data.get("performances", [])),
    )
    return snapshot


def _parse_flag(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "t", "yes", "y"}


def _parse_count(value: Optional[str], *, column: str) -> int:
    text = (value or "").strip()
    if not text:
        return 0
    try:
        return int(float(text))
    except ValueError:
        raise ValueError(f"{column} '{value}' is not numeric") from None


class PerformanceRow(BaseModel):
    raw_player_id: str
    raw_goals: Optional[str] = None
    raw_assists: Optional[str] = None
    raw_minutes: Optional[str] = None
    raw_clean_sheet: Optional[str] = None
    raw_saves: Optional[str] = None
    raw_yellow_card: Optional[str] = None
    raw_red_card: Optional[str] = None
    raw_own_goal: Optional[str] = None
    raw_penalty_miss: Optional[str] = None
    raw_bonus: Optional[str] = None
    raw_validated: Optional[str] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, str], mapping: Mapping[str, str]) -> "PerformanceRow":
        def extract(key: str) -> Optional[str]:
            column = mapping.get(key)
            if column is None:
                return None
            value = row.get(column)
            return value.strip() if value is not None else None

        return cls(
            raw_player_id=extract("player_id") or "",
            raw_goals=extract("goals"),
            raw_assists=extract("assists"),
            raw_minutes=extract("minutes_played"),
            raw_clean_sheet=extract("clean_sheet"),
            raw_saves=extract("saves"),
            raw_yellow_card=extract("yellow_card"),
            raw_red_card=extract("red_card"),
            raw_own_goal=extract("own_goal"),
            raw_penalty_miss=extract("penalty_miss"),
            raw_bonus=extract("bonus_points"),
            raw_validated=extract("validated"),
        )

    def to_performance(self, round_id: int, *, default_validated: bool) -> PlayerPerformance:
        # A dismissal supersedes a caution from the same match.
        if _parse_flag(self.raw_red_card):
            penalty = -3
        elif _parse_flag(self.raw_yellow_card):
            penalty = -1
        else:
            penalty = 0
        validated = default_validated if self.raw_validated in (None, "") else _parse_flag(self.raw_validated)
        return PlayerPerformance(
            round_id=round_id,
            player_id=self.raw_player_id,
            goals=_parse_count(self.raw_goals, column="goals"),
            assists=_parse_count(self.raw_assists, column="assists"),
            minutes_played=_parse_count(self.raw_minutes, column="minutes"),
            clean_sheet=_parse_flag(self.raw_clean_sheet),
            saves=_parse_count(self.raw_saves, column="saves"),
            disciplinary_penalty=penalty,
            own_goal=_parse_flag(self.raw_own_goal),
            penalty_miss=_parse_flag(self.raw_penalty_miss),
            bonus_points=_parse_count(self.raw_bonus, column="bonus"),
            validated=validated,
        )


def load_performance_csv(
    path: Path,
    *,
    round_id: int,
    mapping: Mapping[str, str] | None = None,
    default_validated: bool = False,
) -> List[PlayerPerformance]:
    """Read attested statistics for ``round_id``.

    Rows without a ``validated`` column value fall back to ``default_validated``;
    rows without a player id are skipped.
    """

    mapping = {**DEFAULT_PERFORMANCE_MAPPING, **(mapping or {})}
    performances: List[PlayerPerformance] = []
    skipped = 0
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for line_no, raw in enumerate(reader, start=2):
            row = PerformanceRow.from_mapping(raw, mapping)
            if not row.raw_player_id:
                skipped += 1
                continue
            try:
                performances.append(row.to_performance(round_id, default_validated=default_validated))
            except ValueError as exc:
                raise InvalidInputError(f"{path}:{line_no}: {exc}", round_id=round_id) from exc
    if skipped:
        logger.warning("Skipped %s row(s) without a player id in %s", skipped, path)
    logger.info("Loaded %s performance row(s) for round %s from %s", len(performances), round_id, path)
    return performances
