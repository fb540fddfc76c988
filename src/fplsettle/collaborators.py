"""Interfaces of the external systems the engine reads from and notifies."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from fplsettle.models import PlayerPerformance, PoolState, RosterEntry, SubmittedTeam


class RosterSource(Protocol):
    def get_submitted_team(self, round_id: int, entrant: str) -> Optional[SubmittedTeam]:
        ...

    def get_roster_entry(self, player_id: str) -> Optional[RosterEntry]:
        ...


class PoolSource(Protocol):
    def get_pool(self, round_id: int) -> Optional[PoolState]:
        ...

    def get_participants(self, round_id: int) -> Sequence[str]:
        ...

    def finalize_pool(self, round_id: int, primary_winner: str, winning_score: int) -> None:
        ...


class AttestationSource(Protocol):
    def get_performance(self, round_id: int, player_id: str) -> Optional[PlayerPerformance]:
        ...
