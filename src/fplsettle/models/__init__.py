"""Canonical models shared by the scoring, settlement and API layers."""

from .performance import POSITION_ORDER, PlayerPerformance, Position, RosterEntry
from .settlement import (
    PoolState,
    RemainderSweep,
    RoundStatus,
    SettlementRecord,
    WithdrawalRecord,
)
from .team import EffectiveLineup, Formation, SubmittedTeam, Substitution, TeamScore

__all__ = [
    "POSITION_ORDER",
    "EffectiveLineup",
    "Formation",
    "PlayerPerformance",
    "PoolState",
    "Position",
    "RemainderSweep",
    "RosterEntry",
    "RoundStatus",
    "SettlementRecord",
    "SubmittedTeam",
    "Substitution",
    "TeamScore",
    "WithdrawalRecord",
]
