"""Pydantic models for API I/O."""

from .score import RoundScoresResponse, StandingResponse, SubstitutionResponse, TeamScoreResponse
from .settlement import (
    RecipientRequest,
    RoundStatusResponse,
    SettleRequest,
    SettlementResponse,
    SweepResponse,
    WinnersResponse,
    WithdrawalResponse,
)

__all__ = [
    "RecipientRequest",
    "RoundScoresResponse",
    "RoundStatusResponse",
    "SettleRequest",
    "SettlementResponse",
    "StandingResponse",
    "SubstitutionResponse",
    "SweepResponse",
    "TeamScoreResponse",
    "WinnersResponse",
    "WithdrawalResponse",
]
