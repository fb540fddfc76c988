from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from fplsettle.models import RemainderSweep, RoundStatus, SettlementRecord, WithdrawalRecord


class RoundStatusResponse(BaseModel):
    round_id: int
    status: RoundStatus
    ready_for_settlement: bool
    scored_entrants: int


class SettlementResponse(BaseModel):
    round_id: int
    winners: List[str]
    share: int
    total_prize: int
    remainder: int
    winning_score: int
    settled_at: datetime

    @classmethod
    def from_record(cls, record: SettlementRecord) -> "SettlementResponse":
        return cls(
            round_id=record.round_id,
            winners=list(record.winners),
            share=record.share,
            total_prize=record.total_prize,
            remainder=record.remainder,
            winning_score=record.winning_score,
            settled_at=record.settled_at,
        )


class WinnersResponse(BaseModel):
    round_id: int
    winners: List[str]
    share: int


class SettleRequest(BaseModel):
    as_of: Optional[datetime] = None


class RecipientRequest(BaseModel):
    recipient: str = Field(..., min_length=1)


class WithdrawalResponse(BaseModel):
    round_id: int
    recipient: str
    amount: int
    withdrawn_at: datetime

    @classmethod
    def from_record(cls, record: WithdrawalRecord) -> "WithdrawalResponse":
        return cls(
            round_id=record.round_id,
            recipient=record.recipient,
            amount=record.amount,
            withdrawn_at=record.withdrawn_at,
        )


class SweepResponse(BaseModel):
    round_id: int
    recipient: str
    amount: int
    swept_at: datetime

    @classmethod
    def from_record(cls, sweep: RemainderSweep) -> "SweepResponse":
        return cls(
            round_id=sweep.round_id,
            recipient=sweep.recipient,
            amount=sweep.amount,
            swept_at=sweep.swept_at,
        )
