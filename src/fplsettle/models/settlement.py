"""Pool and settlement records."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RoundStatus(str, Enum):
    OPEN = "open"
    SETTLED = "settled"
    WITHDRAWN = "withdrawn"


class PoolState(BaseModel):
    """Snapshot of the external pool collaborator's view of a round."""

    round_id: int = Field(..., ge=1)
    total_prize: int = Field(..., ge=0)
    participants: Tuple[str, ...] = ()
    finalized: bool = False
    deadline: Optional[datetime] = None
    entry_fee: Optional[int] = Field(default=None, ge=0)
    winner: Optional[str] = None
    winning_score: Optional[int] = None

    model_config = ConfigDict(frozen=True)


class SettlementRecord(BaseModel):
    round_id: int = Field(..., ge=1)
    winners: Tuple[str, ...] = Field(..., min_length=1)
    share: int = Field(..., ge=0)
    total_prize: int = Field(..., ge=0)
    remainder: int = Field(..., ge=0)
    winning_score: int = Field(..., ge=0)
    transfer_ids: Tuple[str, ...] = ()
    settled_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_conservation(self) -> "SettlementRecord":
        if self.share * len(self.winners) + self.remainder != self.total_prize:
            raise ValueError("share x winners + remainder must equal total_prize")
        if self.remainder >= len(self.winners):
            raise ValueError("remainder must be smaller than the number of winners")
        return self

    @property
    def primary_winner(self) -> str:
        return self.winners[0]

    @property
    def disbursed(self) -> int:
        return self.share * len(self.winners)


class WithdrawalRecord(BaseModel):
    round_id: int = Field(..., ge=1)
    recipient: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0)
    transfer_ids: Tuple[str, ...] = ()
    withdrawn_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(frozen=True)


class RemainderSweep(BaseModel):
    round_id: int = Field(..., ge=1)
    recipient: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)
    transfer_ids: Tuple[str, ...] = ()
    swept_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(frozen=True)
