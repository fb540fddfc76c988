"""Prize distribution with all-or-nothing settlement semantics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple, TypeVar

from fplsettle.errors import InvalidInputError, TransferFailureError
from fplsettle.models import RemainderSweep, SettlementRecord, WithdrawalRecord
from fplsettle.persistence import LedgerStore, TransferRecord

from .treasury import TransferError, Treasury


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PayoutPlan:
    round_id: int
    winners: Tuple[str, ...]
    total_prize: int
    share: int
    remainder: int


def plan_payout(round_id: int, winners: Sequence[str], total_prize: int) -> PayoutPlan:
    """Split ``total_prize`` evenly; the division remainder stays in the pool."""

    winners = tuple(winners)
    if not winners:
        raise InvalidInputError("at least one winner is required", round_id=round_id)
    if len(set(winners)) != len(winners):
        raise InvalidInputError("winners must be distinct", round_id=round_id)
    if total_prize < 0:
        raise InvalidInputError(f"total prize cannot be negative, got {total_prize}", round_id=round_id)
    share, remainder = divmod(total_prize, len(winners))
    return PayoutPlan(
        round_id=round_id,
        winners=winners,
        total_prize=total_prize,
        share=share,
        remainder=remainder,
    )


class PrizeDistributor:
    """Moves funds through a treasury and commits the matching ledger record.

    Transfers run first; the record is committed only when every transfer
    succeeded. Any failure reverses the transfers already made, so a round is
    never left paid but unsettled, or settled but unpaid.
    """

    def __init__(self, store: LedgerStore, treasury: Treasury):
        self._store = store
        self._treasury = treasury

    def distribute(self, plan: PayoutPlan, *, winning_score: int) -> SettlementRecord:
        legs = [(winner, plan.share) for winner in plan.winners]

        def commit(transfers: Tuple[TransferRecord, ...]) -> SettlementRecord:
            record = SettlementRecord(
                round_id=plan.round_id,
                winners=plan.winners,
                share=plan.share,
                total_prize=plan.total_prize,
                remainder=plan.remainder,
                winning_score=winning_score,
                transfer_ids=tuple(transfer.transfer_id for transfer in transfers),
            )
            self._store.save_settlement(record)
            return record

        return self._execute(plan.round_id, legs, "payout", commit)

    def withdraw(self, round_id: int, recipient: str, amount: int) -> WithdrawalRecord:
        def commit(transfers: Tuple[TransferRecord, ...]) -> WithdrawalRecord:
            record = WithdrawalRecord(
                round_id=round_id,
                recipient=recipient,
                amount=amount,
                transfer_ids=tuple(transfer.transfer_id for transfer in transfers),
            )
            self._store.save_withdrawal(record)
            return record

        return self._execute(round_id, [(recipient, amount)], "withdrawal", commit)

    def sweep(self, settlement: SettlementRecord, recipient: str) -> RemainderSweep:
        def commit(transfers: Tuple[TransferRecord, ...]) -> RemainderSweep:
            sweep = RemainderSweep(
                round_id=settlement.round_id,
                recipient=recipient,
                amount=settlement.remainder,
                transfer_ids=tuple(transfer.transfer_id for transfer in transfers),
            )
            self._store.save_sweep(sweep)
            return sweep

        return self._execute(settlement.round_id, [(recipient, settlement.remainder)], "sweep", commit)

    def _execute(
        self,
        round_id: int,
        legs: Sequence[Tuple[str, int]],
        kind: str,
        commit: Callable[[Tuple[TransferRecord, ...]], T],
    ) -> T:
        completed: List[TransferRecord] = []
        for recipient, amount in legs:
            if amount == 0:
                continue
            try:
                completed.append(self._treasury.transfer(round_id, recipient, amount, kind=kind))
            except Exception as exc:
                if not isinstance(exc, TransferError):
                    logger.error(
                        "Round %s %s transfer to %s raised %s", round_id, kind, recipient, type(exc).__name__
                    )
                compensated = self._compensate(round_id, completed)
                raise TransferFailureError(
                    f"{kind} transfer to {recipient} failed for round {round_id}: {exc}",
                    round_id=round_id,
                    recipient=recipient,
                    compensated=compensated,
                ) from exc
        try:
            return commit(tuple(completed))
        except Exception:
            if not self._compensate(round_id, completed):
                logger.critical("Round %s %s left %s transfer(s) unreversed", round_id, kind, len(completed))
            raise

    def _compensate(self, round_id: int, completed: Sequence[TransferRecord]) -> bool:
        ok = True
        for transfer in reversed(completed):
            try:
                self._treasury.reverse(transfer.transfer_id)
            except Exception:
                ok = False
                logger.exception(
                    "Failed to reverse transfer %s (%s to %s) for round %s",
                    transfer.transfer_id,
                    transfer.amount,
                    transfer.recipient,
                    round_id,
                )
        if completed:
            logger.warning("Rolled back %s transfer(s) for round %s", len(completed), round_id)
        return ok
