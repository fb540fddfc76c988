"""Funds movement for payouts, withdrawals and remainder sweeps."""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import uuid4

from fplsettle.persistence import LedgerStore, TransferRecord


logger = logging.getLogger(__name__)


class TransferError(RuntimeError):
    """Raised by a treasury when a single transfer cannot be completed."""


class Treasury(Protocol):
    def transfer(self, round_id: int, recipient: str, amount: int, *, kind: str) -> TransferRecord:
        ...

    def reverse(self, transfer_id: str) -> None:
        ...


class LedgerTreasury:
    """Treasury that credits recipients in the settlement ledger itself."""

    def __init__(self, store: LedgerStore):
        self._store = store

    def transfer(self, round_id: int, recipient: str, amount: int, *, kind: str) -> TransferRecord:
        if not recipient:
            raise TransferError("recipient is required")
        if amount <= 0:
            raise TransferError(f"transfer amount must be positive, got {amount}")
        record = self._store.insert_transfer(
            transfer_id=uuid4().hex,
            round_id=round_id,
            recipient=recipient,
            amount=amount,
            kind=kind,
        )
        logger.info("Transferred %s to %s for round %s (%s, id=%s)", amount, recipient, round_id, kind, record.transfer_id)
        return record

    def reverse(self, transfer_id: str) -> None:
        self._store.mark_transfer_reversed(transfer_id)
        logger.info("Reversed transfer %s", transfer_id)

    def balance(self, recipient: str) -> int:
        return sum(record.amount for record in self._store.list_transfers(recipient=recipient))
