"""Error taxonomy shared by the scoring and settlement layers.

Every failure the engine reports derives from :class:`SettlementError` and
carries a stable ``code`` so callers can tell "try again later" apart from
"this is final" without parsing messages.
"""

from __future__ import annotations

from typing import Optional


class SettlementError(Exception):
    code = "SETTLEMENT_ERROR"
    retryable = False

    def __init__(self, message: str, *, round_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.round_id = round_id

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "round_id": self.round_id,
        }


class AlreadySettledError(SettlementError):
    """The operation already happened; read the stored result instead."""

    code = "ALREADY_SETTLED"


class RoundWithdrawnError(AlreadySettledError):
    """The pool was withdrawn by an administrator and can no longer settle."""

    code = "ROUND_WITHDRAWN"


class NotReadyError(SettlementError):
    """A precondition is not met yet (missing scores, no participants, deadline)."""

    code = "NOT_READY"
    retryable = True


class InvalidInputError(SettlementError, ValueError):
    """Malformed identifiers or structurally impossible team submissions."""

    code = "INVALID_INPUT"


class NotFoundError(SettlementError, LookupError):
    code = "NOT_FOUND"


class LedgerUnavailableError(SettlementError):
    """The configured ledger database could not be opened or is locked."""

    code = "LEDGER_UNAVAILABLE"
    retryable = True


class TransferFailureError(SettlementError):
    """A funds movement failed and the whole operation was rolled back."""

    code = "TRANSFER_FAILURE"
    retryable = True

    def __init__(
        self,
        message: str,
        *,
        round_id: Optional[int] = None,
        recipient: Optional[str] = None,
        compensated: bool = True,
    ):
        super().__init__(message, round_id=round_id)
        self.recipient = recipient
        self.compensated = compensated

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["recipient"] = self.recipient
        payload["compensated"] = self.compensated
        return payload
