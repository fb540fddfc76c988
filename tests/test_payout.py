import sqlite3

import pytest

from fplsettle.errors import AlreadySettledError, InvalidInputError, SettlementError, TransferFailureError
from fplsettle.persistence import LedgerStore
from fplsettle.settlement import LedgerTreasury, PrizeDistributor, TransferError, plan_payout


class FlakyTreasury(LedgerTreasury):
    """Fails the transfer to one named recipient."""

    def __init__(self, store: LedgerStore, fail_for: str):
        super().__init__(store)
        self.fail_for = fail_for

    def transfer(self, round_id, recipient, amount, *, kind):
        if recipient == self.fail_for:
            raise TransferError("gateway unavailable")
        return super().transfer(round_id, recipient, amount, kind=kind)


def _store(tmp_path) -> LedgerStore:
    return LedgerStore(tmp_path / "ledger.sqlite")


@pytest.mark.parametrize(
    "winners, total, share, remainder",
    [
        (("a",), 1000, 1000, 0),
        (("a", "b"), 1001, 500, 1),
        (("a", "b", "c"), 1000, 333, 1),
        (("a", "b", "c"), 2, 0, 2),
        (("a", "b"), 0, 0, 0),
    ],
)
def test_plan_payout_splits_evenly(winners, total, share, remainder):
    plan = plan_payout(1, winners, total)
    assert (plan.share, plan.remainder) == (share, remainder)
    assert plan.share * len(winners) + plan.remainder == total


@pytest.mark.parametrize("winners, total", [((), 100), (("a", "a"), 100), (("a",), -1)])
def test_plan_payout_rejects_bad_input(winners, total):
    with pytest.raises(InvalidInputError):
        plan_payout(1, winners, total)


def test_distribute_pays_each_winner_and_records_settlement(tmp_path):
    store = _store(tmp_path)
    treasury = LedgerTreasury(store)
    distributor = PrizeDistributor(store, treasury)

    record = distributor.distribute(plan_payout(1, ("a", "b"), 1001), winning_score=64)

    assert record.share == 500
    assert record.remainder == 1
    assert len(record.transfer_ids) == 2
    assert store.get_settlement(1) == record
    assert treasury.balance("a") == treasury.balance("b") == 500
    assert store.total_disbursed(1) == 1000


def test_failed_transfer_rolls_back_everything(tmp_path):
    store = _store(tmp_path)
    distributor = PrizeDistributor(store, FlakyTreasury(store, fail_for="c"))

    with pytest.raises(TransferFailureError) as excinfo:
        distributor.distribute(plan_payout(1, ("a", "b", "c"), 900), winning_score=50)

    assert excinfo.value.recipient == "c"
    assert excinfo.value.compensated
    assert excinfo.value.retryable
    assert store.get_settlement(1) is None
    assert store.total_disbursed(1) == 0
    assert len(store.list_transfers(round_id=1, include_reversed=True)) == 2


def test_failed_commit_reverses_transfers(tmp_path):
    store = _store(tmp_path)
    treasury = LedgerTreasury(store)
    distributor = PrizeDistributor(store, treasury)
    distributor.withdraw(1, "admin", 100)

    with pytest.raises(AlreadySettledError):
        distributor.distribute(plan_payout(1, ("a",), 100), winning_score=10)

    assert treasury.balance("a") == 0
    assert store.get_settlement(1) is None


def test_zero_share_skips_transfers(tmp_path):
    store = _store(tmp_path)
    distributor = PrizeDistributor(store, LedgerTreasury(store))

    record = distributor.distribute(plan_payout(1, ("a", "b", "c"), 2), winning_score=0)

    assert record.transfer_ids == ()
    assert record.remainder == 2
    assert store.total_disbursed(1) == 0


def test_treasury_rejects_non_positive_amount(tmp_path):
    treasury = LedgerTreasury(_store(tmp_path))
    with pytest.raises(TransferError):
        treasury.transfer(1, "a", 0, kind="payout")


class BrokenGatewayTreasury(LedgerTreasury):
    """Raises an arbitrary exception for one recipient, as an unreliable gateway would."""

    def __init__(self, store: LedgerStore, fail_for: str, error: Exception):
        super().__init__(store)
        self.fail_for = fail_for
        self.error = error

    def transfer(self, round_id, recipient, amount, *, kind):
        if recipient == self.fail_for:
            raise self.error
        return super().transfer(round_id, recipient, amount, kind=kind)


@pytest.mark.parametrize(
    "error",
    [sqlite3.OperationalError("database is locked"), ConnectionError("gateway reset")],
)
def test_unexpected_treasury_error_is_reported_as_transfer_failure(tmp_path, error):
    store = _store(tmp_path)
    distributor = PrizeDistributor(store, BrokenGatewayTreasury(store, "b", error))

    with pytest.raises(TransferFailureError) as excinfo:
        distributor.distribute(plan_payout(1, ("a", "b"), 1000), winning_score=40)

    assert isinstance(excinfo.value, SettlementError)
    assert excinfo.value.__cause__ is error
    assert excinfo.value.recipient == "b"
    assert excinfo.value.compensated
    assert store.get_settlement(1) is None
    assert store.total_disbursed(1) == 0
