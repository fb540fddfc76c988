"""Winner determination and prize distribution."""

from .payout import PayoutPlan, PrizeDistributor, plan_payout
from .treasury import LedgerTreasury, TransferError, Treasury
from .winners import Standing, determine_winners, rank_standings, tiebreak_key

__all__ = [
    "LedgerTreasury",
    "PayoutPlan",
    "PrizeDistributor",
    "Standing",
    "TransferError",
    "Treasury",
    "determine_winners",
    "plan_payout",
    "rank_standings",
    "tiebreak_key",
]
