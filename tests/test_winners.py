import pytest

from fplsettle.errors import InvalidInputError, NotReadyError
from fplsettle.models import TeamScore
from fplsettle.settlement import determine_winners, rank_standings


def _score(entrant: str, total: int, *, bench: int = 0, goals: int = 0, cards: int = 0, round_id: int = 1) -> TeamScore:
    return TeamScore(
        round_id=round_id,
        entrant=entrant,
        total_points=total,
        slot_points=(total,),
        effective_slots=(0,),
        bench_points=bench,
        captain_bonus=0,
        goals=goals,
        cards=cards,
    )


def test_single_participant_wins_unconditionally():
    assert determine_winners([_score("solo", 0)]) == ("solo",)


def test_highest_total_wins():
    assert determine_winners([_score("a", 80), _score("b", 95), _score("c", 90)]) == ("b",)


def test_bench_points_break_total_tie():
    winners = determine_winners([_score("a", 100, bench=15), _score("b", 100, bench=20)])
    assert winners == ("b",)


def test_goals_break_bench_tie():
    winners = determine_winners([_score("a", 100, bench=10, goals=4), _score("b", 100, bench=10, goals=3)])
    assert winners == ("a",)


def test_fewest_cards_break_goal_tie():
    winners = determine_winners(
        [_score("a", 100, bench=10, goals=3, cards=2), _score("b", 100, bench=10, goals=3, cards=1)]
    )
    assert winners == ("b",)


def test_full_tie_gives_joint_winners_in_supplied_order():
    scores = [_score("b", 100, bench=5), _score("a", 100, bench=5), _score("c", 99, bench=50)]
    assert determine_winners(scores) == ("b", "a")


def test_lower_stages_ignored_once_resolved():
    scores = [_score("a", 101, cards=5), _score("b", 100, bench=90, goals=9)]
    assert determine_winners(scores) == ("a",)


def test_no_scores_is_not_ready():
    with pytest.raises(NotReadyError):
        determine_winners([])


def test_uncalculated_score_is_not_ready():
    pending = _score("a", 10).model_copy(update={"calculated": False})
    with pytest.raises(NotReadyError):
        determine_winners([pending, _score("b", 5)])


def test_mixed_rounds_and_duplicates_are_invalid():
    with pytest.raises(InvalidInputError):
        determine_winners([_score("a", 10), _score("b", 10, round_id=2)])
    with pytest.raises(InvalidInputError):
        determine_winners([_score("a", 10), _score("a", 11)])


def test_rank_standings_shares_ranks_for_full_ties():
    standings = rank_standings(
        [
            _score("carol", 90),
            _score("bob", 100, bench=5),
            _score("alice", 100, bench=5),
            _score("dave", 100, bench=1),
        ]
    )

    assert [(item.rank, item.entrant) for item in standings] == [
        (1, "alice"),
        (1, "bob"),
        (3, "dave"),
        (4, "carol"),
    ]
