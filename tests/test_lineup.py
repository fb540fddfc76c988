import itertools

import pytest

from fplsettle.errors import InvalidInputError
from fplsettle.scoring import check_submitted_team, position_tally, resolve_lineup

from tests.factories import DEF, FWD, GK, MID, POSITIONS, make_performance, make_team, slot_performances


def test_no_substitution_when_everyone_played():
    team = make_team()
    lineup = resolve_lineup(team, POSITIONS, slot_performances("alice"))

    assert lineup.slots == tuple(range(11))
    assert lineup.bench_slots == (11, 12, 13, 14)
    assert lineup.substitutions == ()


def test_bench_goalkeeper_replaces_absent_starter():
    team = make_team()
    performances = slot_performances("alice", overrides={0: {"minutes_played": 0}})

    lineup = resolve_lineup(team, POSITIONS, performances)

    assert lineup.slots[0] == 11
    assert 0 in lineup.bench_slots
    (sub,) = lineup.substitutions
    assert (sub.slot_out, sub.slot_in) == (0, 11)
    assert (sub.player_out, sub.player_in) == ("alice-0", "alice-11")


def test_first_eligible_bench_player_in_squad_order_is_used():
    team = make_team()
    # Bench goalkeeper (11) played but cannot cover a defender; bench defender (12) can.
    performances = slot_performances("alice", absent=[1])

    lineup = resolve_lineup(team, POSITIONS, performances)

    assert lineup.slots[1] == 12
    assert [sub.slot_in for sub in lineup.substitutions] == [12]


def test_bench_player_is_used_at_most_once():
    team = make_team()
    performances = slot_performances("alice", absent=[1, 2])

    lineup = resolve_lineup(team, POSITIONS, performances)

    assert lineup.slots[1] == 12
    assert lineup.slots[2] == 2
    assert len(lineup.substitutions) == 1


def test_cross_position_swap_that_breaks_formation_is_refused():
    team = make_team()
    performances = slot_performances("alice", absent=[5, 13])

    lineup = resolve_lineup(team, POSITIONS, performances)

    assert lineup.slots[5] == 5
    assert 14 in lineup.bench_slots
    assert lineup.substitutions == ()


def test_unvalidated_bench_player_cannot_come_on():
    team = make_team()
    performances = slot_performances("alice", overrides={0: {"minutes_played": 0}, 11: {"validated": False}})

    lineup = resolve_lineup(team, POSITIONS, performances)

    assert lineup.slots[0] == 0
    assert lineup.substitutions == ()


def test_starting_lineup_must_match_formation():
    team = make_team(formation="3-5-2")
    with pytest.raises(InvalidInputError):
        resolve_lineup(team, POSITIONS, slot_performances("alice"))


def test_formation_is_preserved_for_every_attendance_pattern():
    team = make_team()
    required = team.formation.required_counts()
    played = make_performance(pid="any")
    for pattern in itertools.product((True, False), repeat=len(POSITIONS)):
        performances = [played if present else None for present in pattern]
        lineup = resolve_lineup(team, POSITIONS, performances)

        assert position_tally(POSITIONS[slot] for slot in lineup.slots) == required
        assert len(set(lineup.slots)) == 11
        assert sorted(lineup.slots + lineup.bench_slots) == list(range(15))
        for sub in lineup.substitutions:
            assert POSITIONS[sub.slot_in] == POSITIONS[sub.slot_out]
            assert pattern[sub.slot_in] and not pattern[sub.slot_out]


def test_position_tally_orders_by_position():
    tally = position_tally([FWD, GK, DEF, DEF, MID])
    assert list(tally) == [GK, DEF, MID, FWD]
    assert list(tally.values()) == [1, 2, 1, 1]


@pytest.mark.parametrize(
    "overrides",
    [
        {"squad": tuple(f"p{slot}" for slot in range(14))},
        {"squad": ("dup",) * 2 + tuple(f"p{slot}" for slot in range(13))},
        {"starting_slots": tuple(range(10))},
        {"starting_slots": (0, 0, 2, 3, 4, 5, 6, 7, 8, 9, 10)},
        {"starting_slots": (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 15)},
        {"captain_slot": 5},
        {"captain_slot": 12},
        {"formation": "2-5-3"},
    ],
)
def test_check_submitted_team_rejects_malformed(overrides):
    with pytest.raises(InvalidInputError):
        check_submitted_team(make_team(**overrides))


def test_check_submitted_team_accepts_default():
    check_submitted_team(make_team())
