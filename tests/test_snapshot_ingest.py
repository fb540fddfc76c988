import json

import pytest

from fplsettle.errors import InvalidInputError
from fplsettle.ingest import load_performance_csv, load_snapshot
from fplsettle.models import Position

from tests.factories import make_roster, make_team


def _write(tmp_path, name: str, content: str):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def test_load_performance_csv_maps_columns(tmp_path):
    path = _write(
        tmp_path,
        "stats.csv",
        """pid,mins,goals,assists,cs,yellow_card,red_card,bonus,validated
p1,90,1,0,1,0,0,2,yes
p2,45,0,1,0,1,0,,no
p3,90,0,0,0,1,1,0,
,90,5,0,0,0,0,0,1
""",
    )

    performances = load_performance_csv(
        path,
        round_id=3,
        mapping={"player_id": "pid", "minutes_played": "mins", "clean_sheet": "cs"},
        default_validated=True,
    )

    assert [perf.player_id for perf in performances] == ["p1", "p2", "p3"]
    first, second, third = performances
    assert first.round_id == 3
    assert (first.minutes_played, first.goals, first.clean_sheet, first.bonus_points) == (90, 1, True, 2)
    assert first.validated
    assert second.disciplinary_penalty == -1
    assert not second.validated
    assert third.disciplinary_penalty == -3
    assert third.validated


def test_load_performance_csv_rejects_non_numeric(tmp_path):
    path = _write(tmp_path, "bad.csv", "player_id,minutes,goals\np1,ninety,0\n")

    with pytest.raises(InvalidInputError) as excinfo:
        load_performance_csv(path, round_id=1)
    assert "bad.csv:2" in str(excinfo.value)


def test_load_snapshot_builds_collaborators(tmp_path):
    team = make_team("alice")
    payload = {
        "roster": [
            {"player_id": entry.player_id, "position": ["GK", "DEF", "MID", "FWD"].index(entry.position.value)}
            for entry in make_roster("alice")
        ],
        "pools": [{"round_id": 1, "total_prize": 500, "participants": ["alice"]}],
        "teams": [json.loads(team.model_dump_json())],
        "performances": [{"round_id": 1, "player_id": "alice-0", "minutes_played": 90, "validated": True}],
    }
    path = _write(tmp_path, "snapshot.json", json.dumps(payload))

    snapshot = load_snapshot(path)

    assert snapshot.get_roster_entry("alice-0").position is Position.GOALKEEPER
    assert snapshot.get_roster_entry("alice-14").position is Position.FORWARD
    assert snapshot.get_participants(1) == ("alice",)
    assert snapshot.get_submitted_team(1, "alice") == team
    assert snapshot.get_performance(1, "alice-0").minutes_played == 90
    assert snapshot.get_performance(1, "alice-1") is None


def test_load_snapshot_rejects_malformed(tmp_path):
    path = _write(tmp_path, "snapshot.json", json.dumps({"pools": [{"round_id": 0, "total_prize": 10}]}))

    with pytest.raises(InvalidInputError):
        load_snapshot(path)


def test_finalize_pool_records_winner(tmp_path):
    path = _write(tmp_path, "snapshot.json", json.dumps({"pools": [{"round_id": 1, "total_prize": 10}]}))
    snapshot = load_snapshot(path)

    snapshot.finalize_pool(1, "alice", 42)

    pool = snapshot.get_pool(1)
    assert pool.finalized
    assert (pool.winner, pool.winning_score) == ("alice", 42)
    with pytest.raises(KeyError):
        snapshot.finalize_pool(2, "alice", 42)
