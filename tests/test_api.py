import csv
from io import StringIO

import pytest
from httpx import ASGITransport, AsyncClient

from fplsettle.api import create_app

from tests.factories import make_engine, make_snapshot


@pytest.fixture
async def client(tmp_path):
    snapshot = make_snapshot(["alice", "bob"], total_prize=1001)
    app = create_app(make_engine(tmp_path, snapshot))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        async_client.app = app
        yield async_client


@pytest.mark.anyio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_score_endpoints(client):
    resp = await client.post("/rounds/1/teams/alice/score")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["total_points"] == 24
    assert payload["captain_bonus"] == 2
    assert payload["substitutions"] == []

    resp = await client.get("/rounds/1/teams/alice/score")
    assert resp.status_code == 200
    assert resp.json()["total_points"] == 24

    resp = await client.post("/rounds/1/teams/alice/score")
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "ALREADY_SETTLED"

    resp = await client.get("/rounds/1/teams/bob/score")
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "NOT_FOUND"


@pytest.mark.anyio
async def test_settle_before_scores_is_not_ready(client):
    resp = await client.post("/rounds/1/settle")
    assert resp.status_code == 425
    detail = resp.json()["detail"]
    assert detail == {
        "code": "NOT_READY",
        "message": detail["message"],
        "retryable": True,
        "round_id": 1,
    }

    resp = await client.get("/rounds/1/status")
    assert resp.json() == {
        "round_id": 1,
        "status": "open",
        "ready_for_settlement": False,
        "scored_entrants": 0,
    }


@pytest.mark.anyio
async def test_full_round_flow(client):
    resp = await client.post("/rounds/1/scores")
    assert resp.status_code == 200
    assert [item["entrant"] for item in resp.json()["calculated"]] == ["alice", "bob"]

    resp = await client.get("/rounds/1/status")
    assert resp.json()["ready_for_settlement"] is True

    resp = await client.get("/rounds/1/standings")
    assert [(item["rank"], item["entrant"]) for item in resp.json()] == [(1, "alice"), (1, "bob")]

    resp = await client.post("/rounds/1/settle")
    assert resp.status_code == 200
    settlement = resp.json()
    assert settlement["winners"] == ["alice", "bob"]
    assert (settlement["share"], settlement["remainder"]) == (500, 1)

    resp = await client.post("/rounds/1/settle")
    assert resp.status_code == 409

    resp = await client.get("/rounds/1/winners")
    assert resp.json() == {"round_id": 1, "winners": ["alice", "bob"], "share": 500}

    resp = await client.post("/rounds/1/sweep", json={"recipient": "treasury"})
    assert resp.status_code == 200
    assert resp.json()["amount"] == 1

    resp = await client.post("/rounds/1/withdraw", json={"recipient": "admin"})
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "ALREADY_SETTLED"

    resp = await client.get("/rounds/1/standings.csv")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(StringIO(resp.text)))
    assert [row[-1] for row in rows[1:]] == ["500", "500"]


@pytest.mark.anyio
async def test_withdraw_blocks_settlement(client):
    await client.post("/rounds/1/scores")

    resp = await client.post("/rounds/1/withdraw", json={"recipient": "admin"})
    assert resp.status_code == 200
    assert resp.json()["amount"] == 1001

    resp = await client.post("/rounds/1/settle")
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "ROUND_WITHDRAWN"

    resp = await client.get("/rounds/1/status")
    assert resp.json()["status"] == "withdrawn"


@pytest.mark.anyio
async def test_invalid_round_is_bad_request(client):
    resp = await client.post("/rounds/0/teams/alice/score")
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_INPUT"


@pytest.mark.anyio
async def test_winners_before_settlement(client):
    resp = await client.get("/rounds/1/winners")
    assert resp.status_code == 425


@pytest.mark.anyio
async def test_unavailable_ledger_is_service_unavailable(client, tmp_path):
    ledger = tmp_path / "ledger.sqlite"
    ledger.unlink()
    ledger.mkdir()

    resp = await client.get("/rounds/1/status")
    assert resp.status_code == 503
    detail = resp.json()["detail"]
    assert detail["code"] == "LEDGER_UNAVAILABLE"
    assert detail["retryable"] is True
