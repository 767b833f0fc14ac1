from __future__ import annotations

import logging

import fakeredis
import httpx
import pytest
from fastapi.testclient import TestClient

OWNER = "owner"

TIE_SEQUENCE = [(0, 1), (0, 0), (1, 0), (0, 2), (1, 2), (1, 1), (2, 0), (2, 1), (2, 2)]


def _start(client: TestClient, player_id: str) -> dict:
    resp = client.post("/game", json={"player_id": player_id})
    assert resp.status_code == 201
    return resp.json()


def _join(client: TestClient, game_id: int, player_id: str) -> dict:
    resp = client.post(f"/game/{game_id}/player/{player_id}/join")
    assert resp.status_code == 200
    return resp.json()


def _move(client: TestClient, game_id: int, player_id: str, row: int, col: int) -> httpx.Response:
    return client.post(f"/game/{game_id}/player/{player_id}/move", json={"row": row, "col": col})


def _active(client: TestClient, player_id: str) -> int | None:
    resp = client.get(f"/player/{player_id}/active_game")
    assert resp.status_code == 200
    return resp.json()["game_id"]


def test_full_game_player1_wins(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis

    data = _start(client, "alice")
    gid = data["game_id"]
    assert gid == 1
    assert data["player1"] == "alice"
    assert data["player2"] is None
    assert data["status"] == "in_progress"
    assert data["board"]["cells"] == [[0, 0, 0], [0, 0, 0], [0, 0, 0]]
    assert _active(client, "alice") == 1
    assert _active(client, "bob") is None

    joined = _join(client, gid, "bob")
    assert joined["player2"] == "bob"
    assert joined["is_player1_first"] is True

    moves = [("alice", 0, 0), ("bob", 1, 0), ("alice", 0, 1), ("bob", 1, 1)]
    for pid, row, col in moves:
        resp = _move(client, gid, pid, row, col)
        assert resp.status_code == 200
        assert resp.json()["status"] == "in_progress"

    resp = _move(client, gid, "alice", 0, 2)
    assert resp.status_code == 200
    done = resp.json()
    assert done["status"] == "player1_won"
    assert done["ply_count"] == 5
    assert done["board"]["cells"][0] == [1, 1, 1]
    assert done["board"]["cells"][1] == [2, 2, 0]

    assert _active(client, "alice") is None
    assert _active(client, "bob") is None

    resp2 = client.get(f"/game/{gid}")
    assert resp2.status_code == 200
    assert resp2.json()["status"] == "player1_won"

    resp3 = client.get("/game")
    assert resp3.status_code == 200
    assert [g["game_id"] for g in resp3.json()["games"]] == [gid]


def test_tie_over_http(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    gid = _start(client, "alice")["game_id"]
    _join(client, gid, "bob")

    for i, (row, col) in enumerate(TIE_SEQUENCE):
        resp = _move(client, gid, "alice" if i % 2 == 0 else "bob", row, col)
        assert resp.status_code == 200

    assert resp.json()["status"] == "tie"
    assert _active(client, "alice") is None
    assert _active(client, "bob") is None


def test_error_codes(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis

    resp = client.post("/game/1/player/bob/join")
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "game_not_found"

    gid = _start(client, "alice")["game_id"]

    resp = client.post("/game", json={"player_id": "alice"})
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "already_in_game"

    resp = client.post(f"/game/{gid}/player/alice/join")
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "cannot_join_own_game"

    resp = _move(client, gid, "alice", 0, 0)
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "game_not_started"

    _join(client, gid, "bob")

    resp = client.post(f"/game/{gid}/player/carol/join")
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "game_full"

    resp = _move(client, gid, "bob", 0, 0)
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "not_your_turn"

    resp = _move(client, gid, "alice", 3, 0)
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "out_of_range"

    assert _move(client, gid, "alice", 0, 0).status_code == 200
    resp = _move(client, gid, "bob", 0, 0)
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "cell_occupied"

    resp = _move(client, 42, "bob", 0, 0)
    assert resp.status_code == 404

    # Malformed body is rejected by request validation.
    resp = client.post(f"/game/{gid}/player/bob/move", json={"row": "x"})
    assert resp.status_code == 422


def test_get_game_404(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    assert client.get("/game/1").status_code == 404
    assert client.get("/game/0").status_code == 404


def test_pause_is_owner_only(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis

    info = client.get("/registry").json()
    assert info == {"game_count": 0, "is_paused": False, "owner": OWNER}

    gid = _start(client, "alice")["game_id"]
    _join(client, gid, "bob")
    assert _move(client, gid, "alice", 0, 1).status_code == 200

    resp = client.post(f"/player/{OWNER}/pause")
    assert resp.status_code == 200
    assert resp.json()["is_paused"] is True

    resp = _move(client, gid, "bob", 0, 0)
    assert resp.status_code == 503
    assert resp.json()["detail"]["code"] == "paused"

    resp = client.post("/player/alice/pause")
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "not_owner"
    assert client.get("/registry").json()["is_paused"] is True

    # Reads are never gated.
    assert client.get(f"/game/{gid}").status_code == 200

    resp = client.post(f"/player/{OWNER}/pause")
    assert resp.json() == {"game_count": 1, "is_paused": False, "owner": OWNER}
    assert _move(client, gid, "bob", 0, 0).status_code == 200


def test_mailboxes_receive_turn_prompts(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    gid = _start(client, "alice")["game_id"]
    _join(client, gid, "bob")

    alice_box = r.xrange(f"mailbox:{gid}:alice")
    bob_box = r.xrange(f"mailbox:{gid}:bob")
    assert [f["type"] for _, f in alice_box] == ["game_joined", "prompt_move"]
    assert [f["type"] for _, f in bob_box] == ["game_joined"]

    assert _move(client, gid, "alice", 0, 0).status_code == 200
    _, last = r.xrange(f"mailbox:{gid}:bob")[-1]
    assert last["type"] == "prompt_move"
    assert last["ply_count"] == "1"

    for pid, row, col in [("bob", 1, 0), ("alice", 0, 1), ("bob", 1, 1), ("alice", 0, 2)]:
        assert _move(client, gid, pid, row, col).status_code == 200

    for pid in ("alice", "bob"):
        _, last = r.xrange(f"mailbox:{gid}:{pid}")[-1]
        assert last["type"] == "game_finished"
        assert last["status"] == "player1_won"

    resp = client.get(f"/games/{gid}/players/alice/mailbox?count=50")
    assert resp.status_code == 200
    data = resp.json()
    assert data["stream"] == f"mailbox:{gid}:alice"
    assert data["messages"][0]["fields"]["type"] == "game_joined"

    assert client.get(f"/games/{gid}/players/alice/mailbox?count=0").status_code == 422


def test_rejected_move_publishes_nothing(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    gid = _start(client, "alice")["game_id"]
    _join(client, gid, "bob")
    before = len(r.xrange(f"mailbox:{gid}:bob"))

    assert _move(client, gid, "bob", 0, 0).status_code == 409
    assert len(r.xrange(f"mailbox:{gid}:bob")) == before


def test_generic_action_endpoint(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    gid = _start(client, "alice")["game_id"]

    resp = client.post(f"/games/{gid}/actions/join", json={"player_id": "bob"})
    assert resp.status_code == 200
    assert resp.json()["player2"] == "bob"

    resp = client.post(f"/games/{gid}/actions/move", json={"player_id": "alice", "row": 1, "col": 1})
    assert resp.status_code == 200
    assert resp.json()["board"]["cells"][1][1] == 1

    resp = client.post(f"/games/{gid}/actions/move", json={"player_id": "bob"})
    assert resp.status_code == 422

    resp = client.post(f"/games/{gid}/actions/resign", json={"player_id": "bob"})
    assert resp.status_code == 422
    assert "Unknown action" in resp.json()["detail"]

    resp = client.post(f"/games/{gid}/actions/move", json={"row": 0, "col": 0})
    assert resp.status_code == 422


def test_info_and_healthcheck(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    assert client.get("/healthcheck").json() == {"status": "ok"}
    assert client.get("/info").json()["name"] == "tictactoe"


def test_pause_toggle_logs_at_info(
    client_and_redis: tuple[TestClient, fakeredis.FakeRedis], caplog: pytest.LogCaptureFixture
) -> None:
    client, _ = client_and_redis
    caplog.set_level(logging.INFO, logger="tictactoe.api.routes")

    assert client.post(f"/player/{OWNER}/pause").status_code == 200

    records = [rec for rec in caplog.records if "registry paused" in rec.getMessage()]
    assert len(records) == 1
    assert records[0].levelno == logging.INFO
