# tests/test_rooms_api.py
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.room import Player


def _create_lobby(client: TestClient, n: int = 6) -> tuple[str, str, list[str]]:
    """部屋を作って n 人参加・全員準備完了にする。戻り値: (room_id, code, wallets)"""
    res = client.post("/api/rooms", json={"wallet": "0xHost", "nickname": "Host"})
    assert res.status_code == 200
    body = res.json()
    room_id, code = body["room_id"], body["code"]

    wallets = ["0xhost"]
    for i in range(2, n + 1):
        wallet = f"0xguest{i}"
        res = client.post("/api/rooms/join", json={"code": code, "wallet": wallet, "nickname": f"G{i}"})
        assert res.status_code == 200
        res = client.post(f"/api/rooms/{room_id}/ready", json={"wallet": wallet, "ready": True})
        assert res.status_code == 200
        wallets.append(wallet)
    return room_id, code, wallets


def _set_roles(db: Session, room_id: str, roles: list[str]) -> list[Player]:
    """テスト用に役職を席順で上書きする。"""
    players = (
        db.query(Player)
        .filter(Player.room_id == room_id)
        .order_by(Player.seat_no.asc())
        .all()
    )
    for p, role in zip(players, roles):
        p.role = role
    db.commit()
    return players


def _transition(client: TestClient, room_id: str, status: str, phase: int):
    return client.post(
        f"/api/rooms/{room_id}/transition",
        json={"wallet": "0xhost", "expected_status": status, "expected_phase": phase},
    )


def test_create_join_and_snapshot(client: TestClient, db: Session):
    room_id, code, wallets = _create_lobby(client, 3)

    res = client.get(f"/api/rooms/{room_id}", params={"wallet": "0xGUEST2"})
    assert res.status_code == 200
    snap = res.json()

    assert snap["code"] == code
    assert snap["status"] == "lobby"
    assert snap["phase"] == 0
    assert snap["host_wallet"] == "0xhost"
    assert [p["seat_no"] for p in snap["players"]] == [1, 2, 3]
    assert snap["my_id"] == snap["players"][1]["id"]


def test_unknown_room_is_404(client: TestClient, db: Session):
    res = client.get("/api/rooms/does-not-exist")
    assert res.status_code == 404
    assert res.json()["detail"] == "Room not found"


def test_start_hides_roles_of_living_others(client: TestClient, db: Session):
    room_id, _, wallets = _create_lobby(client, 6)

    res = client.post(f"/api/rooms/{room_id}/start", json={"wallet": "0xguest2"})
    assert res.status_code == 403

    res = client.post(f"/api/rooms/{room_id}/start", json={"wallet": "0xhost"})
    assert res.status_code == 200
    snap = res.json()
    assert snap["status"] == "night"
    assert snap["phase"] == 1
    assert snap["my_role"] is not None
    assert snap["phase_deadline"] is not None

    visible = [p for p in snap["players"] if p["role"] is not None]
    assert len(visible) == 1
    assert visible[0]["wallet"] == "0xhost"


def test_start_with_too_few_players_is_400(client: TestClient, db: Session):
    room_id, _, _ = _create_lobby(client, 4)
    res = client.post(f"/api/rooms/{room_id}/start", json={"wallet": "0xhost"})
    assert res.status_code == 400


def test_night_day_voting_flow_over_http(client: TestClient, db: Session):
    room_id, _, wallets = _create_lobby(client, 6)
    client.post(f"/api/rooms/{room_id}/start", json={"wallet": "0xhost"})
    players = _set_roles(db, room_id, ["impostor", "impostor", "detective", "citizen", "citizen", "citizen"])
    ids = [p.id for p in players]

    # citizen は kill できない
    res = client.post(
        f"/api/rooms/{room_id}/action",
        json={"wallet": wallets[3], "action_type": "kill", "target_id": ids[4]},
    )
    assert res.status_code == 403

    res = client.post(
        f"/api/rooms/{room_id}/action",
        json={"wallet": wallets[0], "action_type": "kill", "target_id": ids[5]},
    )
    assert res.status_code == 200
    assert res.json()["phase"] == 1

    res = _transition(client, room_id, "night", 1)
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "day"
    assert body["night"] == {"killed_player_id": ids[5], "was_protected": False}

    # 昼はチャットできる / 死亡者はできない
    res = client.post(f"/api/rooms/{room_id}/chat", json={"wallet": wallets[1], "content": "  hello  "})
    assert res.status_code == 200
    assert res.json()["content"] == "hello"
    res = client.post(f"/api/rooms/{room_id}/chat", json={"wallet": wallets[5], "content": "boo"})
    assert res.status_code == 400

    res = client.get(f"/api/rooms/{room_id}/chat")
    assert [m["content"] for m in res.json()] == ["hello"]

    res = _transition(client, room_id, "day", 1)
    assert res.json()["status"] == "voting"

    # 投票中はチャット不可
    res = client.post(f"/api/rooms/{room_id}/chat", json={"wallet": wallets[1], "content": "hi"})
    assert res.status_code == 400

    for w in wallets[2:5]:
        res = client.post(f"/api/rooms/{room_id}/vote", json={"wallet": w, "target_id": ids[0]})
        assert res.status_code == 200

    res = client.get(f"/api/rooms/{room_id}/progress")
    assert res.json()["submitted"] == 3
    assert res.json()["expected"] == 5

    res = client.post(
        f"/api/rooms/{room_id}/transition",
        json={"wallet": "0xhost", "expected_status": "voting", "expected_phase": 1},
    )
    body = res.json()
    assert body["status"] == "night"
    assert body["phase"] == 2
    assert body["day"]["voted_out_id"] == ids[0]

    # 同じフェーズを再送すると 409
    res = client.post(
        f"/api/rooms/{room_id}/transition",
        json={"wallet": "0xhost", "expected_status": "voting", "expected_phase": 1},
    )
    assert res.status_code == 409


def test_game_end_reveals_roles_and_result(client: TestClient, db: Session):
    room_id, _, wallets = _create_lobby(client, 6)
    client.post(f"/api/rooms/{room_id}/start", json={"wallet": "0xhost"})
    players = _set_roles(db, room_id, ["citizen", "impostor", "detective", "citizen", "citizen", "citizen"])
    ids = [p.id for p in players]

    res = client.get(f"/api/rooms/{room_id}/result")
    assert res.status_code == 404

    _transition(client, room_id, "night", 1)  # night → day（誰も死なない）
    _transition(client, room_id, "day", 1)  # day → voting
    for w in (wallets[0], wallets[2], wallets[3]):
        client.post(f"/api/rooms/{room_id}/vote", json={"wallet": w, "target_id": ids[1]})
    res = _transition(client, room_id, "voting", 1)
    body = res.json()

    assert body["status"] == "ended"
    assert body["winner"]["winner_team"] == "citizens"
    game_id = body["game_id"]

    snap = client.get(f"/api/rooms/{room_id}").json()
    assert snap["winner_team"] == "citizens"
    assert snap["game_id"] == game_id
    assert all(p["role"] is not None for p in snap["players"])

    result = client.get(f"/api/rooms/{room_id}/result").json()
    assert result["game_id"] == game_id
    won = {r["wallet"]: r["won"] for r in result["player_results"]}
    assert won["0xguest2"] is False
    assert won["0xhost"] is True

    stats = client.get("/api/stats/0xHOST").json()
    assert stats["games_played"] == 1
    assert stats["games_won"] == 1
    assert stats["reputation"] == 10

    res = _transition(client, room_id, "ended", 1)
    assert res.status_code == 409


def test_join_after_start_rejected(client: TestClient, db: Session):
    room_id, code, _ = _create_lobby(client, 6)
    client.post(f"/api/rooms/{room_id}/start", json={"wallet": "0xhost"})

    res = client.post("/api/rooms/join", json={"code": code, "wallet": "0xlate", "nickname": "Late"})
    assert res.status_code == 400
    assert res.json()["detail"] == "Game already started"


def test_empty_wallet_is_rejected(client: TestClient, db: Session):
    res = client.post("/api/rooms", json={"wallet": "   ", "nickname": "Nobody"})
    assert res.status_code == 422


def test_stats_unknown_wallet_404(client: TestClient, db: Session):
    res = client.get("/api/stats/0xnobody")
    assert res.status_code == 404


def test_resent_transition_body_is_409(client: TestClient, db: Session):
    room_id, _, _ = _create_lobby(client, 6)
    client.post(f"/api/rooms/{room_id}/start", json={"wallet": "0xhost"})
    _set_roles(db, room_id, ["impostor", "impostor", "detective", "citizen", "citizen", "citizen"])

    res = _transition(client, room_id, "night", 1)
    assert res.status_code == 200
    assert res.json()["status"] == "day"

    # タイムアウト後の再送（同じボディ）
    res = _transition(client, room_id, "night", 1)
    assert res.status_code == 409
    assert res.json()["detail"] == "Phase already resolved"

    snap = client.get(f"/api/rooms/{room_id}").json()
    assert snap["status"] == "day"
    assert snap["phase"] == 1


def test_transition_without_expected_phase_is_422(client: TestClient, db: Session):
    room_id, _, _ = _create_lobby(client, 6)
    client.post(f"/api/rooms/{room_id}/start", json={"wallet": "0xhost"})

    res = client.post(f"/api/rooms/{room_id}/transition", json={"wallet": "0xhost"})
    assert res.status_code == 422

    snap = client.get(f"/api/rooms/{room_id}").json()
    assert snap["status"] == "night"
