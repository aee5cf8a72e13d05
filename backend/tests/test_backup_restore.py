"""Backup download, restore upserts and full reset."""
import json

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from shuffleclub.models.auth_session import AuthSession
from shuffleclub.models.notice import Notice
from shuffleclub.models.player import Player
from shuffleclub.services.backup_service import TABLE_ORDER


def test_backup_document(client: TestClient, admin_headers, make_player, auth_headers):
    player = make_player("alice", password_hash="secret-hash")
    auth_headers(player)

    response = client.get("/api/admin/backup", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-disposition"].startswith('attachment; filename="backup-')
    assert response.headers["cache-control"] == "no-store"

    doc = response.json()
    assert doc["ok"] is True
    assert doc["meta"]["via"] == "admin_token"
    assert doc["meta"]["tables"] == [name for name, _ in TABLE_ORDER]
    assert "auth_sessions" not in doc["data"]
    players = doc["data"]["players"]
    assert players[0]["handle_name"] == "alice"
    assert "password_hash" not in players[0]


def test_restore_upserts_and_keeps_credentials(client: TestClient, session: Session, admin_headers, make_player):
    existing = make_player("bob", password_hash="bob-hash")
    payload = {
        "data": {
            "players": [
                {"id": existing.id, "handle_name": "bobby", "ranking_points": 1234},
                {"id": 500, "handle_name": "Carol"},
            ],
            "notices": [{"id": 7, "title": "Restored", "content": "hello"}],
        }
    }
    response = client.post("/api/admin/restore", json=payload, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["inserted"] == {"players": 2, "notices": 1}

    session.expire_all()
    bob = session.get(Player, existing.id)
    assert bob.handle_name == "bobby"
    assert bob.ranking_points == 1234
    assert bob.password_hash == "bob-hash"
    assert session.get(Player, 500).password_hash is None
    assert session.get(Notice, 7).title == "Restored"


def test_restore_renames_colliding_handles(client: TestClient, session: Session, admin_headers, make_player):
    make_player("dave")
    payload = {"players": [{"id": 600, "handle_name": "DAVE"}, {"id": 601, "handle_name": "dave"}, {"id": 602}]}

    response = client.post("/api/admin/restore", json={"payload": json.dumps(payload)}, headers=admin_headers)
    assert response.status_code == 200
    session.expire_all()
    assert session.get(Player, 600).handle_name == "DAVE__r2"
    assert session.get(Player, 601).handle_name == "dave__r3"
    assert session.get(Player, 602).handle_name == "player-602"


def test_restore_multipart_upload(client: TestClient, session: Session, admin_headers):
    body = json.dumps({"data": {"notices": [{"id": 3, "title": "From file", "content": ""}]}}).encode("utf-8")
    response = client.post(
        "/api/admin/restore",
        files={"file": ("backup.json", body, "application/json")},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert session.get(Notice, 3).title == "From file"


def test_restore_rejects_bad_payloads(client: TestClient, admin_headers, make_player, auth_headers):
    def restore(body):
        return client.post("/api/admin/restore", json=body, headers=admin_headers)

    assert restore(["not", "tables"]).status_code == 400
    assert restore({"players": "nope"}).status_code == 400
    response = restore({"notices": [{"id": 1, "title": "x"}], "players": None})
    assert response.status_code == 400
    assert "players" in response.json()["message"]
    assert restore({"players": []}).status_code == 400
    assert restore({"league_blocks": [{"tournament_id": 1}]}).status_code == 400
    orphan = {"league_block_members": [{"league_block_id": 5, "player_id": 1}]}
    response = restore(orphan)
    assert response.status_code == 400
    assert "unknown block" in response.json()["message"]

    assert client.post("/api/admin/restore", json={"players": [{"id": 1}]}).status_code == 401
    player = make_player("eve")
    assert client.post("/api/admin/restore", json={"players": []}, headers=auth_headers(player)).status_code == 403


def test_restore_replaces_block_members(client: TestClient, session: Session, admin_headers):
    payload = {
        "players": [{"id": 1, "handle_name": "p1"}, {"id": 2, "handle_name": "p2"}],
        "tournaments": [{"id": 1, "name": "Cup"}],
        "league_blocks": [{"id": 1, "tournament_id": 1, "block_no": 1}],
        "league_block_members": [
            {"id": 1, "league_block_id": 1, "player_id": 1},
            {"id": 2, "league_block_id": 1, "player_id": 2},
        ],
    }
    assert client.post("/api/admin/restore", json=payload, headers=admin_headers).status_code == 200

    payload["league_block_members"] = [{"id": 3, "league_block_id": 1, "player_id": 2}]
    assert client.post("/api/admin/restore", json=payload, headers=admin_headers).status_code == 200

    block = client.get("/api/league/blocks/1").json()["block"]
    assert [m["player_id"] for m in block["members"]] == [2]


def test_reset_replaces_everything(client: TestClient, session: Session, admin_headers, make_player, auth_headers):
    player = make_player("frank")
    auth_headers(player)
    backup = client.get("/api/admin/backup", headers=admin_headers).json()
    make_player("extra")

    body = {"data": {**backup["data"], "notices": [{"id": 1, "title": "Kept", "content": ""}]}}
    response = client.post("/api/admin/reset", json=body, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["inserted"]["players"] == 1
    assert response.json()["inserted"]["notices"] == 1

    session.expire_all()
    assert [p.handle_name for p in session.exec(select(Player)).all()] == ["frank"]
    assert session.exec(select(AuthSession)).first() is None
