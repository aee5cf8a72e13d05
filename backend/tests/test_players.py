"""Player listing, profiles and admin player management."""
from fastapi.testclient import TestClient
from sqlmodel import Session

from shuffleclub import config
from shuffleclub.models.player import Player
from shuffleclub.routes.players import F2F_ADDRESS_PLACEHOLDER


def test_list_hides_inactive_and_dummy(client: TestClient, make_player, def_player):
    make_player("zed")
    make_player("amy", full_name="Amy Smith")
    make_player("old", is_active=False)

    handles = [p["handle_name"] for p in client.get("/api/players").json()["items"]]
    assert handles == ["amy", "zed"]

    everyone = client.get("/api/players", params={"active_only": False, "include_dummy": True}).json()["items"]
    assert {p["handle_name"] for p in everyone} == {"amy", "zed", "old", config.DEF_HANDLE_NAME}

    found = client.get("/api/players", params={"q": "smith"}).json()["items"]
    assert [p["handle_name"] for p in found] == ["amy"]


def test_options(client: TestClient, make_player, def_player):
    make_player("bea", avatar_url="http://img/bea.png")
    make_player("al")
    items = client.get("/api/players/options").json()["items"]
    assert items[0]["handle_name"] == "al"
    assert items[1] == {"id": items[1]["id"], "handle_name": "bea", "avatar_url": "http://img/bea.png"}
    assert len(items) == 2


def test_get_player(client: TestClient, make_player):
    player = make_player("cy", wins=5, losses=3)
    data = client.get(f"/api/players/{player.id}").json()["player"]
    assert data["win_rate"] == 62.5
    assert data["win_rate_text"] == "62.5%"
    assert "password_hash" not in data

    assert client.get("/api/players/9999").status_code == 404


def test_update_own_profile(client: TestClient, make_player, auth_headers):
    player = make_player("dee")
    response = client.patch(
        f"/api/players/{player.id}",
        json={"full_name": "Dee Dee", "phone": "00447700900123"},
        headers=auth_headers(player),
    )
    assert response.status_code == 200
    assert response.json()["player"]["full_name"] == "Dee Dee"
    assert response.json()["player"]["phone"] == "+447700900123"


def test_update_other_profile_requires_admin(client: TestClient, make_player, auth_headers):
    me = make_player("ed")
    other = make_player("flo")
    admin = make_player("boss", is_admin=True)

    assert client.patch(f"/api/players/{other.id}", json={"full_name": "X"}, headers=auth_headers(me)).status_code == 403
    response = client.patch(f"/api/players/{other.id}", json={"full_name": "X"}, headers=auth_headers(admin))
    assert response.status_code == 200


def test_update_duplicate_handle(client: TestClient, make_player, auth_headers):
    me = make_player("gus")
    make_player("hal")
    response = client.patch(f"/api/players/{me.id}", json={"handle_name": "HAL"}, headers=auth_headers(me))
    assert response.status_code == 409


def test_update_null_handle_is_rejected(client: TestClient, session: Session, make_player, auth_headers):
    me = make_player("ida")
    response = client.patch(f"/api/players/{me.id}", json={"handle_name": None}, headers=auth_headers(me))
    assert response.status_code == 400
    assert response.json()["ok"] is False

    session.expire_all()
    assert session.get(Player, me.id).handle_name == "ida"


def test_player_matches_lists_own_delta(client: TestClient, make_player, auth_headers):
    a = make_player("ivy", handicap=10)
    b = make_player("jon", handicap=10)
    client.post(
        "/api/matches",
        json={"mode": "singles", "winner_id": a.id, "loser_id": b.id, "winner_score": 15, "loser_score": 5},
        headers=auth_headers(a),
    )

    items = client.get(f"/api/players/{b.id}/matches").json()["items"]
    assert len(items) == 1
    assert items[0]["result"] == "loss"
    assert items[0]["opponent_id"] == a.id
    assert items[0]["points_delta"] == -21
    assert items[0]["handicap_delta"] == 1

    assert client.get("/api/players/9999/matches").status_code == 404


def test_set_active(client: TestClient, make_player, admin_headers, session: Session):
    player = make_player("kim")

    response = client.post(
        "/api/admin/players/set-active", json={"player_id": str(player.id), "is_active": "false"}, headers=admin_headers
    )
    assert response.json() == {"ok": True, "player_id": player.id, "is_active": False}
    session.expire_all()
    assert session.get(Player, player.id).is_active is False

    bad = {"player_id": player.id, "is_active": "maybe"}
    assert client.post("/api/admin/players/set-active", json=bad, headers=admin_headers).status_code == 400
    missing = {"is_active": True}
    assert client.post("/api/admin/players/set-active", json=missing, headers=admin_headers).status_code == 400
    unknown = {"player_id": 9999, "is_active": True}
    assert client.post("/api/admin/players/set-active", json=unknown, headers=admin_headers).status_code == 404


def test_f2f_register(client: TestClient, admin_headers, make_player, session: Session):
    response = client.post(
        "/api/admin/f2f-register", json={"handle_name": " lou ", "full_name": "Lou"}, headers=admin_headers
    )
    assert response.status_code == 201
    player = session.get(Player, response.json()["player_id"])
    assert player.handle_name == "lou"
    assert player.address == F2F_ADDRESS_PLACEHOLDER
    assert player.handicap == config.F2F_HANDICAP_DEFAULT
    assert player.ranking_points == config.RATING_DEFAULT
    assert player.password_hash is None

    assert client.post("/api/admin/f2f-register", json={"handle_name": ""}, headers=admin_headers).status_code == 400
    assert client.post("/api/admin/f2f-register", json={"handle_name": "LOU"}, headers=admin_headers).status_code == 409
