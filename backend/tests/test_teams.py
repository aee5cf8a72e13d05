"""Team CRUD, membership rules and team rankings."""
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from shuffleclub.models.team import TeamMember


def test_create_team_includes_creator(client: TestClient, make_player, auth_headers):
    me = make_player("ann", ranking_points=1100, handicap=4)
    mate = make_player("ben", ranking_points=900, handicap=8)

    response = client.post("/api/teams", json={"name": " Sliders ", "member_ids": [mate.id]}, headers=auth_headers(me))
    assert response.status_code == 201
    team = response.json()["team"]
    assert team["name"] == "Sliders"
    assert team["created_by"] == me.id
    assert {m["player_id"] for m in team["members"]} == {me.id, mate.id}


def test_create_team_errors(client: TestClient, make_player, auth_headers):
    me = make_player("cal")
    headers = auth_headers(me)
    assert client.post("/api/teams", json={"name": "Pucks"}, headers=headers).status_code == 201
    assert client.post("/api/teams", json={"name": "Pucks"}, headers=headers).status_code == 409
    assert client.post("/api/teams", json={"name": "Other", "member_ids": [9999]}, headers=headers).status_code == 400
    assert client.post("/api/teams", json={"name": "  "}, headers=headers).status_code == 400
    assert client.post("/api/teams", json={"name": "Anon"}).status_code == 401


def test_update_team_members_only(client: TestClient, make_player, auth_headers, session: Session):
    owner = make_player("dan")
    outsider = make_player("eve")
    team_id = client.post("/api/teams", json={"name": "Discs"}, headers=auth_headers(owner)).json()["team"]["id"]

    assert client.patch(f"/api/teams/{team_id}", json={"name": "X"}, headers=auth_headers(outsider)).status_code == 403

    response = client.patch(
        f"/api/teams/{team_id}", json={"name": "Discs II", "member_ids": [outsider.id]}, headers=auth_headers(owner)
    )
    assert response.status_code == 200
    assert response.json()["team"]["name"] == "Discs II"
    members = session.exec(select(TeamMember.player_id).where(TeamMember.team_id == team_id)).all()
    assert list(members) == [outsider.id]

    empty = client.patch(f"/api/teams/{team_id}", json={"member_ids": []}, headers=auth_headers(outsider))
    assert empty.status_code == 400


def test_delete_team_admin_only(client: TestClient, make_player, auth_headers, admin_headers, session: Session):
    owner = make_player("fay")
    team_id = client.post("/api/teams", json={"name": "Gone"}, headers=auth_headers(owner)).json()["team"]["id"]

    assert client.delete(f"/api/teams/{team_id}", headers=auth_headers(owner)).status_code == 403
    assert client.delete(f"/api/teams/{team_id}", headers=admin_headers).json() == {"ok": True}
    assert client.get(f"/api/teams/{team_id}").status_code == 404
    assert session.exec(select(TeamMember).where(TeamMember.team_id == team_id)).first() is None


def test_list_and_options(client: TestClient, make_player, auth_headers):
    me = make_player("gil")
    headers = auth_headers(me)
    client.post("/api/teams", json={"name": "Zeta"}, headers=headers)
    client.post("/api/teams", json={"name": "Alpha"}, headers=headers)

    assert [t["name"] for t in client.get("/api/teams").json()["items"]] == ["Alpha", "Zeta"]
    assert [t["name"] for t in client.get("/api/teams/options").json()["items"]] == ["Alpha", "Zeta"]


def test_my_teams(client: TestClient, make_player, auth_headers):
    me = make_player("hub")
    other = make_player("ida")
    admin = make_player("root", is_admin=True)
    client.post("/api/teams", json={"name": "Mine"}, headers=auth_headers(me))
    client.post("/api/teams", json={"name": "Theirs"}, headers=auth_headers(other))

    mine = client.get("/api/my/teams", headers=auth_headers(me)).json()
    assert mine["admin"] is False
    assert [t["name"] for t in mine["teams"]] == ["Mine"]

    everything = client.get("/api/my/teams", headers=auth_headers(admin)).json()
    assert everything["admin"] is True
    assert [t["name"] for t in everything["teams"]] == ["Mine", "Theirs"]


def test_team_rankings(client: TestClient, make_player, auth_headers):
    a1 = make_player("a1", ranking_points=1200, handicap=2)
    a2 = make_player("a2", ranking_points=1000, handicap=4)
    b1 = make_player("b1", ranking_points=900, handicap=10)
    strong = client.post("/api/teams", json={"name": "Strong", "member_ids": [a2.id]}, headers=auth_headers(a1))
    weak = client.post("/api/teams", json={"name": "Weak"}, headers=auth_headers(b1))
    strong_id = strong.json()["team"]["id"]
    weak_id = weak.json()["team"]["id"]

    client.post(
        "/api/matches",
        json={"mode": "teams", "team1_id": strong_id, "team2_id": weak_id, "team1_score": 15, "team2_score": 7},
        headers=auth_headers(a1),
    )

    rows = client.get("/api/rankings/teams").json()["items"]
    assert [r["name"] for r in rows] == ["Strong", "Weak"]
    assert rows[0]["team_size"] == 2
    assert rows[0]["avg_rp"] == 1100.0
    assert rows[0]["avg_hc"] == 3.0
    assert (rows[0]["played"], rows[0]["wins"], rows[0]["losses"]) == (1, 1, 0)
    assert rows[0]["win_pct"] == 100.0
    assert rows[1]["losses"] == 1
    assert rows[1]["last_match_at"] is not None
