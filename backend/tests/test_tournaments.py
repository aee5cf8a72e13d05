"""Tournament CRUD, participants, bracket generation and advancement."""
from datetime import date, datetime, timedelta

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from shuffleclub.models.league import LeagueBlock
from shuffleclub.models.match import Match
from shuffleclub.models.team import Team
from shuffleclub.models.tournament import TournamentEntry


def _create(client: TestClient, headers, **fields) -> dict:
    response = client.post("/api/tournaments", json=fields, headers=headers)
    assert response.status_code == 201
    return response.json()["item"]


def _seed(client: TestClient, headers, tournament_id: int, player_ids):
    entries = [{"player_id": pid, "seed": i + 1} for i, pid in enumerate(player_ids)]
    response = client.post(f"/api/tournaments/{tournament_id}/participants", json={"entries": entries}, headers=headers)
    assert response.status_code == 201


def test_create_with_defaults(client: TestClient, admin_headers):
    item = _create(client, admin_headers)
    assert item["name"] == "New tournament"
    assert item["start_date"] == date.today().isoformat()
    assert item["mode"] == "singles"
    assert (item["size"], item["best_of"], item["point_cap"]) == (8, 1, 15)
    assert item["apply_handicap"] is True
    assert item["time_limit_minutes"] == 30


def test_create_normalizes_fields(client: TestClient, admin_headers):
    item = _create(client, admin_headers, name="Spring", mode="Teams", size="12", best_of=2, point_cap=500)
    assert item["mode"] == "teams"
    assert item["size"] == 8
    assert item["best_of"] == 1
    assert item["point_cap"] == 99

    item = _create(client, admin_headers, size="16", best_of="3", start_date="2025-05-05")
    assert (item["size"], item["best_of"], item["start_date"]) == (16, 3, "2025-05-05")


def test_create_requires_admin(client: TestClient, make_player, auth_headers):
    assert client.post("/api/tournaments", json={}).status_code == 401
    player = make_player("pat")
    assert client.post("/api/tournaments", json={}, headers=auth_headers(player)).status_code == 403


def test_get_update_list(client: TestClient, admin_headers):
    first = _create(client, admin_headers, name="First")
    second = _create(client, admin_headers, name="Second")

    names = [t["name"] for t in client.get("/api/tournaments").json()["items"]]
    assert names == ["Second", "First"]

    response = client.patch(f"/api/tournaments/{first['id']}", json={"name": "Renamed", "size": 4}, headers=admin_headers)
    assert response.json()["item"]["name"] == "Renamed"
    assert response.json()["item"]["size"] == 4
    assert client.get(f"/api/tournaments/{second['id']}").json()["item"]["name"] == "Second"
    assert client.get("/api/tournaments/9999").status_code == 404


def test_participants_keep_positive_seeds(client: TestClient, admin_headers, make_player):
    t = _create(client, admin_headers)
    p1, p2, p3 = make_player("p1"), make_player("p2"), make_player("p3")
    entries = [
        {"player_id": p2.id, "seed": "2"},
        {"player_id": p1.id, "seed": 1},
        {"player_id": p3.id, "seed": 0},
        {"seed": 3},
    ]
    response = client.post(f"/api/tournaments/{t['id']}/participants", json={"entries": entries}, headers=admin_headers)
    assert response.json() == {"ok": True, "count": 2}

    listed = client.get(f"/api/tournaments/{t['id']}/participants").json()["entries"]
    assert [e["player_id"] for e in listed] == [p1.id, p2.id]

    bad = {"entries": [{"player_id": p1.id, "seed": -1}]}
    assert client.post(f"/api/tournaments/{t['id']}/participants", json=bad, headers=admin_headers).status_code == 400


def test_generate_bracket_pairs_seeds(client: TestClient, admin_headers, make_player):
    t = _create(client, admin_headers, size=4)
    players = [make_player(f"s{i}") for i in range(1, 7)]
    _seed(client, admin_headers, t["id"], [p.id for p in players])

    response = client.post(f"/api/tournaments/{t['id']}/generate-bracket", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["inserted_count"] == 2
    pairs = [(m["match_no"], m["a_id"], m["b_id"]) for m in data["inserted"]]
    assert pairs == [(1, players[0].id, players[3].id), (2, players[1].id, players[2].id)]

    rounds = client.get(f"/api/tournaments/{t['id']}/bracket").json()["rounds"]
    assert len(rounds["1"]) == 2
    assert len(rounds["2"]) == 1
    assert rounds["2"][0]["a_id"] is None
    assert rounds["1"][0]["a"] == {"name": "s1", "avatar": None, "kind": "player"}


def test_regenerate_replaces_matches(client: TestClient, admin_headers, make_player, session: Session):
    t = _create(client, admin_headers, size=4)
    _seed(client, admin_headers, t["id"], [make_player(f"r{i}").id for i in range(4)])
    client.post(f"/api/tournaments/{t['id']}/generate-bracket", headers=admin_headers)
    client.post(f"/api/tournaments/{t['id']}/generate-bracket", headers=admin_headers)

    matches = session.exec(select(Match).where(Match.tournament_id == t["id"])).all()
    assert len(matches) == 3


def test_generate_bracket_errors(client: TestClient, admin_headers, make_player):
    t = _create(client, admin_headers)
    _seed(client, admin_headers, t["id"], [make_player("only").id])
    assert client.post(f"/api/tournaments/{t['id']}/generate-bracket", headers=admin_headers).status_code == 400
    assert client.post("/api/tournaments/9999/generate-bracket", headers=admin_headers).status_code == 404


def test_reported_winners_advance(client: TestClient, admin_headers, make_player, session: Session):
    t = _create(client, admin_headers, size=4)
    p = [make_player(f"w{i}") for i in range(1, 5)]
    _seed(client, admin_headers, t["id"], [x.id for x in p])
    inserted = client.post(f"/api/tournaments/{t['id']}/generate-bracket", headers=admin_headers).json()["inserted"]

    # seed 4 upsets seed 1; seed 2 wins
    client.post(f"/api/matches/{inserted[0]['id']}/report", json={"winner_id": p[3].id}, headers=admin_headers)
    client.post(f"/api/matches/{inserted[1]['id']}/report", json={"winner_id": p[1].id}, headers=admin_headers)

    final = client.get(f"/api/tournaments/{t['id']}/bracket").json()["rounds"]["2"][0]
    assert (final["a_id"], final["b_id"]) == (p[3].id, p[1].id)

    response = client.post(f"/api/matches/{final['id']}/report", json={"winner_id": p[1].id}, headers=admin_headers)
    assert response.status_code == 200
    final = client.get(f"/api/tournaments/{t['id']}/bracket").json()["rounds"]["2"][0]
    assert final["winner_id"] == p[1].id
    assert final["score"] == "15-0"


def test_inferred_bracket(client: TestClient, admin_headers, make_player, session: Session):
    t = _create(client, admin_headers)
    a, b, c, d = (make_player(h) for h in ("ia", "ib", "ic", "id"))
    start = datetime(2025, 6, 1, 10, 0)
    for minutes, winner, loser in ((10, a, b), (20, c, d), (40, c, a)):
        session.add(
            Match(
                mode="singles",
                status="finalized",
                tournament_id=t["id"],
                match_date=start + timedelta(minutes=minutes),
                player_a_id=winner.id,
                player_b_id=loser.id,
                winner_id=winner.id,
                loser_id=loser.id,
                winner_score=15,
                loser_score=3,
            )
        )
    session.commit()

    data = client.get(f"/api/tournaments/{t['id']}/bracket/inferred").json()
    assert [len(r) for r in data["rounds"]] == [2, 1]
    assert data["champion_id"] == c.id


def test_inferred_bracket_for_teams(client: TestClient, admin_headers, session: Session):
    t = _create(client, admin_headers, mode="teams")
    teams = []
    for name in ("north", "south", "east", "west"):
        team = Team(name=name)
        session.add(team)
        teams.append(team)
    session.commit()
    north, south, east, west = teams

    start = datetime(2025, 6, 1, 10, 0)
    for minutes, winner, loser in ((10, north, south), (20, east, west), (40, east, north)):
        session.add(
            Match(
                mode="teams",
                status="finalized",
                tournament_id=t["id"],
                match_date=start + timedelta(minutes=minutes),
                team_a_id=winner.id,
                team_b_id=loser.id,
                winner_team_id=winner.id,
                loser_team_id=loser.id,
                winner_score=15,
                loser_score=3,
                affects_rating=False,
            )
        )
    session.commit()

    data = client.get(f"/api/tournaments/{t['id']}/bracket/inferred").json()
    assert data["mode"] == "teams"
    assert [len(r) for r in data["rounds"]] == [2, 1]
    assert data["rounds"][1][0]["player_a_id"] == east.id
    assert data["champion_id"] == east.id


def test_delete_cascades(client: TestClient, admin_headers, make_player, def_player, session: Session):
    t = _create(client, admin_headers)
    p = [make_player(f"d{i}") for i in range(3)]
    _seed(client, admin_headers, t["id"], [x.id for x in p])
    client.post(f"/api/tournaments/{t['id']}/league/blocks", json={"player_ids": [x.id for x in p]}, headers=admin_headers)
    client.post(
        f"/api/tournaments/{t['id']}/league/finals", json={"nominees": [p[0].id, p[1].id]}, headers=admin_headers
    )

    assert client.delete(f"/api/tournaments/{t['id']}", headers=admin_headers).json() == {"ok": True}
    assert client.get(f"/api/tournaments/{t['id']}").status_code == 404
    session.expire_all()
    assert session.exec(select(Match).where(Match.tournament_id == t["id"])).first() is None
    assert session.exec(select(LeagueBlock).where(LeagueBlock.tournament_id == t["id"])).first() is None
    assert session.exec(select(TournamentEntry).where(TournamentEntry.tournament_id == t["id"])).first() is None
    assert client.get(f"/api/tournaments/{t['id']}/finals").json()["bracket"] is None
