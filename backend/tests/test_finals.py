"""Final brackets: seeding with def, byes, scoring, advancement and champion."""
from fastapi.testclient import TestClient
from sqlmodel import Session

from shuffleclub.models.player import Player
from shuffleclub.models.tournament import Tournament


def _tournament(session: Session) -> Tournament:
    t = Tournament(name="Finals Cup")
    session.add(t)
    session.commit()
    session.refresh(t)
    return t


def _create_finals(client: TestClient, headers, tournament_id: int, nominees, title=None):
    body = {"nominees": nominees}
    if title is not None:
        body["title"] = title
    return client.post(f"/api/tournaments/{tournament_id}/league/finals", json=body, headers=headers)


def _entries(client: TestClient, tournament_id: int):
    data = client.get(f"/api/tournaments/{tournament_id}/finals").json()
    return {(e["round_no"], e["slot_no"]): e["player_id"] for e in data["entries"]}


def _report(client: TestClient, headers, bracket_id: int, round_no: int, match_no: int, **body):
    return client.post(
        "/api/finals/report",
        json={"bracket_id": bracket_id, "round_no": round_no, "match_no": match_no, **body},
        headers=headers,
    )


def test_create_pads_with_def(client: TestClient, session: Session, admin_headers, make_player, def_player):
    t = _tournament(session)
    n = [make_player(f"n{i}") for i in range(1, 4)]

    response = _create_finals(client, admin_headers, t.id, [x.id for x in n])
    assert response.status_code == 201
    data = response.json()
    assert data["size"] == 4
    assert data["padded_count"] == 1
    assert data["bracket"]["title"] == "Final tournament"
    assert data["bracket"]["champion_player_id"] is None

    entries = _entries(client, t.id)
    assert [entries[(1, s)] for s in range(1, 5)] == [n[0].id, n[1].id, n[2].id, def_player.id]
    assert entries[(2, 1)] is None
    assert entries[(2, 2)] is None
    assert len(entries) == 6


def test_create_errors(client: TestClient, session: Session, admin_headers, make_player):
    t = _tournament(session)
    a, b, c = make_player("ca"), make_player("cb"), make_player("cc")

    assert _create_finals(client, admin_headers, t.id, [a.id]).status_code == 400
    assert _create_finals(client, admin_headers, t.id, [a.id, a.id]).status_code == 400
    # padding needed but no def player exists
    assert _create_finals(client, admin_headers, t.id, [a.id, b.id, c.id]).status_code == 400
    assert _create_finals(client, admin_headers, 9999, [a.id, b.id]).status_code == 404

    assert _create_finals(client, admin_headers, t.id, [a.id, b.id], title="Grand Final").status_code == 201
    assert _create_finals(client, admin_headers, t.id, [a.id, b.id]).status_code == 409


def test_full_bracket_with_bye_sets_and_advantage(
    client: TestClient, session: Session, admin_headers, make_player, def_player
):
    t = _tournament(session)
    n1, n2, n3 = (make_player(h) for h in ("fa", "fb", "fc"))
    bracket_id = _create_finals(client, admin_headers, t.id, [n1.id, n2.id, n3.id]).json()["bracket"]["id"]

    # the final cannot be reported before its slots are filled
    assert _report(client, admin_headers, bracket_id, 2, 1, winner_id=n1.id).status_code == 400

    bye = _report(client, admin_headers, bracket_id, 1, 2)
    assert bye.status_code == 200
    assert bye.json()["bye"] is True
    assert bye.json()["champion_player_id"] is None
    assert _entries(client, t.id)[(2, 2)] == n3.id

    sets = [{"a": 15, "b": 9}, {"a": 10, "b": 15}, {"a": 15, "b": 12}]
    played = _report(client, admin_headers, bracket_id, 1, 1, sets=sets)
    assert played.json()["bye"] is False
    assert _entries(client, t.id)[(2, 1)] == n1.id

    matches = client.get(f"/api/finals/{bracket_id}/matches").json()["matches"]
    first = matches[0]
    assert (first["round_no"], first["match_no"]) == (1, 1)
    assert first["winner_id"] == n1.id
    assert (first["winner_score"], first["loser_score"]) == (2, 1)
    assert first["sets_json"] == sets
    assert matches[1]["end_reason"] == "bye"
    assert (matches[1]["winner_score"], matches[1]["loser_score"]) == (1, 0)

    # fc came through a bye, so fa starts the series one game up
    final = _report(client, admin_headers, bracket_id, 2, 1, games=[{}, {"winner_id": n1.id}])
    assert final.status_code == 200
    assert final.json()["champion_player_id"] == n1.id

    data = client.get(f"/api/tournaments/{t.id}/finals").json()
    assert data["bracket"]["champion_player_id"] == n1.id
    last = [m for m in data["matches"] if m["round_no"] == 2][0]
    assert last["end_reason"] == "advantage"
    assert last["sets_json"][0] == {"winner_id": n1.id, "win_type": "advantage"}
    assert (last["winner_score"], last["loser_score"]) == (2, 0)

    # finals never touch ratings
    session.expire_all()
    assert session.get(Player, n1.id).ranking_points == 1000
    assert session.get(Player, n1.id).wins == 0


def test_report_validation(client: TestClient, session: Session, admin_headers, make_player):
    t = _tournament(session)
    a, b, c = make_player("va"), make_player("vb"), make_player("vc")
    bracket_id = _create_finals(client, admin_headers, t.id, [a.id, b.id]).json()["bracket"]["id"]

    assert _report(client, admin_headers, bracket_id, 1, 1).status_code == 400
    assert _report(client, admin_headers, bracket_id, 1, 1, winner_id=c.id).status_code == 400
    assert _report(client, admin_headers, bracket_id, 1, 1, winner_id=a.id, winner_score=1, loser_score=2).status_code == 400
    assert _report(client, admin_headers, 9999, 1, 1, winner_id=a.id).status_code == 404
    assert client.post("/api/finals/report", json={"winner_id": a.id}, headers=admin_headers).status_code == 400
    assert client.post("/api/finals/matches/9999/report", json={"winner_id": a.id}, headers=admin_headers).status_code == 404

    ok = _report(client, admin_headers, bracket_id, 1, 1, winner_id=b.id, winner_score=3, loser_score=1)
    assert ok.json()["champion_player_id"] == b.id

    match_id = client.get(f"/api/finals/{bracket_id}/matches").json()["matches"][0]["id"]
    corrected = client.post(f"/api/finals/matches/{match_id}/report", json={"winner_id": a.id}, headers=admin_headers)
    assert corrected.json()["champion_player_id"] == a.id


def test_slots_and_reset(client: TestClient, session: Session, admin_headers, make_player):
    t = _tournament(session)
    a, b = make_player("ra"), make_player("rb")
    bracket_id = _create_finals(client, admin_headers, t.id, [a.id, b.id]).json()["bracket"]["id"]

    response = client.post(
        "/api/finals/slot", json={"bracket_id": bracket_id, "round_no": 1, "slot_no": 2, "player_id": a.id}, headers=admin_headers
    )
    assert response.json()["entry"] == {"round_no": 1, "slot_no": 2, "player_id": a.id}
    cleared = client.post(
        "/api/finals/slot", json={"bracket_id": bracket_id, "round_no": 1, "slot_no": 2, "player_id": None}, headers=admin_headers
    )
    assert cleared.json()["entry"]["player_id"] is None

    bad = {"bracket_id": bracket_id, "round_no": 0, "slot_no": 1}
    assert client.post("/api/finals/slot", json=bad, headers=admin_headers).status_code == 400
    unknown = {"bracket_id": 9999, "round_no": 1, "slot_no": 1}
    assert client.post("/api/finals/slot", json=unknown, headers=admin_headers).status_code == 404

    client.post("/api/finals/slot", json={"bracket_id": bracket_id, "round_no": 1, "slot_no": 2, "player_id": b.id}, headers=admin_headers)
    _report(client, admin_headers, bracket_id, 1, 1, winner_id=a.id)

    reset = client.post(f"/api/tournaments/{t.id}/league/finals/reset", headers=admin_headers).json()
    assert reset["ok"] is True
    assert reset["deleted"] == {"brackets": 1, "entries": 2, "matches": 1}
    assert client.get(f"/api/tournaments/{t.id}/finals").json()["bracket"] is None


def test_round_labels(client: TestClient, session: Session, admin_headers, make_player):
    t = _tournament(session)
    a, b = make_player("la"), make_player("lb")
    bracket_id = _create_finals(client, admin_headers, t.id, [a.id, b.id]).json()["bracket"]["id"]

    response = client.post(
        "/api/admin/finals/round-labels",
        json={"bracketId": bracket_id, "roundLabels": {"1": "Semi-final", "2": " Final ", "0": "ignored"}},
        headers=admin_headers,
    )
    assert response.json()["labels"] == {"1": "Semi-final", "2": "Final"}

    client.post(
        "/api/admin/finals/round-labels", json={"bracket_id": bracket_id, "labels": {"1": ""}}, headers=admin_headers
    )
    labels = client.get("/api/admin/finals/round-labels", params={"bracket_id": bracket_id}).json()["labels"]
    assert labels == {"2": "Final"}

    assert client.get("/api/admin/finals/round-labels").status_code == 400
    missing = client.post("/api/admin/finals/round-labels", json={"labels": {}}, headers=admin_headers)
    assert missing.status_code == 400


def test_series_endpoint(client: TestClient):
    response = client.post(
        "/api/finals/series",
        json={"player1_id": 1, "player2_id": 2, "p1_by_def": "true", "p2_by_def": False, "games": []},
    )
    data = response.json()
    assert data["advantage"] == {"enabled": True, "player_id": 2, "reason": "opponent_advanced_by_def"}
    assert data["score_text"] == "0-1"
    assert data["recommended_winner_id"] is None

    response = client.post(
        "/api/finals/series",
        json={"player1_id": 1, "player2_id": 2, "games": [{"winner_id": 1}, {"winner_id": 1}]},
    )
    assert response.json()["advantage"]["enabled"] is False
    assert response.json()["recommended_winner_id"] == 1
