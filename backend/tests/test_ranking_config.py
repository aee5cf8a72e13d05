"""Ranking formula settings and their effect on recorded matches."""
from fastapi.testclient import TestClient


def test_defaults_without_row(client: TestClient):
    data = client.get("/api/ranking-config").json()
    assert data["row_id"] == "global"
    assert data["config"] == {
        "k_factor": 32,
        "score_diff_multiplier": 0.05,
        "handicap_diff_multiplier": 0.02,
        "win_threshold_handicap_change": 10,
        "handicap_change_amount": 1,
    }
    assert data["trend"]["trend_default_mode"] == "daily"
    assert data["trend"]["trend_daily_days"] == 5


def test_put_sections_and_flat_fields(client: TestClient, admin_headers):
    response = client.put(
        "/api/admin/ranking-config",
        json={"config": {"k_factor": 500}, "trend": {"trend_default_mode": "weekly", "trend_weekly_weeks": 12}},
        headers=admin_headers,
    )
    data = response.json()
    assert data["saved"] is True
    assert data["config"]["k_factor"] == 64
    assert data["trend"]["trend_default_mode"] == "weekly"
    assert data["trend"]["trend_weekly_weeks"] == 12

    # flat fields merge over the saved values
    client.put("/api/admin/ranking-config", json={"k_factor": "20"}, headers=admin_headers)
    data = client.get("/api/ranking-config").json()
    assert data["config"]["k_factor"] == 20
    assert data["trend"]["trend_default_mode"] == "weekly"


def test_put_requires_admin(client: TestClient, make_player, auth_headers):
    assert client.put("/api/admin/ranking-config", json={"k_factor": 40}).status_code == 401
    player = make_player("nosy")
    assert client.put("/api/admin/ranking-config", json={"k_factor": 40}, headers=auth_headers(player)).status_code == 403


def test_saved_k_factor_drives_match_deltas(client: TestClient, admin_headers, make_player, auth_headers):
    client.put("/api/admin/ranking-config", json={"config": {"k_factor": 64}}, headers=admin_headers)
    a = make_player("ka")
    b = make_player("kb")

    response = client.post("/api/matches", json={"winner_id": a.id, "loser_id": b.id}, headers=auth_headers(a))
    assert response.json()["deltas"]["winner"]["points"] == 48
    assert response.json()["deltas"]["loser"]["points"] == -48
