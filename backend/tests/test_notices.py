"""Notice board: publishing, visibility and search."""
from fastapi.testclient import TestClient


def _post(client: TestClient, headers, **fields):
    response = client.post("/api/notices", json={"content": "", **fields}, headers=headers)
    assert response.status_code == 201
    return response.json()["item"]


def test_create_and_list_newest_first(client: TestClient, admin_headers):
    _post(client, admin_headers, title="Old news", date="2025-01-10")
    _post(client, admin_headers, title="Fresh news", date="2025-03-01", content="League starts")
    _post(client, admin_headers, title="Draft", is_published=False)

    items = client.get("/api/notices").json()["items"]
    assert [n["title"] for n in items] == ["Fresh news", "Old news"]

    found = client.get("/api/notices", params={"q": "league"}).json()["items"]
    assert [n["title"] for n in found] == ["Fresh news"]

    assert len(client.get("/api/notices", params={"limit": 1}).json()["items"]) == 1


def test_unpublished_visible_to_admin_players_only(client: TestClient, admin_headers, make_player, auth_headers):
    draft = _post(client, admin_headers, title="Draft", is_published=False)
    admin = make_player("boss", is_admin=True)

    assert client.get(f"/api/notices/{draft['id']}").status_code == 404
    assert client.get(f"/api/notices/{draft['id']}", headers=auth_headers(admin)).status_code == 200

    anonymous = client.get("/api/notices", params={"include_unpublished": True}).json()["items"]
    assert anonymous == []
    as_admin = client.get("/api/notices", params={"include_unpublished": True}, headers=auth_headers(admin))
    assert [n["title"] for n in as_admin.json()["items"]] == ["Draft"]


def test_title_required(client: TestClient, admin_headers):
    response = client.post("/api/notices", json={"title": "  "}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["ok"] is False


def test_update_and_delete(client: TestClient, admin_headers, make_player, auth_headers):
    notice = _post(client, admin_headers, title="Typo")

    updated = client.patch(f"/api/notices/{notice['id']}", json={"title": "Fixed"}, headers=admin_headers)
    assert updated.json()["item"]["title"] == "Fixed"
    assert client.patch(f"/api/notices/{notice['id']}", json={"title": ""}, headers=admin_headers).status_code == 400

    player = make_player("reader")
    assert client.delete(f"/api/notices/{notice['id']}", headers=auth_headers(player)).status_code == 403
    assert client.delete(f"/api/notices/{notice['id']}", headers=admin_headers).json() == {"ok": True}
    assert client.get(f"/api/notices/{notice['id']}").status_code == 404
    assert client.delete("/api/notices/9999", headers=admin_headers).status_code == 404
