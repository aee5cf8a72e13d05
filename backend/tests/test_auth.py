"""Registration, login sessions, admin gates and the error envelope."""
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from shuffleclub import config
from shuffleclub.models.auth_session import AuthSession
from shuffleclub.models.player import Player
from shuffleclub.utils.auth import hash_password, hash_token


def _register(client: TestClient, handle="alice", password="secret1", **extra):
    return client.post("/api/register", json={"handle_name": handle, "password": password, **extra})


def test_register_creates_player_and_session(client: TestClient, session: Session):
    response = _register(client, phone="090-1234-5678")
    assert response.status_code == 201
    data = response.json()
    assert data["ok"] is True
    assert data["handle_name"] == "alice"
    assert data["token"]
    assert config.SESSION_COOKIE_NAME in response.cookies

    player = session.get(Player, data["player_id"])
    assert player.ranking_points == config.RATING_DEFAULT
    assert player.handicap == config.HANDICAP_DEFAULT
    assert player.phone == "+819012345678"
    assert player.password_hash != "secret1"

    # only the hash of the token is stored
    row = session.exec(select(AuthSession).where(AuthSession.player_id == player.id)).first()
    assert row.token_hash == hash_token(data["token"])


def test_register_duplicate_handle_is_case_insensitive(client: TestClient):
    assert _register(client, "Alice").status_code == 201
    response = _register(client, "alice")
    assert response.status_code == 409
    assert response.json() == {"ok": False, "message": "handle_name already taken"}


def test_register_validation_errors_are_400(client: TestClient):
    response = _register(client, password="123")
    assert response.status_code == 400
    assert response.json()["ok"] is False
    assert "password" in response.json()["message"]

    assert _register(client, handle="   ").status_code == 400


def test_login_whoami_logout(client: TestClient, make_player):
    make_player("bob", password_hash=hash_password("hunter22"))

    assert client.post("/api/auth/login", json={"handle_name": "bob", "password": "nope"}).status_code == 401

    response = client.post("/api/auth/login", json={"handle_name": "BOB", "password": "hunter22"})
    assert response.status_code == 200
    token = response.json()["token"]
    headers = {"Authorization": f"Bearer {token}"}
    client.cookies.clear()

    whoami = client.get("/api/auth/whoami", headers=headers)
    assert whoami.status_code == 200
    assert whoami.json()["player"]["handle_name"] == "bob"
    assert whoami.json()["player"]["win_rate_text"] == "—"

    assert client.post("/api/auth/logout", headers=headers).json() == {"ok": True}
    assert client.get("/api/auth/whoami", headers=headers).status_code == 401


def test_cookie_session_is_accepted(client: TestClient):
    _register(client, "carol")
    # TestClient keeps the cookie set by /register
    response = client.get("/api/auth/whoami")
    assert response.status_code == 200
    assert response.json()["player"]["handle_name"] == "carol"


def test_inactive_player_cannot_log_in(client: TestClient, make_player):
    make_player("dave", password_hash=hash_password("secret1"), is_active=False)
    response = client.post("/api/auth/login", json={"handle_name": "dave", "password": "secret1"})
    assert response.status_code == 403


def test_inactive_player_session_is_rejected(client: TestClient, make_player, auth_headers, session: Session):
    player = make_player("erin")
    headers = auth_headers(player)
    player.is_active = False
    session.add(player)
    session.commit()
    assert client.get("/api/auth/whoami", headers=headers).status_code == 403


def test_anonymous_whoami_envelope(client: TestClient):
    response = client.get("/api/auth/whoami")
    assert response.status_code == 401
    assert response.json() == {"ok": False, "message": "Login required"}


def test_is_admin(client: TestClient, make_player, auth_headers):
    assert client.get("/api/auth/is-admin").json() == {"ok": True, "is_admin": False}
    admin = make_player("root", is_admin=True)
    assert client.get("/api/auth/is-admin", headers=auth_headers(admin)).json()["is_admin"] is True


def test_resolve_phone(client: TestClient, make_player):
    make_player("frank", phone="+819012345678")

    response = client.post("/api/login/resolve-phone", json={"phone": "090 1234 5678"})
    assert response.json() == {"ok": True, "handle_name": "frank"}

    assert client.post("/api/login/resolve-phone", json={"phone": "123"}).status_code == 400
    assert client.post("/api/login/resolve-phone", json={"phone": "08011112222"}).status_code == 404


def test_admin_routes_accept_api_key(client: TestClient, admin_headers):
    response = client.post("/api/admin/f2f-register", json={"handle_name": "walkin"}, headers=admin_headers)
    assert response.status_code == 201

    bad = client.post("/api/admin/f2f-register", json={"handle_name": "x"}, headers={"x-admin-token": "wrong"})
    assert bad.status_code == 401


def test_admin_routes_reject_regular_player(client: TestClient, make_player, auth_headers):
    player = make_player("gina")
    response = client.post("/api/admin/f2f-register", json={"handle_name": "x"}, headers=auth_headers(player))
    assert response.status_code == 403
    assert response.json() == {"ok": False, "message": "Admin only"}


def test_backup_token_gate(client: TestClient, monkeypatch):
    assert client.get("/api/admin/backup").status_code == 401
    assert client.get("/api/admin/backup", params={"token": "wrong"}).status_code == 401
    assert client.get("/api/admin/backup", params={"token": "test-admin-key"}).status_code == 200

    monkeypatch.setattr(config, "ADMIN_API_KEY", "")
    response = client.get("/api/admin/backup", params={"token": "anything"})
    assert response.status_code == 500
    assert response.json()["ok"] is False
