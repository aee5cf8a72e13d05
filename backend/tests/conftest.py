import os

# The app module creates its engine at import time; keep it off disk.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

from typing import Dict  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from shuffleclub import config  # noqa: E402
from shuffleclub.database import get_session, init_db  # noqa: E402
from shuffleclub.main import app  # noqa: E402
from shuffleclub.models.player import Player  # noqa: E402
from shuffleclub.services.seed import ensure_def_player  # noqa: E402
from shuffleclub.utils.auth import ADMIN_TOKEN_HEADER, issue_session  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"
ADMIN_KEY = "test-admin-key"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. The schema is dropped and recreated for every test
# 4. App dependency overridden to use test_engine (see client_fixture)
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(autouse=True)
def admin_api_key(monkeypatch):
    """Every test runs with a known ADMIN_API_KEY unless it patches it again"""
    monkeypatch.setattr(config, "ADMIN_API_KEY", ADMIN_KEY)
    return ADMIN_KEY


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    SQLModel.metadata.drop_all(test_engine)
    init_db(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place for the
    entire duration so the app never serves from its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def def_player(session: Session) -> Player:
    return ensure_def_player(session)


@pytest.fixture
def make_player(session: Session):
    """Factory for players created straight in the database (no bcrypt cost)"""

    def _make(handle_name: str, **fields) -> Player:
        player = Player(handle_name=handle_name, **fields)
        session.add(player)
        session.commit()
        session.refresh(player)
        return player

    return _make


@pytest.fixture
def auth_headers(session: Session):
    """Bearer headers for a logged-in player"""

    def _headers(player: Player) -> Dict[str, str]:
        token = issue_session(session, player)
        session.commit()
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    """Headers authenticating with the admin API key"""
    return {ADMIN_TOKEN_HEADER: ADMIN_KEY}
