"""
Passwords, session tokens and the FastAPI auth dependencies.

A session token is sent as `Authorization: Bearer <token>` or in the session
cookie. Only its sha256 is stored. Admin routes also accept the
`x-admin-token` header when it matches ADMIN_API_KEY.
"""
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session, select

from shuffleclub import config
from shuffleclub.database import get_session
from shuffleclub.models.auth_session import AuthSession
from shuffleclub.models.player import Player

logger = logging.getLogger(__name__)

ADMIN_TOKEN_HEADER = "x-admin-token"

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, stored_hash: Optional[str]) -> bool:
    if not stored_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored_hash.encode("utf-8"))
    except ValueError:
        # malformed hash
        return False


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_session(session: Session, player: Player) -> str:
    """Create a session row and return the raw token (shown to the client once)."""
    token = secrets.token_urlsafe(32)
    session.add(
        AuthSession(
            player_id=player.id,
            token_hash=hash_token(token),
            expires_at=datetime.utcnow() + timedelta(hours=config.SESSION_TTL_HOURS),
        )
    )
    return token


def revoke_session(session: Session, token: str) -> bool:
    row = session.exec(select(AuthSession).where(AuthSession.token_hash == hash_token(token))).first()
    if row is None or row.revoked_at is not None:
        return False
    row.revoked_at = datetime.utcnow()
    session.add(row)
    return True


def request_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    cookie = request.cookies.get(config.SESSION_COOKIE_NAME)
    return cookie or None


def player_for_token(session: Session, token: str) -> Optional[Player]:
    row = session.exec(select(AuthSession).where(AuthSession.token_hash == hash_token(token))).first()
    if row is None or row.revoked_at is not None or row.expires_at <= datetime.utcnow():
        return None
    return session.get(Player, row.player_id)


def admin_token_matches(token: Optional[str]) -> bool:
    expected = config.ADMIN_API_KEY
    if not expected or not token:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), token.encode("utf-8"))


def check_admin_token(token: Optional[str]) -> None:
    """Gate for token-only admin endpoints (backup download)."""
    if not config.ADMIN_API_KEY:
        raise HTTPException(status_code=500, detail="ADMIN_API_KEY is not configured")
    if not admin_token_matches(token):
        logger.warning("Rejected admin token")
        raise HTTPException(status_code=401, detail="Invalid admin token")


# ============================================================================
# Dependencies
# ============================================================================


def get_current_player(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> Optional[Player]:
    token = request_token(request, credentials)
    if not token:
        return None
    return player_for_token(session, token)


def require_player(player: Optional[Player] = Depends(get_current_player)) -> Player:
    if player is None:
        raise HTTPException(status_code=401, detail="Login required")
    if not player.is_active:
        raise HTTPException(status_code=403, detail="Account is inactive")
    return player


def require_admin(
    request: Request,
    player: Optional[Player] = Depends(get_current_player),
) -> Optional[Player]:
    """
    Allow admins. Returns the admin player, or None when the caller
    authenticated with the admin API key instead of a session.
    """
    if admin_token_matches(request.headers.get(ADMIN_TOKEN_HEADER)):
        return player
    if player is None:
        raise HTTPException(status_code=401, detail="Login required")
    if not player.is_admin or not player.is_active:
        raise HTTPException(status_code=403, detail="Admin only")
    return player


def is_admin(player: Optional[Player]) -> bool:
    return bool(player is not None and player.is_admin and player.is_active)
