"""
Authentication API Routes
Self registration, login/logout with bearer or cookie sessions, and identity checks.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from shuffleclub import config
from shuffleclub.database import get_session
from shuffleclub.models.player import Player
from shuffleclub.routes.players import find_by_handle, player_detail
from shuffleclub.utils.auth import (
    bearer_scheme,
    get_current_player,
    hash_password,
    is_admin,
    issue_session,
    request_token,
    require_player,
    revoke_session,
    verify_password,
)
from shuffleclub.utils.phone import normalize_phone

logger = logging.getLogger(__name__)

router = APIRouter()

MIN_PASSWORD_LENGTH = 6


# ============================================================================
# Request Models
# ============================================================================


class RegisterRequest(BaseModel):
    handle_name: str
    password: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("handle_name")
    @classmethod
    def handle_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("handle_name is required")
        return v.strip()

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if len(v or "") < MIN_PASSWORD_LENGTH:
            raise ValueError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v


class LoginRequest(BaseModel):
    handle_name: str
    password: str


class ResolvePhoneRequest(BaseModel):
    phone: Optional[str] = None


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        max_age=config.SESSION_TTL_HOURS * 3600,
        httponly=True,
        samesite="lax",
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/register", status_code=201)
def register(request: RegisterRequest, response: Response, session: Session = Depends(get_session)):
    if find_by_handle(session, request.handle_name):
        raise HTTPException(status_code=409, detail="handle_name already taken")

    phone = None
    if request.phone:
        phone = normalize_phone(request.phone)
        if phone is None:
            raise HTTPException(status_code=400, detail="Invalid phone number")

    player = Player(
        handle_name=request.handle_name,
        full_name=request.full_name,
        email=request.email,
        phone=phone,
        address=request.address,
        avatar_url=request.avatar_url,
        password_hash=hash_password(request.password),
        ranking_points=config.RATING_DEFAULT,
        handicap=config.HANDICAP_DEFAULT,
    )
    try:
        session.add(player)
        session.flush()
        token = issue_session(session, player)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail="handle_name already taken")

    _set_session_cookie(response, token)
    logger.info("Registered player %s", player.handle_name)
    return {"ok": True, "player_id": player.id, "handle_name": player.handle_name, "token": token}


@router.post("/auth/login")
def login(request: LoginRequest, response: Response, session: Session = Depends(get_session)):
    player = find_by_handle(session, request.handle_name)
    if player is None or not verify_password(request.password, player.password_hash):
        raise HTTPException(status_code=401, detail="Invalid handle name or password")
    if not player.is_active:
        raise HTTPException(status_code=403, detail="Account is inactive")

    token = issue_session(session, player)
    session.commit()
    _set_session_cookie(response, token)
    return {"ok": True, "token": token, "player_id": player.id, "is_admin": player.is_admin}


@router.post("/auth/logout")
def logout(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
):
    token = request_token(request, credentials)
    if token and revoke_session(session, token):
        session.commit()
    response.delete_cookie(config.SESSION_COOKIE_NAME)
    return {"ok": True}


@router.get("/auth/whoami")
def whoami(player: Player = Depends(require_player)):
    return {"ok": True, "player": player_detail(player)}


@router.get("/auth/is-admin")
def check_is_admin(player: Optional[Player] = Depends(get_current_player)):
    return {"ok": True, "is_admin": is_admin(player)}


@router.post("/login/resolve-phone")
def resolve_phone(request: ResolvePhoneRequest, session: Session = Depends(get_session)):
    """Look up the handle name registered for a phone number (login helper)."""
    phone = normalize_phone(request.phone)
    if phone is None:
        raise HTTPException(status_code=400, detail="Invalid phone number")
    player = session.exec(select(Player).where(Player.phone == phone)).first()
    if player is None:
        raise HTTPException(status_code=404, detail="No player with this phone number")
    return {"ok": True, "handle_name": player.handle_name}
