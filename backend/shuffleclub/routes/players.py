"""
Player API Routes
Profiles, option lists, per-player match history and admin player management.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import func, or_
from sqlmodel import Session, select

from shuffleclub import config
from shuffleclub.database import get_session
from shuffleclub.models.match import Match
from shuffleclub.models.player import Player
from shuffleclub.services.stats import calc_win_rate, format_win_rate
from shuffleclub.utils.auth import is_admin, require_admin, require_player
from shuffleclub.utils.parsing import parse_bool, to_int
from shuffleclub.utils.phone import normalize_phone

logger = logging.getLogger(__name__)

router = APIRouter()

F2F_ADDRESS_PLACEHOLDER = "(face-to-face registration)"


# ============================================================================
# Request/Response Models
# ============================================================================


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    handle_name: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    ranking_points: int
    handicap: int
    matches_played: int
    wins: int
    losses: int
    is_admin: bool
    is_active: bool
    is_dummy: bool
    created_at: datetime


class PlayerDetailResponse(PlayerResponse):
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    win_rate: float = 0.0
    win_rate_text: str = ""


class PlayerUpdateRequest(BaseModel):
    handle_name: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    avatar_url: Optional[str] = None

    @field_validator("handle_name")
    @classmethod
    def handle_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("handle_name cannot be blank")
        return v.strip() if v is not None else v


class SetActiveRequest(BaseModel):
    player_id: Optional[Any] = None
    is_active: Optional[Any] = None


class F2FRegisterRequest(BaseModel):
    handle_name: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    avatar_url: Optional[str] = None


def player_detail(p: Player) -> PlayerDetailResponse:
    detail = PlayerDetailResponse.model_validate(p)
    detail.win_rate = calc_win_rate(p.wins, p.losses)
    detail.win_rate_text = format_win_rate(p.wins, p.losses)
    return detail


def find_by_handle(session: Session, handle: str) -> Optional[Player]:
    return session.exec(select(Player).where(func.lower(Player.handle_name) == handle.strip().lower())).first()


# ============================================================================
# Player Endpoints
# ============================================================================


@router.get("/players")
def list_players(
    active_only: bool = Query(True),
    include_dummy: bool = Query(False),
    q: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    query = select(Player)
    if active_only:
        query = query.where(Player.is_active == True)  # noqa: E712
    if not include_dummy:
        query = query.where(Player.is_dummy == False)  # noqa: E712
    if q and q.strip():
        pattern = f"%{q.strip().lower()}%"
        query = query.where(
            or_(func.lower(Player.handle_name).like(pattern), func.lower(Player.full_name).like(pattern))
        )
    players = session.exec(query.order_by(Player.handle_name)).all()
    return {"ok": True, "items": [PlayerResponse.model_validate(p) for p in players]}


@router.get("/players/options")
def player_options(session: Session = Depends(get_session)):
    """Compact list for pickers: active, non-dummy players by handle."""
    players = session.exec(
        select(Player)
        .where(Player.is_active == True, Player.is_dummy == False)  # noqa: E712
        .order_by(Player.handle_name)
        .limit(500)
    ).all()
    return {"items": [{"id": p.id, "handle_name": p.handle_name, "avatar_url": p.avatar_url} for p in players]}


@router.get("/players/{player_id}")
def get_player(player_id: int, session: Session = Depends(get_session)):
    player = session.get(Player, player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")
    return {"ok": True, "player": player_detail(player)}


@router.patch("/players/{player_id}")
def update_player(
    player_id: int,
    request: PlayerUpdateRequest,
    current: Player = Depends(require_player),
    session: Session = Depends(get_session),
):
    """Players edit their own profile; admins edit anyone."""
    player = session.get(Player, player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")
    if current.id != player.id and not is_admin(current):
        raise HTTPException(status_code=403, detail="Cannot edit another player")

    updates = request.model_dump(exclude_unset=True)
    if "handle_name" in updates and updates["handle_name"] is None:
        raise HTTPException(status_code=400, detail="handle_name cannot be null")
    if "handle_name" in updates:
        other = find_by_handle(session, updates["handle_name"])
        if other is not None and other.id != player.id:
            raise HTTPException(status_code=409, detail="handle_name already taken")
    if updates.get("phone"):
        phone = normalize_phone(updates["phone"])
        if phone is None:
            raise HTTPException(status_code=400, detail="Invalid phone number")
        updates["phone"] = phone

    try:
        for field, value in updates.items():
            setattr(player, field, value)
        session.add(player)
        session.commit()
        session.refresh(player)
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to update player: {str(e)}")
    return {"ok": True, "player": player_detail(player)}


@router.get("/players/{player_id}/matches")
def player_matches(
    player_id: int,
    limit: int = Query(50, ge=1, le=100),
    session: Session = Depends(get_session),
):
    """Finalized singles matches of a player, newest first, with that player's own delta."""
    if not session.get(Player, player_id):
        raise HTTPException(status_code=404, detail="Player not found")

    matches = session.exec(
        select(Match)
        .where(
            Match.status == "finalized",
            or_(Match.winner_id == player_id, Match.loser_id == player_id),
        )
        .order_by(Match.match_date.desc(), Match.id.desc())
        .limit(limit)
    ).all()

    items: List[dict] = []
    for m in matches:
        won = m.winner_id == player_id
        items.append(
            {
                "match_id": m.id,
                "match_date": m.match_date,
                "result": "win" if won else "loss",
                "opponent_id": m.loser_id if won else m.winner_id,
                "score": {"winner": m.winner_score, "loser": m.loser_score},
                "end_reason": m.end_reason,
                "rating_applied": m.affects_rating,
                "points_delta": m.winner_points_delta if won else m.loser_points_delta,
                "handicap_delta": m.winner_handicap_delta if won else m.loser_handicap_delta,
            }
        )
    return {"ok": True, "items": items}


# ============================================================================
# Admin Player Management
# ============================================================================


@router.post("/admin/players/set-active")
def set_player_active(
    request: SetActiveRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    player_id = to_int(request.player_id)
    if player_id is None:
        raise HTTPException(status_code=400, detail="player_id is required")
    active = parse_bool(request.is_active)
    if active is None:
        raise HTTPException(status_code=400, detail="is_active must be true or false")

    player = session.get(Player, player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")

    player.is_active = active
    session.add(player)
    session.commit()
    logger.info("Player %s set active=%s", player_id, active)
    return {"ok": True, "player_id": player_id, "is_active": active}


@router.post("/admin/f2f-register", status_code=201)
def f2f_register(
    request: F2FRegisterRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Register a player met in person. No login credentials are created."""
    handle = (request.handle_name or "").strip()
    if not handle:
        raise HTTPException(status_code=400, detail="handle_name is required")
    if find_by_handle(session, handle):
        raise HTTPException(status_code=409, detail="handle_name already taken")

    phone = normalize_phone(request.phone) if request.phone else None
    player = Player(
        handle_name=handle,
        full_name=(request.full_name or "").strip() or None,
        phone=phone,
        address=(request.address or "").strip() or F2F_ADDRESS_PLACEHOLDER,
        avatar_url=request.avatar_url,
        ranking_points=config.RATING_DEFAULT,
        handicap=config.F2F_HANDICAP_DEFAULT,
    )
    try:
        session.add(player)
        session.commit()
        session.refresh(player)
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to register player: {str(e)}")
    logger.info("Face-to-face registration: %s", handle)
    return {"ok": True, "player_id": player.id, "handle_name": player.handle_name}
