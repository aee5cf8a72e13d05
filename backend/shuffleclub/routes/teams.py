"""
Team Management API Routes
Teams of players, membership, and team rankings.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy import text
from sqlmodel import Session, select

from shuffleclub.database import get_session
from shuffleclub.models.player import Player
from shuffleclub.models.team import Team, TeamMember
from shuffleclub.services.stats import team_rankings
from shuffleclub.utils.auth import is_admin, require_admin, require_player

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class TeamCreateRequest(BaseModel):
    name: str
    member_ids: List[int] = []

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class TeamUpdateRequest(BaseModel):
    name: Optional[str] = None
    member_ids: Optional[List[int]] = None


class TeamMemberOut(BaseModel):
    player_id: int
    handle_name: str
    avatar_url: Optional[str] = None


class TeamResponse(BaseModel):
    id: int
    name: str
    created_by: Optional[int] = None
    created_at: datetime
    members: List[TeamMemberOut] = []


def team_response(session: Session, team: Team) -> TeamResponse:
    players = session.exec(
        select(Player)
        .join(TeamMember, TeamMember.player_id == Player.id)
        .where(TeamMember.team_id == team.id)
        .order_by(Player.handle_name)
    ).all()
    return TeamResponse(
        id=team.id,
        name=team.name,
        created_by=team.created_by,
        created_at=team.created_at,
        members=[TeamMemberOut(player_id=p.id, handle_name=p.handle_name, avatar_url=p.avatar_url) for p in players],
    )


def team_member_ids(session: Session, team_id: int) -> List[int]:
    return list(session.exec(select(TeamMember.player_id).where(TeamMember.team_id == team_id)).all())


def _name_taken(session: Session, name: str, exclude_id: Optional[int] = None) -> bool:
    existing = session.exec(select(Team).where(Team.name == name)).first()
    return existing is not None and existing.id != exclude_id


def _set_members(session: Session, team: Team, member_ids: List[int]) -> None:
    for pid in member_ids:
        if session.get(Player, pid) is None:
            raise HTTPException(status_code=400, detail=f"Player {pid} not found")
    session.execute(text("DELETE FROM team_members WHERE team_id = :team_id"), {"team_id": team.id})
    for pid in dict.fromkeys(member_ids):
        session.add(TeamMember(team_id=team.id, player_id=pid))


# ============================================================================
# Team Endpoints
# ============================================================================


@router.get("/teams")
def list_teams(session: Session = Depends(get_session)):
    teams = session.exec(select(Team).order_by(Team.name)).all()
    return {"ok": True, "items": [team_response(session, t) for t in teams]}


@router.get("/teams/options")
def team_options(session: Session = Depends(get_session)):
    teams = session.exec(select(Team).order_by(Team.name).limit(500)).all()
    return {"items": [{"id": t.id, "name": t.name} for t in teams]}


@router.get("/teams/{team_id}")
def get_team(team_id: int, session: Session = Depends(get_session)):
    team = session.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    return {"ok": True, "team": team_response(session, team)}


@router.post("/teams", status_code=201)
def create_team(
    request: TeamCreateRequest,
    current: Player = Depends(require_player),
    session: Session = Depends(get_session),
):
    """Create a team. The creator is always a member."""
    if _name_taken(session, request.name):
        raise HTTPException(status_code=409, detail=f"Team with name '{request.name}' already exists")

    try:
        team = Team(name=request.name, created_by=current.id)
        session.add(team)
        session.flush()
        _set_members(session, team, [current.id] + list(request.member_ids))
        session.commit()
        session.refresh(team)
    except HTTPException:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to create team: {str(e)}")
    return {"ok": True, "team": team_response(session, team)}


@router.patch("/teams/{team_id}")
def update_team(
    team_id: int,
    request: TeamUpdateRequest,
    current: Player = Depends(require_player),
    session: Session = Depends(get_session),
):
    team = session.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    if not is_admin(current) and current.id not in team_member_ids(session, team_id):
        raise HTTPException(status_code=403, detail="Only members or admins can edit this team")

    try:
        if request.name is not None:
            name = request.name.strip()
            if not name:
                raise HTTPException(status_code=400, detail="name cannot be blank")
            if _name_taken(session, name, exclude_id=team.id):
                raise HTTPException(status_code=409, detail=f"Team with name '{name}' already exists")
            team.name = name
            session.add(team)
        if request.member_ids is not None:
            if not request.member_ids:
                raise HTTPException(status_code=400, detail="A team needs at least one member")
            _set_members(session, team, request.member_ids)
        session.commit()
        session.refresh(team)
    except HTTPException:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to update team: {str(e)}")
    return {"ok": True, "team": team_response(session, team)}


@router.delete("/teams/{team_id}")
def delete_team(
    team_id: int,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    team = session.get(Team, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    try:
        session.execute(text("DELETE FROM team_members WHERE team_id = :team_id"), {"team_id": team_id})
        session.execute(text("DELETE FROM teams WHERE id = :team_id"), {"team_id": team_id})
        session.commit()
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to delete team: {str(e)}")
    logger.info("Deleted team %s", team_id)
    return {"ok": True}


@router.get("/my/teams")
def my_teams(current: Player = Depends(require_player), session: Session = Depends(get_session)):
    """Admins see every team; players see the teams they belong to."""
    admin = is_admin(current)
    query = select(Team)
    if not admin:
        query = query.join(TeamMember, TeamMember.team_id == Team.id).where(TeamMember.player_id == current.id)
    teams = session.exec(query.order_by(Team.name)).all()
    return {"ok": True, "admin": admin, "teams": [team_response(session, t) for t in teams]}


@router.get("/rankings/teams")
def rankings_teams(session: Session = Depends(get_session)):
    return {"ok": True, "items": team_rankings(session)}
