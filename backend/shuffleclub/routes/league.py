"""
League API Routes
Round-robin league blocks inside a tournament, block winners and finals candidates.
"""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import text
from sqlmodel import Session, select

from shuffleclub.database import get_session
from shuffleclub.models.league import LeagueBlock
from shuffleclub.models.match import Match
from shuffleclub.models.player import Player
from shuffleclub.models.tournament import Tournament
from shuffleclub.routes.matches import MatchResponse
from shuffleclub.services.league_service import (
    LeagueError,
    block_label,
    block_members,
    compute_standings,
    create_block,
    finals_candidates,
)
from shuffleclub.services.match_service import get_def_player
from shuffleclub.utils.auth import require_admin
from shuffleclub.utils.parsing import to_int

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================


class BlockCreateRequest(BaseModel):
    label: Optional[str] = None
    player_ids: List[int] = []


class SetWinnerRequest(BaseModel):
    block_id: Optional[Any] = None
    winner_player_id: Optional[Any] = None


def _block_summary(session: Session, block: LeagueBlock) -> dict:
    return {
        "id": block.id,
        "tournament_id": block.tournament_id,
        "block_no": block.block_no,
        "label": block_label(block),
        "status": block.status,
        "winner_player_id": block.winner_player_id,
        "members": [
            {"player_id": p.id, "handle_name": p.handle_name, "is_dummy": p.is_dummy}
            for p in block_members(session, block.id)
        ],
        "standings": compute_standings(session, block),
    }


def _get_block(session: Session, block_id: int) -> LeagueBlock:
    block = session.get(LeagueBlock, block_id)
    if not block:
        raise HTTPException(status_code=404, detail="League block not found")
    return block


# ============================================================================
# Blocks
# ============================================================================


@router.post("/tournaments/{tournament_id}/league/blocks", status_code=201)
def create_league_block(
    tournament_id: int,
    request: BlockCreateRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """
    Create a block and all of its round-robin matches.

    Two-player blocks get the def player as third member; matches against
    def are recorded as forfeits straight away.
    """
    if not session.get(Tournament, tournament_id):
        raise HTTPException(status_code=404, detail="Tournament not found")
    try:
        block = create_block(session, tournament_id, request.player_ids, request.label, get_def_player(session))
        session.commit()
        session.refresh(block)
    except LeagueError as e:
        session.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to create league block: {str(e)}")
    return {"ok": True, "block": _block_summary(session, block)}


@router.get("/tournaments/{tournament_id}/league/blocks")
def list_league_blocks(tournament_id: int, session: Session = Depends(get_session)):
    blocks = session.exec(
        select(LeagueBlock).where(LeagueBlock.tournament_id == tournament_id).order_by(LeagueBlock.block_no)
    ).all()
    return {"ok": True, "blocks": [_block_summary(session, b) for b in blocks]}


@router.get("/league/blocks/{block_id}")
def get_league_block(block_id: int, session: Session = Depends(get_session)):
    block = _get_block(session, block_id)
    summary = _block_summary(session, block)
    matches = session.exec(select(Match).where(Match.league_block_id == block_id).order_by(Match.id)).all()
    return {
        "ok": True,
        "block": summary,
        "members": summary["members"],
        "matches": [MatchResponse.model_validate(m) for m in matches],
        "standings": summary["standings"],
    }


@router.delete("/league/blocks/{block_id}")
def delete_league_block(
    block_id: int,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    _get_block(session, block_id)
    params = {"block_id": block_id}
    try:
        session.execute(text("DELETE FROM matches WHERE league_block_id = :block_id"), params)
        session.execute(text("DELETE FROM league_block_members WHERE league_block_id = :block_id"), params)
        session.execute(text("DELETE FROM league_blocks WHERE id = :block_id"), params)
        session.commit()
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to delete league block: {str(e)}")
    return {"ok": True}


@router.post("/league/blocks/set-winner")
def set_block_winner(
    request: SetWinnerRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Set or clear (null/blank winner) the qualifier of a block."""
    block_id = to_int(request.block_id)
    if block_id is None:
        raise HTTPException(status_code=400, detail="block_id is required")
    block = _get_block(session, block_id)

    raw = request.winner_player_id
    blank = raw is None or (isinstance(raw, str) and not raw.strip())
    winner_id = None if blank else to_int(raw)
    if not blank and winner_id is None:
        raise HTTPException(status_code=400, detail="winner_player_id is invalid")
    if winner_id is not None and winner_id not in {p.id for p in block_members(session, block_id)}:
        raise HTTPException(status_code=400, detail="Winner must be a member of the block")

    block.winner_player_id = winner_id
    block.status = "decided" if winner_id is not None else "pending"
    session.add(block)
    session.commit()
    logger.info("Block %s winner set to %s", block_id, winner_id)
    return {"ok": True, "block_id": block_id, "winner_player_id": winner_id}


@router.get("/tournaments/{tournament_id}/league/candidates")
def league_candidates(tournament_id: int, session: Session = Depends(get_session)):
    """Standings of every block, for choosing finals nominees."""
    return {"ok": True, "data": finals_candidates(session, tournament_id)}
