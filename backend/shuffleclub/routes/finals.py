"""
Finals API Routes
Final brackets seeded from league nominees: slots, match reports with byes,
round labels and best-of-3 series scoring.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy import delete
from sqlmodel import Session, select

from shuffleclub.database import get_session
from shuffleclub.models.finals import FinalBracket, FinalMatch, FinalRoundEntry, FinalRoundLabel
from shuffleclub.models.player import Player
from shuffleclub.models.tournament import Tournament
from shuffleclub.services.advancement_service import upsert_slot
from shuffleclub.services.bracket_builder import BracketError, create_final_bracket
from shuffleclub.services.finals_service import FinalsError, get_or_create_final_match, report_final_match
from shuffleclub.services.match_service import get_def_player
from shuffleclub.services.series import compute_series_score, get_advantage_info, normalize_games_with_advantage
from shuffleclub.utils.auth import require_admin
from shuffleclub.utils.parsing import parse_bool, to_int

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class FinalsCreateRequest(BaseModel):
    title: Optional[str] = None
    nominees: List[int] = []


class SlotRequest(BaseModel):
    bracket_id: Optional[Any] = None
    round_no: Optional[Any] = None
    slot_no: Optional[Any] = None
    player_id: Optional[int] = None


class FinalReportRequest(BaseModel):
    match_id: Optional[int] = None
    bracket_id: Optional[int] = None
    round_no: Optional[int] = None
    match_no: Optional[int] = None
    winner_id: Optional[int] = None
    winner_score: Optional[Any] = None
    loser_score: Optional[Any] = None
    sets: Optional[List[Dict[str, Any]]] = None
    games: Optional[List[Dict[str, Any]]] = None


class RoundLabelsRequest(BaseModel):
    bracket_id: Optional[int] = None
    bracketId: Optional[int] = None
    labels: Optional[Dict[str, Optional[str]]] = None
    roundLabels: Optional[Dict[str, Optional[str]]] = None


class SeriesRequest(BaseModel):
    player1_id: int
    player2_id: int
    p1_by_def: Optional[Any] = False
    p2_by_def: Optional[Any] = False
    games: List[Dict[str, Any]] = []


class FinalBracketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    title: str
    champion_player_id: Optional[int] = None


class FinalMatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    bracket_id: int
    round_no: int
    match_no: int
    player_a_id: Optional[int] = None
    player_b_id: Optional[int] = None
    winner_id: Optional[int] = None
    loser_id: Optional[int] = None
    winner_score: int
    loser_score: int
    sets_json: Optional[List[Dict[str, Any]]] = None
    end_reason: str
    status: str


def _labels(session: Session, bracket_id: int) -> Dict[str, str]:
    rows = session.exec(
        select(FinalRoundLabel).where(FinalRoundLabel.bracket_id == bracket_id).order_by(FinalRoundLabel.round_no)
    ).all()
    return {str(r.round_no): r.label for r in rows}


def _matches(session: Session, bracket_id: int) -> List[FinalMatchResponse]:
    rows = session.exec(
        select(FinalMatch)
        .where(FinalMatch.bracket_id == bracket_id)
        .order_by(FinalMatch.round_no, FinalMatch.match_no)
    ).all()
    return [FinalMatchResponse.model_validate(r) for r in rows]


# ============================================================================
# Bracket lifecycle
# ============================================================================


@router.post("/tournaments/{tournament_id}/league/finals", status_code=201)
def create_finals(
    tournament_id: int,
    request: FinalsCreateRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Seed a final bracket in nominee order, padding with def up to a power of two."""
    if not session.get(Tournament, tournament_id):
        raise HTTPException(status_code=404, detail="Tournament not found")
    if len(request.nominees) < 2:
        raise HTTPException(status_code=400, detail="At least 2 nominees are required")
    if len(set(request.nominees)) != len(request.nominees):
        raise HTTPException(status_code=400, detail="Duplicate nominees")
    existing = session.exec(select(FinalBracket).where(FinalBracket.tournament_id == tournament_id)).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Final bracket already exists for this tournament")

    try:
        created = create_final_bracket(
            session,
            tournament_id,
            (request.title or "").strip() or "Final tournament",
            request.nominees,
            get_def_player(session),
        )
        session.commit()
        session.refresh(created["bracket"])
    except BracketError as e:
        session.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to create final bracket: {str(e)}")
    return {
        "ok": True,
        "bracket": FinalBracketResponse.model_validate(created["bracket"]),
        "size": created["size"],
        "padded_count": created["padded_count"],
    }


@router.get("/tournaments/{tournament_id}/finals")
def get_finals(tournament_id: int, session: Session = Depends(get_session)):
    bracket = session.exec(
        select(FinalBracket).where(FinalBracket.tournament_id == tournament_id).order_by(FinalBracket.id)
    ).first()
    if bracket is None:
        return {"ok": True, "bracket": None, "entries": [], "matches": [], "labels": {}}
    entries = session.exec(
        select(FinalRoundEntry)
        .where(FinalRoundEntry.bracket_id == bracket.id)
        .order_by(FinalRoundEntry.round_no, FinalRoundEntry.slot_no)
    ).all()
    return {
        "ok": True,
        "bracket": FinalBracketResponse.model_validate(bracket),
        "entries": [
            {"round_no": e.round_no, "slot_no": e.slot_no, "player_id": e.player_id} for e in entries
        ],
        "matches": _matches(session, bracket.id),
        "labels": _labels(session, bracket.id),
    }


@router.post("/tournaments/{tournament_id}/league/finals/reset")
def reset_finals(
    tournament_id: int,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    bracket_ids = list(
        session.exec(select(FinalBracket.id).where(FinalBracket.tournament_id == tournament_id)).all()
    )
    deleted = {"brackets": 0, "entries": 0, "matches": 0}
    if bracket_ids:
        try:
            deleted["matches"] = (
                session.execute(delete(FinalMatch).where(FinalMatch.bracket_id.in_(bracket_ids))).rowcount or 0
            )
            deleted["entries"] = (
                session.execute(delete(FinalRoundEntry).where(FinalRoundEntry.bracket_id.in_(bracket_ids))).rowcount
                or 0
            )
            session.execute(delete(FinalRoundLabel).where(FinalRoundLabel.bracket_id.in_(bracket_ids)))
            deleted["brackets"] = (
                session.execute(delete(FinalBracket).where(FinalBracket.id.in_(bracket_ids))).rowcount or 0
            )
            session.commit()
        except Exception as e:
            session.rollback()
            raise HTTPException(status_code=500, detail=f"Failed to reset finals: {str(e)}")
    logger.info("Finals reset for tournament %s: %s", tournament_id, deleted)
    return {"ok": True, "message": "Final bracket reset", "deleted": deleted}


@router.post("/finals/slot")
def set_slot(
    request: SlotRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Manually place (or clear, with player_id null) a player in a bracket slot."""
    bracket_id = to_int(request.bracket_id)
    round_no = to_int(request.round_no)
    slot_no = to_int(request.slot_no)
    if bracket_id is None or round_no is None or slot_no is None or round_no <= 0 or slot_no <= 0:
        raise HTTPException(status_code=400, detail="bracket_id, round_no > 0 and slot_no > 0 are required")
    if session.get(FinalBracket, bracket_id) is None:
        raise HTTPException(status_code=404, detail="Bracket not found")
    if request.player_id is not None and session.get(Player, request.player_id) is None:
        raise HTTPException(status_code=400, detail="Unknown player")

    entry = upsert_slot(session, bracket_id, round_no, slot_no, request.player_id)
    session.commit()
    session.refresh(entry)
    return {
        "ok": True,
        "entry": {"round_no": entry.round_no, "slot_no": entry.slot_no, "player_id": entry.player_id},
    }


@router.get("/finals/{bracket_id}/matches")
def list_final_matches(bracket_id: int, session: Session = Depends(get_session)):
    return {"ok": True, "matches": _matches(session, bracket_id)}


# ============================================================================
# Reporting
# ============================================================================


def _report(session: Session, fm: FinalMatch, request: FinalReportRequest) -> Dict[str, Any]:
    try:
        result = report_final_match(
            session,
            fm,
            winner_id=request.winner_id,
            winner_score=to_int(request.winner_score),
            loser_score=to_int(request.loser_score),
            sets=request.sets,
            games=request.games,
        )
        session.commit()
    except FinalsError as e:
        session.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to report final match: {str(e)}")
    return {
        "ok": True,
        "bye": result.bye,
        "bracket_id": fm.bracket_id,
        "round_no": fm.round_no,
        "match_no": fm.match_no,
        "champion_player_id": result.champion_player_id,
    }


@router.post("/finals/report")
def report_final(
    request: FinalReportRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Report by match_id, or by bracket_id/round_no/match_no (creating the match row)."""
    if request.match_id is not None:
        fm = session.get(FinalMatch, request.match_id)
        if fm is None:
            raise HTTPException(status_code=404, detail="Final match not found")
        return _report(session, fm, request)

    if request.bracket_id is None or not request.round_no or not request.match_no:
        raise HTTPException(status_code=400, detail="match_id or bracket_id/round_no/match_no are required")
    if request.round_no <= 0 or request.match_no <= 0:
        raise HTTPException(status_code=400, detail="round_no and match_no must be positive")
    if session.get(FinalBracket, request.bracket_id) is None:
        raise HTTPException(status_code=404, detail="Bracket not found")
    fm = get_or_create_final_match(session, request.bracket_id, request.round_no, request.match_no)
    return _report(session, fm, request)


@router.post("/finals/matches/{match_id}/report")
def report_final_by_id(
    match_id: int,
    request: FinalReportRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    fm = session.get(FinalMatch, match_id)
    if fm is None:
        raise HTTPException(status_code=404, detail="Final match not found")
    return _report(session, fm, request)


@router.post("/finals/series")
def series_score(request: SeriesRequest):
    """Score a best-of-3 series, applying the one-game advantage when it is due."""
    info = get_advantage_info(
        request.player1_id,
        request.player2_id,
        bool(parse_bool(request.p1_by_def)),
        bool(parse_bool(request.p2_by_def)),
    )
    games = normalize_games_with_advantage(request.games, info)
    series = compute_series_score(request.player1_id, request.player2_id, games)
    return {
        "ok": True,
        "advantage": {
            "enabled": info.enabled,
            "player_id": info.advantaged_player_id,
            "reason": info.reason,
        },
        "games": series.games,
        "p1_wins": series.p1_wins,
        "p2_wins": series.p2_wins,
        "score_text": series.score_text,
        "recommended_winner_id": series.recommended_winner_id,
    }


# ============================================================================
# Round labels
# ============================================================================


@router.get("/admin/finals/round-labels")
def get_round_labels(
    bracket_id: Optional[int] = Query(None),
    bracketId: Optional[int] = Query(None),
    session: Session = Depends(get_session),
):
    bid = bracket_id if bracket_id is not None else bracketId
    if bid is None:
        raise HTTPException(status_code=400, detail="bracket_id is required")
    return {"ok": True, "labels": _labels(session, bid)}


@router.post("/admin/finals/round-labels")
def save_round_labels(
    request: RoundLabelsRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Upsert labels per round; an empty label removes the custom label."""
    bid = request.bracket_id if request.bracket_id is not None else request.bracketId
    labels = request.labels if request.labels is not None else request.roundLabels
    if bid is None:
        raise HTTPException(status_code=400, detail="bracket_id is required")
    if not isinstance(labels, dict):
        raise HTTPException(status_code=400, detail="labels must be an object")
    if session.get(FinalBracket, bid) is None:
        raise HTTPException(status_code=404, detail="Bracket not found")

    for key, value in labels.items():
        round_no = to_int(key)
        if round_no is None or round_no <= 0:
            continue
        row = session.exec(
            select(FinalRoundLabel).where(FinalRoundLabel.bracket_id == bid, FinalRoundLabel.round_no == round_no)
        ).first()
        label = (value or "").strip()
        if not label:
            if row is not None:
                session.delete(row)
            continue
        if row is None:
            row = FinalRoundLabel(bracket_id=bid, round_no=round_no, label=label)
        row.label = label
        session.add(row)
    session.commit()
    return {"ok": True, "labels": _labels(session, bid)}
