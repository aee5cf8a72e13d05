"""
Match API Routes
Recording singles/team results, admin result reporting with rating reversal,
bracket advancement, and the match feed.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy import or_
from sqlmodel import Session, select

from shuffleclub.database import get_session
from shuffleclub.models.match import Match
from shuffleclub.models.player import Player
from shuffleclub.models.team import Team
from shuffleclub.models.tournament import Tournament
from shuffleclub.routes.teams import team_member_ids
from shuffleclub.services.advancement_service import advance_tournament_winner
from shuffleclub.services.match_service import (
    STATUS_FINALIZED,
    normalize_end_reason,
    record_singles_result,
    reverse_result,
)
from shuffleclub.utils.auth import is_admin, require_admin, require_player
from shuffleclub.utils.parsing import clamp_int, parse_bool, parse_match_date, to_int

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_WINNER_SCORE = 15
MAX_SCORE = 99


# ============================================================================
# Request/Response Models
# ============================================================================


class MatchCreateRequest(BaseModel):
    mode: Optional[str] = "singles"
    # singles
    winner_id: Optional[int] = None
    loser_id: Optional[int] = None
    # teams
    winner_team_id: Optional[int] = None
    loser_team_id: Optional[int] = None
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    team1_score: Optional[Any] = None
    team2_score: Optional[Any] = None

    winner_score: Optional[Any] = None
    loser_score: Optional[Any] = None
    apply_rating: Optional[Any] = None
    match_date: Optional[Any] = None
    tournament_id: Optional[int] = None
    venue: Optional[str] = None
    notes: Optional[str] = None


class MatchReportRequest(BaseModel):
    winner_id: Optional[int] = None
    winner_team_id: Optional[int] = None
    winner_score: Optional[Any] = None
    loser_score: Optional[Any] = None
    end_reason: Optional[str] = None
    apply_rating: Optional[Any] = None
    affects_rating: Optional[Any] = None


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    mode: str
    status: str
    match_date: Any
    tournament_id: Optional[int] = None
    league_block_id: Optional[int] = None
    round: Optional[int] = None
    match_no: Optional[int] = None
    player_a_id: Optional[int] = None
    player_b_id: Optional[int] = None
    team_a_id: Optional[int] = None
    team_b_id: Optional[int] = None
    winner_id: Optional[int] = None
    loser_id: Optional[int] = None
    winner_team_id: Optional[int] = None
    loser_team_id: Optional[int] = None
    winner_score: Optional[int] = None
    loser_score: Optional[int] = None
    end_reason: str
    affects_rating: bool
    winner_points_delta: int
    loser_points_delta: int
    winner_handicap_delta: int
    loser_handicap_delta: int
    venue: Optional[str] = None
    notes: Optional[str] = None


def is_singles_mode(mode: Optional[str]) -> bool:
    m = (mode or "singles").lower()
    return "sing" in m or "player" in m


# ============================================================================
# Create
# ============================================================================


def _create_singles(session: Session, request: MatchCreateRequest, current: Player) -> Dict[str, Any]:
    if request.winner_id is None or request.loser_id is None:
        raise HTTPException(status_code=400, detail="winner_id and loser_id are required")
    if request.winner_id == request.loser_id:
        raise HTTPException(status_code=400, detail="A player cannot play against themselves")
    if not is_admin(current) and current.id not in (request.winner_id, request.loser_id):
        raise HTTPException(status_code=403, detail="You can only record matches you played")

    winner = session.get(Player, request.winner_id)
    loser = session.get(Player, request.loser_id)
    if winner is None or loser is None:
        raise HTTPException(status_code=400, detail="Unknown player")

    winner_score = clamp_int(request.winner_score, 0, MAX_SCORE, DEFAULT_WINNER_SCORE)
    loser_score = clamp_int(request.loser_score, 0, DEFAULT_WINNER_SCORE - 1, 0)
    if winner_score <= loser_score:
        raise HTTPException(status_code=400, detail="winner_score must be greater than loser_score")
    apply_rating = parse_bool(request.apply_rating)
    if apply_rating is None:
        apply_rating = True

    match = Match(
        mode="singles",
        match_date=parse_match_date(request.match_date),
        tournament_id=request.tournament_id,
        reporter_id=current.id,
        player_a_id=winner.id,
        player_b_id=loser.id,
        venue=request.venue,
        notes=request.notes,
    )
    session.add(match)
    delta = record_singles_result(session, match, winner, loser, winner_score, loser_score, apply_rating)
    session.commit()
    session.refresh(match)
    logger.info("Singles match %s recorded: %s beat %s", match.id, winner.id, loser.id)
    return {
        "ok": True,
        "match_id": match.id,
        "winner_id": winner.id,
        "loser_id": loser.id,
        "apply_rating": apply_rating,
        "deltas": delta.as_dict(),
    }


def _create_teams(session: Session, request: MatchCreateRequest, current: Player) -> Dict[str, Any]:
    winner_score: Optional[int] = None
    loser_score: Optional[int] = None
    if request.winner_team_id is not None or request.loser_team_id is not None:
        winner_team_id, loser_team_id = request.winner_team_id, request.loser_team_id
        winner_score = clamp_int(request.winner_score, 0, MAX_SCORE, DEFAULT_WINNER_SCORE)
        loser_score = clamp_int(request.loser_score, 0, MAX_SCORE, 0)
    else:
        s1, s2 = to_int(request.team1_score), to_int(request.team2_score)
        if s1 is None or s2 is None:
            raise HTTPException(status_code=400, detail="team1_score and team2_score are required")
        if s1 == s2:
            raise HTTPException(status_code=400, detail="A match cannot end in a tie")
        if s1 > s2:
            winner_team_id, loser_team_id, winner_score, loser_score = request.team1_id, request.team2_id, s1, s2
        else:
            winner_team_id, loser_team_id, winner_score, loser_score = request.team2_id, request.team1_id, s2, s1

    if winner_team_id is None or loser_team_id is None:
        raise HTTPException(status_code=400, detail="Both teams are required")
    if winner_team_id == loser_team_id:
        raise HTTPException(status_code=400, detail="A team cannot play against itself")
    if session.get(Team, winner_team_id) is None or session.get(Team, loser_team_id) is None:
        raise HTTPException(status_code=400, detail="Unknown team")
    if winner_score <= loser_score:
        raise HTTPException(status_code=400, detail="winner_score must be greater than loser_score")
    if not is_admin(current):
        members = set(team_member_ids(session, winner_team_id)) | set(team_member_ids(session, loser_team_id))
        if current.id not in members:
            raise HTTPException(status_code=403, detail="You can only record matches of your own teams")

    match = Match(
        mode="teams",
        status=STATUS_FINALIZED,
        match_date=parse_match_date(request.match_date),
        tournament_id=request.tournament_id,
        reporter_id=current.id,
        team_a_id=winner_team_id,
        team_b_id=loser_team_id,
        winner_team_id=winner_team_id,
        loser_team_id=loser_team_id,
        winner_score=winner_score,
        loser_score=loser_score,
        affects_rating=False,
        venue=request.venue,
        notes=request.notes,
    )
    session.add(match)
    session.commit()
    session.refresh(match)
    logger.info("Team match %s recorded", match.id)
    return {"ok": True, "match_id": match.id, "deltas": None}


@router.post("/matches", status_code=201)
def create_match(
    request: MatchCreateRequest,
    current: Player = Depends(require_player),
    session: Session = Depends(get_session),
):
    """
    Record a played match.

    Singles results update win/loss counters and, unless apply_rating is
    false, ranking points and handicap. Team results never touch ratings.
    """
    try:
        if is_singles_mode(request.mode):
            return _create_singles(session, request, current)
        return _create_teams(session, request, current)
    except HTTPException:
        raise
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to record match: {str(e)}")


# ============================================================================
# Read
# ============================================================================


@router.get("/matches")
def list_matches(
    mode: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    player_id: Optional[int] = Query(None),
    tournament_id: Optional[int] = Query(None),
    league_block_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    session: Session = Depends(get_session),
):
    query = select(Match)
    if mode:
        query = query.where(Match.mode == mode)
    if status:
        query = query.where(Match.status == status)
    if player_id is not None:
        query = query.where(or_(Match.player_a_id == player_id, Match.player_b_id == player_id))
    if tournament_id is not None:
        query = query.where(Match.tournament_id == tournament_id)
    if league_block_id is not None:
        query = query.where(Match.league_block_id == league_block_id)
    matches = session.exec(query.order_by(Match.match_date.desc(), Match.id.desc()).limit(limit)).all()
    return {"ok": True, "items": [MatchResponse.model_validate(m) for m in matches]}


def _feed_side(player: Optional[Player], points_delta: int, hc_delta: int, applied: bool) -> Optional[Dict[str, Any]]:
    if player is None:
        return None
    rp_delta = points_delta if applied else 0
    hc_change = hc_delta if applied else 0
    return {
        "id": player.id,
        "handle_name": player.handle_name,
        "avatar_url": player.avatar_url,
        "rp_after": player.ranking_points,
        "rp_before": player.ranking_points - rp_delta,
        "rp_delta": rp_delta,
        "hc_after": player.handicap,
        "hc_before": player.handicap - hc_change,
        "hc_delta": hc_change,
    }


@router.get("/matches/feed")
def match_feed(limit: int = Query(30, ge=1, le=100), session: Session = Depends(get_session)):
    """
    Recent finalized singles matches with rating context.

    *_after is the player's current value, *_before subtracts this match's delta.
    """
    matches = session.exec(
        select(Match)
        .where(Match.status == STATUS_FINALIZED, Match.mode == "singles")
        .order_by(Match.match_date.desc(), Match.id.desc())
        .limit(limit)
    ).all()
    ids = {pid for m in matches for pid in (m.winner_id, m.loser_id) if pid is not None}
    players = {p.id: p for p in session.exec(select(Player).where(Player.id.in_(ids))).all()} if ids else {}

    items: List[Dict[str, Any]] = []
    for m in matches:
        ws, ls = m.winner_score or 0, m.loser_score or 0
        items.append(
            {
                "match_id": m.id,
                "mode": m.mode,
                "match_date": m.match_date,
                "score": {"winner": m.winner_score, "loser": m.loser_score, "diff": ws - ls},
                "rating_applied": m.affects_rating,
                "winner": _feed_side(
                    players.get(m.winner_id), m.winner_points_delta, m.winner_handicap_delta, m.affects_rating
                ),
                "loser": _feed_side(
                    players.get(m.loser_id), m.loser_points_delta, m.loser_handicap_delta, m.affects_rating
                ),
            }
        )
    return {"ok": True, "items": items}


# ============================================================================
# Report (admin)
# ============================================================================


def _point_cap(session: Session, match: Match) -> int:
    if match.tournament_id is not None:
        tournament = session.get(Tournament, match.tournament_id)
        if tournament is not None and tournament.point_cap:
            return tournament.point_cap
    return DEFAULT_WINNER_SCORE


def _affects_rating(request: MatchReportRequest, end_reason: str) -> bool:
    for raw in (request.apply_rating, request.affects_rating):
        parsed = parse_bool(raw)
        if parsed is not None:
            return parsed
    return end_reason == "normal"


def report_match_result(session: Session, match_id: int, request: MatchReportRequest) -> Dict[str, Any]:
    match = session.get(Match, match_id)
    if match is None:
        raise HTTPException(status_code=404, detail="Match not found")

    teams = match.mode == "teams"
    winner_ref = request.winner_team_id if teams else request.winner_id
    if winner_ref is None:
        raise HTTPException(status_code=400, detail="winner_team_id is required" if teams else "winner_id is required")

    cap = _point_cap(session, match)
    winner_score = clamp_int(request.winner_score, 0, MAX_SCORE, cap)
    loser_score = clamp_int(request.loser_score, 0, MAX_SCORE, 0)
    if winner_score <= loser_score:
        raise HTTPException(status_code=400, detail="winner_score must be greater than loser_score")

    end_reason = normalize_end_reason(request.end_reason)
    side_a, side_b = (match.team_a_id, match.team_b_id) if teams else (match.player_a_id, match.player_b_id)
    if side_a is None or side_b is None:
        raise HTTPException(status_code=400, detail="Match participants are not set")
    if winner_ref not in (side_a, side_b):
        raise HTTPException(status_code=400, detail="Winner is not a participant of this match")
    loser_ref = side_b if winner_ref == side_a else side_a

    if teams:
        affects = False
        match.winner_team_id = winner_ref
        match.loser_team_id = loser_ref
        match.winner_score = winner_score
        match.loser_score = loser_score
        match.end_reason = end_reason
        match.affects_rating = False
        match.status = STATUS_FINALIZED
        session.add(match)
        winner_points = loser_points = winner_hc = loser_hc = 0
    else:
        affects = _affects_rating(request, end_reason)
        reverse_result(session, match)
        winner = session.get(Player, winner_ref)
        loser = session.get(Player, loser_ref)
        if winner is None or loser is None:
            raise HTTPException(status_code=400, detail="Unknown player")
        delta = record_singles_result(session, match, winner, loser, winner_score, loser_score, affects, end_reason)
        winner_points, loser_points = delta.winner_points, delta.loser_points
        winner_hc, loser_hc = delta.winner_handicap, delta.loser_handicap

    advance_tournament_winner(session, match)
    session.commit()
    logger.info("Match %s reported (%s, affects_rating=%s)", match_id, end_reason, affects)
    return {
        "ok": True,
        "match_id": match_id,
        "end_reason": end_reason,
        "affects_rating": affects,
        "winner_points_change": winner_points,
        "loser_points_change": loser_points,
        "winner_handicap_change": winner_hc,
        "loser_handicap_change": loser_hc,
    }


def _guarded_report(session: Session, match_id: int, request: MatchReportRequest) -> Dict[str, Any]:
    try:
        return report_match_result(session, match_id, request)
    except HTTPException:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to report match: {str(e)}")


@router.post("/matches/report")
def report_match_by_query(
    request: MatchReportRequest,
    matchId: Optional[int] = Query(None),
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    if matchId is None:
        raise HTTPException(status_code=400, detail="matchId is required")
    return _guarded_report(session, matchId, request)


@router.get("/matches/{match_id}")
def get_match(match_id: int, session: Session = Depends(get_session)):
    match = session.get(Match, match_id)
    if not match:
        raise HTTPException(status_code=404, detail="Match not found")
    return {"ok": True, "match": MatchResponse.model_validate(match)}


@router.post("/matches/{match_id}/report")
def report_match(
    match_id: int,
    request: MatchReportRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """
    Record or correct a match result (admin).

    A previously recorded result is reversed before the new one is applied,
    so re-reporting never double counts. Bracket winners advance to the
    next round.
    """
    return _guarded_report(session, match_id, request)
