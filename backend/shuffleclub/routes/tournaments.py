"""
Tournament API Routes
Tournaments, seeded participants, knockout bracket generation and display.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import text
from sqlmodel import Session, select

from shuffleclub.database import get_session
from shuffleclub.models.match import Match
from shuffleclub.models.player import Player
from shuffleclub.models.team import Team
from shuffleclub.models.tournament import Tournament, TournamentEntry
from shuffleclub.services.bracket_builder import BracketError, generate_tournament_bracket
from shuffleclub.services.bracket_inference import InferredMatch, infer_bracket
from shuffleclub.services.match_service import STATUS_FINALIZED
from shuffleclub.utils.auth import require_admin
from shuffleclub.utils.parsing import clamp_int, to_int

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_SIZES = (4, 8, 16, 32)
ALLOWED_BEST_OF = (1, 3)


# ============================================================================
# Request/Response Models
# ============================================================================


class TournamentFields(BaseModel):
    name: Optional[str] = None
    start_date: Optional[date] = None
    mode: Optional[str] = None
    size: Optional[Any] = None
    best_of: Optional[Any] = None
    point_cap: Optional[Any] = None
    apply_handicap: Optional[bool] = None
    time_limit_minutes: Optional[Any] = None
    notes: Optional[str] = None

    @field_validator("mode")
    @classmethod
    def normalize_mode(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return "teams" if v.strip().lower().startswith("team") else "singles"

    @field_validator("size")
    @classmethod
    def normalize_size(cls, v: Any) -> Optional[int]:
        if v is None:
            return v
        n = to_int(v)
        return n if n in ALLOWED_SIZES else 8

    @field_validator("best_of")
    @classmethod
    def normalize_best_of(cls, v: Any) -> Optional[int]:
        if v is None:
            return v
        n = to_int(v)
        return n if n in ALLOWED_BEST_OF else 1

    @field_validator("point_cap")
    @classmethod
    def normalize_point_cap(cls, v: Any) -> Optional[int]:
        return None if v is None else clamp_int(v, 1, 99, 15)

    @field_validator("time_limit_minutes")
    @classmethod
    def normalize_time_limit(cls, v: Any) -> Optional[int]:
        return None if v is None else clamp_int(v, 0, 600, 30)


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    start_date: date
    mode: str
    size: int
    best_of: int
    point_cap: int
    apply_handicap: bool
    time_limit_minutes: int
    notes: Optional[str] = None
    created_at: datetime


class EntryIn(BaseModel):
    player_id: Optional[int] = None
    team_id: Optional[int] = None
    seed: Optional[Any] = None


class ParticipantsRequest(BaseModel):
    entries: List[EntryIn] = []


def _get_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


# ============================================================================
# Tournament CRUD
# ============================================================================


@router.get("/tournaments")
def list_tournaments(session: Session = Depends(get_session)):
    tournaments = session.exec(select(Tournament).order_by(Tournament.created_at.desc(), Tournament.id.desc())).all()
    return {"ok": True, "items": [TournamentResponse.model_validate(t) for t in tournaments]}


@router.post("/tournaments", status_code=201)
def create_tournament(
    request: TournamentFields,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    fields = {k: v for k, v in request.model_dump().items() if v is not None}
    if not (fields.get("name") or "").strip():
        fields["name"] = "New tournament"
    tournament = Tournament(**fields)
    try:
        session.add(tournament)
        session.commit()
        session.refresh(tournament)
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to create tournament: {str(e)}")
    logger.info("Created tournament %s", tournament.id)
    return {"ok": True, "item": TournamentResponse.model_validate(tournament)}


@router.get("/tournaments/{tournament_id}")
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    return {"ok": True, "item": TournamentResponse.model_validate(_get_tournament(session, tournament_id))}


@router.patch("/tournaments/{tournament_id}")
def update_tournament(
    tournament_id: int,
    request: TournamentFields,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    tournament = _get_tournament(session, tournament_id)
    updates = {k: v for k, v in request.model_dump(exclude_unset=True).items() if v is not None}
    if "name" in updates and not updates["name"].strip():
        raise HTTPException(status_code=400, detail="name cannot be blank")
    for field, value in updates.items():
        setattr(tournament, field, value)
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return {"ok": True, "item": TournamentResponse.model_validate(tournament)}


@router.delete("/tournaments/{tournament_id}")
def delete_tournament(
    tournament_id: int,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Delete a tournament with its entries, matches, league blocks and finals."""
    _get_tournament(session, tournament_id)
    params = {"tournament_id": tournament_id}
    try:
        session.execute(
            text(
                "DELETE FROM final_matches WHERE bracket_id IN "
                "(SELECT id FROM final_brackets WHERE tournament_id = :tournament_id)"
            ),
            params,
        )
        session.execute(
            text(
                "DELETE FROM final_round_entries WHERE bracket_id IN "
                "(SELECT id FROM final_brackets WHERE tournament_id = :tournament_id)"
            ),
            params,
        )
        session.execute(
            text(
                "DELETE FROM final_round_labels WHERE bracket_id IN "
                "(SELECT id FROM final_brackets WHERE tournament_id = :tournament_id)"
            ),
            params,
        )
        session.execute(text("DELETE FROM final_brackets WHERE tournament_id = :tournament_id"), params)
        session.execute(text("DELETE FROM matches WHERE tournament_id = :tournament_id"), params)
        session.execute(
            text(
                "DELETE FROM league_block_members WHERE league_block_id IN "
                "(SELECT id FROM league_blocks WHERE tournament_id = :tournament_id)"
            ),
            params,
        )
        session.execute(text("DELETE FROM league_blocks WHERE tournament_id = :tournament_id"), params)
        session.execute(text("DELETE FROM tournament_entries WHERE tournament_id = :tournament_id"), params)
        session.execute(text("DELETE FROM tournaments WHERE id = :tournament_id"), params)
        session.commit()
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to delete tournament: {str(e)}")
    logger.info("Deleted tournament %s", tournament_id)
    return {"ok": True}


# ============================================================================
# Participants
# ============================================================================


@router.get("/tournaments/{tournament_id}/participants")
def list_participants(tournament_id: int, session: Session = Depends(get_session)):
    _get_tournament(session, tournament_id)
    entries = session.exec(
        select(TournamentEntry)
        .where(TournamentEntry.tournament_id == tournament_id)
        .order_by(TournamentEntry.seed, TournamentEntry.id)
    ).all()
    return {
        "ok": True,
        "entries": [
            {"id": e.id, "player_id": e.player_id, "team_id": e.team_id, "seed": e.seed} for e in entries
        ],
    }


@router.post("/tournaments/{tournament_id}/participants", status_code=201)
def set_participants(
    tournament_id: int,
    request: ParticipantsRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Replace all entries. Rows without a positive seed are ignored."""
    _get_tournament(session, tournament_id)
    rows = []
    for e in request.entries:
        seed = to_int(e.seed)
        if seed is None or seed <= 0 or (e.player_id is None and e.team_id is None):
            continue
        rows.append(TournamentEntry(tournament_id=tournament_id, player_id=e.player_id, team_id=e.team_id, seed=seed))
    if not rows:
        raise HTTPException(status_code=400, detail="No valid entries (seed must be > 0)")

    try:
        session.execute(
            text("DELETE FROM tournament_entries WHERE tournament_id = :tournament_id"),
            {"tournament_id": tournament_id},
        )
        for row in rows:
            session.add(row)
        session.commit()
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to save participants: {str(e)}")
    return {"ok": True, "count": len(rows)}


# ============================================================================
# Bracket
# ============================================================================


@router.post("/tournaments/{tournament_id}/generate-bracket")
def generate_bracket(
    tournament_id: int,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    tournament = _get_tournament(session, tournament_id)
    try:
        inserted = generate_tournament_bracket(session, tournament)
        session.commit()
    except BracketError as e:
        session.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to generate bracket: {str(e)}")
    return {
        "ok": True,
        "inserted_count": len(inserted),
        "inserted": [
            {
                "id": m.id,
                "round": m.round,
                "match_no": m.match_no,
                "a_id": m.team_a_id if m.mode == "teams" else m.player_a_id,
                "b_id": m.team_b_id if m.mode == "teams" else m.player_b_id,
            }
            for m in inserted
        ],
    }


def _side(kind: str, ref: Optional[int], players: Dict[int, Player], teams: Dict[int, Team]) -> Optional[Dict]:
    if ref is None:
        return None
    if kind == "team":
        t = teams.get(ref)
        return {"name": t.name if t else None, "avatar": None, "kind": kind}
    p = players.get(ref)
    return {"name": p.handle_name if p else None, "avatar": p.avatar_url if p else None, "kind": kind}


@router.get("/tournaments/{tournament_id}/bracket")
def get_bracket(tournament_id: int, session: Session = Depends(get_session)):
    """Bracket matches grouped by round."""
    tournament = _get_tournament(session, tournament_id)
    matches = session.exec(
        select(Match)
        .where(
            Match.tournament_id == tournament_id,
            Match.league_block_id.is_(None),
            Match.round.is_not(None),
        )
        .order_by(Match.round, Match.match_no)
    ).all()
    players = {p.id: p for p in session.exec(select(Player)).all()}
    teams = {t.id: t for t in session.exec(select(Team)).all()}

    rounds: Dict[int, List[Dict[str, Any]]] = {}
    for m in matches:
        kind = "team" if m.mode == "teams" else "player"
        a_id = m.team_a_id if kind == "team" else m.player_a_id
        b_id = m.team_b_id if kind == "team" else m.player_b_id
        score = None
        if m.winner_score is not None and m.loser_score is not None:
            score = f"{m.winner_score}-{m.loser_score}"
        rounds.setdefault(m.round, []).append(
            {
                "id": m.id,
                "match_no": m.match_no,
                "status": m.status,
                "mode": m.mode,
                "a_id": a_id,
                "b_id": b_id,
                "a": _side(kind, a_id, players, teams),
                "b": _side(kind, b_id, players, teams),
                "winner_id": m.winner_team_id if kind == "team" else m.winner_id,
                "score": score,
            }
        )
    return {"ok": True, "tournament": TournamentResponse.model_validate(tournament), "rounds": rounds}


@router.get("/tournaments/{tournament_id}/bracket/inferred")
def get_inferred_bracket(tournament_id: int, session: Session = Depends(get_session)):
    """
    Reconstruct knockout rounds from the tournament's finalized matches.

    Teams tournaments are rebuilt from the winning/losing team ids, so the
    ids in the response are team ids there.
    """
    tournament = _get_tournament(session, tournament_id)
    teams = tournament.mode == "teams"
    matches = session.exec(
        select(Match)
        .where(
            Match.tournament_id == tournament_id,
            Match.mode == ("teams" if teams else "singles"),
            Match.status == STATUS_FINALIZED,
            Match.league_block_id.is_(None),
        )
        .order_by(Match.match_date, Match.created_at, Match.id)
    ).all()

    items: List[InferredMatch] = []
    for m in matches:
        winner, loser = (m.winner_team_id, m.loser_team_id) if teams else (m.winner_id, m.loser_id)
        if winner is None or loser is None:
            continue
        items.append(
            InferredMatch(match_id=m.id, player_a_id=winner, player_b_id=loser, winner_id=winner, played_at=m.match_date)
        )
    inferred = infer_bracket(items)
    return {
        "ok": True,
        "rounds": [
            [
                {
                    "match_id": im.match_id,
                    "player_a_id": im.player_a_id,
                    "player_b_id": im.player_b_id,
                    "winner_id": im.winner_id,
                    "played_at": im.played_at,
                }
                for im in rnd
            ]
            for rnd in inferred.rounds
        ],
        "champion_id": inferred.champion_id,
        "mode": tournament.mode,
    }
