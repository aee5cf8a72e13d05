"""
Public read-only endpoints (no auth): rankings and recent results for the home page.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from shuffleclub.database import get_session
from shuffleclub.models.match import Match
from shuffleclub.models.player import Player
from shuffleclub.models.team import Team
from shuffleclub.services.stats import player_rankings

router = APIRouter()

FINISHED_STATUSES = {"finalized", "completed", "done", "finished"}
RECENT_SCAN_LIMIT = 200


def is_finished(m: Match) -> bool:
    if (m.status or "").lower() in FINISHED_STATUSES:
        return True
    if m.mode == "teams":
        sides = m.winner_team_id is not None and m.loser_team_id is not None
    else:
        sides = m.winner_id is not None and m.loser_id is not None
    return sides and m.winner_score is not None and m.loser_score is not None


@router.get("/rankings")
def rankings(session: Session = Depends(get_session)):
    return {"ok": True, "items": player_rankings(session)}


@router.get("/public/recent-matches")
def recent_matches(limit: int = Query(6, ge=1, le=50), session: Session = Depends(get_session)):
    candidates = session.exec(
        select(Match).order_by(Match.match_date.desc(), Match.id.desc()).limit(RECENT_SCAN_LIMIT)
    ).all()
    finished = [m for m in candidates if is_finished(m)][:limit]

    players = {p.id: p for p in session.exec(select(Player)).all()}
    teams = {t.id: t for t in session.exec(select(Team)).all()}

    def name(ref: Optional[int], team: bool) -> Optional[str]:
        if ref is None:
            return None
        if team:
            t = teams.get(ref)
            return t.name if t else None
        p = players.get(ref)
        return p.handle_name if p else None

    items: List[Dict[str, Any]] = []
    for m in finished:
        team = m.mode == "teams"
        winner_ref = m.winner_team_id if team else m.winner_id
        loser_ref = m.loser_team_id if team else m.loser_id
        items.append(
            {
                "id": m.id,
                "mode": m.mode,
                "match_date": m.match_date,
                "winner": {"id": winner_ref, "name": name(winner_ref, team)},
                "loser": {"id": loser_ref, "name": name(loser_ref, team)},
                "winner_score": m.winner_score,
                "loser_score": m.loser_score,
                "end_reason": m.end_reason,
            }
        )
    return {"ok": True, "matches": items}
