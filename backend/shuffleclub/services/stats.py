"""
Win-rate helpers and ranking tables for players and teams.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from shuffleclub.models.match import Match
from shuffleclub.models.player import Player
from shuffleclub.models.team import Team, TeamMember

NO_GAMES = "—"


def calc_win_rate(wins: int, losses: int) -> float:
    """Win percentage rounded to one decimal; 0 when no games were played."""
    games = (wins or 0) + (losses or 0)
    if games <= 0:
        return 0.0
    return round((wins or 0) * 100 / games, 1)


def format_win_rate(wins: int, losses: int) -> str:
    if (wins or 0) + (losses or 0) <= 0:
        return NO_GAMES
    return f"{calc_win_rate(wins, losses)}%"


def player_rankings(session: Session) -> List[Dict[str, Any]]:
    players = session.exec(
        select(Player).where(Player.is_active == True, Player.is_dummy == False)  # noqa: E712
    ).all()
    ordered = sorted(players, key=lambda p: (-p.ranking_points, p.handicap, p.id))
    return [
        {
            "rank": idx,
            "id": p.id,
            "handle_name": p.handle_name,
            "avatar_url": p.avatar_url,
            "ranking_points": p.ranking_points,
            "handicap": p.handicap,
            "matches_played": p.matches_played,
            "wins": p.wins,
            "losses": p.losses,
            "win_rate": calc_win_rate(p.wins, p.losses),
        }
        for idx, p in enumerate(ordered, start=1)
    ]


def team_rankings(session: Session) -> List[Dict[str, Any]]:
    """
    Aggregate rows for every team.

    avg_rp/avg_hc are averaged over current members; played/wins/losses come
    from finalized team matches.
    """
    teams = session.exec(select(Team)).all()
    members = session.exec(select(TeamMember)).all()
    players = {p.id: p for p in session.exec(select(Player)).all()}
    matches = session.exec(
        select(Match).where(Match.mode == "teams", Match.status == "finalized")
    ).all()

    by_team: Dict[int, List[Player]] = {}
    for m in members:
        p = players.get(m.player_id)
        if p is not None:
            by_team.setdefault(m.team_id, []).append(p)

    rows: List[Dict[str, Any]] = []
    for team in teams:
        roster = by_team.get(team.id, [])
        wins = sum(1 for m in matches if m.winner_team_id == team.id)
        losses = sum(1 for m in matches if m.loser_team_id == team.id)
        last: Optional[datetime] = max(
            (m.match_date for m in matches if team.id in (m.winner_team_id, m.loser_team_id)),
            default=None,
        )
        rows.append(
            {
                "team_id": team.id,
                "name": team.name,
                "team_size": len(roster),
                "avg_rp": round(sum(p.ranking_points for p in roster) / len(roster), 1) if roster else 0.0,
                "avg_hc": round(sum(p.handicap for p in roster) / len(roster), 1) if roster else 0.0,
                "played": wins + losses,
                "wins": wins,
                "losses": losses,
                "win_pct": calc_win_rate(wins, losses),
                "last_match_at": last,
            }
        )
    rows.sort(key=lambda r: (-r["avg_rp"], r["name"]))
    return rows
