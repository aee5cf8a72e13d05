"""
League blocks: round-robin groups and their standings.
"""
import logging
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence

from sqlmodel import Session, func, select

from shuffleclub.models.league import LeagueBlock, LeagueBlockMember
from shuffleclub.models.match import Match
from shuffleclub.models.player import Player
from shuffleclub.services.match_service import STATUS_FINALIZED, STATUS_PENDING, is_def

logger = logging.getLogger(__name__)

DEF_WIN_SCORE = 15
UNRANKED = 9999


class LeagueError(ValueError):
    """Invalid block definition; routes turn this into a 400."""


def block_label(block: LeagueBlock) -> str:
    return block.label or f"Block {block.block_no}"


def create_block(
    session: Session,
    tournament_id: int,
    player_ids: Sequence[int],
    label: Optional[str],
    def_player: Optional[Player],
) -> LeagueBlock:
    """
    Create a block with its round-robin matches.

    A two-player block gets the def player as a third member. Matches against
    def are finalized immediately as forfeits without rating effect.
    """
    if len(set(player_ids)) != len(player_ids):
        raise LeagueError("Duplicate players in block")
    if len(player_ids) < 2:
        raise LeagueError("A block needs at least 2 players")

    players: List[Player] = []
    for pid in player_ids:
        p = session.get(Player, pid)
        if p is None:
            raise LeagueError(f"Player {pid} not found")
        players.append(p)

    if len(players) == 2 and not any(is_def(p) for p in players):
        if def_player is None:
            raise LeagueError("def player is not registered")
        players.append(def_player)

    next_no = session.exec(
        select(func.max(LeagueBlock.block_no)).where(LeagueBlock.tournament_id == tournament_id)
    ).first()
    block = LeagueBlock(
        tournament_id=tournament_id,
        block_no=int(next_no or 0) + 1,
        label=(label or "").strip() or None,
        status=STATUS_PENDING,
    )
    session.add(block)
    session.flush()

    for p in players:
        session.add(LeagueBlockMember(league_block_id=block.id, player_id=p.id))

    for a, b in combinations(players, 2):
        match = Match(
            mode="singles",
            status=STATUS_PENDING,
            tournament_id=tournament_id,
            league_block_id=block.id,
            player_a_id=a.id,
            player_b_id=b.id,
        )
        if is_def(a) or is_def(b):
            winner, loser = (b, a) if is_def(a) else (a, b)
            match.winner_id = winner.id
            match.loser_id = loser.id
            match.winner_score = DEF_WIN_SCORE
            match.loser_score = 0
            match.end_reason = "forfeit"
            match.affects_rating = False
            match.status = STATUS_FINALIZED
        session.add(match)

    logger.info("Created league block %s with %d players", block.id, len(players))
    return block


def block_members(session: Session, block_id: int) -> List[Player]:
    rows = session.exec(
        select(Player)
        .join(LeagueBlockMember, LeagueBlockMember.player_id == Player.id)
        .where(LeagueBlockMember.league_block_id == block_id)
        .order_by(Player.id)
    ).all()
    return list(rows)


def compute_standings(session: Session, block: LeagueBlock) -> List[Dict[str, Any]]:
    """
    Per-player results over finalized block matches, ranked by wins, then
    point difference, then player id. The def dummy gets no row.
    """
    members = [p for p in block_members(session, block.id) if not is_def(p)]
    matches = session.exec(
        select(Match).where(Match.league_block_id == block.id, Match.status == STATUS_FINALIZED)
    ).all()

    rows: Dict[int, Dict[str, Any]] = {
        p.id: {
            "player_id": p.id,
            "handle_name": p.handle_name,
            "played": 0,
            "wins": 0,
            "losses": 0,
            "points_for": 0,
            "points_against": 0,
        }
        for p in members
    }
    for m in matches:
        ws, ls = m.winner_score or 0, m.loser_score or 0
        if m.winner_id in rows:
            r = rows[m.winner_id]
            r["played"] += 1
            r["wins"] += 1
            r["points_for"] += ws
            r["points_against"] += ls
        if m.loser_id in rows:
            r = rows[m.loser_id]
            r["played"] += 1
            r["losses"] += 1
            r["points_for"] += ls
            r["points_against"] += ws

    out = list(rows.values())
    for r in out:
        r["point_diff"] = r["points_for"] - r["points_against"]
    out.sort(key=lambda r: (-r["wins"], -r["point_diff"], r["player_id"]))
    for idx, r in enumerate(out, start=1):
        r["rank"] = idx
    return out


def _candidate_key(row: Dict[str, Any]):
    rank = row.get("rank")
    return (
        rank if rank is not None else UNRANKED,
        -(row.get("wins") or 0),
        -(row.get("point_diff") or 0),
        row.get("player_id") or 0,
    )


def finals_candidates(session: Session, tournament_id: int) -> Dict[str, Any]:
    blocks = session.exec(select(LeagueBlock).where(LeagueBlock.tournament_id == tournament_id)).all()
    out = []
    for block in blocks:
        rows = sorted(compute_standings(session, block), key=_candidate_key)
        out.append(
            {
                "block_id": block.id,
                "block_label": block_label(block),
                "winner_player_id": block.winner_player_id,
                "rows": rows,
            }
        )
    out.sort(key=lambda b: (b["block_label"], b["block_id"]))
    return {"source": "standings", "blocks": out}
