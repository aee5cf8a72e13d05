"""
Reporting results inside a final bracket.

Finals never touch ratings. A match against the def dummy is a bye; its
winner advances without playing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Tuple

from sqlmodel import Session, select

from shuffleclub.models.finals import FinalBracket, FinalMatch, FinalRoundEntry
from shuffleclub.models.player import Player
from shuffleclub.services.advancement_service import propagate_final_winner, recompute_champion
from shuffleclub.services.match_service import STATUS_FINALIZED, is_def
from shuffleclub.services.series import (
    compute_series_score,
    get_advantage_info,
    normalize_games_with_advantage,
    parse_sets,
)

logger = logging.getLogger(__name__)

END_REASON_BYE = "bye"


class FinalsError(ValueError):
    """Invalid finals report; routes turn this into a 400."""


@dataclass
class FinalReport:
    match: FinalMatch
    bye: bool
    champion_player_id: Optional[int]


def get_or_create_final_match(session: Session, bracket_id: int, round_no: int, match_no: int) -> FinalMatch:
    fm = session.exec(
        select(FinalMatch).where(
            FinalMatch.bracket_id == bracket_id,
            FinalMatch.round_no == round_no,
            FinalMatch.match_no == match_no,
        )
    ).first()
    if fm is None:
        fm = FinalMatch(bracket_id=bracket_id, round_no=round_no, match_no=match_no)
        session.add(fm)
        session.flush()
    return fm


def _slot_player(session: Session, bracket_id: int, round_no: int, slot_no: int) -> Optional[int]:
    entry = session.exec(
        select(FinalRoundEntry).where(
            FinalRoundEntry.bracket_id == bracket_id,
            FinalRoundEntry.round_no == round_no,
            FinalRoundEntry.slot_no == slot_no,
        )
    ).first()
    return entry.player_id if entry else None


def resolve_players(session: Session, fm: FinalMatch) -> Tuple[int, int]:
    """Players of a final match: the match row first, then slots 2m-1 and 2m."""
    a = fm.player_a_id or _slot_player(session, fm.bracket_id, fm.round_no, 2 * fm.match_no - 1)
    b = fm.player_b_id or _slot_player(session, fm.bracket_id, fm.round_no, 2 * fm.match_no)
    if a is None or b is None:
        raise FinalsError("Both bracket slots must be filled before reporting")
    return a, b


def qualified_by_def(session: Session, bracket_id: int, round_no: int, player_id: int) -> bool:
    """True when the player reached `round_no` through a bye in the previous round."""
    if round_no <= 1:
        return False
    prev = session.exec(
        select(FinalMatch).where(
            FinalMatch.bracket_id == bracket_id,
            FinalMatch.round_no == round_no - 1,
            FinalMatch.winner_id == player_id,
        )
    ).first()
    return prev is not None and prev.end_reason == END_REASON_BYE


def _scored_result(
    session: Session,
    fm: FinalMatch,
    a: int,
    b: int,
    winner_id: Optional[int],
    winner_score: Optional[int],
    loser_score: Optional[int],
    sets: Any,
    games: Any,
) -> Tuple[int, int, int, str]:
    """Return (winner, winner_score, loser_score, end_reason) for a played match."""
    end_reason = "normal"
    parsed = parse_sets(sets)
    if parsed is not None:
        fm.sets_json = [{"a": x, "b": y} for x, y in parsed.sets]
        if winner_id is None and parsed.a_sets_won != parsed.b_sets_won:
            winner_id = a if parsed.a_sets_won > parsed.b_sets_won else b
        if winner_id == a:
            winner_score, loser_score = parsed.a_sets_won, parsed.b_sets_won
        else:
            winner_score, loser_score = parsed.b_sets_won, parsed.a_sets_won
    elif isinstance(games, list) and games:
        info = get_advantage_info(
            a, b, qualified_by_def(session, fm.bracket_id, fm.round_no, a),
            qualified_by_def(session, fm.bracket_id, fm.round_no, b),
        )
        normalized = normalize_games_with_advantage(games, info)
        series = compute_series_score(a, b, normalized)
        fm.sets_json = normalized
        if winner_id is None:
            winner_id = series.recommended_winner_id
        if winner_id == a:
            winner_score, loser_score = series.p1_wins, series.p2_wins
        else:
            winner_score, loser_score = series.p2_wins, series.p1_wins
        if info.enabled:
            end_reason = "advantage"
    else:
        winner_score = 1 if winner_score is None else winner_score
        loser_score = 0 if loser_score is None else loser_score

    if winner_id is None:
        raise FinalsError("winner_id is required")
    if winner_id not in (a, b):
        raise FinalsError("Winner must be one of the two players")
    if winner_score <= loser_score:
        raise FinalsError("winner_score must be greater than loser_score")
    return winner_id, winner_score, loser_score, end_reason


def report_final_match(
    session: Session,
    fm: FinalMatch,
    winner_id: Optional[int] = None,
    winner_score: Optional[int] = None,
    loser_score: Optional[int] = None,
    sets: Any = None,
    games: Any = None,
) -> FinalReport:
    """Record a final-bracket result, advance the winner and refresh the champion."""
    bracket = session.get(FinalBracket, fm.bracket_id)
    if bracket is None:
        raise FinalsError("Bracket not found")

    a, b = resolve_players(session, fm)
    a_def = is_def(session.get(Player, a))
    b_def = is_def(session.get(Player, b))
    bye = a_def or b_def

    loser_id: Optional[int]
    if a_def and b_def:
        winner, loser_id, w_score, l_score, reason = a, None, 0, 0, END_REASON_BYE
    elif bye:
        winner = b if a_def else a
        loser_id = a if a_def else b
        w_score, l_score, reason = 1, 0, END_REASON_BYE
    else:
        winner, w_score, l_score, reason = _scored_result(
            session, fm, a, b, winner_id, winner_score, loser_score, sets, games
        )
        loser_id = b if winner == a else a

    fm.player_a_id = a
    fm.player_b_id = b
    fm.winner_id = winner
    fm.loser_id = loser_id
    fm.winner_score = w_score
    fm.loser_score = l_score
    fm.end_reason = reason
    fm.affects_rating = False
    fm.winner_points_delta = 0
    fm.loser_points_delta = 0
    fm.status = STATUS_FINALIZED
    fm.updated_at = datetime.utcnow()
    session.add(fm)
    session.flush()

    propagate_final_winner(session, fm)
    champion = recompute_champion(session, bracket)
    logger.info(
        "Final match %s/%s/%s reported: winner %s%s",
        fm.bracket_id, fm.round_no, fm.match_no, winner, " (bye)" if bye else "",
    )
    return FinalReport(match=fm, bye=bye, champion_player_id=champion)
