"""
Recording and reversing match results.

Player counters (matches_played/wins/losses) move with every finalized
singles result unless one side is the def dummy; ranking points and
handicap move only when the result affects rating.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from shuffleclub import config
from shuffleclub.models.match import Match
from shuffleclub.models.player import Player
from shuffleclub.services.rating import (
    ZERO_DELTA,
    RatingDelta,
    apply_delta,
    calc_delta,
    load_ranking_config,
    reverse_delta,
)

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_FINALIZED = "finalized"
END_REASONS = ("normal", "time_limit", "walkover", "forfeit")


def get_def_player(session: Session) -> Optional[Player]:
    """The dummy walkover opponent: is_dummy first, then the configured handle."""
    dummy = session.exec(select(Player).where(Player.is_dummy == True).order_by(Player.id)).first()  # noqa: E712
    if dummy is not None:
        return dummy
    handle = config.DEF_HANDLE_NAME.lower()
    for p in session.exec(select(Player)).all():
        if (p.handle_name or "").lower() == handle:
            return p
    return None


def is_def(player: Optional[Player]) -> bool:
    if player is None:
        return False
    return bool(player.is_dummy) or (player.handle_name or "").lower() == config.DEF_HANDLE_NAME.lower()


def normalize_end_reason(value: Optional[str]) -> str:
    reason = (value or "").strip().lower()
    return reason if reason in END_REASONS else "normal"


def stored_delta(match: Match) -> RatingDelta:
    return RatingDelta(
        winner_points=match.winner_points_delta or 0,
        loser_points=match.loser_points_delta or 0,
        winner_handicap=match.winner_handicap_delta or 0,
        loser_handicap=match.loser_handicap_delta or 0,
    )


def _counts_apply(winner: Player, loser: Player) -> bool:
    return not is_def(winner) and not is_def(loser)


def record_singles_result(
    session: Session,
    match: Match,
    winner: Player,
    loser: Player,
    winner_score: int,
    loser_score: int,
    apply_rating: bool,
    end_reason: str = "normal",
) -> RatingDelta:
    """
    Write a singles result onto `match` and update both players.

    The caller reverses any previous result first and commits afterwards.
    """
    delta = ZERO_DELTA
    if apply_rating:
        score_diff = max(1, winner_score - loser_score)
        delta = calc_delta(
            winner.ranking_points,
            loser.ranking_points,
            winner.handicap,
            loser.handicap,
            score_diff,
            load_ranking_config(session),
        )
        apply_delta(winner, loser, delta)

    if _counts_apply(winner, loser):
        winner.matches_played += 1
        loser.matches_played += 1
        winner.wins += 1
        loser.losses += 1

    match.winner_id = winner.id
    match.loser_id = loser.id
    match.winner_score = winner_score
    match.loser_score = loser_score
    match.end_reason = end_reason
    match.affects_rating = apply_rating
    match.winner_points_delta = delta.winner_points
    match.loser_points_delta = delta.loser_points
    match.winner_handicap_delta = delta.winner_handicap
    match.loser_handicap_delta = delta.loser_handicap
    match.status = STATUS_FINALIZED
    match.updated_at = datetime.utcnow()

    session.add(winner)
    session.add(loser)
    session.add(match)
    return delta


def reverse_result(session: Session, match: Match) -> bool:
    """
    Undo the player-side effects of a finalized singles result.

    Returns True when something was reversed. The match row keeps its
    result fields until the caller overwrites them.
    """
    if match.status != STATUS_FINALIZED or match.winner_id is None or match.loser_id is None:
        return False
    winner = session.get(Player, match.winner_id)
    loser = session.get(Player, match.loser_id)
    if winner is None or loser is None:
        return False

    if _counts_apply(winner, loser):
        winner.matches_played = max(0, winner.matches_played - 1)
        loser.matches_played = max(0, loser.matches_played - 1)
        winner.wins = max(0, winner.wins - 1)
        loser.losses = max(0, loser.losses - 1)

    if match.affects_rating:
        reverse_delta(winner, loser, stored_delta(match))

    session.add(winner)
    session.add(loser)
    logger.info("Reversed previous result of match %s", match.id)
    return True
