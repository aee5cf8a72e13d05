"""
Build single-elimination structures.

- Tournament brackets live in the matches table (round/match_no columns).
- Final brackets live in final_round_entries (one row per slot).
"""
import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import text
from sqlmodel import Session, select

from shuffleclub.models.finals import FinalBracket, FinalRoundEntry
from shuffleclub.models.match import Match
from shuffleclub.models.player import Player
from shuffleclub.models.tournament import Tournament, TournamentEntry
from shuffleclub.services.match_service import STATUS_PENDING

logger = logging.getLogger(__name__)


class BracketError(ValueError):
    """Bracket cannot be built from the given input."""


def next_power_of_two(n: int) -> int:
    size = 1
    while size < n:
        size *= 2
    return size


def seed_pairs(count: int) -> List[tuple]:
    """Index pairs (i, count-1-i) for a seeded first round."""
    return [(i, count - 1 - i) for i in range(count // 2)]


def generate_tournament_bracket(session: Session, tournament: Tournament) -> List[Match]:
    """
    (Re)create the tournament's knockout matches from its seeded entries.

    Round 1 pairs seed i against seed N-1-i. Later rounds are created empty so
    winners can be advanced into them. Existing bracket matches are replaced.
    """
    entries = session.exec(
        select(TournamentEntry)
        .where(TournamentEntry.tournament_id == tournament.id)
        .order_by(TournamentEntry.seed, TournamentEntry.id)
    ).all()
    teams_mode = tournament.mode == "teams"
    valid = [e for e in entries if (e.team_id if teams_mode else e.player_id) is not None]
    if len(valid) < 2:
        raise BracketError("At least 2 participants are required")

    chosen = valid[: min(tournament.size, len(valid))]

    session.execute(
        text("DELETE FROM matches WHERE tournament_id = :tid AND league_block_id IS NULL AND round IS NOT NULL"),
        {"tid": tournament.id},
    )

    mode = "teams" if teams_mode else "singles"
    inserted: List[Match] = []
    for i, (a_idx, b_idx) in enumerate(seed_pairs(len(chosen))):
        a, b = chosen[a_idx], chosen[b_idx]
        m = Match(
            mode=mode,
            status=STATUS_PENDING,
            tournament_id=tournament.id,
            round=1,
            match_no=i + 1,
        )
        if teams_mode:
            m.team_a_id, m.team_b_id = a.team_id, b.team_id
        else:
            m.player_a_id, m.player_b_id = a.player_id, b.player_id
        session.add(m)
        inserted.append(m)

    matches_in_round = len(inserted)
    round_no = 1
    while matches_in_round > 1:
        round_no += 1
        matches_in_round = (matches_in_round + 1) // 2
        for no in range(1, matches_in_round + 1):
            session.add(
                Match(mode=mode, status=STATUS_PENDING, tournament_id=tournament.id, round=round_no, match_no=no)
            )

    session.flush()
    logger.info("Generated bracket for tournament %s: %d first-round matches", tournament.id, len(inserted))
    return inserted


def create_final_bracket(
    session: Session,
    tournament_id: int,
    title: str,
    nominee_ids: Sequence[int],
    def_player: Optional[Player],
) -> Dict[str, object]:
    """
    Create a final bracket seeded in nominee order, padded with def to the
    next power of two. Slots for every round are created up front.
    """
    if len(nominee_ids) < 2:
        raise BracketError("At least 2 nominees are required")

    size = next_power_of_two(len(nominee_ids))
    padded = size - len(nominee_ids)
    if padded and def_player is None:
        raise BracketError("def player is required to pad the bracket")

    seeded: List[int] = list(nominee_ids)
    if padded:
        seeded.extend([def_player.id] * padded)

    bracket = FinalBracket(tournament_id=tournament_id, title=title)
    session.add(bracket)
    session.flush()

    rounds = size.bit_length() - 1
    for round_no in range(1, rounds + 1):
        slots = size // (2 ** (round_no - 1))
        for slot_no in range(1, slots + 1):
            player_id = seeded[slot_no - 1] if round_no == 1 else None
            session.add(
                FinalRoundEntry(bracket_id=bracket.id, round_no=round_no, slot_no=slot_no, player_id=player_id)
            )

    logger.info("Created final bracket %s (size %d, padded %d)", bracket.id, size, padded)
    return {"bracket": bracket, "size": size, "padded_count": padded}
