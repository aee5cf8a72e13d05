"""
Advancement: when a bracket match is decided, move the winner into the next round.

Tournament brackets (matches table) and final brackets (final_round_entries)
share the same geometry: match m of round r feeds match ceil(m / 2) of round
r + 1, odd m on side A and even m on side B. Final brackets store slots, so
the winner of match m lands in slot m of round r + 1.
"""
from typing import Dict, Optional

from sqlmodel import Session, func, select

from shuffleclub.models.finals import FinalBracket, FinalMatch, FinalRoundEntry
from shuffleclub.models.match import Match


def next_position(match_no: int) -> Dict[str, object]:
    """Return {"match_no", "side"} of the match fed by `match_no`."""
    return {"match_no": (match_no + 1) // 2, "side": "A" if match_no % 2 == 1 else "B"}


def advance_tournament_winner(session: Session, match: Match) -> Optional[Match]:
    """
    Copy the winner of a decided tournament match into the next round's match.

    Returns the updated downstream match, or None when the match is not part
    of a bracket, has no winner yet, or is the final.

    Idempotent: re-running overwrites the same slot with the same winner.
    """
    if match.tournament_id is None or match.round is None or match.match_no is None:
        return None

    winner_player = match.winner_id
    winner_team = match.winner_team_id
    if winner_player is None and winner_team is None:
        return None

    pos = next_position(match.match_no)
    nxt = session.exec(
        select(Match).where(
            Match.tournament_id == match.tournament_id,
            Match.league_block_id.is_(None),
            Match.round == match.round + 1,
            Match.match_no == pos["match_no"],
        )
    ).first()
    if nxt is None:
        return None

    if match.mode == "teams":
        if pos["side"] == "A":
            nxt.team_a_id = winner_team
        else:
            nxt.team_b_id = winner_team
    else:
        if pos["side"] == "A":
            nxt.player_a_id = winner_player
        else:
            nxt.player_b_id = winner_player
    session.add(nxt)
    return nxt


# ============================================================================
# Final brackets
# ============================================================================


def total_final_rounds(session: Session, bracket_id: int) -> int:
    """Highest round that has slots in this bracket (0 when empty)."""
    result = session.exec(
        select(func.max(FinalRoundEntry.round_no)).where(FinalRoundEntry.bracket_id == bracket_id)
    ).first()
    return int(result or 0)


def upsert_slot(
    session: Session, bracket_id: int, round_no: int, slot_no: int, player_id: Optional[int]
) -> FinalRoundEntry:
    entry = session.exec(
        select(FinalRoundEntry).where(
            FinalRoundEntry.bracket_id == bracket_id,
            FinalRoundEntry.round_no == round_no,
            FinalRoundEntry.slot_no == slot_no,
        )
    ).first()
    if entry is None:
        entry = FinalRoundEntry(bracket_id=bracket_id, round_no=round_no, slot_no=slot_no)
    entry.player_id = player_id
    session.add(entry)
    return entry


def propagate_final_winner(session: Session, fm: FinalMatch) -> Optional[FinalRoundEntry]:
    """Place the winner of a final match into slot match_no of the next round."""
    if fm.winner_id is None:
        return None
    if fm.round_no >= total_final_rounds(session, fm.bracket_id):
        return None
    return upsert_slot(session, fm.bracket_id, fm.round_no + 1, fm.match_no, fm.winner_id)


def recompute_champion(session: Session, bracket: FinalBracket) -> Optional[int]:
    """
    The champion is the winner of the last round's match. Until that match is
    decided the bracket has no champion.
    """
    last_round = total_final_rounds(session, bracket.id)
    champion: Optional[int] = None
    if last_round > 0:
        final = session.exec(
            select(FinalMatch)
            .where(
                FinalMatch.bracket_id == bracket.id,
                FinalMatch.round_no == last_round,
                FinalMatch.winner_id.is_not(None),
            )
            .order_by(FinalMatch.match_no)
        ).first()
        if final is not None:
            champion = final.winner_id
    bracket.champion_player_id = champion
    session.add(bracket)
    return champion
