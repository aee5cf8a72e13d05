"""
Best-effort reconstruction of knockout rounds from a flat list of matches.

Tournaments recorded as free matches carry no round/slot data. This module
rebuilds a plausible bracket from timestamps:

  Round 1   greedily take matches (in time order) whose two players have not
            appeared yet.
  Round n+1 only matches between two winners of round n qualify. Winners are
            visited in the order their round-n match finished; each one is
            paired with the next unpaired winner that has a qualifying match,
            preferring the earliest match played after both were ready and
            falling back to the oldest one. The round keeps that pick order.

The result is heuristic. It stops at the first empty round.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Set, Tuple


@dataclass
class InferredMatch:
    match_id: int
    player_a_id: int
    player_b_id: int
    winner_id: Optional[int]
    played_at: datetime

    @property
    def players(self) -> Tuple[int, int]:
        return (self.player_a_id, self.player_b_id)


@dataclass
class InferredBracket:
    rounds: List[List[InferredMatch]] = field(default_factory=list)
    champion_id: Optional[int] = None


def _first_round(matches: Sequence[InferredMatch], used: Set[int]) -> List[InferredMatch]:
    seen: Set[int] = set()
    picked: List[InferredMatch] = []
    for m in matches:
        a, b = m.players
        if a in seen or b in seen:
            continue
        seen.update((a, b))
        picked.append(m)
        used.add(m.match_id)
    return picked


def _next_round(
    prev: List[InferredMatch], matches: Sequence[InferredMatch], used: Set[int]
) -> List[InferredMatch]:
    # winner -> (index of the round-n match, time it finished)
    ready: Dict[int, Tuple[int, datetime]] = {}
    for idx, m in enumerate(prev):
        if m.winner_id is not None:
            ready[m.winner_id] = (idx, m.played_at)

    candidates = sorted(
        (
            m
            for m in matches
            if m.match_id not in used and m.player_a_id in ready and m.player_b_id in ready
        ),
        key=lambda m: m.played_at,
    )
    if not candidates:
        return []

    winners = sorted(ready, key=lambda w: ready[w][1])
    taken_prev: Set[int] = set()
    paired: Set[int] = set()
    picked: List[InferredMatch] = []

    def try_pick(w1: int, w2: int) -> Optional[InferredMatch]:
        idx1, t1 = ready[w1]
        idx2, t2 = ready[w2]
        if idx1 in taken_prev or idx2 in taken_prev:
            return None
        t_ready = max(t1, t2)
        between = [
            m for m in candidates if m.match_id not in used and set(m.players) == {w1, w2}
        ]
        for m in between:
            if m.played_at >= t_ready:
                return m
        return between[0] if between else None

    for i, w1 in enumerate(winners):
        if w1 in paired:
            continue
        for w2 in winners[i + 1:]:
            if w2 in paired:
                continue
            m = try_pick(w1, w2)
            if m is None:
                continue
            picked.append(m)
            used.add(m.match_id)
            paired.update((w1, w2))
            taken_prev.update((ready[w1][0], ready[w2][0]))
            break

    return picked


def infer_bracket(matches: Sequence[InferredMatch]) -> InferredBracket:
    """Rebuild rounds from matches already ordered by time."""
    ordered = sorted(matches, key=lambda m: m.played_at)
    used: Set[int] = set()
    result = InferredBracket()

    current = _first_round(ordered, used)
    while current:
        result.rounds.append(current)
        current = _next_round(current, ordered, used)

    if result.rounds and len(result.rounds[-1]) == 1:
        result.champion_id = result.rounds[-1][0].winner_id
    return result
