"""
Set and series scoring for final-bracket matches.

Two input shapes are supported:

  sets   [{"a": 15, "b": 9}, {"score_a": 7, "score_b": 15}, {"p1": 15, "p2": 3}]
         per-set points for side A / side B, at most 5 sets.
  games  best-of-3 series as [{"winner_id": 12, "win_type": "normal"}, ...].
         When exactly one finalist reached the round through a def bye, the
         other finalist starts with a one-game advantage.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from shuffleclub.utils.parsing import to_int

MAX_SETS = 5
SERIES_GAMES = 3
WIN_TYPE_ADVANTAGE = "advantage"


@dataclass
class ParsedSets:
    sets: List[Tuple[int, int]]
    a_sets_won: int
    b_sets_won: int


@dataclass
class AdvantageInfo:
    enabled: bool
    advantaged_player_id: Optional[int] = None
    reason: Optional[str] = None


@dataclass
class SeriesScore:
    p1_wins: int
    p2_wins: int
    score_text: str
    recommended_winner_id: Optional[int]
    games: List[Dict[str, Any]] = field(default_factory=list)


def _side_value(row: Dict[str, Any], keys: Tuple[str, ...]) -> Optional[int]:
    for key in keys:
        if key in row and row[key] not in (None, ""):
            return to_int(row[key])
    return None


def parse_sets(raw: Any) -> Optional[ParsedSets]:
    """Normalize a list of set scores. Returns None when nothing usable is given."""
    if not isinstance(raw, list):
        return None
    sets: List[Tuple[int, int]] = []
    for row in raw[:MAX_SETS]:
        if not isinstance(row, dict):
            continue
        a = _side_value(row, ("a", "score_a", "p1"))
        b = _side_value(row, ("b", "score_b", "p2"))
        if a is None or b is None:
            continue
        sets.append((max(0, a), max(0, b)))
    if not sets:
        return None
    return ParsedSets(
        sets=sets,
        a_sets_won=sum(1 for a, b in sets if a > b),
        b_sets_won=sum(1 for a, b in sets if b > a),
    )


def get_advantage_info(
    p1_id: Optional[int], p2_id: Optional[int], p1_by_def: bool, p2_by_def: bool
) -> AdvantageInfo:
    """
    One-game advantage applies only when exactly one finalist came through a
    def bye; the finalist who played a real match gets it.
    """
    if p1_id is None or p2_id is None or p1_by_def == p2_by_def:
        return AdvantageInfo(enabled=False)
    advantaged = p2_id if p1_by_def else p1_id
    return AdvantageInfo(enabled=True, advantaged_player_id=advantaged, reason="opponent_advanced_by_def")


def _is_empty_game(game: Optional[Dict[str, Any]]) -> bool:
    return not game or to_int(game.get("winner_id")) is None


def normalize_games_with_advantage(games: Any, info: AdvantageInfo) -> List[Dict[str, Any]]:
    """Pad to three games; with an advantage, an empty game 1 becomes an advantage win."""
    rows: List[Dict[str, Any]] = []
    for g in (games if isinstance(games, list) else [])[:SERIES_GAMES]:
        rows.append(dict(g) if isinstance(g, dict) else {})
    while len(rows) < SERIES_GAMES:
        rows.append({})

    if info.enabled and _is_empty_game(rows[0]):
        rows[0] = {"winner_id": info.advantaged_player_id, "win_type": WIN_TYPE_ADVANTAGE}

    for g in rows:
        if not _is_empty_game(g):
            g["winner_id"] = to_int(g.get("winner_id"))
            g.setdefault("win_type", "normal")
    return rows


def compute_series_score(p1_id: int, p2_id: int, games: List[Dict[str, Any]]) -> SeriesScore:
    p1_wins = sum(1 for g in games if not _is_empty_game(g) and g["winner_id"] == p1_id)
    p2_wins = sum(1 for g in games if not _is_empty_game(g) and g["winner_id"] == p2_id)

    recommended: Optional[int] = None
    if p1_wins != p2_wins and max(p1_wins, p2_wins) >= 2:
        recommended = p1_id if p1_wins > p2_wins else p2_id

    return SeriesScore(
        p1_wins=p1_wins,
        p2_wins=p2_wins,
        score_text=f"{p1_wins}-{p2_wins}",
        recommended_winner_id=recommended,
        games=games,
    )
