"""
Elo-style rating and handicap arithmetic.

Ranking points (RP) move by an expected-score formula scaled by the score
difference and the handicap gap; handicap (HC) moves by a fixed amount when
the win margin reaches a threshold. Values are clamped to RP 0..99999 and
HC 0..50.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import Session

from shuffleclub.models.player import Player
from shuffleclub.models.ranking_config import RankingConfig
from shuffleclub.utils.parsing import clamp_float, clamp_int

logger = logging.getLogger(__name__)

RP_MIN, RP_MAX = 0, 99999
HC_MIN, HC_MAX = 0, 50

SCORE_DIFF_DIVISOR = 30
HANDICAP_DIFF_DIVISOR = 50

GLOBAL_CONFIG_ID = "global"

# (lo, hi, default) per ranking config field
CONFIG_BOUNDS: Dict[str, tuple] = {
    "k_factor": (10, 64, 32),
    "score_diff_multiplier": (0.01, 0.1, 0.05),
    "handicap_diff_multiplier": (0.01, 0.05, 0.02),
    "win_threshold_handicap_change": (0, 50, 10),
    "handicap_change_amount": (-10, 10, 1),
}
TREND_BOUNDS: Dict[str, tuple] = {
    "trend_daily_days": (1, 60, 5),
    "trend_weekly_weeks": (1, 60, 5),
    "trend_monthly_months": (1, 60, 5),
}
TREND_MODES = ("daily", "weekly", "monthly")
_FLOAT_FIELDS = {"score_diff_multiplier", "handicap_diff_multiplier"}


@dataclass
class RatingDelta:
    winner_points: int
    loser_points: int
    winner_handicap: int
    loser_handicap: int

    def as_dict(self) -> Dict[str, Dict[str, int]]:
        return {
            "winner": {"points": self.winner_points, "handicap": self.winner_handicap},
            "loser": {"points": self.loser_points, "handicap": self.loser_handicap},
        }


ZERO_DELTA = RatingDelta(0, 0, 0, 0)


def clamp_points(value: int) -> int:
    return max(RP_MIN, min(RP_MAX, int(value)))


def clamp_handicap(value: int) -> int:
    return max(HC_MIN, min(HC_MAX, int(value)))


def calc_delta(
    winner_points: int,
    loser_points: int,
    winner_handicap: int,
    loser_handicap: int,
    score_diff: int,
    config: Optional[RankingConfig] = None,
) -> RatingDelta:
    """Compute the RP/HC changes for a decided singles match."""
    cfg = config or RankingConfig()
    k = cfg.k_factor

    expected_win = 1 / (1 + 10 ** ((loser_points - winner_points) / 400))
    diff_mul = 1 + score_diff / SCORE_DIFF_DIVISOR
    hc_mul = 1 + (winner_handicap - loser_handicap) / HANDICAP_DIFF_DIVISOR

    # halves round up
    winner_change = math.floor(k * (1 - expected_win) * diff_mul * hc_mul + 0.5)
    loser_change = math.floor(-k * expected_win * diff_mul + 0.5)

    winner_hc_change = 0
    loser_hc_change = 0
    if score_diff >= cfg.win_threshold_handicap_change:
        winner_hc_change = -cfg.handicap_change_amount
        loser_hc_change = cfg.handicap_change_amount

    return RatingDelta(
        winner_points=int(winner_change),
        loser_points=int(loser_change),
        winner_handicap=winner_hc_change,
        loser_handicap=loser_hc_change,
    )


def apply_delta(winner: Player, loser: Player, delta: RatingDelta) -> None:
    winner.ranking_points = clamp_points(winner.ranking_points + delta.winner_points)
    loser.ranking_points = clamp_points(loser.ranking_points + delta.loser_points)
    winner.handicap = clamp_handicap(winner.handicap + delta.winner_handicap)
    loser.handicap = clamp_handicap(loser.handicap + delta.loser_handicap)


def reverse_delta(winner: Player, loser: Player, delta: RatingDelta) -> None:
    winner.ranking_points = clamp_points(winner.ranking_points - delta.winner_points)
    loser.ranking_points = clamp_points(loser.ranking_points - delta.loser_points)
    winner.handicap = clamp_handicap(winner.handicap - delta.winner_handicap)
    loser.handicap = clamp_handicap(loser.handicap - delta.loser_handicap)


# ============================================================================
# Ranking config
# ============================================================================


def load_ranking_config(session: Session) -> RankingConfig:
    """Return the stored global config, or an unsaved row of defaults."""
    row = session.get(RankingConfig, GLOBAL_CONFIG_ID)
    return row if row is not None else RankingConfig(id=GLOBAL_CONFIG_ID)


def normalize_config(values: Dict[str, Any]) -> Dict[str, Any]:
    """Clamp every formula/trend field in `values`; missing fields get defaults."""
    out: Dict[str, Any] = {}
    for name, (lo, hi, default) in {**CONFIG_BOUNDS, **TREND_BOUNDS}.items():
        raw = values.get(name)
        if name in _FLOAT_FIELDS:
            out[name] = clamp_float(raw, lo, hi, default)
        else:
            out[name] = clamp_int(raw, lo, hi, default)
    mode = str(values.get("trend_default_mode") or "daily").strip().lower()
    out["trend_default_mode"] = mode if mode in TREND_MODES else "daily"
    return out


def config_sections(cfg: RankingConfig) -> Dict[str, Dict[str, Any]]:
    return {
        "config": {name: getattr(cfg, name) for name in CONFIG_BOUNDS},
        "trend": {
            **{name: getattr(cfg, name) for name in TREND_BOUNDS},
            "trend_default_mode": cfg.trend_default_mode,
        },
    }


def save_ranking_config(session: Session, values: Dict[str, Any]) -> RankingConfig:
    normalized = normalize_config(values)
    row = session.get(RankingConfig, GLOBAL_CONFIG_ID)
    if row is None:
        row = RankingConfig(id=GLOBAL_CONFIG_ID)
    for name, value in normalized.items():
        setattr(row, name, value)
    row.updated_at = datetime.utcnow()
    session.add(row)
    session.commit()
    session.refresh(row)
    logger.info("Ranking config saved: k_factor=%s", row.k_factor)
    return row
