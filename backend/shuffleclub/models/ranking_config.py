from datetime import datetime

from sqlmodel import Field, SQLModel


class RankingConfig(SQLModel, table=True):
    """Singleton row (id="global") with rating formula and trend chart settings."""

    __tablename__ = "ranking_config"

    id: str = Field(default="global", primary_key=True)
    k_factor: int = Field(default=32)
    score_diff_multiplier: float = Field(default=0.05)
    handicap_diff_multiplier: float = Field(default=0.02)
    win_threshold_handicap_change: int = Field(default=10)
    handicap_change_amount: int = Field(default=1)
    trend_daily_days: int = Field(default=5)
    trend_weekly_weeks: int = Field(default=5)
    trend_monthly_months: int = Field(default=5)
    trend_default_mode: str = Field(default="daily")
    updated_at: datetime = Field(default_factory=datetime.utcnow)
