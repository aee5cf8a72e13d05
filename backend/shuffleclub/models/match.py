from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Match(SQLModel, table=True):
    __tablename__ = "matches"

    id: Optional[int] = Field(default=None, primary_key=True)
    mode: str = Field(default="singles")  # "singles" | "teams"
    status: str = Field(default="pending", index=True)  # "pending" | "finalized"
    match_date: datetime = Field(default_factory=datetime.utcnow, index=True)

    # Bracket / league placement (all nullable for free matches)
    tournament_id: Optional[int] = Field(default=None, foreign_key="tournaments.id", index=True)
    league_block_id: Optional[int] = Field(default=None, foreign_key="league_blocks.id", index=True)
    round: Optional[int] = None
    match_no: Optional[int] = None

    reporter_id: Optional[int] = Field(default=None, foreign_key="players.id")

    # Sides
    player_a_id: Optional[int] = Field(default=None, foreign_key="players.id")
    player_b_id: Optional[int] = Field(default=None, foreign_key="players.id")
    team_a_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    team_b_id: Optional[int] = Field(default=None, foreign_key="teams.id")

    # Result
    winner_id: Optional[int] = Field(default=None, foreign_key="players.id")
    loser_id: Optional[int] = Field(default=None, foreign_key="players.id")
    winner_team_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    loser_team_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    winner_score: Optional[int] = None
    loser_score: Optional[int] = None
    end_reason: str = Field(default="normal")  # normal | time_limit | walkover | forfeit
    affects_rating: bool = Field(default=True)

    # Rating deltas applied when the result was recorded
    winner_points_delta: int = Field(default=0)
    loser_points_delta: int = Field(default=0)
    winner_handicap_delta: int = Field(default=0)
    loser_handicap_delta: int = Field(default=0)

    venue: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
