from datetime import date, datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Tournament(SQLModel, table=True):
    __tablename__ = "tournaments"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(default="New tournament")
    start_date: date = Field(default_factory=date.today)
    mode: str = Field(default="singles")  # "singles" | "teams"
    size: int = Field(default=8)  # 4 | 8 | 16 | 32
    best_of: int = Field(default=1)  # 1 | 3
    point_cap: int = Field(default=15)
    apply_handicap: bool = Field(default=True)
    time_limit_minutes: int = Field(default=30)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class TournamentEntry(SQLModel, table=True):
    __tablename__ = "tournament_entries"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", index=True)
    player_id: Optional[int] = Field(default=None, foreign_key="players.id")
    team_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    seed: int
