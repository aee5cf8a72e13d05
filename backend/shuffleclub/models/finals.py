from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, SQLModel


class FinalBracket(SQLModel, table=True):
    __tablename__ = "final_brackets"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", index=True)
    title: str = Field(default="Final tournament")
    champion_player_id: Optional[int] = Field(default=None, foreign_key="players.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)


class FinalRoundEntry(SQLModel, table=True):
    """Occupant of one bracket slot. Round r has size / 2^(r-1) slots."""

    __tablename__ = "final_round_entries"
    __table_args__ = (SAUniqueConstraint("bracket_id", "round_no", "slot_no", name="uq_final_round_slot"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    bracket_id: int = Field(foreign_key="final_brackets.id", index=True)
    round_no: int
    slot_no: int
    player_id: Optional[int] = Field(default=None, foreign_key="players.id")


class FinalMatch(SQLModel, table=True):
    __tablename__ = "final_matches"
    __table_args__ = (SAUniqueConstraint("bracket_id", "round_no", "match_no", name="uq_final_match_no"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    bracket_id: int = Field(foreign_key="final_brackets.id", index=True)
    round_no: int
    match_no: int
    player_a_id: Optional[int] = Field(default=None, foreign_key="players.id")
    player_b_id: Optional[int] = Field(default=None, foreign_key="players.id")
    winner_id: Optional[int] = Field(default=None, foreign_key="players.id")
    loser_id: Optional[int] = Field(default=None, foreign_key="players.id")
    winner_score: int = Field(default=0)
    loser_score: int = Field(default=0)
    sets_json: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    end_reason: str = Field(default="normal")  # normal | bye | advantage
    affects_rating: bool = Field(default=False)
    status: str = Field(default="pending")
    winner_points_delta: int = Field(default=0)
    loser_points_delta: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})


class FinalRoundLabel(SQLModel, table=True):
    __tablename__ = "final_round_labels"
    __table_args__ = (SAUniqueConstraint("bracket_id", "round_no", name="uq_final_round_label"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    bracket_id: int = Field(foreign_key="final_brackets.id", index=True)
    round_no: int
    label: str
