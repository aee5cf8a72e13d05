from datetime import datetime
from typing import List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


class LeagueBlock(SQLModel, table=True):
    """Round-robin group of players inside a tournament."""

    __tablename__ = "league_blocks"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", index=True)
    block_no: int = Field(default=1)
    label: Optional[str] = None
    status: str = Field(default="pending")  # "pending" | "decided"
    winner_player_id: Optional[int] = Field(default=None, foreign_key="players.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    members: List["LeagueBlockMember"] = Relationship(back_populates="block")


class LeagueBlockMember(SQLModel, table=True):
    __tablename__ = "league_block_members"
    __table_args__ = (SAUniqueConstraint("league_block_id", "player_id", name="uq_league_block_member"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    league_block_id: int = Field(foreign_key="league_blocks.id", index=True)
    player_id: int = Field(foreign_key="players.id", index=True)

    block: Optional[LeagueBlock] = Relationship(back_populates="members")
