from datetime import datetime
from typing import List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    created_by: Optional[int] = Field(default=None, foreign_key="players.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    members: List["TeamMember"] = Relationship(back_populates="team")


class TeamMember(SQLModel, table=True):
    __tablename__ = "team_members"
    __table_args__ = (SAUniqueConstraint("team_id", "player_id", name="uq_team_member"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    player_id: int = Field(foreign_key="players.id", index=True)

    team: Optional[Team] = Relationship(back_populates="members")
