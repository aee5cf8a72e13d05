from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Player(SQLModel, table=True):
    __tablename__ = "players"

    id: Optional[int] = Field(default=None, primary_key=True)
    handle_name: str = Field(index=True, unique=True)
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = Field(default=None, index=True)  # E.164
    address: Optional[str] = None
    avatar_url: Optional[str] = None
    password_hash: Optional[str] = None  # bcrypt; never exported in backups

    ranking_points: int = Field(default=1000)
    handicap: int = Field(default=0)
    matches_played: int = Field(default=0)
    wins: int = Field(default=0)
    losses: int = Field(default=0)

    is_admin: bool = Field(default=False)
    is_active: bool = Field(default=True)
    is_dummy: bool = Field(default=False)  # "def" walkover opponent

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
