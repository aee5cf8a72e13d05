from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class AuthSession(SQLModel, table=True):
    """A login session. Only the sha256 of the bearer token is stored."""

    __tablename__ = "auth_sessions"

    id: Optional[int] = Field(default=None, primary_key=True)
    player_id: int = Field(foreign_key="players.id", index=True)
    token_hash: str = Field(index=True, unique=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    expires_at: datetime
    revoked_at: Optional[datetime] = None
