import datetime as dt
from typing import Optional

from sqlmodel import Field, SQLModel


class Notice(SQLModel, table=True):
    __tablename__ = "notices"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    content: str = Field(default="")
    date: Optional[dt.date] = None  # display date; falls back to created_at
    is_published: bool = Field(default=True)
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    updated_at: dt.datetime = Field(
        default_factory=dt.datetime.utcnow, sa_column_kwargs={"onupdate": dt.datetime.utcnow}
    )
