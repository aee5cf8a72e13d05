"""
Notice board API Routes
"""

import datetime as dt
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import func, or_
from sqlmodel import Session, select

from shuffleclub.database import get_session
from shuffleclub.models.notice import Notice
from shuffleclub.models.player import Player
from shuffleclub.utils.auth import get_current_player, is_admin, require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


class NoticeCreateRequest(BaseModel):
    title: str
    content: str = ""
    date: Optional[dt.date] = None
    is_published: bool = True

    @field_validator("title")
    @classmethod
    def title_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("title is required")
        return v.strip()


class NoticeUpdateRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    date: Optional[dt.date] = None
    is_published: Optional[bool] = None


class NoticeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str
    date: Optional[dt.date] = None
    is_published: bool
    created_at: dt.datetime
    updated_at: dt.datetime


def _sort_key(n: Notice):
    shown = dt.datetime.combine(n.date, dt.time()) if n.date else n.created_at
    return (shown, n.created_at, n.id)


@router.get("/notices")
def list_notices(
    q: Optional[str] = Query(None),
    include_unpublished: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    current: Optional[Player] = Depends(get_current_player),
    session: Session = Depends(get_session),
):
    """Published notices, newest first. Admins may include drafts."""
    query = select(Notice)
    if not (include_unpublished and is_admin(current)):
        query = query.where(Notice.is_published == True)  # noqa: E712
    if q and q.strip():
        pattern = f"%{q.strip().lower()}%"
        query = query.where(or_(func.lower(Notice.title).like(pattern), func.lower(Notice.content).like(pattern)))
    notices: List[Notice] = sorted(session.exec(query).all(), key=_sort_key, reverse=True)[:limit]
    return {"ok": True, "items": [NoticeResponse.model_validate(n) for n in notices]}


@router.get("/notices/{notice_id}")
def get_notice(
    notice_id: int,
    current: Optional[Player] = Depends(get_current_player),
    session: Session = Depends(get_session),
):
    notice = session.get(Notice, notice_id)
    if not notice or (not notice.is_published and not is_admin(current)):
        raise HTTPException(status_code=404, detail="Notice not found")
    return {"ok": True, "item": NoticeResponse.model_validate(notice)}


@router.post("/notices", status_code=201)
def create_notice(
    request: NoticeCreateRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    notice = Notice(**request.model_dump())
    session.add(notice)
    session.commit()
    session.refresh(notice)
    logger.info("Notice %s created", notice.id)
    return {"ok": True, "item": NoticeResponse.model_validate(notice)}


@router.patch("/notices/{notice_id}")
def update_notice(
    notice_id: int,
    request: NoticeUpdateRequest,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    notice = session.get(Notice, notice_id)
    if not notice:
        raise HTTPException(status_code=404, detail="Notice not found")
    updates = request.model_dump(exclude_unset=True)
    if "title" in updates and not (updates["title"] or "").strip():
        raise HTTPException(status_code=400, detail="title cannot be blank")
    for field, value in updates.items():
        setattr(notice, field, value)
    notice.updated_at = dt.datetime.utcnow()
    session.add(notice)
    session.commit()
    session.refresh(notice)
    return {"ok": True, "item": NoticeResponse.model_validate(notice)}


@router.delete("/notices/{notice_id}")
def delete_notice(
    notice_id: int,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    notice = session.get(Notice, notice_id)
    if not notice:
        raise HTTPException(status_code=404, detail="Notice not found")
    session.delete(notice)
    session.commit()
    return {"ok": True}
