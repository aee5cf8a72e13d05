"""
Admin API Routes
Backup download, restore/reset from JSON, and the ranking formula settings.
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session

from shuffleclub.database import get_session
from shuffleclub.models.player import Player
from shuffleclub.services.backup_service import (
    RestoreError,
    backup_filename,
    build_backup,
    reset_tables,
    restore_tables,
)
from shuffleclub.services.rating import config_sections, load_ranking_config, save_ranking_config
from shuffleclub.utils.auth import ADMIN_TOKEN_HEADER, check_admin_token, require_admin

logger = logging.getLogger(__name__)

router = APIRouter()

UPLOAD_FIELDS = ("file", "backup", "payload", "data", "json")


async def read_payload(request: Request) -> Any:
    """Body of a restore request: JSON, or the first known multipart field."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        for key in UPLOAD_FIELDS:
            value = form.get(key)
            if value is None:
                continue
            if isinstance(value, str):
                return value
            raw = await value.read()
            return raw.decode("utf-8", errors="replace")
        return None

    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return None


# ============================================================================
# Backup / Restore
# ============================================================================


@router.get("/admin/backup")
def download_backup(
    request: Request,
    token: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    """Full JSON dump. Requires ADMIN_API_KEY as ?token= or x-admin-token header."""
    check_admin_token(token or request.headers.get(ADMIN_TOKEN_HEADER))
    doc = build_backup(session)
    logger.info("Backup downloaded (%d tables)", len(doc["data"]))
    return JSONResponse(
        content=doc,
        headers={
            "Content-Disposition": f'attachment; filename="{backup_filename()}"',
            "Cache-Control": "no-store",
        },
    )


@router.post("/admin/restore")
async def restore_backup(
    request: Request,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Upsert rows from a backup document (JSON body or uploaded file)."""
    payload = await read_payload(request)
    if payload is None:
        raise HTTPException(status_code=400, detail="Backup payload could not be read")
    try:
        inserted = restore_tables(session, payload)
        session.commit()
    except RestoreError as e:
        session.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to restore backup: {str(e)}")
    return {"ok": True, "inserted": inserted}


@router.post("/admin/reset")
async def reset_database(
    request: Request,
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Delete everything, then insert the tables given in the body."""
    payload = await read_payload(request)
    try:
        inserted = reset_tables(session, payload or {})
        session.commit()
    except RestoreError as e:
        session.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        session.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to reset database: {str(e)}")
    logger.warning("Database reset by admin")
    return {"ok": True, "inserted": inserted}


# ============================================================================
# Ranking config
# ============================================================================


@router.get("/ranking-config")
def get_ranking_config(session: Session = Depends(get_session)):
    cfg = load_ranking_config(session)
    return {"ok": True, **config_sections(cfg), "row_id": cfg.id}


@router.put("/admin/ranking-config")
def put_ranking_config(
    body: Dict[str, Any] = Body(...),
    _admin: Optional[Player] = Depends(require_admin),
    session: Session = Depends(get_session),
):
    """Accepts {"config": {...}, "trend": {...}} or the same fields flat."""
    values: Dict[str, Any] = {}
    for section in ("config", "trend"):
        if isinstance(body.get(section), dict):
            values.update(body[section])
    values.update({k: v for k, v in body.items() if k not in ("config", "trend")})

    current = config_sections(load_ranking_config(session))
    merged = {**current["config"], **current["trend"], **values}
    cfg = save_ranking_config(session, merged)
    return {"ok": True, **config_sections(cfg), "saved": True}
