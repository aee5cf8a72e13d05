"""
JSON backup, restore and reset of all club data.

A backup document is {"meta": {...}, "data": {table_name: [row, ...]}}.
Restore accepts that document, the bare table map, or either of them wrapped
in one of WRAPPER_KEYS (optionally as a JSON string).

Tables are written parent-to-child (TABLE_ORDER) and deleted child-to-parent.
Credentials never leave the database: password hashes are stripped on export
and kept from the existing row on restore.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple, Type

from sqlalchemy import delete
from sqlmodel import Session, SQLModel, select

from shuffleclub.models.auth_session import AuthSession
from shuffleclub.models.finals import FinalBracket, FinalMatch, FinalRoundEntry, FinalRoundLabel
from shuffleclub.models.league import LeagueBlock, LeagueBlockMember
from shuffleclub.models.match import Match
from shuffleclub.models.notice import Notice
from shuffleclub.models.player import Player
from shuffleclub.models.ranking_config import RankingConfig
from shuffleclub.models.team import Team, TeamMember
from shuffleclub.models.tournament import Tournament, TournamentEntry

logger = logging.getLogger(__name__)

TABLE_ORDER: List[Tuple[str, Type[SQLModel]]] = [
    ("players", Player),
    ("teams", Team),
    ("team_members", TeamMember),
    ("tournaments", Tournament),
    ("tournament_entries", TournamentEntry),
    ("league_blocks", LeagueBlock),
    ("league_block_members", LeagueBlockMember),
    ("matches", Match),
    ("final_brackets", FinalBracket),
    ("final_round_entries", FinalRoundEntry),
    ("final_matches", FinalMatch),
    ("final_round_labels", FinalRoundLabel),
    ("notices", Notice),
    ("ranking_config", RankingConfig),
]
TABLE_MODELS: Dict[str, Type[SQLModel]] = dict(TABLE_ORDER)
WRAPPER_KEYS = ("payload", "data", "backup", "body", "json")
EXPORT_EXCLUDE: Dict[str, Set[str]] = {"players": {"password_hash"}}

_MAX_UNWRAP_DEPTH = 5


class RestoreError(ValueError):
    """Unusable restore payload; routes turn this into a 400."""


# ============================================================================
# Export
# ============================================================================


def export_tables(session: Session) -> Dict[str, List[Dict[str, Any]]]:
    data: Dict[str, List[Dict[str, Any]]] = {}
    for name, model in TABLE_ORDER:
        rows = session.exec(select(model)).all()
        exclude = EXPORT_EXCLUDE.get(name, set())
        data[name] = [row.model_dump(mode="json", exclude=exclude) for row in rows]
    return data


def build_backup(session: Session, via: str = "admin_token") -> Dict[str, Any]:
    data = export_tables(session)
    return {
        "ok": True,
        "meta": {
            "created_at": datetime.utcnow().isoformat() + "Z",
            "via": via,
            "tables": [name for name, _ in TABLE_ORDER],
        },
        "data": data,
    }


def backup_filename(now: Optional[datetime] = None) -> str:
    return f"backup-{(now or datetime.utcnow()).strftime('%Y%m%d-%H%M')}.json"


# ============================================================================
# Restore
# ============================================================================


def extract_tables(payload: Any, depth: int = 0) -> Optional[Dict[str, Any]]:
    """Find the table map inside a possibly wrapped payload."""
    if depth > _MAX_UNWRAP_DEPTH:
        return None
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError:
            return None
    if not isinstance(payload, dict):
        return None
    if any(key in TABLE_MODELS for key in payload):
        return payload
    for key in WRAPPER_KEYS:
        if key in payload:
            found = extract_tables(payload[key], depth + 1)
            if found is not None:
                return found
    return None


def _validate(tables: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]:
    out: Dict[str, List[Dict[str, Any]]] = {}
    for name, _model in TABLE_ORDER:
        if name not in tables:
            continue
        rows = tables[name]
        if not isinstance(rows, list):
            raise RestoreError(f"Table '{name}' must be an array")
        if any(not isinstance(r, dict) for r in rows):
            raise RestoreError(f"Table '{name}' must contain objects")
        out[name] = rows

    block_ids: Set[int] = set()
    for row in out.get("league_blocks", []):
        if row.get("id") is None:
            raise RestoreError("league_blocks rows must have an id")
        block_ids.add(row["id"])
    for row in out.get("league_block_members", []):
        if row.get("league_block_id") not in block_ids:
            raise RestoreError(f"league_block_members row references unknown block {row.get('league_block_id')}")
    for row in out.get("matches", []):
        ref = row.get("league_block_id")
        if ref is not None and ref not in block_ids:
            raise RestoreError(f"matches row references unknown league block {ref}")
    return out


def sanitize_players(session: Session, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Make handle names unique case-insensitively, against each other and
    against existing players the payload does not overwrite.
    """
    incoming_ids = {r.get("id") for r in rows if r.get("id") is not None}
    used: Set[str] = {
        (p.handle_name or "").lower()
        for p in session.exec(select(Player)).all()
        if p.id not in incoming_ids
    }
    out: List[Dict[str, Any]] = []
    for row in rows:
        clean = dict(row)
        clean.pop("password_hash", None)
        base = str(clean.get("handle_name") or "").strip() or f"player-{clean.get('id')}"
        handle = base
        n = 2
        while handle.lower() in used:
            handle = f"{base}__r{n}"
            n += 1
        used.add(handle.lower())
        clean["handle_name"] = handle
        out.append(clean)
    return out


def _upsert_rows(session: Session, name: str, rows: List[Dict[str, Any]]) -> int:
    model = TABLE_MODELS[name]
    for row in rows:
        obj = model.model_validate(row)
        if name == "players" and obj.id is not None:
            existing = session.get(Player, obj.id)
            if existing is not None:
                obj.password_hash = existing.password_hash
        session.merge(obj)
    session.flush()
    return len(rows)


def restore_tables(session: Session, payload: Any) -> Dict[str, int]:
    """
    Upsert every table in `payload` by id. The caller commits.

    Memberships of restored league blocks and slots/matches of restored final
    brackets are replaced rather than merged.
    """
    tables = extract_tables(payload)
    if tables is None:
        raise RestoreError("Backup payload could not be read")
    rows_by_table = _validate(tables)
    if sum(len(rows) for rows in rows_by_table.values()) == 0:
        raise RestoreError("Backup contains no rows")

    block_ids = [r["id"] for r in rows_by_table.get("league_blocks", [])]
    if block_ids:
        session.execute(delete(LeagueBlockMember).where(LeagueBlockMember.league_block_id.in_(block_ids)))
    bracket_ids = [r["id"] for r in rows_by_table.get("final_brackets", []) if r.get("id") is not None]
    if bracket_ids:
        session.execute(delete(FinalMatch).where(FinalMatch.bracket_id.in_(bracket_ids)))
        session.execute(delete(FinalRoundEntry).where(FinalRoundEntry.bracket_id.in_(bracket_ids)))

    if "players" in rows_by_table:
        rows_by_table["players"] = sanitize_players(session, rows_by_table["players"])

    inserted: Dict[str, int] = {}
    for name, _model in TABLE_ORDER:
        if name in rows_by_table:
            inserted[name] = _upsert_rows(session, name, rows_by_table[name])
    logger.info("Restored backup: %s", inserted)
    return inserted


def wipe_all(session: Session) -> Dict[str, int]:
    """Delete every row, child tables first. Sessions go too."""
    deleted: Dict[str, int] = {}
    session.execute(delete(AuthSession))
    for name, model in reversed(TABLE_ORDER):
        result = session.execute(delete(model))
        deleted[name] = result.rowcount or 0
    return deleted


def reset_tables(session: Session, payload: Any) -> Dict[str, int]:
    """Replace the whole database with `payload`. The caller commits."""
    tables = extract_tables(payload) or {}
    rows_by_table = _validate(tables)
    wipe_all(session)
    session.expunge_all()
    if "players" in rows_by_table:
        rows_by_table["players"] = sanitize_players(session, rows_by_table["players"])
    inserted: Dict[str, int] = {}
    for name, _model in TABLE_ORDER:
        inserted[name] = _upsert_rows(session, name, rows_by_table.get(name, []))
    logger.info("Database reset: %s", inserted)
    return inserted
