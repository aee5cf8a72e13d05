from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Columns added after the first release. Older databases get them at startup.
# (name, sqlite_type, postgres_type)
REQUIRED_PLAYER_COLUMNS: List[Tuple[str, str, str]] = [
    ("phone", "TEXT", "TEXT"),
    ("address", "TEXT", "TEXT"),
    ("avatar_url", "TEXT", "TEXT"),
    ("password_hash", "TEXT", "TEXT"),
    ("is_dummy", "INTEGER DEFAULT 0", "BOOLEAN DEFAULT FALSE"),
]

REQUIRED_MATCH_COLUMNS: List[Tuple[str, str, str]] = [
    ("league_block_id", "INTEGER", "INTEGER"),
    ("round", "INTEGER", "INTEGER"),
    ("match_no", "INTEGER", "INTEGER"),
    ("end_reason", "TEXT DEFAULT 'normal'", "TEXT DEFAULT 'normal'"),
    ("affects_rating", "INTEGER DEFAULT 1", "BOOLEAN DEFAULT TRUE"),
    ("winner_handicap_delta", "INTEGER DEFAULT 0", "INTEGER DEFAULT 0"),
    ("loser_handicap_delta", "INTEGER DEFAULT 0", "INTEGER DEFAULT 0"),
]

REQUIRED_FINAL_MATCH_COLUMNS: List[Tuple[str, str, str]] = [
    ("sets_json", "TEXT", "JSON"),
    ("end_reason", "TEXT DEFAULT 'normal'", "TEXT DEFAULT 'normal'"),
    ("affects_rating", "INTEGER DEFAULT 0", "BOOLEAN DEFAULT FALSE"),
]


def _is_sqlite(engine: Engine) -> bool:
    return engine.dialect.name.lower() == "sqlite"


def _get_existing_columns_sqlite(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    with engine.connect() as conn:
        res = conn.execute(text(f"PRAGMA table_info({table_name});")).fetchall()
        # PRAGMA table_info returns rows: (cid, name, type, notnull, dflt_value, pk)
        for row in res:
            cols[str(row[1])] = str(row[2])
    return cols


def _get_existing_columns_postgres(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    sql = """
    SELECT column_name, data_type
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = :table_name;
    """
    with engine.connect() as conn:
        res = conn.execute(text(sql), {"table_name": table_name}).fetchall()
        for row in res:
            cols[str(row[0])] = str(row[1])
    return cols


def _table_exists(engine: Engine, table: str) -> bool:
    if _is_sqlite(engine):
        sql = "SELECT name FROM sqlite_master WHERE type='table' AND name=:table_name"
    else:
        sql = """
        SELECT table_name FROM information_schema.tables
        WHERE table_schema = 'public' AND table_name = :table_name
        """
    with engine.connect() as conn:
        return conn.execute(text(sql), {"table_name": table}).fetchone() is not None


def ensure_columns(engine: Engine, table: str, required: List[Tuple[str, str, str]]) -> List[str]:
    """
    Idempotently add the missing columns in `required` to `table`.

    Returns the names of the columns that were added. A missing table is
    skipped (create_all is responsible for it).
    """
    if not _table_exists(engine, table):
        return []

    sqlite = _is_sqlite(engine)
    existing = _get_existing_columns_sqlite(engine, table) if sqlite else _get_existing_columns_postgres(engine, table)

    added: List[str] = []
    with engine.begin() as conn:
        for name, sqlite_type, pg_type in required:
            if name in existing:
                continue
            if sqlite:
                # SQLite has no ADD COLUMN IF NOT EXISTS
                conn.execute(text(f'ALTER TABLE {table} ADD COLUMN "{name}" {sqlite_type};'))
            else:
                conn.execute(text(f'ALTER TABLE {table} ADD COLUMN IF NOT EXISTS "{name}" {pg_type};'))
            added.append(name)
    if added:
        logger.info("Added columns to %s: %s", table, ", ".join(added))
    return added


def _safe_ensure(engine: Engine, table: str, required: List[Tuple[str, str, str]]) -> None:
    try:
        ensure_columns(engine, table, required)
    except Exception as e:
        # Startup must not crash on a patch failure
        logger.warning(f"Failed to ensure {table} columns: {e}")


def ensure_player_columns(engine: Engine) -> None:
    from shuffleclub.models.player import Player

    _safe_ensure(engine, Player.__table__.name, REQUIRED_PLAYER_COLUMNS)


def ensure_match_columns(engine: Engine) -> None:
    from shuffleclub.models.match import Match

    _safe_ensure(engine, Match.__table__.name, REQUIRED_MATCH_COLUMNS)


def ensure_final_match_columns(engine: Engine) -> None:
    from shuffleclub.models.finals import FinalMatch

    _safe_ensure(engine, FinalMatch.__table__.name, REQUIRED_FINAL_MATCH_COLUMNS)
