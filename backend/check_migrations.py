#!/usr/bin/env python3
"""Quick script to check that the club tables exist in the database"""

import sys
from typing import List, Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

REQUIRED_TABLES = [
    "players",
    "auth_sessions",
    "teams",
    "team_members",
    "tournaments",
    "tournament_entries",
    "matches",
    "league_blocks",
    "league_block_members",
    "final_brackets",
    "final_round_entries",
    "final_matches",
    "final_round_labels",
    "notices",
    "ranking_config",
]


def check_tables(engine: Optional[Engine] = None) -> List[str]:
    """Print the status of each required table and return the missing ones"""
    if engine is None:
        from shuffleclub.database import engine

    existing_tables = set(inspect(engine).get_table_names())

    print("Checking for required tables...")
    print(f"Database: {engine.url}")
    print()

    missing_tables = []
    for table in REQUIRED_TABLES:
        if table in existing_tables:
            print(f"✓ {table} exists")
        else:
            print(f"✗ {table} MISSING")
            missing_tables.append(table)

    print()
    if missing_tables:
        print("ERROR: Missing tables detected!")
        print("Run migrations with: alembic upgrade head")
    else:
        print("All required tables exist!")
    return missing_tables


if __name__ == "__main__":
    try:
        sys.exit(1 if check_tables() else 0)
    except Exception as e:
        print(f"Error checking tables: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)
