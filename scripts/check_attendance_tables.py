#!/usr/bin/env python3
"""
Check that the attendance tables (including the outbox lease) and the open-session unique index exist.
Uses the same DATABASE_URL as the app (from geoattend.core.config.settings).
Run from project root: python scripts/check_attendance_tables.py
"""
import sys
import os

# Ensure geoattend is importable when run from the repo root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

REQUIRED_TABLES = ("locations", "attendance_sessions", "attendance_events", "outbox_leases")
OPEN_SESSION_INDEX = "uq_attendance_sessions_open_user"


def main() -> int:
    try:
        from geoattend.core.config import settings
        from sqlalchemy import create_engine, inspect
    except ImportError as e:
        print("Error: Could not import geoattend or sqlalchemy.", e, file=sys.stderr)
        return 1

    url = settings.DATABASE_URL
    print(f"DATABASE_URL: {url if url.startswith('sqlite') else url.split('@')[-1]}")
    engine = create_engine(url)
    inspector = inspect(engine)

    existing = set(inspector.get_table_names())
    missing = [t for t in REQUIRED_TABLES if t not in existing]
    for table in REQUIRED_TABLES:
        print(f"{table + ':':<22}{'exists' if table in existing else 'MISSING'}")

    has_index = False
    if "attendance_sessions" in existing:
        has_index = any(
            ix["name"] == OPEN_SESSION_INDEX and ix.get("unique")
            for ix in inspector.get_indexes("attendance_sessions")
        )
    print(f"{OPEN_SESSION_INDEX}: {'exists' if has_index else 'MISSING'}")

    if missing or not has_index:
        print("Run: alembic upgrade head", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
