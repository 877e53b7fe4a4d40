#!/usr/bin/env python3
"""
Preflight before starting the server. Run from the project root:
  python scripts/check_backend.py
Checks .env, the database and its tables, the Mapbox token and that the app imports.
"""
import os
import sys
from pathlib import Path

project_dir = Path(__file__).resolve().parent.parent
os.chdir(project_dir)
if str(project_dir) not in sys.path:
    sys.path.insert(0, str(project_dir))


def main():
    errors = []
    warnings = []

    if not (project_dir / ".env").exists():
        warnings.append(".env missing; defaults apply (local Postgres, no geocoding).")
    else:
        print("OK  .env exists")

    try:
        from sqlalchemy import inspect, text

        from loadhunt.db.session import engine
        from loadhunt.db.tables import ALL_TABLE_NAMES

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("OK  Database connection (DATABASE_URL)")
        missing = sorted(set(ALL_TABLE_NAMES) - set(inspect(engine).get_table_names()))
        if missing:
            errors.append(f"Tables missing: {missing}. Run: alembic upgrade head")
            print("FAIL Tables missing:", ", ".join(missing))
        else:
            print(f"OK  All {len(ALL_TABLE_NAMES)} tables present")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    from loadhunt.config import settings

    if settings.mapbox_token:
        print("OK  MAPBOX_TOKEN set (radius matching enabled)")
    else:
        warnings.append("MAPBOX_TOKEN not set: matching falls back to exact postal codes.")

    try:
        from loadhunt.main import app  # noqa: F401

        print("OK  App import (loadhunt.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)

    for w in warnings:
        print("WARN", w)
    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        return 1

    print("\nAll checks passed. Start with: uvicorn loadhunt.main:app --host 0.0.0.0 --port 8000")
    return 0


if __name__ == "__main__":
    sys.exit(main())
