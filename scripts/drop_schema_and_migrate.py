#!/usr/bin/env python3
"""
Drop the public schema and run all migrations from scratch.
Use when the DB is in a mixed state (some tables missing, some left over) and you want a clean slate.

Run from the project root:
  python scripts/drop_schema_and_migrate.py
"""
import subprocess
import sys
from pathlib import Path

project_dir = Path(__file__).resolve().parent.parent
if str(project_dir) not in sys.path:
    sys.path.insert(0, str(project_dir))

from sqlalchemy import inspect, text

from loadhunt.db.session import engine
from loadhunt.db.tables import ALL_TABLE_NAMES


def main():
    print("Dropping public schema (all load-hunt tables)...")
    with engine.connect() as conn:
        conn.execute(text("DROP SCHEMA IF EXISTS public CASCADE"))
        conn.execute(text("CREATE SCHEMA public"))
        conn.execute(text("GRANT ALL ON SCHEMA public TO public"))
        conn.commit()
    print("Schema recreated. Running migrations...")
    result = subprocess.run([sys.executable, "-m", "alembic", "upgrade", "head"], cwd=project_dir)
    if result.returncode != 0:
        sys.exit(result.returncode)
    missing = set(ALL_TABLE_NAMES) - set(inspect(engine).get_table_names())
    if missing:
        print(f"Migrations finished but tables are missing: {sorted(missing)}", file=sys.stderr)
        sys.exit(1)
    print(f"Done. {len(ALL_TABLE_NAMES)} tables created.")


if __name__ == "__main__":
    main()
