#!/usr/bin/env python3
"""Clear matches, action history and missed history; plans and offers are kept.
Run from the project root: python scripts/reset_matches.py [--tenant TENANT_ID]
Restart the server afterwards so in-memory engine workers start fresh.
"""
import argparse
import sys
from pathlib import Path

# Ensure the project root is on path when run as script
project_dir = Path(__file__).resolve().parent.parent
if str(project_dir) not in sys.path:
    sys.path.insert(0, str(project_dir))

from loadhunt.db.session import SessionLocal
from loadhunt.services.admin_service import reset_matching_state


def main():
    parser = argparse.ArgumentParser(description="Reset load-hunt matching state")
    parser.add_argument("--tenant", help="Only this tenant (default: all tenants, TRUNCATE)")
    args = parser.parse_args()
    db = SessionLocal()
    try:
        deleted = reset_matching_state(db, args.tenant)
        print("Matching state cleared. Rows deleted:")
        for table, count in deleted.items():
            print(f"  {table}: {'all' if count < 0 else count}")
        print()
        print("Restart the server so engine workers start completely fresh.")
    except Exception as e:
        db.rollback()
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
