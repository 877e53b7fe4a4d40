#!/usr/bin/env python3
"""
One-shot run of everything the scheduler does on a tick: pending backfills, the backup rematch
pass, the missed sweep and the expiration sweep, for every tenant.
Run after migrations: python scripts/run_sweeps.py [--tenant TENANT_ID]
"""
import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loadhunt.db.session import SessionLocal
from loadhunt.services.hunt_plan_service import active_tenant_ids
from loadhunt.services.matching import get_match_engine, run_pending_backfills
from loadhunt.services.sweepers import run_expiration_sweep, run_missed_sweep, tenants_with_active_matches


def main():
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--tenant", help="Only this tenant (default: all)")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    engine = get_match_engine()
    db = SessionLocal()
    try:
        plan_tenants = [args.tenant] if args.tenant else active_tenant_ids(db)
        for tenant_id in plan_tenants:
            backfilled = run_pending_backfills(db, tenant_id, engine)
            result = engine.run_backup_pass(db, tenant_id)
            print(f"{tenant_id}: backfilled {backfilled} plans, rematch created {result.created} matches")

        sweep_tenants = [args.tenant] if args.tenant else tenants_with_active_matches(db)
        for tenant_id in sweep_tenants:
            missed = run_missed_sweep(db, tenant_id)
            expired = run_expiration_sweep(db, tenant_id)
            print(f"{tenant_id}: missed +{missed}, expired {expired}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
