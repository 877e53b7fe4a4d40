"""Runs every MISSED_SWEEP_SECONDS: record missed loads for every tenant with active matches."""
import logging

from loadhunt.db.session import SessionLocal
from loadhunt.services.sweepers import run_missed_sweep, tenants_with_active_matches

logger = logging.getLogger(__name__)


def run_missed_sweep_job() -> None:
    db = SessionLocal()
    try:
        for tenant_id in tenants_with_active_matches(db):
            try:
                run_missed_sweep(db, tenant_id)
            except Exception as e:
                db.rollback()
                logger.exception("Missed sweep tenant=%s failed: %s", tenant_id, e)
    except Exception as e:
        db.rollback()
        logger.exception("Missed sweep job failed: %s", e)
    finally:
        db.close()
