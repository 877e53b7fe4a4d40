"""Runs every EXPIRATION_SWEEP_SECONDS: expire active matches past their deadline."""
import logging

from loadhunt.db.session import SessionLocal
from loadhunt.services.sweepers import run_expiration_sweep, tenants_with_active_matches

logger = logging.getLogger(__name__)


def run_expiration_sweep_job() -> None:
    db = SessionLocal()
    try:
        for tenant_id in tenants_with_active_matches(db):
            try:
                run_expiration_sweep(db, tenant_id)
            except Exception as e:
                db.rollback()
                logger.exception("Expiration sweep tenant=%s failed: %s", tenant_id, e)
    except Exception as e:
        db.rollback()
        logger.exception("Expiration sweep job failed: %s", e)
    finally:
        db.close()
