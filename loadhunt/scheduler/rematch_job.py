"""
Runs every REMATCH_SECONDS: the backup pass. Retries pending backfills, then re-evaluates
recent new offers for every tenant with enabled plans (picks up geocodes that failed or
timed out earlier). Matches already created are left alone by the upsert.
"""
import logging

from loadhunt.db.session import SessionLocal
from loadhunt.services.hunt_plan_service import active_tenant_ids
from loadhunt.services.matching import get_match_engine, run_pending_backfills

logger = logging.getLogger(__name__)


def run_rematch_job() -> None:
    engine = get_match_engine()
    db = SessionLocal()
    try:
        for tenant_id in active_tenant_ids(db):
            try:
                run_pending_backfills(db, tenant_id, engine)
                engine.run_backup_pass(db, tenant_id)
            except Exception as e:
                db.rollback()
                logger.exception("Backup rematch tenant=%s failed: %s", tenant_id, e)
    except Exception as e:
        db.rollback()
        logger.exception("Backup rematch job failed: %s", e)
    finally:
        db.close()
