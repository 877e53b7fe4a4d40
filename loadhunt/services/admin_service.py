"""
Admin: reset matching state. Plans, offers and vehicle mappings are kept; matches, their
action history and missed-load history are removed (see loadhunt.db.tables).
"""
import logging

from sqlalchemy import text
from sqlalchemy.orm import Session

from loadhunt.db.tables import MATCH_TABLE_NAMES
from loadhunt.models.hunt_plan import HuntPlan
from loadhunt.models.match import HuntMatch
from loadhunt.models.match_action import MatchAction
from loadhunt.models.missed_load import MissedLoad
from loadhunt.services.matching.cursor import on_plan_enabled

logger = logging.getLogger(__name__)


def _delete_rows(db: Session, tenant_id: str | None) -> dict[str, int]:
    deleted: dict[str, int] = {}
    for table_name, model in (
        ("missed_loads_history", MissedLoad),
        ("match_action_history", MatchAction),
        ("load_hunt_matches", HuntMatch),
    ):
        q = db.query(model)
        if tenant_id is not None:
            q = q.filter(model.tenant_id == tenant_id)
        deleted[table_name] = q.delete(synchronize_session=False)
    return deleted


def _rearm_plans(db: Session, tenant_id: str | None) -> int:
    """Enabled plans pin a fresh floor and wait for backfill again."""
    q = db.query(HuntPlan).filter(HuntPlan.enabled.is_(True), HuntPlan.deleted_at.is_(None))
    if tenant_id is not None:
        q = q.filter(HuntPlan.tenant_id == tenant_id)
    plans = q.all()
    for plan in plans:
        on_plan_enabled(db, plan)
    return len(plans)


def reset_matching_state(db: Session, tenant_id: str | None = None) -> dict[str, int]:
    """
    Delete matches, action history and missed history (one tenant, or everything).
    Returns table -> deleted count (-1 when TRUNCATE was used and the count is unknown).
    Enabled plans are re-armed so the engine backfills recent offers on its next pass.
    """
    logger.info("reset_matching_state: starting tenant=%s", tenant_id or "*")
    deleted: dict[str, int] = {}
    if tenant_id is None:
        try:
            # TRUNCATE is near-instant on large history tables. Sequences keep counting:
            # archived rows reference original match ids.
            tables = ", ".join(MATCH_TABLE_NAMES)
            db.execute(text(f"TRUNCATE TABLE {tables} CASCADE"))
            deleted = {t: -1 for t in MATCH_TABLE_NAMES}
        except Exception as e:
            db.rollback()
            logger.warning("reset_matching_state: TRUNCATE failed (%s), using DELETE", e)
            deleted = _delete_rows(db, None)
    else:
        deleted = _delete_rows(db, tenant_id)
    deleted["hunt_plans_rearmed"] = _rearm_plans(db, tenant_id)
    db.commit()
    logger.info("reset_matching_state: done %s", deleted)
    return deleted
