"""
Per-plan forward-only cursor.

floor_id is the sequence_id of the newest offer when the plan was enabled. Until the
backfill runner sets initial_backfill_done, the plan takes no part in forward matching;
after that only offers with sequence_id > floor_id (or any offer when floor_id is NULL)
are considered.
"""
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from loadhunt.models.hunt_plan import HuntPlan
from loadhunt.models.load_offer import LoadOffer

logger = logging.getLogger(__name__)


def latest_sequence_id(db: Session, tenant_id: str) -> int | None:
    """Newest offer sequence_id for the tenant, or None when there are no offers."""
    return db.query(func.max(LoadOffer.sequence_id)).filter(LoadOffer.tenant_id == tenant_id).scalar()


def on_plan_enabled(db: Session, plan: HuntPlan) -> None:
    """Pin the floor at the newest offer and wait for backfill. Caller commits."""
    plan.floor_id = latest_sequence_id(db, plan.tenant_id)
    plan.initial_backfill_done = False
    logger.info("Cursor: plan %s enabled, floor_id=%s (backfill pending)", plan.id, plan.floor_id)


def on_plan_disabled(plan: HuntPlan) -> None:
    """Remove the plan from forward matching. Existing matches are left as they are. Caller commits."""
    plan.floor_id = None
    plan.initial_backfill_done = False
    logger.info("Cursor: plan %s disabled, floor cleared", plan.id)


def advance_floor_to_latest(db: Session, plan: HuntPlan) -> None:
    """After clearing matches only genuinely new offers may match again. Caller commits."""
    plan.floor_id = latest_sequence_id(db, plan.tenant_id)
    logger.info("Cursor: plan %s floor advanced to %s", plan.id, plan.floor_id)


def is_offer_eligible(plan: HuntPlan, sequence_id: int) -> bool:
    if not plan.initial_backfill_done:
        return False
    return plan.floor_id is None or sequence_id > plan.floor_id


def eligible_plans(db: Session, tenant_id: str) -> list[HuntPlan]:
    """Enabled, not deleted, backfilled plans for forward matching."""
    return (
        db.query(HuntPlan)
        .filter(
            HuntPlan.tenant_id == tenant_id,
            HuntPlan.enabled.is_(True),
            HuntPlan.deleted_at.is_(None),
            HuntPlan.initial_backfill_done.is_(True),
        )
        .order_by(HuntPlan.id.asc())
        .all()
    )


def plans_pending_backfill(db: Session, tenant_id: str) -> list[HuntPlan]:
    return (
        db.query(HuntPlan)
        .filter(
            HuntPlan.tenant_id == tenant_id,
            HuntPlan.enabled.is_(True),
            HuntPlan.deleted_at.is_(None),
            HuntPlan.initial_backfill_done.is_(False),
        )
        .order_by(HuntPlan.id.asc())
        .all()
    )


def lowest_floor(plans: list[HuntPlan]) -> int | None:
    """Smallest floor across plans; None when any plan has no floor (all offers eligible)."""
    floors = [p.floor_id for p in plans]
    if not floors or any(f is None for f in floors):
        return None
    return min(floors)
