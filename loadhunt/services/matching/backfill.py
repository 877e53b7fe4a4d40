"""
One-shot backfill when a plan goes disabled -> enabled.

Scans new offers received within BACKFILL_LOOKBACK_MINUTES for this plan only (ignoring the
floor), upserts matches, then sets initial_backfill_done so forward matching takes over.
The flag is set whether or not anything matched; if the scan raises, the flag stays false
and the backup rematch job retries.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from loadhunt.core.constants import OFFER_NEW
from loadhunt.models.hunt_plan import HuntPlan
from loadhunt.models.load_offer import LoadOffer
from loadhunt.services.clock import utc_now
from loadhunt.services.matching.cursor import plans_pending_backfill
from loadhunt.services.matching.engine import MatchEngine, PassResult

logger = logging.getLogger(__name__)


def run_backfill(db: Session, plan: HuntPlan, engine: MatchEngine, *, now: datetime | None = None) -> PassResult:
    now = now or utc_now()
    cutoff = now - timedelta(minutes=engine.config.backfill_lookback_minutes)
    offers = (
        db.query(LoadOffer)
        .filter(
            LoadOffer.tenant_id == plan.tenant_id,
            LoadOffer.status == OFFER_NEW,
            LoadOffer.received_at >= cutoff,
        )
        .order_by(LoadOffer.sequence_id.asc())
        .all()
    )
    result = engine.match_offers(db, plan.tenant_id, offers, [plan], respect_cursor=False, now=now)
    plan.initial_backfill_done = True
    db.commit()
    logger.info(
        "Backfill plan=%s tenant=%s: scanned %s offers since %s, created %s matches; forward-only from floor %s",
        plan.id,
        plan.tenant_id,
        len(offers),
        cutoff.isoformat(),
        result.created,
        plan.floor_id,
    )
    return result


def run_pending_backfills(db: Session, tenant_id: str, engine: MatchEngine, *, now: datetime | None = None) -> int:
    """Backfill every enabled plan still waiting for it. Returns plans completed."""
    done = 0
    for plan in plans_pending_backfill(db, tenant_id):
        plan_id = plan.id
        try:
            run_backfill(db, plan, engine, now=now)
            done += 1
        except Exception as e:
            db.rollback()
            logger.exception("Backfill plan=%s failed (retried next tick): %s", plan_id, e)
    return done
