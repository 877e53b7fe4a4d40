"""
Periodic sweepers over active matches.

- Missed: an active match on a still-new offer, older than MISSED_AFTER_MINUTES, gets one
  missed_loads_history row (ON CONFLICT (match_id) DO NOTHING). The match stays active.
- Expiration: active matches past their deadline move to expired through the lifecycle's
  guarded update, in batches of EXPIRY_BATCH_SIZE.

"now" comes from the database server clock unless the caller passes one. Both sweeps
select only rows still needing work, so re-running after a partial failure is safe.
"""
import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from loadhunt.core.constants import MATCH_ACTIVE, OFFER_NEW
from loadhunt.core.engine_config import EngineConfig, get_engine_config
from loadhunt.db.upsert import insert_ignore
from loadhunt.models.load_offer import LoadOffer
from loadhunt.models.match import HuntMatch
from loadhunt.models.missed_load import MissedLoad
from loadhunt.services.clock import as_utc, database_now
from loadhunt.services.lifecycle import expire_matches
from loadhunt.services.matching.dates import parse_calendar_date

logger = logging.getLogger(__name__)


def tenants_with_active_matches(db: Session) -> list[str]:
    rows = db.query(HuntMatch.tenant_id).filter(HuntMatch.status == MATCH_ACTIVE).distinct().all()
    return sorted(r[0] for r in rows)


# ---------------------------------------------------------------------------
# Missed
# ---------------------------------------------------------------------------


def run_missed_sweep(
    db: Session,
    tenant_id: str,
    *,
    now: datetime | None = None,
    config: EngineConfig | None = None,
) -> int:
    """Record missed loads for one tenant. Returns rows inserted."""
    config = config or get_engine_config()
    now = now or database_now(db)
    cutoff = now - timedelta(minutes=config.missed_after_minutes)
    candidates = (
        db.query(HuntMatch, LoadOffer)
        .join(LoadOffer, LoadOffer.sequence_id == HuntMatch.load_offer_id)
        .outerjoin(MissedLoad, MissedLoad.match_id == HuntMatch.id)
        .filter(
            HuntMatch.tenant_id == tenant_id,
            HuntMatch.status == MATCH_ACTIVE,
            HuntMatch.is_active.is_(True),
            HuntMatch.matched_at < cutoff,
            LoadOffer.status == OFFER_NEW,
            MissedLoad.id.is_(None),
        )
        .order_by(HuntMatch.id.asc())
        .all()
    )
    if not candidates:
        return 0
    rows = [
        {
            "tenant_id": tenant_id,
            "match_id": match.id,
            "load_offer_id": match.load_offer_id,
            "hunt_plan_id": match.hunt_plan_id,
            "vehicle_id": match.vehicle_id,
            "missed_at": now,
            "received_at": offer.received_at,
            "from_email": offer.from_email,
            "subject": offer.subject,
        }
        for match, offer in candidates
    ]
    inserted = insert_ignore(db, MissedLoad, rows, ["match_id"])
    db.commit()
    logger.info("Missed sweep tenant=%s: %s candidates, %s recorded", tenant_id, len(rows), inserted)
    return inserted


# ---------------------------------------------------------------------------
# Expiration
# ---------------------------------------------------------------------------


def pickup_deadline(pickup: date, tz_name: str) -> datetime:
    """End of the pickup calendar day in tz_name, as a UTC datetime."""
    tz = ZoneInfo(tz_name)
    end_local = datetime.combine(pickup + timedelta(days=1), time.min, tzinfo=tz)
    return as_utc(end_local)


def match_deadline(match: HuntMatch, offer: LoadOffer, config: EngineConfig) -> datetime:
    """
    offer.expires_at if set, else end of the pickup date in the engine timezone,
    else matched_at + EXPIRY_FALLBACK_HOURS.
    """
    if offer.expires_at is not None:
        return as_utc(offer.expires_at)
    pickup = parse_calendar_date(offer.pickup_date)
    if pickup is not None:
        return pickup_deadline(pickup, config.timezone)
    return as_utc(match.matched_at) + timedelta(hours=config.expiry_fallback_hours)


def run_expiration_sweep(
    db: Session,
    tenant_id: str,
    *,
    now: datetime | None = None,
    config: EngineConfig | None = None,
) -> int:
    """Expire active matches past their deadline for one tenant. Returns matches expired."""
    config = config or get_engine_config()
    now = as_utc(now) if now is not None else database_now(db)
    batch_size = config.expiry_batch_size
    last_id = 0
    total = 0
    while True:
        page = (
            db.query(HuntMatch, LoadOffer)
            .join(LoadOffer, LoadOffer.sequence_id == HuntMatch.load_offer_id)
            .filter(
                HuntMatch.tenant_id == tenant_id,
                HuntMatch.status == MATCH_ACTIVE,
                HuntMatch.id > last_id,
            )
            .order_by(HuntMatch.id.asc())
            .limit(batch_size)
            .all()
        )
        if not page:
            break
        last_id = page[-1][0].id
        due = [match.id for match, offer in page if match_deadline(match, offer, config) <= now]
        if due:
            total += expire_matches(db, tenant_id, due, now=now, reason="deadline_passed")
        if len(page) < batch_size:
            break
    if total:
        logger.info("Expiration sweep tenant=%s: expired %s matches", tenant_id, total)
    return total
