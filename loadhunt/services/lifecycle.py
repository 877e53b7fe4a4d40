"""
Match lifecycle: the only code that changes a match's status.

    active -> skipped | bid | waitlist | undecided | expired
    bid    -> booked

Every transition is a status-guarded UPDATE (WHERE status IN <allowed sources>), so an
overlapping sweep and operator click cannot both win, and nothing ever returns to active.
Each successful transition appends a match_action_history row.

Placing a bid commits the offer to one vehicle: every other active match on the same offer
is skipped in the same transaction.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from loadhunt.core.constants import (
    MATCH_ACTIVE,
    MATCH_BID,
    MATCH_BOOKED,
    MATCH_EXPIRED,
    MATCH_SKIPPED,
    MATCH_UNDECIDED,
    MATCH_WAITLIST,
    OFFER_NEW,
    OFFER_REVIEWED,
    OFFER_SKIPPED,
    OFFER_WAITLISTED,
    SYSTEM_ACTOR_NAME,
)
from loadhunt.core.errors import InvalidTransitionError, MatchNotFoundError, OfferNotFoundError
from loadhunt.models.load_offer import LoadOffer
from loadhunt.models.match import HuntMatch
from loadhunt.models.match_action import MatchAction
from loadhunt.services.clock import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    id: str | None = None
    name: str | None = None


SYSTEM_ACTOR = Actor(id=None, name=SYSTEM_ACTOR_NAME)

# target status -> statuses it may be entered from
ALLOWED_SOURCES: dict[str, tuple[str, ...]] = {
    MATCH_SKIPPED: (MATCH_ACTIVE,),
    MATCH_BID: (MATCH_ACTIVE,),
    MATCH_WAITLIST: (MATCH_ACTIVE,),
    MATCH_UNDECIDED: (MATCH_ACTIVE,),
    MATCH_EXPIRED: (MATCH_ACTIVE,),
    MATCH_BOOKED: (MATCH_BID,),
}

# offer target status -> offer statuses it may be entered from
OFFER_ALLOWED_SOURCES: dict[str, tuple[str, ...]] = {
    OFFER_SKIPPED: (OFFER_NEW, OFFER_WAITLISTED),
    OFFER_WAITLISTED: (OFFER_NEW,),
    OFFER_REVIEWED: (OFFER_NEW, OFFER_WAITLISTED),
}


def get_match(db: Session, tenant_id: str, match_id: int) -> HuntMatch:
    row = db.query(HuntMatch).filter(HuntMatch.id == match_id, HuntMatch.tenant_id == tenant_id).first()
    if row is None:
        raise MatchNotFoundError(match_id)
    return row


def record_action(
    db: Session,
    tenant_id: str,
    match_id: int,
    action: str,
    actor: Actor,
    *,
    detail: str | None = None,
    now: datetime | None = None,
) -> None:
    db.add(
        MatchAction(
            tenant_id=tenant_id,
            match_id=match_id,
            action=action,
            actor_id=actor.id,
            actor_name=actor.name,
            detail=detail,
            created_at=now or utc_now(),
        )
    )


def _transition(
    db: Session,
    tenant_id: str,
    match_id: int,
    target: str,
    actor: Actor,
    *,
    detail: str | None = None,
    values: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> None:
    """Guarded update + history row. Raises without side effects when the guard fails. Caller commits."""
    now = now or utc_now()
    update: dict[Any, Any] = {
        HuntMatch.status: target,
        HuntMatch.is_active: False,
        HuntMatch.updated_at: now,
    }
    for key, value in (values or {}).items():
        update[getattr(HuntMatch, key)] = value
    updated = (
        db.query(HuntMatch)
        .filter(
            HuntMatch.id == match_id,
            HuntMatch.tenant_id == tenant_id,
            HuntMatch.status.in_(ALLOWED_SOURCES[target]),
        )
        .update(update, synchronize_session=False)
    )
    if updated == 0:
        current = (
            db.query(HuntMatch.status)
            .filter(HuntMatch.id == match_id, HuntMatch.tenant_id == tenant_id)
            .scalar()
        )
        if current is None:
            raise MatchNotFoundError(match_id)
        raise InvalidTransitionError(match_id, current, target)
    record_action(db, tenant_id, match_id, target, actor, detail=detail, now=now)


def _commit_and_get(db: Session, tenant_id: str, match_id: int) -> HuntMatch:
    db.commit()
    return get_match(db, tenant_id, match_id)


# ---------------------------------------------------------------------------
# Operator transitions
# ---------------------------------------------------------------------------


def skip_match(db: Session, tenant_id: str, match_id: int, actor: Actor) -> HuntMatch:
    _transition(db, tenant_id, match_id, MATCH_SKIPPED, actor)
    logger.info("Match %s skipped by %s", match_id, actor.name or actor.id)
    return _commit_and_get(db, tenant_id, match_id)


def waitlist_match(db: Session, tenant_id: str, match_id: int, actor: Actor) -> HuntMatch:
    _transition(db, tenant_id, match_id, MATCH_WAITLIST, actor)
    logger.info("Match %s waitlisted by %s", match_id, actor.name or actor.id)
    return _commit_and_get(db, tenant_id, match_id)


def mark_undecided(db: Session, tenant_id: str, match_id: int, actor: Actor) -> HuntMatch:
    """Operator opened the match and closed it without acting."""
    _transition(db, tenant_id, match_id, MATCH_UNDECIDED, actor, detail="viewed_without_action")
    return _commit_and_get(db, tenant_id, match_id)


def place_bid(
    db: Session,
    tenant_id: str,
    match_id: int,
    actor: Actor,
    *,
    rate: float | None = None,
    now: datetime | None = None,
) -> tuple[HuntMatch, list[int]]:
    """
    active -> bid, then skip every other active match on the same offer.
    Returns (match, skipped sibling ids).
    """
    now = now or utc_now()
    _transition(
        db,
        tenant_id,
        match_id,
        MATCH_BID,
        actor,
        detail=f"rate={rate}" if rate is not None else None,
        values={"bid_rate": rate, "bid_by": actor.id or actor.name, "bid_at": now},
        now=now,
    )
    offer_id = db.query(HuntMatch.load_offer_id).filter(HuntMatch.id == match_id).scalar()
    sibling_ids = [
        r[0]
        for r in db.query(HuntMatch.id)
        .filter(
            HuntMatch.tenant_id == tenant_id,
            HuntMatch.load_offer_id == offer_id,
            HuntMatch.id != match_id,
            HuntMatch.status == MATCH_ACTIVE,
        )
        .all()
    ]
    skipped: list[int] = []
    for sid in sibling_ids:
        try:
            _transition(db, tenant_id, sid, MATCH_SKIPPED, actor, detail=f"sibling_bid:{match_id}", now=now)
            skipped.append(sid)
        except InvalidTransitionError:
            # Sibling left active between the select and the update; nothing to cascade
            continue
    match = _commit_and_get(db, tenant_id, match_id)
    logger.info("Match %s bid by %s (rate=%s); skipped %s sibling matches on offer %s", match_id, actor.name or actor.id, rate, len(skipped), offer_id)
    return match, skipped


def book_match(
    db: Session,
    tenant_id: str,
    match_id: int,
    actor: Actor,
    *,
    booked_load_id: str | None = None,
    now: datetime | None = None,
) -> HuntMatch:
    """bid -> booked. The Load record itself is created downstream; we only stamp its id."""
    now = now or utc_now()
    _transition(
        db,
        tenant_id,
        match_id,
        MATCH_BOOKED,
        actor,
        detail=f"load={booked_load_id}" if booked_load_id else None,
        values={"booked_load_id": booked_load_id, "booked_at": now},
        now=now,
    )
    logger.info("Match %s booked by %s (load=%s)", match_id, actor.name or actor.id, booked_load_id)
    return _commit_and_get(db, tenant_id, match_id)


# ---------------------------------------------------------------------------
# System transitions (sweepers)
# ---------------------------------------------------------------------------


def expire_matches(db: Session, tenant_id: str, match_ids: list[int], *, now: datetime | None = None, reason: str | None = None) -> int:
    """active -> expired for each id still active. Returns number expired. Commits."""
    expired = 0
    for mid in match_ids:
        try:
            _transition(db, tenant_id, mid, MATCH_EXPIRED, SYSTEM_ACTOR, detail=reason, now=now)
            expired += 1
        except (InvalidTransitionError, MatchNotFoundError):
            # Acted on (or cleared) since selection; the guard keeps this idempotent
            continue
    db.commit()
    return expired


# ---------------------------------------------------------------------------
# Offer-level operator actions
# ---------------------------------------------------------------------------


def set_offer_status(db: Session, tenant_id: str, sequence_id: int, target: str, actor: Actor) -> LoadOffer:
    """
    Move an offer to skipped / waitlisted / reviewed with a status-guarded UPDATE. Match
    statuses are untouched; each match on the offer gets an "offer_<status>" history row.
    Already at target is a no-op.
    """
    updated = (
        db.query(LoadOffer)
        .filter(
            LoadOffer.sequence_id == sequence_id,
            LoadOffer.tenant_id == tenant_id,
            LoadOffer.status.in_(OFFER_ALLOWED_SOURCES[target]),
        )
        .update({LoadOffer.status: target}, synchronize_session=False)
    )
    if updated == 0:
        current = (
            db.query(LoadOffer.status)
            .filter(LoadOffer.sequence_id == sequence_id, LoadOffer.tenant_id == tenant_id)
            .scalar()
        )
        if current is None:
            raise OfferNotFoundError(sequence_id)
        if current != target:
            raise InvalidTransitionError(sequence_id, current, target, kind="Load offer")
        return _get_offer(db, tenant_id, sequence_id)
    now = utc_now()
    match_ids = [
        r[0]
        for r in db.query(HuntMatch.id)
        .filter(HuntMatch.tenant_id == tenant_id, HuntMatch.load_offer_id == sequence_id)
        .all()
    ]
    for mid in match_ids:
        record_action(db, tenant_id, mid, f"offer_{target}", actor, now=now)
    db.commit()
    logger.info("Offer %s -> %s by %s (%s matches)", sequence_id, target, actor.name or actor.id, len(match_ids))
    return _get_offer(db, tenant_id, sequence_id)


def _get_offer(db: Session, tenant_id: str, sequence_id: int) -> LoadOffer:
    return (
        db.query(LoadOffer)
        .filter(LoadOffer.sequence_id == sequence_id, LoadOffer.tenant_id == tenant_id)
        .populate_existing()
        .one()
    )


def skip_offer(db: Session, tenant_id: str, sequence_id: int, actor: Actor) -> LoadOffer:
    return set_offer_status(db, tenant_id, sequence_id, OFFER_SKIPPED, actor)


def waitlist_offer(db: Session, tenant_id: str, sequence_id: int, actor: Actor) -> LoadOffer:
    return set_offer_status(db, tenant_id, sequence_id, OFFER_WAITLISTED, actor)


def mark_offer_reviewed(db: Session, tenant_id: str, sequence_id: int, actor: Actor) -> LoadOffer:
    return set_offer_status(db, tenant_id, sequence_id, OFFER_REVIEWED, actor)
