"""
Read side for the console: match listings joined with their offer, per-vehicle status counts,
action history, missed-load history and per-dispatcher action metrics.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from loadhunt.core.constants import (
    HISTORY_LIST_LIMIT,
    MATCH_ACTIVE,
    MATCH_BID,
    MATCH_LIST_LIMIT,
    MATCH_MISSED,
    MATCH_SKIPPED,
    MATCH_STATUSES,
    MATCH_UNDECIDED,
    MATCH_WAITLIST,
    OFFER_NEW,
    SYSTEM_ACTOR_NAME,
)
from loadhunt.models.load_offer import LoadOffer
from loadhunt.models.match import HuntMatch
from loadhunt.models.match_action import MatchAction
from loadhunt.models.missed_load import MissedLoad
from loadhunt.services.clock import utc_now
from loadhunt.services.offer_service import serialize_offer

logger = logging.getLogger(__name__)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_match(match: HuntMatch, offer: LoadOffer | None = None) -> dict[str, Any]:
    out = {
        "id": match.id,
        "load_offer_id": match.load_offer_id,
        "hunt_plan_id": match.hunt_plan_id,
        "vehicle_id": match.vehicle_id,
        "distance_miles": round(match.distance_miles, 1) if match.distance_miles is not None else None,
        "status": match.status,
        "is_active": match.is_active,
        "bid_rate": match.bid_rate,
        "bid_by": match.bid_by,
        "bid_at": _iso(match.bid_at),
        "booked_load_id": match.booked_load_id,
        "booked_at": _iso(match.booked_at),
        "matched_at": _iso(match.matched_at),
        "updated_at": _iso(match.updated_at),
    }
    if offer is not None:
        out["offer"] = serialize_offer(offer)
    return out


def _joined(db: Session, tenant_id: str):
    return (
        db.query(HuntMatch, LoadOffer)
        .join(LoadOffer, LoadOffer.sequence_id == HuntMatch.load_offer_id)
        .filter(HuntMatch.tenant_id == tenant_id)
    )


def list_matches(
    db: Session,
    tenant_id: str,
    *,
    status: str | None = None,
    vehicle_id: str | None = None,
    hunt_plan_id: int | None = None,
    limit: int = MATCH_LIST_LIMIT,
) -> list[dict[str, Any]]:
    """Joined (offer x matched vehicle) rows, newest first."""
    q = _joined(db, tenant_id)
    if status:
        q = q.filter(HuntMatch.status == status)
    if vehicle_id:
        q = q.filter(HuntMatch.vehicle_id == vehicle_id)
    if hunt_plan_id is not None:
        q = q.filter(HuntMatch.hunt_plan_id == hunt_plan_id)
    rows = q.order_by(HuntMatch.matched_at.desc(), HuntMatch.id.desc()).limit(max(1, min(limit, MATCH_LIST_LIMIT))).all()
    return [serialize_match(m, o) for m, o in rows]


def list_unreviewed(db: Session, tenant_id: str, *, vehicle_id: str | None = None) -> list[dict[str, Any]]:
    """Active matches whose offer nobody has acted on yet."""
    q = _joined(db, tenant_id).filter(HuntMatch.status == MATCH_ACTIVE, LoadOffer.status == OFFER_NEW)
    if vehicle_id:
        q = q.filter(HuntMatch.vehicle_id == vehicle_id)
    rows = q.order_by(LoadOffer.received_at.desc(), HuntMatch.id.asc()).limit(MATCH_LIST_LIMIT).all()
    return [serialize_match(m, o) for m, o in rows]


def _distance_key(match: HuntMatch) -> float:
    return match.distance_miles if match.distance_miles is not None else float("inf")


def grouped_by_offer(
    db: Session,
    tenant_id: str,
    *,
    my_vehicle_ids: list[str] | None = None,
) -> list[dict[str, Any]]:
    """
    Active matches grouped per offer. Within a group the caller's vehicles come first, then
    nearest first; the head of the list is the group's primary match.
    """
    mine = set(my_vehicle_ids or [])
    rows = (
        _joined(db, tenant_id)
        .filter(HuntMatch.status == MATCH_ACTIVE)
        .order_by(LoadOffer.received_at.desc(), HuntMatch.id.asc())
        .limit(MATCH_LIST_LIMIT)
        .all()
    )
    groups: dict[int, dict[str, Any]] = {}
    members: dict[int, list[HuntMatch]] = defaultdict(list)
    for match, offer in rows:
        if offer.sequence_id not in groups:
            groups[offer.sequence_id] = {"offer": serialize_offer(offer)}
        members[offer.sequence_id].append(match)
    out = []
    for seq, group in groups.items():
        ordered = sorted(members[seq], key=lambda m: (m.vehicle_id not in mine, _distance_key(m), m.id))
        group["primary"] = serialize_match(ordered[0])
        group["matches"] = [serialize_match(m) for m in ordered]
        group["match_count"] = len(ordered)
        out.append(group)
    return out


def counts_by_vehicle(db: Session, tenant_id: str) -> dict[str, dict[str, int]]:
    """{vehicle_id: {status: n, ..., "missed": n}}. Missed counts skip reset rows."""
    out: dict[str, dict[str, int]] = defaultdict(lambda: {s: 0 for s in MATCH_STATUSES})
    rows = (
        db.query(HuntMatch.vehicle_id, HuntMatch.status, func.count(HuntMatch.id))
        .filter(HuntMatch.tenant_id == tenant_id)
        .group_by(HuntMatch.vehicle_id, HuntMatch.status)
        .all()
    )
    for vehicle_id, status, n in rows:
        out[vehicle_id][status] = out[vehicle_id].get(status, 0) + n
    missed = (
        db.query(MissedLoad.vehicle_id, func.count(MissedLoad.id))
        .filter(MissedLoad.tenant_id == tenant_id, MissedLoad.reset_at.is_(None))
        .group_by(MissedLoad.vehicle_id)
        .all()
    )
    for vehicle_id, n in missed:
        out[vehicle_id][MATCH_MISSED] = n
    return dict(out)


def serialize_action(row: MatchAction) -> dict[str, Any]:
    return {
        "id": row.id,
        "match_id": row.match_id,
        "action": row.action,
        "actor_id": row.actor_id,
        "actor_name": row.actor_name,
        "detail": row.detail,
        "created_at": _iso(row.created_at),
    }


def action_history(
    db: Session,
    tenant_id: str,
    *,
    match_id: int | None = None,
    actor_id: str | None = None,
    since: datetime | None = None,
    limit: int = HISTORY_LIST_LIMIT,
) -> list[dict[str, Any]]:
    q = db.query(MatchAction).filter(MatchAction.tenant_id == tenant_id)
    if match_id is not None:
        q = q.filter(MatchAction.match_id == match_id)
    if actor_id:
        q = q.filter(MatchAction.actor_id == actor_id)
    if since is not None:
        q = q.filter(MatchAction.created_at >= since)
    rows = q.order_by(MatchAction.created_at.desc(), MatchAction.id.desc()).limit(max(1, min(limit, HISTORY_LIST_LIMIT))).all()
    return [serialize_action(r) for r in rows]


def list_missed(
    db: Session,
    tenant_id: str,
    *,
    vehicle_id: str | None = None,
    include_reset: bool = False,
    limit: int = HISTORY_LIST_LIMIT,
) -> list[dict[str, Any]]:
    q = db.query(MissedLoad).filter(MissedLoad.tenant_id == tenant_id)
    if vehicle_id:
        q = q.filter(MissedLoad.vehicle_id == vehicle_id)
    if not include_reset:
        q = q.filter(MissedLoad.reset_at.is_(None))
    rows = q.order_by(MissedLoad.missed_at.desc(), MissedLoad.id.desc()).limit(max(1, min(limit, HISTORY_LIST_LIMIT))).all()
    return [
        {
            "id": r.id,
            "match_id": r.match_id,
            "load_offer_id": r.load_offer_id,
            "hunt_plan_id": r.hunt_plan_id,
            "vehicle_id": r.vehicle_id,
            "missed_at": _iso(r.missed_at),
            "received_at": _iso(r.received_at),
            "from_email": r.from_email,
            "subject": r.subject,
            "reset_at": _iso(r.reset_at),
        }
        for r in rows
    ]


def reset_missed(db: Session, tenant_id: str, *, vehicle_id: str | None = None) -> int:
    """Stamp reset_at on open missed rows (the counter reset). Rows are never deleted."""
    q = db.query(MissedLoad).filter(MissedLoad.tenant_id == tenant_id, MissedLoad.reset_at.is_(None))
    if vehicle_id:
        q = q.filter(MissedLoad.vehicle_id == vehicle_id)
    n = q.update({MissedLoad.reset_at: utc_now()}, synchronize_session=False)
    db.commit()
    logger.info("Missed counter reset tenant=%s vehicle=%s rows=%s", tenant_id, vehicle_id or "*", n)
    return n


def dispatcher_metrics(db: Session, tenant_id: str, *, since: datetime | None = None) -> dict[str, Any]:
    """Per-actor action counts (system actions excluded), most bids first, plus totals."""
    q = db.query(MatchAction).filter(
        MatchAction.tenant_id == tenant_id,
        func.coalesce(MatchAction.actor_name, "") != SYSTEM_ACTOR_NAME,
    )
    if since is not None:
        q = q.filter(MatchAction.created_at >= since)
    per_actor: dict[str, dict[str, Any]] = {}
    for row in q.all():
        key = row.actor_id or row.actor_name or "unknown"
        m = per_actor.get(key)
        if m is None:
            m = per_actor[key] = {
                "actor_id": row.actor_id,
                "actor_name": row.actor_name or "Unknown",
                "total_actions": 0,
                "bids": 0,
                "skips": 0,
                "waitlist": 0,
                "undecided": 0,
            }
        m["total_actions"] += 1
        if row.action == MATCH_BID:
            m["bids"] += 1
        elif row.action == MATCH_SKIPPED and not (row.detail or "").startswith("sibling_bid:"):
            m["skips"] += 1
        elif row.action == MATCH_WAITLIST:
            m["waitlist"] += 1
        elif row.action == MATCH_UNDECIDED:
            m["undecided"] += 1
    dispatchers = sorted(per_actor.values(), key=lambda m: (-m["bids"], -m["total_actions"]))
    return {
        "dispatchers": dispatchers,
        "totals": {
            "total_actions": sum(m["total_actions"] for m in dispatchers),
            "bids": sum(m["bids"] for m in dispatchers),
            "skips": sum(m["skips"] for m in dispatchers),
        },
    }
