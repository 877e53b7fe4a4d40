"""
Matches API: console views and operator transitions.

Views: joined list, unreviewed, grouped per offer, per-vehicle counts, action history,
missed loads, dispatcher metrics. Transitions go through services/lifecycle.py; a match that
already left the required state answers 409.
"""
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from loadhunt.api.deps import actor, raise_engine_error, tenant_id
from loadhunt.core.constants import HISTORY_LIST_LIMIT, MATCH_LIST_LIMIT, MATCH_STATUSES
from loadhunt.core.errors import LoadHuntError
from loadhunt.db.session import get_db
from loadhunt.services import lifecycle, match_views
from loadhunt.services.lifecycle import Actor

router = APIRouter()
logger = logging.getLogger(__name__)


class BidRequest(BaseModel):
    rate: float | None = Field(None, ge=0, description="Offered rate in dollars")


class BookRequest(BaseModel):
    booked_load_id: str | None = Field(None, description="Id of the load record created downstream")


# --- Views ---


@router.get("/matches")
def list_matches(
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
    status: str | None = Query(None),
    vehicle_id: str | None = Query(None),
    hunt_plan_id: int | None = Query(None),
    limit: int = Query(200, ge=1, le=MATCH_LIST_LIMIT),
) -> dict[str, Any]:
    if status and status not in MATCH_STATUSES:
        return {"matches": [], "count": 0}
    rows = match_views.list_matches(db, tenant, status=status, vehicle_id=vehicle_id, hunt_plan_id=hunt_plan_id, limit=limit)
    return {"matches": rows, "count": len(rows)}


@router.get("/matches/unreviewed")
def list_unreviewed(
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
    vehicle_id: str | None = Query(None),
) -> dict[str, Any]:
    rows = match_views.list_unreviewed(db, tenant, vehicle_id=vehicle_id)
    return {"matches": rows, "count": len(rows)}


@router.get("/matches/grouped")
def list_grouped(
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
    my_vehicle_ids: list[str] | None = Query(None, description="Vehicles to rank first within each offer"),
) -> dict[str, Any]:
    groups = match_views.grouped_by_offer(db, tenant, my_vehicle_ids=my_vehicle_ids)
    return {"groups": groups, "count": len(groups)}


@router.get("/matches/counts")
def match_counts(db: Session = Depends(get_db), tenant: str = Depends(tenant_id)) -> dict[str, Any]:
    return {"vehicles": match_views.counts_by_vehicle(db, tenant)}


@router.get("/matches/history")
def match_history(
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
    match_id: int | None = Query(None),
    actor_id: str | None = Query(None),
    since: datetime | None = Query(None),
    limit: int = Query(200, ge=1, le=HISTORY_LIST_LIMIT),
) -> dict[str, Any]:
    rows = match_views.action_history(db, tenant, match_id=match_id, actor_id=actor_id, since=since, limit=limit)
    return {"actions": rows, "count": len(rows)}


@router.get("/matches/missed")
def missed_loads(
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
    vehicle_id: str | None = Query(None),
    include_reset: bool = Query(False),
    limit: int = Query(200, ge=1, le=HISTORY_LIST_LIMIT),
) -> dict[str, Any]:
    rows = match_views.list_missed(db, tenant, vehicle_id=vehicle_id, include_reset=include_reset, limit=limit)
    return {"missed": rows, "count": len(rows)}


@router.post("/matches/missed/reset")
def reset_missed(
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
    vehicle_id: str | None = Query(None),
) -> dict[str, Any]:
    """Zero the missed counter (rows are kept, stamped with reset_at)."""
    return {"reset": match_views.reset_missed(db, tenant, vehicle_id=vehicle_id)}


@router.get("/matches/dispatcher-metrics")
def dispatcher_metrics(
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
    since: datetime | None = Query(None),
) -> dict[str, Any]:
    return match_views.dispatcher_metrics(db, tenant, since=since)


# --- Transitions ---


def _transition(fn, db: Session, tenant: str, match_id: int, who: Actor, **kwargs) -> dict[str, Any]:
    try:
        match = fn(db, tenant, match_id, who, **kwargs)
    except LoadHuntError as exc:
        raise_engine_error(exc)
    return {"match": match_views.serialize_match(match)}


@router.post("/matches/{match_id}/skip")
def skip_match(
    match_id: int, db: Session = Depends(get_db), tenant: str = Depends(tenant_id), who: Actor = Depends(actor)
) -> dict[str, Any]:
    return _transition(lifecycle.skip_match, db, tenant, match_id, who)


@router.post("/matches/{match_id}/waitlist")
def waitlist_match(
    match_id: int, db: Session = Depends(get_db), tenant: str = Depends(tenant_id), who: Actor = Depends(actor)
) -> dict[str, Any]:
    return _transition(lifecycle.waitlist_match, db, tenant, match_id, who)


@router.post("/matches/{match_id}/undecided")
def mark_undecided(
    match_id: int, db: Session = Depends(get_db), tenant: str = Depends(tenant_id), who: Actor = Depends(actor)
) -> dict[str, Any]:
    """Detail view closed without an action."""
    return _transition(lifecycle.mark_undecided, db, tenant, match_id, who)


@router.post("/matches/{match_id}/bid")
def place_bid(
    match_id: int,
    body: BidRequest | None = None,
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
    who: Actor = Depends(actor),
) -> dict[str, Any]:
    """Bid on a match; every other active match on the same offer is skipped."""
    rate = body.rate if body else None
    try:
        match, skipped = lifecycle.place_bid(db, tenant, match_id, who, rate=rate)
    except LoadHuntError as exc:
        raise_engine_error(exc)
    return {"match": match_views.serialize_match(match), "skipped_match_ids": skipped}


@router.post("/matches/{match_id}/book")
def book_match(
    match_id: int,
    body: BookRequest | None = None,
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
    who: Actor = Depends(actor),
) -> dict[str, Any]:
    return _transition(lifecycle.book_match, db, tenant, match_id, who, booked_load_id=body.booked_load_id if body else None)
