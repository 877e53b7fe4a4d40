"""
Load offers API: push ingestion from the email-parsing pipeline, pull listing by sequence id,
and offer-level operator actions (skip / waitlist / reviewed).
"""
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from loadhunt.api.deps import actor, raise_engine_error, tenant_id
from loadhunt.core.constants import MATCH_LIST_LIMIT, OFFER_STATUSES
from loadhunt.core.errors import LoadHuntError
from loadhunt.db.session import get_db
from loadhunt.scheduler.engine_worker import publish_offers_inserted
from loadhunt.services import lifecycle
from loadhunt.services.lifecycle import Actor
from loadhunt.services.offer_service import ingest_offer, list_offers, serialize_offer

router = APIRouter()
logger = logging.getLogger(__name__)


class LoadOfferBody(BaseModel):
    external_id: str = Field(..., min_length=1, description="Source id, unique per tenant")
    received_at: datetime | None = None
    origin_postal_code: str | None = None
    origin_city: str | None = None
    origin_state: str | None = None
    origin_lat: float | None = Field(None, ge=-90, le=90)
    origin_lng: float | None = Field(None, ge=-180, le=180)
    destination_postal_code: str | None = None
    destination_city: str | None = None
    destination_state: str | None = None
    vehicle_type: str | None = None
    pickup_date: str | None = Field(None, description="Raw, e.g. '2025-12-19 08:00 CST' or '12/19/25'")
    expires_at: datetime | None = None
    from_email: str | None = None
    subject: str | None = None


@router.post("/offers")
def post_offer(body: LoadOfferBody, db: Session = Depends(get_db), tenant: str = Depends(tenant_id)) -> dict[str, Any]:
    """Ingest one offer. Redelivery of the same external_id returns the stored offer with created=false."""
    try:
        offer, created = ingest_offer(db, tenant, body.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if created:
        publish_offers_inserted(tenant, [offer.sequence_id])
    return {"offer": serialize_offer(offer), "created": created}


@router.get("/offers")
def get_offers(
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
    since_sequence_id: int | None = Query(None, ge=0),
    status: str | None = Query(None),
    limit: int = Query(100, ge=1, le=MATCH_LIST_LIMIT),
) -> dict[str, Any]:
    if status and status not in OFFER_STATUSES:
        status = None
    offers = list_offers(db, tenant, since_sequence_id=since_sequence_id, status=status, limit=limit)
    return {
        "offers": [serialize_offer(o) for o in offers],
        "last_sequence_id": offers[-1].sequence_id if offers else since_sequence_id,
    }


def _offer_action(fn, db: Session, tenant: str, sequence_id: int, who: Actor) -> dict[str, Any]:
    try:
        offer = fn(db, tenant, sequence_id, who)
    except LoadHuntError as exc:
        raise_engine_error(exc)
    return {"offer": serialize_offer(offer)}


@router.post("/offers/{sequence_id}/skip")
def skip_offer(
    sequence_id: int, db: Session = Depends(get_db), tenant: str = Depends(tenant_id), who: Actor = Depends(actor)
) -> dict[str, Any]:
    return _offer_action(lifecycle.skip_offer, db, tenant, sequence_id, who)


@router.post("/offers/{sequence_id}/waitlist")
def waitlist_offer(
    sequence_id: int, db: Session = Depends(get_db), tenant: str = Depends(tenant_id), who: Actor = Depends(actor)
) -> dict[str, Any]:
    return _offer_action(lifecycle.waitlist_offer, db, tenant, sequence_id, who)


@router.post("/offers/{sequence_id}/reviewed")
def mark_offer_reviewed(
    sequence_id: int, db: Session = Depends(get_db), tenant: str = Depends(tenant_id), who: Actor = Depends(actor)
) -> dict[str, Any]:
    return _offer_action(lifecycle.mark_offer_reviewed, db, tenant, sequence_id, who)
