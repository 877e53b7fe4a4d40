"""
Load offer stream: push ingestion (idempotent on tenant + external_id) and pull listing by
sequence_id. Ingested offers are handed to the tenant's engine worker by the caller.
"""
import logging
from typing import Any

from sqlalchemy.orm import Session

from loadhunt.core.constants import MATCH_LIST_LIMIT, OFFER_NEW
from loadhunt.core.errors import OfferNotFoundError
from loadhunt.db.upsert import insert_ignore
from loadhunt.models.load_offer import LoadOffer
from loadhunt.services.clock import utc_now

logger = logging.getLogger(__name__)

OFFER_FIELDS = (
    "origin_postal_code",
    "origin_city",
    "origin_state",
    "origin_lat",
    "origin_lng",
    "destination_postal_code",
    "destination_city",
    "destination_state",
    "vehicle_type",
    "pickup_date",
    "expires_at",
    "from_email",
    "subject",
)


def _iso(value):
    return value.isoformat() if value else None


def serialize_offer(offer: LoadOffer) -> dict[str, Any]:
    return {
        "sequence_id": offer.sequence_id,
        "external_id": offer.external_id,
        "tenant_id": offer.tenant_id,
        "received_at": _iso(offer.received_at),
        "origin_postal_code": offer.origin_postal_code,
        "origin_city": offer.origin_city,
        "origin_state": offer.origin_state,
        "origin_lat": offer.origin_lat,
        "origin_lng": offer.origin_lng,
        "destination_postal_code": offer.destination_postal_code,
        "destination_city": offer.destination_city,
        "destination_state": offer.destination_state,
        "vehicle_type": offer.vehicle_type,
        "pickup_date": offer.pickup_date,
        "expires_at": _iso(offer.expires_at),
        "status": offer.status,
        "has_issues": offer.has_issues,
        "issue_notes": offer.issue_notes,
        "from_email": offer.from_email,
        "subject": offer.subject,
    }


def ingest_offer(db: Session, tenant_id: str, data: dict[str, Any]) -> tuple[LoadOffer, bool]:
    """
    Insert an offer unless (tenant_id, external_id) already exists.
    Returns (offer, created). A redelivered offer keeps its original sequence_id.
    """
    external_id = (data.get("external_id") or "").strip()
    if not external_id:
        raise ValueError("external_id is required")
    row = {k: data.get(k) for k in OFFER_FIELDS}
    row.update(
        tenant_id=tenant_id,
        external_id=external_id,
        received_at=data.get("received_at") or utc_now(),
        status=OFFER_NEW,
        has_issues=False,
    )
    created = insert_ignore(db, LoadOffer, [row], ["tenant_id", "external_id"]) > 0
    db.commit()
    offer = (
        db.query(LoadOffer)
        .filter(LoadOffer.tenant_id == tenant_id, LoadOffer.external_id == external_id)
        .one()
    )
    if created:
        logger.info("Offer %s ingested tenant=%s seq=%s", external_id, tenant_id, offer.sequence_id)
    else:
        logger.debug("Offer %s already ingested tenant=%s seq=%s", external_id, tenant_id, offer.sequence_id)
    return offer, created


def get_offer(db: Session, tenant_id: str, sequence_id: int) -> LoadOffer:
    offer = (
        db.query(LoadOffer)
        .filter(LoadOffer.sequence_id == sequence_id, LoadOffer.tenant_id == tenant_id)
        .first()
    )
    if offer is None:
        raise OfferNotFoundError(sequence_id)
    return offer


def list_offers(
    db: Session,
    tenant_id: str,
    *,
    since_sequence_id: int | None = None,
    status: str | None = None,
    limit: int = MATCH_LIST_LIMIT,
) -> list[LoadOffer]:
    """Offers in sequence order, strictly after since_sequence_id when given."""
    q = db.query(LoadOffer).filter(LoadOffer.tenant_id == tenant_id)
    if since_sequence_id is not None:
        q = q.filter(LoadOffer.sequence_id > since_sequence_id)
    if status:
        q = q.filter(LoadOffer.status == status)
    return q.order_by(LoadOffer.sequence_id.asc()).limit(max(1, min(limit, MATCH_LIST_LIMIT))).all()
