"""Hunt plan CRUD plus the enable/disable/clear/delete operations that move the cursor."""
import logging
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from loadhunt.core.constants import ARCHIVE_REASON_CLEARED, ARCHIVE_REASON_PLAN_DELETED
from loadhunt.core.errors import HuntPlanNotFoundError
from loadhunt.models.archived_match import ArchivedMatch
from loadhunt.models.hunt_plan import HuntPlan
from loadhunt.models.match import HuntMatch
from loadhunt.services.clock import utc_now
from loadhunt.services.geo.geocoder import Geocoder
from loadhunt.services.matching.cursor import advance_floor_to_latest, on_plan_disabled, on_plan_enabled
from loadhunt.services.matching.vehicle_types import canonical_plan_types

logger = logging.getLogger(__name__)

# Fields a caller may set on create/update. Cursor fields are engine-owned.
EDITABLE_FIELDS = (
    "vehicle_id",
    "plan_name",
    "vehicle_types",
    "origin_postal_code",
    "origin_lat",
    "origin_lng",
    "radius_miles",
    "available_date",
    "available_time",
    "destination_postal_code",
    "destination_radius_miles",
    "notes",
)


def serialize_plan(plan: HuntPlan) -> dict[str, Any]:
    return {
        "id": plan.id,
        "tenant_id": plan.tenant_id,
        "vehicle_id": plan.vehicle_id,
        "plan_name": plan.plan_name,
        "enabled": plan.enabled,
        "vehicle_types": list(plan.vehicle_types or []),
        "origin_postal_code": plan.origin_postal_code,
        "origin_lat": plan.origin_lat,
        "origin_lng": plan.origin_lng,
        "radius_miles": plan.radius_miles,
        "available_date": plan.available_date.isoformat() if plan.available_date else None,
        "available_time": plan.available_time,
        "destination_postal_code": plan.destination_postal_code,
        "destination_radius_miles": plan.destination_radius_miles,
        "notes": plan.notes,
        "floor_id": plan.floor_id,
        "initial_backfill_done": plan.initial_backfill_done,
        "created_by": plan.created_by,
        "created_at": plan.created_at.isoformat() if plan.created_at else None,
        "last_modified_at": plan.last_modified_at.isoformat() if plan.last_modified_at else None,
    }


def list_plans(db: Session, tenant_id: str, *, vehicle_id: str | None = None, enabled_only: bool = False) -> list[HuntPlan]:
    q = db.query(HuntPlan).filter(HuntPlan.tenant_id == tenant_id, HuntPlan.deleted_at.is_(None))
    if vehicle_id:
        q = q.filter(HuntPlan.vehicle_id == vehicle_id)
    if enabled_only:
        q = q.filter(HuntPlan.enabled.is_(True))
    return q.order_by(HuntPlan.id.asc()).all()


def get_plan(db: Session, tenant_id: str, plan_id: int) -> HuntPlan:
    plan = (
        db.query(HuntPlan)
        .filter(HuntPlan.id == plan_id, HuntPlan.tenant_id == tenant_id, HuntPlan.deleted_at.is_(None))
        .first()
    )
    if plan is None:
        raise HuntPlanNotFoundError(plan_id)
    return plan


def active_tenant_ids(db: Session) -> list[str]:
    """Tenants with at least one enabled, non-deleted plan."""
    rows = (
        db.query(HuntPlan.tenant_id)
        .filter(HuntPlan.enabled.is_(True), HuntPlan.deleted_at.is_(None))
        .distinct()
        .all()
    )
    return sorted(r[0] for r in rows)


def _apply_fields(plan: HuntPlan, data: dict[str, Any]) -> None:
    for key in EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key == "vehicle_types":
            value = sorted(canonical_plan_types(value))
        elif key == "available_date" and isinstance(value, str):
            value = date.fromisoformat(value) if value.strip() else None
        elif key in ("origin_postal_code", "destination_postal_code") and isinstance(value, str):
            value = value.strip() or None
        setattr(plan, key, value)


def _resolve_origin(plan: HuntPlan, geocoder: Geocoder | None) -> None:
    if geocoder is None or plan.has_coordinates or not plan.origin_postal_code:
        return
    coords = geocoder.resolve(plan.origin_postal_code)
    if coords is None:
        logger.info("Plan %s: postal %s not geocoded yet; engine retries each pass", plan.id, plan.origin_postal_code)
        return
    plan.origin_lat = coords.lat
    plan.origin_lng = coords.lng


def create_plan(
    db: Session,
    tenant_id: str,
    data: dict[str, Any],
    *,
    created_by: str | None = None,
    geocoder: Geocoder | None = None,
) -> HuntPlan:
    now = utc_now()
    plan = HuntPlan(
        tenant_id=tenant_id,
        enabled=bool(data.get("enabled", True)),
        vehicle_types=[],
        initial_backfill_done=False,
        created_by=created_by,
        created_at=now,
        last_modified_at=now,
    )
    _apply_fields(plan, data)
    _resolve_origin(plan, geocoder)
    db.add(plan)
    db.flush()
    if plan.enabled:
        on_plan_enabled(db, plan)
    db.commit()
    db.refresh(plan)
    logger.info("Plan %s created tenant=%s vehicle=%s enabled=%s", plan.id, tenant_id, plan.vehicle_id, plan.enabled)
    return plan


def update_plan(
    db: Session,
    tenant_id: str,
    plan_id: int,
    changes: dict[str, Any],
    *,
    geocoder: Geocoder | None = None,
) -> HuntPlan:
    """Edit criteria. A new origin postal code without coordinates drops the old coordinates."""
    plan = get_plan(db, tenant_id, plan_id)
    postal_changed = "origin_postal_code" in changes and (changes["origin_postal_code"] or None) != plan.origin_postal_code
    _apply_fields(plan, changes)
    if postal_changed and "origin_lat" not in changes and "origin_lng" not in changes:
        plan.origin_lat = None
        plan.origin_lng = None
    _resolve_origin(plan, geocoder)
    plan.last_modified_at = utc_now()
    db.commit()
    db.refresh(plan)
    return plan


def enable_plan(db: Session, tenant_id: str, plan_id: int) -> HuntPlan:
    plan = get_plan(db, tenant_id, plan_id)
    if plan.enabled:
        return plan
    plan.enabled = True
    on_plan_enabled(db, plan)
    plan.last_modified_at = utc_now()
    db.commit()
    db.refresh(plan)
    return plan


def disable_plan(db: Session, tenant_id: str, plan_id: int) -> HuntPlan:
    plan = get_plan(db, tenant_id, plan_id)
    if not plan.enabled:
        return plan
    plan.enabled = False
    on_plan_disabled(plan)
    plan.last_modified_at = utc_now()
    db.commit()
    db.refresh(plan)
    return plan


def _archive_and_purge(db: Session, plan: HuntPlan, reason: str) -> int:
    """Copy the plan's matches to the archive and delete them. Caller commits."""
    now = utc_now()
    matches = (
        db.query(HuntMatch)
        .filter(HuntMatch.tenant_id == plan.tenant_id, HuntMatch.hunt_plan_id == plan.id)
        .all()
    )
    for m in matches:
        db.add(
            ArchivedMatch(
                tenant_id=m.tenant_id,
                original_match_id=m.id,
                load_offer_id=m.load_offer_id,
                hunt_plan_id=m.hunt_plan_id,
                vehicle_id=m.vehicle_id,
                distance_miles=m.distance_miles,
                status=m.status,
                is_active=m.is_active,
                matched_at=m.matched_at,
                archived_at=now,
                archive_reason=reason,
            )
        )
    if matches:
        db.query(HuntMatch).filter(
            HuntMatch.tenant_id == plan.tenant_id, HuntMatch.hunt_plan_id == plan.id
        ).delete(synchronize_session=False)
    return len(matches)


def clear_matches(db: Session, tenant_id: str, plan_id: int) -> int:
    """
    Archive and delete every match of the plan, then advance its floor to the newest offer so
    the cleared offers never match again. Returns matches removed.
    """
    plan = get_plan(db, tenant_id, plan_id)
    removed = _archive_and_purge(db, plan, ARCHIVE_REASON_CLEARED)
    advance_floor_to_latest(db, plan)
    plan.last_modified_at = utc_now()
    db.commit()
    logger.info("Plan %s: cleared %s matches; floor now %s", plan_id, removed, plan.floor_id)
    return removed


def delete_plan(db: Session, tenant_id: str, plan_id: int) -> int:
    """Soft delete: disable, archive and purge matches, stamp deleted_at. Returns matches removed."""
    plan = get_plan(db, tenant_id, plan_id)
    plan.enabled = False
    on_plan_disabled(plan)
    removed = _archive_and_purge(db, plan, ARCHIVE_REASON_PLAN_DELETED)
    now = utc_now()
    plan.deleted_at = now
    plan.last_modified_at = now
    db.commit()
    logger.info("Plan %s deleted tenant=%s; %s matches archived", plan_id, tenant_id, removed)
    return removed


def set_floor(db: Session, tenant_id: str, plan_id: int, floor_id: int | None) -> HuntPlan:
    plan = get_plan(db, tenant_id, plan_id)
    plan.floor_id = floor_id
    db.commit()
    return plan


def set_backfill_done(db: Session, tenant_id: str, plan_id: int, done: bool = True) -> HuntPlan:
    plan = get_plan(db, tenant_id, plan_id)
    plan.initial_backfill_done = done
    db.commit()
    return plan
