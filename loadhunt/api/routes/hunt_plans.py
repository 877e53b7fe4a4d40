"""
Hunt plans API: a vehicle's standing search criteria.

Create/edit/enable/disable/delete and clear-matches. Every change nudges the tenant's engine
worker so backfills and forward matching pick it up without waiting for the backup pass.
"""
import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from loadhunt.api.deps import actor, raise_engine_error, tenant_id
from loadhunt.core.errors import LoadHuntError
from loadhunt.db.session import get_db
from loadhunt.scheduler.engine_worker import publish_plans_changed
from loadhunt.services import hunt_plan_service
from loadhunt.services.geo import get_geocoder
from loadhunt.services.lifecycle import Actor

router = APIRouter()
logger = logging.getLogger(__name__)


class HuntPlanBody(BaseModel):
    vehicle_id: str = Field(..., min_length=1)
    plan_name: str = Field(..., min_length=1)
    enabled: bool = True
    vehicle_types: list[str] = Field(default_factory=list, description="Canonical codes, e.g. LARGE_STRAIGHT")
    origin_postal_code: str | None = None
    origin_lat: float | None = Field(None, ge=-90, le=90)
    origin_lng: float | None = Field(None, ge=-180, le=180)
    radius_miles: int | None = Field(None, ge=0, description="0 or null = default radius")
    available_date: date | None = None
    available_time: str | None = None
    destination_postal_code: str | None = None
    destination_radius_miles: int | None = Field(None, ge=0)
    notes: str | None = None


class HuntPlanPatch(BaseModel):
    vehicle_id: str | None = Field(None, min_length=1)
    plan_name: str | None = Field(None, min_length=1)
    vehicle_types: list[str] | None = None
    origin_postal_code: str | None = None
    origin_lat: float | None = Field(None, ge=-90, le=90)
    origin_lng: float | None = Field(None, ge=-180, le=180)
    radius_miles: int | None = Field(None, ge=0)
    available_date: date | None = None
    available_time: str | None = None
    destination_postal_code: str | None = None
    destination_radius_miles: int | None = Field(None, ge=0)
    notes: str | None = None


@router.get("/hunt-plans")
def list_hunt_plans(
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
    vehicle_id: str | None = Query(None),
    enabled_only: bool = Query(False),
) -> dict[str, Any]:
    plans = hunt_plan_service.list_plans(db, tenant, vehicle_id=vehicle_id, enabled_only=enabled_only)
    return {"plans": [hunt_plan_service.serialize_plan(p) for p in plans]}


@router.post("/hunt-plans")
def create_hunt_plan(
    body: HuntPlanBody,
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
    who: Actor = Depends(actor),
) -> dict[str, Any]:
    plan = hunt_plan_service.create_plan(
        db,
        tenant,
        body.model_dump(),
        created_by=who.id or who.name,
        geocoder=get_geocoder(),
    )
    publish_plans_changed(tenant)
    return {"plan": hunt_plan_service.serialize_plan(plan)}


@router.patch("/hunt-plans/{plan_id}")
def update_hunt_plan(
    plan_id: int,
    body: HuntPlanPatch,
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
) -> dict[str, Any]:
    try:
        plan = hunt_plan_service.update_plan(db, tenant, plan_id, body.model_dump(exclude_unset=True), geocoder=get_geocoder())
    except LoadHuntError as exc:
        raise_engine_error(exc)
    publish_plans_changed(tenant)
    return {"plan": hunt_plan_service.serialize_plan(plan)}


@router.post("/hunt-plans/{plan_id}/enable")
def enable_hunt_plan(plan_id: int, db: Session = Depends(get_db), tenant: str = Depends(tenant_id)) -> dict[str, Any]:
    """Pins the cursor at the newest offer; the worker backfills the last few minutes, then goes forward-only."""
    try:
        plan = hunt_plan_service.enable_plan(db, tenant, plan_id)
    except LoadHuntError as exc:
        raise_engine_error(exc)
    publish_plans_changed(tenant)
    return {"plan": hunt_plan_service.serialize_plan(plan)}


@router.post("/hunt-plans/{plan_id}/disable")
def disable_hunt_plan(plan_id: int, db: Session = Depends(get_db), tenant: str = Depends(tenant_id)) -> dict[str, Any]:
    try:
        plan = hunt_plan_service.disable_plan(db, tenant, plan_id)
    except LoadHuntError as exc:
        raise_engine_error(exc)
    return {"plan": hunt_plan_service.serialize_plan(plan)}


@router.post("/hunt-plans/{plan_id}/clear-matches")
def clear_hunt_plan_matches(plan_id: int, db: Session = Depends(get_db), tenant: str = Depends(tenant_id)) -> dict[str, Any]:
    """Archive and remove the plan's matches; only offers newer than now can match it again."""
    try:
        removed = hunt_plan_service.clear_matches(db, tenant, plan_id)
        plan = hunt_plan_service.get_plan(db, tenant, plan_id)
    except LoadHuntError as exc:
        raise_engine_error(exc)
    return {"cleared": removed, "plan": hunt_plan_service.serialize_plan(plan)}


@router.delete("/hunt-plans/{plan_id}")
def delete_hunt_plan(plan_id: int, db: Session = Depends(get_db), tenant: str = Depends(tenant_id)) -> dict[str, Any]:
    try:
        removed = hunt_plan_service.delete_plan(db, tenant, plan_id)
    except LoadHuntError as exc:
        raise_engine_error(exc)
    return {"deleted": plan_id, "matches_archived": removed}
