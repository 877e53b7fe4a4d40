"""
Vehicle type mappings API: per-tenant raw label -> canonical code table used by matching.

GET returns the table; PUT merges entries (or replaces the whole table with replace=true).
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from loadhunt.api.deps import tenant_id
from loadhunt.db.session import get_db
from loadhunt.services.matching.vehicle_types import delete_mapping, load_mappings, normalize_raw, upsert_mappings

router = APIRouter()
logger = logging.getLogger(__name__)


class VehicleTypeMappingsRequest(BaseModel):
    mappings: dict[str, str] = Field(..., description="raw label -> canonical code, e.g. {'large straight': 'LARGE_STRAIGHT'}")
    replace: bool = False


@router.get("/vehicle-types")
def get_vehicle_types(db: Session = Depends(get_db), tenant: str = Depends(tenant_id)) -> dict[str, Any]:
    return {"mappings": load_mappings(db, tenant)}


@router.put("/vehicle-types")
def put_vehicle_types(
    body: VehicleTypeMappingsRequest,
    db: Session = Depends(get_db),
    tenant: str = Depends(tenant_id),
) -> dict[str, Any]:
    removed = 0
    if body.replace:
        keep = {normalize_raw(k) for k in body.mappings}
        for raw in load_mappings(db, tenant):
            if raw not in keep and delete_mapping(db, tenant, raw):
                removed += 1
    written = upsert_mappings(db, tenant, body.mappings)
    return {"written": written, "removed": removed, "mappings": load_mappings(db, tenant)}


@router.delete("/vehicle-types/{raw_value}")
def delete_vehicle_type(raw_value: str, db: Session = Depends(get_db), tenant: str = Depends(tenant_id)) -> dict[str, Any]:
    if not delete_mapping(db, tenant, raw_value):
        raise HTTPException(status_code=404, detail=f"No mapping for {raw_value!r}")
    return {"deleted": normalize_raw(raw_value)}
