"""
Vehicle-type canonicalization. Raw strings from load offers ("large straight", "Sprinter Van")
map to canonical uppercase codes through the tenant's operator-maintained table; unmapped
types canonicalize to their own uppercased form.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from loadhunt.models.vehicle_type_mapping import VehicleTypeMapping

logger = logging.getLogger(__name__)


def normalize_raw(raw: str | None) -> str:
    return (raw or "").strip().lower()


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def canonicalize(raw: str | None, mappings: dict[str, str]) -> str:
    """Canonical code for a raw offer vehicle type ('' when raw is blank)."""
    key = normalize_raw(raw)
    if not key:
        return ""
    mapped = mappings.get(key)
    if mapped:
        return normalize_code(mapped)
    return normalize_code(raw)


def canonical_plan_types(types: list[str] | None) -> set[str]:
    return {normalize_code(t) for t in (types or []) if normalize_code(t)}


def load_mappings(db: Session, tenant_id: str) -> dict[str, str]:
    """raw (lower) -> canonical (upper) for one tenant."""
    rows = db.query(VehicleTypeMapping).filter(VehicleTypeMapping.tenant_id == tenant_id).all()
    return {r.raw_value: r.canonical_code for r in rows}


def upsert_mappings(db: Session, tenant_id: str, mappings: dict[str, str]) -> int:
    """Add or update mappings for a tenant. Returns number of rows written."""
    now = datetime.now(timezone.utc)
    existing = {
        r.raw_value: r
        for r in db.query(VehicleTypeMapping).filter(VehicleTypeMapping.tenant_id == tenant_id).all()
    }
    written = 0
    for raw, code in mappings.items():
        key = normalize_raw(raw)
        value = normalize_code(code)
        if not key or not value:
            continue
        row = existing.get(key)
        if row:
            if row.canonical_code == value:
                continue
            row.canonical_code = value
            row.updated_at = now
        else:
            db.add(VehicleTypeMapping(tenant_id=tenant_id, raw_value=key, canonical_code=value, updated_at=now))
        written += 1
    db.commit()
    logger.info("Vehicle type mappings: tenant=%s wrote %s rows", tenant_id, written)
    return written


def delete_mapping(db: Session, tenant_id: str, raw: str) -> bool:
    deleted = (
        db.query(VehicleTypeMapping)
        .filter(VehicleTypeMapping.tenant_id == tenant_id, VehicleTypeMapping.raw_value == normalize_raw(raw))
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted > 0
