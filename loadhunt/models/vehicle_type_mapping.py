"""Operator-maintained raw vehicle type -> canonical code table, per tenant."""
from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from loadhunt.db.base import Base


class VehicleTypeMapping(Base):
    __tablename__ = "vehicle_type_mappings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    raw_value = Column(String(128), nullable=False)  # stored lower-cased, stripped
    canonical_code = Column(String(64), nullable=False)  # stored upper-cased
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (UniqueConstraint("tenant_id", "raw_value", name="uq_vehicle_type_mappings_tenant_raw"),)
