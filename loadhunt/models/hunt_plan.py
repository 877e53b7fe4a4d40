"""A vehicle's standing search criteria. floor_id / initial_backfill_done are the forward-only cursor."""
from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from loadhunt.db.base import Base


class HuntPlan(Base):
    __tablename__ = "hunt_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    vehicle_id = Column(String(64), nullable=False, index=True)
    plan_name = Column(String(256), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)

    vehicle_types = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list)  # canonical codes
    origin_postal_code = Column(String(16), nullable=True)
    origin_lat = Column(Float, nullable=True)  # resolved from origin_postal_code when not given
    origin_lng = Column(Float, nullable=True)
    radius_miles = Column(Integer, nullable=True)  # NULL or 0 = DEFAULT_RADIUS_MILES
    available_date = Column(Date, nullable=True)
    available_time = Column(String(16), nullable=True)
    destination_postal_code = Column(String(16), nullable=True)
    destination_radius_miles = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    floor_id = Column(Integer, nullable=True)  # load_offers.sequence_id at enable time
    initial_backfill_done = Column(Boolean, nullable=False, default=False)

    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_modified_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)  # soft delete

    @property
    def has_coordinates(self) -> bool:
        return self.origin_lat is not None and self.origin_lng is not None
