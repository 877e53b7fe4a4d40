"""
One (load offer, hunt plan) candidate. Created only by the engine with ON CONFLICT DO NOTHING
on (load_offer_id, hunt_plan_id); status moves forward only (see services/lifecycle.py).
"""
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from loadhunt.db.base import Base


class HuntMatch(Base):
    __tablename__ = "load_hunt_matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    load_offer_id = Column(Integer, ForeignKey("load_offers.sequence_id", ondelete="CASCADE"), nullable=False, index=True)
    hunt_plan_id = Column(Integer, ForeignKey("hunt_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_id = Column(String(64), nullable=False, index=True)
    distance_miles = Column(Float, nullable=True)  # NULL when matched on exact postal code

    status = Column(String(16), nullable=False, default="active", index=True)
    is_active = Column(Boolean, nullable=False, default=True)  # true only while status = active
    bid_rate = Column(Float, nullable=True)
    bid_by = Column(String(64), nullable=True)
    bid_at = Column(DateTime(timezone=True), nullable=True)
    booked_load_id = Column(String(64), nullable=True)
    booked_at = Column(DateTime(timezone=True), nullable=True)

    matched_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    offer = relationship("LoadOffer")

    __table_args__ = (UniqueConstraint("load_offer_id", "hunt_plan_id", name="uq_load_hunt_matches_offer_plan"),)
