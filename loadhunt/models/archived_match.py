"""Snapshot of a match removed by "clear matches" or plan soft delete."""
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from loadhunt.db.base import Base


class ArchivedMatch(Base):
    __tablename__ = "load_hunt_matches_archive"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    original_match_id = Column(Integer, nullable=False)
    load_offer_id = Column(Integer, nullable=False)
    hunt_plan_id = Column(Integer, nullable=False, index=True)
    vehicle_id = Column(String(64), nullable=False)
    distance_miles = Column(Float, nullable=True)
    status = Column(String(16), nullable=False)
    is_active = Column(Boolean, nullable=False)
    matched_at = Column(DateTime(timezone=True), nullable=False)
    archived_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    archive_reason = Column(String(32), nullable=False, default="cleared")
