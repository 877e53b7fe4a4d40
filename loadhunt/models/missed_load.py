"""
Missed-load history: one immutable row per match left unacted on past the missed window.

The match itself stays "active"; this table is a reporting side-channel.
"""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from loadhunt.db.base import Base


class MissedLoad(Base):
    __tablename__ = "missed_loads_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    match_id = Column(Integer, nullable=False, unique=True)  # one missed record per match
    load_offer_id = Column(Integer, nullable=False, index=True)
    hunt_plan_id = Column(Integer, nullable=False)
    vehicle_id = Column(String(64), nullable=False, index=True)
    missed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    received_at = Column(DateTime(timezone=True), nullable=True)
    from_email = Column(String(256), nullable=True)
    subject = Column(String(512), nullable=True)
    reset_at = Column(DateTime(timezone=True), nullable=True)
