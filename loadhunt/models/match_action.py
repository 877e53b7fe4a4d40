"""Append-only audit of every match transition (operator and system)."""
from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from loadhunt.db.base import Base


class MatchAction(Base):
    __tablename__ = "match_action_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    match_id = Column(Integer, nullable=False, index=True)  # no FK: history outlives cleared matches
    action = Column(String(32), nullable=False)
    actor_id = Column(String(64), nullable=True)
    actor_name = Column(String(128), nullable=True)
    detail = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
